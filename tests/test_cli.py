import logging
from pathlib import Path

import pytest

from conftest import write_fastqs
from nanoasv.cli import build_parser, main
from nanoasv.config.load import load_params_file
from nanoasv.metadata.read import load_metadata


@pytest.fixture(autouse=True)
def _in_tmp(tmp_path: Path, monkeypatch):
    # no log file or console handlers bound to a previous test's streams
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("nanoasv.cli.setup_logger", lambda *a, **k: logging.getLogger("nanoasv"))


def test_parser_knows_every_command():
    parser = build_parser()
    for cmd in ("init", "doctor", "metadata-validate", "trim", "denoise", "cluster", "compare", "auto-run"):
        args = parser.parse_args([cmd] + (["--fastq-dir", "x"] if cmd == "init" else [])
                                 + (["--metadata-file", "m.tsv"] if cmd == "metadata-validate" else []))
        assert callable(args.func)
        assert args.dry_run is False
        assert args.show_tools is True


def test_init_writes_metadata_and_params(tmp_path: Path, capsys):
    write_fastqs(tmp_path / "fastq", ["barcode01.fastq.gz", "barcode02.fastq.gz"])
    main(["init", "--fastq-dir", str(tmp_path / "fastq"), "--project-dir", str(tmp_path / "proj")])

    md = load_metadata(tmp_path / "proj" / "metadata.tsv")
    assert list(md.index) == ["barcode01", "barcode02"]
    params = load_params_file(tmp_path / "proj" / "params.yaml")
    assert params.project_dir == tmp_path / "proj"
    assert "[ok] params" in capsys.readouterr().out

    # refuses to overwrite without --force
    with pytest.raises(SystemExit) as exc:
        main(["init", "--fastq-dir", str(tmp_path / "fastq"), "--project-dir", str(tmp_path / "proj")])
    assert exc.value.code == 1


def test_trim_dry_run(tmp_path: Path, capsys):
    write_fastqs(tmp_path / "fastq", ["S1.fastq.gz", "S2.fastq.gz", "S3.fastq.gz"])
    main([
        "trim", "--dry-run", "--fastq-dir", str(tmp_path / "fastq"),
        "--project-dir", str(tmp_path / "proj"), "--exclude", "S3",
    ])
    out = capsys.readouterr().out
    assert "trimmed 2 sample(s)" in out
    assert not list((tmp_path / "proj" / "trimmed").glob("*.fastq.gz"))


def test_domain_errors_exit_non_zero(tmp_path: Path, capsys):
    (tmp_path / "empty").mkdir()
    with pytest.raises(SystemExit) as exc:
        main(["trim", "--dry-run", "--fastq-dir", str(tmp_path / "empty")])
    assert exc.value.code == 1
    assert "error: No FASTQ files" in capsys.readouterr().err


def test_metadata_validate_against_fastqs(tmp_path: Path, capsys):
    write_fastqs(tmp_path / "fastq", ["S1.fastq.gz", "S2.fastq.gz"])
    md = tmp_path / "md.tsv"
    md.write_text("sample_id\tsoil\nS1\ta\n")
    with pytest.raises(SystemExit) as exc:
        main(["metadata-validate", "--metadata-file", str(md), "--fastq-dir", str(tmp_path / "fastq")])
    assert exc.value.code == 1
    assert "S2" in capsys.readouterr().err

    md.write_text("sample_id\tsoil\nS1\ta\nS2\tb\n")
    main(["metadata-validate", "--metadata-file", str(md), "--fastq-dir", str(tmp_path / "fastq")])
    assert "[ok] metadata validated" in capsys.readouterr().out


def test_redo_rejects_unknown_stage(tmp_path: Path):
    with pytest.raises(SystemExit) as exc:
        main(["cluster", "--project-dir", str(tmp_path / "proj"), "--redo", "bogus"])
    assert exc.value.code == 2
