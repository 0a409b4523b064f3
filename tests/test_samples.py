from pathlib import Path

import pytest

from conftest import write_fastqs
from nanoasv.utils.samples import (
    SampleError,
    collect_samples,
    discover_fastqs,
    import_samples,
    sample_id_from_path,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("barcode01.fastq.gz", "barcode01"),
        ("barcode01.trimmed.fastq.gz", "barcode01"),
        ("soil_A.fq", "soil_A"),
        ("soil_A.FASTQ", "soil_A"),
        ("/runs/run1/sample-7.fastq", "sample-7"),
    ],
)
def test_sample_id_from_filename_prefix(name, expected):
    assert sample_id_from_path(name) == expected


def test_sample_id_is_stable():
    p = Path("data/barcode12.fastq.gz")
    assert sample_id_from_path(p) == sample_id_from_path(p) == "barcode12"


def test_sample_id_regex_named_group_and_fallback():
    rx = r"run\d+_(?P<id>bc\d+)"
    assert sample_id_from_path("run3_bc07.fastq.gz", rx) == "bc07"
    assert sample_id_from_path("plain.fastq.gz", rx) == "plain"
    assert sample_id_from_path("x_S12.fastq.gz", r"_(S\d+)") == "S12"


def test_collect_samples_is_sorted_and_injective():
    out = collect_samples([Path("b.fastq.gz"), Path("a.fastq.gz")])
    assert list(out) == ["a", "b"]

    with pytest.raises(SampleError, match="barcode01"):
        collect_samples([Path("barcode01.fastq.gz"), Path("barcode01.trimmed.fastq.gz")])


def test_discover_falls_back_to_recursive(tmp_path: Path):
    write_fastqs(tmp_path / "run1", ["s1.fastq.gz"])
    write_fastqs(tmp_path / "run2", ["s2.fastq.gz"])
    found = discover_fastqs(tmp_path)
    assert [p.name for p in found] == ["s1.fastq.gz", "s2.fastq.gz"]


def test_discover_missing_directory(tmp_path: Path):
    with pytest.raises(NotADirectoryError):
        discover_fastqs(tmp_path / "nope")


def test_import_samples(tmp_path: Path):
    write_fastqs(tmp_path, ["S2.fastq.gz", "S1.fastq.gz", "notes.txt"])
    samples = import_samples(tmp_path)
    assert list(samples) == ["S1", "S2"]
    assert samples["S1"] == tmp_path / "S1.fastq.gz"

    with pytest.raises(SampleError):
        import_samples(tmp_path, pattern="*.fq")
