from pathlib import Path

import pytest

from nanoasv.primers.degen import reverse_complement
from nanoasv.tools import commands as tools
from nanoasv.utils import runner


@pytest.fixture
def recorded(monkeypatch):
    seen = []

    def fake_run(cmd, **kwargs):
        seen.append(([str(c) for c in cmd], kwargs))
        return runner.run_command(cmd, dry_run=True)

    monkeypatch.setattr(tools, "run_command", fake_run)
    return seen


def test_reverse_complement_iupac():
    assert reverse_complement("CGGTTACCTTGTTACGACTT") == "AAGTCGTAACAAGGTAACCG"
    assert reverse_complement("AGAGTTTGATCMTGGCTCAG") == "CTGAGCCAKGATCAAACTCT"
    assert reverse_complement(" acgu ") == "ACGT"
    with pytest.raises(ValueError):
        reverse_complement("ACGX")


def test_linked_adapter_templates():
    assert tools.linked_primer_adapter("ACGT", "GGCC") == "ACGT...GGCC"
    assert tools.linked_primer_adapter("acgt", "AACT", anchored=True) == "^ACGT...AGTT$"


def test_cutadapt_command(recorded):
    tools.cutadapt_trim_linked(
        input_fastq=Path("in.fastq.gz"),
        output_fastq=Path("out.fastq.gz"),
        forward_primer="AGAGTTTGATCMTGGCTCAG",
        reverse_primer="CGGTTACCTTGTTACGACTT",
        error_rate=0.2,
        min_overlap=15,
        cores=4,
        dry_run=True,
    )
    cmd, kwargs = recorded[0]
    assert cmd[0] == "cutadapt"
    assert cmd[cmd.index("-g") + 1] == "AGAGTTTGATCMTGGCTCAG...AAGTCGTAACAAGGTAACCG"
    assert cmd[cmd.index("-e") + 1] == "0.2"
    assert cmd[cmd.index("-O") + 1] == "15"
    assert "--revcomp" in cmd
    assert "--discard-untrimmed" in cmd
    assert cmd[-1] == "in.fastq.gz"
    assert kwargs["dry_run"] is True


def test_porechop_command(recorded):
    tools.porechop_trim(input_fastq=Path("a.fq"), output_fastq=Path("b.fq"), threads=8, dry_run=True)
    cmd, _ = recorded[0]
    assert cmd[:5] == ["porechop", "-i", "a.fq", "-o", "b.fq"]
    assert cmd[cmd.index("--threads") + 1] == "8"
    assert "--discard_middle" in cmd


def test_vsearch_commands(recorded):
    tools.vsearch_fastq_to_fasta(input_fastq=Path("S1.fq"), output_fasta=Path("S1.fa"), sample_id="S1", dry_run=True)
    tools.vsearch_cluster_size(input_fasta=Path("d.fa"), centroids=Path("c.fa"), identity=0.97, dry_run=True)
    tools.vsearch_otutab(reads_fasta=Path("r.fa"), otus_fasta=Path("o.fa"), output_tsv=Path("t.tsv"), dry_run=True)

    to_fasta, cluster, otutab = (c for c, _ in recorded)
    assert to_fasta[to_fasta.index("--sample") + 1] == "S1"
    assert to_fasta[to_fasta.index("--relabel") + 1] == "S1."
    assert cluster[cluster.index("--id") + 1] == "0.97"
    assert cluster[cluster.index("--relabel") + 1] == "OTU"
    assert otutab[otutab.index("--otutabout") + 1] == "t.tsv"


def test_run_command_dry_run_does_not_execute():
    res = runner.run_command(["definitely-not-a-real-binary", "--flag"], dry_run=True)
    assert res.returncode == 0
    assert res.args == ["definitely-not-a-real-binary", "--flag"]


def test_run_command_missing_executable():
    with pytest.raises(FileNotFoundError):
        runner.run_command(["definitely-not-a-real-binary"], capture=True)


def test_tool_version_missing_tool_is_none():
    assert runner.tool_version("definitely-not-a-real-binary") is None
