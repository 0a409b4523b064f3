# src/nanoasv/tools/commands.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from nanoasv.primers.degen import clean, reverse_complement
from nanoasv.utils.runner import run_command


# ---------------------------
# Porechop (adapters/barcodes)
# ---------------------------

def porechop_trim(
    *,
    input_fastq: Path,
    output_fastq: Path,
    threads: int = 0,
    discard_middle: bool = True,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "porechop",
        "-i", str(input_fastq),
        "-o", str(output_fastq),
    ]
    if threads > 0:
        cmd += ["--threads", str(threads)]
    if discard_middle:
        cmd.append("--discard_middle")
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)


# ---------------------------
# Cutadapt (primers)
# ---------------------------

def linked_primer_adapter(forward: str, reverse: str, *, anchored: bool = False) -> str:
    """
    Linked adapter for a full-length amplicon: FWD...RC(REV).
    Anchored form (^FWD...RC(REV)$) requires both primers at the read ends.
    """
    fwd = clean(forward)
    rev_rc = reverse_complement(reverse)
    if anchored:
        return f"^{fwd}...{rev_rc}$"
    return f"{fwd}...{rev_rc}"


def cutadapt_trim_linked(
    *,
    input_fastq: Path,
    output_fastq: Path,
    forward_primer: str,
    reverse_primer: str,
    error_rate: float = 0.2,
    min_overlap: int = 15,
    anchored: bool = False,
    discard_untrimmed: bool = True,
    cores: int = 0,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "cutadapt",
        "-g", linked_primer_adapter(forward_primer, reverse_primer, anchored=anchored),
        "-e", str(error_rate),
        "-O", str(min_overlap),
        "--revcomp",
        "-j", str(cores),
        "-o", str(output_fastq),
    ]
    if discard_untrimmed:
        cmd.append("--discard-untrimmed")
    cmd.append(str(input_fastq))
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)


# ---------------------------
# vsearch (OTU clustering)
# ---------------------------

def vsearch_fastq_to_fasta(
    *,
    input_fastq: Path,
    output_fasta: Path,
    sample_id: str,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "vsearch",
        "--fastq_filter", str(input_fastq),
        "--fastaout", str(output_fasta),
        "--fastq_qmax", "93",
        "--relabel", f"{sample_id}.",
        "--sample", sample_id,
        "--no_progress",
    ]
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)


def vsearch_derep(
    *,
    input_fasta: Path,
    output_fasta: Path,
    min_unique_size: int = 1,
    threads: int = 0,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "vsearch",
        "--derep_fulllength", str(input_fasta),
        "--output", str(output_fasta),
        "--sizeout",
        "--minuniquesize", str(min_unique_size),
        "--threads", str(threads),
        "--no_progress",
    ]
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)


def vsearch_cluster_size(
    *,
    input_fasta: Path,
    centroids: Path,
    identity: float = 0.97,
    threads: int = 0,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "vsearch",
        "--cluster_size", str(input_fasta),
        "--id", str(identity),
        "--centroids", str(centroids),
        "--sizein",
        "--sizeout",
        "--relabel", "OTU",
        "--strand", "both",
        "--threads", str(threads),
        "--no_progress",
    ]
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)


def vsearch_uchime_denovo(
    *,
    input_fasta: Path,
    nonchimeras: Path,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "vsearch",
        "--uchime_denovo", str(input_fasta),
        "--nonchimeras", str(nonchimeras),
        "--sizein",
        "--xsize",
        "--no_progress",
    ]
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)


def vsearch_otutab(
    *,
    reads_fasta: Path,
    otus_fasta: Path,
    output_tsv: Path,
    identity: float = 0.97,
    threads: int = 0,
    not_matched: Optional[Path] = None,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    cmd: list[str] = [
        "vsearch",
        "--usearch_global", str(reads_fasta),
        "--db", str(otus_fasta),
        "--id", str(identity),
        "--strand", "both",
        "--otutabout", str(output_tsv),
        "--threads", str(threads),
        "--no_progress",
    ]
    if not_matched is not None:
        cmd += ["--notmatched", str(not_matched)]
    run_command(cmd, dry_run=dry_run, capture=not show_stdout)
