# src/nanoasv/utils/samples.py
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from nanoasv.utils.logger import get_logger

LOG = get_logger("samples")

# Nanopore per-barcode outputs and trimmed derivatives, e.g.:
#   barcode01.fastq.gz
#   barcode01.trimmed.fastq.gz
#   soil_A.fq
FASTQ_EXT_RE = re.compile(r"\.(?:fastq|fq)(?:\.gz)?$", re.IGNORECASE)


class SampleError(Exception):
    pass


def discover_fastqs(fastq_dir: Path, pattern: str = "*.fastq.gz") -> List[Path]:
    if not fastq_dir.is_dir():
        raise NotADirectoryError(fastq_dir)
    paths = sorted(fastq_dir.glob(pattern))
    if not paths:
        LOG.info("No FASTQs matching %s at top level; searching recursively…", pattern)
        paths = sorted(fastq_dir.rglob(pattern))
    return paths


def sample_id_from_path(path: Path | str, id_regex: Optional[str] = None) -> str:
    """
    Derive a SampleID from a FASTQ filename.

    Priority:
      1) If id_regex is given and matches, use the named 'id' group or group 1.
      2) Else, strip the FASTQ extension and keep everything before the first '.'.
    """
    name = Path(path).name
    if id_regex:
        m = re.search(id_regex, name)
        if m:
            if "id" in m.groupdict():
                return m.group("id")
            if m.groups():
                return m.group(1)
        # if regex provided but no match, fall through to the prefix rule

    stem = FASTQ_EXT_RE.sub("", name)
    return stem.split(".", 1)[0]


def collect_samples(paths: Iterable[Path], id_regex: Optional[str] = None) -> Dict[str, Path]:
    """
    Map SampleID -> FASTQ path, ordered by SampleID.
    Raises SampleError if two files resolve to the same SampleID.
    """
    out: Dict[str, Path] = {}
    for fq in paths:
        sid = sample_id_from_path(fq, id_regex=id_regex)
        if not sid:
            raise SampleError(f"Empty SampleID derived from {fq}")
        if sid in out:
            raise SampleError(f"SampleID '{sid}' derived from both {out[sid]} and {fq}")
        out[sid] = Path(fq)
    return dict(sorted(out.items()))


def import_samples(
    fastq_dir: Path,
    *,
    pattern: str = "*.fastq.gz",
    id_regex: Optional[str] = None,
) -> Dict[str, Path]:
    paths = discover_fastqs(fastq_dir, pattern)
    if not paths:
        raise SampleError(f"No FASTQ files matching {pattern} under {fastq_dir}")
    samples = collect_samples(paths, id_regex=id_regex)
    LOG.info("Found %d sample(s) under %s", len(samples), fastq_dir)
    return samples
