# src/nanoasv/metadata/template.py
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List

from nanoasv.metadata import SAMPLE_ID_COL


def normalize_columns(cols: Iterable[str]) -> List[str]:
    out: List[str] = []
    for c in cols:
        c = c.strip()
        if c and c != SAMPLE_ID_COL and c not in out:
            out.append(c)
    return out


def write_metadata_template(
    sample_ids: Iterable[str],
    output_file: Path,
    columns: Iterable[str] = ("group",),
) -> None:
    """Write a TSV with one row per SampleID and blank user columns to fill in."""
    cols = normalize_columns(columns)
    header = [SAMPLE_ID_COL, *cols]
    rows = [[sid, *[""] * len(cols)] for sid in sample_ids]

    output_file.parent.mkdir(parents=True, exist_ok=True)
    with output_file.open("w", encoding="utf-8", newline="") as fh:
        w = csv.writer(fh, delimiter="\t", lineterminator="\n")
        w.writerow(header)
        w.writerows(rows)
