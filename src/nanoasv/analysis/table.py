# src/nanoasv/analysis/table.py
from __future__ import annotations

from typing import Mapping, Optional, Sequence, Tuple

import pandas as pd

from nanoasv.metadata import SAMPLE_ID_COL
from nanoasv.utils.logger import get_logger

LOG = get_logger("table")


def build_sequence_table(denoised: Mapping[str, Mapping[str, int]]) -> pd.DataFrame:
    """
    Samples x sequences count matrix from per-sample {sequence: abundance} calls.

    Sequences absent from a sample are zero. Columns are ordered by decreasing
    total abundance, ties broken by sequence, so labels are reproducible.
    """
    table = pd.DataFrame.from_dict(
        {sid: dict(calls) for sid, calls in denoised.items()}, orient="index"
    )
    table = table.reindex(list(denoised)).fillna(0).astype("int64")
    table.index = table.index.astype(str)
    table.index.name = SAMPLE_ID_COL
    if table.shape[1]:
        totals = table.sum(axis=0)
        order = sorted(table.columns, key=lambda s: (-int(totals[s]), s))
        table = table[order]
    LOG.info("Sequence table: %d samples x %d sequences", *table.shape)
    return table


def retained_fraction(before: pd.DataFrame, after: pd.DataFrame) -> float:
    """Share of reads kept by a filtering step, in (0, 1]."""
    total = int(before.to_numpy().sum())
    kept = int(after.to_numpy().sum())
    if total <= 0:
        raise ValueError("Cannot compute retained fraction of an empty table")
    if kept <= 0:
        raise ValueError("Every read was removed; nothing left to analyse")
    if kept > total:
        raise ValueError(f"Filtered table has more reads ({kept}) than its input ({total})")
    return kept / total


def remove_chimeras(
    seqtab: pd.DataFrame,
    backend,
    *,
    method: str = "consensus",
    threads: int = 0,
) -> Tuple[pd.DataFrame, float]:
    """
    Drop chimeric sequences (detected by the backend) and report the share of reads kept.
    """
    kept = set(backend.remove_bimera_denovo(seqtab, method=method, threads=threads))
    nochim = seqtab.loc[:, [s for s in seqtab.columns if s in kept]]
    ratio = retained_fraction(seqtab, nochim)
    LOG.info(
        "Chimera removal: %d/%d sequences kept, %.2f%% of reads retained",
        nochim.shape[1], seqtab.shape[1], 100 * ratio,
    )
    return nochim, ratio


def label_features(sequences: Sequence[str], prefix: str = "ASV") -> pd.Series:
    """Map each sequence to <prefix><n>, 1-based, in the given order."""
    return pd.Series(
        [f"{prefix}{i}" for i in range(1, len(sequences) + 1)],
        index=list(sequences),
        dtype=object,
    )


def track_reads(
    filtered: pd.DataFrame,
    denoised: Optional[pd.DataFrame] = None,
    nonchim: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Per-sample read counts through the pipeline.

    filtered: output of the quality filter (reads_in, reads_out; index = SampleID)
    denoised/nonchim: samples x sequences tables before/after chimera removal
    """
    track = pd.DataFrame(
        {"input": filtered["reads_in"], "filtered": filtered["reads_out"]}
    )
    if denoised is not None:
        track["denoised"] = denoised.sum(axis=1).reindex(track.index, fill_value=0)
    if nonchim is not None:
        track["nonchim"] = nonchim.sum(axis=1).reindex(track.index, fill_value=0)
    track.index.name = SAMPLE_ID_COL
    return track.astype("int64")
