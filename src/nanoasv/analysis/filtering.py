# src/nanoasv/analysis/filtering.py
from __future__ import annotations

from typing import Iterable

import pandas as pd

from nanoasv.analysis.container import AmpliconData
from nanoasv.utils.logger import get_logger

LOG = get_logger("filtering")

DEFAULT_KINGDOMS = ("Bacteria", "Archaea")

# rank -> label of organelle-derived 16S to remove
ORGANELLES = {
    "Order": "Chloroplast",
    "Family": "Mitochondria",
}


def _log_drop(what: str, before: AmpliconData, after: AmpliconData) -> None:
    LOG.info(
        "%s: %d→%d features, %d→%d samples",
        what, before.shape[0], after.shape[0], before.shape[1], after.shape[1],
    )


def filter_kingdom(
    data: AmpliconData,
    keep: Iterable[str] = DEFAULT_KINGDOMS,
    *,
    keep_na: bool = True,
) -> AmpliconData:
    """
    Drop features whose Kingdom is not in ``keep``.
    A null Kingdom is retained when keep_na is True and dropped otherwise.
    """
    keep = tuple(keep)

    def _pred(tax: pd.DataFrame) -> pd.Series:
        kingdom = tax["Kingdom"]
        ok = kingdom.isin(keep)
        return ok | kingdom.isna() if keep_na else ok & kingdom.notna()

    out = data.prune_features(_pred)
    _log_drop(f"Kingdom filter (keep={','.join(keep)}, keep_na={keep_na})", data, out)
    return out


def filter_organelles(data: AmpliconData) -> AmpliconData:
    """Drop chloroplast (Order) and mitochondrial (Family) features; null ranks are retained."""

    def _pred(tax: pd.DataFrame) -> pd.Series:
        mask = pd.Series(True, index=tax.index)
        for rank, label in ORGANELLES.items():
            col = tax[rank]
            mask &= col.isna() | (col != label)
        return mask

    out = data.prune_features(_pred)
    _log_drop("Organelle filter", data, out)
    return out


def filter_low_depth_samples(data: AmpliconData, min_depth: int = 10_000) -> AmpliconData:
    """Keep samples whose total count is at least min_depth."""
    sums = data.sample_sums()
    out = data.subset_samples(sums >= min_depth)
    dropped = sorted(set(data.sample_ids) - set(out.sample_ids))
    if dropped:
        LOG.info("Samples below depth %d: %s", min_depth, ", ".join(map(str, dropped)))
    _log_drop(f"Depth filter (≥{min_depth})", data, out)
    return out


def filter_low_abundance_features(data: AmpliconData, min_total: int = 9) -> AmpliconData:
    """Keep features whose total count across samples is greater than min_total."""
    out = data.subset_features(data.feature_sums() > min_total)
    _log_drop(f"Abundance filter (>{min_total})", data, out)
    return out


def taxonomic_filter(data: AmpliconData, *, keep_na_kingdom: bool = True) -> AmpliconData:
    """Kingdom filter followed by organelle removal."""
    return filter_organelles(filter_kingdom(data, keep_na=keep_na_kingdom))
