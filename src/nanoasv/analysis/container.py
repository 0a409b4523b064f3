# src/nanoasv/analysis/container.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import pandas as pd

from nanoasv.metadata import SAMPLE_ID_COL

RANKS = ("Kingdom", "Phylum", "Class", "Order", "Family", "Genus", "Species")
FEATURE_ID_COL = "feature_id"


class ContainerError(Exception):
    pass


@dataclass(frozen=True, eq=False)
class AmpliconData:
    """
    Counts, taxonomy, sample metadata and representative sequences of one pipeline.

    counts:     features x samples (non-negative integers)
    taxonomy:   features x RANKS (null where unassigned)
    metadata:   samples x attributes
    sequences:  feature -> nucleotide sequence (may be empty when unknown)

    The feature axis of counts/taxonomy/sequences and the sample axis of
    counts/metadata must be identical (same labels, same order). Every
    subsetting method returns a new container that keeps this true.
    """

    counts: pd.DataFrame
    taxonomy: pd.DataFrame
    metadata: pd.DataFrame
    sequences: pd.Series = field(default_factory=lambda: pd.Series(dtype=object))

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        feats = self.counts.index
        if not feats.is_unique:
            raise ContainerError("Duplicate feature IDs in count matrix")
        if not self.counts.columns.is_unique:
            raise ContainerError("Duplicate sample IDs in count matrix")
        if not self.taxonomy.index.equals(feats):
            raise ContainerError(
                f"Taxonomy rows ({len(self.taxonomy)}) do not match count rows ({len(feats)})"
            )
        if len(self.sequences) and not self.sequences.index.equals(feats):
            raise ContainerError("Sequence IDs do not match count rows")
        if not self.metadata.index.equals(self.counts.columns):
            raise ContainerError(
                f"Metadata rows ({len(self.metadata)}) do not match count columns ({self.counts.shape[1]})"
            )
        if (self.counts.to_numpy() < 0).any():
            raise ContainerError("Negative counts")

    # -- shape ---------------------------------------------------------------

    @property
    def feature_ids(self) -> pd.Index:
        return self.counts.index

    @property
    def sample_ids(self) -> pd.Index:
        return self.counts.columns

    @property
    def shape(self) -> tuple[int, int]:
        return self.counts.shape

    def sample_sums(self) -> pd.Series:
        return self.counts.sum(axis=0)

    def feature_sums(self) -> pd.Series:
        return self.counts.sum(axis=1)

    def relative_abundance(self) -> pd.DataFrame:
        """Per-sample proportions; all-zero samples stay zero."""
        totals = self.sample_sums().replace(0, 1)
        return self.counts.div(totals, axis=1)

    # -- subsetting ----------------------------------------------------------

    def subset_features(self, keep: Iterable) -> "AmpliconData":
        ids = self._as_index(keep, self.feature_ids)
        return AmpliconData(
            counts=self.counts.loc[ids],
            taxonomy=self.taxonomy.loc[ids],
            metadata=self.metadata,
            sequences=self.sequences.loc[ids] if len(self.sequences) else self.sequences,
        )

    def subset_samples(self, keep: Iterable) -> "AmpliconData":
        ids = self._as_index(keep, self.sample_ids)
        return AmpliconData(
            counts=self.counts.loc[:, ids],
            taxonomy=self.taxonomy,
            metadata=self.metadata.loc[ids],
            sequences=self.sequences,
        )

    def prune_features(self, predicate: Callable[[pd.DataFrame], pd.Series]) -> "AmpliconData":
        """Keep features where predicate(taxonomy) is True."""
        mask = predicate(self.taxonomy).reindex(self.feature_ids, fill_value=False).astype(bool)
        return self.subset_features(mask)

    @staticmethod
    def _as_index(keep: Iterable, axis: pd.Index) -> pd.Index:
        if isinstance(keep, pd.Series) and keep.dtype == bool:
            return axis[keep.reindex(axis, fill_value=False).to_numpy(dtype=bool)]
        wanted = set(keep)
        unknown = wanted - set(axis)
        if unknown:
            raise ContainerError(f"Unknown IDs: {sorted(map(str, unknown))[:5]}")
        # preserve container order, not caller order
        return axis[axis.isin(wanted)]


def build_container(
    seqtab: pd.DataFrame,
    taxonomy: pd.DataFrame,
    metadata: pd.DataFrame,
    *,
    labels: Optional[pd.Series] = None,
    sequences: Optional[pd.Series] = None,
) -> AmpliconData:
    """
    Merge a samples x features table, a taxonomy table indexed like the
    table columns, and sample metadata into one container.

    ``labels`` maps column (a sequence) -> feature ID (e.g. ASV1); the columns
    then become the representative sequences. Without labels the columns are
    used as IDs directly and ``sequences`` (ID -> sequence) is optional.
    Samples missing from metadata raise ContainerError; extra metadata rows
    are dropped.
    """
    counts = seqtab.T.copy()
    if labels is not None:
        ids = [labels[s] for s in counts.index]
        seqs = pd.Series(list(counts.index), index=ids, dtype=object)
        counts.index = ids
    elif sequences is not None:
        missing = [f for f in counts.index if f not in sequences.index]
        if missing:
            raise ContainerError(f"{len(missing)} feature(s) have no sequence: {missing[:5]}")
        seqs = sequences.loc[list(counts.index)].astype(object)
    else:
        seqs = pd.Series(dtype=object)
    counts.index.name = FEATURE_ID_COL
    counts.columns = counts.columns.astype(str)
    counts.columns.name = SAMPLE_ID_COL

    missing_tax = [s for s in seqtab.columns if s not in taxonomy.index]
    if missing_tax:
        raise ContainerError(f"{len(missing_tax)} sequence(s) have no taxonomy row")
    tax = taxonomy.loc[list(seqtab.columns)].reindex(columns=list(RANKS))
    tax.index = counts.index

    missing_md = [s for s in counts.columns if s not in metadata.index]
    if missing_md:
        raise ContainerError(f"Samples missing from metadata: {missing_md[:5]}")
    md = metadata.loc[list(counts.columns)].copy()
    md.index.name = SAMPLE_ID_COL

    return AmpliconData(counts=counts.astype("int64"), taxonomy=tax, metadata=md, sequences=seqs)
