# src/nanoasv/analysis/metrics.py
from __future__ import annotations

from typing import Dict, Mapping, Tuple

import pandas as pd
from skbio.diversity import alpha_diversity as _skbio_alpha
from skbio.diversity import beta_diversity as _skbio_beta
from skbio.stats.ordination import pcoa

from nanoasv.analysis.container import RANKS, AmpliconData
from nanoasv.metadata import SAMPLE_ID_COL
from nanoasv.utils.logger import get_logger

LOG = get_logger("metrics")

PIPELINE_DENOISE = "primary-denoise"
PIPELINE_CLUSTER = "clustering"
PIPELINE_CLUSTER_FILTERED = "clustering-abundance-filtered"

# PCoA needs at least this many samples to give two informative axes
MIN_ORDINATION_SAMPLES = 3

UNASSIGNED = "Unassigned"


def alpha_diversity(data: AmpliconData, metric: str = "shannon") -> pd.Series:
    """One diversity value per sample, computed on raw counts."""
    counts = data.counts.T
    values = _skbio_alpha(metric, counts.to_numpy(dtype="int64"), ids=list(counts.index))
    values.index.name = SAMPLE_ID_COL
    values.name = metric
    return values


def distance_matrix(data: AmpliconData, metric: str = "braycurtis"):
    """Pairwise sample dissimilarities over relative abundances (skbio DistanceMatrix)."""
    rel = data.relative_abundance().T
    return _skbio_beta(metric, rel.to_numpy(dtype=float), ids=list(rel.index), validate=False)


def ordinate(data: AmpliconData, metric: str = "braycurtis", dimensions: int = 2) -> pd.DataFrame:
    """
    PCoA of the sample dissimilarity matrix.

    Returns columns axis1..axisN (index = SampleID); the share of variance
    explained per axis is kept in ``attrs["explained"]``.
    """
    dm = distance_matrix(data, metric)
    res = pcoa(dm, "eigh", dimensions)
    coords = res.samples.iloc[:, :dimensions].copy()
    coords.columns = [f"axis{i}" for i in range(1, coords.shape[1] + 1)]
    coords.index.name = SAMPLE_ID_COL
    coords.attrs["explained"] = [float(x) for x in res.proportion_explained.iloc[:dimensions]]
    return coords


def _with_metadata(frame: pd.DataFrame, data: AmpliconData) -> pd.DataFrame:
    md = data.metadata.drop(columns=[c for c in data.metadata.columns if c in frame.columns])
    return frame.join(md, on=SAMPLE_ID_COL)


def compare_pipelines(
    datasets: Mapping[str, AmpliconData],
    *,
    diversity_index: str = "shannon",
    distance_metric: str = "braycurtis",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Diversity and ordination for every pipeline, reshaped long-form.

    diversity:  sample_id, pipeline, index, value, <metadata...>
    ordination: sample_id, pipeline, method, axis1, axis2, explained1, explained2, <metadata...>
    """
    div_parts = []
    ord_parts = []
    for name, data in datasets.items():
        if not data.shape[0] or not data.shape[1]:
            LOG.warning("Skipping %s: empty table (%d features x %d samples)", name, *data.shape)
            continue
        alpha = alpha_diversity(data, diversity_index)
        div = alpha.rename("value").reset_index()
        div.insert(1, "pipeline", name)
        div.insert(2, "index", diversity_index)
        div_parts.append(_with_metadata(div, data))

        if data.shape[1] < MIN_ORDINATION_SAMPLES:
            LOG.warning(
                "Skipping ordination for %s: %d sample(s) < %d",
                name, data.shape[1], MIN_ORDINATION_SAMPLES,
            )
            continue
        coords = ordinate(data, distance_metric, dimensions=2)
        explained = coords.attrs.get("explained", [float("nan")] * 2)
        ords = coords.reset_index()
        ords.insert(1, "pipeline", name)
        ords.insert(2, "method", f"PCoA ({distance_metric})")
        ords["explained1"], ords["explained2"] = explained[0], explained[1]
        ord_parts.append(_with_metadata(ords, data))
        LOG.info("%s: %s on %d samples", name, diversity_index, data.shape[1])

    diversity = pd.concat(div_parts, ignore_index=True) if div_parts else pd.DataFrame(
        columns=[SAMPLE_ID_COL, "pipeline", "index", "value"]
    )
    ordination = pd.concat(ord_parts, ignore_index=True) if ord_parts else pd.DataFrame(
        columns=[SAMPLE_ID_COL, "pipeline", "method", "axis1", "axis2", "explained1", "explained2"]
    )
    return diversity, ordination


def summarize_rank(data: AmpliconData, rank: str = "Phylum") -> pd.DataFrame:
    """Relative abundance per sample aggregated at a taxonomic rank (long-form)."""
    if rank not in RANKS:
        raise ValueError(f"Unknown rank {rank!r}; expected one of {', '.join(RANKS)}")
    labels = data.taxonomy[rank].fillna(UNASSIGNED).astype(str)
    agg = data.relative_abundance().groupby(labels).sum()
    agg.index.name = rank
    out = agg.reset_index().melt(id_vars=rank, var_name=SAMPLE_ID_COL, value_name="abundance")
    return out[[SAMPLE_ID_COL, rank, "abundance"]]


def summarize_datasets(datasets: Mapping[str, AmpliconData]) -> pd.DataFrame:
    rows: Dict[str, Dict[str, int]] = {}
    for name, data in datasets.items():
        rows[name] = {
            "features": int(data.shape[0]),
            "samples": int(data.shape[1]),
            "reads": int(data.counts.to_numpy().sum()),
        }
    out = pd.DataFrame.from_dict(rows, orient="index")
    out.index.name = "pipeline"
    return out
