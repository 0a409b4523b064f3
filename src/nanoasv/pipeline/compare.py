# src/nanoasv/pipeline/compare.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import pandas as pd

from nanoasv.analysis import plots
from nanoasv.analysis.container import AmpliconData
from nanoasv.analysis.export import load_container
from nanoasv.analysis.filtering import filter_low_depth_samples
from nanoasv.analysis.metrics import (
    PIPELINE_CLUSTER,
    PIPELINE_CLUSTER_FILTERED,
    PIPELINE_DENOISE,
    compare_pipelines,
    summarize_datasets,
)
from nanoasv.config.schema import Params
from nanoasv.pipeline.layout import ProjectLayout
from nanoasv.utils.logger import get_logger

LOG = get_logger("compare")


@dataclass
class CompareResult:
    diversity: pd.DataFrame
    ordination: pd.DataFrame
    summary: pd.DataFrame
    paths: Dict[str, Path] = field(default_factory=dict)


def exported_containers(cfg: Params) -> Dict[str, Path]:
    """Pipeline tag -> exported container path, for every export present on disk."""
    layout = ProjectLayout.from_params(cfg)
    candidates = {
        PIPELINE_DENOISE: layout.denoise / "asv.pkl",
        PIPELINE_CLUSTER: layout.cluster / "otu.pkl",
        PIPELINE_CLUSTER_FILTERED: layout.cluster / "otu_filtered.pkl",
    }
    found = {}
    for tag, path in candidates.items():
        if path.is_file():
            found[tag] = path
        else:
            LOG.warning("No %s export at %s; skipping", tag, path)
    if not found:
        raise FileNotFoundError(f"No exported containers under {layout.root}; run denoise/cluster first")
    return found


def load_datasets(cfg: Params) -> Dict[str, AmpliconData]:
    """Load every export and (re)apply the depth filter so all pipelines share the same cut."""
    datasets: Dict[str, AmpliconData] = {}
    for tag, path in exported_containers(cfg).items():
        data = load_container(path)
        datasets[tag] = filter_low_depth_samples(data, cfg.compare.min_sample_depth)
    return datasets


def run_compare(cfg: Params, *, make_plots: bool = True) -> CompareResult:
    c = cfg.compare
    out_dir = ProjectLayout.from_params(cfg).compare
    out_dir.mkdir(parents=True, exist_ok=True)

    datasets = load_datasets(cfg)
    diversity, ordination = compare_pipelines(
        datasets, diversity_index=c.diversity_index, distance_metric=c.distance_metric
    )
    summary = summarize_datasets(datasets)

    paths = {
        "diversity": out_dir / "diversity_long.tsv",
        "ordination": out_dir / "ordination_long.tsv",
        "summary": out_dir / "summary.tsv",
    }
    diversity.to_csv(paths["diversity"], sep="\t", index=False)
    ordination.to_csv(paths["ordination"], sep="\t", index=False)
    summary.to_csv(paths["summary"], sep="\t")
    LOG.info("Comparison tables → %s", out_dir)

    if make_plots:
        if not diversity.empty:
            paths["diversity_plot"] = plots.plot_diversity(diversity, out_dir / "diversity.png", color_by=c.color_by)
        ord_plot = plots.plot_ordination(ordination, out_dir / "ordination.png", color_by=c.color_by)
        if ord_plot is not None:
            paths["ordination_plot"] = ord_plot
    return CompareResult(diversity=diversity, ordination=ordination, summary=summary, paths=paths)
