# src/nanoasv/analysis/plots.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

from nanoasv.metadata import SAMPLE_ID_COL  # noqa: E402
from nanoasv.utils.logger import get_logger  # noqa: E402

LOG = get_logger("plots")


def _save(fig, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    LOG.info("Plot written → %s", path)
    return path


def plot_diversity(diversity: pd.DataFrame, path: Path, *, color_by: Optional[str] = None) -> Path:
    """Box + strip plot of per-sample diversity for each pipeline."""
    index = str(diversity["index"].iloc[0]) if len(diversity) else "diversity"
    fig, ax = plt.subplots(figsize=(6, 4))
    sns.boxplot(data=diversity, x="pipeline", y="value", color="white", showfliers=False, ax=ax)
    hue = color_by if color_by and color_by in diversity.columns else None
    sns.stripplot(data=diversity, x="pipeline", y="value", hue=hue, dodge=False, size=5, ax=ax)
    ax.set(xlabel="", ylabel=index.capitalize())
    ax.tick_params(axis="x", rotation=20)
    if hue:
        ax.legend(title=hue, bbox_to_anchor=(1.02, 1), loc="upper left")
    return _save(fig, path)


def plot_ordination(ordination: pd.DataFrame, path: Path, *, color_by: Optional[str] = None) -> Optional[Path]:
    """Ordination scatter, one facet per pipeline."""
    if ordination.empty:
        LOG.warning("No ordination coordinates to plot")
        return None
    hue = color_by if color_by and color_by in ordination.columns else None
    grid = sns.relplot(
        data=ordination, x="axis1", y="axis2", hue=hue, col="pipeline",
        kind="scatter", facet_kws={"sharex": False, "sharey": False}, height=4,
    )
    for pipeline, sub in ordination.groupby("pipeline"):
        ax = grid.axes_dict[pipeline]
        ax.set_xlabel(f"Axis 1 ({sub['explained1'].iloc[0]:.1%})")
        ax.set_ylabel(f"Axis 2 ({sub['explained2'].iloc[0]:.1%})")
        ax.set_title(f"{pipeline}\n{sub['method'].iloc[0]}")
    return _save(grid.figure, path)


def plot_taxa_bars(composition: pd.DataFrame, rank: str, path: Path, *, top: int = 10) -> Path:
    """Stacked relative-abundance bars per sample at one rank; the rest is lumped as 'Other'."""
    wide = composition.pivot_table(index=SAMPLE_ID_COL, columns=rank, values="abundance", aggfunc="sum", fill_value=0)
    leaders = wide.sum(axis=0).sort_values(ascending=False).index[:top]
    other = wide.drop(columns=leaders).sum(axis=1)
    wide = wide[leaders]
    if (other > 0).any():
        wide = wide.assign(Other=other)
    fig, ax = plt.subplots(figsize=(max(6, 0.4 * len(wide)), 4))
    wide.plot(kind="bar", stacked=True, width=0.85, ax=ax, colormap="tab20")
    ax.set(xlabel="", ylabel="Relative abundance", ylim=(0, 1))
    ax.legend(title=rank, bbox_to_anchor=(1.02, 1), loc="upper left", fontsize="small")
    return _save(fig, path)


def plot_read_tracking(track: pd.DataFrame, path: Path) -> Path:
    """Reads per sample after each stage."""
    long = track.reset_index().melt(id_vars=SAMPLE_ID_COL, var_name="stage", value_name="reads")
    fig, ax = plt.subplots(figsize=(6, 4))
    sns.lineplot(data=long, x="stage", y="reads", hue=SAMPLE_ID_COL, marker="o", ax=ax,
                 legend="auto" if len(track) <= 20 else False)
    ax.set(xlabel="", ylabel="Reads")
    return _save(fig, path)


def plot_error_profile(err: pd.DataFrame, path: Path) -> Path:
    """Fitted error rate per quality score for each substitution type."""
    long = err.copy()
    long.index.name = "transition"
    long = long.reset_index().melt(id_vars="transition", var_name="quality", value_name="rate")
    long["quality"] = pd.to_numeric(long["quality"], errors="coerce")
    long = long[long["transition"].str[0] != long["transition"].str[-1]]
    grid = sns.relplot(data=long, x="quality", y="rate", col="transition", col_wrap=4, kind="line", height=2)
    grid.set(yscale="log")
    return _save(grid.figure, path)
