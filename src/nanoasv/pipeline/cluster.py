# src/nanoasv/pipeline/cluster.py
"""
Clustering pipeline: vsearch OTUs at a fixed identity over the same filtered
reads, classified with the same DADA2 classifier, then the shared
container → filter → export path. Writes "otu" (taxonomic + depth filters)
and "otu_filtered" (plus the abundance filter).
"""
from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

import pandas as pd

from nanoasv.analysis.container import FEATURE_ID_COL, RANKS, AmpliconData, build_container
from nanoasv.analysis.export import export_container, read_fasta
from nanoasv.analysis.filtering import (
    filter_low_abundance_features,
    filter_low_depth_samples,
    taxonomic_filter,
)
from nanoasv.config.schema import Params
from nanoasv.metadata import SAMPLE_ID_COL
from nanoasv.pipeline.denoise import classify_cached, prepare_reads, sample_metadata, write_plots
from nanoasv.pipeline.layout import ProjectLayout
from nanoasv.tools import commands as tools
from nanoasv.utils.cache import StageCache
from nanoasv.utils.logger import get_logger

LOG = get_logger("cluster")


@dataclass
class ClusterResult:
    data: AmpliconData
    filtered: AmpliconData
    paths: Dict[str, Path] = field(default_factory=dict)


@dataclass(frozen=True)
class VsearchOutputs:
    reads: Path
    otus: Path
    table: Path


def read_otu_table(path: Path, sample_ids: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Read an OTU table (rows = OTU, columns = samples, e.g. vsearch --otutabout)
    into a samples x OTUs count matrix. Listed samples missing from the file
    get zero counts.
    """
    df = pd.read_csv(path, sep="\t", index_col=0)
    df.index = df.index.astype(str).str.split(";").str[0]
    df.columns = df.columns.astype(str)
    table = df.T.fillna(0).astype("int64")
    if sample_ids is not None:
        table = table.reindex(list(sample_ids), fill_value=0)
    table.index.name = SAMPLE_ID_COL
    table.columns.name = FEATURE_ID_COL
    return table


def read_taxonomy_table(path: Path) -> pd.DataFrame:
    """Taxonomy TSV (first column = feature ID, remaining = ranks); blanks become null."""
    df = pd.read_csv(path, sep="\t", index_col=0, dtype=str, keep_default_na=False)
    df.index = df.index.astype(str)
    df = df.replace({"": None, "NA": None})
    return df.reindex(columns=list(RANKS))


def run_vsearch(
    cfg: Params,
    files: Mapping[str, Path],
    work_dir: Path,
    *,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> VsearchOutputs:
    """Per-sample FASTA → pooled dereplication → clustering → chimera check → read mapping."""
    c = cfg.clustering
    work_dir.mkdir(parents=True, exist_ok=True)
    per_sample = work_dir / "samples"
    per_sample.mkdir(exist_ok=True)

    fastas = []
    for sid, fq in files.items():
        fa = per_sample / f"{sid}.fasta"
        tools.vsearch_fastq_to_fasta(
            input_fastq=fq, output_fasta=fa, sample_id=sid,
            dry_run=dry_run, show_stdout=show_stdout,
        )
        fastas.append(fa)

    pooled = work_dir / "reads.fasta"
    if dry_run:
        LOG.info("[dry-run] would concatenate %d FASTA file(s) → %s", len(fastas), pooled)
    else:
        with pooled.open("wb") as out:
            for fa in fastas:
                with fa.open("rb") as fh:
                    shutil.copyfileobj(fh, out)

    derep = work_dir / "derep.fasta"
    tools.vsearch_derep(
        input_fasta=pooled, output_fasta=derep, min_unique_size=c.min_unique_size,
        threads=cfg.threads, dry_run=dry_run, show_stdout=show_stdout,
    )
    centroids = work_dir / "centroids.fasta"
    tools.vsearch_cluster_size(
        input_fasta=derep, centroids=centroids, identity=c.identity,
        threads=cfg.threads, dry_run=dry_run, show_stdout=show_stdout,
    )
    otus = centroids
    if c.remove_chimeras:
        otus = work_dir / "otus.fasta"
        tools.vsearch_uchime_denovo(
            input_fasta=centroids, nonchimeras=otus,
            dry_run=dry_run, show_stdout=show_stdout,
        )
    table = work_dir / "otu_table.tsv"
    tools.vsearch_otutab(
        reads_fasta=pooled, otus_fasta=otus, output_tsv=table, identity=c.identity,
        threads=cfg.threads, dry_run=dry_run, show_stdout=show_stdout,
    )
    return VsearchOutputs(reads=pooled, otus=otus, table=table)


def assign_otu_taxonomy(cfg: Params, sequences: pd.Series, backend, cache: StageCache) -> pd.DataFrame:
    """
    Classify OTU centroids; returns taxonomy indexed by OTU ID.

    OTU labels are reassigned on every clustering run, so the checkpoint
    holds taxonomy by centroid sequence and is mapped to labels here.
    """
    by_seq = classify_cached(cfg, sequences.tolist(), backend, cache, "cluster_taxonomy")
    tax = by_seq.loc[sequences.tolist()].copy()
    tax.index = sequences.index
    return tax


def load_precomputed(cfg: Params) -> Tuple[pd.DataFrame, pd.DataFrame, Optional[pd.Series]]:
    """Table, taxonomy and (optional) sequences from clustering.otu_* files."""
    c = cfg.clustering
    if c.otu_taxonomy is None:
        raise ValueError("clustering.otu_taxonomy is required together with clustering.otu_table")
    table = read_otu_table(Path(c.otu_table))
    taxonomy = read_taxonomy_table(Path(c.otu_taxonomy))
    sequences = read_fasta(Path(c.otu_sequences)) if c.otu_sequences else None
    LOG.info("Loaded precomputed OTU table: %d samples x %d OTUs", *table.shape)
    return table, taxonomy, sequences


def cluster_table(
    cfg: Params,
    backend,
    cache: StageCache,
    fastq_dir: Optional[Path] = None,
    *,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> Optional[Tuple[pd.DataFrame, pd.DataFrame, Optional[pd.Series], pd.DataFrame]]:
    """
    (samples x OTU table, taxonomy, sequences, metadata), or None on a dry run.
    Declared exclusions are applied to precomputed tables as well.
    """
    if cfg.clustering.otu_table is not None:
        table, taxonomy, sequences = load_precomputed(cfg)
        excluded = [s for s in cfg.exclude_samples if s in table.index]
        if excluded:
            LOG.info("Excluding sample(s) from OTU table: %s", ", ".join(excluded))
            table = table.drop(index=excluded)
        return table, taxonomy, sequences, sample_metadata(cfg, list(table.index))

    _samples, metadata, _counts, files = prepare_reads(cfg, backend, cache, fastq_dir)
    out = run_vsearch(
        cfg, files, ProjectLayout.from_params(cfg).cluster / "vsearch",
        dry_run=dry_run, show_stdout=show_stdout,
    )
    if dry_run:
        return None
    table = read_otu_table(out.table, sample_ids=list(files))
    sequences = read_fasta(out.otus).reindex(table.columns)
    if sequences.isna().any():
        raise ValueError(f"OTU table and centroids disagree: {out.table} vs {out.otus}")
    taxonomy = assign_otu_taxonomy(cfg, sequences, backend, cache)
    return table, taxonomy, sequences, metadata


def run_cluster(
    cfg: Params,
    backend,
    cache: StageCache,
    fastq_dir: Optional[Path] = None,
    *,
    dry_run: bool = False,
    show_stdout: bool = False,
    make_plots: bool = True,
) -> Optional[ClusterResult]:
    layout = ProjectLayout.from_params(cfg)
    built = cluster_table(cfg, backend, cache, fastq_dir, dry_run=dry_run, show_stdout=show_stdout)
    if built is None:
        return None
    table, taxonomy, sequences, metadata = built

    data = build_container(table, taxonomy, metadata, sequences=sequences)
    pruned = taxonomic_filter(data, keep_na_kingdom=cfg.clustering.keep_na_kingdom)
    otu = filter_low_depth_samples(pruned, cfg.compare.min_sample_depth)
    paths = {f"otu.{k}": v for k, v in export_container(otu, layout.cluster, "otu").items()}

    otu_filtered = filter_low_abundance_features(otu, cfg.compare.min_feature_total)
    paths.update(
        {f"otu_filtered.{k}": v for k, v in export_container(otu_filtered, layout.cluster, "otu_filtered").items()}
    )
    if make_plots:
        paths.update(write_plots(layout.cluster, "otu", otu, rank=cfg.compare.taxa_rank))
    return ClusterResult(data=otu, filtered=otu_filtered, paths=paths)
