# src/nanoasv/pipeline/denoise.py
"""
Primary pipeline: quality filter → error model → denoise → sequence table →
chimera removal → taxonomy → container → taxonomic/depth filters → export.

Stage functions take the Params object and a DADA2 backend (anything with the
methods of nanoasv.dada2.backend.Dada2Backend). The expensive ones are wrapped
in the StageCache by run_denoise.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

import pandas as pd

from nanoasv.analysis import plots
from nanoasv.analysis.container import AmpliconData, build_container
from nanoasv.analysis.export import export_container
from nanoasv.analysis.filtering import filter_low_depth_samples, taxonomic_filter
from nanoasv.analysis.metrics import summarize_rank
from nanoasv.analysis.table import build_sequence_table, label_features, remove_chimeras, track_reads
from nanoasv.config.schema import Params
from nanoasv.metadata import SAMPLE_ID_COL
from nanoasv.metadata.read import load_metadata
from nanoasv.metadata.validate import reconcile_samples
from nanoasv.pipeline.layout import ProjectLayout
from nanoasv.utils.cache import StageCache
from nanoasv.utils.logger import get_logger
from nanoasv.utils.samples import SampleError, discover_fastqs, import_samples

LOG = get_logger("denoise")

FILTERED_SUFFIX = ".fastq.gz"


@dataclass
class DenoiseResult:
    data: AmpliconData
    track: pd.DataFrame
    chimera_ratio: float
    paths: Dict[str, Path] = field(default_factory=dict)


def resolve_fastq_dir(
    cfg: Params, fastq_dir: Optional[Path] = None
) -> Tuple[Path, str, Optional[str]]:
    """
    Where to read per-sample FASTQs from, as (directory, glob pattern, ID regex).

    An explicit directory wins, then <project>/trimmed when `trim` has
    produced files there (named <sample_id>.fastq.gz, so no regex), then
    cfg.fastq_dir.
    """
    if fastq_dir is not None:
        return Path(fastq_dir), cfg.fastq_pattern, cfg.id_regex
    trimmed = ProjectLayout.from_params(cfg).trimmed
    if trimmed.is_dir() and discover_fastqs(trimmed, "*" + FILTERED_SUFFIX):
        return trimmed, "*" + FILTERED_SUFFIX, None
    if cfg.fastq_dir is None:
        raise SampleError("No FASTQ directory: set fastq_dir or run `nanoasv trim` first")
    return Path(cfg.fastq_dir), cfg.fastq_pattern, cfg.id_regex


def sample_metadata(cfg: Params, sample_ids: Sequence[str]) -> pd.DataFrame:
    """Metadata table from cfg.metadata_file, or an attribute-less table over sample_ids."""
    if cfg.metadata_file is not None:
        return load_metadata(Path(cfg.metadata_file), id_column=cfg.metadata_id_column)
    LOG.warning("No metadata_file configured; samples carry no attributes")
    return pd.DataFrame(index=pd.Index(list(sample_ids), name=SAMPLE_ID_COL))


def import_inputs(cfg: Params, fastq_dir: Optional[Path] = None) -> Tuple[Dict[str, Path], pd.DataFrame]:
    """Discover per-sample FASTQs and join them with metadata (exclusions applied)."""
    src, pattern, id_regex = resolve_fastq_dir(cfg, fastq_dir)
    found = import_samples(src, pattern=pattern, id_regex=id_regex)
    metadata = sample_metadata(cfg, list(found))
    samples, metadata = reconcile_samples(found, metadata, exclude=cfg.exclude_samples)
    if not samples:
        raise SampleError("Every sample was excluded; nothing to process")
    LOG.info("Imported %d sample(s) from %s", len(samples), src)
    return samples, metadata


def filtered_path(cfg: Params, sample_id: str) -> Path:
    return ProjectLayout.from_params(cfg).filtered / f"{sample_id}{FILTERED_SUFFIX}"


def filter_reads(cfg: Params, samples: Mapping[str, Path], backend) -> pd.DataFrame:
    """
    Length/quality filter every sample into <project>/filtered/<id>.fastq.gz.
    Returns reads_in/reads_out indexed by sample ID.
    """
    f = cfg.filter
    outputs = [filtered_path(cfg, sid) for sid in samples]
    ProjectLayout.from_params(cfg).filtered.mkdir(parents=True, exist_ok=True)
    counts = backend.filter_and_trim(
        list(samples.values()),
        outputs,
        trunc_len=f.trunc_len,
        min_len=f.min_len,
        max_len=f.max_len,
        max_ee=f.max_ee,
        trunc_q=f.trunc_q,
        max_n=f.max_n,
        threads=cfg.threads,
    )
    counts = counts.copy()
    counts.index = pd.Index(list(samples), name=SAMPLE_ID_COL)
    empty = counts.index[counts["reads_out"] == 0].tolist()
    if empty:
        LOG.warning("No reads passed the filter for: %s", ", ".join(empty))
    return counts


def passing_samples(cfg: Params, counts: pd.DataFrame) -> Dict[str, Path]:
    """
    Filtered files of samples with at least min_reads_per_sample reads.
    Samples with no filtered reads are always dropped (no file is written for them).
    """
    threshold = max(cfg.min_reads_per_sample, 1)
    keep = counts.index[counts["reads_out"] >= threshold]
    dropped = counts.index.difference(keep).tolist()
    if dropped:
        LOG.warning(
            "Dropping %d sample(s) below %d filtered read(s): %s",
            len(dropped), threshold, ", ".join(dropped),
        )
    if not len(keep):
        raise SampleError(f"No sample has at least {threshold} filtered read(s)")
    return {sid: filtered_path(cfg, sid) for sid in keep}


def prepare_reads(
    cfg: Params,
    backend,
    cache: StageCache,
    fastq_dir: Optional[Path] = None,
) -> Tuple[Dict[str, Path], pd.DataFrame, pd.DataFrame, Dict[str, Path]]:
    """Import and quality-filter; returns (samples, metadata, filter counts, filtered files)."""
    samples, metadata = import_inputs(cfg, fastq_dir)
    counts = cache.run("filter", filter_reads, cfg, samples, backend)
    if set(counts.index) != set(samples):
        stale = sorted(set(counts.index).symmetric_difference(samples))
        raise SampleError(
            f"Cached filter results do not match the selected samples (differ on: {', '.join(stale)}); "
            "rerun with `--redo filter,errors,denoise`"
        )
    return samples, metadata, counts, passing_samples(cfg, counts)


def learn_error_model(cfg: Params, files: Mapping[str, Path], backend) -> pd.DataFrame:
    d = cfg.denoise
    LOG.info("Learning error rates from %d sample(s) (nbases=%d)", len(files), d.nbases)
    return backend.learn_errors(
        list(files.values()),
        nbases=d.nbases,
        randomize=d.randomize,
        threads=cfg.threads,
    )


def denoise_samples(
    cfg: Params,
    files: Mapping[str, Path],
    err: pd.DataFrame,
    backend,
) -> Dict[str, Dict[str, int]]:
    d = cfg.denoise
    out: Dict[str, Dict[str, int]] = {}
    for sid, path in files.items():
        calls = backend.dada(
            path,
            err,
            band_size=d.band_size,
            homopolymer_gap_penalty=d.homopolymer_gap_penalty,
            threads=cfg.threads,
        )
        LOG.info("[%s] %d sequence variant(s), %d reads", sid, len(calls), sum(calls.values()))
        out[sid] = dict(calls)
    return out


def assign_taxonomy(cfg: Params, seqs: Sequence[str], backend) -> pd.DataFrame:
    t = cfg.taxonomy
    if t.reference_db is None:
        raise ValueError("taxonomy.reference_db is not set; a DADA2-formatted reference FASTA is required")
    ref = Path(t.reference_db)
    if not ref.exists():
        raise FileNotFoundError(ref)
    LOG.info("Assigning taxonomy to %d sequence(s) against %s", len(seqs), ref)
    return backend.assign_taxonomy(
        list(seqs),
        ref,
        species_fasta=Path(t.species_db) if t.species_db else None,
        min_boot=t.min_boot,
        threads=cfg.threads,
    )


def classify_cached(
    cfg: Params,
    seqs: Sequence[str],
    backend,
    cache: StageCache,
    name: str = "taxonomy",
) -> pd.DataFrame:
    """
    Taxonomy for seqs, indexed by sequence and in their order. The checkpoint
    is keyed by sequence: sequences it has not seen are classified and added.
    """
    seqs = list(dict.fromkeys(seqs))
    by_seq = cache.run(name, assign_taxonomy, cfg, seqs, backend)
    missing = [s for s in seqs if s not in by_seq.index]
    if missing:
        LOG.info("%d sequence(s) not in cached %s; classifying them", len(missing), name)
        by_seq = pd.concat([by_seq, assign_taxonomy(cfg, missing, backend)])
        cache.save(name, by_seq)
    return by_seq.loc[seqs]


def write_plots(
    out_dir: Path,
    prefix: str,
    data: AmpliconData,
    *,
    rank: str,
    track: Optional[pd.DataFrame] = None,
    err: Optional[pd.DataFrame] = None,
) -> Dict[str, Path]:
    out: Dict[str, Path] = {}
    if err is not None and not err.empty:
        out["error_profile"] = plots.plot_error_profile(err, out_dir / f"{prefix}_error_profile.png")
    if track is not None and not track.empty:
        out["read_tracking_plot"] = plots.plot_read_tracking(track, out_dir / f"{prefix}_read_tracking.png")
    if data.shape[0] and data.shape[1]:
        composition = summarize_rank(data, rank)
        out["taxa_bars"] = plots.plot_taxa_bars(composition, rank, out_dir / f"{prefix}_{rank.lower()}_bars.png")
    return out


def run_denoise(
    cfg: Params,
    backend,
    cache: StageCache,
    fastq_dir: Optional[Path] = None,
    *,
    make_plots: bool = True,
) -> DenoiseResult:
    layout = ProjectLayout.from_params(cfg)
    _samples, metadata, counts, files = prepare_reads(cfg, backend, cache, fastq_dir)

    err = cache.run("errors", learn_error_model, cfg, files, backend)
    denoised = cache.run("denoise", denoise_samples, cfg, files, err, backend)

    seqtab = build_sequence_table(denoised)
    nochim, ratio = remove_chimeras(
        seqtab, backend, method=cfg.denoise.chimera_method, threads=cfg.threads
    )
    track = track_reads(counts, seqtab, nochim)

    taxa = classify_cached(cfg, list(nochim.columns), backend, cache)
    labels = label_features(list(nochim.columns), prefix="ASV")
    data = build_container(nochim, taxa, metadata, labels=labels)

    pruned = taxonomic_filter(data, keep_na_kingdom=cfg.keep_na_kingdom)
    final = filter_low_depth_samples(pruned, cfg.compare.min_sample_depth)

    paths = export_container(final, layout.denoise, "asv", read_tracking=track)
    if make_plots:
        paths.update(write_plots(layout.denoise, "asv", final, rank=cfg.compare.taxa_rank, track=track, err=err))
    return DenoiseResult(data=final, track=track, chimera_ratio=ratio, paths=paths)
