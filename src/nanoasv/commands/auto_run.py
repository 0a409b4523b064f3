# src/nanoasv/commands/auto_run.py
from __future__ import annotations

from nanoasv.commands.common import (
    add_params_args,
    dada2_backend,
    params_from_args,
    print_paths,
    require,
    stage_cache,
)
from nanoasv.pipeline.cluster import run_cluster
from nanoasv.pipeline.compare import run_compare
from nanoasv.pipeline.denoise import run_denoise
from nanoasv.pipeline.trim import trim_samples
from nanoasv.utils.logger import get_logger
from nanoasv.utils.samples import import_samples

LOG = get_logger("auto")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "auto-run", parents=[parent],
        help="End-to-end: trim → denoise (ASVs) → cluster (OTUs) → compare.",
    )
    add_params_args(p)
    p.add_argument("--reference-db", type=str, default=None, help="DADA2-formatted reference FASTA.")
    p.add_argument("--skip-trim", action="store_true", help="Reads are already adapter/primer trimmed.")
    p.add_argument("--skip-cluster", action="store_true", help="Denoising pipeline only.")
    p.add_argument("--skip-compare", action="store_true")
    p.add_argument("--no-plots", dest="plots", action="store_false", help="Skip PNG output.")
    p.set_defaults(func=run, plots=True)


def run(args) -> None:
    params = params_from_args(args, {"taxonomy.reference_db": args.reference_db})
    dry_run = getattr(args, "dry_run", False)
    show = getattr(args, "show_tools", True)
    require(params.fastq_dir, "--fastq-dir")

    if not args.skip_trim:
        LOG.info("== trim ==")
        samples = import_samples(params.fastq_dir, pattern=params.fastq_pattern, id_regex=params.id_regex)
        samples = {sid: p for sid, p in samples.items() if sid not in set(params.exclude_samples)}
        trim_samples(params, samples, dry_run=dry_run, show_stdout=show)
    if dry_run:
        print("[skip] dry run: trimming commands logged; DADA2 stages are not simulated")
        return

    cache = stage_cache(params, args.redo)
    backend = dada2_backend()
    # trimmed reads take precedence over --fastq-dir once they exist
    fastq_dir = params.fastq_dir if args.skip_trim else None

    LOG.info("== denoise ==")
    denoised = run_denoise(params, backend, cache, fastq_dir, make_plots=args.plots)
    print(f"[ok] denoise: {denoised.data.shape[0]} ASVs x {denoised.data.shape[1]} samples "
          f"(chimera removal kept {denoised.chimera_ratio:.2%} of reads)")

    if params.clustering.enabled and not args.skip_cluster:
        LOG.info("== cluster ==")
        clustered = run_cluster(params, backend, cache, fastq_dir, show_stdout=show, make_plots=args.plots)
        print(f"[ok] cluster: {clustered.data.shape[0]} OTUs x {clustered.data.shape[1]} samples")

    if not args.skip_compare:
        LOG.info("== compare ==")
        result = run_compare(params, make_plots=args.plots)
        print_paths(result.paths)
    print("[ok] auto-run complete")
