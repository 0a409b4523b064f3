# src/nanoasv/commands/compare.py
from __future__ import annotations

from nanoasv.commands.common import add_params_args, params_from_args, print_paths
from nanoasv.config.schema import ALPHA_METRICS, BETA_METRICS
from nanoasv.pipeline.compare import run_compare
from nanoasv.utils.logger import get_logger

LOG = get_logger("compare")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "compare", parents=[parent],
        help="Diversity and ordination of the denoising vs clustering exports.",
        description=(
            "Loads <project-dir>/denoise/asv.pkl and <project-dir>/cluster/otu*.pkl, applies the "
            "depth filter and writes long-form diversity/ordination tables and plots to "
            "<project-dir>/compare/."
        ),
    )
    add_params_args(p)
    p.add_argument("--diversity-index", choices=ALPHA_METRICS, default=None)
    p.add_argument("--distance-metric", choices=BETA_METRICS, default=None)
    p.add_argument("--color-by", type=str, default=None, help="Metadata column used to colour points.")
    p.add_argument("--min-sample-depth", type=int, default=None, help="Depth filter threshold (default 10000).")
    p.add_argument("--no-plots", dest="plots", action="store_false", help="Skip PNG output.")
    p.set_defaults(func=run, plots=True)


def run(args) -> None:
    params = params_from_args(args, {
        "compare.diversity_index": args.diversity_index,
        "compare.distance_metric": args.distance_metric,
        "compare.color_by": args.color_by,
        "compare.min_sample_depth": args.min_sample_depth,
    })
    result = run_compare(params, make_plots=args.plots)
    for pipeline, row in result.summary.iterrows():
        print(f"[ok] {pipeline}: {row['features']} features x {row['samples']} samples ({row['reads']} reads)")
    print_paths(result.paths)
