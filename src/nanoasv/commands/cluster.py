# src/nanoasv/commands/cluster.py
from __future__ import annotations

from nanoasv.commands.common import (
    add_params_args,
    dada2_backend,
    params_from_args,
    print_paths,
    stage_cache,
)
from nanoasv.pipeline.cluster import run_cluster
from nanoasv.utils.logger import get_logger

LOG = get_logger("cluster")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "cluster", parents=[parent],
        help="vsearch OTU clustering of the filtered reads (or load a precomputed OTU table).",
        description=(
            "Clusters the quality-filtered reads with vsearch at a fixed identity, classifies the "
            "centroids with DADA2 and writes <project-dir>/cluster/otu* and otu_filtered*."
        ),
    )
    add_params_args(p)
    p.add_argument("--identity", type=float, default=None, help="Clustering identity (default 0.97).")
    p.add_argument("--reference-db", type=str, default=None, help="DADA2-formatted reference FASTA.")
    p.add_argument("--otu-table", type=str, default=None,
                   help="Precomputed OTU table TSV (rows = OTU); skips vsearch and DADA2.")
    p.add_argument("--otu-taxonomy", type=str, default=None, help="Taxonomy TSV for --otu-table.")
    p.add_argument("--otu-sequences", type=str, default=None, help="Optional centroid FASTA for --otu-table.")
    p.add_argument("--no-plots", dest="plots", action="store_false", help="Skip PNG output.")
    p.set_defaults(func=run, plots=True)


def run(args) -> None:
    params = params_from_args(args, {
        "clustering.identity": args.identity,
        "taxonomy.reference_db": args.reference_db,
        "clustering.otu_table": args.otu_table,
        "clustering.otu_taxonomy": args.otu_taxonomy,
        "clustering.otu_sequences": args.otu_sequences,
    })
    cache = stage_cache(params, args.redo)
    # a precomputed table needs neither R nor vsearch
    backend = None if params.clustering.otu_table is not None else dada2_backend()
    result = run_cluster(
        params, backend, cache,
        dry_run=getattr(args, "dry_run", False),
        show_stdout=getattr(args, "show_tools", True),
        make_plots=args.plots,
    )
    if result is None:
        print("[skip] dry run: vsearch commands logged, nothing exported")
        return
    print(f"[ok] {result.data.shape[0]} OTUs x {result.data.shape[1]} samples "
          f"({result.filtered.shape[0]} after abundance filter)")
    print_paths(result.paths, ("otu.container", "otu.abundance", "otu_filtered.container", "otu_filtered.abundance"))
