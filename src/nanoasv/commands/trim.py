# src/nanoasv/commands/trim.py
from __future__ import annotations

from nanoasv.commands.common import add_params_args, params_from_args, require
from nanoasv.pipeline.layout import ProjectLayout
from nanoasv.pipeline.trim import trim_samples
from nanoasv.utils.logger import get_logger
from nanoasv.utils.samples import import_samples

LOG = get_logger("trim")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "trim", parents=[parent],
        help="Remove adapters (porechop) and full-length 16S primers (cutadapt) from every sample.",
        description=(
            "Runs porechop then cutadapt with a linked FWD...RC(REV) adapter on each FASTQ under "
            "--fastq-dir. Outputs go to <project-dir>/trimmed/<sample_id>.fastq.gz and are picked "
            "up automatically by `denoise` and `cluster`."
        ),
    )
    add_params_args(p)
    p.add_argument("--forward-primer", type=str, default=None, help="Forward primer (IUPAC; default 27F).")
    p.add_argument("--reverse-primer", type=str, default=None, help="Reverse primer (IUPAC; default 1492R).")
    p.add_argument("--error-rate", type=float, default=None, help="cutadapt -e (default 0.2).")
    p.add_argument("--min-overlap", type=int, default=None, help="cutadapt -O (default 15).")
    p.add_argument("--anchored", dest="anchored", action="store_true", default=None,
                   help="Require primers at the read ends (^FWD...RC(REV)$).")
    p.add_argument("--skip-porechop", action="store_true", help="Primer trimming only.")
    p.set_defaults(func=run)


def run(args) -> None:
    extra = {
        "trim.forward_primer": args.forward_primer,
        "trim.reverse_primer": args.reverse_primer,
        "trim.error_rate": args.error_rate,
        "trim.min_overlap": args.min_overlap,
        "trim.anchored": args.anchored,
        "trim.adapter_tool": "none" if args.skip_porechop else None,
    }
    params = params_from_args(args, extra)
    require(params.fastq_dir, "--fastq-dir")

    samples = import_samples(params.fastq_dir, pattern=params.fastq_pattern, id_regex=params.id_regex)
    samples = {sid: p for sid, p in samples.items() if sid not in set(params.exclude_samples)}
    trimmed = trim_samples(
        params, samples,
        dry_run=getattr(args, "dry_run", False),
        show_stdout=getattr(args, "show_tools", True),
    )
    print(f"[ok] trimmed {len(trimmed)} sample(s) → {ProjectLayout.from_params(params).trimmed}")
