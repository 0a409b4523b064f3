# src/nanoasv/commands/init.py
from __future__ import annotations

import sys
from pathlib import Path

from nanoasv.commands.common import split_csv
from nanoasv.config.load import write_params_file
from nanoasv.config.schema import Params
from nanoasv.metadata.template import write_metadata_template
from nanoasv.utils.logger import get_logger
from nanoasv.utils.samples import import_samples

LOG = get_logger("init")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "init", parents=[parent],
        help="Scan FASTQs, write a metadata template and a params.yaml to edit.",
    )
    p.add_argument("--fastq-dir", type=Path, required=True)
    p.add_argument("--project-dir", type=Path, default=None,
                   help="Project directory (default: <fastq-dir parent>/<fastq-dir name>-nanoasv).")
    p.add_argument("--metadata-file", type=Path, default=None,
                   help="Metadata template path (default: <project-dir>/metadata.tsv).")
    p.add_argument("--params-file", type=Path, default=None,
                   help="Params path (default: <project-dir>/params.yaml).")
    p.add_argument("--columns", type=str, default="group", help="Comma-separated metadata columns to add.")
    p.add_argument("--pattern", type=str, default="*.fastq.gz", help="FASTQ glob.")
    p.add_argument("--id-regex", type=str, default=None)
    p.add_argument("--reference-db", type=Path, default=None)
    p.add_argument("--force", action="store_true")
    p.set_defaults(func=run)


def derive_default_project_dir(fastq_dir: Path) -> Path:
    fd = fastq_dir.resolve()
    return fd.parent / f"{fd.name}-nanoasv"


def run(args) -> None:
    project_dir: Path = args.project_dir or derive_default_project_dir(args.fastq_dir)
    meta_out: Path = args.metadata_file or (project_dir / "metadata.tsv")
    params_out: Path = args.params_file or (project_dir / "params.yaml")

    for target in (meta_out, params_out):
        if target.exists() and not args.force:
            LOG.error("Refusing to overwrite: %s (use --force)", target)
            print(f"error: {target} exists (use --force)", file=sys.stderr)
            sys.exit(1)

    samples = import_samples(args.fastq_dir, pattern=args.pattern, id_regex=args.id_regex)
    write_metadata_template(list(samples), meta_out, split_csv(args.columns))
    print(f"[ok] metadata ({len(samples)} samples) → {meta_out}")

    params = Params(
        fastq_dir=args.fastq_dir,
        project_dir=project_dir,
        metadata_file=meta_out,
        fastq_pattern=args.pattern,
        id_regex=args.id_regex,
    )
    if args.reference_db is not None:
        params.taxonomy.reference_db = args.reference_db
    write_params_file(params_out, params)
    print(f"[ok] params → {params_out}")
    print(f"[next] fill in {meta_out.name}, set taxonomy.reference_db, then: nanoasv auto-run --params {params_out}")
