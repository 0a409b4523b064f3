# src/nanoasv/commands/metadata_validate.py
from __future__ import annotations

import sys
from pathlib import Path

from nanoasv.metadata.validate import MetadataError, validate_metadata_file
from nanoasv.utils.logger import get_logger
from nanoasv.utils.samples import SampleError, import_samples

LOG = get_logger("metadata.validate")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "metadata-validate", parents=[parent],
        help="Validate a metadata TSV (IDs, duplicates) and optionally cross-check it against FASTQ files.",
    )
    p.add_argument("--metadata-file", type=Path, required=True, help="Path to metadata.tsv")
    p.add_argument("--fastq-dir", type=Path, default=None, help="Optional FASTQ directory to cross-check sample IDs.")
    p.add_argument("--pattern", type=str, default="*.fastq.gz")
    p.add_argument("--id-regex", type=str, default=None)
    p.add_argument("--id-column", type=str, default=None, help="Sample ID column (default: first column).")
    p.set_defaults(func=run)


def run(args) -> None:
    against_ids = None
    try:
        if args.fastq_dir:
            against_ids = list(import_samples(args.fastq_dir, pattern=args.pattern, id_regex=args.id_regex))
        warnings = validate_metadata_file(
            args.metadata_file,
            against_sample_ids=against_ids,
            id_column=args.id_column,
        )
    except (MetadataError, SampleError) as e:
        LOG.error("Metadata validation failed: %s", e)
        print(f"[fail] {e}", file=sys.stderr)
        sys.exit(1)

    for w in warnings:
        LOG.warning(w)
        print(f"[warn] {w}")
    print("[ok] metadata validated")
