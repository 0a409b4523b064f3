# src/nanoasv/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from nanoasv import __version__
from nanoasv.analysis.container import ContainerError
from nanoasv.metadata.validate import MetadataError
from nanoasv.utils.logger import setup_logger
from nanoasv.utils.samples import SampleError

from nanoasv.commands import init as cmd_init
from nanoasv.commands import doctor as cmd_doctor
from nanoasv.commands import metadata_validate as cmd_mdval
from nanoasv.commands import trim as cmd_trim
from nanoasv.commands import denoise as cmd_denoise
from nanoasv.commands import cluster as cmd_cluster
from nanoasv.commands import compare as cmd_compare
from nanoasv.commands import auto_run as cmd_auto


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nanoasv",
        description="Nanopore full-length 16S pipeline CLI (init, doctor, trim, denoise, cluster, compare, auto-run).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG messages on the console too.")
    parser.add_argument("--log-file", type=Path, default=Path("nanoasv.log"),
                        help="Debug log (default: ./nanoasv.log).")

    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--dry-run", action="store_true", help="Log external commands without executing them.")
    parent.add_argument("--show-tools", dest="show_tools", action="store_true",
                        help="Stream porechop/cutadapt/vsearch output live to console (default).")
    parent.add_argument("--no-show-tools", dest="show_tools", action="store_false",
                        help="Capture tool output (printed on error).")
    parent.set_defaults(show_tools=True)

    subparsers = parser.add_subparsers(dest="command", required=True)

    cmd_init.setup_parser(subparsers, parent)
    cmd_doctor.setup_parser(subparsers, parent)
    cmd_mdval.setup_parser(subparsers, parent)
    cmd_trim.setup_parser(subparsers, parent)
    cmd_denoise.setup_parser(subparsers, parent)
    cmd_cluster.setup_parser(subparsers, parent)
    cmd_compare.setup_parser(subparsers, parent)
    cmd_auto.setup_parser(subparsers, parent)
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    logger = setup_logger(args.log_file, verbose=args.verbose)
    logger.debug("Parsed args: %r", args)
    try:
        args.func(args)
    except (MetadataError, SampleError, ContainerError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
