# src/nanoasv/commands/common.py
from __future__ import annotations

import sys
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, Iterable, NoReturn, Optional

from nanoasv.config.load import apply_overrides, load_params_file
from nanoasv.config.schema import Params
from nanoasv.pipeline.layout import ProjectLayout
from nanoasv.utils.cache import StageCache
from nanoasv.utils.logger import get_logger

LOG = get_logger("cli")

STAGES = ("filter", "errors", "denoise", "taxonomy", "cluster_taxonomy")


# -------- Shared arguments ---------------------------------------------------

def add_params_args(p) -> None:
    """Arguments common to every pipeline command. Flags override the params file only when given."""
    p.add_argument("--params", type=Path, default=None, help="YAML/JSON params file (see `nanoasv init`).")
    p.add_argument("--fastq-dir", type=Path, default=None, help="Directory of per-sample FASTQ files.")
    p.add_argument("--project-dir", type=Path, default=None, help="Project output directory.")
    p.add_argument("--metadata-file", type=Path, default=None, help="Sample metadata TSV.")
    p.add_argument("--threads", type=int, default=None, help="Threads for external tools and DADA2 (0 = auto).")
    p.add_argument("--exclude", type=str, default=None,
                   help="Comma-separated sample IDs to drop (added to params exclude_samples).")
    p.add_argument("--no-cache", dest="cache", action="store_false", default=None,
                   help="Recompute every stage and overwrite checkpoints.")
    p.add_argument("--redo", type=str, default=None,
                   help=f"Comma-separated checkpoints to delete before running ({', '.join(STAGES)}).")


def split_csv(s: Optional[str]) -> list[str]:
    return [x.strip() for x in (s or "").split(",") if x.strip()]


def params_from_args(args: Namespace, extra: Optional[Dict[str, Any]] = None) -> Params:
    params = load_params_file(getattr(args, "params", None))
    overrides: Dict[str, Any] = {
        "fastq_dir": getattr(args, "fastq_dir", None),
        "project_dir": getattr(args, "project_dir", None),
        "metadata_file": getattr(args, "metadata_file", None),
        "threads": getattr(args, "threads", None),
        "cache": getattr(args, "cache", None),
    }
    excluded = split_csv(getattr(args, "exclude", None))
    if excluded:
        overrides["exclude_samples"] = list(dict.fromkeys([*params.exclude_samples, *excluded]))
    overrides.update(extra or {})
    params = apply_overrides(params, overrides)
    LOG.debug("Effective params: %s", params.model_dump(mode="json"))
    return params


def stage_cache(params: Params, redo: Optional[str] = None) -> StageCache:
    cache = StageCache(ProjectLayout.from_params(params).cache, enabled=params.cache)
    names = split_csv(redo)
    unknown = [n for n in names if n not in STAGES]
    if unknown:
        fail(f"unknown stage(s) for --redo: {', '.join(unknown)} (choose from {', '.join(STAGES)})", 2)
    cache.clear(names)
    return cache


def dada2_backend():
    """Connect to R/DADA2; exits with a clear message when rpy2 or the R package is missing."""
    try:
        from nanoasv.dada2.backend import Dada2Backend
        return Dada2Backend()
    except ImportError as e:
        fail(f"rpy2 is not importable ({e}); install it with the R package dada2", 3)
    except Exception as e:  # rpy2 raises its own error types when the R package is missing
        LOG.exception("Failed to load DADA2")
        fail(f"could not load the R package dada2: {e}", 3)


def require(value, flag: str) -> None:
    if value is None:
        fail(f"{flag} is required (pass it or set it in the params file)", 2)


def print_paths(paths: Dict[str, Path], keys: Iterable[str] = ()) -> None:
    for k in keys or paths.keys():
        if k in paths:
            print(f"[ok] {k} → {paths[k]}")


def fail(message: str, code: int = 1) -> NoReturn:
    LOG.error(message)
    print(f"error: {message}", file=sys.stderr)
    sys.exit(code)
