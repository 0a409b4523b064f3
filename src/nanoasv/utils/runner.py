# src/nanoasv/utils/runner.py
from __future__ import annotations

import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from nanoasv.utils.logger import get_logger

LOG = get_logger("runner")


def _merged_env(env: Optional[Mapping[str, str]]) -> dict:
    merged = os.environ.copy()
    merged.update({str(k): str(v) for k, v in (env or {}).items()})
    return merged


def run_command(
    cmd: Sequence[object],
    *,
    dry_run: bool = False,
    capture: bool = False,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> subprocess.CompletedProcess[str]:
    """
    Run one external tool (porechop, cutadapt, vsearch) and log it.

    The command line is always logged; with dry_run it is not executed and an
    empty successful result is returned. capture=False lets the tool write to
    the console; capture=True keeps its output, which is logged when it fails.
    A missing executable raises FileNotFoundError and a non-zero exit raises
    CalledProcessError.
    """
    argv = [str(c) for c in cmd]
    LOG.info("Running: %s", " ".join(argv))
    if dry_run:
        LOG.debug("[dry-run] not executed: %s", argv[0])
        return subprocess.CompletedProcess(argv, 0, "", "")

    env_dict = _merged_env(env)
    if shutil.which(argv[0], path=env_dict.get("PATH")) is None:
        LOG.error("Executable not found: %s (see `nanoasv doctor`)", argv[0])
        raise FileNotFoundError(f"{argv[0]}: not found on PATH")

    started = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            check=True,
            cwd=str(cwd) if cwd else None,
            env=env_dict,
            text=True,
            capture_output=capture,
        )
    except subprocess.CalledProcessError as e:
        for stream, text in (("stdout", e.stdout), ("stderr", e.stderr)):
            if text:
                LOG.error("%s %s:\n%s", argv[0], stream, text.strip())
        LOG.error("%s exited with code %s", argv[0], e.returncode)
        raise

    LOG.info("%s finished in %.1fs", argv[0], time.monotonic() - started)
    if capture:
        for stream, text in (("stdout", result.stdout), ("stderr", result.stderr)):
            if text:
                LOG.debug("%s %s:\n%s", argv[0], stream, text.strip())
    return result


def tool_version(name: str, flag: str = "--version") -> Optional[str]:
    """First non-empty line a tool prints for its version flag, or None when it is not installed."""
    if shutil.which(name) is None:
        return None
    res = run_command([name, flag], capture=True)
    # vsearch prints its banner on stderr
    lines = [ln.strip() for ln in f"{res.stdout}\n{res.stderr}".splitlines() if ln.strip()]
    return lines[0] if lines else "unknown"
