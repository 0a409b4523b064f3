# src/nanoasv/commands/doctor.py
from __future__ import annotations

import sys

from nanoasv.utils.logger import get_logger
from nanoasv.utils.runner import tool_version

LOG = get_logger("doctor")

# executable -> version flag
TOOLS = {
    "porechop": "--version",
    "cutadapt": "--version",
    "vsearch": "--version",
}


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "doctor", parents=[parent],
        help="Preflight checks for porechop, cutadapt, vsearch, rpy2 and the R package dada2.",
    )
    p.add_argument("--skip-tools", type=str, default="",
                   help="Comma-separated executables not needed for this project (e.g. porechop).")
    p.set_defaults(func=run)


def _ok(x: bool) -> str:
    return "OK" if x else "MISSING"


def check_tool(name: str, flag: str) -> bool:
    try:
        version = tool_version(name, flag)
    except Exception as e:
        print(f"[check] {name} {flag}: failed ({e})")
        return False
    print(f"[check] {name}: {_ok(version is not None)} ({version or 'not found on PATH'})")
    return version is not None


def check_dada2() -> bool:
    try:
        from nanoasv.dada2.backend import Dada2Backend
        backend = Dada2Backend()
    except ImportError as e:
        print(f"[check] rpy2: MISSING ({e})")
        return False
    except Exception as e:
        print(f"[check] R package dada2: MISSING ({e})")
        return False
    print(f"[check] R package dada2: OK ({backend.version()})")
    return True


def run(args) -> None:
    skip = {t.strip() for t in args.skip_tools.split(",") if t.strip()}
    bad = [name for name, flag in TOOLS.items() if name not in skip and not check_tool(name, flag)]
    if bad:
        print("error: missing tools: " + ", ".join(bad), file=sys.stderr)
        sys.exit(2)

    if not check_dada2():
        print("error: DADA2 is not usable from Python (install rpy2 and the R package dada2)", file=sys.stderr)
        sys.exit(3)

    print("[ok] environment looks good.")
