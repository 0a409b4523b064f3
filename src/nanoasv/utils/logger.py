# src/nanoasv/utils/logger.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

_LOGGER_NAME = "nanoasv"
_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# chatty dependencies (font lookup, R console echo)
_NOISY = ("matplotlib", "PIL", "rpy2")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """`nanoasv` or a child of it, e.g. get_logger("denoise") -> nanoasv.denoise."""
    if name:
        return logging.getLogger(f"{_LOGGER_NAME}.{name}")
    return logging.getLogger(_LOGGER_NAME)


def setup_logger(
    log_file: Optional[Union[str, Path]] = "nanoasv.log",
    *,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the 'nanoasv' logger once per process:
      - console at INFO (DEBUG with verbose)
      - file at DEBUG, unless log_file is None
    Later calls return the configured logger unchanged.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if getattr(setup_logger, "_configured", False):
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)

    fmt = logging.Formatter(_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)

    setup_logger._configured = True  # type: ignore[attr-defined]
    return logger
