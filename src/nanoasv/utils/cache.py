# src/nanoasv/utils/cache.py
from __future__ import annotations

import os
import pickle
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from nanoasv.utils.logger import get_logger

LOG = get_logger("cache")

T = TypeVar("T")


class StageCache:
    """
    Checkpoint store for expensive pipeline stages.

    Each stage name maps to ``<root>/<name>.pkl``. ``run`` loads that file when
    it exists and otherwise computes, persists and returns the result. There is
    no eviction; a checkpoint is invalidated by deleting it (see ``clear``).
    """

    suffix = ".pkl"

    def __init__(self, root: Path, *, enabled: bool = True) -> None:
        self.root = Path(root)
        self.enabled = enabled

    def path(self, name: str) -> Path:
        return self.root / f"{name}{self.suffix}"

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    def load(self, name: str) -> Any:
        with self.path(name).open("rb") as fh:
            return pickle.load(fh)

    def save(self, name: str, value: Any) -> Path:
        dest = self.path(name)
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(dest.name + ".tmp")
        with tmp.open("wb") as fh:
            pickle.dump(value, fh, protocol=pickle.HIGHEST_PROTOCOL)
        os.replace(tmp, dest)
        return dest

    def clear(self, names: Iterable[str]) -> None:
        for name in names:
            p = self.path(name)
            if p.exists():
                p.unlink()
                LOG.info("Removed checkpoint %s", p)

    def run(self, name: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        if self.enabled and self.exists(name):
            LOG.info("Loaded cached %s ← %s", name, self.path(name))
            return self.load(name)
        LOG.info("Computing stage '%s'", name)
        value = func(*args, **kwargs)
        dest = self.save(name, value)
        LOG.info("Checkpoint written → %s", dest)
        return value
