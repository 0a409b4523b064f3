# src/nanoasv/pipeline/layout.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from nanoasv.config.schema import Params


@dataclass(frozen=True)
class ProjectLayout:
    """Fixed locations of every stage output under the project directory."""

    root: Path

    @property
    def trimmed(self) -> Path:
        return self.root / "trimmed"

    @property
    def filtered(self) -> Path:
        return self.root / "filtered"

    @property
    def cache(self) -> Path:
        return self.root / "cache"

    @property
    def denoise(self) -> Path:
        return self.root / "denoise"

    @property
    def cluster(self) -> Path:
        return self.root / "cluster"

    @property
    def compare(self) -> Path:
        return self.root / "compare"

    @classmethod
    def from_params(cls, params: Params) -> "ProjectLayout":
        return cls(Path(params.project_dir))
