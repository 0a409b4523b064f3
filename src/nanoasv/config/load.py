# src/nanoasv/config/load.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from nanoasv.config.schema import Params


def _read_yaml_or_json(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("Params file must contain a mapping/object at the top level.")
    return data


def load_params_file(path: Optional[Path]) -> Params:
    """Read params from YAML/JSON; a top-level 'params' key is accepted too."""
    if not path:
        return Params()
    data = _read_yaml_or_json(path)
    return Params(**data.get("params", data))


def write_params_file(path: Path, params: Params) -> None:
    payload = {"params": params.model_dump(mode="json")}
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        text = json.dumps(payload, indent=2)
    else:
        text = yaml.safe_dump(payload, sort_keys=False)
    path.write_text(text, encoding="utf-8")


def apply_overrides(params: Params, overrides: Mapping[str, Any]) -> Params:
    """
    Return a copy of params with overrides applied **only where a value was given**.
    Dotted keys address nested sections, e.g. {"compare.min_sample_depth": 5000}.
    CLI must always win; params just save typing.
    """
    data = params.model_dump()
    for key, value in overrides.items():
        if value is None:
            continue
        node = data
        *parents, leaf = key.split(".")
        for part in parents:
            node = node[part]
        node[leaf] = value
    return Params(**data)
