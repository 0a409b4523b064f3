from pathlib import Path

import pandas as pd

from nanoasv.utils.cache import StageCache


def test_run_computes_once_then_loads(tmp_path: Path):
    cache = StageCache(tmp_path / "cache")
    calls = []

    def stage(x):
        calls.append(x)
        return pd.DataFrame({"n": [x, x + 1]})

    first = cache.run("errors", stage, 1)
    second = cache.run("errors", stage, 99)
    assert calls == [1]
    assert cache.path("errors") == tmp_path / "cache" / "errors.pkl"
    assert cache.exists("errors")
    pd.testing.assert_frame_equal(first, second)


def test_disabled_cache_recomputes_and_overwrites(tmp_path: Path):
    StageCache(tmp_path).run("denoise", lambda: {"S1": {"ACGT": 5}})
    value = StageCache(tmp_path, enabled=False).run("denoise", lambda: {"S1": {"ACGT": 7}})
    assert value == {"S1": {"ACGT": 7}}
    assert StageCache(tmp_path).load("denoise") == {"S1": {"ACGT": 7}}


def test_clear_removes_named_checkpoints(tmp_path: Path):
    cache = StageCache(tmp_path)
    cache.save("filter", 1)
    cache.save("taxonomy", 2)
    cache.clear(["filter", "missing"])
    assert not cache.exists("filter")
    assert cache.exists("taxonomy")
    assert not list(tmp_path.glob("*.tmp"))
