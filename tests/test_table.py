import pandas as pd
import pytest

from conftest import SEQ_A, SEQ_B, SEQ_CHIM, FakeBackend
from nanoasv.analysis.table import (
    build_sequence_table,
    label_features,
    remove_chimeras,
    retained_fraction,
    track_reads,
)


def test_sequence_table_zero_pads_and_orders_by_abundance():
    table = build_sequence_table({"S1": {SEQ_A: 5, SEQ_B: 10}, "S2": {SEQ_A: 20}})
    assert list(table.index) == ["S1", "S2"]
    assert list(table.columns) == [SEQ_A, SEQ_B]
    assert table.loc["S2", SEQ_B] == 0
    assert str(table.dtypes.iloc[0]) == "int64"


def test_sequence_table_ties_broken_by_sequence():
    table = build_sequence_table({"S1": {"TTTT": 3, "AAAA": 3}})
    assert list(table.columns) == ["AAAA", "TTTT"]


def test_label_features():
    labels = label_features([SEQ_A, SEQ_B])
    assert labels[SEQ_A] == "ASV1"
    assert labels[SEQ_B] == "ASV2"
    assert label_features(["X"], prefix="OTU")["X"] == "OTU1"


def test_chimera_ratio_in_unit_interval():
    table = build_sequence_table({"S1": {SEQ_A: 90, SEQ_CHIM: 10}, "S2": {SEQ_B: 100}})
    nochim, ratio = remove_chimeras(table, FakeBackend({}))
    assert SEQ_CHIM not in nochim.columns
    assert 0 < ratio <= 1
    assert ratio == pytest.approx(190 / 200)


def test_chimera_ratio_is_one_without_chimeras():
    table = build_sequence_table({"S1": {SEQ_A: 3}})
    _, ratio = remove_chimeras(table, FakeBackend({}))
    assert ratio == 1.0


def test_retained_fraction_rejects_degenerate_tables():
    empty = pd.DataFrame([[0]])
    with pytest.raises(ValueError):
        retained_fraction(empty, empty)
    with pytest.raises(ValueError):
        retained_fraction(pd.DataFrame([[4]]), pd.DataFrame([[0]]))
    with pytest.raises(ValueError):
        retained_fraction(pd.DataFrame([[4]]), pd.DataFrame([[5]]))


def test_track_reads():
    filtered = pd.DataFrame({"reads_in": [100, 50], "reads_out": [80, 0]}, index=["S1", "S2"])
    denoised = build_sequence_table({"S1": {SEQ_A: 60, SEQ_CHIM: 10}})
    nochim = denoised[[SEQ_A]]
    track = track_reads(filtered, denoised, nochim)
    assert list(track.columns) == ["input", "filtered", "denoised", "nonchim"]
    assert track.loc["S1"].tolist() == [100, 80, 70, 60]
    assert track.loc["S2"].tolist() == [50, 0, 0, 0]
