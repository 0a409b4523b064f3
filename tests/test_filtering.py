import pandas as pd
import pytest

from conftest import make_data
from nanoasv.analysis.container import ContainerError, build_container
from nanoasv.analysis.filtering import (
    filter_kingdom,
    filter_low_abundance_features,
    filter_low_depth_samples,
    filter_organelles,
    taxonomic_filter,
)

TAX = {
    "F1": ["Bacteria", "Firmicutes", None, None, None, None, None],
    "F2": ["Archaea", None, None, None, None, None, None],
    "F3": ["Eukaryota", None, None, None, None, None, None],
    "F4": [None, None, None, None, None, None, None],
    "F5": ["Bacteria", "Cyanobacteria", None, "Chloroplast", None, None, None],
    "F6": ["Bacteria", "Proteobacteria", None, "Rickettsiales", "Mitochondria", None, None],
    "F7": ["Bacteria", "Proteobacteria", None, None, None, None, None],
}

COUNTS = {
    "S1": {"F1": 9000, "F2": 1000, "F3": 50, "F4": 10, "F5": 5, "F6": 5, "F7": 4},
    "S2": {"F1": 100, "F2": 100, "F3": 100, "F4": 100, "F5": 100, "F6": 100, "F7": 5},
    "S3": {"F1": 10000, "F2": 0, "F3": 0, "F4": 0, "F5": 0, "F6": 0, "F7": 0},
}


@pytest.fixture
def data():
    return make_data(COUNTS, TAX)


def _assert_consistent(d):
    assert list(d.taxonomy.index) == list(d.counts.index)
    assert list(d.metadata.index) == list(d.counts.columns)


def test_kingdom_filter_null_handling(data):
    keep_na = filter_kingdom(data, keep_na=True)
    drop_na = filter_kingdom(data, keep_na=False)
    assert "F3" not in keep_na.feature_ids
    assert "F4" in keep_na.feature_ids
    assert "F4" not in drop_na.feature_ids
    assert {"F1", "F2"} <= set(drop_na.feature_ids)


def test_organelle_filter_keeps_nulls(data):
    out = filter_organelles(data)
    assert "F5" not in out.feature_ids
    assert "F6" not in out.feature_ids
    # null Order/Family values are retained
    assert {"F1", "F2", "F3", "F4", "F7"} == set(out.feature_ids)


@pytest.mark.parametrize("keep_na", [True, False])
def test_taxonomic_filter_is_idempotent(data, keep_na):
    once = taxonomic_filter(data, keep_na_kingdom=keep_na)
    twice = taxonomic_filter(once, keep_na_kingdom=keep_na)
    pd.testing.assert_frame_equal(once.counts, twice.counts)
    pd.testing.assert_frame_equal(once.taxonomy, twice.taxonomy)
    _assert_consistent(once)


def test_depth_filter_threshold(data):
    out = filter_low_depth_samples(data, 10_000)
    sums = data.sample_sums()
    assert (out.sample_sums() >= 10_000).all()
    excluded = set(data.sample_ids) - set(out.sample_ids)
    assert excluded == {"S2"}
    assert (sums[list(excluded)] < 10_000).all()
    # boundary: exactly 10,000 is kept
    assert "S3" in out.sample_ids
    _assert_consistent(out)


def test_abundance_filter_keeps_totals_above_nine(data):
    out = filter_low_abundance_features(data, 9)
    assert (out.feature_sums() > 9).all()
    assert "F7" not in out.feature_ids  # total 9
    assert "F5" in out.feature_ids  # total 105
    _assert_consistent(out)


def test_filters_preserve_counts(data):
    out = filter_low_depth_samples(taxonomic_filter(data), 10_000)
    for f in out.feature_ids:
        for s in out.sample_ids:
            assert out.counts.loc[f, s] == data.counts.loc[f, s]


def test_subset_unknown_ids_rejected(data):
    with pytest.raises(ContainerError):
        data.subset_samples(["S1", "S9"])


def test_container_rejects_axis_mismatch(data):
    with pytest.raises(ContainerError):
        type(data)(counts=data.counts, taxonomy=data.taxonomy.iloc[:-1], metadata=data.metadata)
    with pytest.raises(ContainerError):
        type(data)(counts=data.counts, taxonomy=data.taxonomy, metadata=data.metadata.iloc[::-1])


def test_build_container_labels_and_sequences():
    seqtab = pd.DataFrame({"ACGT": [5, 0], "TTTT": [1, 2]}, index=["S1", "S2"])
    tax = pd.DataFrame({"Kingdom": ["Bacteria", None]}, index=["ACGT", "TTTT"])
    md = pd.DataFrame({"group": ["a", "b", "c"]}, index=["S2", "S1", "S9"])
    labels = pd.Series({"ACGT": "ASV1", "TTTT": "ASV2"})
    data = build_container(seqtab, tax, md, labels=labels)
    assert list(data.feature_ids) == ["ASV1", "ASV2"]
    assert list(data.sample_ids) == ["S1", "S2"]
    assert data.sequences["ASV2"] == "TTTT"
    assert data.counts.loc["ASV2", "S2"] == 2
    assert list(data.taxonomy.columns)[0] == "Kingdom"
    assert list(data.metadata["group"]) == ["b", "a"]


def test_build_container_missing_metadata():
    seqtab = pd.DataFrame({"OTU1": [5]}, index=["S1"])
    tax = pd.DataFrame({"Kingdom": ["Bacteria"]}, index=["OTU1"])
    with pytest.raises(ContainerError):
        build_container(seqtab, tax, pd.DataFrame(index=["S2"]))
