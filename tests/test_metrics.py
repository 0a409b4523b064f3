import numpy as np
import pandas as pd
import pytest

from conftest import make_data
from nanoasv.analysis.metrics import (
    PIPELINE_CLUSTER,
    PIPELINE_DENOISE,
    alpha_diversity,
    compare_pipelines,
    ordinate,
    summarize_datasets,
    summarize_rank,
)
from nanoasv.metadata import SAMPLE_ID_COL

COUNTS = {
    "S1": {"F1": 5000, "F2": 5000, "F3": 0, "F4": 100},
    "S2": {"F1": 9000, "F2": 500, "F3": 500, "F4": 0},
    "S3": {"F1": 100, "F2": 200, "F3": 9700, "F4": 50},
    "S4": {"F1": 3000, "F2": 3000, "F3": 3000, "F4": 3000},
}
META = pd.DataFrame({"soil": ["a", "a", "b", "b"]}, index=["S1", "S2", "S3", "S4"])


@pytest.fixture
def data():
    return make_data(COUNTS, metadata=META)


def test_alpha_diversity_one_value_per_sample(data):
    shannon = alpha_diversity(data, "shannon")
    assert list(shannon.index) == ["S1", "S2", "S3", "S4"]
    # four equally abundant features is the most even sample
    assert shannon.idxmax() == "S4"
    assert np.isfinite(shannon).all()


def test_ordination_two_axes(data):
    coords = ordinate(data, "braycurtis", dimensions=2)
    assert list(coords.columns) == ["axis1", "axis2"]
    assert list(coords.index) == list(data.sample_ids)
    assert len(coords.attrs["explained"]) == 2


def test_compare_pipelines_long_form(data):
    small = data.subset_samples(["S1", "S2"])
    diversity, ordination = compare_pipelines(
        {PIPELINE_DENOISE: data, PIPELINE_CLUSTER: small}, diversity_index="shannon"
    )
    assert {SAMPLE_ID_COL, "pipeline", "index", "value", "soil"} <= set(diversity.columns)
    assert len(diversity) == 6
    assert set(diversity["index"]) == {"shannon"}
    # two samples are too few to ordinate
    assert set(ordination["pipeline"]) == {PIPELINE_DENOISE}
    assert {"method", "axis1", "axis2", "soil"} <= set(ordination.columns)
    assert ordination["method"].iloc[0] == "PCoA (braycurtis)"


def test_compare_pipelines_skips_empty_tables(data):
    empty = data.subset_samples([])
    diversity, ordination = compare_pipelines({PIPELINE_CLUSTER: empty})
    assert diversity.empty
    assert ordination.empty


def test_summarize_rank_sums_to_one(data):
    comp = summarize_rank(data, "Phylum")
    per_sample = comp.groupby(SAMPLE_ID_COL)["abundance"].sum()
    assert np.allclose(per_sample.to_numpy(), 1.0)
    with pytest.raises(ValueError):
        summarize_rank(data, "Strain")


def test_summarize_datasets(data):
    summary = summarize_datasets({PIPELINE_DENOISE: data})
    assert summary.loc[PIPELINE_DENOISE, "samples"] == 4
    assert summary.loc[PIPELINE_DENOISE, "reads"] == int(data.counts.to_numpy().sum())
