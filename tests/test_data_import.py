"""
Tests for timecourse_toolkit.data_import module
"""

import numpy as np
import pandas as pd
import pytest

from timecourse_toolkit.data_import import (
    load_timecourse_data,
    normalize_to_time_zero,
    tidy_wide_timecourse,
)


@pytest.fixture
def wide_table():
    return pd.DataFrame({
        "feature": ["YAL001C", "YAL002W"],
        "S1": [0.1, 0.3],
        "S2": [0.5, np.nan],
        "S3": [1.1, -0.4],
        "notes": ["a", "b"],
    })


@pytest.fixture
def sample_annotations():
    return pd.DataFrame({
        "sample": ["S1", "S2", "S3"],
        "condition": ["heat", "heat", "heat"],
        "time": [0.0, 10.0, 20.0],
    })


class TestLoadTimecourseData:
    """Loading delimited files"""

    def test_load_tsv(self, tmp_path, small_observations):
        path = tmp_path / "observations.tsv"
        small_observations.to_csv(path, sep="\t", index=False)

        data = load_timecourse_data(str(path), required_columns=["feature", "time"], verbose=False)

        assert data.shape == small_observations.shape
        assert data["feature"].tolist() == small_observations["feature"].tolist()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_timecourse_data(str(tmp_path / "absent.tsv"), verbose=False)

    def test_missing_required_column(self, tmp_path, small_observations):
        path = tmp_path / "observations.tsv"
        small_observations.to_csv(path, sep="\t", index=False)

        with pytest.raises(ValueError, match="sample"):
            load_timecourse_data(str(path), required_columns=["sample"], verbose=False)


class TestTidyWideTimecourse:
    """Wide feature x sample matrices to long observations"""

    def test_reshape(self, wide_table, sample_annotations, shrinkage_config):
        tall = tidy_wide_timecourse(wide_table, sample_annotations, shrinkage_config)

        # 2 features x 3 samples, one missing measurement dropped
        assert len(tall) == 5
        assert set(tall.columns) == {"feature", "sample", "value", "condition", "time"}
        row = tall[(tall["feature"] == "YAL001C") & (tall["sample"] == "S3")].iloc[0]
        assert row["value"] == 1.1
        assert row["time"] == 20.0
        assert "notes" not in tall.columns

    def test_unannotated_samples_ignored(self, wide_table, sample_annotations, shrinkage_config):
        annotations = pd.concat([
            sample_annotations,
            pd.DataFrame({"sample": ["S9"], "condition": ["heat"], "time": [30.0]}),
        ])

        tall = tidy_wide_timecourse(wide_table, annotations, shrinkage_config)

        assert "S9" not in set(tall["sample"])

    def test_no_matching_samples(self, wide_table, shrinkage_config):
        annotations = pd.DataFrame({"sample": ["X1"], "condition": ["heat"], "time": [5.0]})

        with pytest.raises(ValueError, match="None of the annotated samples"):
            tidy_wide_timecourse(wide_table, annotations, shrinkage_config)


class TestNormalizeToTimeZero:
    """Changes relative to the reference time"""

    def test_subtracts_reference(self, wide_table, sample_annotations, shrinkage_config):
        tall = tidy_wide_timecourse(wide_table, sample_annotations, shrinkage_config)

        normalized = normalize_to_time_zero(tall, shrinkage_config).set_index(["feature", "time"])

        assert normalized.loc[("YAL001C", 0.0), "value"] == 0.0
        assert normalized.loc[("YAL001C", 20.0), "value"] == pytest.approx(1.0)
        assert normalized.loc[("YAL002W", 20.0), "value"] == pytest.approx(-0.7)

    def test_series_without_reference_dropped(self, shrinkage_config):
        observations = pd.DataFrame({
            "feature": ["G1", "G1", "G2"],
            "condition": ["heat", "heat", "heat"],
            "time": [0.0, 10.0, 10.0],
            "value": [0.2, 0.9, 0.4],
        })

        normalized = normalize_to_time_zero(observations, shrinkage_config)

        assert normalized["feature"].tolist() == ["G1", "G1"]
        assert "value" in normalized.columns
        assert len(observations) == 3
