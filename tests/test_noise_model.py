"""
Tests for timecourse_toolkit.noise_model module
"""

import numpy as np
import pandas as pd
import pytest

from timecourse_toolkit.noise_model import (
    attach_variance_components,
    estimate_noise_components,
    summarize_replicates,
)
from timecourse_toolkit.standardization import standardize_observations
from timecourse_toolkit.validation import InsufficientDataError


class TestEstimateNoiseComponents:
    """Additive feature + condition variance decomposition"""

    def test_output_tables(self, replicate_measurements, shrinkage_config):
        feature_vars, condition_vars = estimate_noise_components(
            replicate_measurements, shrinkage_config
        )

        assert list(feature_vars.columns) == ["feature", "feature_variance"]
        assert list(condition_vars.columns) == ["condition", "condition_variance"]
        assert sorted(feature_vars["feature"]) == ["YAL001C", "YAL002W", "YAL003W"]
        assert sorted(condition_vars["condition"]) == ["cold", "heat"]
        assert (feature_vars["feature_variance"] >= 0).all()
        assert (condition_vars["condition_variance"] >= 0).all()

    def test_recovers_known_components(self, replicate_measurements, shrinkage_config):
        feature_vars, condition_vars = estimate_noise_components(
            replicate_measurements, shrinkage_config
        )
        feature_lookup = feature_vars.set_index("feature")["feature_variance"]
        condition_lookup = condition_vars.set_index("condition")["condition_variance"]

        assert feature_lookup["YAL002W"] > feature_lookup["YAL001C"]
        assert condition_lookup["cold"] > condition_lookup["heat"]
        assert feature_lookup["YAL002W"] == pytest.approx(0.4, abs=0.15)
        assert condition_lookup["cold"] == pytest.approx(0.3, abs=0.15)

    def test_exact_decomposition_without_noise(self, shrinkage_config):
        """Group variances that are exactly additive are split exactly"""
        rows = []
        feature_true = {"G1": 0.2, "G2": 0.5}
        condition_true = {"a": 0.0, "b": 0.3}
        for feature, fv in feature_true.items():
            for condition, cv in condition_true.items():
                half_range = np.sqrt((fv + cv) / 2.0)
                for value in (-half_range, half_range):
                    rows.append({"feature": feature, "condition": condition,
                                 "time": 10.0, "measurement": value})

        feature_vars, condition_vars = estimate_noise_components(pd.DataFrame(rows), shrinkage_config)

        np.testing.assert_allclose(
            feature_vars.set_index("feature")["feature_variance"].loc[["G1", "G2"]], [0.2, 0.5]
        )
        np.testing.assert_allclose(
            condition_vars.set_index("condition")["condition_variance"].loc[["a", "b"]],
            [0.0, 0.3], atol=1e-8,
        )

    def test_no_replicates_raises(self, shrinkage_config):
        singles = pd.DataFrame({
            "feature": ["G1", "G2"], "condition": ["a", "a"],
            "time": [5.0, 5.0], "measurement": [0.3, 0.1],
        })

        with pytest.raises(InsufficientDataError, match="two or more replicates"):
            estimate_noise_components(singles, shrinkage_config)

    @pytest.mark.parametrize("max_iter", [0, -3])
    def test_max_iter_must_be_positive(self, replicate_measurements, shrinkage_config, max_iter):
        shrinkage_config.verbose = True

        with pytest.raises(ValueError, match="max_iter must be at least 1"):
            estimate_noise_components(replicate_measurements, shrinkage_config, max_iter=max_iter)

    def test_single_sweep_reports(self, replicate_measurements, shrinkage_config, capsys):
        shrinkage_config.verbose = True

        feature_vars, _ = estimate_noise_components(
            replicate_measurements, shrinkage_config, max_iter=1
        )

        assert "backfitting sweeps: 1" in capsys.readouterr().out
        assert len(feature_vars) == 3


class TestSummarizeReplicates:
    """Replicates collapse to one observation per key"""

    def test_mean_and_count(self, shrinkage_config):
        replicates = pd.DataFrame({
            "feature": ["G1", "G1", "G1", "G2"],
            "condition": ["a", "a", "a", "a"],
            "time": [5.0, 5.0, 5.0, 5.0],
            "measurement": [1.0, 2.0, np.nan, 4.0],
        })

        summary = summarize_replicates(replicates, shrinkage_config).set_index("feature")

        assert summary.loc["G1", "value"] == pytest.approx(1.5)
        assert summary.loc["G1", "n_replicates"] == 2
        assert summary.loc["G2", "n_replicates"] == 1


class TestAttachVarianceComponents:
    """Joining the variance tables onto observations"""

    def test_join_and_missing_estimates(self, shrinkage_config):
        observations = pd.DataFrame({
            "feature": ["G1", "G2", "G3"], "condition": ["a", "b", "a"],
            "time": [5.0, 5.0, 10.0], "value": [1.0, -0.5, 0.8],
        })
        feature_vars = pd.DataFrame({"feature": ["G1", "G2"], "feature_variance": [0.2, 0.4]})
        condition_vars = pd.DataFrame({"condition": ["a", "b"], "condition_variance": [0.0, 0.1]})

        attached = attach_variance_components(
            observations, feature_vars, condition_vars, shrinkage_config
        )

        assert attached["feature_variance"].tolist()[:2] == [0.2, 0.4]
        assert attached["condition_variance"].tolist() == [0.0, 0.1, 0.0]
        assert np.isnan(attached.loc[2, "feature_variance"])

    def test_estimates_feed_standardization(self, replicate_measurements, shrinkage_config):
        feature_vars, condition_vars = estimate_noise_components(
            replicate_measurements, shrinkage_config
        )
        observations = summarize_replicates(replicate_measurements, shrinkage_config)

        attached = attach_variance_components(
            observations, feature_vars, condition_vars, shrinkage_config
        )
        standardized = standardize_observations(attached, shrinkage_config)

        assert len(standardized) == len(observations)
        assert standardized["p_value"].between(0, 1).all()
