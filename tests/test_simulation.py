"""
Tests for timecourse_toolkit.simulation module
"""

import numpy as np
import pandas as pd
import pytest

from timecourse_toolkit.config import ShrinkageConfig
from timecourse_toolkit.simulation import (
    simulate_replicate_measurements,
    simulate_timecourse_observations,
)


class TestSimulateTimecourseObservations:
    """Observation tables with a known truth"""

    def test_shape_and_columns(self, shrinkage_config):
        observations = simulate_timecourse_observations(
            n_features=50, times=(5.0, 10.0), conditions=("heat", "cold"), config=shrinkage_config
        )

        assert len(observations) == 50 * 2 * 2
        assert {"feature", "condition", "time", "value", "feature_variance",
                "condition_variance", "is_signal"}.issubset(observations.columns)
        assert (observations["feature_variance"] > 0).all()

    def test_seed_is_reproducible(self, shrinkage_config):
        first = simulate_timecourse_observations(n_features=20, seed=1, config=shrinkage_config)
        second = simulate_timecourse_observations(n_features=20, seed=1, config=shrinkage_config)

        pd.testing.assert_frame_equal(first, second)

    def test_signal_fraction_rises_with_time(self, simulated_observations):
        fractions = simulated_observations.groupby("time")["is_signal"].mean()

        assert fractions.loc[90.0] > fractions.loc[5.0] + 0.3

    def test_constant_signal_fraction(self, shrinkage_config):
        observations = simulate_timecourse_observations(
            n_features=100, signal_fraction=0.0, config=shrinkage_config
        )

        assert not observations["is_signal"].any()

    def test_invalid_signal_fraction(self, shrinkage_config):
        with pytest.raises(ValueError, match="Signal fraction"):
            simulate_timecourse_observations(
                n_features=10, signal_fraction=lambda t: 1.5, config=shrinkage_config
            )


class TestSimulateReplicateMeasurements:
    """Replicate tables for the noise model"""

    def test_one_row_per_replicate(self):
        config = ShrinkageConfig(replicate_value_column="log2_intensity", verbose=False)

        replicates = simulate_replicate_measurements(
            {"G1": 0.1, "G2": 0.2}, {"a": 0.0}, times=(5.0, 10.0), n_replicates=4, config=config
        )

        assert len(replicates) == 2 * 1 * 2 * 4
        assert sorted(replicates["replicate"].unique()) == [1, 2, 3, 4]
        assert np.isfinite(replicates["log2_intensity"]).all()
