"""
Pytest configuration and fixtures for timecourse_toolkit tests
"""

import matplotlib

matplotlib.use("Agg")

import pytest
import pandas as pd
import numpy as np
from scipy.stats import norm

from timecourse_toolkit.config import ShrinkageConfig
from timecourse_toolkit.simulation import (
    simulate_timecourse_observations,
    simulate_replicate_measurements,
)


@pytest.fixture
def shrinkage_config():
    """Default configuration with printing turned off"""
    config = ShrinkageConfig()
    config.verbose = False
    return config


@pytest.fixture
def simulated_observations(shrinkage_config):
    """300 features x 6 times with a signal fraction rising over time"""
    return simulate_timecourse_observations(
        n_features=300,
        times=(5.0, 10.0, 20.0, 40.0, 60.0, 90.0),
        seed=7,
        config=shrinkage_config,
    )


@pytest.fixture
def small_observations():
    """A handful of hand-written observations, including zero and missing values"""
    return pd.DataFrame(
        {
            "feature": ["YAL001C", "YAL002W", "YAL003W", "YAL004W", "YAL005C", "YAL007C"],
            "condition": ["heat", "heat", "heat", "cold", "cold", "cold"],
            "time": [5.0, 5.0, 10.0, 10.0, 20.0, 20.0],
            "value": [2.0, -1.0, 0.0, 0.5, np.nan, 3.0],
            "feature_variance": [0.25, 0.1, 0.2, 0.3, 0.1, 0.05],
            "condition_variance": [0.25, 0.1, 0.1, 0.0, 0.1, 0.05],
        }
    )


@pytest.fixture
def replicate_measurements(shrinkage_config):
    """Replicates with known feature and condition variance components"""
    return simulate_replicate_measurements(
        feature_variances={"YAL001C": 0.1, "YAL002W": 0.4, "YAL003W": 0.2},
        condition_variances={"heat": 0.0, "cold": 0.3},
        times=tuple(float(t) for t in range(5, 105, 5)),
        n_replicates=6,
        seed=11,
        config=shrinkage_config,
    )


@pytest.fixture
def mixture_pvalues():
    """70% uniform null p-values and 30% strong signal p-values"""
    rng = np.random.default_rng(3)
    null_p = rng.uniform(0, 1, 1400)
    z_signal = rng.normal(3.5, 1.0, 600)
    signal_p = 2 * norm.sf(np.abs(z_signal))
    return np.concatenate([null_p, signal_p])