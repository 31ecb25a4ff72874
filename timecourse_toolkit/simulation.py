"""
Simulation of timecourse experiments with a known truth.

Generates observation and replicate tables whose signal fraction grows with
time, matching the structure the shrinkage pipeline expects. Used for
examples, calibration checks and tests.
"""

from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import ShrinkageConfig


SignalFraction = Union[float, Dict[float, float], Callable[[float], float]]

DEFAULT_TIMES = (5.0, 10.0, 20.0, 40.0, 60.0, 90.0)


def _signal_fraction_at(signal_fraction: Optional[SignalFraction], time: float, max_time: float) -> float:
    if signal_fraction is None:
        # Mostly null early, mostly signal late
        return 0.05 + 0.6 * time / max_time
    if callable(signal_fraction):
        return float(signal_fraction(time))
    if isinstance(signal_fraction, dict):
        return float(signal_fraction[time])
    return float(signal_fraction)


def simulate_timecourse_observations(
    n_features: int = 500,
    times: Sequence[float] = DEFAULT_TIMES,
    conditions: Sequence[str] = ("heat_shock",),
    signal_fraction: Optional[SignalFraction] = None,
    effect_size: float = 2.0,
    feature_variance: float = 0.1,
    condition_variance: Optional[Dict[str, float]] = None,
    seed: int = 42,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Simulate changes relative to time zero for every feature x condition x time.

    Parameters:
    -----------
    n_features : int
        Number of features (genes)
    times : sequence of float
        Sampled times (time zero is the implicit reference and is not emitted)
    conditions : sequence of str
        Condition keys; written to the first configured condition column
    signal_fraction : float, dict or callable, optional
        Fraction of features with a true change at each time. Defaults to a
        fraction rising linearly from 0.05 towards 0.65 at the last time
    effect_size : float
        Scale of true changes; each signal's mean is +/- effect_size times a
        Gamma(4, 1/4) draw
    feature_variance : float
        Mean of the exponential distribution feature variances are drawn from
    condition_variance : dict, optional
        Variance added per condition (default 0.05 for every condition)
    seed : int
        Seed for numpy's default_rng

    Returns:
    --------
    pd.DataFrame
        Observation table with variance components and an 'is_signal' truth column
    """
    config = config or ShrinkageConfig()
    rng = np.random.default_rng(seed)
    condition_variance = condition_variance or {c: 0.05 for c in conditions}
    max_time = float(max(times))

    features = [f"G{i:05d}" for i in range(n_features)]
    feature_vars = rng.exponential(feature_variance, n_features) + 1e-3

    frames = []
    for condition in conditions:
        cond_var = float(condition_variance[condition])
        for time in times:
            fraction = _signal_fraction_at(signal_fraction, time, max_time)
            if not 0.0 <= fraction <= 1.0:
                raise ValueError(f"Signal fraction at time {time} must lie in [0, 1], got {fraction}")

            is_signal = rng.random(n_features) < fraction
            true_change = np.where(
                is_signal,
                rng.choice([-1.0, 1.0], n_features) * effect_size * rng.gamma(4.0, 0.25, n_features),
                0.0,
            )
            noise_sd = np.sqrt(2.0 * (feature_vars + cond_var))
            values = true_change + rng.normal(0.0, 1.0, n_features) * noise_sd

            frames.append(pd.DataFrame({
                config.feature_column: features,
                config.condition_columns[0]: condition,
                config.time_column: float(time),
                config.value_column: values,
                config.feature_variance_column: feature_vars,
                config.condition_variance_column: cond_var,
                "is_signal": is_signal,
            }))

    return pd.concat(frames, ignore_index=True)


def simulate_replicate_measurements(
    feature_variances: Dict[str, float],
    condition_variances: Dict[str, float],
    times: Sequence[float] = DEFAULT_TIMES,
    n_replicates: int = 3,
    seed: int = 42,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Simulate replicate measurements with known additive variance components.

    Each replicate is a group mean plus N(0, feature_variance + condition_variance)
    noise; returns one row per replicate in config.replicate_value_column.
    """
    config = config or ShrinkageConfig()
    rng = np.random.default_rng(seed)

    rows = []
    for feature, feature_var in feature_variances.items():
        for condition, condition_var in condition_variances.items():
            sd = np.sqrt(feature_var + condition_var)
            for time in times:
                group_mean = rng.normal(0.0, 1.0)
                for replicate in range(n_replicates):
                    rows.append({
                        config.feature_column: feature,
                        config.condition_columns[0]: condition,
                        config.time_column: float(time),
                        "replicate": replicate + 1,
                        config.replicate_value_column: group_mean + rng.normal(0.0, sd),
                    })

    return pd.DataFrame(rows)
