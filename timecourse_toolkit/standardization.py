"""
Observation Standardization Module

Converts raw changes relative to a time-zero reference into z-scores and
two-sided p-values. The change is the difference of two independent normal
measurements, so its variance is the sum of the feature-level and
condition-level variance components, doubled for the reference.
"""

import numpy as np
import pandas as pd
from scipy.stats import norm
from typing import Optional

from .config import ShrinkageConfig
from .records import Observation, StandardizedObservation
from .validation import InvalidVarianceError, require_columns


STANDARDIZED_COLUMNS = ["combined_variance", "z_score", "p_value"]


def two_sided_pvalue(z_scores) -> np.ndarray:
    """
    Two-sided Wald p-value for a null of zero change.

    Equal to 1 - |0.5 - Phi(z)| * 2, evaluated as 2 * (1 - Phi(|z|)) so large
    |z| does not round to 0.
    """
    return 2.0 * norm.sf(np.abs(np.asarray(z_scores, dtype=float)))


def filter_uninformative_observations(
    observations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    verbose: Optional[bool] = None,
) -> pd.DataFrame:
    """
    Drop observations whose value is exactly zero or missing.

    Zero values come from normalizing to the time-zero reference and carry no
    information about change.

    Parameters:
    -----------
    observations : pd.DataFrame
        Observation table
    config : ShrinkageConfig, optional
        Column configuration
    verbose : bool, optional
        Print a count of dropped rows; defaults to config.verbose

    Returns:
    --------
    pd.DataFrame
        New table with only informative observations
    """
    config = config or ShrinkageConfig()
    verbose = config.verbose if verbose is None else verbose
    require_columns(observations, [config.value_column])

    values = pd.to_numeric(observations[config.value_column], errors="coerce")
    keep = values.notna() & (values != 0)
    filtered = observations.loc[keep].reset_index(drop=True)

    if verbose:
        n_zero = int((values == 0).sum())
        n_missing = int(values.isna().sum())
        print(
            f"Filtered observations: kept {len(filtered)} of {len(observations)} "
            f"({n_zero} zero, {n_missing} missing)"
        )

    return filtered


def standardize_observations(
    observations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Add combined variance, z-score and two-sided p-value columns.

    Observations with value 0 or a missing value are dropped first (see
    filter_uninformative_observations), so their variance components are
    never checked. Any existing derived columns are recomputed from the raw
    value and variance components, so standardizing an already standardized
    table is a no-op.

    Parameters:
    -----------
    observations : pd.DataFrame
        Observation table with variance components
    config : ShrinkageConfig, optional
        Column configuration

    Returns:
    --------
    pd.DataFrame
        New table of informative observations with 'combined_variance',
        'z_score' and 'p_value'

    Raises:
    -------
    InvalidVarianceError
        If any informative observation has a combined variance that is zero,
        negative or missing, or a negative component
    """
    config = config or ShrinkageConfig()
    require_columns(
        observations,
        [config.value_column, config.feature_variance_column, config.condition_variance_column],
    )

    standardized = filter_uninformative_observations(
        observations.drop(columns=[c for c in STANDARDIZED_COLUMNS if c in observations.columns]),
        config,
        verbose=False,
    ).copy()

    values = standardized[config.value_column].astype(float)
    feature_var = standardized[config.feature_variance_column].astype(float)
    condition_var = standardized[config.condition_variance_column].astype(float)
    combined = feature_var + condition_var

    invalid = (feature_var < 0) | (condition_var < 0) | ~(combined > 0)
    if invalid.any():
        report_columns = [
            c for c in [*config.key_columns, config.feature_variance_column,
                        config.condition_variance_column]
            if c in standardized.columns
        ]
        offenders = standardized.loc[invalid, report_columns]
        raise InvalidVarianceError(
            f"{int(invalid.sum())} observations have a combined variance that is zero, "
            f"negative or missing; a z-score is undefined. First offenders:\n"
            f"{offenders.head(5).to_string(index=False)}"
        )

    z_scores = values / np.sqrt(2.0 * combined)

    standardized["combined_variance"] = combined
    standardized["z_score"] = z_scores
    standardized["p_value"] = two_sided_pvalue(z_scores)

    return standardized


def standardize_observation(observation: Observation) -> StandardizedObservation:
    """
    Standardize a single observation record.

    A single record cannot be filtered, so a value of 0 or NaN (no measured
    change) raises ValueError instead of returning z = 0, p = 1.
    """
    if not np.isfinite(observation.value) or observation.value == 0:
        raise ValueError(
            f"Observation for feature '{observation.feature}' at time {observation.time} "
            f"has uninformative value {observation.value}; filter it out before standardizing"
        )

    combined = observation.combined_variance
    if (
        observation.feature_variance < 0
        or observation.condition_variance < 0
        or not combined > 0
    ):
        raise InvalidVarianceError(
            f"Combined variance {combined} for feature '{observation.feature}' "
            f"at time {observation.time} is not positive"
        )

    z_score = observation.value / np.sqrt(2.0 * combined)
    return StandardizedObservation(
        feature=observation.feature,
        condition=observation.condition,
        time=observation.time,
        value=observation.value,
        feature_variance=observation.feature_variance,
        condition_variance=observation.condition_variance,
        z_score=float(z_score),
        p_value=float(two_sided_pvalue(z_score)),
    )
