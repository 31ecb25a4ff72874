"""
Noise Model Estimation

Estimates the measurement noise of a timecourse experiment from replicate
measurements, split into two additive variance components:

- feature-level variance: how noisy a given gene is, wherever it is measured
- condition-level variance: how much extra noise a given timecourse
  (experiment / strain / treatment key) adds on top

For every feature x condition x time group with at least two replicates the
sample variance s2 is computed, and the table of s2 values is decomposed as
s2[g, c] ~ feature_variance[g] + condition_variance[c] by backfitting. The
feature component absorbs the common noise level; the condition component is
the non-negative excess of a condition over it.
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple

from .config import ShrinkageConfig
from .validation import InsufficientDataError, require_columns


def summarize_replicates(
    replicates: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Collapse replicate measurements to one observation per feature x condition x time.

    Returns:
    --------
    pd.DataFrame
        Key columns, the mean as config.value_column, and 'n_replicates'
    """
    config = config or ShrinkageConfig()
    require_columns(
        replicates, [*config.key_columns, config.replicate_value_column], context="replicate table"
    )

    summary = (
        replicates.dropna(subset=[config.replicate_value_column])
        .groupby(config.key_columns)[config.replicate_value_column]
        .agg(["mean", "size"])
        .rename(columns={"mean": config.value_column, "size": "n_replicates"})
        .reset_index()
    )
    return summary


def estimate_noise_components(
    replicates: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    max_iter: int = 100,
    tol: float = 1e-10,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Estimate feature-level and condition-level variance components.

    Parameters:
    -----------
    replicates : pd.DataFrame
        Long table with feature, condition and time columns and one row per
        replicate measurement (config.replicate_value_column)
    config : ShrinkageConfig, optional
        Column configuration
    max_iter : int
        Maximum number of backfitting sweeps
    tol : float
        Convergence tolerance on the condition component

    Returns:
    --------
    Tuple[pd.DataFrame, pd.DataFrame]
        (feature variances [feature, feature_variance],
         condition variances [condition columns..., condition_variance])

    Raises:
    -------
    InsufficientDataError
        If no feature x condition x time group has two or more replicates
    ValueError
        If max_iter is less than 1
    """
    config = config or ShrinkageConfig()
    if max_iter < 1:
        raise ValueError(f"max_iter must be at least 1, got {max_iter}")
    require_columns(
        replicates, [*config.key_columns, config.replicate_value_column], context="replicate table"
    )

    groups = (
        replicates.dropna(subset=[config.replicate_value_column])
        .groupby(config.key_columns)[config.replicate_value_column]
        .agg(["var", "size"])
        .reset_index()
    )
    groups = groups[(groups["size"] >= 2) & groups["var"].notna()].reset_index(drop=True)

    if groups.empty:
        raise InsufficientDataError(
            "Noise model needs at least one feature/condition/time group with two or more replicates"
        )

    s2 = groups["var"].astype(float)
    by_feature = groups[config.feature_column]
    by_condition = [groups[col] for col in config.condition_columns]

    condition_part = pd.Series(0.0, index=groups.index)
    for iteration in range(max_iter):
        feature_part = (s2 - condition_part).groupby(by_feature).transform("mean").clip(lower=0)
        updated = (s2 - feature_part).groupby(by_condition).transform("mean").clip(lower=0)
        converged = np.max(np.abs(updated - condition_part)) < tol
        condition_part = updated
        if converged:
            break
    feature_part = (s2 - condition_part).groupby(by_feature).transform("mean").clip(lower=0)

    groups[config.feature_variance_column] = feature_part
    groups[config.condition_variance_column] = condition_part

    feature_variances = (
        groups.groupby(config.feature_column, as_index=False)[config.feature_variance_column].first()
    )
    condition_variances = (
        groups.groupby(config.condition_columns, as_index=False)[config.condition_variance_column].first()
    )

    if config.verbose:
        print("Noise model estimated:")
        print(f"  Replicate groups used: {len(groups)} (backfitting sweeps: {iteration + 1})")
        print(f"  Features: {len(feature_variances)}, median variance "
              f"{feature_variances[config.feature_variance_column].median():.4g}")
        print(f"  Conditions: {len(condition_variances)}, median excess variance "
              f"{condition_variances[config.condition_variance_column].median():.4g}")

    return feature_variances, condition_variances


def attach_variance_components(
    observations: pd.DataFrame,
    feature_variances: pd.DataFrame,
    condition_variances: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Join feature-level and condition-level variances onto an observation table.

    Observations without an estimate keep NaN variances; standardization
    rejects them with InvalidVarianceError.
    """
    config = config or ShrinkageConfig()
    require_columns(feature_variances, [config.feature_column, config.feature_variance_column],
                    context="feature variance table")
    require_columns(condition_variances, [*config.condition_columns, config.condition_variance_column],
                    context="condition variance table")

    attached = observations.drop(
        columns=[config.feature_variance_column, config.condition_variance_column],
        errors="ignore",
    )
    attached = attached.merge(
        feature_variances[[config.feature_column, config.feature_variance_column]],
        on=config.feature_column, how="left", validate="many_to_one",
    )
    attached = attached.merge(
        condition_variances[[*config.condition_columns, config.condition_variance_column]],
        on=config.condition_columns, how="left", validate="many_to_one",
    )

    if config.verbose:
        n_missing = int(
            attached[[config.feature_variance_column, config.condition_variance_column]]
            .isna().any(axis=1).sum()
        )
        if n_missing:
            print(f"Warning: {n_missing} observations have no variance estimate")

    return attached
