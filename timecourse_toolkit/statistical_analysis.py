"""
Statistical Analysis Module for Timecourse Data

This module chains the pipeline stages into one configuration-driven call:

    filter -> standardize -> pi0 by time -> local FDR shrinkage

Each stage takes its inputs explicitly and returns a new table; nothing is
mutated in place and no state is kept between calls.
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple

from .config import ShrinkageConfig
from .null_fraction import assign_pi0, estimate_pi0_by_time
from .shrinkage import apply_local_fdr_shrinkage
from .standardization import filter_uninformative_observations, standardize_observations
from .validation import validate_observation_table


def run_timecourse_shrinkage(
    observations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Run the complete standardization and local-FDR shrinkage pipeline.

    Parameters:
    -----------
    observations : pd.DataFrame
        Observation table with feature, condition, time, value and the two
        variance component columns
    config : ShrinkageConfig, optional
        Configuration object with column names and analysis parameters

    Returns:
    --------
    Tuple[pd.DataFrame, pd.DataFrame]
        (results with z_score, p_value, pi0, local_fdr, lfdr_clamped and
        shrunken_value columns; per-time pi0 table)

    Raises:
    -------
    ValueError
        On configuration errors or missing columns
    InvalidVarianceError
        If any informative observation has a non-positive combined variance
    InsufficientDataError
        If too few observations remain for the pi0 fit
    """
    config = config or ShrinkageConfig()

    if config.verbose:
        print("=" * 60)
        print("TIMECOURSE LOCAL-FDR SHRINKAGE")
        print("=" * 60)

    try:
        config.validate()
    except ValueError as e:
        raise ValueError(f"Configuration error: {e}") from e

    # Step 1: Structural checks; variance problems are raised by the standardizer
    validation = validate_observation_table(observations, config, verbose=config.verbose)
    diagnostics = validation['diagnostics']
    if (
        diagnostics['missing_columns']
        or diagnostics['n_missing_times']
        or diagnostics['n_negative_times']
    ):
        raise ValueError(
            "Observation table failed validation: "
            + "; ".join(e for e in validation['errors'] if "variance" not in e)
        )

    # Step 2: Drop zero / missing values, then z-scores and p-values
    informative = filter_uninformative_observations(observations, config)
    standardized = standardize_observations(informative, config)

    if config.verbose:
        print(f"Standardized {len(standardized)} observations "
              f"(median |z| = {standardized['z_score'].abs().median():.3f})")

    # Step 3: pi0 as a monotone function of time
    pi0_table = estimate_pi0_by_time(standardized, config)
    with_pi0 = assign_pi0(standardized, pi0_table, config)

    # Step 4: Local FDR and shrinkage
    results = apply_local_fdr_shrinkage(with_pi0, config)

    if config.verbose:
        print("\nPipeline completed successfully!")

    return results, pi0_table


def display_shrinkage_summary(
    results: pd.DataFrame,
    pi0_table: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Per-time summary of a shrinkage run.

    Parameters:
    -----------
    results : pd.DataFrame
        Output of run_timecourse_shrinkage
    pi0_table : pd.DataFrame
        Per-time pi0 estimates from run_timecourse_shrinkage
    config : ShrinkageConfig, optional
        Supplies the time column and lfdr_threshold

    Returns:
    --------
    pd.DataFrame
        One row per time: n_observations, pi0, mean_local_fdr, n_discoveries,
        median_shrinkage (median of 1 - |shrunken| / |raw|)
    """
    config = config or ShrinkageConfig()
    time_col = config.time_column

    magnitude_kept = (
        results["shrunken_value"].abs() / results[config.value_column].abs()
    ).replace([np.inf, -np.inf], np.nan)

    grouped = results.assign(
        _discovery=results["local_fdr"] < config.lfdr_threshold,
        _shrinkage=1.0 - magnitude_kept,
    ).groupby(time_col)

    summary = pd.DataFrame({
        "n_observations": grouped.size(),
        "mean_local_fdr": grouped["local_fdr"].mean(),
        "n_discoveries": grouped["_discovery"].sum().astype(int),
        "median_shrinkage": grouped["_shrinkage"].median(),
    }).reset_index()
    summary = summary.merge(pi0_table[[time_col, "pi0"]], on=time_col, how="left")
    summary = summary[[time_col, "n_observations", "pi0", "mean_local_fdr",
                       "n_discoveries", "median_shrinkage"]]

    if config.verbose:
        print("\n" + "=" * 60)
        print("SHRINKAGE SUMMARY")
        print("=" * 60)
        print(f"Total observations: {len(results)}")
        print(f"Discoveries (lfdr < {config.lfdr_threshold}): "
              f"{int((results['local_fdr'] < config.lfdr_threshold).sum())}")
        if "lfdr_clamped" in results.columns:
            print(f"Clamped local FDR estimates: {int(results['lfdr_clamped'].sum())}")
        print()
        print(summary.to_string(index=False, float_format=lambda v: f"{v:.3f}"))

    return summary
