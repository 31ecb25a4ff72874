"""
Data Validation Module for the Timecourse Toolkit

Exceptions raised by the pipeline stages, and checks for observation tables
that give interpretable error messages before any numerical work starts.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional

from .config import ShrinkageConfig


class InvalidVarianceError(Exception):
    """Raised when a combined variance is zero, negative or missing."""
    def __init__(self, message):
        super().__init__(message)


class InsufficientDataError(Exception):
    """Raised when too few observations remain for a stable estimate."""
    def __init__(self, message):
        super().__init__(message)


class OutOfRangeEstimateWarning(UserWarning):
    """Issued when local FDR estimates are clamped into [0, 1]."""


def require_columns(df: pd.DataFrame, columns: List[str], context: str = "observation table") -> None:
    """Raise ValueError naming any of ``columns`` missing from ``df``."""
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(
            f"Missing required columns in {context}: {missing}. "
            f"Available columns: {list(df.columns)}"
        )


def validate_observation_table(
    observations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    require_variances: bool = True,
    verbose: bool = True
) -> Dict:
    """
    Validate an observation table before standardization.

    Parameters:
    -----------
    observations : pd.DataFrame
        Long-format table with one row per feature x condition x time
    config : ShrinkageConfig, optional
        Column names to check; defaults to ShrinkageConfig()
    require_variances : bool, default True
        Whether feature- and condition-level variance columns must be present
    verbose : bool, default True
        Whether to print detailed validation results

    Returns:
    --------
    Dict containing validation results and diagnostic information
    """
    config = config or ShrinkageConfig()

    results = {
        'is_valid': True,
        'errors': [],
        'warnings': [],
        'diagnostics': {}
    }

    if verbose:
        print("OBSERVATION TABLE VALIDATION")
        print("=" * 50)

    # 1. Required columns
    required = [*config.key_columns, config.value_column]
    if require_variances:
        required += [config.feature_variance_column, config.condition_variance_column]
    missing_columns = [col for col in required if col not in observations.columns]
    if missing_columns:
        results['errors'].append(f"Missing required columns: {missing_columns}")
        results['is_valid'] = False

    n_rows = len(observations)
    n_zero = n_missing = n_missing_time = n_negative_time = n_duplicates = 0
    n_bad_variance = 0
    n_times = 0

    if not missing_columns:
        values = pd.to_numeric(observations[config.value_column], errors='coerce')
        times = pd.to_numeric(observations[config.time_column], errors='coerce')

        # 2. Values: zeros and missing are filtered later, report them here
        n_zero = int((values == 0).sum())
        n_missing = int(values.isna().sum())
        if n_zero:
            results['warnings'].append(
                f"{n_zero} observations have value exactly 0 and will be excluded"
            )
        if n_missing:
            results['warnings'].append(
                f"{n_missing} observations have missing or non-numeric values and will be excluded"
            )

        # 3. Time must be numeric and non-negative
        n_missing_time = int(times.isna().sum())
        if n_missing_time:
            results['errors'].append(
                f"{n_missing_time} observations have missing or non-numeric time"
            )
            results['is_valid'] = False
        n_negative_time = int((times < 0).sum())
        if n_negative_time:
            results['errors'].append(f"{n_negative_time} observations have negative time")
            results['is_valid'] = False
        n_times = int(times.nunique())

        # 4. Each feature x condition x time should appear once
        n_duplicates = int(observations.duplicated(subset=config.key_columns).sum())
        if n_duplicates:
            results['warnings'].append(
                f"{n_duplicates} duplicated feature/condition/time keys found"
            )

        # 5. Variance components must be non-negative with a positive sum
        #    (only for observations that survive filtering)
        if require_variances:
            informative = values.notna() & (values != 0)
            feature_var = pd.to_numeric(observations[config.feature_variance_column], errors='coerce')
            condition_var = pd.to_numeric(observations[config.condition_variance_column], errors='coerce')
            combined = feature_var + condition_var
            bad = informative & ((feature_var < 0) | (condition_var < 0) | ~(combined > 0))
            n_bad_variance = int(bad.sum())
            if n_bad_variance:
                results['errors'].append(
                    f"{n_bad_variance} observations have invalid variance components "
                    f"(negative, missing, or summing to zero)"
                )
                results['is_valid'] = False

    results['diagnostics'] = {
        'n_observations': n_rows,
        'n_zero_values': n_zero,
        'n_missing_values': n_missing,
        'n_missing_times': n_missing_time,
        'n_negative_times': n_negative_time,
        'n_duplicate_keys': n_duplicates,
        'n_invalid_variances': n_bad_variance,
        'n_distinct_times': n_times,
        'missing_columns': missing_columns,
    }

    if verbose:
        diag = results['diagnostics']
        print(f"Observations: {diag['n_observations']}")
        print(f"  Distinct time values: {diag['n_distinct_times']}")
        print(f"  Zero values (excluded): {diag['n_zero_values']}")
        print(f"  Missing values (excluded): {diag['n_missing_values']}")

        for warning in results['warnings']:
            print(f"  WARNING: {warning}")

        if results['errors']:
            print("\nVALIDATION FAILED")
            for error in results['errors']:
                print(f"  ERROR: {error}")
        else:
            print("\n✓ VALIDATION PASSED")

    return results


def check_pvalues(pvalues) -> np.ndarray:
    """Return p-values as a float array, raising ValueError if any fall outside [0, 1]."""
    pvalues = np.asarray(pvalues, dtype=float)
    if np.isnan(pvalues).any():
        raise ValueError(f"{int(np.isnan(pvalues).sum())} p-values are missing")
    if ((pvalues < 0) | (pvalues > 1)).any():
        raise ValueError("p-values must lie in [0, 1]")
    return pvalues
