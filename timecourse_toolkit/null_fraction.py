"""
Timepoint-Stratified Null Fraction Estimation

Estimates pi0, the fraction of true-null observations, as a function of
elapsed time instead of a single global constant. Early timepoints are mostly
null while late timepoints carry most of the signal, so a global pi0 would be
too conservative late and too liberal early.

Method:
-------
1. Conservative proxy per observation: I(p > lambda) / (1 - lambda)
   (Storey, 2002). Under the null p is uniform, so E[I(p > lambda)] is
   pi0 * (1 - lambda) plus a non-negative contribution from signal.
2. Regress I(p > lambda) on time with a binomial GLM (logit link), which
   borrows strength across timepoints (Boca & Leek, 2018), or use the raw
   per-time proportions ('stratified').
3. Enforce pi0 non-increasing in time with weighted isotonic regression and
   clip to [pi0_floor, 1].
"""

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import PerfectSeparationError
from sklearn.isotonic import IsotonicRegression
from typing import Optional

from .config import ShrinkageConfig
from .validation import InsufficientDataError, check_pvalues, require_columns


PI0_TABLE_COLUMNS = ["n_observations", "pi0_raw", "pi0"]


def estimate_global_pi0(pvalues, pvalue_lambda: float = 0.5) -> float:
    """
    Storey's single-lambda pi0 estimate, clipped to [0, 1].

    Parameters:
    -----------
    pvalues : array-like
        p-values in [0, 1]
    pvalue_lambda : float
        Tuning parameter; p-values above it are treated as null-dominated

    Returns:
    --------
    float
        Estimated null fraction
    """
    pvalues = check_pvalues(pvalues)
    if len(pvalues) == 0:
        raise InsufficientDataError("Cannot estimate pi0 from zero p-values")
    pi0 = np.mean(pvalues > pvalue_lambda) / (1.0 - pvalue_lambda)
    return float(np.clip(pi0, 0.0, 1.0))


def _fit_glm_null_proportion(times: np.ndarray, indicator: np.ndarray, eval_times: np.ndarray) -> np.ndarray:
    """Binomial GLM of I(p > lambda) on (standardized) time, evaluated at eval_times."""
    center = times.mean()
    scale = times.std() or 1.0

    design = sm.add_constant((times - center) / scale, has_constant="add")
    model = sm.GLM(indicator, design, family=sm.families.Binomial())
    fit = model.fit()

    eval_design = sm.add_constant((eval_times - center) / scale, has_constant="add")
    predicted = np.asarray(fit.predict(eval_design), dtype=float)
    if not np.isfinite(predicted).all():
        raise ValueError("non-finite GLM predictions")
    return predicted


def estimate_pi0_by_time(
    standardized: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Estimate pi0 for every distinct time value.

    Parameters:
    -----------
    standardized : pd.DataFrame
        Observation table with a 'p_value' column and the configured time column
    config : ShrinkageConfig, optional
        Estimation settings (pvalue_lambda, pi0_method, pi0_floor, min_observations)

    Returns:
    --------
    pd.DataFrame
        One row per time (sorted ascending) with 'n_observations', 'pi0_raw'
        (per-time proxy before smoothing) and 'pi0' (fitted, non-increasing in time)

    Raises:
    -------
    InsufficientDataError
        If fewer than config.min_observations observations are supplied
    """
    config = config or ShrinkageConfig()
    require_columns(standardized, [config.time_column, "p_value"], context="standardized table")

    pvalues = check_pvalues(standardized["p_value"].to_numpy())
    times = standardized[config.time_column].astype(float).to_numpy()

    n_total = len(pvalues)
    if n_total < config.min_observations:
        raise InsufficientDataError(
            f"pi0 estimation needs at least {config.min_observations} observations, "
            f"got {n_total}"
        )

    lam = config.pvalue_lambda
    indicator = (pvalues > lam).astype(float)

    strata = (
        pd.DataFrame({config.time_column: times, "indicator": indicator})
        .groupby(config.time_column)["indicator"]
        .agg(["size", "mean"])
        .rename(columns={"size": "n_observations", "mean": "null_proportion"})
        .sort_index()
    )
    strata["pi0_raw"] = np.clip(strata["null_proportion"] / (1.0 - lam), 0.0, 1.0)
    unique_times = strata.index.to_numpy(dtype=float)

    if config.verbose:
        print(f"Estimating pi0 across {len(unique_times)} time values "
              f"({n_total} observations, lambda = {lam})")

    # Single stratum: the global estimate
    if len(unique_times) == 1:
        fitted = np.array([estimate_global_pi0(pvalues, lam)])
        method_used = "global"
    elif config.pi0_method == "glm" and 0.0 < indicator.mean() < 1.0:
        try:
            fitted = _fit_glm_null_proportion(times, indicator, unique_times) / (1.0 - lam)
            method_used = "glm"
        except (PerfectSeparationError, np.linalg.LinAlgError, ValueError) as e:
            if config.verbose:
                print(f"  -> GLM fit failed ({e}); using per-time proportions")
            fitted = strata["pi0_raw"].to_numpy()
            method_used = "stratified"
    else:
        fitted = strata["pi0_raw"].to_numpy()
        method_used = "stratified" if config.pi0_method == "stratified" else "constant"

    # Monotone in time: never increasing as time (evidence) grows
    if len(unique_times) > 1:
        iso = IsotonicRegression(increasing=False, out_of_bounds="clip")
        fitted = iso.fit_transform(
            unique_times, fitted, sample_weight=strata["n_observations"].to_numpy()
        )

    strata["pi0"] = np.clip(fitted, config.pi0_floor, 1.0)

    pi0_table = strata.reset_index()[[config.time_column, *PI0_TABLE_COLUMNS]]
    pi0_table["n_observations"] = pi0_table["n_observations"].astype(int)

    if config.verbose:
        print(f"  -> pi0 method: {method_used}")
        for _, row in pi0_table.iterrows():
            print(f"     time {row[config.time_column]:g}: pi0 = {row['pi0']:.3f} "
                  f"(raw {row['pi0_raw']:.3f}, n = {int(row['n_observations'])})")

    return pi0_table


def assign_pi0(
    standardized: pd.DataFrame,
    pi0_table: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """Attach each observation's stratum pi0 as a 'pi0' column (returns a new table)."""
    config = config or ShrinkageConfig()
    require_columns(pi0_table, [config.time_column, "pi0"], context="pi0 table")

    lookup = pd.Series(
        pi0_table["pi0"].to_numpy(),
        index=pi0_table[config.time_column].astype(float),
    )
    result = standardized.drop(columns=["pi0"], errors="ignore").copy()
    result["pi0"] = result[config.time_column].astype(float).map(lookup)

    if result["pi0"].isna().any():
        missing_times = sorted(result.loc[result["pi0"].isna(), config.time_column].unique())
        raise ValueError(f"No pi0 estimate for time values: {missing_times}")

    return result
