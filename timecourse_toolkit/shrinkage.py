"""
Local-FDR Shrinkage Module

Converts p-values and time-specific null fractions into local false discovery
rates, lfdr(p) = pi0 * f0(p) / f(p), and shrinks each observation toward zero
by its lfdr: shrunken = value * (1 - lfdr).

f0 is the uniform null density of a calibrated two-sided p-value (f0 = 1).
f is a smoothed estimate of the observed p-value density:

- 'probit' (default): kernel density g of q = Phi^-1(p), mapped back to the
  p-scale as f(p) = g(q) / phi_h(q). Under the null q is standard normal and
  its kernel estimate is N(0, 1 + h^2) for kernel variance h^2, so dividing
  by that smoothed null phi_h (not phi) keeps the null flat out into the
  tails. The signal spike near p = 0 is spread out where a kernel can
  resolve it.
- 'identity': kernel density of p itself, reflected at 0 and 1.

Either estimate is optionally made non-increasing in p (signal p-values are
stochastically smaller than uniform), which keeps lfdr non-decreasing in p.

Clamp policy: the density ratio can leave [0, 1] through smoothing error or a
conservative pi0. Such values are clamped into [0, 1], flagged in the
'lfdr_clamped' column and reported with an OutOfRangeEstimateWarning.
"""

import warnings

import numpy as np
import pandas as pd
from scipy.stats import gaussian_kde, norm
from sklearn.isotonic import IsotonicRegression
from typing import Optional, Tuple

from .config import ShrinkageConfig
from .records import ShrinkageResult, StandardizedObservation
from .validation import (
    InsufficientDataError,
    OutOfRangeEstimateWarning,
    check_pvalues,
    require_columns,
)


SHRINKAGE_COLUMNS = ["local_fdr", "lfdr_clamped", "shrunken_value"]

# Keep p away from 0 and 1 so the probit transform stays finite
_P_EPS = 1e-300
_MAX_LOG_RATIO = 700.0


def _clip_pvalues(pvalues: np.ndarray) -> np.ndarray:
    return np.clip(pvalues, _P_EPS, 1.0 - np.finfo(float).eps)


def _fit_kde(sample: np.ndarray, bandwidth) -> gaussian_kde:
    if len(sample) < 2 or np.ptp(sample) == 0:
        raise InsufficientDataError(
            f"p-value density estimation needs at least two distinct p-values, "
            f"got {len(np.unique(sample))}"
        )
    try:
        return gaussian_kde(sample, bw_method=bandwidth)
    except np.linalg.LinAlgError as e:
        raise InsufficientDataError(f"p-value density estimation failed: {e}") from e


def estimate_pvalue_density(
    pvalues,
    config: Optional[ShrinkageConfig] = None,
    at=None,
    monotone: Optional[bool] = None,
) -> np.ndarray:
    """
    Smoothed density of p-values, evaluated at ``at`` (defaults to the p-values).

    Parameters:
    -----------
    pvalues : array-like
        Observed p-values used to fit the density
    config : ShrinkageConfig, optional
        density_transform, density_bandwidth (gaussian_kde bw_method: 'scott',
        'silverman' or a numeric bandwidth factor) and density_grid_size
    at : array-like, optional
        p-values at which to evaluate the density
    monotone : bool, optional
        Constrain the density to be non-increasing in p; defaults to
        config.monotone_density

    Returns:
    --------
    np.ndarray
        Density values on the p-scale (1.0 everywhere for pure uniform data)
    """
    config = config or ShrinkageConfig()
    monotone = config.monotone_density if monotone is None else monotone
    p = _clip_pvalues(check_pvalues(pvalues))
    at_p = p if at is None else _clip_pvalues(check_pvalues(at))

    if config.density_transform == "probit":
        q = norm.ppf(p)
        at_q = norm.ppf(at_p)
        kde = _fit_kde(q, config.density_bandwidth)

        grid = np.linspace(
            min(q.min(), at_q.min()), max(q.max(), at_q.max()), config.density_grid_size
        )
        # Null smoothed with the same kernel: N(0, 1 + h^2)
        null_scale = np.sqrt(1.0 + float(kde.covariance[0, 0]))
        log_ratio = kde.logpdf(grid) - norm.logpdf(grid, scale=null_scale)
        grid_density = np.exp(np.minimum(log_ratio, _MAX_LOG_RATIO))
        grid_position, at_position = grid, at_q
    else:
        kde = _fit_kde(p, config.density_bandwidth)

        grid = np.linspace(0.0, 1.0, config.density_grid_size)
        # Reflect at both boundaries so mass is not lost outside [0, 1]
        grid_density = kde(grid) + kde(-grid) + kde(2.0 - grid)
        grid_position, at_position = grid, at_p

    if monotone:
        iso = IsotonicRegression(increasing=False)
        grid_density = iso.fit_transform(grid_position, grid_density)

    return np.interp(at_position, grid_position, grid_density)


def calculate_local_fdr(
    pvalues,
    pi0,
    density,
    warn: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Local FDR from pi0 and the p-value density: lfdr = pi0 * 1 / f(p).

    Parameters:
    -----------
    pvalues : array-like
        p-values (only used for validation and shape)
    pi0 : float or array-like
        Null fraction for each p-value (or one value for all)
    density : array-like
        Estimated p-value density f(p) at each p-value
    warn : bool, default True
        Issue an OutOfRangeEstimateWarning when any value is clamped

    Returns:
    --------
    Tuple[np.ndarray, np.ndarray]
        (lfdr clamped to [0, 1], boolean mask of clamped entries)
    """
    pvalues = check_pvalues(pvalues)
    pi0 = np.broadcast_to(np.asarray(pi0, dtype=float), pvalues.shape)
    density = np.asarray(density, dtype=float)

    if density.shape != pvalues.shape:
        raise ValueError(
            f"density has shape {density.shape} but pvalues has shape {pvalues.shape}"
        )
    if np.isnan(density).any() or np.isnan(pi0).any():
        raise ValueError("pi0 and density must not contain NaN")

    with np.errstate(divide="ignore", invalid="ignore"):
        raw = np.where(density > 0, pi0 / density, np.inf)

    clamped = (raw < 0) | (raw > 1)
    lfdr = np.clip(raw, 0.0, 1.0)

    if warn and clamped.any():
        warnings.warn(
            f"{int(clamped.sum())} of {len(lfdr)} local FDR estimates fell outside [0, 1] "
            f"and were clamped (max raw value {np.max(raw):.3g})",
            OutOfRangeEstimateWarning,
            stacklevel=2,
        )

    return lfdr, clamped


def apply_local_fdr_shrinkage(
    observations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Add 'local_fdr', 'lfdr_clamped' and 'shrunken_value' columns.

    The p-value density is estimated within each time stratum when
    config.density_scope == 'stratum'; strata smaller than
    config.min_observations use the density of the whole table instead.

    Parameters:
    -----------
    observations : pd.DataFrame
        Standardized observations with 'p_value' and 'pi0' columns
    config : ShrinkageConfig, optional
        Density and column settings

    Returns:
    --------
    pd.DataFrame
        New table with the shrinkage columns added
    """
    config = config or ShrinkageConfig()
    require_columns(
        observations,
        [config.time_column, config.value_column, "p_value", "pi0"],
        context="standardized table",
    )

    result = observations.drop(
        columns=[c for c in SHRINKAGE_COLUMNS if c in observations.columns]
    ).copy()
    pvalues = check_pvalues(result["p_value"].to_numpy())
    times = result[config.time_column].astype(float).to_numpy()

    density = np.empty(len(result), dtype=float)
    global_density = None
    n_fallback = 0

    if config.density_scope == "global":
        density[:] = estimate_pvalue_density(pvalues, config)
    else:
        for time_value in np.unique(times):
            in_stratum = times == time_value
            stratum_p = pvalues[in_stratum]
            if len(stratum_p) >= config.min_observations and np.ptp(stratum_p) > 0:
                density[in_stratum] = estimate_pvalue_density(stratum_p, config)
            else:
                if global_density is None:
                    global_density = estimate_pvalue_density(pvalues, config)
                density[in_stratum] = global_density[in_stratum]
                n_fallback += 1

    lfdr, clamped = calculate_local_fdr(
        pvalues, result["pi0"].to_numpy(dtype=float), density, warn=True
    )

    result["local_fdr"] = lfdr
    result["lfdr_clamped"] = clamped
    result["shrunken_value"] = result[config.value_column].astype(float) * (1.0 - lfdr)

    if config.verbose:
        print(f"Local FDR shrinkage ({config.density_transform} density, "
              f"{config.density_scope} scope):")
        if n_fallback:
            print(f"  -> {n_fallback} small time strata used the pooled density")
        print(f"  -> Clamped estimates: {int(clamped.sum())}")
        print(f"  -> Observations with lfdr < {config.lfdr_threshold}: "
              f"{int((lfdr < config.lfdr_threshold).sum())} of {len(lfdr)}")

    return result


def shrink_observation(
    observation: StandardizedObservation,
    pi0: float,
    density: float,
) -> ShrinkageResult:
    """Shrink one standardized observation given its stratum pi0 and f(p)."""
    lfdr, clamped = calculate_local_fdr([observation.p_value], pi0, [density])
    return ShrinkageResult(
        feature=observation.feature,
        condition=observation.condition,
        time=observation.time,
        value=observation.value,
        feature_variance=observation.feature_variance,
        condition_variance=observation.condition_variance,
        z_score=observation.z_score,
        p_value=observation.p_value,
        pi0=float(pi0),
        local_fdr=float(lfdr[0]),
        shrunken_value=float(observation.value * (1.0 - lfdr[0])),
        lfdr_clamped=bool(clamped[0]),
    )
