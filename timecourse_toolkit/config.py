"""
Configuration for timecourse local-FDR shrinkage analysis.

A single dataclass collects the column names of the observation table and the
tuning parameters of each pipeline stage. Every stage function takes the
config explicitly; nothing is read from module-level state.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Union


VALID_PI0_METHODS = ("glm", "stratified")
VALID_DENSITY_TRANSFORMS = ("probit", "identity")
VALID_DENSITY_SCOPES = ("stratum", "global")
VALID_BANDWIDTH_RULES = ("scott", "silverman")


@dataclass
class ShrinkageConfig:
    """Configuration for the standardize -> pi0 -> local FDR pipeline."""

    # Observation table columns
    feature_column: str = "feature"
    condition_columns: List[str] = field(default_factory=lambda: ["condition"])
    time_column: str = "time"
    value_column: str = "value"
    feature_variance_column: str = "feature_variance"
    condition_variance_column: str = "condition_variance"

    # Replicate table column (noise model input)
    replicate_value_column: str = "measurement"

    # Null fraction (pi0) estimation
    pvalue_lambda: float = 0.5  # Storey tuning parameter for I(p > lambda)
    pi0_method: str = "glm"  # 'glm' (binomial GLM on time) or 'stratified'
    pi0_floor: float = 0.0  # Lower bound applied after the monotone fit
    min_observations: int = 20  # Below this the pi0 fit is refused

    # p-value density estimation for local FDR
    density_transform: str = "probit"  # 'probit' or 'identity'
    density_bandwidth: Union[str, float] = "scott"  # gaussian_kde bw_method
    density_scope: str = "stratum"  # 'stratum' (per time value) or 'global'
    density_grid_size: int = 512  # Evaluation grid for the KDE
    monotone_density: bool = True  # Force f(p) non-increasing in p

    # Reporting
    lfdr_threshold: float = 0.2  # Discoveries are lfdr < threshold in summaries
    verbose: bool = True

    @property
    def key_columns(self) -> List[str]:
        """Feature, condition and time columns identifying one observation."""
        return [self.feature_column, *self.condition_columns, self.time_column]

    def validate(self):
        """Validate parameter ranges and choices, raising ValueError on problems"""
        if not self.condition_columns:
            raise ValueError("condition_columns must name at least one column")

        if not 0.0 < self.pvalue_lambda < 1.0:
            raise ValueError(
                f"pvalue_lambda must be in (0, 1), got {self.pvalue_lambda}"
            )

        if self.pi0_method not in VALID_PI0_METHODS:
            raise ValueError(
                f"Unknown pi0_method '{self.pi0_method}'. Choose: {', '.join(VALID_PI0_METHODS)}"
            )

        if not 0.0 <= self.pi0_floor < 1.0:
            raise ValueError(f"pi0_floor must be in [0, 1), got {self.pi0_floor}")

        if self.min_observations < 2:
            raise ValueError("min_observations must be at least 2")

        if self.density_transform not in VALID_DENSITY_TRANSFORMS:
            raise ValueError(
                f"Unknown density_transform '{self.density_transform}'. "
                f"Choose: {', '.join(VALID_DENSITY_TRANSFORMS)}"
            )

        if isinstance(self.density_bandwidth, str):
            if self.density_bandwidth not in VALID_BANDWIDTH_RULES:
                raise ValueError(
                    f"Unknown density_bandwidth rule '{self.density_bandwidth}'. "
                    f"Choose: {', '.join(VALID_BANDWIDTH_RULES)} or a positive number"
                )
        elif not self.density_bandwidth > 0:
            raise ValueError("Numeric density_bandwidth must be positive")

        if self.density_scope not in VALID_DENSITY_SCOPES:
            raise ValueError(
                f"Unknown density_scope '{self.density_scope}'. "
                f"Choose: {', '.join(VALID_DENSITY_SCOPES)}"
            )

        if self.density_grid_size < 16:
            raise ValueError("density_grid_size must be at least 16")

        if not 0.0 < self.lfdr_threshold <= 1.0:
            raise ValueError("lfdr_threshold must be in (0, 1]")

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary of all settings (used for exported config records)"""
        return asdict(self)
