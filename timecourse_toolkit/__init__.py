"""
Timecourse Toolkit
==================

A Python library for finding and shrinking signal in gene-expression
timecourses. Observations are standardized against a replicate-based noise
model, the fraction of null observations (pi0) is estimated as a monotone
function of time, and every observation is shrunk toward zero by its local
false discovery rate.

QUICK START EXAMPLE:
-------------------
    import timecourse_toolkit as tctk

    # 1. Simulate (or load) an observation table
    observations = tctk.simulate_timecourse_observations(n_features=1000)

    # 2. Run the pipeline
    config = tctk.ShrinkageConfig()
    results, pi0_table = tctk.run_timecourse_shrinkage(observations, config)

    # 3. Summarize, plot and export
    tctk.display_shrinkage_summary(results, pi0_table, config)
    tctk.plot_pi0_by_time(pi0_table, config)
    tctk.export_shrinkage_results(results, pi0_table)

MODULE OVERVIEW:
===============

data_import
    Purpose: Load delimited timecourse tables and reshape them to long format
    Key functions: load_timecourse_data(), tidy_wide_timecourse(), normalize_to_time_zero()

noise_model
    Purpose: Feature-level and condition-level variance components from replicates
    Key functions: estimate_noise_components(), attach_variance_components()

standardization
    Purpose: Drop uninformative zeros; z-scores and two-sided p-values
    Key functions: filter_uninformative_observations(), standardize_observations()

null_fraction
    Purpose: pi0 as a non-increasing function of time
    Key functions: estimate_pi0_by_time(), estimate_global_pi0()

shrinkage
    Purpose: Local FDR and shrinkage toward zero
    Key functions: apply_local_fdr_shrinkage(), calculate_local_fdr()

statistical_analysis
    Purpose: The complete pipeline and its summary
    Key functions: run_timecourse_shrinkage(), display_shrinkage_summary()

visualization / export / simulation
    Diagnostic figures, CSV and configuration export, synthetic data

ERROR HANDLING:
==============
- InvalidVarianceError: an observation's combined variance is not positive
- InsufficientDataError: too few observations for a stable pi0 or noise fit
- OutOfRangeEstimateWarning: local FDR estimates were clamped into [0, 1]
"""

from . import config
from . import records
from . import validation
from . import data_import
from . import noise_model
from . import standardization
from . import null_fraction
from . import shrinkage
from . import statistical_analysis
from . import visualization
from . import export
from . import simulation

__version__ = "0.1.0"

from .config import ShrinkageConfig

from .records import (
    Observation,
    StandardizedObservation,
    ShrinkageResult,
    observations_to_frame,
    frame_to_observations,
)

from .validation import (
    validate_observation_table,
    InvalidVarianceError,
    InsufficientDataError,
    OutOfRangeEstimateWarning,
)

from .data_import import (
    load_timecourse_data,
    tidy_wide_timecourse,
    normalize_to_time_zero,
)

from .noise_model import (
    estimate_noise_components,
    attach_variance_components,
    summarize_replicates,
)

from .standardization import (
    filter_uninformative_observations,
    standardize_observations,
    standardize_observation,
)

from .null_fraction import (
    estimate_pi0_by_time,
    estimate_global_pi0,
    assign_pi0,
)

from .shrinkage import (
    estimate_pvalue_density,
    calculate_local_fdr,
    apply_local_fdr_shrinkage,
    shrink_observation,
)

from .statistical_analysis import (
    run_timecourse_shrinkage,
    display_shrinkage_summary,
)

from .visualization import (
    plot_pi0_by_time,
    plot_pvalue_histograms,
    plot_shrinkage,
)

from .export import (
    export_shrinkage_results,
    export_timestamped_config,
)

from .simulation import (
    simulate_timecourse_observations,
    simulate_replicate_measurements,
)

__all__ = [
    # MODULES
    "config",
    "records",
    "validation",
    "data_import",
    "noise_model",
    "standardization",
    "null_fraction",
    "shrinkage",
    "statistical_analysis",
    "visualization",
    "export",
    "simulation",

    # CONFIGURATION AND RECORDS
    "ShrinkageConfig",
    "Observation",
    "StandardizedObservation",
    "ShrinkageResult",
    "observations_to_frame",
    "frame_to_observations",

    # VALIDATION AND ERRORS
    "validate_observation_table",
    "InvalidVarianceError",
    "InsufficientDataError",
    "OutOfRangeEstimateWarning",

    # DATA LOADING
    "load_timecourse_data",
    "tidy_wide_timecourse",
    "normalize_to_time_zero",

    # NOISE MODEL
    "estimate_noise_components",
    "attach_variance_components",
    "summarize_replicates",

    # PIPELINE STAGES
    "filter_uninformative_observations",
    "standardize_observations",
    "standardize_observation",
    "estimate_pi0_by_time",
    "estimate_global_pi0",
    "assign_pi0",
    "estimate_pvalue_density",
    "calculate_local_fdr",
    "apply_local_fdr_shrinkage",
    "shrink_observation",

    # PIPELINE
    "run_timecourse_shrinkage",
    "display_shrinkage_summary",

    # VISUALIZATION
    "plot_pi0_by_time",
    "plot_pvalue_histograms",
    "plot_shrinkage",

    # EXPORT
    "export_shrinkage_results",
    "export_timestamped_config",

    # SIMULATION
    "simulate_timecourse_observations",
    "simulate_replicate_measurements",
]
