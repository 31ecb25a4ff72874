"""
Export Module for the Timecourse Toolkit

Writes shrinkage results and the per-time pi0 table to CSV, and records the
analysis configuration as a timestamped Python file so a run can be repeated.
"""

import pandas as pd
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import ShrinkageConfig


def export_shrinkage_results(
    results: pd.DataFrame,
    pi0_table: pd.DataFrame,
    output_prefix: str = "timecourse_shrinkage",
    summary: Optional[pd.DataFrame] = None,
    discoveries_only: bool = False,
    lfdr_threshold: float = 0.2,
) -> Dict[str, str]:
    """
    Export shrinkage results, the pi0 table and an optional per-time summary.

    Parameters:
    -----------
    results : pd.DataFrame
        Output table of run_timecourse_shrinkage
    pi0_table : pd.DataFrame
        Per-time pi0 estimates
    output_prefix : str
        Prefix for output filenames
    summary : pd.DataFrame, optional
        Output of display_shrinkage_summary
    discoveries_only : bool
        Only export rows with local_fdr < lfdr_threshold
    lfdr_threshold : float
        Threshold used when discoveries_only is True

    Returns:
    --------
    dict
        Dictionary of exported files
    """
    print("Exporting shrinkage results...")

    exported_files = {}

    if discoveries_only:
        export_df = results[results["local_fdr"] < lfdr_threshold]
        print(f"  {len(export_df)} observations with lfdr < {lfdr_threshold}")
    else:
        export_df = results

    results_file = f"{output_prefix}_results.csv"
    export_df.to_csv(results_file, index=False)
    exported_files["results"] = results_file
    print(f"Shrinkage results exported to: {results_file}")

    pi0_file = f"{output_prefix}_pi0_by_time.csv"
    pi0_table.to_csv(pi0_file, index=False)
    exported_files["pi0_table"] = pi0_file
    print(f"pi0 table exported to: {pi0_file}")

    if summary is not None and not summary.empty:
        summary_file = f"{output_prefix}_summary.csv"
        summary.to_csv(summary_file, index=False)
        exported_files["summary"] = summary_file
        print(f"Summary exported to: {summary_file}")

    return exported_files


def export_timestamped_config(
    config: ShrinkageConfig,
    output_prefix: str = "timecourse_shrinkage",
    analysis_description: str = "Timecourse local-FDR shrinkage",
    computed_values: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Export the analysis configuration as a timestamped Python file.

    Parameters:
    -----------
    config : ShrinkageConfig
        Configuration used for the run
    output_prefix : str
        Prefix for the configuration filename
    analysis_description : str
        Description of the analysis
    computed_values : dict, optional
        Additional computed values (e.g. pi0 per time) written as comments

    Returns:
    --------
    str
        Path to the exported configuration file
    """
    config_dict = config.to_dict()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config_file = f"{output_prefix}_config_{timestamp}.py"

    print(f"Exporting analysis configuration to: {config_file}")

    with open(config_file, "w", encoding="utf-8") as f:
        f.write(
            "# =============================================================================\n"
        )
        f.write("# TIMECOURSE SHRINKAGE CONFIGURATION\n")
        f.write(f"# Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write(f"# Analysis: {analysis_description}\n")
        f.write(
            "# =============================================================================\n\n"
        )

        section_configs = [
            (
                1,
                "OBSERVATION TABLE COLUMNS",
                [
                    "feature_column",
                    "condition_columns",
                    "time_column",
                    "value_column",
                    "feature_variance_column",
                    "condition_variance_column",
                    "replicate_value_column",
                ],
            ),
            (
                2,
                "NULL FRACTION (PI0) ESTIMATION",
                ["pvalue_lambda", "pi0_method", "pi0_floor", "min_observations"],
            ),
            (
                3,
                "P-VALUE DENSITY AND LOCAL FDR",
                [
                    "density_transform",
                    "density_bandwidth",
                    "density_scope",
                    "density_grid_size",
                    "monotone_density",
                ],
            ),
            (4, "REPORTING", ["lfdr_threshold", "verbose"]),
        ]

        for section_num, section_name, param_names in section_configs:
            _write_config_section(
                f, section_name, config_dict, param_names, section_num
            )

        if computed_values:
            f.write(
                "# =============================================================================\n"
            )
            f.write("# COMPUTED VALUES (for reference)\n")
            f.write(
                "# =============================================================================\n"
            )

            for key, value in computed_values.items():
                if isinstance(value, dict):
                    f.write(f"# {key}:\n")
                    for sub_key, sub_value in value.items():
                        f.write(f"#   {sub_key}: {sub_value}\n")
                else:
                    f.write(f"# {key}: {value}\n")

    return config_file


def _write_config_section(
    file_handle,
    section_name: str,
    config_dict: Dict[str, Any],
    param_names: List[str],
    section_number: int = 1,
) -> None:
    """Write a configuration section to file."""

    file_handle.write(
        "# =============================================================================\n"
    )
    file_handle.write(f"# {section_number}. {section_name}\n")
    file_handle.write(
        "# =============================================================================\n"
    )

    for param in param_names:
        if param in config_dict:
            value = config_dict[param]
            file_handle.write(f"{param} = {repr(value)}\n")

    file_handle.write("\n")
