"""
Data Import Module for the Timecourse Toolkit

Functions for loading timecourse expression tables and reshaping them into
the long observation format used by the rest of the toolkit.
"""

import os
from typing import List, Optional

import pandas as pd

from .config import ShrinkageConfig
from .validation import require_columns


def load_timecourse_data(
    data_file: str,
    sep: str = "\t",
    required_columns: Optional[List[str]] = None,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Load a delimited timecourse table.

    Parameters:
    -----------
    data_file : str
        Path to a tab-separated (default) or other delimited file
    sep : str
        Field separator passed to pandas.read_csv
    required_columns : list, optional
        Columns that must be present after loading
    verbose : bool
        Print the loaded shape

    Returns:
    --------
    pd.DataFrame
        Loaded table
    """
    if not os.path.exists(data_file):
        raise FileNotFoundError(f"Timecourse file not found: {data_file}")

    try:
        data = pd.read_csv(data_file, sep=sep)
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValueError(f"Error loading timecourse file: {e}") from e

    if verbose:
        print(f"✓ Loaded timecourse data: {data.shape}")

    if required_columns:
        require_columns(data, required_columns, context=os.path.basename(data_file))

    return data


def tidy_wide_timecourse(
    wide_data: pd.DataFrame,
    sample_annotations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    sample_column: str = "sample",
    value_name: Optional[str] = None,
) -> pd.DataFrame:
    """
    Reshape a feature x sample matrix into a long observation table.

    Parameters:
    -----------
    wide_data : pd.DataFrame
        One row per feature; config.feature_column plus one column per sample.
        Columns not listed in sample_annotations are ignored.
    sample_annotations : pd.DataFrame
        One row per sample with sample_column, the condition columns and the
        time column
    config : ShrinkageConfig, optional
        Column configuration
    sample_column : str
        Name of the sample identifier column in sample_annotations
    value_name : str, optional
        Name of the measurement column; defaults to config.value_column

    Returns:
    --------
    pd.DataFrame
        Long table (feature, sample, conditions..., time, value) with missing
        measurements dropped
    """
    config = config or ShrinkageConfig()
    value_name = value_name or config.value_column
    require_columns(wide_data, [config.feature_column], context="wide table")
    require_columns(
        sample_annotations,
        [sample_column, *config.condition_columns, config.time_column],
        context="sample annotations",
    )

    samples = [s for s in sample_annotations[sample_column] if s in wide_data.columns]
    unmatched = sorted(set(sample_annotations[sample_column]) - set(samples))
    if not samples:
        raise ValueError("None of the annotated samples are columns of the wide table")
    if unmatched and config.verbose:
        print(f"Warning: {len(unmatched)} annotated samples not found in data: {unmatched[:5]}")

    tall = wide_data.melt(
        id_vars=[config.feature_column],
        value_vars=samples,
        var_name=sample_column,
        value_name=value_name,
    )
    n_total = len(tall)
    tall = tall.dropna(subset=[value_name])

    tall = tall.merge(
        sample_annotations[[sample_column, *config.condition_columns, config.time_column]],
        on=sample_column,
        how="left",
        validate="many_to_one",
    )

    if config.verbose:
        print(f"Reshaped {len(wide_data)} features x {len(samples)} samples: "
              f"{len(tall)} measurements ({n_total - len(tall)} missing dropped)")

    return tall.reset_index(drop=True)


def normalize_to_time_zero(
    observations: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    reference_time: float = 0.0,
) -> pd.DataFrame:
    """
    Express each feature x condition timecourse relative to its reference time.

    The reference observation itself becomes exactly 0 and is later removed by
    filter_uninformative_observations(). Timecourses with no reference time
    are dropped.
    """
    config = config or ShrinkageConfig()
    series_keys = [config.feature_column, *config.condition_columns]
    require_columns(observations, [*series_keys, config.time_column, config.value_column])

    is_reference = observations[config.time_column].astype(float) == float(reference_time)
    reference = (
        observations.loc[is_reference, [*series_keys, config.value_column]]
        .groupby(series_keys, as_index=False)[config.value_column].mean()
        .rename(columns={config.value_column: "_reference_value"})
    )

    normalized = observations.merge(reference, on=series_keys, how="inner")
    normalized[config.value_column] = normalized[config.value_column] - normalized["_reference_value"]
    normalized = normalized.drop(columns="_reference_value")

    if config.verbose:
        n_dropped = len(observations) - len(normalized)
        print(f"Normalized to time {reference_time:g}: {len(normalized)} observations "
              f"({n_dropped} without a reference dropped)")

    return normalized
