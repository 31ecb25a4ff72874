"""
Typed row records for each pipeline stage.

The pipeline itself works on pandas DataFrames; these frozen dataclasses pin
down the schema a row has after each stage (Observation -> StandardizedObservation
-> ShrinkageResult) and convert to and from tables.
"""

from dataclasses import dataclass, asdict, fields
from typing import Iterable, List, Optional, Tuple, Type

import pandas as pd

from .config import ShrinkageConfig


@dataclass(frozen=True)
class Observation:
    """One measured change for a feature in one condition at one time."""

    feature: str
    condition: Tuple[str, ...]
    time: float
    value: float
    feature_variance: float
    condition_variance: float

    @property
    def combined_variance(self) -> float:
        return self.feature_variance + self.condition_variance


@dataclass(frozen=True)
class StandardizedObservation(Observation):
    """Observation with its z-score and two-sided p-value."""

    z_score: float = float("nan")
    p_value: float = float("nan")


@dataclass(frozen=True)
class ShrinkageResult(StandardizedObservation):
    """Standardized observation with its local FDR and shrunken value."""

    pi0: float = float("nan")
    local_fdr: float = float("nan")
    shrunken_value: float = float("nan")
    lfdr_clamped: bool = False


def _column_map(config: ShrinkageConfig) -> dict:
    return {
        "feature": config.feature_column,
        "time": config.time_column,
        "value": config.value_column,
        "feature_variance": config.feature_variance_column,
        "condition_variance": config.condition_variance_column,
    }


def observations_to_frame(
    records: Iterable[Observation],
    config: Optional[ShrinkageConfig] = None,
) -> pd.DataFrame:
    """
    Convert records of any stage into a DataFrame using the configured column names.

    The condition tuple is split across ``config.condition_columns``.
    """
    config = config or ShrinkageConfig()
    column_map = _column_map(config)
    rows = []
    for record in records:
        row = {}
        for name, value in asdict(record).items():
            if name == "condition":
                if len(value) != len(config.condition_columns):
                    raise ValueError(
                        f"Condition key {value} does not match condition columns "
                        f"{config.condition_columns}"
                    )
                row.update(zip(config.condition_columns, value))
            else:
                row[column_map.get(name, name)] = value
        rows.append(row)

    if rows:
        return pd.DataFrame(rows)

    columns = [column_map.get(f.name, f.name) for f in fields(Observation) if f.name != "condition"]
    return pd.DataFrame(columns=[*config.condition_columns, *columns])


def frame_to_observations(
    df: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    record_type: Type[Observation] = Observation,
) -> List[Observation]:
    """Convert a DataFrame into records of ``record_type``, ignoring extra columns."""
    config = config or ShrinkageConfig()
    column_map = _column_map(config)

    records = []
    for row in df.to_dict(orient="records"):
        kwargs = {}
        for f in fields(record_type):
            if f.name == "condition":
                kwargs["condition"] = tuple(str(row[col]) for col in config.condition_columns)
                continue
            column = column_map.get(f.name, f.name)
            if column in row:
                kwargs[f.name] = row[column]
        kwargs["feature"] = str(kwargs["feature"])
        records.append(record_type(**kwargs))
    return records
