"""
Shooting Pulse - Base Preprocessor

Abstract base class for dataset preprocessors. run() renames columns,
applies declared dtypes, hands the frame to the dataset's transform() and
checks the required output columns. The input frame is never modified.

Usage:
    class ShootingPreprocessor(BasePreprocessor):
        def transform(self, df: pd.DataFrame) -> pd.DataFrame:
            ...
        def get_column_mappings(self) -> dict[str, str]:
            return {"BORO": "borough"}
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base.stage import DatasetStage, StageResult
from shooting_pulse.shared.config import Settings

logger = logging.getLogger(__name__)

# Declared dtype name -> converter
_DTYPE_CONVERTERS = {
    "int": lambda s: pd.to_numeric(s, errors="coerce").astype("Int64"),
    "float": lambda s: pd.to_numeric(s, errors="coerce"),
    "string": lambda s: s.astype("string"),
}


@dataclass(kw_only=True)
class PreprocessingResult(StageResult):
    """Result of a preprocessing operation."""

    rows_input: int = 0
    rows_output: int = 0
    columns_input: int = 0
    columns_output: int = 0
    transformations_applied: list[str] = field(default_factory=list)


class BasePreprocessor(DatasetStage):
    """
    Abstract base class for dataset preprocessing.

    Subclasses must implement transform(), get_dataset_name() and
    get_required_columns(); column and dtype mappings are optional.
    """

    stage_name = "preprocessing"
    result_class = PreprocessingResult

    def __init__(self, config: Settings | None = None):
        super().__init__(config)
        self._transformations: list[str] = []

    @abstractmethod
    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Dataset-specific transformations on the renamed, typed frame."""

    @abstractmethod
    def get_required_columns(self) -> list[str]:
        """Columns that must be present after preprocessing."""

    def get_column_mappings(self) -> dict[str, str]:
        """Source column name -> output column name."""
        return {}

    def get_dtype_mappings(self) -> dict[str, str]:
        """Output column name -> "int", "float", "string" or a pandas dtype."""
        return {}

    def run(self, df: pd.DataFrame, execution_date: str) -> PreprocessingResult:
        """
        Run the preprocessing pipeline on a copy of df.

        Args:
            df: Raw DataFrame to preprocess
            execution_date: Execution date in YYYY-MM-DD format

        Returns:
            PreprocessingResult; on failure success is False and get_data() is None
        """
        self._transformations = []

        def preprocess() -> tuple[pd.DataFrame, dict[str, Any]]:
            out = self._apply_column_mappings(df.copy())
            out = self._apply_dtype_conversions(out)
            out = self.transform(out)

            missing = set(self.get_required_columns()) - set(out.columns)
            if missing:
                raise ValueError(f"Missing required columns: {missing}")

            return out, {
                "rows_output": len(out),
                "columns_output": len(out.columns),
                "transformations_applied": list(self._transformations),
            }

        return self._run_stage(
            execution_date,
            preprocess,
            rows_input=len(df),
            columns_input=len(df.columns),
        )

    def log_transformation(self, name: str) -> None:
        """Record a transformation in the run's result."""
        self._transformations.append(name)

    def fill_missing(self, df: pd.DataFrame, col: str, value: Any) -> pd.DataFrame:
        """Fill missing values in a column, logging how many were filled."""
        missing_count = int(df[col].isna().sum())
        if missing_count:
            df[col] = df[col].fillna(value)
            logger.debug(f"Filled {missing_count} missing {col} values with {value!r}")
            self.log_transformation(f"fill_missing_{col}")
        return df

    def _apply_column_mappings(self, df: pd.DataFrame) -> pd.DataFrame:
        mappings = self.get_column_mappings()
        if mappings:
            df = df.rename(columns=mappings)
            self.log_transformation(f"renamed_columns: {list(mappings)}")
        return df

    def _apply_dtype_conversions(self, df: pd.DataFrame) -> pd.DataFrame:
        for col, dtype in self.get_dtype_mappings().items():
            if col not in df.columns:
                continue
            convert = _DTYPE_CONVERTERS.get(dtype, lambda s, dtype=dtype: s.astype(dtype))
            df[col] = convert(df[col])
            self.log_transformation(f"converted_{col}_to_{dtype}")
        return df
