"""
Shooting Pulse - Shooting Data Preprocessor

Parses raw NYPD shooting records into typed incident rows.

Transformations:
    - Column renaming to standardized names
    - Strict OCCUR_DATE (month/day/year) and OCCUR_TIME parsing
    - Fatality flag parsing to nullable boolean
    - Missing borough handling
    - Year, month and hour extraction

Rows that fail to parse are not dropped: the whole run fails with the
offending row and value in the error.

Usage:
    from shooting_pulse.datasets.shootings.preprocess import ShootingPreprocessor

    preprocessor = ShootingPreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    incidents = preprocessor.get_data()
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base import BasePreprocessor
from shooting_pulse.datasets.shootings.categories import UNKNOWN_BOROUGH
from shooting_pulse.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

PARSING_CONFIG = get_dataset_config("shootings").get("parsing", {})
DATE_FORMAT = PARSING_CONFIG.get("date_format", "%m/%d/%Y")
TIME_FORMAT = PARSING_CONFIG.get("time_format", "%H:%M:%S")

TRUE_TOKENS = {"TRUE", "Y", "YES", "1"}
FALSE_TOKENS = {"FALSE", "N", "NO", "0"}


class ShootingDataError(ValueError):
    """Raised when a source row cannot be parsed."""

    def __init__(self, column: str, row_index: Any, value: Any, reason: str):
        self.column = column
        self.row_index = row_index
        self.value = value
        super().__init__(f"Row {row_index}: cannot parse {column}={value!r} ({reason})")


class ShootingPreprocessor(BasePreprocessor):
    """
    Preprocessor for NYPD shooting incident data.

    Produces one typed row per source row; nothing is dropped or deduplicated
    (INCIDENT_KEY repeats once per victim and every row counts).
    """

    COLUMN_MAPPINGS = {
        "INCIDENT_KEY": "incident_key",
        "OCCUR_DATE": "occur_date",
        "OCCUR_TIME": "occur_time",
        "BORO": "borough",
        "STATISTICAL_MURDER_FLAG": "statistical_murder_flag",
    }

    DTYPE_MAPPINGS = {
        "incident_key": "string",
    }

    REQUIRED_COLUMNS = [
        "occur_date",
        "occur_time",
        "borough",
        "statistical_murder_flag",
        "year",
        "month",
        "hour",
    ]

    OUTPUT_COLUMNS = [
        "incident_key",
        "occur_date",
        "occur_time",
        "borough",
        "statistical_murder_flag",
        "year",
        "month",
        "hour",
    ]

    def __init__(self, config: Settings | None = None):
        """Initialize shooting preprocessor."""
        super().__init__(config)

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shootings"

    def get_required_columns(self) -> list[str]:
        """Return required output columns."""
        return self.REQUIRED_COLUMNS

    def get_column_mappings(self) -> dict[str, str]:
        """Return column name mappings."""
        return self.COLUMN_MAPPINGS

    def get_dtype_mappings(self) -> dict[str, str]:
        """Return data type mappings."""
        return self.DTYPE_MAPPINGS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply shooting-specific transformations.

        Args:
            df: Raw DataFrame with renamed columns

        Returns:
            Typed incident DataFrame

        Raises:
            ShootingDataError: If any date, time or fatality value is malformed
        """
        missing = {"occur_date", "occur_time", "borough", "statistical_murder_flag"} - set(
            df.columns
        )
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

        df = self._process_datetime(df)
        df = self._process_murder_flag(df)
        df = self._process_borough(df)

        return self._select_output_columns(df)

    def _process_datetime(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse occurrence date and time strictly and derive year, month and hour."""
        dates = _parse_strict(df["occur_date"], DATE_FORMAT, "occur_date")
        times = _parse_strict(df["occur_time"], TIME_FORMAT, "occur_time")

        df["occur_date"] = dates.dt.normalize()
        df["occur_time"] = times.dt.time
        df["year"] = dates.dt.year.astype("int64")
        df["month"] = dates.dt.month.astype("int64")
        df["hour"] = times.dt.hour.astype("int64")

        self.log_transformation("process_datetime")
        return df

    def _process_murder_flag(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse the fatality flag into a nullable boolean."""
        df["statistical_murder_flag"] = pd.array(
            [
                _parse_flag(value, index)
                for index, value in df["statistical_murder_flag"].items()
            ],
            dtype="boolean",
        )
        self.log_transformation("convert_murder_flag_to_boolean")
        return df

    def _process_borough(self, df: pd.DataFrame) -> pd.DataFrame:
        """Fill missing boroughs; values are otherwise kept verbatim."""
        df["borough"] = df["borough"].astype("object")
        return self.fill_missing(df, "borough", UNKNOWN_BOROUGH)

    def _select_output_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Select and order output columns."""
        available_columns = [c for c in self.OUTPUT_COLUMNS if c in df.columns]
        df = df[available_columns].reset_index(drop=True)

        self.log_transformation("select_output_columns")
        return df


def _parse_strict(values: pd.Series, fmt: str, column: str) -> pd.Series:
    """Parse a text column with an exact format, failing on the first bad row."""
    parsed = pd.to_datetime(values, format=fmt, errors="coerce")
    bad = parsed.isna()
    if bad.any():
        index = bad.idxmax()
        raise ShootingDataError(column, index, values.loc[index], f"expected format {fmt}")
    return parsed


def _parse_flag(value: Any, index: Any) -> bool | None:
    if value is None or value is pd.NA or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, bool):
        return value

    token = str(value).strip().upper()
    if token == "":
        return None
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise ShootingDataError("statistical_murder_flag", index, value, "unrecognised flag")


# =============================================================================
# Convenience Functions
# =============================================================================


def preprocess_shooting_data(
    df: pd.DataFrame,
    execution_date: str,
    config: Settings | None = None,
) -> dict[str, Any]:
    """
    Convenience function for preprocessing shooting data.

    Returns result dictionary suitable for logging.
    """
    preprocessor = ShootingPreprocessor(config)
    result = preprocessor.run(df, execution_date)
    return result.to_dict()
