"""
Shooting Pulse - Base Ingester

Abstract base class for dataset ingesters. Every run is a full batch fetch
of the source; there is no watermark or incremental mode.

Usage:
    class ShootingIngester(BaseIngester):
        def fetch_data(self) -> pd.DataFrame:
            ...
        def get_primary_key(self) -> str:
            return "INCIDENT_KEY"
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base.stage import DatasetStage, StageResult


@dataclass(kw_only=True)
class IngestionResult(StageResult):
    """Result of a data ingestion operation."""

    rows_fetched: int = 0
    source: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseIngester(DatasetStage):
    """
    Abstract base class for dataset ingestion.

    Subclasses must implement fetch_data(), get_primary_key(),
    get_required_columns() and get_dataset_name().
    """

    stage_name = "ingestion"
    result_class = IngestionResult

    @abstractmethod
    def fetch_data(self) -> pd.DataFrame:
        """Fetch the full dataset from its source."""

    @abstractmethod
    def get_primary_key(self) -> str:
        """Column that identifies a source record (not necessarily unique)."""

    @abstractmethod
    def get_required_columns(self) -> list[str]:
        """Raw columns the downstream stages read."""

    def get_source(self) -> str | None:
        """Source location (URL or path), if any."""
        return None

    def run(self, execution_date: str) -> IngestionResult:
        """
        Fetch and schema-check the dataset.

        Args:
            execution_date: Execution date in YYYY-MM-DD format

        Returns:
            IngestionResult; on failure success is False and get_data() is None
        """

        def fetch() -> tuple[pd.DataFrame, dict[str, Any]]:
            df = self.fetch_data()

            is_valid, errors = self.validate_schema(df)
            if not is_valid:
                raise ValueError(f"Schema validation failed: {'; '.join(errors)}")

            return df, {
                "rows_fetched": len(df),
                "metadata": {"primary_key": self.get_primary_key(), "columns": list(df.columns)},
            }

        return self._run_stage(execution_date, fetch, source=self.get_source())

    def validate_schema(self, df: pd.DataFrame) -> tuple[bool, list[str]]:
        """
        Check fetched data for the primary key, the required columns and rows.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        pk = self.get_primary_key()
        if pk not in df.columns:
            errors.append(f"Primary key column '{pk}' not found")

        missing = [c for c in self.get_required_columns() if c != pk and c not in df.columns]
        if missing:
            errors.append(f"Required columns not found: {missing}")

        if df.empty:
            errors.append("DataFrame is empty")

        return not errors, errors
