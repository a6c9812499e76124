"""
Shooting Pulse - Base Feature Builder

Abstract base class for dataset feature builders. Features are declared up
front as FeatureDefinitions; run() builds them, records per-feature
statistics and warns when a built feature breaks its declared nullability
or range.

Usage:
    class ShootingFeatureBuilder(BaseFeatureBuilder):
        def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
            ...
        def get_feature_definitions(self) -> list[FeatureDefinition]:
            ...
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base.stage import DatasetStage, StageResult

logger = logging.getLogger(__name__)


@dataclass
class FeatureDefinition:
    """Definition of a computed feature."""

    name: str
    description: str
    dtype: str
    source_columns: list[str]
    aggregation: str | None = None  # count, sum, ...
    nullable: bool = False
    min_value: float | None = None
    max_value: float | None = None


@dataclass(kw_only=True)
class FeatureBuildResult(StageResult):
    """Result of a feature building operation."""

    rows_input: int = 0
    rows_output: int = 0
    features_computed: int = 0
    feature_stats: dict[str, dict[str, Any]] = field(default_factory=dict)


def _is_measure(series: pd.Series) -> bool:
    """Numeric and not boolean: the columns that get range statistics."""
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series)


def feature_stats(series: pd.Series) -> dict[str, Any]:
    """Null counts plus range statistics (measures) or distinct count (others)."""
    stats: dict[str, Any] = {
        "dtype": str(series.dtype),
        "null_count": int(series.isna().sum()),
        "null_ratio": float(series.isna().mean()) if len(series) else 0.0,
    }

    if not _is_measure(series):
        stats["unique_count"] = int(series.nunique())
        return stats

    values = series.dropna()
    if len(values):
        stats.update(
            mean=float(values.mean()),
            std=float(values.std()) if len(values) > 1 else 0.0,
            min=float(values.min()),
            max=float(values.max()),
            median=float(values.median()),
        )
    return stats


class BaseFeatureBuilder(DatasetStage):
    """
    Abstract base class for feature building.

    Subclasses must implement build_features(), get_dataset_name(),
    get_feature_definitions() and get_entity_key().
    """

    stage_name = "feature building"
    result_class = FeatureBuildResult

    @abstractmethod
    def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Build the feature table from processed data."""

    @abstractmethod
    def get_feature_definitions(self) -> list[FeatureDefinition]:
        """Declared features, in output column order."""

    @abstractmethod
    def get_entity_key(self) -> str | list[str]:
        """Column(s) identifying one feature row."""

    def run(self, df: pd.DataFrame, execution_date: str) -> FeatureBuildResult:
        """
        Build, describe and check the features.

        Args:
            df: Processed DataFrame
            execution_date: Execution date in YYYY-MM-DD format

        Returns:
            FeatureBuildResult; on failure success is False and get_data() is None
        """

        def build() -> tuple[pd.DataFrame, dict[str, Any]]:
            features = self.build_features(df)
            self.check_features(features)
            return features, {
                "rows_output": len(features),
                "features_computed": len(features.columns),
                "feature_stats": {col: feature_stats(features[col]) for col in features.columns},
            }

        return self._run_stage(execution_date, build, rows_input=len(df))

    def check_features(self, df: pd.DataFrame) -> list[str]:
        """
        Compare built features with their definitions.

        Violations are logged as warnings, not raised.

        Returns:
            Violation messages
        """
        problems = []

        for defn in self.get_feature_definitions():
            if defn.name not in df.columns:
                problems.append(f"Feature '{defn.name}' was not built")
                continue

            column = df[defn.name]
            if not defn.nullable and column.isna().any():
                problems.append(f"Feature '{defn.name}' has nulls but is non-nullable")

            if not _is_measure(column):
                continue
            if defn.min_value is not None and (column < defn.min_value).any():
                problems.append(f"Feature '{defn.name}' has values below {defn.min_value}")
            if defn.max_value is not None and (column > defn.max_value).any():
                problems.append(f"Feature '{defn.name}' has values above {defn.max_value}")

        for problem in problems:
            logger.warning(problem, extra={"dataset": self.get_dataset_name()})
        return problems
