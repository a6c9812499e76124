"""
Shooting Pulse - Shooting Feature Builder

Builds the regression input table from processed shooting incidents.

Features:
    - year, month: raw calendar integers (no scaling; month is treated as a
      linear predictor, not a cyclic one)
    - is_bronx, is_brooklyn, is_manhattan, is_queens: borough indicators
      (STATEN ISLAND is the baseline; unknown boroughs are all-false too)
    - incident_count: incidents in the (year, month, borough) group

Usage:
    from shooting_pulse.datasets.shootings.features import ShootingFeatureBuilder

    builder = ShootingFeatureBuilder()
    result = builder.run(incidents_df, execution_date="2024-01-15")
    features_df = builder.get_data()
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base import BaseFeatureBuilder, FeatureDefinition
from shooting_pulse.datasets.shootings.categories import BOROUGH_INDICATORS
from shooting_pulse.shared.config import Settings

logger = logging.getLogger(__name__)

INDICATOR_COLUMNS = list(BOROUGH_INDICATORS)
PREDICTOR_COLUMNS = ["year", "month", *INDICATOR_COLUMNS]
TARGET_COLUMN = "incident_count"


def encode_borough_indicators(boroughs: pd.Series) -> pd.DataFrame:
    """
    One boolean column per non-baseline borough.

    An indicator is true iff the borough equals the named borough exactly.
    """
    values = pd.Series(boroughs).reset_index(drop=True)
    return pd.DataFrame(
        {
            column: (values == str(borough)).astype(bool)
            for column, borough in BOROUGH_INDICATORS.items()
        }
    )


class ShootingFeatureBuilder(BaseFeatureBuilder):
    """
    Feature builder for NYPD shooting data.

    One row per (year, month, borough) present in the incidents; missing
    combinations are not interpolated.
    """

    def __init__(self, config: Settings | None = None):
        """Initialize shooting feature builder."""
        super().__init__(config)

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shootings"

    def get_entity_key(self) -> list[str]:
        """Return entity key for aggregation."""
        return ["year", "month", "borough"]

    def get_feature_definitions(self) -> list[FeatureDefinition]:
        """Return feature definitions."""
        definitions = [
            FeatureDefinition(
                name="year",
                description="Calendar year of occurrence",
                dtype="int",
                source_columns=["occur_date"],
            ),
            FeatureDefinition(
                name="month",
                description="Calendar month of occurrence",
                dtype="int",
                source_columns=["occur_date"],
                min_value=1,
                max_value=12,
            ),
            FeatureDefinition(
                name="borough",
                description="Borough as recorded by NYPD",
                dtype="string",
                source_columns=["borough"],
            ),
        ]
        definitions.extend(
            FeatureDefinition(
                name=column,
                description=f"Incident occurred in {borough}",
                dtype="bool",
                source_columns=["borough"],
            )
            for column, borough in BOROUGH_INDICATORS.items()
        )
        definitions.append(
            FeatureDefinition(
                name=TARGET_COLUMN,
                description="Incidents in the (year, month, borough) group",
                dtype="int",
                source_columns=["incident_key"],
                aggregation="count",
                min_value=0,
            )
        )
        return definitions

    def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Build the (year, month, borough) feature table.

        Args:
            df: Processed shooting DataFrame

        Returns:
            DataFrame with key, indicator and incident_count columns
        """
        logger.info(f"Building shooting features from {len(df)} records")

        dates = pd.to_datetime(df["occur_date"])
        keys = pd.DataFrame(
            {
                "year": dates.dt.year.to_numpy(dtype="int64"),
                "month": dates.dt.month.to_numpy(dtype="int64"),
                "borough": df["borough"].to_numpy(),
            }
        )

        counts = (
            keys.groupby(self.get_entity_key(), sort=True)
            .size()
            .reset_index(name=TARGET_COLUMN)
        )
        counts[TARGET_COLUMN] = counts[TARGET_COLUMN].astype("int64")

        features = pd.concat(
            [counts[["year", "month", "borough"]], encode_borough_indicators(counts["borough"])],
            axis=1,
        )
        features[TARGET_COLUMN] = counts[TARGET_COLUMN]

        logger.info(f"Built {len(features)} (year, month, borough) feature rows")

        return features


# =============================================================================
# Convenience Functions
# =============================================================================


def build_shooting_features(
    df: pd.DataFrame,
    execution_date: str,
    config: Settings | None = None,
) -> dict[str, Any]:
    """
    Convenience function for building shooting features.

    Returns result dictionary suitable for logging.
    """
    builder = ShootingFeatureBuilder(config)
    result = builder.run(df, execution_date)
    return result.to_dict()
