"""
Shooting Pulse - Shooting Aggregator

Grouped summaries over processed shooting incidents:
    - Yearly incident counts per borough
    - Death rate per borough
    - Incident counts per hour of day
    - Seasonal incident counts and fatality rates

Every method takes the processed incident table and returns a new frame;
the input is never modified. Grouping keys come from the data (unknown
boroughs form their own group) and match exactly.

Usage:
    from shooting_pulse.datasets.shootings.aggregates import ShootingAggregator

    aggregator = ShootingAggregator()
    aggregates = aggregator.aggregate(incidents_df)
    aggregates.death_rate_by_borough
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from shooting_pulse.datasets.shootings.categories import MONTH_TO_SEASON, SEASON_ORDER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShootingAggregates:
    """The four derived tables handed to the presentation layer."""

    yearly_by_borough: pd.DataFrame
    death_rate_by_borough: pd.DataFrame
    hourly_counts: pd.DataFrame
    seasonal_summary: pd.DataFrame

    def tables(self) -> dict[str, pd.DataFrame]:
        """Return the tables keyed by name."""
        return {
            "yearly_by_borough": self.yearly_by_borough,
            "death_rate_by_borough": self.death_rate_by_borough,
            "hourly_counts": self.hourly_counts,
            "seasonal_summary": self.seasonal_summary,
        }

    def to_records(self) -> dict[str, list[dict[str, Any]]]:
        """Return each table as an ordered list of uniformly-shaped row dicts."""
        return {name: table.to_dict(orient="records") for name, table in self.tables().items()}


class ShootingAggregator:
    """Computes the grouped summaries of the shooting dataset."""

    def aggregate(self, df: pd.DataFrame) -> ShootingAggregates:
        """
        Compute all four aggregate tables.

        Args:
            df: Processed incident DataFrame

        Returns:
            ShootingAggregates
        """
        logger.info(f"Aggregating {len(df)} shooting incidents", extra={"rows_input": len(df)})

        aggregates = ShootingAggregates(
            yearly_by_borough=self.yearly_by_borough(df),
            death_rate_by_borough=self.death_rate_by_borough(df),
            hourly_counts=self.hourly_counts(df),
            seasonal_summary=self.seasonal_summary(df),
        )

        logger.info(
            "Aggregation complete",
            extra={name: len(table) for name, table in aggregates.tables().items()},
        )
        return aggregates

    def yearly_by_borough(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Count incidents per (borough, year).

        Pairs with no incidents are absent rather than zero-filled.

        Returns:
            DataFrame with columns borough, year, incident_count
        """
        years = _years(df)
        counts = (
            pd.DataFrame({"borough": df["borough"].to_numpy(), "year": years})
            .groupby(["borough", "year"], sort=True)
            .size()
            .reset_index(name="incident_count")
        )
        counts["incident_count"] = counts["incident_count"].astype("int64")
        return counts

    def death_rate_by_borough(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Deaths, shootings and death rate per borough.

        Deaths and shootings are counted independently over the same borough
        key set and combined by key; a borough with no fatal incident gets
        deaths 0 and rate 0.0.

        Returns:
            DataFrame with columns borough, deaths, shootings, death_rate
        """
        fatal = _fatal_mask(df)
        boroughs = pd.Series(df["borough"].to_numpy())

        shootings = boroughs.value_counts().sort_index()
        deaths = boroughs[fatal.to_numpy()].value_counts().reindex(shootings.index, fill_value=0)

        result = pd.DataFrame(
            {
                "borough": shootings.index,
                "deaths": deaths.to_numpy().astype("int64"),
                "shootings": shootings.to_numpy().astype("int64"),
            }
        )
        result["death_rate"] = result["deaths"] / result["shootings"]
        return result.reset_index(drop=True)

    def hourly_counts(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Count incidents per hour of day (0-23) of the occurrence time.

        Hours with no incidents are absent.

        Returns:
            DataFrame with columns hour, incident_count
        """
        hours = pd.Series(_hours(df), name="hour")
        counts = hours.value_counts().sort_index()
        return pd.DataFrame(
            {
                "hour": counts.index.astype("int64"),
                "incident_count": counts.to_numpy().astype("int64"),
            }
        )

    def seasonal_summary(self, df: pd.DataFrame, include_empty: bool = False) -> pd.DataFrame:
        """
        Total incidents, fatal incidents and fatality rate per season.

        Args:
            df: Processed incident DataFrame
            include_empty: List all four seasons; a season without incidents
                reports fatality_rate as NaN (undefined).

        Returns:
            DataFrame with columns season, total_shootings, fatal_shootings,
            fatality_rate, ordered Winter, Spring, Summer, Fall
        """
        months = pd.Series(_months(df))
        unmapped = months[~months.isin(MONTH_TO_SEASON.keys())]
        if len(unmapped) > 0:
            raise ValueError(f"Months outside 1-12: {sorted(unmapped.unique().tolist())}")

        frame = pd.DataFrame(
            {
                "season": months.map(MONTH_TO_SEASON).astype(str).to_numpy(),
                "fatal": _fatal_mask(df).to_numpy(),
            }
        )
        grouped = frame.groupby("season").agg(
            total_shootings=("fatal", "size"),
            fatal_shootings=("fatal", "sum"),
        )

        order = [str(s) for s in SEASON_ORDER]
        if include_empty:
            grouped = grouped.reindex(order, fill_value=0)
        else:
            grouped = grouped.reindex([s for s in order if s in grouped.index])

        result = grouped.reset_index().rename(columns={"index": "season"})
        result["total_shootings"] = result["total_shootings"].astype("int64")
        result["fatal_shootings"] = result["fatal_shootings"].astype("int64")

        totals = result["total_shootings"].to_numpy(dtype=float)
        fatals = result["fatal_shootings"].to_numpy(dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            result["fatality_rate"] = np.where(totals > 0, fatals / totals, np.nan)

        empty = result.loc[result["total_shootings"] == 0, "season"].tolist()
        if empty:
            logger.warning(f"Fatality rate undefined for seasons without incidents: {empty}")

        return result


def _fatal_mask(df: pd.DataFrame) -> pd.Series:
    """Rows whose fatality flag is exactly true; null counts as false."""
    flag = df["statistical_murder_flag"].astype("boolean")
    return flag.fillna(False).astype(bool).reset_index(drop=True)


def _years(df: pd.DataFrame) -> np.ndarray:
    return pd.to_datetime(df["occur_date"]).dt.year.to_numpy(dtype="int64")


def _months(df: pd.DataFrame) -> np.ndarray:
    return pd.to_datetime(df["occur_date"]).dt.month.to_numpy(dtype="int64")


def _hours(df: pd.DataFrame) -> np.ndarray:
    return np.array([t.hour for t in df["occur_time"]], dtype="int64")


# =============================================================================
# Convenience Functions
# =============================================================================


def compute_shooting_aggregates(df: pd.DataFrame) -> ShootingAggregates:
    """Convenience function for computing every aggregate table."""
    return ShootingAggregator().aggregate(df)
