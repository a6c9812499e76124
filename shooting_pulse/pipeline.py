"""
Shooting Pulse - Shooting Pipeline

Single batch run over the NYPD shooting dataset.

Pipeline Stages:
    1. Ingest: Download the historic CSV (skipped when raw data is supplied)
    2. Preprocess: Parse dates, times and fatality flags
    3. Aggregate: Borough, year, hour and season summaries
    4. Build Features: (year, month, borough) regression table
    5. Fit: OLS of incident counts
    6. Predict: Incident counts for the forecast years

Any failed stage stops the run with PipelineStageError.

Usage:
    from shooting_pulse.pipeline import run_shooting_pipeline

    output = run_shooting_pipeline()
    output.aggregates.hourly_counts
    output.predictions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base import BaseIngester
from shooting_pulse.datasets.shootings import (
    ShootingAggregates,
    ShootingAggregator,
    ShootingFeatureBuilder,
    ShootingIngester,
    ShootingPreprocessor,
)
from shooting_pulse.modeling import FittedModel, build_prediction_grid, fit_incident_model
from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


class PipelineStageError(RuntimeError):
    """Raised when a pipeline stage fails; the whole run is abandoned."""

    def __init__(self, stage: str, message: str | None):
        self.stage = stage
        super().__init__(f"{stage.capitalize()} failed: {message}")


@dataclass(frozen=True)
class ShootingPipelineOutput:
    """Everything a presentation layer needs from one run."""

    incidents: pd.DataFrame
    aggregates: ShootingAggregates
    features: pd.DataFrame
    model: FittedModel
    predictions: pd.DataFrame

    def summary(self) -> dict[str, Any]:
        """Row counts and model fit statistics for logging."""
        return {
            "incidents": len(self.incidents),
            "feature_rows": len(self.features),
            "prediction_rows": len(self.predictions),
            "tables": {name: len(t) for name, t in self.aggregates.tables().items()},
            "model": self.model.summary(),
        }


def default_forecast_years(incidents: pd.DataFrame, config: Settings) -> list[int]:
    """Configured forecast years, else the two years after the last observed year."""
    if config.modeling.forecast_years:
        return list(config.modeling.forecast_years)
    last_year = int(incidents["year"].max())
    return [last_year + 1, last_year + 2]


def run_shooting_pipeline(
    config: Settings | None = None,
    raw_df: pd.DataFrame | None = None,
    execution_date: str | None = None,
    forecast_years: list[int] | None = None,
    ingester: BaseIngester | None = None,
) -> ShootingPipelineOutput:
    """
    Run load -> aggregate -> features -> fit -> predict once.

    Args:
        config: Configuration object (uses default if not provided)
        raw_df: Raw shooting records; downloaded when not provided
        execution_date: Execution date in YYYY-MM-DD format (defaults to today)
        forecast_years: Years to predict (defaults to default_forecast_years)
        ingester: Ingester used when raw_df is not provided

    Returns:
        ShootingPipelineOutput

    Raises:
        PipelineStageError: If any stage fails
    """
    config = config or get_config()
    execution_date = execution_date or datetime.now(UTC).strftime("%Y-%m-%d")

    if raw_df is None:
        ingester = ingester or ShootingIngester(config)
        ingest_result = ingester.run(execution_date)
        if not ingest_result.success:
            raise PipelineStageError("ingest", ingest_result.error_message)
        raw_df = ingester.get_data()

    preprocessor = ShootingPreprocessor(config)
    preprocess_result = preprocessor.run(raw_df, execution_date)
    if not preprocess_result.success:
        raise PipelineStageError("preprocess", preprocess_result.error_message)
    incidents = preprocessor.get_data()

    try:
        aggregates = ShootingAggregator().aggregate(incidents)
    except Exception as e:
        raise PipelineStageError("aggregate", str(e)) from e

    builder = ShootingFeatureBuilder(config)
    feature_result = builder.run(incidents, execution_date)
    if not feature_result.success:
        raise PipelineStageError("feature building", feature_result.error_message)
    features = builder.get_data()

    try:
        model = fit_incident_model(features, config)
    except Exception as e:
        raise PipelineStageError("model fit", str(e)) from e

    if forecast_years is None:
        forecast_years = default_forecast_years(incidents, config)

    try:
        predictions = model.predict(build_prediction_grid(forecast_years))
    except Exception as e:
        raise PipelineStageError("predict", str(e)) from e

    output = ShootingPipelineOutput(
        incidents=incidents,
        aggregates=aggregates,
        features=features,
        model=model,
        predictions=predictions,
    )

    logger.info(
        f"Shooting pipeline complete for {execution_date}",
        extra={"execution_date": execution_date, "rows": len(incidents)},
    )
    return output
