"""
Shooting Pulse - Incident Count Regression

Ordinary least squares regression of monthly incident counts on
year, month and the four borough indicators:

    incident_count ~ const + year + month
                     + is_bronx + is_brooklyn + is_manhattan + is_queens

The fit is done with statsmodels OLS. The design matrix rank is checked
first: a rank-deficient design fails with RankDeficientDesignError instead
of falling back to a pseudo-inverse solution. Predictions can carry
prediction intervals for a new observation at each requested point.

Usage:
    from shooting_pulse.modeling.regression import build_prediction_grid, fit_incident_model

    model = fit_incident_model(features_df)
    model.coefficient_table()

    grid = build_prediction_grid(years=[2024, 2025])
    predictions = model.predict(grid)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm

from shooting_pulse.datasets.shootings.categories import Borough
from shooting_pulse.datasets.shootings.features import (
    PREDICTOR_COLUMNS,
    TARGET_COLUMN,
    encode_borough_indicators,
)
from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

INTERCEPT = "const"
TERMS = [INTERCEPT, *PREDICTOR_COLUMNS]


# =============================================================================
# Exception Classes
# =============================================================================


class ModelFitError(Exception):
    """Raised when the regression cannot be fitted."""


class RankDeficientDesignError(ModelFitError):
    """Raised when design matrix columns are linearly dependent."""

    def __init__(self, degenerate_terms: list[str], rank: int, n_terms: int):
        self.degenerate_terms = degenerate_terms
        self.rank = rank
        self.n_terms = n_terms
        super().__init__(
            f"Design matrix is rank deficient (rank {rank} < {n_terms} terms); "
            f"linearly dependent predictors: {degenerate_terms}"
        )


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class CoefficientEstimate:
    """One fitted regression coefficient."""

    term: str
    estimate: float
    std_error: float

    @property
    def t_value(self) -> float:
        if self.std_error == 0:
            return float("nan")
        return self.estimate / self.std_error


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    A fitted OLS model.

    Holds the coefficients in term order (intercept first), the residual
    variance and degrees of freedom, and the statsmodels results used for
    prediction intervals.
    """

    coefficients: tuple[CoefficientEstimate, ...]
    residual_variance: float
    degrees_of_freedom: int
    n_observations: int
    r_squared: float
    results: Any = field(repr=False)
    confidence_level: float = 0.95

    @property
    def params(self) -> dict[str, float]:
        """Coefficient estimates keyed by term."""
        return {c.term: c.estimate for c in self.coefficients}

    def coefficient_table(self) -> pd.DataFrame:
        """Return term, estimate, std_error and t_value per coefficient."""
        return pd.DataFrame(
            [
                {
                    "term": c.term,
                    "estimate": c.estimate,
                    "std_error": c.std_error,
                    "t_value": c.t_value,
                }
                for c in self.coefficients
            ]
        )

    def summary(self) -> dict[str, Any]:
        """Summary dictionary for logging."""
        return {
            "n_observations": self.n_observations,
            "degrees_of_freedom": self.degrees_of_freedom,
            "residual_variance": self.residual_variance,
            "r_squared": self.r_squared,
            "coefficients": self.params,
        }

    def predict(
        self,
        requests: pd.DataFrame,
        interval: bool = True,
        confidence_level: float | None = None,
    ) -> pd.DataFrame:
        """
        Predict incident counts for (year, month, borough) rows.

        Boroughs are encoded with the same indicator rule used for the
        training features. Predicted counts may be negative.

        Args:
            requests: DataFrame with year, month and borough columns
            interval: Add lower/upper prediction interval columns
            confidence_level: Interval coverage (defaults to the model's)

        Returns:
            DataFrame with year, month, borough, predicted_count and,
            if requested, lower and upper
        """
        missing = {"year", "month", "borough"} - set(requests.columns)
        if missing:
            raise ValueError(f"Prediction requests missing columns: {sorted(missing)}")

        result = requests[["year", "month", "borough"]].reset_index(drop=True).copy()
        if result.empty:
            result["predicted_count"] = pd.Series(dtype=float)
            if interval:
                result["lower"] = pd.Series(dtype=float)
                result["upper"] = pd.Series(dtype=float)
            return result

        design = _design_matrix(
            pd.concat(
                [result[["year", "month"]], encode_borough_indicators(result["borough"])],
                axis=1,
            )
        )

        level = confidence_level if confidence_level is not None else self.confidence_level
        frame = self.results.get_prediction(design.to_numpy()).summary_frame(alpha=1.0 - level)

        result["predicted_count"] = frame["mean"].to_numpy()
        if interval:
            result["lower"] = frame["obs_ci_lower"].to_numpy()
            result["upper"] = frame["obs_ci_upper"].to_numpy()

        return result


# =============================================================================
# Fitting
# =============================================================================


def _design_matrix(features: pd.DataFrame) -> pd.DataFrame:
    """Intercept column followed by the predictors, as float."""
    predictors = features[PREDICTOR_COLUMNS].astype(float).reset_index(drop=True)
    return sm.add_constant(predictors, has_constant="add")


def _dependent_terms(design: np.ndarray) -> list[str]:
    """Terms whose column adds no rank over the columns before it."""
    dependent = []
    rank = 0
    for j in range(design.shape[1]):
        new_rank = int(np.linalg.matrix_rank(design[:, : j + 1]))
        if new_rank == rank:
            dependent.append(TERMS[j])
        rank = new_rank
    return dependent


def fit_incident_model(
    features: pd.DataFrame,
    config: Settings | None = None,
) -> FittedModel:
    """
    Fit OLS of incident_count on the year, month and borough indicators.

    Args:
        features: Feature table from ShootingFeatureBuilder
        config: Configuration object (uses default if not provided)

    Returns:
        FittedModel

    Raises:
        ModelFitError: Missing columns or too few observations
        RankDeficientDesignError: Linearly dependent predictors
    """
    config = config or get_config()

    missing = set(PREDICTOR_COLUMNS + [TARGET_COLUMN]) - set(features.columns)
    if missing:
        raise ModelFitError(f"Feature table missing columns: {sorted(missing)}")

    if features.empty:
        raise ModelFitError("Feature table is empty")

    design = _design_matrix(features)
    target = features[TARGET_COLUMN].astype(float).to_numpy()
    n_obs, n_terms = design.shape

    rank = int(np.linalg.matrix_rank(design.to_numpy()))
    if rank < n_terms:
        raise RankDeficientDesignError(_dependent_terms(design.to_numpy()), rank, n_terms)

    if n_obs <= n_terms:
        raise ModelFitError(
            f"Need more than {n_terms} observations to estimate residual variance, got {n_obs}"
        )

    results = sm.OLS(target, design).fit()

    # statsmodels reports R^2 = 1 - 0/0 for a constant target
    r_squared = float(results.rsquared) if results.centered_tss > 0 else float("nan")

    model = FittedModel(
        coefficients=tuple(
            CoefficientEstimate(
                term=term,
                estimate=float(results.params[term]),
                std_error=float(results.bse[term]),
            )
            for term in TERMS
        ),
        residual_variance=float(results.scale),
        degrees_of_freedom=int(results.df_resid),
        n_observations=n_obs,
        r_squared=r_squared,
        results=results,
        confidence_level=config.modeling.confidence_level,
    )

    logger.info(
        f"Fitted incident count model on {n_obs} rows (R^2={r_squared:.3f})",
        extra=model.summary(),
    )
    return model


# =============================================================================
# Prediction Requests
# =============================================================================


def build_prediction_grid(
    years: Iterable[int],
    months: Iterable[int] = range(1, 13),
    boroughs: Iterable[str] | None = None,
) -> pd.DataFrame:
    """
    Every (year, month, borough) combination for a future time range.

    Args:
        years: Years to predict
        months: Months to predict (defaults to 1-12)
        boroughs: Boroughs to predict (defaults to the five NYC boroughs)

    Returns:
        DataFrame with year, month and borough columns
    """
    month_values = [int(m) for m in months]
    borough_values = [str(b) for b in (boroughs if boroughs is not None else Borough)]
    rows = [
        {"year": int(year), "month": month, "borough": borough}
        for year in years
        for month in month_values
        for borough in borough_values
    ]
    return pd.DataFrame(rows, columns=["year", "month", "borough"])
