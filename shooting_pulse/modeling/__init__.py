"""
Shooting Pulse - Modeling

OLS regression of monthly shooting counts per borough and prediction
for future time ranges.
"""

from shooting_pulse.modeling.regression import (
    CoefficientEstimate,
    FittedModel,
    ModelFitError,
    RankDeficientDesignError,
    build_prediction_grid,
    fit_incident_model,
)

__all__ = [
    "CoefficientEstimate",
    "FittedModel",
    "ModelFitError",
    "RankDeficientDesignError",
    "build_prediction_grid",
    "fit_incident_model",
]
