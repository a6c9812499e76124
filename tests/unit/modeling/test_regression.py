"""
Unit tests for the incident count regression.

Tests fitting, rank checks, prediction intervals and the prediction grid.
"""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from shooting_pulse.datasets.shootings.features import encode_borough_indicators
from shooting_pulse.modeling.regression import (
    TERMS,
    FittedModel,
    ModelFitError,
    RankDeficientDesignError,
    build_prediction_grid,
    fit_incident_model,
)

BOROUGHS = ["BRONX", "BROOKLYN", "MANHATTAN", "QUEENS", "STATEN ISLAND"]

TRUE_COEFFICIENTS = {
    "const": -3990.0,
    "year": 2.0,
    "month": 0.5,
    "is_bronx": 30.0,
    "is_brooklyn": 40.0,
    "is_manhattan": 10.0,
    "is_queens": 20.0,
}


def make_features(
    keys: list[tuple[int, int, str]], noise: np.ndarray | None = None
) -> pd.DataFrame:
    """Feature table whose counts follow TRUE_COEFFICIENTS, plus optional noise."""
    keys_df = pd.DataFrame(keys, columns=["year", "month", "borough"])
    indicators = encode_borough_indicators(keys_df["borough"])
    features = pd.concat([keys_df, indicators], axis=1)

    counts = np.full(len(features), TRUE_COEFFICIENTS["const"])
    for term in TERMS[1:]:
        counts = counts + TRUE_COEFFICIENTS[term] * features[term].astype(float).to_numpy()
    if noise is not None:
        counts = counts + noise
    features["incident_count"] = counts
    return features


def full_grid_keys() -> list[tuple[int, int, str]]:
    return [
        (year, month, borough)
        for year in (2018, 2019, 2020)
        for month in range(1, 13)
        for borough in BOROUGHS
    ]


class TestFitIncidentModel:
    """Test cases for fit_incident_model."""

    @pytest.fixture
    def exact_features(self):
        """Counts lying exactly on the true plane."""
        return make_features(full_grid_keys())

    @pytest.fixture
    def noisy_features(self):
        """Counts with reproducible Gaussian noise."""
        keys = full_grid_keys()
        noise = np.random.default_rng(42).normal(0.0, 2.0, size=len(keys))
        return make_features(keys, noise)

    def test_recovers_exact_coefficients(self, exact_features, test_config):
        """Test noiseless data yields the generating coefficients."""
        model = fit_incident_model(exact_features, test_config)

        for term, expected in TRUE_COEFFICIENTS.items():
            assert model.params[term] == pytest.approx(expected, abs=1e-4)
        assert model.residual_variance == pytest.approx(0.0, abs=1e-8)
        assert model.r_squared == pytest.approx(1.0)

    def test_coefficient_order(self, exact_features, test_config):
        """Test coefficients are reported intercept first."""
        model = fit_incident_model(exact_features, test_config)

        assert [c.term for c in model.coefficients] == TERMS
        assert TERMS[0] == "const"

    def test_noisy_fit(self, noisy_features, test_config):
        """Test estimates stay near the truth with positive standard errors."""
        model = fit_incident_model(noisy_features, test_config)
        table = model.coefficient_table().set_index("term")

        assert list(table.columns) == ["estimate", "std_error", "t_value"]
        assert (table["std_error"] > 0).all()
        assert table.loc["is_brooklyn", "estimate"] == pytest.approx(40.0, abs=2.0)
        assert table.loc["month", "estimate"] == pytest.approx(0.5, abs=0.3)
        assert model.n_observations == 180
        assert model.degrees_of_freedom == 180 - 7
        assert 0.0 < model.r_squared <= 1.0

    def test_matches_normal_equations(self, noisy_features, test_config):
        """Test estimates and standard errors against the closed form."""
        model = fit_incident_model(noisy_features, test_config)

        X = np.column_stack(
            [
                np.ones(len(noisy_features)),
                noisy_features[TERMS[1:]].astype(float).to_numpy(),
            ]
        )
        y = noisy_features["incident_count"].to_numpy()
        xtx_inv = np.linalg.inv(X.T @ X)
        beta = xtx_inv @ X.T @ y
        residuals = y - X @ beta
        sigma2 = residuals @ residuals / (len(y) - X.shape[1])

        estimates = np.array([c.estimate for c in model.coefficients])
        std_errors = np.array([c.std_error for c in model.coefficients])
        np.testing.assert_allclose(estimates, beta, rtol=1e-6, atol=1e-6)
        np.testing.assert_allclose(std_errors, np.sqrt(np.diag(xtx_inv) * sigma2), rtol=1e-6)
        assert model.residual_variance == pytest.approx(sigma2)

    def test_fit_is_deterministic(self, noisy_features, test_config):
        """Test the same table fits to identical coefficients."""
        first = fit_incident_model(noisy_features, test_config)
        second = fit_incident_model(noisy_features, test_config)

        assert first.params == second.params

    def test_single_borough_is_rank_deficient(self, test_config):
        """Test a single-borough table names the dependent indicators."""
        features = make_features(
            [(year, month, "BRONX") for year in (2019, 2020) for month in range(1, 13)]
        )

        with pytest.raises(RankDeficientDesignError) as exc_info:
            fit_incident_model(features, test_config)

        error = exc_info.value
        assert set(error.degenerate_terms) == {
            "is_bronx",
            "is_brooklyn",
            "is_manhattan",
            "is_queens",
        }
        assert error.rank < error.n_terms
        assert "is_brooklyn" in str(error)
        assert isinstance(error, ModelFitError)

    def test_single_year_is_rank_deficient(self, test_config):
        """Test a constant year column is reported."""
        features = make_features(
            [(2020, month, borough) for month in range(1, 13) for borough in BOROUGHS]
        )

        with pytest.raises(RankDeficientDesignError) as exc_info:
            fit_incident_model(features, test_config)

        assert exc_info.value.degenerate_terms == ["year"]

    def test_too_few_observations(self, test_config):
        """Test a full-rank table with no residual degrees of freedom fails."""
        features = make_features(
            [
                (2019, 1, "BRONX"),
                (2019, 2, "BROOKLYN"),
                (2020, 3, "MANHATTAN"),
                (2020, 4, "QUEENS"),
                (2019, 5, "STATEN ISLAND"),
                (2020, 6, "STATEN ISLAND"),
                (2021, 1, "STATEN ISLAND"),
            ]
        )

        with pytest.raises(ModelFitError, match="observations") as exc_info:
            fit_incident_model(features, test_config)

        assert not isinstance(exc_info.value, RankDeficientDesignError)

    def test_empty_table(self, test_config):
        """Test an empty feature table fails."""
        features = make_features(full_grid_keys()).iloc[0:0]

        with pytest.raises(ModelFitError, match="empty"):
            fit_incident_model(features, test_config)

    def test_missing_columns(self, exact_features, test_config):
        """Test a table without an indicator column fails."""
        with pytest.raises(ModelFitError, match="is_queens"):
            fit_incident_model(exact_features.drop(columns=["is_queens"]), test_config)

    def test_confidence_level_from_config(self, exact_features, test_config):
        """Test the model takes its interval coverage from configuration."""
        model = fit_incident_model(exact_features, test_config)

        assert model.confidence_level == test_config.modeling.confidence_level


class TestPredict:
    """Test cases for FittedModel.predict."""

    @pytest.fixture
    def model(self, test_config) -> FittedModel:
        """Model fitted on noisy data."""
        keys = full_grid_keys()
        noise = np.random.default_rng(7).normal(0.0, 3.0, size=len(keys))
        return fit_incident_model(make_features(keys, noise), test_config)

    def test_predict_with_interval(self, model):
        """Test prediction intervals bracket the point prediction."""
        predictions = model.predict(build_prediction_grid([2021, 2022]))

        assert list(predictions.columns) == [
            "year",
            "month",
            "borough",
            "predicted_count",
            "lower",
            "upper",
        ]
        assert (predictions["lower"] < predictions["predicted_count"]).all()
        assert (predictions["predicted_count"] < predictions["upper"]).all()

    def test_predict_without_interval(self, model):
        """Test interval columns are omitted when not requested."""
        predictions = model.predict(build_prediction_grid([2021]), interval=False)

        assert "lower" not in predictions.columns
        assert len(predictions) == 60

    def test_wider_interval_for_higher_confidence(self, model):
        """Test a higher confidence level widens the interval."""
        grid = build_prediction_grid([2021], months=[6], boroughs=["QUEENS"])

        narrow = model.predict(grid, confidence_level=0.80)
        wide = model.predict(grid, confidence_level=0.99)

        narrow_width = (narrow["upper"] - narrow["lower"]).iloc[0]
        wide_width = (wide["upper"] - wide["lower"]).iloc[0]
        assert wide_width > narrow_width

    def test_predict_uses_fitted_coefficients(self, model):
        """Test the point prediction is the linear combination of coefficients."""
        grid = pd.DataFrame({"year": [2021], "month": [3], "borough": ["MANHATTAN"]})
        params = model.params

        predicted = model.predict(grid, interval=False)["predicted_count"].iloc[0]

        expected = (
            params["const"] + params["year"] * 2021 + params["month"] * 3 + params["is_manhattan"]
        )
        assert predicted == pytest.approx(expected)

    def test_unknown_borough_predicts_at_baseline(self, model):
        """Test an unrecognised borough uses the baseline indicators."""
        grid = pd.DataFrame(
            {
                "year": [2021, 2021],
                "month": [3, 3],
                "borough": ["STATEN ISLAND", "Queens"],
            }
        )

        predicted = model.predict(grid, interval=False)["predicted_count"]

        assert predicted.iloc[0] == pytest.approx(predicted.iloc[1])

    def test_negative_predictions_are_allowed(self, model):
        """Test predictions are not clipped at zero."""
        grid = pd.DataFrame({"year": [1900], "month": [1], "borough": ["STATEN ISLAND"]})

        predicted = model.predict(grid, interval=False)["predicted_count"].iloc[0]

        assert predicted < 0

    def test_interval_is_for_a_new_observation(self, model):
        """Test bounds match an independent statsmodels fit at the requested level."""
        keys = full_grid_keys()
        noise = np.random.default_rng(7).normal(0.0, 3.0, size=len(keys))
        features = make_features(keys, noise)
        X = sm.add_constant(features[TERMS[1:]].astype(float), has_constant="add")
        reference = sm.OLS(features["incident_count"].astype(float), X).fit()

        grid = build_prediction_grid([2021], months=[2, 9], boroughs=["BRONX", "STATEN ISLAND"])
        predictions = model.predict(grid, confidence_level=0.90)

        X0 = np.array(
            [
                [1.0, 2021, 2, 1, 0, 0, 0],
                [1.0, 2021, 2, 0, 0, 0, 0],
                [1.0, 2021, 9, 1, 0, 0, 0],
                [1.0, 2021, 9, 0, 0, 0, 0],
            ],
            dtype=float,
        )
        expected = reference.get_prediction(X0).summary_frame(alpha=0.10)
        np.testing.assert_allclose(predictions["predicted_count"], expected["mean"], rtol=1e-8)
        np.testing.assert_allclose(predictions["lower"], expected["obs_ci_lower"], rtol=1e-8)
        np.testing.assert_allclose(predictions["upper"], expected["obs_ci_upper"], rtol=1e-8)
        assert (predictions["lower"] < expected["mean_ci_lower"]).all()

    def test_predict_missing_columns(self, model):
        """Test requests without a borough column are rejected."""
        with pytest.raises(ValueError, match="borough"):
            model.predict(pd.DataFrame({"year": [2021], "month": [1]}))

    def test_predict_keeps_request_order(self, model):
        """Test predictions line up with the request rows."""
        grid = pd.DataFrame(
            {"year": [2022, 2021], "month": [12, 1], "borough": ["QUEENS", "BRONX"]},
            index=[5, 3],
        )

        predictions = model.predict(grid, interval=False)

        assert predictions["borough"].tolist() == ["QUEENS", "BRONX"]
        assert predictions["year"].tolist() == [2022, 2021]


class TestBuildPredictionGrid:
    """Test cases for build_prediction_grid."""

    def test_default_grid_size(self):
        """Test every year, month and borough combination is present."""
        grid = build_prediction_grid([2024, 2025])

        assert len(grid) == 2 * 12 * 5
        assert not grid.duplicated().any()
        assert set(grid["borough"]) == set(BOROUGHS)
        assert set(grid["month"]) == set(range(1, 13))

    def test_custom_boroughs_and_months(self):
        """Test explicit month and borough lists."""
        grid = build_prediction_grid([2024], months=[1, 7], boroughs=["BRONX"])

        assert grid.values.tolist() == [[2024, 1, "BRONX"], [2024, 7, "BRONX"]]

    def test_months_iterator_used_for_every_year(self):
        """Test a one-shot months iterator still covers each year."""
        grid = build_prediction_grid([2024, 2025], months=iter([1, 2]), boroughs=["BRONX"])

        assert len(grid) == 4
        assert grid.values.tolist() == [
            [2024, 1, "BRONX"],
            [2024, 2, "BRONX"],
            [2025, 1, "BRONX"],
            [2025, 2, "BRONX"],
        ]

    def test_empty_years(self):
        """Test no years yields an empty grid with the expected columns."""
        grid = build_prediction_grid([])

        assert grid.empty
        assert list(grid.columns) == ["year", "month", "borough"]
