"""
Shooting Pulse - NYPD Shooting Dataset

Components:
    - ShootingIngester: Downloads the historic shooting CSV from NYC Open Data
    - ShootingPreprocessor: Parses dates, times and fatality flags
    - ShootingAggregator: Borough, year, hour and season summaries
    - ShootingFeatureBuilder: (year, month, borough) regression features

Data Source:
    NYPD Shooting Incident Data (Historic)
    https://data.cityofnewyork.us/Public-Safety/NYPD-Shooting-Incident-Data-Historic-/833y-fsy8

Usage:
    from shooting_pulse.datasets.shootings import (
        ShootingAggregator,
        ShootingFeatureBuilder,
        ShootingIngester,
        ShootingPreprocessor,
    )

    ingester = ShootingIngester()
    result = ingester.run(execution_date="2024-01-15")
    raw_df = ingester.get_data()

    preprocessor = ShootingPreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    incidents = preprocessor.get_data()

    aggregates = ShootingAggregator().aggregate(incidents)

    builder = ShootingFeatureBuilder()
    result = builder.run(incidents, execution_date="2024-01-15")
    features_df = builder.get_data()
"""

from shooting_pulse.datasets.shootings.aggregates import (
    ShootingAggregates,
    ShootingAggregator,
    compute_shooting_aggregates,
)
from shooting_pulse.datasets.shootings.features import (
    ShootingFeatureBuilder,
    build_shooting_features,
    encode_borough_indicators,
)
from shooting_pulse.datasets.shootings.ingest import (
    LocalShootingIngester,
    ShootingIngester,
    ingest_shooting_data,
    load_shootings_csv,
)
from shooting_pulse.datasets.shootings.preprocess import (
    ShootingDataError,
    ShootingPreprocessor,
    preprocess_shooting_data,
)

__all__ = [
    "ShootingIngester",
    "LocalShootingIngester",
    "ShootingPreprocessor",
    "ShootingAggregator",
    "ShootingAggregates",
    "ShootingFeatureBuilder",
    "ShootingDataError",
    "ingest_shooting_data",
    "load_shootings_csv",
    "preprocess_shooting_data",
    "compute_shooting_aggregates",
    "build_shooting_features",
    "encode_borough_indicators",
]
