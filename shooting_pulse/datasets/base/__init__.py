"""
Shooting Pulse - Dataset Stage Base Classes

Every dataset is processed by the same three stages, each returning a
result record instead of raising:

- BaseIngester: full fetch of the raw source
- BasePreprocessor: renaming, typing and dataset-specific parsing
- BaseFeatureBuilder: declared features with statistics and checks

Usage:
    from shooting_pulse.datasets.base import BaseIngester

    class ShootingIngester(BaseIngester):
        def fetch_data(self) -> pd.DataFrame:
            ...
"""

from shooting_pulse.datasets.base.feature_builder import (
    BaseFeatureBuilder,
    FeatureBuildResult,
    FeatureDefinition,
)
from shooting_pulse.datasets.base.ingester import BaseIngester, IngestionResult
from shooting_pulse.datasets.base.preprocessor import BasePreprocessor, PreprocessingResult
from shooting_pulse.datasets.base.stage import DatasetStage, StageResult

__all__ = [
    "DatasetStage",
    "StageResult",
    "BaseIngester",
    "IngestionResult",
    "BasePreprocessor",
    "PreprocessingResult",
    "BaseFeatureBuilder",
    "FeatureBuildResult",
    "FeatureDefinition",
]
