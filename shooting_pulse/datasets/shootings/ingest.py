"""
Shooting Pulse - Shooting Data Ingester

Downloads the NYPD Shooting Incident Data (Historic) CSV from NYC Open Data.

Data Source:
    NYPD Shooting Incident Data (Historic)
    https://data.cityofnewyork.us/Public-Safety/NYPD-Shooting-Incident-Data-Historic-/833y-fsy8

Configuration:
    All settings loaded from configs/datasets/shootings.yaml

Usage:
    from shooting_pulse.datasets.shootings.ingest import ShootingIngester

    ingester = ShootingIngester()
    result = ingester.run(execution_date="2024-01-15")
    df = ingester.get_data()
"""

from __future__ import annotations

import logging
from io import StringIO
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from shooting_pulse.datasets.base import BaseIngester
from shooting_pulse.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

# =============================================================================
# Source Configuration (loaded from shootings.yaml)
# =============================================================================
DATASET_CONFIG = get_dataset_config("shootings")

API_CONFIG = DATASET_CONFIG.get("api", {})
CSV_URL = API_CONFIG.get(
    "csv_url",
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD",
)

INGESTION_CONFIG = DATASET_CONFIG.get("ingestion", {})
PRIMARY_KEY = INGESTION_CONFIG.get("primary_key", "INCIDENT_KEY")
REQUIRED_COLUMNS = INGESTION_CONFIG.get(
    "required_columns",
    ["INCIDENT_KEY", "OCCUR_DATE", "OCCUR_TIME", "BORO", "STATISTICAL_MURDER_FLAG"],
)


def _read_csv_text(source: str | StringIO) -> pd.DataFrame:
    """Parse the shooting CSV keeping every field as text."""
    return pd.read_csv(source, dtype=str, keep_default_na=False, na_values=[""])


class ShootingIngester(BaseIngester):
    """
    Ingester for NYPD shooting incident data.

    Performs one bounded-timeout GET of the full historic CSV. Typed parsing
    is left to ShootingPreprocessor.
    """

    def __init__(self, config: Settings | None = None, url: str | None = None):
        """Initialize shooting ingester with the source URL from shootings.yaml."""
        super().__init__(config)
        self.url = url or CSV_URL

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shootings"

    def get_primary_key(self) -> str:
        """Return the primary key field (from config)."""
        return PRIMARY_KEY

    def get_required_columns(self) -> list[str]:
        """Return the raw columns downstream stages depend on."""
        return list(REQUIRED_COLUMNS)

    def get_source(self) -> str:
        """Get the download URL for shooting data."""
        return self.url

    def fetch_data(self) -> pd.DataFrame:
        """
        Download the shooting CSV.

        Returns:
            DataFrame with one text column per CSV field

        Raises:
            RuntimeError: On a non-200 response
            ValueError: When the download contains no rows
        """
        logger.info(f"Downloading shooting data from {self.url}", extra={"url": self.url})

        timeout = API_CONFIG.get("timeout_seconds", self.config.apis.nyc_open_data.timeout_seconds)
        response = requests.get(self.url, timeout=timeout)

        if response.status_code != 200:
            raise RuntimeError(f"HTTP {response.status_code}: {response.text[:200]}")

        if not response.text.strip():
            raise ValueError("Downloaded dataset is empty")

        df = _read_csv_text(StringIO(response.text))

        logger.info(
            f"Fetched {len(df)} shooting records",
            extra={"rows": len(df), "columns": list(df.columns)},
        )

        return df


class LocalShootingIngester(ShootingIngester):
    """Reads the same CSV layout from a local file instead of the network."""

    def __init__(self, path: str | Path, config: Settings | None = None):
        super().__init__(config)
        self.path = Path(path)

    def get_source(self) -> str:
        return str(self.path)

    def fetch_data(self) -> pd.DataFrame:
        logger.info(f"Reading shooting data from {self.path}")
        return _read_csv_text(str(self.path))


# =============================================================================
# Convenience Functions
# =============================================================================


def ingest_shooting_data(
    execution_date: str,
    config: Settings | None = None,
) -> dict[str, Any]:
    """
    Convenience function for ingesting shooting data.

    Returns result dictionary suitable for logging.
    """
    ingester = ShootingIngester(config)
    result = ingester.run(execution_date)
    return result.to_dict()


def load_shootings_csv(path: str | Path) -> pd.DataFrame:
    """Load a local copy of the shooting CSV as raw text columns."""
    return _read_csv_text(str(path))
