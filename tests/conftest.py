"""
Shooting Pulse - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Raw and processed shooting records
"""

import os
from collections.abc import Generator
from datetime import date, time
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

# Set test environment
os.environ["SP_ENVIRONMENT"] = "dev"

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from shooting_pulse.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def raw_shooting_df() -> pd.DataFrame:
    """Raw records as read from the NYPD CSV (all text)."""
    return pd.DataFrame(
        {
            "INCIDENT_KEY": ["228798151", "137471050", "147998800", "146837977", "58921844"],
            "OCCUR_DATE": ["05/27/2021", "06/27/2014", "11/21/2015", "10/09/2015", "02/19/2009"],
            "OCCUR_TIME": ["21:30:00", "17:40:00", "03:56:00", "18:30:00", "22:58:00"],
            "BORO": ["QUEENS", "BRONX", "QUEENS", "BRONX", "BRONX"],
            "PRECINCT": ["105", "40", "108", "44", "47"],
            "STATISTICAL_MURDER_FLAG": ["false", "false", "true", "false", "true"],
        }
    )


@pytest.fixture
def three_incidents() -> pd.DataFrame:
    """Processed incidents: two January BRONX shootings (one fatal), one June QUEENS."""
    return pd.DataFrame(
        {
            "incident_key": ["1", "2", "3"],
            "occur_date": pd.to_datetime(
                [date(2020, 1, 5), date(2020, 1, 6), date(2020, 6, 1)]
            ),
            "occur_time": [time(2, 0), time(2, 0), time(14, 0)],
            "borough": ["BRONX", "BRONX", "QUEENS"],
            "statistical_murder_flag": pd.array([True, False, False], dtype="boolean"),
            "year": [2020, 2020, 2020],
            "month": [1, 1, 6],
            "hour": [2, 2, 14],
        }
    )


def make_incidents(rows: list[tuple[str, str, str, Any]]) -> pd.DataFrame:
    """Build a processed incident frame from (YYYY-MM-DD, HH:MM, borough, flag) tuples."""
    dates = pd.to_datetime([r[0] for r in rows])
    times = [time.fromisoformat(r[1]) for r in rows]
    return pd.DataFrame(
        {
            "incident_key": [str(i) for i in range(len(rows))],
            "occur_date": dates,
            "occur_time": times,
            "borough": [r[2] for r in rows],
            "statistical_murder_flag": pd.array([r[3] for r in rows], dtype="boolean"),
            "year": dates.year.astype("int64"),
            "month": dates.month.astype("int64"),
            "hour": [t.hour for t in times],
        }
    )


@pytest.fixture
def incident_factory() -> Any:
    """Factory building processed incident frames from tuples."""
    return make_incidents


@pytest.fixture
def mixed_incidents() -> pd.DataFrame:
    """Incidents across every borough, season and a null flag, plus an unknown borough."""
    return make_incidents(
        [
            ("2019-01-03", "00:15", "BRONX", True),
            ("2019-02-11", "23:59", "BROOKLYN", False),
            ("2019-03-20", "12:00", "MANHATTAN", None),
            ("2019-04-02", "08:30", "QUEENS", False),
            ("2019-07-14", "21:10", "STATEN ISLAND", True),
            ("2019-08-01", "21:45", "BROOKLYN", True),
            ("2020-09-09", "03:00", "BROOKLYN", False),
            ("2020-10-31", "19:20", "BRONX", None),
            ("2020-11-30", "19:05", "QUEENS", False),
            ("2020-12-25", "01:00", "Brooklyn", False),
            ("2020-12-26", "01:30", "UNKNOWN", True),
        ]
    )


@pytest.fixture
def mock_shootings_download(mocker: Any, raw_shooting_df: pd.DataFrame) -> Any:
    """Mock the NYC Open Data CSV download with raw_shooting_df."""
    mock_response = mocker.MagicMock()
    mock_response.status_code = 200
    mock_response.text = raw_shooting_df.to_csv(index=False)
    mocker.patch(
        "shooting_pulse.datasets.shootings.ingest.requests.get", return_value=mock_response
    )
    return mock_response


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
