"""
Shooting Pulse - Category Lookups

Static lookup tables for the categorical keys used across the shootings
dataset: boroughs, the borough indicator encoding used for regression,
and the month -> season mapping.
"""

from __future__ import annotations

from enum import StrEnum


class Borough(StrEnum):
    """NYC boroughs as spelled in the NYPD BORO column."""

    BRONX = "BRONX"
    BROOKLYN = "BROOKLYN"
    MANHATTAN = "MANHATTAN"
    QUEENS = "QUEENS"
    STATEN_ISLAND = "STATEN ISLAND"


# Baseline category: represented by all indicators being false.
BASELINE_BOROUGH = Borough.STATEN_ISLAND

# Indicator column -> borough it flags. Order is the regression column order.
BOROUGH_INDICATORS: dict[str, Borough] = {
    "is_bronx": Borough.BRONX,
    "is_brooklyn": Borough.BROOKLYN,
    "is_manhattan": Borough.MANHATTAN,
    "is_queens": Borough.QUEENS,
}

UNKNOWN_BOROUGH = "UNKNOWN"


class Season(StrEnum):
    """Meteorological seasons, listed in calendar order starting with Winter."""

    WINTER = "Winter"
    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"


MONTH_TO_SEASON: dict[int, Season] = {
    12: Season.WINTER,
    1: Season.WINTER,
    2: Season.WINTER,
    3: Season.SPRING,
    4: Season.SPRING,
    5: Season.SPRING,
    6: Season.SUMMER,
    7: Season.SUMMER,
    8: Season.SUMMER,
    9: Season.FALL,
    10: Season.FALL,
    11: Season.FALL,
}

SEASON_ORDER: list[Season] = list(Season)
