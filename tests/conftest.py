"""
Test suite for the heat_dashboard package.

Test Modules:
- test_calculations.py: Baseline heat index and unit conversions
- test_lookup.py: Lookup-table interpolation and the table cache
- test_advisor.py: Risk tier classification
- test_aggregator.py: Yearly/monthly/seasonal reductions and trend fit
- test_fetch_client.py: HTTP retry and backoff
- test_pipeline.py: Phase orchestration and failure isolation
- test_config.py: Configuration defaults and environment overrides
- test_visualizer.py: Figure output

Usage:
    # Run all tests
    python -m pytest tests/

    # Run with coverage
    python -m pytest tests/ --cov=heat_dashboard
"""

import sys
import os
import asyncio
import warnings

import pytest

# Add the parent directory to the path so the package imports without installation
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

warnings.filterwarnings('ignore', category=RuntimeWarning)

from heat_dashboard.config import DashboardConfig  # noqa: E402
from heat_dashboard.exceptions import FetchError  # noqa: E402


def pytest_configure(config):
    """Configure pytest settings"""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that run the whole pipeline"
    )


class RecordingSleep:
    """Async sleep stand-in that records requested delays and returns at once"""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeClient:
    """
    In-memory stand-in for FetchClient serving Open-Meteo shaped payloads.

    Requests are classified by endpoint and parameters; kinds listed in
    ``fail`` raise FetchError. ``in_flight_at_entry`` records which other
    request kinds were still running when each request started.
    """

    def __init__(self, fail=(), long_term_years=None):
        self.fail = set(fail)
        self.long_term_years = long_term_years
        self.calls = []
        self.in_flight = []
        self.in_flight_at_entry = []
        self.closed = False

    @staticmethod
    def kind(url, params):
        if "forecast" in url:
            return "current"
        if "climate" in url:
            return "projections"
        if "apparent_temperature_min" in params.get("daily", ""):
            return "history"
        return "long_term"

    async def fetch_json(self, url, params=None, max_retries=None):
        params = dict(params or {})
        kind = self.kind(url, params)
        self.calls.append((kind, params))
        self.in_flight_at_entry.append((kind, list(self.in_flight)))
        self.in_flight.append(kind)
        try:
            await asyncio.sleep(0)
            if kind in self.fail:
                raise FetchError(500, url)
            return self.payload(kind, params)
        finally:
            self.in_flight.remove(kind)

    def payload(self, kind, params):
        if kind == "current":
            return current_payload()
        if kind == "projections":
            return projection_payload()
        if kind == "history":
            return history_payload()
        start = int(params["start_date"][:4])
        end = int(params["end_date"][:4])
        years = self.long_term_years or range(start, end + 1)
        years = [y for y in years if start <= y <= end]
        return {
            "daily": {
                "time": [f"{y}-07-01" for y in years],
                "temperature_2m_max": [30.0 + 0.02 * (y - 1960) for y in years],
                "apparent_temperature_max": [33.0 + 0.02 * (y - 1960) for y in years],
            }
        }

    def close(self):
        self.closed = True


def current_payload(temp=31.0, humidity=50):
    return {
        "current": {
            "temperature_2m": temp,
            "relative_humidity_2m": humidity,
            "apparent_temperature": 34.2,
            "wind_speed_10m": 12.0,
        }
    }


def projection_payload():
    return {
        "daily": {
            "time": ["2049-07-01", "2049-07-02", "2050-07-01"],
            "temperature_2m_max": [40.0, 42.0, 43.0],
            "temperature_2m_max_CMCC_CM2_VHR4": [39.0, 41.0, 42.0],
            "temperature_2m_max_MRI_AGCM3_2_S": [41.0, None, 44.0],
            "temperature_2m_min_CMCC_CM2_VHR4": [28.0, 29.0, 30.0],
        }
    }


def history_payload():
    return {
        "daily": {
            "time": ["2024-07-01", "2024-07-02", "2025-01-15", "2025-07-01"],
            "temperature_2m_max": [38.0, 41.0, 20.0, None],
            "temperature_2m_min": [27.0, 29.0, 10.0, 28.0],
            "apparent_temperature_max": [41.0, 46.0, 18.0, 36.0],
            "apparent_temperature_min": [29.0, 31.0, 8.0, 30.0],
        }
    }


@pytest.fixture
def sample_table():
    """Small lookup table covering the corners and a few interior cells"""
    return {
        "moderate": {
            "20": {"10": 18.0, "100": 25.0},
            "30": {"50": 35.0, "51": 35.5},
            "31": {"50": 37.0, "51": 37.6},
            "32": {"50": 40.0},
            "55": {"10": 50.0, "100": 70.0},
        },
        "light": {
            "30": {"50": 33.0},
            "31": {"50": 34.0},
        },
    }


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fast_config(tmp_path):
    """Config with no pauses and a table source that does not exist"""
    return DashboardConfig(table_source=str(tmp_path / "missing.json")).without_delays()
