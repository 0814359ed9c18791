"""
Runtime configuration for the heat stress dashboard.

Every field has a default that reproduces the public dashboard's behaviour.
Any field can be overridden from the environment with a
``HEAT_DASHBOARD_<FIELD NAME IN UPPER CASE>`` variable, e.g.
``HEAT_DASHBOARD_PHASE_TWO_DELAY=0``.
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional, Tuple

from .core.lookup import WorkLevel

ENV_PREFIX = "HEAT_DASHBOARD_"

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
CLIMATE_URL = "https://climate-api.open-meteo.com/v1/climate"

DEFAULT_PROJECTION_MODELS = ("CMCC_CM2_VHR4", "MRI_AGCM3_2_S", "EC_Earth3P_HR")


@dataclass(frozen=True)
class DashboardConfig:
    """Tunable constants for data acquisition and derived indices."""

    forecast_url: str = FORECAST_URL
    archive_url: str = ARCHIVE_URL
    climate_url: str = CLIMATE_URL

    # Lookup table asset: filesystem path or http(s) URL
    table_source: str = "assets/data/ehi_lookup.json"
    work_level: str = WorkLevel.MODERATE.value

    # Data windows
    history_years: int = 5
    long_term_start_year: int = 1960
    projection_start: str = "1950-01-01"
    projection_end: str = "2050-12-31"
    projection_models: Tuple[str, ...] = DEFAULT_PROJECTION_MODELS

    # Rate-limit courtesy (seconds)
    chunk_years: int = 20
    chunk_delay: float = 1.0
    phase_two_delay: float = 1.0
    phase_three_delay: float = 2.0

    # HTTP
    max_retries: int = 4
    backoff_base: float = 3.0
    request_timeout: float = 30.0

    def __post_init__(self):
        if self.work_level not in {level.value for level in WorkLevel}:
            raise ValueError(f"Unknown work level '{self.work_level}'")
        if self.history_years < 1:
            raise ValueError("history_years must be at least 1")
        if self.chunk_years < 1:
            raise ValueError("chunk_years must be at least 1")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        for name in ("chunk_delay", "phase_two_delay", "phase_three_delay",
                     "backoff_base", "request_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @property
    def level(self) -> WorkLevel:
        return WorkLevel(self.work_level)

    def with_overrides(self, **overrides) -> "DashboardConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def without_delays(self) -> "DashboardConfig":
        """Copy with every cooperative pause and backoff set to zero."""
        return replace(self, chunk_delay=0.0, phase_two_delay=0.0,
                       phase_three_delay=0.0, backoff_base=0.0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DashboardConfig":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ValueError: If a variable cannot be converted to the field's type
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, object] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            overrides[f.name] = _convert(f.name, raw, f.default)
        return cls(**overrides)


def _convert(name: str, raw: str, default):
    try:
        if isinstance(default, tuple):
            return tuple(part.strip() for part in raw.split(",") if part.strip())
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: '{raw}'") from e
    return raw
