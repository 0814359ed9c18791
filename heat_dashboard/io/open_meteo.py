"""
Open-Meteo query shapes used by the dashboard.

Four read-only queries are issued per location:

- current conditions (forecast API, ``current`` block)
- short historical window (archive API, ``daily`` block)
- long-term historical window (archive API, fetched in year chunks)
- multi-model climate projections (climate API, ``daily`` block)

Each builder returns ``(url, params)`` for ``FetchClient.fetch_json``.
"""

import asyncio
from datetime import date
from typing import Any, Dict, List, Sequence, Tuple

from ..config import DashboardConfig
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Query = Tuple[str, Dict[str, Any]]

CURRENT_FIELDS = ("temperature_2m", "relative_humidity_2m", "apparent_temperature", "wind_speed_10m")
HISTORY_FIELDS = ("temperature_2m_max", "temperature_2m_min",
                  "apparent_temperature_max", "apparent_temperature_min")
LONG_TERM_FIELDS = ("temperature_2m_max", "apparent_temperature_max")
PROJECTION_FIELDS = ("temperature_2m_max", "temperature_2m_min")


def _base_params(lat: float, lon: float) -> Dict[str, Any]:
    return {"latitude": lat, "longitude": lon, "timezone": "auto"}


def current_query(config: DashboardConfig, lat: float, lon: float) -> Query:
    params = _base_params(lat, lon)
    params["current"] = ",".join(CURRENT_FIELDS)
    return config.forecast_url, params


def history_query(config: DashboardConfig, lat: float, lon: float, today: date) -> Query:
    """Daily archive for the last ``history_years`` complete years"""
    params = _base_params(lat, lon)
    params.update({
        "start_date": f"{today.year - config.history_years}-01-01",
        "end_date": f"{today.year - 1}-12-31",
        "daily": ",".join(HISTORY_FIELDS),
    })
    return config.archive_url, params


def long_term_query(config: DashboardConfig, lat: float, lon: float,
                    start_year: int, end_year: int) -> Query:
    params = _base_params(lat, lon)
    params.update({
        "start_date": f"{start_year}-01-01",
        "end_date": f"{end_year}-12-31",
        "daily": ",".join(LONG_TERM_FIELDS),
    })
    return config.archive_url, params


def projection_query(config: DashboardConfig, lat: float, lon: float) -> Query:
    params = _base_params(lat, lon)
    params.update({
        "start_date": config.projection_start,
        "end_date": config.projection_end,
        "models": ",".join(config.projection_models),
        "daily": ",".join(PROJECTION_FIELDS),
    })
    return config.climate_url, params


def year_chunks(start_year: int, end_year: int, span: int) -> List[Tuple[int, int]]:
    """
    Split an inclusive year range into consecutive chunks of ``span`` years.

    >>> year_chunks(1960, 2025, 20)
    [(1960, 1979), (1980, 1999), (2000, 2019), (2020, 2025)]
    """
    if span < 1:
        raise ValueError(f"Chunk span must be positive, got {span}")
    if end_year < start_year:
        raise ValueError(f"Invalid year range {start_year}-{end_year}")
    return [(year, min(year + span - 1, end_year))
            for year in range(start_year, end_year + 1, span)]


def merge_daily(payloads: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Concatenate the ``daily`` blocks of chronologically ordered payloads.

    Only keys present in every chunk are kept so the arrays stay index-aligned
    with ``time``.
    """
    if not payloads:
        raise ValueError("No payloads to merge")
    blocks = [payload["daily"] for payload in payloads]
    keys = [key for key in blocks[0] if all(key in block for block in blocks[1:])]
    merged = {key: [] for key in keys}
    for block in blocks:
        for key in keys:
            merged[key].extend(block[key])
    return {"daily": merged}


async def fetch_long_term(client, config: DashboardConfig, lat: float, lon: float,
                          today: date, sleep=asyncio.sleep) -> Dict[str, Any]:
    """
    Fetch the long-term archive in year chunks, one request at a time.

    A pause of ``config.chunk_delay`` seconds separates consecutive chunk
    requests; there is none after the last chunk.
    """
    chunks = year_chunks(config.long_term_start_year, today.year - 1, config.chunk_years)
    payloads = []
    for i, (start_year, end_year) in enumerate(chunks):
        url, params = long_term_query(config, lat, lon, start_year, end_year)
        logger.debug("Fetching long-term chunk %d/%d (%d-%d)", i + 1, len(chunks), start_year, end_year)
        payloads.append(await client.fetch_json(url, params, max_retries=config.max_retries))
        if i < len(chunks) - 1:
            await sleep(config.chunk_delay)
    return merge_daily(payloads)
