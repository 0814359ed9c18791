"""
Lookup-table heat stress index (EHI-style).

The table holds a physiologically derived index, precomputed per work
intensity on a 1 °C x 1 %RH grid. Temperature is interpolated linearly
between the two bounding grid rows; humidity is snapped to the nearest
integer column.

Classes:
    WorkLevel: Work intensity keys of the table
    TableState: Lifecycle of a LookupTableCache
    LookupTableCache: Owned, load-once holder of the table
    LookupEngine: Interpolation over a cache
"""

import asyncio
import json
import math
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from .calculations import HeatCalculations
from ..exceptions import HeatDashboardError, TableUnavailable
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

TEMP_MIN, TEMP_MAX = 20, 55
RH_MIN, RH_MAX = 10, 100

LookupTable = Mapping[str, Mapping[int, Mapping[int, float]]]


class WorkLevel(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class IndexFamily(str, Enum):
    """Which engine produced an index value."""
    LOOKUP = "lookup"
    BASELINE = "baseline"


class TableState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    UNAVAILABLE = "unavailable"


def parse_lookup_table(raw: Any) -> LookupTable:
    """
    Convert a decoded JSON table into a read-only lookup table.

    Args:
        raw: Mapping of level -> "temp" -> "rh" -> value

    Returns:
        Immutable mapping keyed by level name, then int temperature, then int humidity

    Raises:
        TableUnavailable: If the payload has none of the known levels or bad keys
    """
    if not isinstance(raw, dict):
        raise TableUnavailable("Lookup table must be a JSON object")

    levels = {}
    for level in WorkLevel:
        rows = raw.get(level.value)
        if rows is None:
            continue
        try:
            levels[level.value] = MappingProxyType({
                int(temp): MappingProxyType({int(rh): float(value) for rh, value in cols.items()})
                for temp, cols in rows.items()
            })
        except (AttributeError, TypeError, ValueError, OverflowError) as e:
            raise TableUnavailable(f"Malformed lookup table for level '{level.value}': {e}") from e

    if not levels:
        raise TableUnavailable("Lookup table has no light/moderate/heavy levels")
    return MappingProxyType(levels)


async def load_lookup_table(source: str, client=None) -> LookupTable:
    """
    Load and parse the lookup table from a URL or a JSON file.

    Args:
        source: http(s) URL or filesystem path
        client: FetchClient used for URLs (required for URLs)

    Raises:
        TableUnavailable: On any failure
    """
    if source.startswith(("http://", "https://")):
        if client is None:
            raise TableUnavailable("A fetch client is required to load the table from a URL")
        try:
            raw = await client.fetch_json(source, max_retries=1)
        except HeatDashboardError as e:
            raise TableUnavailable(str(e)) from e
    else:
        path = Path(source)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            raw = json.loads(text)
        except (OSError, ValueError, RecursionError) as e:
            raise TableUnavailable(f"Cannot read lookup table {path}: {e}") from e
    return parse_lookup_table(raw)


class LookupTableCache:
    """
    Load-once holder for the lookup table.

    State moves UNLOADED -> LOADING -> LOADED or UNAVAILABLE and never back.
    A failed load is permanent for the life of the cache.
    """

    def __init__(self, table: Optional[LookupTable] = None):
        self._table = table
        self._state = TableState.LOADED if table is not None else TableState.UNLOADED
        self._task: Optional[asyncio.Future] = None

    @classmethod
    def from_mapping(cls, raw: Dict) -> "LookupTableCache":
        """Build a loaded cache from a JSON-shaped dict (used for injection in tests)."""
        return cls(parse_lookup_table(raw))

    @classmethod
    def unavailable(cls) -> "LookupTableCache":
        cache = cls()
        cache._state = TableState.UNAVAILABLE
        return cache

    @property
    def state(self) -> TableState:
        return self._state

    @property
    def table(self) -> Optional[LookupTable]:
        """The table when LOADED, otherwise None."""
        return self._table if self._state is TableState.LOADED else None

    async def load(self, loader: Callable[[], Awaitable[LookupTable]]) -> TableState:
        """
        Run the loader once; concurrent and later callers share its outcome.

        Never raises for a failed load: the cache just becomes UNAVAILABLE.
        """
        if self._state in (TableState.LOADED, TableState.UNAVAILABLE):
            return self._state
        if self._task is None:
            self._state = TableState.LOADING
            self._task = asyncio.ensure_future(self._run(loader))
        await asyncio.shield(self._task)
        return self._state

    async def _run(self, loader):
        try:
            self._table = await loader()
        except HeatDashboardError as e:
            logger.info("Lookup table unavailable, using baseline index only: %s", e)
            self._mark_unavailable()
        except Exception:  # load boundary: any loader failure disables the table for good
            logger.exception("Lookup table loader failed, using baseline index only")
            self._mark_unavailable()
        else:
            logger.debug("Lookup table loaded with levels: %s", ", ".join(self._table))
            self._state = TableState.LOADED

    def _mark_unavailable(self):
        self._table = None
        self._state = TableState.UNAVAILABLE


class LookupEngine:
    """Bilinear-in-temperature interpolation over a LookupTableCache."""

    def __init__(self, cache: LookupTableCache):
        self.cache = cache

    def lookup(self, temp_c: float, rel_humidity: float,
               level: WorkLevel = WorkLevel.MODERATE) -> Optional[float]:
        """
        Look up the heat stress index.

        Args:
            temp_c: Air temperature in Celsius (clamped to 20-55)
            rel_humidity: Relative humidity percent (clamped to 10-100, rounded)
            level: Work intensity

        Returns:
            Index in Celsius, or None when the table, level or cells are missing
        """
        table = self.cache.table
        if table is None:
            return None
        rows = table.get(WorkLevel(level).value)
        if rows is None:
            return None

        t = HeatCalculations.clamp(temp_c, TEMP_MIN, TEMP_MAX)
        rh = int(math.floor(HeatCalculations.clamp(rel_humidity, RH_MIN, RH_MAX) + 0.5))

        t0 = math.floor(t)
        t1 = math.ceil(t)
        v0 = rows.get(t0, {}).get(rh)
        v1 = rows.get(t1, {}).get(rh)

        if v0 is None and v1 is None:
            return None
        if v1 is None:
            return v0
        if v0 is None:
            return v1
        return v0 + (v1 - v0) * (t - t0)


def lookup_index(temp_c: float, rel_humidity: float, level: WorkLevel,
                 cache: LookupTableCache) -> Optional[float]:
    """Functional form of LookupEngine.lookup."""
    return LookupEngine(cache).lookup(temp_c, rel_humidity, level)


def effective_index(temp_c: float, rel_humidity: float, level: WorkLevel,
                    cache: LookupTableCache) -> Tuple[float, IndexFamily]:
    """
    Lookup index when available, otherwise the baseline heat index.

    Returns:
        Tuple of (index in Celsius, family that produced it)
    """
    value = lookup_index(temp_c, rel_humidity, level, cache)
    if value is not None:
        return value, IndexFamily.LOOKUP
    return HeatCalculations.heat_index(temp_c, rel_humidity), IndexFamily.BASELINE
