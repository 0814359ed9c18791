"""
Acquisition Pipeline for the Heat Stress Dashboard

Fetches the four upstream data sources in three sequential phases and hands
derived results, or an error message, to the renderer region by region.

    table load   background task started before phase 1
    phase 1      current conditions + climate projections, concurrently
    (pause)      phase_two_delay
    phase 2      short historical window -> seasonal, heatmap, danger
    (pause)      phase_three_delay
    phase 3      long-term window in sequential chunks -> trend

The pauses and the inter-chunk delay keep the request rate under the
upstream limit; setting them to zero leaves the control flow unchanged.
A failure only ever marks the regions fed by the failing source.

Classes:
    Region: Output regions, each written by exactly one phase
    PhaseStatus: Terminal state of a region
    PhaseSequencer: Cooperative pauses between phases
    AcquisitionPipeline: The orchestrator
    PipelineReport: Outcome of a run
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from ..config import DashboardConfig
from ..core.lookup import LookupTableCache, TableState, load_lookup_table
from ..exceptions import HeatDashboardError
from ..io.fetch_client import FetchClient, RetryPolicy
from ..io.open_meteo import current_query, fetch_long_term, history_query, projection_query
from ..utils.logging_config import get_logger
from .derived import derive_current, derive_history, derive_projections, derive_trend

logger = get_logger(__name__)

GENERIC_ERROR = "Unexpected response from the weather service; please try again later"


class Region(str, Enum):
    CURRENT = "current"
    PROJECTIONS = "projections"
    SEASONAL = "seasonal"
    HEATMAP = "heatmap"
    DANGER = "danger"
    TREND = "trend"


class PhaseStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RegionOutcome:
    region: Region
    status: PhaseStatus
    result: Any = None
    error: Optional[str] = None


@dataclass
class PipelineReport:
    """Per-region outcomes of one pipeline run"""
    outcomes: Dict[Region, RegionOutcome] = field(default_factory=dict)
    table_state: TableState = TableState.UNLOADED

    def succeeded(self, region: Region) -> bool:
        outcome = self.outcomes.get(region)
        return outcome is not None and outcome.status is PhaseStatus.SUCCEEDED

    def result(self, region: Region) -> Any:
        outcome = self.outcomes.get(region)
        return outcome.result if outcome is not None else None

    @property
    def any_succeeded(self) -> bool:
        return any(o.status is PhaseStatus.SUCCEEDED for o in self.outcomes.values())


class PhaseSequencer:
    """Inserts the cooperative pause between phases and chunks."""

    def __init__(self, sleep=asyncio.sleep):
        self.sleep = sleep

    async def pause(self, seconds: float, reason: str = ""):
        if seconds <= 0:
            return
        logger.debug("Pausing %.1fs %s", seconds, reason)
        await self.sleep(seconds)


def _error_message(error: BaseException) -> str:
    if isinstance(error, HeatDashboardError):
        return str(error)
    return GENERIC_ERROR


class AcquisitionPipeline:
    """
    Orchestrates data acquisition and rendering for one location.

    Args:
        lat, lon: Location coordinates
        name: Display name of the location
        renderer: Rendering collaborator (show_loading / render / show_error)
        config: DashboardConfig (defaults from the environment)
        client: FetchClient to use; one is built from config when omitted
        table_cache: LookupTableCache to fill; a fresh one when omitted
        sleep: Coroutine used for every pause and backoff wait
        today: Reference date for the data windows
    """

    def __init__(self, lat: float, lon: float, name: str, renderer,
                 config: Optional[DashboardConfig] = None,
                 client: Optional[FetchClient] = None,
                 table_cache: Optional[LookupTableCache] = None,
                 sleep=asyncio.sleep,
                 today: Optional[date] = None):
        self.lat = lat
        self.lon = lon
        self.name = name
        self.renderer = renderer
        self.config = config or DashboardConfig.from_env()
        self.sequencer = PhaseSequencer(sleep)
        self._owns_client = client is None
        self.client = client or FetchClient(
            policy=RetryPolicy(max_attempts=self.config.max_retries,
                               base_delay=self.config.backoff_base),
            timeout=self.config.request_timeout,
            sleep=sleep,
        )
        self.table_cache = table_cache or LookupTableCache()
        self.today = today or date.today()
        self.report = PipelineReport()

    async def run(self) -> PipelineReport:
        """Run all three phases; never raises for upstream or data failures."""
        self.renderer.show_loading(Region.CURRENT, f"Loading live data for {self.name}...")
        table_task = asyncio.ensure_future(
            self.table_cache.load(lambda: load_lookup_table(self.config.table_source, self.client))
        )
        try:
            await self._phase_one(table_task)
            await self.sequencer.pause(self.config.phase_two_delay, "before phase 2")
            await self._phase_two()
            await self.sequencer.pause(self.config.phase_three_delay, "before phase 3")
            await self._phase_three()
        finally:
            if self._owns_client:
                self.client.close()

        self.report.table_state = self.table_cache.state
        return self.report

    async def _fetch(self, query):
        url, params = query
        return await self.client.fetch_json(url, params, max_retries=self.config.max_retries)

    async def _phase_one(self, table_task):
        logger.info("Phase 1: current conditions and projections for %s", self.name)
        current, projections, _ = await asyncio.gather(
            self._fetch(current_query(self.config, self.lat, self.lon)),
            self._fetch(projection_query(self.config, self.lat, self.lon)),
            table_task,
            return_exceptions=True,
        )
        self._settle(
            [Region.CURRENT], current,
            lambda payload: {Region.CURRENT: derive_current(
                payload, self.name, self.table_cache, self.config.level)},
        )
        self._settle(
            [Region.PROJECTIONS], projections,
            lambda payload: {Region.PROJECTIONS: derive_projections(payload)},
        )

    async def _phase_two(self):
        logger.info("Phase 2: %d-year history for %s", self.config.history_years, self.name)
        regions = [Region.SEASONAL, Region.HEATMAP, Region.DANGER]
        payload = await self._capture(
            self._fetch(history_query(self.config, self.lat, self.lon, self.today))
        )

        def split(data):
            summary = derive_history(data)
            return {
                Region.SEASONAL: summary.seasonal,
                Region.HEATMAP: summary.peaks,
                Region.DANGER: summary.exceedance,
            }

        self._settle(regions, payload, split)

    async def _phase_three(self):
        logger.info("Phase 3: long-term trend since %d for %s",
                    self.config.long_term_start_year, self.name)
        payload = await self._capture(
            fetch_long_term(self.client, self.config, self.lat, self.lon,
                            self.today, sleep=self.sequencer.pause)
        )
        self._settle([Region.TREND], payload,
                     lambda data: {Region.TREND: derive_trend(data)})

    @staticmethod
    async def _capture(awaitable):
        try:
            return await awaitable
        except Exception as e:  # phase boundary: converted to region errors in _settle
            return e

    def _settle(self, regions: Sequence[Region], payload: Any,
                derive: Callable[[Any], Dict[Region, Any]]):
        """
        Derive and render a phase's regions.

        A failed fetch or derivation marks every region of the phase failed;
        a rendering error only marks the region being drawn.
        """
        if isinstance(payload, BaseException):
            self._fail(regions, payload)
            return
        try:
            results = derive(payload)
        except Exception as e:  # phase boundary
            self._fail(regions, e)
            return
        for region in regions:
            try:
                self.renderer.render(region, results[region])
            except Exception as e:  # region boundary
                self._fail([region], e)
                continue
            self.report.outcomes[region] = RegionOutcome(region, PhaseStatus.SUCCEEDED, results[region])

    def _fail(self, regions: Sequence[Region], error: BaseException):
        message = _error_message(error)
        if isinstance(error, HeatDashboardError):
            logger.warning("%s failed: %s", ", ".join(r.value for r in regions), error)
        else:
            logger.error("%s failed", ", ".join(r.value for r in regions),
                         exc_info=(type(error), error, error.__traceback__))
        for region in regions:
            self.renderer.show_error(region, message)
            self.report.outcomes[region] = RegionOutcome(region, PhaseStatus.FAILED, error=message)
