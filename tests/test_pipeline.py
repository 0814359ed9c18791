"""
Test suite for heat_dashboard.pipeline (acquisition and derived data).

Tests cover:
- Phase ordering, pauses and concurrency
- Failure isolation between data sources
- Lookup table loading during a run
- Derived values for each region
- HeatDashboard session behaviour
"""

import asyncio
import json
from datetime import date
from unittest.mock import Mock

import pytest

from heat_dashboard import HeatDashboard
from heat_dashboard.advice.advisor import classify_risk
from heat_dashboard.config import DashboardConfig
from heat_dashboard.core.calculations import HeatCalculations
from heat_dashboard.core.lookup import (
    IndexFamily,
    LookupTableCache,
    TableState,
    WorkLevel,
    effective_index,
)
from heat_dashboard.exceptions import DegenerateAggregation
from heat_dashboard.pipeline.acquisition import (
    GENERIC_ERROR,
    AcquisitionPipeline,
    PhaseSequencer,
    PhaseStatus,
    Region,
)
from heat_dashboard.pipeline.derived import (
    MULTI_MODEL_MEAN,
    derive_current,
    derive_history,
    derive_projections,
    derive_trend,
)

from conftest import FakeClient, RecordingSleep, current_payload, history_payload, projection_payload

TODAY = date(2026, 6, 1)


def run_pipeline(config, client, sleep=None, renderer=None, table_cache=None):
    renderer = renderer or Mock()
    pipeline = AcquisitionPipeline(
        25.2, 55.3, "Testville", renderer,
        config=config, client=client, table_cache=table_cache,
        sleep=sleep or RecordingSleep(), today=TODAY,
    )
    return asyncio.run(pipeline.run()), renderer


def rendered_regions(renderer):
    return [c.args[0] for c in renderer.render.call_args_list]


def errored_regions(renderer):
    return {c.args[0]: c.args[1] for c in renderer.show_error.call_args_list}


@pytest.fixture
def table_config(tmp_path, sample_table):
    path = tmp_path / "ehi.json"
    path.write_text(json.dumps(sample_table), encoding="utf-8")
    return DashboardConfig(table_source=str(path)).without_delays()


class TestPhaseSequence:
    """Test phase ordering and pauses"""

    def test_all_regions_rendered(self, fast_config):
        report, renderer = run_pipeline(fast_config, FakeClient())
        assert rendered_regions(renderer) == [
            Region.CURRENT, Region.PROJECTIONS,
            Region.SEASONAL, Region.HEATMAP, Region.DANGER,
            Region.TREND,
        ]
        assert renderer.show_error.call_count == 0
        assert all(report.succeeded(region) for region in Region)
        renderer.show_loading.assert_called_once()

    def test_request_order(self, fast_config):
        client = FakeClient()
        run_pipeline(fast_config, client)
        kinds = [kind for kind, _ in client.calls]
        assert sorted(kinds[:2]) == ["current", "projections"]
        assert kinds[2] == "history"
        assert set(kinds[3:]) == {"long_term"}

    def test_pauses(self, tmp_path):
        """Phase pauses come first, then one pause between each pair of chunks"""
        config = DashboardConfig(table_source=str(tmp_path / "missing.json"))
        sleep = RecordingSleep()
        run_pipeline(config, FakeClient(), sleep=sleep)
        # 1960-2025 in 20 year chunks is four requests
        assert sleep.calls == [1.0, 2.0, 1.0, 1.0, 1.0]

    def test_zero_delays_skip_sleep(self, fast_config):
        sleep = RecordingSleep()
        run_pipeline(fast_config, FakeClient(), sleep=sleep)
        assert sleep.calls == []

    def test_phase_one_is_concurrent(self, fast_config):
        client = FakeClient()
        run_pipeline(fast_config, client)
        entries = dict(client.in_flight_at_entry[:2])
        assert entries["current"] == []
        assert entries["projections"] == ["current"]

    def test_long_term_chunks_are_sequential(self, fast_config):
        config = fast_config.with_overrides(chunk_years=22)
        client = FakeClient()
        run_pipeline(config, client)
        chunks = [params for kind, params in client.calls if kind == "long_term"]
        assert [p["start_date"] for p in chunks] == ["1960-01-01", "1982-01-01", "2004-01-01"]
        assert [p["end_date"] for p in chunks] == ["1981-12-31", "2003-12-31", "2025-12-31"]
        for kind, running in client.in_flight_at_entry:
            if kind == "long_term":
                assert running == []

    def test_history_window(self, fast_config):
        client = FakeClient()
        run_pipeline(fast_config, client)
        history = [params for kind, params in client.calls if kind == "history"][0]
        assert history["start_date"] == "2021-01-01"
        assert history["end_date"] == "2025-12-31"

    def test_supplied_client_not_closed(self, fast_config):
        client = FakeClient()
        run_pipeline(fast_config, client)
        assert not client.closed


class TestFailureIsolation:
    """A failing source only marks its own regions"""

    def test_current_fails(self, fast_config):
        report, renderer = run_pipeline(fast_config, FakeClient(fail={"current"}))
        errors = errored_regions(renderer)
        assert list(errors) == [Region.CURRENT]
        assert "HTTP 500" in errors[Region.CURRENT]
        assert report.outcomes[Region.CURRENT].status is PhaseStatus.FAILED
        for region in Region:
            if region is not Region.CURRENT:
                assert report.succeeded(region)

    def test_history_fails(self, fast_config):
        report, renderer = run_pipeline(fast_config, FakeClient(fail={"history"}))
        assert set(errored_regions(renderer)) == {Region.SEASONAL, Region.HEATMAP, Region.DANGER}
        assert report.succeeded(Region.CURRENT)
        assert report.succeeded(Region.PROJECTIONS)
        assert report.succeeded(Region.TREND)

    def test_long_term_fails(self, fast_config):
        report, renderer = run_pipeline(fast_config, FakeClient(fail={"long_term"}))
        assert list(errored_regions(renderer)) == [Region.TREND]
        assert not report.succeeded(Region.TREND)
        assert report.succeeded(Region.SEASONAL)

    def test_everything_fails(self, fast_config):
        client = FakeClient(fail={"current", "projections", "history", "long_term"})
        report, renderer = run_pipeline(fast_config, client)
        assert set(errored_regions(renderer)) == set(Region)
        assert renderer.render.call_count == 0
        assert not report.any_succeeded
        assert report.table_state is TableState.UNAVAILABLE

    def test_later_phases_run_after_failure(self, fast_config):
        client = FakeClient(fail={"current", "projections"})
        run_pipeline(fast_config, client)
        kinds = [kind for kind, _ in client.calls]
        assert "history" in kinds
        assert "long_term" in kinds

    def test_degenerate_trend(self, fast_config):
        """A single year of long-term data only fails the trend region"""
        client = FakeClient(long_term_years=[2000])
        report, renderer = run_pipeline(fast_config, client)
        errors = errored_regions(renderer)
        assert list(errors) == [Region.TREND]
        assert "two distinct years" in errors[Region.TREND]
        assert report.succeeded(Region.DANGER)

    def test_malformed_payload(self, fast_config):
        class BrokenCurrent(FakeClient):
            def payload(self, kind, params):
                if kind == "current":
                    return {"unexpected": True}
                return super().payload(kind, params)

        report, renderer = run_pipeline(fast_config, BrokenCurrent())
        assert errored_regions(renderer) == {Region.CURRENT: GENERIC_ERROR}
        assert report.outcomes[Region.CURRENT].error == GENERIC_ERROR

    def test_renderer_failure_is_contained(self, fast_config):
        def render(region, data):
            if region is Region.HEATMAP:
                raise RuntimeError("draw failed")

        renderer = Mock()
        renderer.render.side_effect = render
        report, _ = run_pipeline(fast_config, FakeClient(), renderer=renderer)
        assert report.succeeded(Region.SEASONAL)
        assert report.succeeded(Region.DANGER)
        assert report.succeeded(Region.TREND)
        assert not report.succeeded(Region.HEATMAP)
        assert report.outcomes[Region.HEATMAP].status is PhaseStatus.FAILED
        assert errored_regions(renderer) == {Region.HEATMAP: GENERIC_ERROR}


class TestTableDuringRun:
    """Test the lookup table load that runs alongside phase 1"""

    def test_missing_table_uses_baseline(self, fast_config):
        report, _ = run_pipeline(fast_config, FakeClient())
        current = report.result(Region.CURRENT)
        assert report.table_state is TableState.UNAVAILABLE
        assert current.stress_family is IndexFamily.BASELINE
        assert current.stress_index == pytest.approx(HeatCalculations.heat_index(31.0, 50))

    def test_loaded_table_uses_lookup(self, table_config):
        report, _ = run_pipeline(table_config, FakeClient())
        current = report.result(Region.CURRENT)
        assert report.table_state is TableState.LOADED
        assert current.stress_family is IndexFamily.LOOKUP
        assert current.stress_index == 37.0
        assert current.stress_risk.label == "Danger"
        assert current.lookup_by_level["light"] == 34.0
        assert current.lookup_by_level["heavy"] is None

    def test_table_with_oversized_number_is_unavailable(self, tmp_path):
        path = tmp_path / "ehi.json"
        path.write_text('{"moderate": {"31": {"50": ' + "9" * 400 + "}}}", encoding="utf-8")
        config = DashboardConfig(table_source=str(path)).without_delays()
        report, _ = run_pipeline(config, FakeClient())
        assert report.table_state is TableState.UNAVAILABLE
        assert report.result(Region.CURRENT).stress_family is IndexFamily.BASELINE

    def test_work_level_from_config(self, table_config):
        config = table_config.with_overrides(work_level="light")
        report, _ = run_pipeline(config, FakeClient())
        current = report.result(Region.CURRENT)
        assert current.work_level is WorkLevel.LIGHT
        assert current.stress_index == 34.0


class TestPhaseSequencer:
    """Test the pause helper"""

    def test_skips_non_positive(self):
        sleep = RecordingSleep()
        sequencer = PhaseSequencer(sleep)
        asyncio.run(sequencer.pause(0))
        asyncio.run(sequencer.pause(-1))
        asyncio.run(sequencer.pause(1.5, "test"))
        assert sleep.calls == [1.5]


class TestDerived:
    """Test derivations from upstream payloads"""

    def test_current_without_table(self):
        current = derive_current(current_payload(35.0, 60), "Here", LookupTableCache())
        assert current.heat_index == pytest.approx(HeatCalculations.heat_index(35.0, 60))
        assert current.heat_index_risk == classify_risk(current.heat_index, IndexFamily.BASELINE)
        assert current.stress_family is IndexFamily.BASELINE
        assert current.apparent_temperature == 34.2
        assert current.advice

    @pytest.mark.parametrize("level", list(WorkLevel))
    def test_current_matches_effective_index(self, sample_table, level):
        cache = LookupTableCache.from_mapping(sample_table)
        current = derive_current(current_payload(31.0, 50), "Here", cache, level)
        assert (current.stress_index, current.stress_family) == effective_index(31.0, 50, level, cache)

    def test_current_malformed(self):
        with pytest.raises(KeyError):
            derive_current({"current": {}}, "Here", LookupTableCache())

    def test_projection_series(self):
        series = derive_projections(projection_payload())
        assert list(series) == [MULTI_MODEL_MEAN, "CMCC CM2 VHR4", "MRI AGCM3 2 S"]
        assert series[MULTI_MODEL_MEAN].years == [2049, 2050]
        assert series[MULTI_MODEL_MEAN].means == [41.0, 43.0]
        assert series["MRI AGCM3 2 S"].means == [41.0, 44.0]

    def test_projection_without_series(self):
        with pytest.raises(KeyError):
            derive_projections({"daily": {"time": [], "temperature_2m_min": []}})

    def test_history(self):
        summary = derive_history(history_payload())
        assert summary.seasonal.years_observed == 2
        assert summary.seasonal.days_above_35[6] == pytest.approx(1.5)
        assert summary.peaks.years == [2024, 2025]
        assert summary.exceedance.days_35 == [2, 1]
        assert summary.exceedance.days_40 == [2, 0]
        assert summary.exceedance.days_45 == [1, 0]

    def test_trend(self):
        payload = {"daily": {
            "time": ["2000-07-01", "2001-07-01", "2002-07-01"],
            "temperature_2m_max": [30.0, 31.0, 32.0],
        }}
        trend = derive_trend(payload)
        assert trend.yearly.years == [2000, 2001, 2002]
        assert trend.fit.total_change == pytest.approx(2.0)

    def test_trend_degenerate(self):
        with pytest.raises(DegenerateAggregation):
            derive_trend({"daily": {"time": ["2000-07-01"], "temperature_2m_max": [30.0]}})


@pytest.mark.integration
class TestHeatDashboard:
    """Test the session-level interface"""

    def test_run_sync(self, fast_config):
        renderer = Mock()
        dashboard = HeatDashboard(25.2, 55.3, "Testville", renderer, config=fast_config)
        report = dashboard.run_sync(client=FakeClient(), sleep=RecordingSleep(), today=TODAY)
        assert report.any_succeeded
        assert report.succeeded(Region.TREND)

    def test_table_loaded_once_per_session(self, table_config):
        dashboard = HeatDashboard(25.2, 55.3, "Testville", Mock(), config=table_config)
        dashboard.run_sync(client=FakeClient(), sleep=RecordingSleep(), today=TODAY)
        table = dashboard.table_cache.table

        # Removing the asset does not matter once the session has loaded it
        open(table_config.table_source, "w").close()
        report = dashboard.run_sync(client=FakeClient(), sleep=RecordingSleep(), today=TODAY)
        assert report.table_state is TableState.LOADED
        assert dashboard.table_cache.table is table

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_invalid_coordinates(self, lat, lon):
        with pytest.raises(ValueError):
            HeatDashboard(lat, lon, "Nowhere", Mock())

    def test_path_mount_builds_visualizer(self, tmp_path, fast_config):
        from heat_dashboard.visualization.visualizer import Visualizer
        dashboard = HeatDashboard(0, 0, "Somewhere", tmp_path / "out", config=fast_config)
        assert isinstance(dashboard.renderer, Visualizer)
