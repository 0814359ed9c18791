"""
Visualization Module for the Heat Stress Dashboard

Writes one figure per dashboard region into an output directory. The
Visualizer only draws what the pipeline hands it; it holds no heat stress
logic of its own.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Protocol, Union

import numpy as np
from matplotlib.figure import Figure

from ..analysis.aggregator import ExceedanceCounts, MonthlyPeakGrid, SeasonalCalendar, YearlySeries
from ..pipeline.acquisition import Region
from ..pipeline.derived import MULTI_MODEL_MEAN, CurrentConditions, WarmingTrend
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

MODEL_COLORS = ['#1976d2', '#388e3c', '#f57c00']
EXCEEDANCE_COLORS = ['#ff9800', '#f44336', '#b71c1c']


class Renderer(Protocol):
    """Rendering collaborator interface used by the pipeline"""

    def show_loading(self, region: Region, message: str) -> None: ...

    def render(self, region: Region, payload) -> None: ...

    def show_error(self, region: Region, message: str) -> None: ...


class Visualizer:
    """
    Matplotlib renderer writing ``<region>.png`` files.

    Args:
        output_dir: Directory for the figures (created if missing)
        dpi: Resolution of written figures
    """

    def __init__(self, output_dir: Union[str, Path], dpi: int = 110):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.dpi = dpi
        self.written: Dict[str, Path] = {}

    def _save(self, region: Region, fig: Figure) -> Path:
        path = self.output_dir / f"{Region(region).value}.png"
        fig.tight_layout()
        fig.savefig(path, dpi=self.dpi)
        self.written[Region(region).value] = path
        logger.debug("Wrote %s", path)
        return path

    def _message_figure(self, region: Region, message: str, color: str) -> Path:
        fig = Figure(figsize=(8, 3))
        fig.text(0.5, 0.5, message, ha='center', va='center', wrap=True,
                 color=color, fontsize=11)
        return self._save(region, fig)

    def show_loading(self, region: Region, message: str) -> None:
        self._message_figure(region, message, '#999999')

    def show_error(self, region: Region, message: str) -> None:
        self._message_figure(region, f"Unable to load data\n{message}", '#e65100')

    def render(self, region: Region, payload) -> None:
        handlers = {
            Region.CURRENT: self.plot_current,
            Region.PROJECTIONS: self.plot_projections,
            Region.SEASONAL: self.plot_seasonal,
            Region.HEATMAP: self.plot_heatmap,
            Region.DANGER: self.plot_danger_days,
            Region.TREND: self.plot_trend,
        }
        handlers[Region(region)](payload)

    def plot_current(self, current: CurrentConditions) -> Path:
        """Current conditions card plus a JSON copy of the readings"""
        json_path = self.output_dir / "current.json"
        json_path.write_text(json.dumps(asdict(current), indent=2), encoding="utf-8")

        cards = [
            (f"{current.temperature:.1f}°C", "Temperature", '#e65100'),
            (f"{current.humidity:.0f}%", "Humidity", '#0066cc'),
            ("n/a" if current.apparent_temperature is None else f"{current.apparent_temperature:.1f}°C",
             "Feels Like", '#e65100'),
            (f"{current.heat_index:.1f}°C", "Heat Index", current.heat_index_risk.color),
            (f"{current.stress_index:.1f}°C", f"Heat Stress ({current.work_level.value})",
             current.stress_risk.color),
            (current.stress_risk.label, "Risk Level", current.stress_risk.color),
        ]
        fig = Figure(figsize=(12, 2.6))
        for i, (value, label, color) in enumerate(cards):
            x = (i + 0.5) / len(cards)
            fig.text(x, 0.62, value, ha='center', fontsize=16, fontweight='bold', color=color)
            fig.text(x, 0.38, label, ha='center', fontsize=9, color='#666666')
        fig.text(0.5, 0.1, f"Live data for {current.name} via Open-Meteo. {current.advice}",
                 ha='center', fontsize=8, color='#999999')
        return self._save(Region.CURRENT, fig)

    def plot_seasonal(self, cal: SeasonalCalendar) -> Path:
        fig = Figure(figsize=(8, 4))
        ax = fig.add_subplot()
        x = np.arange(len(cal.months))
        avg_max = [np.nan if v is None else v for v in cal.avg_max]
        avg_apparent = [np.nan if v is None else v for v in cal.avg_apparent]
        ax.bar(x - 0.2, avg_max, width=0.4, color='#ff9800', alpha=0.7, label='Avg Daily Max')
        ax.bar(x + 0.2, avg_apparent, width=0.4, color='#f44336', alpha=0.7, label='Avg Apparent Max')
        ax.axhline(35, color='red', linestyle='--', linewidth=1.5)
        ax.annotate('Danger (35°C)', xy=(11, 35), xytext=(0, 4), textcoords='offset points',
                    ha='center', fontsize=8, color='red')
        ax.set_xticks(x)
        ax.set_xticklabels(cal.months)
        ax.set_ylabel('Temperature (°C)')
        ax.set_title(f"Seasonal Heat Profile ({cal.years_observed}-Year Average)")
        ax.legend(loc='upper left', fontsize=8)
        ax.grid(True, alpha=0.3)
        return self._save(Region.SEASONAL, fig)

    def plot_heatmap(self, grid: MonthlyPeakGrid) -> Path:
        if not grid.years:
            return self._message_figure(Region.HEATMAP, "No apparent temperature data", '#999999')

        fig = Figure(figsize=(8, 4))
        ax = fig.add_subplot()
        z = np.array([[np.nan if v is None else v for v in row] for row in grid.peaks], dtype=float)
        image = ax.imshow(z, aspect='auto', cmap='YlOrRd')
        fig.colorbar(image, ax=ax, label='°C')
        ax.set_xticks(range(len(grid.months)))
        ax.set_xticklabels(grid.months)
        ax.set_yticks(range(len(grid.years)))
        ax.set_yticklabels([str(y) for y in grid.years])
        ax.set_title("Monthly Peak Apparent Temperature (°C)")
        return self._save(Region.HEATMAP, fig)

    def plot_danger_days(self, counts: ExceedanceCounts) -> Path:
        fig = Figure(figsize=(10, 4))
        ax = fig.add_subplot()
        series = [('≥35°C', counts.days_35), ('≥40°C', counts.days_40), ('≥45°C', counts.days_45)]
        for (label, values), color in zip(series, EXCEEDANCE_COLORS):
            ax.bar(counts.years, values, color=color, alpha=0.7, label=label)
        ax.set_ylabel('Days')
        ax.set_title("Days Per Year Exceeding Apparent Temp Thresholds")
        ax.legend(loc='upper left', fontsize=8)
        ax.grid(True, axis='y', alpha=0.3)
        return self._save(Region.DANGER, fig)

    def plot_trend(self, trend: WarmingTrend) -> Path:
        fig = Figure(figsize=(10, 4))
        ax = fig.add_subplot()
        years = trend.yearly.years
        sign = '+' if trend.fit.total_change >= 0 else ''
        change = f"{sign}{trend.fit.total_change:.1f}°C"
        ax.plot(years, trend.yearly.means, color='#ff9800', linewidth=1.5, label='Annual Avg Max')
        ax.plot(years, trend.fit.fitted(years), color='#d32f2f', linewidth=2,
                linestyle='--', label=f"Trend ({change})")
        ax.set_ylabel('Avg Daily Max Temp (°C)')
        ax.set_title(f"Long-Term Warming ({trend.fit.first_year}-{trend.fit.last_year}): {change}")
        ax.legend(loc='upper left', fontsize=8)
        ax.grid(True, alpha=0.3)
        return self._save(Region.TREND, fig)

    def plot_projections(self, projections: Dict[str, YearlySeries]) -> Path:
        fig = Figure(figsize=(10, 4))
        ax = fig.add_subplot()
        model_index = 0
        for name, series in projections.items():
            if name == MULTI_MODEL_MEAN:
                ax.plot(series.years, series.means, color='#333333', linewidth=2.5, label=name)
                continue
            ax.plot(series.years, series.means, linewidth=1.5, label=name,
                    color=MODEL_COLORS[model_index % len(MODEL_COLORS)])
            model_index += 1
        ax.axvspan(2025, 2050, color='#f44336', alpha=0.06)
        ax.set_ylabel('Annual Avg Max Temp (°C)')
        ax.set_title("Climate Projections to 2050 (CMIP6 HighResMIP)")
        ax.legend(loc='upper left', fontsize=8)
        ax.grid(True, alpha=0.3)
        return self._save(Region.PROJECTIONS, fig)
