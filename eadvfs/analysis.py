"""
Telemetry Analysis

Derives trends from the recorded time series and per-task behaviour:
moving averages, least-squares slope estimates with projection clamping,
hotspot detection and CPU/IO classification.
"""

import logging
import math
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional

import numpy as np

from eadvfs.config.params import ANALYSIS
from eadvfs.utils.time_series import TimeSeries

logger = logging.getLogger(__name__)


class TaskClass(str, Enum):
    CPU_BOUND = "CPU-bound"
    IO_BOUND = "IO-bound"
    MIXED = "Mixed"


class RegressionResult(NamedTuple):
    slope: float
    # Fitted value at the last timestamp of the window (or the fallback level)
    intercept: float


class ForecastResult(NamedTuple):
    raw: float
    value: float
    cap: float

    @property
    def clamped(self) -> bool:
        return self.raw != self.value


class Analyzer:
    """Stateless analytics over a run's telemetry and task table"""

    def __init__(self, config: Optional[Dict] = None):
        """
        Args:
            config: Dictionary overriding entries of ANALYSIS
        """
        self.config = dict(ANALYSIS)
        if config:
            self.config.update(config)
        if self.config['min_regression_points'] < 2:
            raise ValueError("min_regression_points must be at least 2")

    def moving_average(self, series: TimeSeries, window: Optional[float] = None) -> float:
        """
        Mean of the trailing points within `window` ms of the last sample

        The scan walks backwards and stops at the first point outside the
        window, so older points beyond a sampling gap are never included.

        Returns:
            The mean, or 0.0 for an empty series
        """
        if window is None:
            window = self.config['moving_average_window']
        if len(series) == 0:
            return 0.0

        now = series.last.timestamp
        total = 0.0
        count = 0
        for point in reversed(series):
            if now - point.timestamp > window:
                break
            total += point.value
            count += 1
        return total / count if count else 0.0

    def linear_regression(self, series: TimeSeries, last_n: Optional[int] = None) -> RegressionResult:
        """
        Ordinary least squares of value on time over the last `last_n` points

        Time is offset by the first timestamp of the window to keep the sums
        small. Too few points give a flat fit through the last value; a
        degenerate time spread gives a flat fit through the mean.

        Returns:
            RegressionResult(slope, value fitted at the last timestamp)
        """
        if last_n is None:
            last_n = self.config['regression_points']
        n = min(len(series), last_n)
        if n < self.config['min_regression_points']:
            return RegressionResult(0.0, series.last_value)

        window = series.tail(n)
        t0 = window[0].timestamp
        x = np.array([p.timestamp - t0 for p in window], dtype=float)
        y = np.array([p.value for p in window], dtype=float)

        sx = x.sum()
        sy = y.sum()
        sxx = np.dot(x, x)
        sxy = np.dot(x, y)
        denom = n * sxx - sx * sx
        if abs(denom) < 1e-9:
            return RegressionResult(0.0, float(sy / n))

        slope = (n * sxy - sx * sy) / denom
        offset = (sy - slope * sx) / n
        return RegressionResult(float(slope), float(slope * x[-1] + offset))

    def forecast(self, series: TimeSeries, slope: float, horizon: Optional[float] = None) -> ForecastResult:
        """
        Project the series `horizon` ms ahead and clamp the projection

        The cap is twice the largest value observed; when nothing meaningful
        has been observed the cap falls back to max(cap_floor, 2 * last value).
        """
        if horizon is None:
            horizon = self.config['forecast_horizon']
        last_value = series.last_value

        cap = max(0.0, 2.0 * series.max_observed)
        if cap < 1.0:
            cap = max(self.config['cap_floor'], 2.0 * last_value)

        raw = last_value + slope * horizon
        if math.isnan(raw):
            # inf slope times zero horizon, or a NaN slope
            value = min(max(last_value, 0.0), cap)
        else:
            value = min(max(raw, 0.0), cap)
        if value != raw:
            logger.debug(f"{series.name} forecast {raw} clamped to {value:.1f} (cap {cap:.1f})")
        return ForecastResult(raw=raw, value=value, cap=cap)

    def is_hotspot(self, task) -> bool:
        """Heavy CPU consumption with substantial work still left"""
        return (task.cpu_consumed > self.config['hotspot_cpu_ms']
                and task.remaining > self.config['hotspot_remaining_ms'])

    def hotspots(self, tasks: Iterable) -> List:
        return [task for task in tasks if self.is_hotspot(task)]

    def classify(self, task) -> TaskClass:
        cpu_fraction = task.cpu_consumed / max(1.0, task.burst)
        if cpu_fraction > self.config['cpu_bound_fraction']:
            return TaskClass.CPU_BOUND
        if task.io_weight > self.config['io_bound_weight']:
            return TaskClass.IO_BOUND
        return TaskClass.MIXED

    def classify_tasks(self, tasks: Iterable) -> Dict[int, TaskClass]:
        """Classify every task that has consumed some CPU so far"""
        return {task.id: self.classify(task) for task in tasks if task.cpu_consumed > 0}

    def memory_warning(self, forecast_kb: float) -> bool:
        return forecast_kb > self.config['memory_warning_kb']
