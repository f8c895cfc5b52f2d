import math

import pytest

from eadvfs.analysis import Analyzer, TaskClass
from eadvfs.task_generator import Task
from eadvfs.utils.time_series import TimeSeries


def _series(points, name="memory_kb"):
    series = TimeSeries(name)
    for timestamp, value in points:
        series.append(timestamp, value)
    return series


def test_moving_average_of_empty_series_is_zero() -> None:
    assert Analyzer().moving_average(TimeSeries("cpu_util")) == 0.0


def test_moving_average_stops_at_window_edge() -> None:
    series = _series([(0, 10), (10, 20), (500, 30), (510, 40)], name="cpu_util")
    assert Analyzer().moving_average(series) == pytest.approx(35.0)
    assert Analyzer().moving_average(series, window=1000) == pytest.approx(25.0)


def test_regression_with_too_few_points_is_flat_at_last_value() -> None:
    series = _series([(0, 1), (10, 3), (20, 5), (30, 7)])
    result = Analyzer().linear_regression(series)
    assert result.slope == 0.0
    assert result.intercept == pytest.approx(7.0)


def test_regression_with_no_time_spread_is_flat_at_mean() -> None:
    series = _series([(100, v) for v in (1, 2, 3, 4, 5)])
    result = Analyzer().linear_regression(series)
    assert result.slope == 0.0
    assert result.intercept == pytest.approx(3.0)


def test_regression_recovers_linear_trend_over_last_points() -> None:
    # Early points do not follow the trend and fall outside the last 10
    points = [(t, 1000.0) for t in range(0, 5)] + [(t, 2.0 * t + 1.0) for t in range(5, 15)]
    result = Analyzer().linear_regression(_series(points))
    assert result.slope == pytest.approx(2.0)
    assert result.intercept == pytest.approx(29.0)


def test_extreme_slope_is_clamped_to_twice_the_peak() -> None:
    series = _series([(t * 10, 100.0) for t in range(6)])
    forecast = Analyzer().forecast(series, slope=1e12)
    assert forecast.cap == pytest.approx(200.0)
    assert forecast.value == pytest.approx(200.0)
    assert forecast.clamped


def test_infinite_slopes_clamp_to_cap_and_zero() -> None:
    series = _series([(0, 50.0), (10, 100.0)])
    analyzer = Analyzer()
    assert analyzer.forecast(series, slope=math.inf).value == pytest.approx(200.0)
    assert analyzer.forecast(series, slope=-math.inf).value == 0.0


def test_undefined_projection_falls_back_to_last_value() -> None:
    series = _series([(0, 50.0), (10, 80.0)])
    forecast = Analyzer().forecast(series, slope=math.inf, horizon=0.0)
    assert math.isnan(forecast.raw)
    assert forecast.value == pytest.approx(80.0)


def test_forecast_cap_floor_when_nothing_observed() -> None:
    series = _series([(0, 0.0), (10, 0.0)])
    forecast = Analyzer().forecast(series, slope=1.0)
    assert forecast.cap == pytest.approx(100.0)
    assert forecast.value == pytest.approx(100.0)


def test_unclamped_forecast_is_linear_projection() -> None:
    series = _series([(0, 400.0), (10, 500.0)])
    forecast = Analyzer().forecast(series, slope=0.5)
    assert forecast.raw == pytest.approx(750.0)
    assert forecast.value == pytest.approx(750.0)
    assert not forecast.clamped


def test_hotspot_needs_heavy_use_and_remaining_work() -> None:
    analyzer = Analyzer()
    busy = Task(1, 0, 300)
    busy.record_run(150)
    nearly_done = Task(2, 0, 300)
    nearly_done.record_run(260)
    fresh = Task(3, 0, 300)

    assert analyzer.is_hotspot(busy)
    assert not analyzer.is_hotspot(nearly_done)
    assert analyzer.hotspots([busy, nearly_done, fresh]) == [busy]


def test_classification_rules() -> None:
    analyzer = Analyzer()
    cpu = Task(1, 0, 100, io_weight=0.7)
    cpu.record_run(80)
    io = Task(2, 0, 100, io_weight=0.7)
    io.record_run(10)
    mixed = Task(3, 0, 100, io_weight=0.3)
    mixed.record_run(10)
    idle = Task(4, 0, 100, io_weight=0.9)

    assert analyzer.classify(cpu) is TaskClass.CPU_BOUND
    assert analyzer.classify(io) is TaskClass.IO_BOUND
    assert analyzer.classify(mixed) is TaskClass.MIXED
    assert analyzer.classify_tasks([cpu, io, mixed, idle]) == {
        1: TaskClass.CPU_BOUND, 2: TaskClass.IO_BOUND, 3: TaskClass.MIXED,
    }
    assert TaskClass.IO_BOUND.value == "IO-bound"


def test_memory_warning_threshold_is_one_gigabyte() -> None:
    analyzer = Analyzer()
    assert not analyzer.memory_warning(1024.0 * 1024.0)
    assert analyzer.memory_warning(1024.0 * 1024.0 + 1)


def test_regression_needs_at_least_two_points() -> None:
    with pytest.raises(ValueError):
        Analyzer(config={'min_regression_points': 1})
