import pytest

from eadvfs.processors.single_processor import ExecutionRecord
from eadvfs.task_generator import Task
from eadvfs.utils.metrics import MetricsCalculator, format_summary
from eadvfs.utils.time_series import TimeSeries


def test_averages_ignore_unfinished_tasks() -> None:
    done = Task(1, 0, 50)
    done.start_time, done.finish_time = 10.0, 80.0
    pending = Task(2, 0, 50)

    metrics = MetricsCalculator().calculate_task_metrics([done, pending])

    assert metrics['finished'] == 1
    assert metrics['unfinished'] == 1
    assert metrics['avg_turnaround_time'] == pytest.approx(80.0)
    assert metrics['avg_waiting_time'] == pytest.approx(30.0)
    assert metrics['avg_response_time'] == pytest.approx(10.0)


def test_no_finished_tasks_gives_zero_averages() -> None:
    metrics = MetricsCalculator().calculate_task_metrics([Task(1, 0, 10)])
    assert metrics['avg_turnaround_time'] == 0.0
    assert metrics['unfinished'] == 1


def test_series_metrics() -> None:
    series = TimeSeries("cpu_util")
    for t, v in enumerate([10.0, 20.0, 30.0]):
        series.append(t, v)
    stats = MetricsCalculator().calculate_series_metrics(series)
    assert stats == {'mean': pytest.approx(20.0), 'max': 30.0, 'variance': pytest.approx(100.0)}


def test_summary_block() -> None:
    task = Task(1, 0, 50)
    task.start_time, task.finish_time = 0.0, 50.0
    summary = {
        'policy': 'EADVFS', 'count': 1, 'unfinished': 0, 'avg_turnaround_time': 50.0,
        'avg_waiting_time': 0.0, 'avg_response_time': 0.0, 'makespan': 50.0,
        'total_energy_j': 0.075, 'cpu_utilization': 100.0, 'cutoff': False, 'end_time': 50.0,
    }

    text = format_summary(summary, [ExecutionRecord(1, 0.0, 50.0)], [task])

    assert text.splitlines()[0] == "===== EADVFS Simulation Results ====="
    assert "Total Energy (J): 0.075" in text
    assert "[P1:50ms]" in text
    assert "P1 arrival=0.000 burst=50.000 start=0.000 finish=50.000" in text
    assert "safety horizon" not in text
