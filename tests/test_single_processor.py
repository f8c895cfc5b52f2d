import pytest

from eadvfs.processors.single_processor import SingleProcessor
from eadvfs.task_generator import Task, sample_tasks
from eadvfs.utils.metrics import MetricsCalculator


def _run(tasks, controller=None, config=None):
    processor = SingleProcessor(speed_controller=controller, config=config)
    processor.add_tasks(tasks)
    return processor.run()


def test_srtf_order_with_single_speed_level(unit_controller) -> None:
    result = _run([Task(1, 0, 100), Task(2, 0, 50)], unit_controller)
    by_id = {task.id: task for task in result.tasks}

    assert by_id[2].finish_time == pytest.approx(50.0)
    assert by_id[1].finish_time == pytest.approx(150.0)

    metrics = MetricsCalculator().calculate_task_metrics(result.tasks)
    assert metrics['avg_turnaround_time'] == pytest.approx(100.0)
    assert metrics['avg_waiting_time'] == pytest.approx(25.0)

    assert [(r.task_id, r.start, r.duration) for r in result.state.execution_records] == [
        (2, 0.0, pytest.approx(50.0)),
        (1, pytest.approx(50.0), pytest.approx(100.0)),
    ]
    assert result.makespan == pytest.approx(150.0)
    assert result.state.energy_j == pytest.approx(1.0 * 0.150)


def test_idle_gap_jumps_to_next_arrival() -> None:
    result = _run([Task(1, 20, 10)])
    state = result.state

    assert state.idle_energy_j == pytest.approx(0.2 * 0.020)
    assert state.execution_records[0].start == pytest.approx(20.0)
    assert state.dispatches[0].time == pytest.approx(20.0)
    # 10 ms of short work runs at 2.0x and 4.5 W
    assert result.tasks[0].finish_time == pytest.approx(25.0)
    assert state.energy_j == pytest.approx(0.004 + 4.5 * 0.005)
    assert list(state.series['power_w'].timestamps()) == pytest.approx([0.0, 20.0, 25.0])


def test_arrival_preempts_longer_task(unit_controller) -> None:
    result = _run([Task(1, 0, 200), Task(2, 20, 10)], unit_controller)
    by_id = {task.id: task for task in result.tasks}

    assert by_id[2].finish_time == pytest.approx(30.0)
    assert by_id[1].finish_time == pytest.approx(210.0)
    assert by_id[2].response_time == pytest.approx(0.0)
    assert [r.task_id for r in result.state.execution_records] == [1, 2, 1]


def test_speed_changes_as_work_shrinks() -> None:
    result = _run([Task(1, 0, 100)])
    decisions = [event.decision for event in result.state.dispatches]

    # 50 ms at 1.5x leaves 25 ms of work, which then runs at 2.0x
    assert decisions == ['balanced', 'burst']
    assert result.tasks[0].finish_time == pytest.approx(62.5)
    assert result.state.energy_j == pytest.approx(2.6 * 0.050 + 4.5 * 0.0125)


def test_io_weight_discounts_progress_not_wall_time(unit_controller) -> None:
    result = _run([Task(1, 0, 50, io_weight=0.5)], unit_controller)
    task = result.tasks[0]

    assert task.finish_time == pytest.approx(100.0)
    assert task.cpu_consumed == pytest.approx(50.0)
    assert result.state.busy_time == pytest.approx(100.0)


def test_fully_io_bound_task_stops_at_horizon(unit_controller) -> None:
    result = _run([Task(1, 0, 100, io_weight=1.0)], unit_controller, config={'horizon': 500.0})

    assert result.state.cutoff
    assert result.tasks[0].finish_time is None
    assert result.tasks[0].remaining == pytest.approx(100.0)
    assert result.state.current_time > 500.0

    summary = MetricsCalculator().calculate_run_summary(result)
    assert summary['unfinished'] == 1
    assert summary['cutoff'] is True


def test_sample_workload_conserves_work() -> None:
    result = _run(sample_tasks())
    state = result.state

    for task in result.tasks:
        assert task.finish_time is not None
        assert task.remaining == 0.0
        assert task.cpu_consumed == pytest.approx(task.burst)
        assert task.start_time >= task.arrival_time

    records = state.execution_records
    assert sum(r.duration for r in records) == pytest.approx(state.busy_time)
    for earlier, later in zip(records, records[1:]):
        assert earlier.end <= later.start + 1e-9
        assert earlier.task_id != later.task_id


def test_every_dispatch_runs_the_shortest_ready_task() -> None:
    result = _run(sample_tasks())

    for event in result.state.dispatches:
        assert event.ready_remaining[event.task_id] == min(event.ready_remaining.values())


def test_energy_is_sum_of_slices_and_idle_gaps() -> None:
    processor = SingleProcessor()
    processor.add_tasks([Task(1, 0, 40), Task(2, 300, 120, io_weight=0.3)])
    result = processor.run()

    slice_energy = sum(
        processor.speed_table[event.level_index].power_w * event.run_time / 1000.0
        for event in result.state.dispatches
    )
    assert result.state.idle_energy_j > 0
    assert result.state.energy_j == pytest.approx(slice_energy + result.state.idle_energy_j)


def test_telemetry_series_share_one_timeline() -> None:
    result = _run(sample_tasks())
    series = result.state.series

    lengths = {name: len(s) for name, s in series.items()}
    assert set(lengths) == {'cpu_util', 'memory_kb', 'power_w'}
    assert len(set(lengths.values())) == 1
    assert series['power_w'][0] == (0.0, 0.0)
    # Only P1 is ready at t=0: 100 * (1 - 0.1) / 5 tasks
    assert series['cpu_util'][0].value == pytest.approx(18.0)
    assert series['memory_kb'][0].value == pytest.approx(20000.0)
    assert all(0.0 <= value <= 100.0 for value in series['cpu_util'].values())


def test_snapshots_follow_reporting_boundaries() -> None:
    result = _run(sample_tasks())
    periodic = [snap for snap in result.snapshots if not snap.final]

    assert [snap.timestamp for snap in periodic] == [100.0 * (i + 1) for i in range(len(periodic))]
    assert result.snapshots[-1].final
    assert result.snapshots[-1].timestamp == pytest.approx(result.state.current_time)
    energies = [snap.energy_j for snap in result.snapshots]
    assert energies == sorted(energies)


def test_rerun_resets_tasks_and_state(unit_controller) -> None:
    processor = SingleProcessor(speed_controller=unit_controller)
    processor.add_tasks([Task(1, 0, 100), Task(2, 10, 30)])

    first = processor.run()
    first_finish = [task.finish_time for task in first.tasks]
    first_energy = first.state.energy_j
    second = processor.run()

    assert [task.finish_time for task in second.tasks] == first_finish
    assert second.state.energy_j == pytest.approx(first_energy)
    assert len(second.snapshots) == len(first.snapshots)


def test_non_positive_quantum_is_rejected() -> None:
    with pytest.raises(ValueError, match="quantum"):
        SingleProcessor(config={'quantum': 0})
