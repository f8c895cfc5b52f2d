"""
Single Processor Implementation

This module drives the discrete-event simulation of one processor: it
resolves the next event, asks the scheduler and the speed controller what to
run and how fast, credits progress and energy, records telemetry and hands
the state to the reporter after every clock advance.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from eadvfs.config.params import SIMULATION
from eadvfs.schedulers.speed_controller import SpeedController
from eadvfs.schedulers.srtf import SRTFScheduler
from eadvfs.utils.reporter import Reporter
from eadvfs.utils.time_series import TimeSeries


@dataclass
class ExecutionRecord:
    """Contiguous stretch of execution for one task (Gantt entry)"""
    task_id: int
    start: float
    duration: float

    @property
    def end(self):
        return self.start + self.duration


@dataclass
class DispatchEvent:
    """One scheduling decision and the slice it produced"""
    time: float
    task_id: int
    level_index: int
    decision: str
    run_time: float
    ready_remaining: Dict[int, float]


def _new_series():
    return {
        'cpu_util': TimeSeries('cpu_util', '%'),
        'memory_kb': TimeSeries('memory_kb', 'kb'),
        'power_w': TimeSeries('power_w', 'W'),
    }


@dataclass
class SimulationState:
    """Run-scoped clock, accumulators and telemetry; recreated for every run"""
    current_time: float = 0.0
    energy_j: float = 0.0
    idle_energy_j: float = 0.0
    busy_time: float = 0.0
    cutoff: bool = False
    series: Dict[str, TimeSeries] = field(default_factory=_new_series)
    execution_records: List[ExecutionRecord] = field(default_factory=list)
    dispatches: List[DispatchEvent] = field(default_factory=list)


@dataclass
class SimulationResult:
    policy: str
    tasks: list
    state: SimulationState
    snapshots: list

    @property
    def makespan(self):
        finished = [task.finish_time for task in self.tasks if task.finish_time is not None]
        return max(finished) if finished else 0.0


class SingleProcessor:
    """
    Single Processor Implementation

    Advances simulated time event by event. A slice ends at the earliest of
    task completion, the next arrival (where SRTF may preempt) and the
    quantum cap. When nothing is ready the clock jumps straight to the next
    arrival while idle power is charged for the gap.
    """

    def __init__(self, scheduler=None, speed_controller=None, reporter=None, name="CPU-1", config=None):
        """
        Initialise the processor

        Args:
            scheduler: Task selection policy (SRTF if None)
            speed_controller: Speed/power heuristic (default table if None)
            reporter: Periodic snapshot reporter (default interval if None)
            name: Name identifier for this processor
            config: Dictionary overriding entries of SIMULATION
        """
        self.name = name
        self.scheduler = scheduler or SRTFScheduler()
        self.speed_controller = speed_controller or SpeedController()
        self.reporter = reporter or Reporter()
        self.config = dict(SIMULATION)
        if config:
            self.config.update(config)
        if self.config['quantum'] <= 0:
            raise ValueError(f"quantum must be positive, got {self.config['quantum']}")
        if self.config['degenerate_step'] <= 0:
            raise ValueError("degenerate_step must be positive")

        self.tasks = []
        self.state = SimulationState()
        self.logger = logging.getLogger(__name__)

    @property
    def speed_table(self):
        return self.speed_controller.speed_table

    def add_tasks(self, tasks):
        """
        Add tasks to the processor

        Args:
            tasks: List of Task objects; insertion order breaks scheduling ties
        """
        self.tasks.extend(tasks)
        self.logger.info(f"Added {len(tasks)} tasks to {self.name}")

    def run(self):
        """
        Simulate until every task has finished or the safety horizon passes

        Returns:
            SimulationResult with the task table, final state and snapshots
        """
        self.state = SimulationState()
        self.reporter.reset()
        for task in self.tasks:
            task.reset()

        policy = self.speed_controller.policy_name
        self.logger.info(f"Starting {policy} simulation of {len(self.tasks)} tasks on {self.name}")

        self._record_telemetry(power=0.0)

        while True:
            if self.state.current_time > self.config['horizon']:
                self.state.cutoff = True
                unfinished = sum(1 for task in self.tasks if not task.is_finished(self.config['epsilon']))
                self.logger.warning(
                    f"Safety horizon {self.config['horizon']:.0f}ms exceeded at "
                    f"t={self.state.current_time:.1f}ms with {unfinished} unfinished tasks"
                )
                break

            ready = self.ready_tasks()
            if not ready:
                next_arrival = self.next_arrival_time()
                if next_arrival is None:
                    break
                self._idle_until(next_arrival)
                continue

            self._dispatch(ready)

        self.reporter.finalize(self.state, self.tasks)
        self.logger.info(
            f"{policy} simulation completed at t={self.state.current_time:.1f}ms, "
            f"energy={self.state.energy_j:.4f}J"
        )
        return SimulationResult(
            policy=policy,
            tasks=list(self.tasks),
            state=self.state,
            snapshots=list(self.reporter.snapshots),
        )

    def ready_tasks(self):
        """Tasks that have arrived and still have work, in insertion order"""
        now = self.state.current_time
        return [task for task in self.tasks if task.is_ready(now, self.config['epsilon'])]

    def next_arrival_time(self) -> Optional[float]:
        """Earliest arrival strictly after the current time, or None"""
        now = self.state.current_time
        future = [task.arrival_time for task in self.tasks if task.arrival_time > now]
        return min(future) if future else None

    def _idle_until(self, target):
        """Jump the clock forward with no task running, charging idle power"""
        gap = max(0.0, target - self.state.current_time)
        idle_energy = self.speed_table.idle_power * (gap / 1000.0)
        self.state.energy_j += idle_energy
        self.state.idle_energy_j += idle_energy
        self.state.current_time = max(self.state.current_time, target)
        self.logger.debug(f"Idle for {gap:.3f}ms until t={self.state.current_time:.3f}ms")
        self._after_advance(power=self.speed_table.idle_power)

    def _dispatch(self, ready):
        state = self.state
        now = state.current_time

        task = self.scheduler.pick_next(ready)
        level_index, decision = self.speed_controller.decide(ready)
        level = self.speed_table[level_index]

        rate = level.speed * (1.0 - task.io_weight)
        time_to_finish = task.remaining / rate if rate > 0 else math.inf
        run_time = min(time_to_finish, self.config['quantum'])
        boundary = self.next_arrival_time()
        if boundary is not None:
            run_time = min(run_time, boundary - now)

        if run_time <= 0:
            # No positive slice is possible: move on without crediting work
            target = boundary if boundary is not None and boundary > now else now + self.config['degenerate_step']
            self.logger.debug(f"Degenerate slice for P{task.id} at t={now:.3f}ms, advancing to {target:.3f}ms")
            self._idle_until(target)
            return

        state.dispatches.append(DispatchEvent(
            time=now,
            task_id=task.id,
            level_index=level_index,
            decision=decision.value,
            run_time=run_time,
            ready_remaining={t.id: t.remaining for t in ready},
        ))

        if task.start_time is None:
            task.start_time = now
            self.logger.debug(f"P{task.id} first dispatched at t={now:.3f}ms")

        # Wall time always advances by the full slice; only the CPU share makes progress
        task.record_run(run_time * rate)
        state.energy_j += level.power_w * (run_time / 1000.0)
        state.busy_time += run_time
        self._record_execution(task.id, now, run_time)
        state.current_time = now + run_time

        if task.is_finished(self.config['epsilon']) and task.finish_time is None:
            task.remaining = 0.0
            task.finish_time = state.current_time
            self.logger.info(f"P{task.id} finished at t={task.finish_time:.3f}ms")

        self._after_advance(power=level.power_w)

    def _record_execution(self, task_id, start, duration):
        records = self.state.execution_records
        if records and records[-1].task_id == task_id:
            records[-1].duration += duration
        else:
            records.append(ExecutionRecord(task_id=task_id, start=start, duration=duration))

    def _after_advance(self, power):
        self._record_telemetry(power)
        self.reporter.on_clock_advance(self.state, self.tasks)

    def _record_telemetry(self, power):
        """Append one point to every tracked series at the current time"""
        now = self.state.current_time
        ready = self.ready_tasks()
        busy = sum(1.0 - task.io_weight for task in ready)
        util = min(100.0, max(0.0, 100.0 * busy / max(1, len(self.tasks))))
        memory = sum(task.memory_kb for task in ready)

        series = self.state.series
        series['cpu_util'].append(now, util)
        series['memory_kb'].append(now, memory)
        series['power_w'].append(now, power)
