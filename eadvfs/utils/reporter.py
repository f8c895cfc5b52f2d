"""
Periodic Snapshot Reporter

Assembles analysis snapshots at a fixed simulated-time interval. After every
clock advance the reporter emits one snapshot per interval boundary crossed,
so a long idle jump produces all the intermediate snapshots, and a final
snapshot is forced at the true end of the run.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from eadvfs.analysis import Analyzer, ForecastResult, TaskClass
from eadvfs.config.params import REPORTING

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    'time_ms', 'avg_cpu_util', 'mem_kb', 'slope_kb_per_ms', 'forecast_kb',
    'top1_pid', 'top1_cpu_ms', 'top2_pid', 'top2_cpu_ms', 'top3_pid', 'top3_cpu_ms',
    'hotspots',
]


@dataclass
class Snapshot:
    """Values produced by one analysis pass"""
    timestamp: float
    avg_cpu_util: float
    memory_kb: float
    slope: float
    forecast: ForecastResult
    top_consumers: List[Tuple[int, float]]
    hotspots: List[Tuple[int, float, float]]           # (pid, cpu_ms, remaining_ms)
    classifications: Dict[int, TaskClass]
    ready_remaining: List[Tuple[int, float]]
    energy_j: float
    memory_warning: bool = False
    final: bool = False

    @property
    def hotspot_count(self):
        return len(self.hotspots)

    def to_record(self, top_n=3):
        """
        Flatten into one CSV row

        Missing ranks are filled with pid -1 and 0 ms, times and sizes are
        rounded to whole units.
        """
        record = {
            'time_ms': int(round(self.timestamp)),
            'avg_cpu_util': round(self.avg_cpu_util, 3),
            'mem_kb': int(round(self.memory_kb)),
            'slope_kb_per_ms': round(self.slope, 3),
            'forecast_kb': int(round(self.forecast.value)),
        }
        for rank in range(top_n):
            if rank < len(self.top_consumers):
                pid, cpu_ms = self.top_consumers[rank]
                record[f'top{rank + 1}_pid'] = pid
                record[f'top{rank + 1}_cpu_ms'] = int(round(cpu_ms))
            else:
                record[f'top{rank + 1}_pid'] = -1
                record[f'top{rank + 1}_cpu_ms'] = 0
        record['hotspots'] = self.hotspot_count
        return record


class Reporter:
    """Tracks the next reporting boundary and builds snapshots"""

    def __init__(self, analyzer=None, config=None):
        """
        Args:
            analyzer: Analyzer used for every snapshot (default configuration if None)
            config: Dictionary overriding entries of REPORTING
        """
        self.config = dict(REPORTING)
        if config:
            self.config.update(config)
        if self.config['interval'] <= 0:
            raise ValueError(f"Reporting interval must be positive, got {self.config['interval']}")
        if self.config['top_n'] < 0:
            raise ValueError("top_n must be non-negative")
        self.analyzer = analyzer or Analyzer()
        self.interval = float(self.config['interval'])
        self.top_n = int(self.config['top_n'])
        self.reset()

    def reset(self):
        """Start a new run: first boundary one interval after t=0"""
        self.next_boundary = self.interval
        self.snapshots: List[Snapshot] = []

    def on_clock_advance(self, state, tasks) -> List[Snapshot]:
        """
        Emit a snapshot for every boundary the clock has reached

        Returns:
            Snapshots emitted by this call, oldest first
        """
        emitted = []
        while state.current_time >= self.next_boundary:
            emitted.append(self._emit(self.next_boundary, state, tasks))
            self.next_boundary += self.interval
        return emitted

    def finalize(self, state, tasks) -> Snapshot:
        """Forced snapshot at the end of the run"""
        return self._emit(state.current_time, state, tasks, final=True)

    def _emit(self, at_time, state, tasks, final=False):
        snapshot = self.build_snapshot(at_time, state, tasks, final=final)
        self.snapshots.append(snapshot)
        logger.debug(
            f"Snapshot t={at_time:.0f}ms util={snapshot.avg_cpu_util:.2f}% "
            f"mem={snapshot.memory_kb:.0f}kb hotspots={snapshot.hotspot_count}"
        )
        return snapshot

    def build_snapshot(self, at_time, state, tasks, final=False) -> Snapshot:
        """
        Analyse the current run state

        Args:
            at_time: Timestamp the snapshot is filed under
            state: SimulationState of the running simulation
            tasks: Full task table in insertion order
            final: Whether this is the end-of-run snapshot
        """
        analyzer = self.analyzer
        cpu_series = state.series['cpu_util']
        memory_series = state.series['memory_kb']

        # sorted() is stable, so equal consumers keep task order
        ranked = sorted(tasks, key=lambda task: task.cpu_consumed, reverse=True)
        top_consumers = [(task.id, task.cpu_consumed) for task in ranked[:self.top_n]]

        avg_util = analyzer.moving_average(cpu_series)
        regression = analyzer.linear_regression(memory_series)
        forecast = analyzer.forecast(memory_series, regression.slope)

        hotspots = [(task.id, task.cpu_consumed, task.remaining) for task in analyzer.hotspots(tasks)]
        ready_remaining = [
            (task.id, task.remaining) for task in tasks if task.is_ready(state.current_time)
        ]

        return Snapshot(
            timestamp=at_time,
            avg_cpu_util=avg_util,
            memory_kb=memory_series.last_value,
            slope=regression.slope,
            forecast=forecast,
            top_consumers=top_consumers,
            hotspots=hotspots,
            classifications=analyzer.classify_tasks(tasks),
            ready_remaining=ready_remaining,
            energy_j=state.energy_j,
            memory_warning=analyzer.memory_warning(forecast.value),
            final=final,
        )


def format_snapshot(snapshot: Snapshot, tasks_by_id: Optional[Dict] = None) -> str:
    """
    Render a snapshot as the console analysis block

    Args:
        snapshot: Snapshot to render
        tasks_by_id: Optional mapping of id to Task for memory/io details
    """
    tasks_by_id = tasks_by_id or {}
    lines = [f"--- Analysis at t={snapshot.timestamp:.0f} ms{' (final)' if snapshot.final else ''} ---"]

    lines.append("Top CPU consumers:")
    for pid, cpu_ms in snapshot.top_consumers:
        task = tasks_by_id.get(pid)
        detail = f" mem={task.memory_kb:.0f} io={task.io_weight:g}" if task is not None else ""
        lines.append(f" P{pid} cpu_ms={cpu_ms:.0f}{detail}")

    lines.append(f"Avg CPU util (recent window) = {snapshot.avg_cpu_util:.2f}%")
    lines.append(
        f"Memory slope = {snapshot.slope:.4f} kb/ms. "
        f"Forecast = {snapshot.forecast.value:.0f} kb (cap {snapshot.forecast.cap:.0f} kb)"
    )
    if snapshot.memory_warning:
        lines.append("Warning: projected memory > 1GB, suggest reduce working set or enable swap.")

    for pid, cpu_ms, remaining in snapshot.hotspots:
        lines.append(f"Hotspot detected: P{pid} (cpu_ms={cpu_ms:.0f}, rem={remaining:.0f}ms)")
        lines.append("Suggestion: consider lowering priority or parallelizing workload.")

    for pid, label in snapshot.classifications.items():
        lines.append(f"P{pid} classified: {label.value}")

    ready = " ".join(f"[P{pid}:{remaining:.0f}ms]" for pid, remaining in snapshot.ready_remaining)
    lines.append(f"Ready snapshot (pid:remaining_ms): {ready}")
    lines.append(f"Energy so far = {snapshot.energy_j:.4f} J")
    return "\n".join(lines)
