"""
Task Generator Module

This module defines the Task entity simulated by the engine and the ways a
workload is obtained: the built-in sample trace, a random Poisson workload
drawn with numpy, or a trace file loaded from disk.
"""

import logging
from pathlib import Path

import numpy as np

from eadvfs.config.params import SAMPLE_WORKLOAD, TASK_GENERATION
from eadvfs.utils.data_validation import validate_task_records
from eadvfs.utils.json_utils import load_json

logger = logging.getLogger(__name__)

# Remaining work at or below this counts as finished
EPSILON = 1e-9


class Task:
    """Unit of simulated work with CPU, memory and I/O characteristics"""

    def __init__(self, task_id, arrival_time, burst, memory_kb=0.0, io_weight=0.0):
        """
        Initialise task with validation

        Args:
            task_id: Unique integer identifier for the task
            arrival_time: Time (ms) when the task becomes ready
            burst: Total CPU work (ms at baseline speed) required by the task
            memory_kb: Memory footprint while the task is resident
            io_weight: Fraction of each slice spent waiting on I/O (0..1)
        """
        if burst <= 0:
            raise ValueError(f"Task {task_id}: burst must be positive, got {burst}")

        self.id = int(task_id)

        # Validate arrival time (must be non-negative)
        if arrival_time < 0:
            logger.warning(f"Negative arrival time for Task {task_id}: {arrival_time}. Setting to 0.")
            self.arrival_time = 0.0
        else:
            self.arrival_time = float(arrival_time)

        self.burst = float(burst)

        if memory_kb < 0:
            logger.warning(f"Negative memory footprint for Task {task_id}: {memory_kb}. Setting to 0.")
            self.memory_kb = 0.0
        else:
            self.memory_kb = float(memory_kb)

        # io_weight is a fraction of wall time, keep it inside [0, 1]
        if not 0.0 <= io_weight <= 1.0:
            clamped = min(1.0, max(0.0, io_weight))
            logger.warning(f"io_weight out of range for Task {task_id}: {io_weight}. Clamping to {clamped}.")
            self.io_weight = float(clamped)
        else:
            self.io_weight = float(io_weight)

        self.reset()

    def reset(self):
        """Restore the run-start state so the task can be simulated again"""
        self.remaining = self.burst
        self.cpu_consumed = 0.0
        self.start_time = None
        self.finish_time = None

    def copy(self):
        """Fresh task with the same descriptor and run-start state"""
        return Task(self.id, self.arrival_time, self.burst, self.memory_kb, self.io_weight)

    def __str__(self):
        return (
            f"P{self.id}: arrival={self.arrival_time:.1f}ms burst={self.burst:.1f}ms "
            f"mem={self.memory_kb:.0f}kb io={self.io_weight:.2f}"
        )

    def __repr__(self):
        return f"Task(id={self.id}, remaining={self.remaining:.3f})"

    def is_ready(self, now, epsilon=EPSILON):
        """A task is ready once it has arrived and still has work left"""
        return self.arrival_time <= now and self.remaining > epsilon

    def is_finished(self, epsilon=EPSILON):
        return self.remaining <= epsilon

    def record_run(self, work):
        """
        Credit CPU work done during a slice

        Args:
            work: CPU-discounted work performed (ms at baseline speed)

        Returns:
            The amount actually credited, never more than the remaining work
        """
        credited = min(max(0.0, work), self.remaining)
        self.remaining -= credited
        self.cpu_consumed += credited
        return credited

    @property
    def turnaround_time(self):
        if self.finish_time is None:
            return None
        return self.finish_time - self.arrival_time

    @property
    def waiting_time(self):
        """Turnaround minus burst; negative when a fast speed level beats the baseline"""
        if self.finish_time is None:
            return None
        return self.turnaround_time - self.burst

    @property
    def response_time(self):
        if self.start_time is None:
            return None
        return self.start_time - self.arrival_time

    def to_dict(self):
        """Convert task to dictionary for serialization"""
        return {
            'id': self.id,
            'arrival_time': self.arrival_time,
            'burst': self.burst,
            'memory_kb': self.memory_kb,
            'io_weight': self.io_weight,
            'start_time': self.start_time,
            'finish_time': self.finish_time,
            'cpu_consumed': self.cpu_consumed,
            'remaining': self.remaining,
        }

    @classmethod
    def from_dict(cls, data):
        """Create task from dictionary"""
        return cls(
            task_id=data['id'],
            arrival_time=data['arrival_time'],
            burst=data['burst'],
            memory_kb=data.get('memory_kb', 0.0),
            io_weight=data.get('io_weight', 0.0),
        )


class TaskGenerator:
    """Generates random workloads with Poisson arrivals"""

    def __init__(self, config=None, seed=None):
        """
        Initialise task generator with configuration validation

        Args:
            config: Dictionary overriding entries of TASK_GENERATION
            seed: Seed for the numpy random generator (None for entropy)
        """
        self.config = dict(TASK_GENERATION)
        if config:
            self.config.update(config)
        self.rng = np.random.default_rng(seed)
        self._validate_config()

    def _validate_config(self):
        """Validate task generation configuration"""
        if self.config['count'] <= 0:
            raise ValueError(f"count must be positive, got {self.config['count']}")
        if self.config['mean_interarrival'] <= 0:
            raise ValueError("mean_interarrival must be positive")
        if not 0 < self.config['burst_min'] <= self.config['burst_max']:
            raise ValueError("burst range must satisfy 0 < burst_min <= burst_max")
        if not 0 <= self.config['memory_min'] <= self.config['memory_max']:
            raise ValueError("memory range must satisfy 0 <= memory_min <= memory_max")
        if not 0 <= self.config['io_weight_max'] <= 1:
            raise ValueError("io_weight_max must lie in [0, 1]")

    def generate_tasks(self, start_time=0.0):
        """
        Generate tasks according to configuration

        Args:
            start_time: Arrival time of the first task

        Returns:
            List of Task objects sorted by arrival time
        """
        count = self.config['count']

        # Exponential gaps give a Poisson arrival process; the first task arrives at start_time
        gaps = self.rng.exponential(scale=self.config['mean_interarrival'], size=count)
        gaps[0] = 0.0
        arrivals = np.cumsum(gaps) + start_time

        bursts = self.rng.uniform(self.config['burst_min'], self.config['burst_max'], count)
        memory = self.rng.uniform(self.config['memory_min'], self.config['memory_max'], count)
        io_weights = self.rng.uniform(0.0, self.config['io_weight_max'], count)

        tasks = [
            Task(
                task_id=i + 1,
                arrival_time=round(float(arrivals[i]), 3),
                burst=round(float(bursts[i]), 3),
                memory_kb=round(float(memory[i])),
                io_weight=round(float(io_weights[i]), 3),
            )
            for i in range(count)
        ]
        logger.info(f"Generated {len(tasks)} random tasks")
        return tasks


def sample_tasks():
    """Build the built-in illustrative workload"""
    return [
        Task(task_id=i + 1, arrival_time=a, burst=b, memory_kb=m, io_weight=io)
        for i, (a, b, m, io) in enumerate(SAMPLE_WORKLOAD)
    ]


def tasks_from_records(records):
    """
    Build tasks from validated descriptor dictionaries

    Records without an explicit id are numbered from 1 in input order.
    """
    tasks = []
    for index, record in enumerate(validate_task_records(records)):
        tasks.append(Task(
            task_id=record.get('id', index + 1),
            arrival_time=record['arrival_time'],
            burst=record['burst'],
            memory_kb=record['memory_kb'],
            io_weight=record['io_weight'],
        ))
    return tasks


def load_tasks(path):
    """
    Load a workload from a trace file

    Two formats are accepted: JSON (a list of task objects or a mapping with a
    "tasks" list) and whitespace-separated text with either two columns
    (arrival, burst) or four columns (arrival, burst, memory_kb, io_weight)
    per line. Lines starting with '#' are ignored.

    Args:
        path: Path to the trace file

    Returns:
        List of Task objects in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file content is malformed
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Cannot open trace file: {path}")

    if p.suffix.lower() == '.json':
        data = load_json(p)
        if isinstance(data, dict):
            data = data.get('tasks')
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a list of tasks or an object with a 'tasks' list")
        records = data
    else:
        records = _read_text_trace(p)

    tasks = tasks_from_records(records)
    logger.info(f"Loaded {len(tasks)} tasks from {path}")
    return tasks


def _read_text_trace(path):
    try:
        rows = np.loadtxt(path, comments='#', ndmin=2)
    except ValueError as exc:
        raise ValueError(f"{path}: malformed trace ({exc})") from exc

    if rows.size == 0:
        raise ValueError(f"{path}: trace contains no tasks")
    if rows.shape[1] not in (2, 4):
        raise ValueError(f"{path}: expected 2 or 4 columns per line, found {rows.shape[1]}")

    records = []
    for row in rows:
        record = {'arrival_time': float(row[0]), 'burst': float(row[1])}
        if rows.shape[1] == 4:
            record['memory_kb'] = float(row[2])
            record['io_weight'] = float(row[3])
        records.append(record)
    return records
