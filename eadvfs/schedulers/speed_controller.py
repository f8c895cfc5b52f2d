"""
Speed Controller (DVFS heuristic)

Chooses an execution speed level for the upcoming slice from the aggregate
shape of the ready set. The controller is stateless: every decision depends
only on the ready set it is given.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from eadvfs.config.params import POWER_MODEL, SPEED_CONTROLLER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpeedLevel:
    """One discrete operating point"""
    speed: float        # Throughput multiplier relative to the 1.0 baseline
    power_w: float      # Draw at this level, static power included
    label: str

    def __post_init__(self):
        if self.speed <= 0:
            raise ValueError(f"Speed level {self.label}: speed must be positive, got {self.speed}")
        if self.power_w < 0:
            raise ValueError(f"Speed level {self.label}: power must be non-negative, got {self.power_w}")


class SpeedTable:
    """Ordered list of speed levels, index 0 being the slowest"""

    def __init__(self, levels, idle_power=POWER_MODEL['idle_power']):
        """
        Args:
            levels: SpeedLevel objects (or dicts with speed, power, label)
            idle_power: Draw while no task is ready
        """
        self.levels = tuple(
            level if isinstance(level, SpeedLevel)
            else SpeedLevel(speed=level['speed'], power_w=level['power'], label=level['label'])
            for level in levels
        )
        if not self.levels:
            raise ValueError("Speed table needs at least one level")
        for lower, upper in zip(self.levels, self.levels[1:]):
            if upper.speed <= lower.speed:
                raise ValueError(
                    f"Speed table must be strictly ascending: {upper.label} is not faster than {lower.label}"
                )
        if idle_power < 0:
            raise ValueError("idle_power must be non-negative")
        self.idle_power = float(idle_power)

    @classmethod
    def default(cls):
        return cls(POWER_MODEL['levels'], idle_power=POWER_MODEL['idle_power'])

    def __len__(self):
        return len(self.levels)

    def __getitem__(self, index):
        return self.levels[index]

    def __iter__(self):
        return iter(self.levels)

    @property
    def lowest_index(self):
        return 0

    @property
    def highest_index(self):
        return len(self.levels) - 1

    def index_of(self, label):
        """Find a level by label"""
        for index, level in enumerate(self.levels):
            if level.label == label:
                return index
        raise ValueError(f"Unknown speed level '{label}' (available: {', '.join(l.label for l in self.levels)})")


class SpeedDecision(Enum):
    """Which rule produced a speed choice"""
    BURST = "burst"              # Many short jobs or high predicted load
    LONG_JOBS = "long_jobs"      # Long average remaining work
    BALANCED = "balanced"        # Default mid-table level
    FIXED = "fixed"              # Pinned baseline level


class SpeedController:
    """
    Energy-aware speed selection

    Rules are evaluated in order and the first match wins:
    1. short_fraction > short_fraction_threshold or predicted utilisation
       > util_threshold: highest level
    2. average remaining work > long_job_threshold: lowest level
    3. otherwise: the mid-table level

    The mid-table level defaults to len(table) // 2, so tables with one or two
    levels remain valid. An explicit mid_index must address an existing level.
    """

    def __init__(self, speed_table=None, config=None, fixed_level=None):
        """
        Args:
            speed_table: SpeedTable to choose from (default table if None)
            config: Dictionary overriding entries of SPEED_CONTROLLER
            fixed_level: Optional level index or label that pins every decision
        """
        self.speed_table = speed_table or SpeedTable.default()
        self.config = dict(SPEED_CONTROLLER)
        if config:
            self.config.update(config)

        mid_index = self.config['mid_index']
        if mid_index is None:
            mid_index = len(self.speed_table) // 2
        if not 0 <= mid_index < len(self.speed_table):
            raise ValueError(f"mid_index {mid_index} is outside a table of {len(self.speed_table)} levels")
        self.mid_index = mid_index

        if self.config['lookahead_window'] <= 0:
            raise ValueError("lookahead_window must be positive")

        if isinstance(fixed_level, str):
            fixed_level = self.speed_table.index_of(fixed_level)
        if fixed_level is not None and not 0 <= fixed_level < len(self.speed_table):
            raise ValueError(f"fixed_level {fixed_level} is outside the speed table")
        self.fixed_level = fixed_level

    @property
    def policy_name(self):
        if self.fixed_level is None:
            return "EADVFS"
        return f"fixed-{self.speed_table[self.fixed_level].label}"

    def workload_shape(self, ready):
        """
        Aggregate shape of the ready set

        Returns:
            Tuple (short_fraction, predicted_utilization, avg_remaining)
        """
        count = len(ready)
        total_remaining = sum(task.remaining for task in ready)
        short_count = sum(1 for task in ready if task.remaining <= self.config['short_threshold'])
        short_fraction = short_count / count
        predicted_utilization = min(1.0, total_remaining / max(1.0, self.config['lookahead_window']))
        avg_remaining = total_remaining / count
        return short_fraction, predicted_utilization, avg_remaining

    def decide(self, ready):
        """
        Pick a level index for the upcoming slice

        Args:
            ready: Non-empty list of ready tasks

        Returns:
            Tuple (level index, SpeedDecision), or None when nothing is ready
        """
        if not ready:
            return None
        if self.fixed_level is not None:
            return self.fixed_level, SpeedDecision.FIXED

        short_fraction, predicted_utilization, avg_remaining = self.workload_shape(ready)

        if (short_fraction > self.config['short_fraction_threshold']
                or predicted_utilization > self.config['util_threshold']):
            decision = SpeedDecision.BURST
            index = self.speed_table.highest_index
        elif avg_remaining > self.config['long_job_threshold']:
            decision = SpeedDecision.LONG_JOBS
            index = self.speed_table.lowest_index
        else:
            decision = SpeedDecision.BALANCED
            index = self.mid_index

        logger.debug(
            f"Speed {self.speed_table[index].label} ({decision.value}): short={short_fraction:.2f} "
            f"util={predicted_utilization:.2f} avg_rem={avg_remaining:.1f}ms"
        )
        return index, decision

    def select_level(self, ready):
        """Return the SpeedLevel for the upcoming slice, or None when nothing is ready"""
        choice = self.decide(ready)
        if choice is None:
            return None
        return self.speed_table[choice[0]]
