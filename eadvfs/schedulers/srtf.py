"""
Shortest-Remaining-Time-First (SRTF) Scheduler

Implements preemptive SRTF selection over the ready set. Preemption itself is
driven by the processor, which re-runs selection at every arrival boundary.
"""

import logging

logger = logging.getLogger(__name__)


class SRTFScheduler:
    """
    Shortest-Remaining-Time-First Scheduler

    The task with the least remaining work runs next. Ties go to the task
    encountered first in the ready set, which the processor keeps in task
    insertion order, so the choice is stable and deterministic.
    """

    name = "SRTF"

    def pick_next(self, ready):
        """
        Select the next task to run

        Args:
            ready: Ready tasks in insertion order

        Returns:
            The chosen Task, or None when nothing is ready
        """
        best = None
        for task in ready:
            # Strict comparison keeps the earliest task on ties
            if best is None or task.remaining < best.remaining:
                best = task
        if best is not None:
            logger.debug(f"SRTF picked P{best.id} (remaining={best.remaining:.3f}ms) from {len(ready)} ready")
        return best
