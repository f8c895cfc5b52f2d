"""
Telemetry Time Series

Ordered, append-only record of (timestamp, value) samples for one metric,
with a running maximum of every value observed during the run.
"""

from typing import Iterator, List, NamedTuple, Optional

import numpy as np
import pandas as pd


class TimeSeriesPoint(NamedTuple):
    timestamp: float
    value: float


class TimeSeries:
    """Append-only series with non-decreasing timestamps"""

    def __init__(self, name: str, unit: str = ""):
        self.name = name
        self.unit = unit
        self._points: List[TimeSeriesPoint] = []
        self.max_observed = 0.0

    def append(self, timestamp: float, value: float) -> TimeSeriesPoint:
        """
        Record a new sample

        Args:
            timestamp: Simulated time of the sample (ms)
            value: Observed value

        Returns:
            The stored point

        Raises:
            ValueError: If the timestamp is earlier than the last one recorded
        """
        if self._points and timestamp < self._points[-1].timestamp:
            raise ValueError(
                f"{self.name}: timestamp {timestamp} precedes last sample at {self._points[-1].timestamp}"
            )
        point = TimeSeriesPoint(float(timestamp), float(value))
        self._points.append(point)
        self.max_observed = max(self.max_observed, point.value)
        return point

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TimeSeriesPoint]:
        return iter(self._points)

    def __getitem__(self, index):
        return self._points[index]

    def __reversed__(self) -> Iterator[TimeSeriesPoint]:
        return reversed(self._points)

    @property
    def last(self) -> Optional[TimeSeriesPoint]:
        return self._points[-1] if self._points else None

    @property
    def last_value(self) -> float:
        """Most recent value, 0.0 for an empty series"""
        return self._points[-1].value if self._points else 0.0

    def tail(self, n: int) -> List[TimeSeriesPoint]:
        """Return the last n points (fewer if the series is shorter)"""
        if n <= 0:
            return []
        return self._points[-n:]

    def timestamps(self) -> np.ndarray:
        return np.array([p.timestamp for p in self._points], dtype=float)

    def values(self) -> np.ndarray:
        return np.array([p.value for p in self._points], dtype=float)

    def to_frame(self) -> pd.DataFrame:
        """Series as a two-column DataFrame (time, <name>)"""
        return pd.DataFrame({'time': self.timestamps(), self.name: self.values()})

    def __repr__(self):
        return f"TimeSeries({self.name!r}, points={len(self._points)}, max={self.max_observed:.3f})"
