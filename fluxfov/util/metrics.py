"""Sample trackers behind the ``fov.*`` live variables.

Concurrent ``compute`` calls share one registry, so every tracker guards its
buffer with a lock. Readers get a copy and never see a half-written sample.
"""

import abc
import threading

import numpy as np

PERCENTILES = (50, 95, 99)


class StatsVar(abc.ABC):
    """A stream of float samples summarised as percentiles."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @abc.abstractmethod
    def record(self, value: float) -> None:
        """Record a new sample value."""

    @property
    @abc.abstractmethod
    def sample_count(self) -> int: ...

    @abc.abstractmethod
    def _samples_locked(self) -> np.ndarray:
        """Retained samples, oldest first. Caller holds ``self._lock``."""

    def samples(self) -> np.ndarray:
        """Copy of the retained samples, oldest first."""
        with self._lock:
            return self._samples_locked().copy()

    @property
    def p50(self) -> float:
        return self.get_percentiles()[0]

    @property
    def p95(self) -> float:
        return self.get_percentiles()[1]

    @property
    def p99(self) -> float:
        return self.get_percentiles()[2]

    @property
    def latest(self) -> float | None:
        """Most recently recorded sample, or None before the first one."""
        valid = self.samples()
        if len(valid) == 0:
            return None
        return float(valid[-1])

    def get_percentiles(self) -> tuple[float, float, float]:
        """Return (p50, p95, p99), or zeros while nothing has been recorded."""
        valid = self.samples()
        if len(valid) == 0:
            return (0.0, 0.0, 0.0)
        p50, p95, p99 = np.percentile(valid, PERCENTILES)
        return (float(p50), float(p95), float(p99))

    def get_percentiles_string(self) -> str:
        p50, p95, p99 = self.get_percentiles()
        return f"p50={p50:.2f} p95={p95:.2f} p99={p99:.2f}"


class MostRecentNVar(StatsVar):
    """Keeps the last *num_samples* values in a fixed ring buffer.

    ``count`` keeps growing past the buffer size so callers can tell how many
    queries were timed in total, not just how many are retained.
    """

    def __init__(self, num_samples: int = 1000) -> None:
        if num_samples <= 0:
            raise ValueError("num_samples must be a positive integer.")
        super().__init__()
        self.num_samples = num_samples
        self._buffer = np.zeros(num_samples, dtype=np.float64)
        self.count = 0
        self._next = 0

    def record(self, value: float) -> None:
        with self._lock:
            self._buffer[self._next] = value
            self._next = (self._next + 1) % self.num_samples
            self.count += 1

    def _samples_locked(self) -> np.ndarray:
        if self.count <= self.num_samples:
            return self._buffer[: self.count]
        # Once wrapped, the oldest sample is the next slot to be overwritten.
        return np.roll(self._buffer, -self._next)

    @property
    def sample_count(self) -> int:
        with self._lock:
            return min(self.count, self.num_samples)
