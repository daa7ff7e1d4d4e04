"""
Fixed-capacity ring buffer of timestamped samples for one signal.
"""

from collections import deque
from typing import Deque, List, Optional
import threading

try:
    from .data_models import SignalSample
except ImportError:
    from data_models import SignalSample


class BoundedSampleBuffer:
    """
    Ring buffer that drops the oldest sample once capacity is reached.

    Mutation and snapshot-taking share one lock, so a reader never sees a
    half-applied eviction.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._samples: Deque[SignalSample] = deque(maxlen=self._capacity)
        self._lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def add(self, sample: SignalSample) -> None:
        # deque(maxlen) evicts from the left before appending
        with self._lock:
            self._samples.append(sample)

    def snapshot(self) -> List[SignalSample]:
        """Ordered copy, oldest to newest."""
        with self._lock:
            return list(self._samples)

    def values(self) -> List[float]:
        with self._lock:
            return [s.value for s in self._samples]

    def peek_newest(self) -> Optional[SignalSample]:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def peek_oldest(self) -> Optional[SignalSample]:
        with self._lock:
            return self._samples[0] if self._samples else None

    def size(self) -> int:
        with self._lock:
            return len(self._samples)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        return self.size()
