"""
Signal Stream Analyzer

Keeps a bounded rolling window per signal (PID) and derives statistics
from it: mean, population standard deviation, trend delta and z-score
anomaly flags.

Every statistic returns None when the window cannot answer yet; callers
treat None as "not yet evaluable", never as zero.
"""

from typing import Dict, List, Optional
import logging
import threading

try:
    from .config import DiagnosticConfig
    from .data_models import AnomalyResult, SignalSample
    from .sample_buffer import BoundedSampleBuffer
    from .utils import ensure_finite, population_stats
except ImportError:
    from config import DiagnosticConfig
    from data_models import AnomalyResult, SignalSample
    from sample_buffer import BoundedSampleBuffer
    from utils import ensure_finite, population_stats


logger = logging.getLogger(__name__)


class SignalStreamAnalyzer:
    """
    Owns one BoundedSampleBuffer per signal id and answers statistical
    queries over the current window.
    """

    def __init__(self, config: Optional[DiagnosticConfig] = None):
        """
        Args:
            config: Buffer capacity, anomaly multiplier and minimum sample
                counts. Defaults to DiagnosticConfig().
        """
        self.config = (config or DiagnosticConfig()).validate()
        self._buffers: Dict[str, BoundedSampleBuffer] = {}
        self._lock = threading.RLock()

    def add_data_point(self, sample: SignalSample) -> None:
        """
        Route a sample into its signal's buffer, creating the buffer on first use.

        Raises:
            ValueError: If the sample value is NaN or infinite
        """
        ensure_finite(sample.value, f"{sample.signal_id} value")
        with self._lock:
            buffer = self._buffers.get(sample.signal_id)
            if buffer is None:
                buffer = BoundedSampleBuffer(self.config.buffer_capacity)
                self._buffers[sample.signal_id] = buffer
                logger.debug(
                    "Created buffer for signal %s (capacity=%d)",
                    sample.signal_id, self.config.buffer_capacity
                )
            buffer.add(sample)

    def _values(self, signal_id: str) -> List[float]:
        with self._lock:
            buffer = self._buffers.get(signal_id)
            if buffer is None:
                return []
            return buffer.values()

    def signal_ids(self) -> List[str]:
        with self._lock:
            return list(self._buffers.keys())

    def get_buffer(self, signal_id: str) -> List[SignalSample]:
        """Snapshot of a signal's window, oldest first (empty if unknown)."""
        with self._lock:
            buffer = self._buffers.get(signal_id)
            return buffer.snapshot() if buffer is not None else []

    def mean(self, signal_id: str) -> Optional[float]:
        """Arithmetic mean: Σx / n."""
        values = self._values(signal_id)
        if not values:
            return None
        return population_stats(values)[0]

    def std_deviation(self, signal_id: str) -> Optional[float]:
        """
        Population standard deviation: sqrt(Σ(x - mean)² / n).

        Returns exactly 0.0 below `min_samples_std` samples so a cold window
        never yields NaN, and None when there are no samples at all.
        """
        values = self._values(signal_id)
        if not values:
            return None
        if len(values) < self.config.min_samples_std:
            return 0.0
        return population_stats(values)[1]

    def delta(self, signal_id: str) -> Optional[float]:
        """Trend magnitude: newest value minus oldest value in the window."""
        values = self._values(signal_id)
        if not values:
            return None
        return values[-1] - values[0]

    def analyze_anomaly(
        self,
        signal_id: str,
        threshold_multiplier: Optional[float] = None
    ) -> Optional[AnomalyResult]:
        """
        Flag the newest value when it sits further than
        `threshold_multiplier` standard deviations from the window mean.

        Args:
            signal_id: Signal to evaluate
            threshold_multiplier: Std multiplier (defaults to config, 2.0)

        Returns:
            AnomalyResult, or None with fewer than `min_samples_anomaly` samples
        """
        if threshold_multiplier is None:
            threshold_multiplier = self.config.anomaly_threshold_multiplier

        values = self._values(signal_id)
        if len(values) < self.config.min_samples_anomaly:
            return None

        mean, std_dev = population_stats(values)
        last_value = values[-1]

        # Zero spread is never anomalous
        if std_dev > 0:
            is_anomalous = abs(last_value - mean) > std_dev * threshold_multiplier
        else:
            is_anomalous = False

        return AnomalyResult(
            signal_id=signal_id,
            mean=mean,
            std_deviation=std_dev,
            last_value=last_value,
            is_anomalous=bool(is_anomalous)
        )

    def analyze_all(self, threshold_multiplier: Optional[float] = None) -> List[AnomalyResult]:
        """Anomaly results for every signal with enough samples."""
        results = []
        for signal_id in self.signal_ids():
            result = self.analyze_anomaly(signal_id, threshold_multiplier)
            if result is not None:
                results.append(result)
        return results

    def clear(self, signal_id: Optional[str] = None) -> None:
        """Drop one signal's window, or every window when signal_id is None."""
        with self._lock:
            if signal_id is None:
                self._buffers.clear()
            else:
                buffer = self._buffers.get(signal_id)
                if buffer is not None:
                    buffer.clear()
