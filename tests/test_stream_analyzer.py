from __future__ import annotations

import math
import threading
from typing import Iterable, List

import pytest

from diagnostic_core.config import DiagnosticConfig
from diagnostic_core.data_models import SignalSample
from diagnostic_core.stream_analyzer import SignalStreamAnalyzer


def _feed(analyzer: SignalStreamAnalyzer, signal_id: str, values: Iterable[float]) -> None:
    for i, v in enumerate(values):
        analyzer.add_data_point(SignalSample(signal_id=signal_id, value=float(v), timestamp=i * 100))


def test_unknown_signal_is_not_evaluable() -> None:
    analyzer = SignalStreamAnalyzer()
    assert analyzer.mean("RPM") is None
    assert analyzer.std_deviation("RPM") is None
    assert analyzer.delta("RPM") is None
    assert analyzer.analyze_anomaly("RPM") is None
    assert analyzer.get_buffer("RPM") == []


def test_mean_and_population_std() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "ECT", [10, 10, 10, 10, 10, 20])
    assert analyzer.mean("ECT") == pytest.approx(11.6667, abs=1e-4)
    assert analyzer.std_deviation("ECT") == pytest.approx(3.7268, abs=1e-4)


def test_std_is_exactly_zero_for_single_sample() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "RPM", [850])
    assert analyzer.std_deviation("RPM") == 0.0


def test_std_is_none_after_clearing_signal() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "RPM", [850, 900])
    analyzer.clear("RPM")
    assert analyzer.std_deviation("RPM") is None
    assert analyzer.mean("RPM") is None


def test_delta_is_newest_minus_oldest() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "RPM", [800, 950, 700, 1000])
    assert analyzer.delta("RPM") == pytest.approx(200.0)


def test_delta_follows_window_after_eviction() -> None:
    analyzer = SignalStreamAnalyzer(DiagnosticConfig(buffer_capacity=3))
    _feed(analyzer, "RPM", [1, 2, 3, 4, 10])
    assert [s.value for s in analyzer.get_buffer("RPM")] == [3.0, 4.0, 10.0]
    assert analyzer.delta("RPM") == pytest.approx(7.0)


def test_anomaly_needs_five_samples() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "ECT", [10, 10, 10, 40])
    assert analyzer.analyze_anomaly("ECT") is None
    _feed(analyzer, "ECT", [10])
    assert analyzer.analyze_anomaly("ECT") is not None


def test_anomaly_flags_outlier() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "ECT", [10, 10, 10, 10, 10, 20])
    result = analyzer.analyze_anomaly("ECT", threshold_multiplier=2.0)
    assert result is not None
    assert result.signal_id == "ECT"
    assert result.last_value == 20.0
    assert result.mean == pytest.approx(11.6667, abs=1e-4)
    assert result.std_deviation == pytest.approx(3.7268, abs=1e-4)
    assert result.is_anomalous is True


def test_anomaly_respects_threshold_multiplier() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "ECT", [10, 10, 10, 10, 10, 20])
    # 8.33 < 3.7268 * 3
    assert analyzer.analyze_anomaly("ECT", threshold_multiplier=3.0).is_anomalous is False


def test_configured_multiplier_is_default() -> None:
    analyzer = SignalStreamAnalyzer(DiagnosticConfig(anomaly_threshold_multiplier=3.0))
    _feed(analyzer, "ECT", [10, 10, 10, 10, 10, 20])
    assert analyzer.analyze_anomaly("ECT").is_anomalous is False


def test_flat_signal_is_never_anomalous() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "VBAT", [12, 12, 12, 12, 12, 12])
    result = analyzer.analyze_anomaly("VBAT", threshold_multiplier=0.0001)
    assert result is not None
    assert result.std_deviation == 0.0
    assert result.is_anomalous is False


def test_non_anomalous_result_is_still_returned() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "RPM", [800, 810, 805, 795, 802])
    result = analyzer.analyze_anomaly("RPM")
    assert result is not None
    assert result.is_anomalous is False


def test_minimum_sample_counts_are_configurable() -> None:
    config = DiagnosticConfig(min_samples_anomaly=3, min_samples_std=3)
    analyzer = SignalStreamAnalyzer(config)
    _feed(analyzer, "RPM", [800, 900])
    assert analyzer.std_deviation("RPM") == 0.0
    assert analyzer.analyze_anomaly("RPM") is None
    _feed(analyzer, "RPM", [1000])
    assert analyzer.std_deviation("RPM") > 0
    assert analyzer.analyze_anomaly("RPM") is not None


def test_analyze_all_skips_cold_signals() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "ECT", [10, 10, 10, 10, 10, 20])
    _feed(analyzer, "RPM", [800, 900])
    results = analyzer.analyze_all()
    assert [r.signal_id for r in results] == ["ECT"]


def test_clear_all_drops_every_buffer() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "ECT", [10, 20])
    _feed(analyzer, "RPM", [800, 900])
    analyzer.clear()
    assert analyzer.signal_ids() == []
    assert analyzer.mean("ECT") is None


def test_memory_is_bounded_per_signal() -> None:
    analyzer = SignalStreamAnalyzer(DiagnosticConfig(buffer_capacity=50))
    _feed(analyzer, "RPM", range(10_000))
    assert len(analyzer.get_buffer("RPM")) == 50


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_samples_are_rejected(bad: float) -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "MAF", [3.0, 3.5])
    with pytest.raises(ValueError, match="not finite"):
        analyzer.add_data_point(SignalSample(signal_id="MAF", value=bad, timestamp=300))
    assert len(analyzer.get_buffer("MAF")) == 2
    assert analyzer.mean("MAF") == pytest.approx(3.25)


def test_concurrent_writers_and_readers() -> None:
    analyzer = SignalStreamAnalyzer(DiagnosticConfig(buffer_capacity=32))
    errors: List[BaseException] = []
    done = threading.Event()

    def produce(signal_id: str) -> None:
        try:
            for i in range(2000):
                analyzer.add_data_point(SignalSample(signal_id=signal_id, value=float(i % 97), timestamp=i))
        except BaseException as exc:  # pragma: no cover
            errors.append(exc)

    def consume() -> None:
        try:
            while not done.is_set():
                for signal_id in ("RPM", "MAF"):
                    std = analyzer.std_deviation(signal_id)
                    assert std is None or (math.isfinite(std) and std >= 0.0)
                    assert len(analyzer.get_buffer(signal_id)) <= 32
                    analyzer.analyze_anomaly(signal_id)
        except BaseException as exc:  # pragma: no cover
            errors.append(exc)

    producers = [threading.Thread(target=produce, args=(s,)) for s in ("RPM", "MAF")]
    reader = threading.Thread(target=consume)
    reader.start()
    for t in producers:
        t.start()
    for t in producers:
        t.join()
    done.set()
    reader.join()

    assert errors == []
    assert len(analyzer.get_buffer("RPM")) == 32
    assert analyzer.get_buffer("RPM")[-1].timestamp == 1999
