from __future__ import annotations

from typing import Iterable

import pytest

from diagnostic_core.catalogs import STANDARD_RELATIONSHIPS
from diagnostic_core.consistency_validator import ConsistencyValidator
from diagnostic_core.data_models import RelationshipType, SensorRelationshipSpec, SignalSample
from diagnostic_core.stream_analyzer import SignalStreamAnalyzer


def _feed(analyzer: SignalStreamAnalyzer, signal_id: str, values: Iterable[float]) -> None:
    for i, v in enumerate(values):
        analyzer.add_data_point(SignalSample(signal_id=signal_id, value=float(v), timestamp=i * 100))


def _spec(kind: RelationshipType, tolerance: float = 0.0) -> SensorRelationshipSpec:
    return SensorRelationshipSpec("A", "B", kind, tolerance, "test pair")


def test_direct_correlation_same_direction_is_consistent() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [100, 105])
    _feed(analyzer, "B", [10, 13])
    result = ConsistencyValidator(analyzer, []).validate_relationship(
        _spec(RelationshipType.DIRECT_CORRELATION)
    )
    assert result.is_consistent is True
    assert result.deviation == pytest.approx(2.0)
    assert result.relationship_type is RelationshipType.DIRECT_CORRELATION


def test_direct_correlation_opposite_direction_is_inconsistent() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [100, 105])
    _feed(analyzer, "B", [10, 7])
    result = ConsistencyValidator(analyzer, []).validate_relationship(
        _spec(RelationshipType.DIRECT_CORRELATION)
    )
    assert result.is_consistent is False
    assert result.deviation == pytest.approx(8.0)


def test_direct_correlation_flat_side_is_consistent() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [100, 105])
    _feed(analyzer, "B", [10, 10])
    result = ConsistencyValidator(analyzer, []).validate_relationship(
        _spec(RelationshipType.DIRECT_CORRELATION)
    )
    assert result.is_consistent is True


def test_inverse_correlation() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [100, 105])
    _feed(analyzer, "B", [10, 7])
    validator = ConsistencyValidator(analyzer, [])
    result = validator.validate_relationship(_spec(RelationshipType.INVERSE_CORRELATION))
    assert result.is_consistent is True
    assert result.deviation == pytest.approx(2.0)

    analyzer.clear("B")
    _feed(analyzer, "B", [10, 14])
    result = validator.validate_relationship(_spec(RelationshipType.INVERSE_CORRELATION))
    assert result.is_consistent is False
    assert result.deviation == pytest.approx(9.0)


def test_inverse_correlation_both_flat_is_inconsistent() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [5, 5])
    _feed(analyzer, "B", [7, 7])
    result = ConsistencyValidator(analyzer, []).validate_relationship(
        _spec(RelationshipType.INVERSE_CORRELATION)
    )
    assert result.is_consistent is False
    assert result.deviation == 0.0


def test_ratio_uses_tolerance_as_target_and_band() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [1.0])
    _feed(analyzer, "B", [10.0])
    validator = ConsistencyValidator(analyzer, [])
    result = validator.validate_relationship(_spec(RelationshipType.RATIO_EXPECTED, 0.1))
    assert result.is_consistent is True
    assert result.deviation == pytest.approx(0.0)

    analyzer.clear("A")
    _feed(analyzer, "A", [5.0])
    result = validator.validate_relationship(_spec(RelationshipType.RATIO_EXPECTED, 0.1))
    assert result.is_consistent is False
    assert result.deviation == pytest.approx(0.4)


def test_ratio_with_zero_secondary_mean_is_skipped() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [1500, 1500])
    _feed(analyzer, "B", [-5, 5])
    result = ConsistencyValidator(analyzer, []).validate_relationship(
        _spec(RelationshipType.RATIO_EXPECTED, 0.1)
    )
    assert result is None


def test_delta_threshold() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [90, 90])
    _feed(analyzer, "B", [92, 92])
    validator = ConsistencyValidator(analyzer, [])
    result = validator.validate_relationship(_spec(RelationshipType.DELTA_THRESHOLD, 5.0))
    assert result.is_consistent is True
    assert result.deviation == pytest.approx(2.0)

    result = validator.validate_relationship(_spec(RelationshipType.DELTA_THRESHOLD, 1.0))
    assert result.is_consistent is False


def test_missing_signal_is_skipped() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "A", [1, 2])
    validator = ConsistencyValidator(analyzer, [])
    for kind in RelationshipType:
        assert validator.validate_relationship(_spec(kind, 1.0)) is None


def test_validate_all_keeps_catalog_order_and_drops_skipped() -> None:
    analyzer = SignalStreamAnalyzer()
    _feed(analyzer, "RPM", [800, 1200])
    _feed(analyzer, "MAF", [3.0, 2.0])
    _feed(analyzer, "TPS", [10, 20])
    _feed(analyzer, "MAP", [30, 40])
    validator = ConsistencyValidator(analyzer)

    results = validator.validate_all()
    # transmission pair has no data
    assert [(r.primary_signal, r.secondary_signal) for r in results] == [
        ("RPM", "MAF"),
        ("TPS", "MAP"),
    ]
    assert [r.is_consistent for r in results] == [False, True]
    assert [r.primary_signal for r in validator.inconsistencies()] == ["RPM"]


def test_default_catalog_is_standard() -> None:
    validator = ConsistencyValidator(SignalStreamAnalyzer())
    assert tuple(validator.relationships) == STANDARD_RELATIONSHIPS
    assert validator.validate_all() == []
