"""
Consistency Validator

Cross-checks physically related sensor pairs against the rolling
statistics of the SignalStreamAnalyzer. A relationship whose signals are
not yet evaluable (or whose computation is degenerate) is skipped, not
reported as an error.
"""

from typing import Iterable, List, Optional, Sequence
import logging

import numpy as np

try:
    from .catalogs import STANDARD_RELATIONSHIPS
    from .data_models import ConsistencyResult, RelationshipType, SensorRelationshipSpec
    from .stream_analyzer import SignalStreamAnalyzer
except ImportError:
    from catalogs import STANDARD_RELATIONSHIPS
    from data_models import ConsistencyResult, RelationshipType, SensorRelationshipSpec
    from stream_analyzer import SignalStreamAnalyzer


logger = logging.getLogger(__name__)


class ConsistencyValidator:
    """
    Evaluates a static catalog of SensorRelationshipSpec entries against
    live analyzer output.
    """

    def __init__(
        self,
        analyzer: SignalStreamAnalyzer,
        relationships: Optional[Iterable[SensorRelationshipSpec]] = None
    ):
        self.analyzer = analyzer
        if relationships is None:
            relationships = STANDARD_RELATIONSHIPS
        self._relationships = tuple(relationships)

    @property
    def relationships(self) -> Sequence[SensorRelationshipSpec]:
        return self._relationships

    def validate_relationship(self, spec: SensorRelationshipSpec) -> Optional[ConsistencyResult]:
        """
        Check one relationship against the current windows.

        Returns:
            ConsistencyResult, or None when any required statistic is
            unavailable or the ratio denominator is zero
        """
        delta_primary = self.analyzer.delta(spec.primary_signal)
        delta_secondary = self.analyzer.delta(spec.secondary_signal)
        mean_primary = self.analyzer.mean(spec.primary_signal)
        mean_secondary = self.analyzer.mean(spec.secondary_signal)

        if None in (delta_primary, delta_secondary, mean_primary, mean_secondary):
            logger.debug(
                "Skipping %s/%s: signal data not available",
                spec.primary_signal, spec.secondary_signal
            )
            return None

        kind = spec.relationship_type

        if kind is RelationshipType.DIRECT_CORRELATION:
            # Same sign, or either side flat
            is_consistent = (
                np.sign(delta_primary) == np.sign(delta_secondary)
                or delta_primary == 0.0
                or delta_secondary == 0.0
            )
            deviation = abs(delta_primary - delta_secondary)

        elif kind is RelationshipType.INVERSE_CORRELATION:
            is_consistent = np.sign(delta_primary) != np.sign(delta_secondary)
            deviation = abs(delta_primary + delta_secondary)

        elif kind is RelationshipType.RATIO_EXPECTED:
            if mean_secondary == 0.0:
                logger.debug(
                    "Skipping %s/%s: zero secondary mean, ratio undefined",
                    spec.primary_signal, spec.secondary_signal
                )
                return None
            ratio = mean_primary / mean_secondary
            # tolerance is both the target ratio and the allowed band
            deviation = abs(ratio - spec.tolerance)
            is_consistent = deviation <= spec.tolerance

        elif kind is RelationshipType.DELTA_THRESHOLD:
            deviation = abs(mean_primary - mean_secondary)
            is_consistent = deviation <= spec.tolerance

        else:
            raise ValueError(f"Unhandled relationship type: {kind!r}")

        return ConsistencyResult(
            primary_signal=spec.primary_signal,
            secondary_signal=spec.secondary_signal,
            relationship_type=kind,
            is_consistent=bool(is_consistent),
            deviation=float(deviation)
        )

    def validate_all(self) -> List[ConsistencyResult]:
        """Evaluate the whole catalog in order, dropping skipped entries."""
        results = []
        for spec in self._relationships:
            result = self.validate_relationship(spec)
            if result is not None:
                results.append(result)
        return results

    def inconsistencies(self) -> List[ConsistencyResult]:
        return [r for r in self.validate_all() if not r.is_consistent]
