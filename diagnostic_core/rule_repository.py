"""
Rule repository interface and an in-memory implementation.

The inference engine only depends on `get_rules_by_fault_code`; where the
rules come from is the caller's concern.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Protocol
import logging
import threading

try:
    from .data_models import DiagnosticRule
    from .utils import load_json, save_json
except ImportError:
    from data_models import DiagnosticRule
    from utils import load_json, save_json


logger = logging.getLogger(__name__)


class RuleRepository(Protocol):
    """Source of candidate rules for a fault code."""

    def get_rules_by_fault_code(self, fault_code: str) -> List[DiagnosticRule]:
        ...


# Initial rule set for an empty repository
SEED_RULES = (
    DiagnosticRule(
        fault_code="P0302",
        required_conditions="{'RPM': {'>': 600}, 'MISFIRE_C2': {'>': 10}}",
        weight=0.8,
        probable_cause="Cylinder 2 misfire (spark plug or ignition coil)",
        is_root_candidate=True,
        severity_level=4
    ),
    DiagnosticRule(
        fault_code="P0172",
        required_conditions="{'STFT': {'<': -15}, 'LTFT': {'<': -10}}",
        weight=0.7,
        probable_cause="System too rich (excess fuel delivery)",
        is_root_candidate=True,
        severity_level=3
    ),
    DiagnosticRule(
        fault_code="P0101",
        required_conditions="{'MAF': {'out_of_range': true}}",
        weight=0.6,
        probable_cause="Dirty or faulty MAF sensor",
        is_root_candidate=True,
        severity_level=2
    ),
    DiagnosticRule(
        fault_code="P0796",
        required_conditions="{'TRANS_TEMP': {'>': 110}}",
        weight=0.9,
        probable_cause="Transmission pressure control solenoid C stuck",
        is_root_candidate=True,
        severity_level=5
    ),
    DiagnosticRule(
        fault_code="P0087",
        required_conditions="{'FUEL_PRESSURE': {'<': 2000}}",
        weight=0.85,
        probable_cause="Low fuel rail pressure (pump or filter)",
        is_root_candidate=True,
        severity_level=4
    ),
)


class InMemoryRuleRepository:
    """Dict-backed rule store keyed by fault code, insertion order preserved."""

    def __init__(self, rules: Iterable[DiagnosticRule] = ()):
        self._rules: Dict[str, List[DiagnosticRule]] = {}
        self._lock = threading.Lock()
        self.add_rules(rules)

    def add_rules(self, rules: Iterable[DiagnosticRule]) -> None:
        with self._lock:
            for rule in rules:
                self._rules.setdefault(rule.fault_code, []).append(rule)

    def get_rules_by_fault_code(self, fault_code: str) -> List[DiagnosticRule]:
        with self._lock:
            return list(self._rules.get(fault_code, []))

    def get_all_rules(self) -> List[DiagnosticRule]:
        with self._lock:
            return [rule for rules in self._rules.values() for rule in rules]

    def seed_rules_if_empty(self) -> bool:
        """Insert SEED_RULES when the repository holds nothing. Returns True if seeded."""
        if self.get_all_rules():
            return False
        self.add_rules(SEED_RULES)
        logger.info("Seeded rule repository with %d rules", len(SEED_RULES))
        return True

    @classmethod
    def from_json(cls, filepath: Path) -> 'InMemoryRuleRepository':
        """Load rules from a JSON list of rule dictionaries."""
        data = load_json(Path(filepath))
        if isinstance(data, dict):
            data = data.get("rules", [])
        rules = []
        for i, entry in enumerate(data):
            try:
                rules.append(DiagnosticRule.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"{filepath}: invalid rule entry {i}: {e}") from e
        return cls(rules)

    def to_json(self, filepath: Path) -> None:
        save_json([rule.to_dict() for rule in self.get_all_rules()], Path(filepath))
