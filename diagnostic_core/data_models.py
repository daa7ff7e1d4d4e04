"""
Data models and structures for the diagnostic inference core.
"""

from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum
import time


def monotonic_millis() -> int:
    """Monotonic clock in milliseconds, used to stamp live samples."""
    return int(time.monotonic() * 1000)


def wall_clock_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SignalSample:
    """A single reading of one sensor channel (PID) at a point in time."""
    signal_id: str
    value: float
    timestamp: int = field(default_factory=monotonic_millis)

    def to_dict(self) -> Dict[str, Any]:
        return {"signal_id": self.signal_id, "value": self.value, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignalSample':
        if "timestamp" in data and data["timestamp"] is not None:
            return cls(
                signal_id=str(data["signal_id"]),
                value=float(data["value"]),
                timestamp=int(data["timestamp"])
            )
        return cls(signal_id=str(data["signal_id"]), value=float(data["value"]))


@dataclass(frozen=True)
class AnomalyResult:
    """Rolling-window anomaly evaluation of one signal."""
    signal_id: str
    mean: float
    std_deviation: float
    last_value: float
    is_anomalous: bool
    timestamp: int = field(default_factory=wall_clock_millis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signal_id": self.signal_id,
            "mean": self.mean,
            "std_deviation": self.std_deviation,
            "last_value": self.last_value,
            "is_anomalous": self.is_anomalous,
            "timestamp": self.timestamp,
        }


class RelationshipType(Enum):
    """Expected physical relationship between two sensors."""
    # Both signals move in the same direction (e.g. RPM and MAF)
    DIRECT_CORRELATION = "direct_correlation"
    # One rises while the other falls (e.g. manifold vacuum vs throttle)
    INVERSE_CORRELATION = "inverse_correlation"
    # Quotient of the means stays within a band (e.g. CVT slip ratio)
    RATIO_EXPECTED = "ratio_expected"
    # Absolute difference of the means stays under a threshold
    DELTA_THRESHOLD = "delta_threshold"

    @classmethod
    def parse(cls, value: Any) -> 'RelationshipType':
        """Accept enum members, values ("ratio_expected") or names ("RATIO_EXPECTED")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() == member.value or text.upper() == member.name:
                return member
        raise ValueError(f"Unknown relationship type: {value!r}")


@dataclass(frozen=True)
class SensorRelationshipSpec:
    """Technical relationship between two sensors used for cross-validation."""
    primary_signal: str
    secondary_signal: str
    relationship_type: RelationshipType
    tolerance: float
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_signal": self.primary_signal,
            "secondary_signal": self.secondary_signal,
            "relationship_type": self.relationship_type.value,
            "tolerance": self.tolerance,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SensorRelationshipSpec':
        return cls(
            primary_signal=str(data["primary_signal"]),
            secondary_signal=str(data["secondary_signal"]),
            relationship_type=RelationshipType.parse(data["relationship_type"]),
            tolerance=float(data.get("tolerance", 0.0)),
            description=str(data.get("description", ""))
        )


@dataclass(frozen=True)
class ConsistencyResult:
    """Outcome of checking one sensor relationship against live data."""
    primary_signal: str
    secondary_signal: str
    relationship_type: RelationshipType
    is_consistent: bool
    deviation: float
    timestamp: int = field(default_factory=wall_clock_millis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_signal": self.primary_signal,
            "secondary_signal": self.secondary_signal,
            "relationship_type": self.relationship_type.value,
            "is_consistent": self.is_consistent,
            "deviation": self.deviation,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DiagnosticRule:
    """
    Expert rule linking a fault code to a probable cause.

    `required_conditions` is kept as an opaque string; the inference core
    never interprets it.
    """
    fault_code: str
    probable_cause: str
    weight: float
    is_root_candidate: bool = False
    severity_level: int = 1
    required_conditions: str = ""
    created_at: int = field(default_factory=wall_clock_millis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fault_code": self.fault_code,
            "required_conditions": self.required_conditions,
            "weight": self.weight,
            "probable_cause": self.probable_cause,
            "is_root_candidate": self.is_root_candidate,
            "severity_level": self.severity_level,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DiagnosticRule':
        weight = float(data["weight"])
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"Rule weight {weight} for {data['fault_code']} out of range [0, 1]")
        severity = int(data.get("severity_level", 1))
        if not 1 <= severity <= 5:
            raise ValueError(f"Severity level {severity} for {data['fault_code']} out of range [1, 5]")
        kwargs = {}
        if data.get("created_at") is not None:
            kwargs["created_at"] = int(data["created_at"])
        return cls(
            fault_code=str(data["fault_code"]),
            probable_cause=str(data.get("probable_cause", "")),
            weight=weight,
            is_root_candidate=bool(data.get("is_root_candidate", False)),
            severity_level=severity,
            required_conditions=str(data.get("required_conditions", "")),
            **kwargs
        )


@dataclass(frozen=True)
class RuleDependency:
    """
    Causal dependency between two fault codes.

    A confirmed parent fault multiplies the prior of every rule for the
    child fault by `influence_factor`.
    """
    parent_fault_code: str
    child_fault_code: str
    influence_factor: float
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parent_fault_code": self.parent_fault_code,
            "child_fault_code": self.child_fault_code,
            "influence_factor": self.influence_factor,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuleDependency':
        factor = float(data["influence_factor"])
        if factor <= 1.0:
            raise ValueError(
                f"influence_factor for {data['parent_fault_code']}->{data['child_fault_code']} "
                f"must be > 1, got {factor}"
            )
        return cls(
            parent_fault_code=str(data["parent_fault_code"]),
            child_fault_code=str(data["child_fault_code"]),
            influence_factor=factor,
            description=str(data.get("description", ""))
        )


@dataclass(frozen=True)
class DiagnosticFinding:
    """A single ranked cause: Posterior ∝ Prior × Likelihood, normalised."""
    fault_code: str
    probable_cause: str
    prior_probability: float
    likelihood: float
    posterior_probability: float
    severity_level: int
    is_root_candidate: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fault_code": self.fault_code,
            "probable_cause": self.probable_cause,
            "prior_probability": self.prior_probability,
            "likelihood": self.likelihood,
            "posterior_probability": self.posterior_probability,
            "severity_level": self.severity_level,
            "is_root_candidate": self.is_root_candidate,
        }


@dataclass
class DiagnosticReport:
    """Consolidated result of one diagnostic request."""
    findings: List[DiagnosticFinding]
    anomaly_results: List[AnomalyResult]
    consistency_results: List[ConsistencyResult]
    total_probability_mass: float
    model_version: str = "Bayes-Simplified-v1"
    generated_at: int = field(default_factory=wall_clock_millis)

    def top_finding(self) -> Optional[DiagnosticFinding]:
        return self.findings[0] if self.findings else None

    def root_candidates(self) -> List[DiagnosticFinding]:
        return [f for f in self.findings if f.is_root_candidate]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "anomaly_results": [a.to_dict() for a in self.anomaly_results],
            "consistency_results": [c.to_dict() for c in self.consistency_results],
            "total_probability_mass": self.total_probability_mass,
            "model_version": self.model_version,
            "generated_at": self.generated_at,
        }
