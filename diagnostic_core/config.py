"""
Construction-time configuration for the diagnostic inference core.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional
import warnings

try:
    from .utils import load_json
except ImportError:
    from utils import load_json


@dataclass
class DiagnosticConfig:
    """Tunable knobs shared by the analyzer, validator and inference engine."""

    # 60 s of history at ~10 Hz
    buffer_capacity: int = 600
    anomaly_threshold_multiplier: float = 2.0
    min_samples_std: int = 2
    min_samples_anomaly: int = 5

    # Pass-1 posterior above which a fault code becomes a confirmed parent
    confirmation_threshold: float = 0.6
    anomaly_likelihood_bonus: float = 0.25
    inconsistency_penalty: float = 0.10
    likelihood_floor: float = 0.1

    model_version: str = "Bayes-Simplified-v1"

    def validate(self) -> 'DiagnosticConfig':
        """Raise ValueError on out-of-range settings; returns self for chaining."""
        errors = []
        if self.buffer_capacity < 1:
            errors.append(f"buffer_capacity={self.buffer_capacity} must be >= 1")
        if self.anomaly_threshold_multiplier <= 0:
            errors.append(
                f"anomaly_threshold_multiplier={self.anomaly_threshold_multiplier} must be > 0"
            )
        if self.min_samples_std < 1:
            errors.append(f"min_samples_std={self.min_samples_std} must be >= 1")
        if self.min_samples_anomaly < 1:
            errors.append(f"min_samples_anomaly={self.min_samples_anomaly} must be >= 1")
        if not 0.0 <= self.confirmation_threshold <= 1.0:
            errors.append(
                f"confirmation_threshold={self.confirmation_threshold} out of range [0, 1]"
            )
        if self.anomaly_likelihood_bonus < 0:
            errors.append(f"anomaly_likelihood_bonus={self.anomaly_likelihood_bonus} must be >= 0")
        if self.inconsistency_penalty < 0:
            errors.append(f"inconsistency_penalty={self.inconsistency_penalty} must be >= 0")
        if self.likelihood_floor <= 0:
            errors.append(f"likelihood_floor={self.likelihood_floor} must be > 0")

        if errors:
            raise ValueError("Invalid diagnostic configuration: " + "; ".join(errors))
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DiagnosticConfig':
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            warnings.warn(f"Ignoring unknown diagnostic config keys: {', '.join(unknown)}")

        defaults = cls()
        kwargs = {}
        for name in known:
            if name not in data:
                continue
            # Coerce to the type of the default so "600" and 600.0 both work
            kwargs[name] = type(getattr(defaults, name))(data[name])

        return cls(**kwargs).validate()


def load_config(filepath: Path) -> DiagnosticConfig:
    """Load a DiagnosticConfig from a JSON file."""
    return DiagnosticConfig.from_dict(load_json(Path(filepath)))
