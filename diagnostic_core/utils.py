"""
Utility functions for the diagnostic inference core.
"""

import numpy as np
from typing import List, Dict, Any, Sequence, Tuple
import json
import logging
import sys
from pathlib import Path


def normalize_probabilities(masses: Sequence[float]) -> List[float]:
    """
    Normalize unnormalized posterior masses so they sum to 1.0.

    Args:
        masses: Unnormalized masses (non-finite or negative entries count as 0.0)

    Returns:
        Normalized distribution in the same order, or a uniform 1/n
        distribution when the total mass is exactly zero
    """
    if len(masses) == 0:
        return []

    clean = [float(m) if np.isfinite(m) and m > 0 else 0.0 for m in masses]
    total = sum(clean)

    if total <= 0.0:
        n = len(clean)
        return [1.0 / n] * n

    return [m / total for m in clean]


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return float(min(max(value, lower), upper))


def ensure_finite(value: float, name: str = "value") -> float:
    """Return value as a float, raising ValueError if it is NaN or infinite."""
    if not np.isfinite(value):
        raise ValueError(f"{name}={value} is not finite")
    return float(value)


def population_stats(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation, sqrt(Σ(x - mean)² / n)."""
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    std = float(np.sqrt(np.sum((arr - mean) ** 2) / arr.size))
    return mean, std


def convert_to_serializable(obj):
    """Convert numpy types to Python native types for JSON serialization."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, dict):
        return {k: convert_to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_to_serializable(item) for item in obj]
    return obj


def save_json(data: Any, filepath: Path) -> None:
    """Save data to a JSON file."""
    serializable_data = convert_to_serializable(data)
    with open(filepath, 'w') as f:
        json.dump(serializable_data, f, indent=2)


def load_json(filepath: Path) -> Any:
    """Load data from a JSON file."""
    with open(filepath, 'r') as f:
        return json.load(f)


# ==============================================================================
# INPUT VALIDATION GATE
# ==============================================================================

def validate_sample_input(sample_data: Dict[str, Any]) -> tuple:
    """
    Validate a raw sample dictionary before it is streamed into the analyzer.

    Args:
        sample_data: Sample dictionary with structure:
            {
                "signal_id": str,
                "value": float,
                "timestamp": int (optional, monotonic milliseconds)
            }

    Returns:
        Tuple of (is_valid: bool, errors: List[str], warnings: List[str])
    """
    errors = []
    warnings = []

    if not isinstance(sample_data, dict):
        return (False, [f"Sample must be a dictionary, got {type(sample_data).__name__}"], warnings)

    signal_id = sample_data.get("signal_id", None)
    if signal_id is None:
        errors.append("Missing required field: signal_id")
    elif not isinstance(signal_id, str) or not signal_id.strip():
        errors.append("signal_id must be a non-empty string")

    value = sample_data.get("value", None)
    if value is None:
        errors.append("Missing required field: value")
    elif isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        errors.append(f"value must be numeric, got {type(value).__name__}")
    elif not np.isfinite(value):
        errors.append(f"value={value} is not finite")

    timestamp = sample_data.get("timestamp", None)
    if timestamp is not None:
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, np.integer)):
            errors.append(f"timestamp must be integer milliseconds, got {type(timestamp).__name__}")
        elif timestamp < 0:
            errors.append(f"timestamp={timestamp} must not be negative")

    if not errors and isinstance(signal_id, str) and signal_id != signal_id.strip():
        warnings.append(f"signal_id '{signal_id}' has surrounding whitespace")

    is_valid = len(errors) == 0

    return (is_valid, errors, warnings)


# ==============================================================================
# LOGGING
# ==============================================================================

class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    """Route the package's log records to stdout as JSON lines."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.handlers.clear()
    root.addHandler(handler)
