"""
Standard relationship and dependency catalogs.

Both are plain defaults; every component accepts its own catalog at
construction, and `load_relationships` / `load_dependencies` read
replacements from JSON.
"""

from pathlib import Path
from typing import List

try:
    from .data_models import RelationshipType, RuleDependency, SensorRelationshipSpec
    from .utils import load_json
except ImportError:
    from data_models import RelationshipType, RuleDependency, SensorRelationshipSpec
    from utils import load_json


STANDARD_RELATIONSHIPS = (
    SensorRelationshipSpec(
        primary_signal="RPM",
        secondary_signal="MAF",
        relationship_type=RelationshipType.DIRECT_CORRELATION,
        tolerance=0.0,
        description="Mass air flow must rise with engine speed"
    ),
    SensorRelationshipSpec(
        primary_signal="TRANS_INPUT_SPEED",
        secondary_signal="TRANS_OUTPUT_SPEED",
        relationship_type=RelationshipType.RATIO_EXPECTED,
        tolerance=0.1,  # 10% acceptable slip
        description="Transmission slip ratio"
    ),
    SensorRelationshipSpec(
        primary_signal="TPS",
        secondary_signal="MAP",
        relationship_type=RelationshipType.DIRECT_CORRELATION,
        tolerance=0.0,
        description="Manifold pressure must follow throttle position"
    ),
)


STANDARD_DEPENDENCIES = (
    RuleDependency(
        parent_fault_code="P0172",  # System too rich
        child_fault_code="P0420",   # Catalyst efficiency below threshold
        influence_factor=1.4,
        description="Prolonged rich mixture overheats and damages the catalyst"
    ),
    RuleDependency(
        parent_fault_code="P0302",  # Cylinder 2 misfire
        child_fault_code="P0300",   # Random misfire
        influence_factor=1.3,
        description="A single-cylinder misfire can induce random misfires"
    ),
    RuleDependency(
        parent_fault_code="P0796",  # Pressure control solenoid C
        child_fault_code="P0218",   # Transmission over-temperature
        influence_factor=1.5,
        description="CVT slip generates excessive heat quickly"
    ),
)


def _load_entries(filepath: Path, kind: str) -> list:
    data = load_json(Path(filepath))
    if isinstance(data, dict):
        data = data.get(kind, [])
    if not isinstance(data, list):
        raise ValueError(f"{filepath}: expected a list of {kind}, got {type(data).__name__}")
    return data


def load_relationships(filepath: Path) -> List[SensorRelationshipSpec]:
    """Load a relationship catalog from JSON (a list, or {"relationships": [...]})."""
    specs = []
    for i, entry in enumerate(_load_entries(filepath, "relationships")):
        try:
            specs.append(SensorRelationshipSpec.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{filepath}: invalid relationship entry {i}: {e}") from e
    return specs


def load_dependencies(filepath: Path) -> List[RuleDependency]:
    """Load a dependency catalog from JSON (a list, or {"dependencies": [...]})."""
    deps = []
    for i, entry in enumerate(_load_entries(filepath, "dependencies")):
        try:
            deps.append(RuleDependency.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{filepath}: invalid dependency entry {i}: {e}") from e
    return deps
