"""
Diagnostic Core: real-time diagnostic inference for vehicle fault codes.

Rolling sensor statistics, cross-sensor consistency checks and a two-pass
Bayesian ranking of probable root causes.
"""

__version__ = "1.0.0"

from .config import DiagnosticConfig, load_config
from .data_models import (
    AnomalyResult,
    ConsistencyResult,
    DiagnosticFinding,
    DiagnosticReport,
    DiagnosticRule,
    RelationshipType,
    RuleDependency,
    SensorRelationshipSpec,
    SignalSample,
)
from .sample_buffer import BoundedSampleBuffer
from .stream_analyzer import SignalStreamAnalyzer
from .consistency_validator import ConsistencyValidator
from .causal_inference_engine import CausalInferenceEngine
from .rule_repository import InMemoryRuleRepository, RuleRepository
from .catalogs import STANDARD_DEPENDENCIES, STANDARD_RELATIONSHIPS
from .pipeline_runner import run_diagnostic_pipeline

__all__ = [
    "DiagnosticConfig",
    "load_config",
    "AnomalyResult",
    "ConsistencyResult",
    "DiagnosticFinding",
    "DiagnosticReport",
    "DiagnosticRule",
    "RelationshipType",
    "RuleDependency",
    "SensorRelationshipSpec",
    "SignalSample",
    "BoundedSampleBuffer",
    "SignalStreamAnalyzer",
    "ConsistencyValidator",
    "CausalInferenceEngine",
    "InMemoryRuleRepository",
    "RuleRepository",
    "STANDARD_DEPENDENCIES",
    "STANDARD_RELATIONSHIPS",
    "run_diagnostic_pipeline",
]
