"""
Pipeline runner for the diagnostic inference core.

Streams a batch of raw samples into a fresh analyzer, cross-validates the
sensors and ranks probable causes for the active fault codes.
"""

from typing import List, Dict, Any, Iterable, Optional
from pathlib import Path
import logging
import warnings

try:
    from .causal_inference_engine import CausalInferenceEngine
    from .config import DiagnosticConfig
    from .consistency_validator import ConsistencyValidator
    from .data_models import DiagnosticRule, RuleDependency, SensorRelationshipSpec, SignalSample
    from .rule_repository import InMemoryRuleRepository, RuleRepository
    from .stream_analyzer import SignalStreamAnalyzer
    from .utils import save_json, validate_sample_input
except ImportError:
    from causal_inference_engine import CausalInferenceEngine
    from config import DiagnosticConfig
    from consistency_validator import ConsistencyValidator
    from data_models import DiagnosticRule, RuleDependency, SensorRelationshipSpec, SignalSample
    from rule_repository import InMemoryRuleRepository, RuleRepository
    from stream_analyzer import SignalStreamAnalyzer
    from utils import save_json, validate_sample_input


logger = logging.getLogger(__name__)


def _build_repository(rules: Optional[Any]) -> RuleRepository:
    if rules is None:
        repository = InMemoryRuleRepository()
        repository.seed_rules_if_empty()
        return repository
    if hasattr(rules, "get_rules_by_fault_code"):
        return rules
    return InMemoryRuleRepository(
        r if isinstance(r, DiagnosticRule) else DiagnosticRule.from_dict(r) for r in rules
    )


def run_diagnostic_pipeline(
    samples: Iterable[Dict[str, Any]],
    active_fault_codes: List[str],
    rules: Optional[Any] = None,
    config: Optional[DiagnosticConfig] = None,
    relationships: Optional[Iterable[SensorRelationshipSpec]] = None,
    dependencies: Optional[Iterable[RuleDependency]] = None,
    fault_signal_map: Optional[Dict[str, str]] = None,
    output_path: Optional[Path] = None,
    validate_inputs: bool = True
) -> Dict[str, Any]:
    """
    Execute the diagnostic pipeline on one vehicle's live data.

    Args:
        samples: Raw sample dictionaries ({"signal_id", "value", "timestamp"})
        active_fault_codes: Fault codes currently reported by the vehicle
        rules: A RuleRepository, or an iterable of DiagnosticRule / rule dicts.
            Defaults to an in-memory repository seeded with the standard rules.
        config: Diagnostic configuration (defaults to DiagnosticConfig())
        relationships: Sensor relationship catalog (standard catalog if None)
        dependencies: Fault dependency catalog (standard catalog if None)
        fault_signal_map: Fault code -> signal id for the anomaly bonus
        output_path: Optional JSON file to write the result to
        validate_inputs: Whether to validate raw samples before streaming

    Returns:
        DiagnosticReport as a dictionary, plus a "_metadata" block
    """
    config = config or DiagnosticConfig()
    active_fault_codes = list(active_fault_codes)
    analyzer = SignalStreamAnalyzer(config)

    validation_summary = {"total": 0, "valid": 0, "invalid": 0, "warnings": 0}

    for sample_data in samples:
        validation_summary["total"] += 1

        if validate_inputs:
            is_valid, errors, warnings_list = validate_sample_input(sample_data)
            if not is_valid:
                validation_summary["invalid"] += 1
                warnings.warn(f"Skipping invalid sample {sample_data!r}: {'; '.join(errors)}")
                continue
            validation_summary["warnings"] += len(warnings_list)
            for warning in warnings_list:
                logger.warning("Sample warning: %s", warning)

        analyzer.add_data_point(SignalSample.from_dict(sample_data))
        validation_summary["valid"] += 1

    logger.info(
        "Streamed %d/%d samples across %d signals",
        validation_summary["valid"], validation_summary["total"], len(analyzer.signal_ids())
    )

    validator = ConsistencyValidator(analyzer, relationships)
    engine = CausalInferenceEngine(
        _build_repository(rules),
        analyzer,
        validator,
        dependencies=dependencies,
        fault_signal_map=fault_signal_map,
        config=config
    )

    report = engine.analyze(active_fault_codes)

    results = report.to_dict()
    top = report.top_finding()
    results["_metadata"] = {
        "active_fault_codes": list(active_fault_codes),
        "validation_summary": validation_summary if validate_inputs else None,
        "signals_tracked": sorted(analyzer.signal_ids()),
        "top_cause": top.probable_cause if top else None,
        "config": config.to_dict()
    }

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        save_json(results, output_path)
        logger.info("Wrote diagnostic report to %s", output_path)

    return results
