"""
Example usage of the diagnostic inference core.

Streams a minute of synthetic engine data, then ranks probable causes for a
rich-mixture code together with a catalyst-efficiency code.
"""

from pathlib import Path

from diagnostic_core import (
    DiagnosticRule,
    run_diagnostic_pipeline,
)
from diagnostic_core.rule_repository import SEED_RULES
from diagnostic_core.utils import setup_logging


def build_samples():
    """60 s at 10 Hz: RPM and MAF rise together, then a fuel-trim spike."""
    samples = []
    for i in range(600):
        t = i * 100
        samples.append({"signal_id": "RPM", "value": 800.0 + i * 2.0, "timestamp": t})
        samples.append({"signal_id": "MAF", "value": 3.0 + i * 0.01, "timestamp": t})
        samples.append({"signal_id": "TPS", "value": 12.0 + (i % 10) * 0.1, "timestamp": t})
        samples.append({"signal_id": "MAP", "value": 35.0 + (i % 10) * 0.2, "timestamp": t})
        stft = -2.0 if i < 599 else -25.0
        samples.append({"signal_id": "STFT", "value": stft, "timestamp": t})
    return samples


extra_rules = [
    DiagnosticRule(
        fault_code="P0420",
        required_conditions="{'O2_DOWNSTREAM': {'switching': true}}",
        weight=0.3,
        probable_cause="Catalytic converter efficiency below threshold",
        is_root_candidate=False,
        severity_level=3
    ),
]


def main():
    """Run the diagnostic pipeline on synthetic data and print the ranking."""

    setup_logging("INFO")

    print("=" * 80)
    print("Diagnostic Core - Two-Pass Bayesian Root Cause Ranking")
    print("=" * 80)
    print()

    output_path = Path("./output/report.json")

    results = run_diagnostic_pipeline(
        build_samples(),
        active_fault_codes=["P0172", "P0420"],
        rules=list(SEED_RULES) + extra_rules,
        fault_signal_map={"P0172": "STFT"},
        output_path=output_path
    )

    metadata = results["_metadata"]
    print(f"Signals tracked: {', '.join(metadata['signals_tracked'])}")
    print(f"Samples valid: {metadata['validation_summary']['valid']}")
    print()
    print("-" * 80)

    for finding in results["findings"]:
        print(f"{finding['fault_code']}: {finding['probable_cause']}")
        print(f"  Prior: {finding['prior_probability']:.3f}")
        print(f"  Likelihood: {finding['likelihood']:.3f}")
        print(f"  Posterior: {finding['posterior_probability']*100:.1f}%")
        print(f"  Root candidate: {'Yes' if finding['is_root_candidate'] else 'No'}")
        print()

    print(f"Total probability mass: {results['total_probability_mass']:.3f}")
    print(f"Report saved to: {output_path.absolute()}")


if __name__ == "__main__":
    main()
