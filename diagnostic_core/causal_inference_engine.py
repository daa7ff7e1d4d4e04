"""
Causal Inference Engine

Ranks probable root causes for a set of active fault codes with a
simplified Bayesian model (posterior ∝ prior × likelihood) and adjusts
for known causal dependencies between faults.

Each analysis runs exactly two passes:
1. Unconditioned: prior = rule weight.
2. Conditioned: fault codes whose pass-1 posterior exceeds the
   confirmation threshold become confirmed parents, and every dependency
   parent -> child multiplies the child's rule priors by its influence
   factor (clamped to [0, 1]).

Likelihood comes from live evidence: a bonus when the fault code's signal
is anomalous, and a penalty per inconsistent sensor relationship, floored
so no hypothesis is ever eliminated outright.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
import asyncio
import inspect
import logging

try:
    from .catalogs import STANDARD_DEPENDENCIES
    from .config import DiagnosticConfig
    from .consistency_validator import ConsistencyValidator
    from .data_models import DiagnosticFinding, DiagnosticReport, DiagnosticRule, RuleDependency
    from .rule_repository import RuleRepository
    from .stream_analyzer import SignalStreamAnalyzer
    from .utils import clamp, normalize_probabilities
except ImportError:
    from catalogs import STANDARD_DEPENDENCIES
    from config import DiagnosticConfig
    from consistency_validator import ConsistencyValidator
    from data_models import DiagnosticFinding, DiagnosticReport, DiagnosticRule, RuleDependency
    from rule_repository import RuleRepository
    from stream_analyzer import SignalStreamAnalyzer
    from utils import clamp, normalize_probabilities


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _FindingDraft:
    fault_code: str
    probable_cause: str
    prior: float
    likelihood: float
    unnormalized_posterior: float
    severity_level: int
    is_root_candidate: bool


class CausalInferenceEngine:
    """
    Two-pass Bayesian ranking of probable causes for active fault codes.

    Stateless between calls: every analysis is a pure function of the
    fault codes, the repository's rules and the current analyzer/validator
    state.
    """

    def __init__(
        self,
        rule_repository: RuleRepository,
        analyzer: SignalStreamAnalyzer,
        validator: ConsistencyValidator,
        dependencies: Optional[Iterable[RuleDependency]] = None,
        fault_signal_map: Optional[Dict[str, str]] = None,
        config: Optional[DiagnosticConfig] = None
    ):
        """
        Args:
            rule_repository: Source of candidate rules per fault code
            analyzer: Live signal statistics
            validator: Sensor relationship checks over the same analyzer
            dependencies: Parent -> child influence catalog (standard catalog if None)
            fault_signal_map: Fault code -> signal id used for the anomaly
                bonus; unmapped codes use the fault code itself as signal id
            config: Thresholds and likelihood adjustments (analyzer's config if None)
        """
        self.rule_repository = rule_repository
        self.analyzer = analyzer
        self.validator = validator
        if dependencies is None:
            dependencies = STANDARD_DEPENDENCIES
        self.dependencies: Tuple[RuleDependency, ...] = tuple(dependencies)
        self.fault_signal_map: Dict[str, str] = dict(fault_signal_map or {})
        self.config = (config or analyzer.config).validate()

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def signal_for(self, fault_code: str) -> str:
        return self.fault_signal_map.get(fault_code, fault_code)

    def adjusted_prior(self, rule: DiagnosticRule, confirmed_parents: Set[str]) -> float:
        """Rule weight amplified by every dependency from a confirmed parent, clamped to [0, 1]."""
        prior = rule.weight
        for dep in self.dependencies:
            if dep.child_fault_code == rule.fault_code and dep.parent_fault_code in confirmed_parents:
                prior *= dep.influence_factor
                logger.debug(
                    "Prior of %s amplified x%.2f by confirmed parent %s",
                    rule.fault_code, dep.influence_factor, dep.parent_fault_code
                )
        return clamp(prior, 0.0, 1.0)

    def likelihood_for(self, fault_code: str, inconsistency_count: int) -> float:
        """
        Evidence multiplier for a fault code.

        1.0, plus the anomaly bonus when the code's signal is anomalous,
        minus the penalty per inconsistent relationship, floored.
        """
        likelihood = 1.0
        anomaly = self.analyzer.analyze_anomaly(self.signal_for(fault_code))
        if anomaly is not None and anomaly.is_anomalous:
            likelihood += self.config.anomaly_likelihood_bonus
        likelihood -= inconsistency_count * self.config.inconsistency_penalty
        return max(likelihood, self.config.likelihood_floor)

    def confirmed_parents(self, findings: Sequence[DiagnosticFinding]) -> Set[str]:
        threshold = self.config.confirmation_threshold
        return {f.fault_code for f in findings if f.posterior_probability > threshold}

    @staticmethod
    def rank_findings(findings: Sequence[DiagnosticFinding]) -> List[DiagnosticFinding]:
        """Descending posterior; ties keep draft order."""
        return sorted(findings, key=lambda f: f.posterior_probability, reverse=True)

    def _calculate_probabilities(
        self,
        rules_by_code: Sequence[Tuple[str, List[DiagnosticRule]]],
        confirmed_parents: Set[str]
    ) -> List[DiagnosticFinding]:
        """One complete pass: draft every rule, then normalize globally."""
        inconsistency_count = len(self.validator.inconsistencies())

        drafts: List[_FindingDraft] = []
        for fault_code, rules in rules_by_code:
            likelihood = self.likelihood_for(fault_code, inconsistency_count)
            for rule in rules:
                prior = self.adjusted_prior(rule, confirmed_parents)
                drafts.append(_FindingDraft(
                    fault_code=rule.fault_code,
                    probable_cause=rule.probable_cause,
                    prior=prior,
                    likelihood=likelihood,
                    unnormalized_posterior=prior * likelihood,
                    severity_level=rule.severity_level,
                    is_root_candidate=rule.is_root_candidate
                ))

        posteriors = normalize_probabilities([d.unnormalized_posterior for d in drafts])

        findings = [
            DiagnosticFinding(
                fault_code=d.fault_code,
                probable_cause=d.probable_cause,
                prior_probability=d.prior,
                likelihood=d.likelihood,
                posterior_probability=posterior,
                severity_level=d.severity_level,
                is_root_candidate=d.is_root_candidate
            )
            for d, posterior in zip(drafts, posteriors)
        ]
        return self.rank_findings(findings)

    def _build_report(
        self,
        fault_codes: Sequence[str],
        findings: List[DiagnosticFinding]
    ) -> DiagnosticReport:
        anomaly_results = []
        for code in fault_codes:
            result = self.analyzer.analyze_anomaly(self.signal_for(code))
            if result is not None:
                anomaly_results.append(result)

        return DiagnosticReport(
            findings=findings,
            anomaly_results=anomaly_results,
            consistency_results=self.validator.validate_all(),
            total_probability_mass=float(sum(f.prior_probability * f.likelihood for f in findings)),
            model_version=self.config.model_version
        )

    @staticmethod
    def _unique_codes(active_fault_codes: Iterable[str]) -> List[str]:
        # A code reported twice must not be drafted twice
        return list(dict.fromkeys(active_fault_codes))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def _fetch_rules(self, fault_codes: Sequence[str]) -> List[Tuple[str, List[DiagnosticRule]]]:
        fetched = []
        for code in fault_codes:
            rules = self.rule_repository.get_rules_by_fault_code(code)
            if inspect.isawaitable(rules):
                # Close the coroutine so it is not reported as never awaited
                if inspect.iscoroutine(rules):
                    rules.close()
                raise TypeError(
                    "Rule repository returned an awaitable; use analyze_async() instead"
                )
            fetched.append((code, list(rules)))
        return fetched

    def analyze(self, active_fault_codes: Iterable[str]) -> DiagnosticReport:
        """
        Rank probable causes for the active fault codes.

        Args:
            active_fault_codes: Fault codes currently reported (e.g. ["P0302"])

        Returns:
            DiagnosticReport with findings sorted by descending posterior.
            Repository errors propagate unchanged.
        """
        codes = self._unique_codes(active_fault_codes)

        initial = self._calculate_probabilities(self._fetch_rules(codes), set())
        parents = self.confirmed_parents(initial)
        final = self._calculate_probabilities(self._fetch_rules(codes), parents)

        report = self._build_report(codes, final)
        logger.info(
            "Analyzed %d fault codes: %d findings, confirmed parents=%s, mass=%.3f",
            len(codes), len(final), sorted(parents), report.total_probability_mass
        )
        return report

    async def _fetch_rules_async(
        self,
        fault_codes: Sequence[str]
    ) -> List[Tuple[str, List[DiagnosticRule]]]:
        async def fetch(code: str) -> Tuple[str, List[DiagnosticRule]]:
            rules = self.rule_repository.get_rules_by_fault_code(code)
            if inspect.isawaitable(rules):
                rules = await rules
            return code, list(rules)

        futures = [asyncio.ensure_future(fetch(code)) for code in fault_codes]
        try:
            # gather keeps argument order, so drafts stay in fault-code order
            return list(await asyncio.gather(*futures))
        except BaseException:
            # No lookup may outlive a failed or cancelled pass
            for future in futures:
                if not future.done():
                    future.cancel()
            await asyncio.gather(*futures, return_exceptions=True)
            raise

    async def analyze_async(self, active_fault_codes: Iterable[str]) -> DiagnosticReport:
        """
        Same as analyze(), issuing each pass's repository lookups concurrently.

        Nothing is published until both passes finish, so a cancelled
        analysis leaves no partial report behind.
        """
        codes = self._unique_codes(active_fault_codes)

        initial = self._calculate_probabilities(await self._fetch_rules_async(codes), set())
        parents = self.confirmed_parents(initial)
        final = self._calculate_probabilities(await self._fetch_rules_async(codes), parents)

        report = self._build_report(codes, final)
        logger.info(
            "Analyzed %d fault codes (async): %d findings, confirmed parents=%s, mass=%.3f",
            len(codes), len(final), sorted(parents), report.total_probability_mass
        )
        return report
