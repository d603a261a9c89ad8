"""Compliance engine: runs every registered rule against a workload descriptor.

The engine processes an evaluation by:
1. Running each rule exactly once, in registration order (no short-circuit)
2. Collecting one RuleResult per rule
3. Computing score, total and the verdict against the configured threshold
4. Returning a ComplianceReport stamped with the current time

The rule set is snapshotted when the engine is constructed and is never
modified afterwards, so a single engine can serve concurrent evaluations
without locking. Evaluation performs no I/O.
"""

import time
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

from workload_compliance.compliance.registry import RuleRegistry, create_baseline_registry
from workload_compliance.compliance.rules import Rule
from workload_compliance.compliance.scoring import (
    DEFAULT_THRESHOLD,
    is_passing,
    validate_threshold,
)
from workload_compliance.core.models import ComplianceReport, RuleResult, WorkloadDescriptor
from workload_compliance.observability import get_logger
from workload_compliance.settings import Settings

logger = get_logger(__name__)


class ComplianceEngine:
    """Evaluates workload descriptors against a fixed set of rules.

    Args:
        registry: Rules to evaluate. Defaults to an empty registry.
        threshold: Minimum passing ratio for an overall pass.
    """

    def __init__(
        self,
        registry: RuleRegistry | None = None,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        """Initialize the ComplianceEngine.

        Args:
            registry: Registry whose rules are snapshotted for this engine.
            threshold: Minimum passing ratio in [0, 1].

        Raises:
            InvalidThresholdError: If the threshold is outside [0, 1].
        """
        self._threshold = validate_threshold(threshold)
        self._rules: tuple[Rule, ...] = registry.rules() if registry is not None else ()

        logger.info(
            "Compliance engine initialized",
            rules=len(self._rules),
            threshold=self._threshold,
        )

    @property
    def rules(self) -> tuple[Rule, ...]:
        """Rules evaluated by this engine, in order."""
        return self._rules

    @property
    def threshold(self) -> float:
        """Minimum passing ratio."""
        return self._threshold

    def evaluate(self, descriptor: WorkloadDescriptor) -> ComplianceReport:
        """Evaluate a descriptor against every rule.

        Args:
            descriptor: The workload to evaluate. Never modified.

        Returns:
            ComplianceReport with one result per rule in registration order.
        """
        evaluation_id = uuid.uuid4()
        start_time = time.monotonic()

        results = tuple(self._run_rule(rule, descriptor, evaluation_id) for rule in self._rules)
        score = sum(1 for r in results if r.passed)
        total = len(results)
        passed = is_passing(score, total, self._threshold)
        duration_ms = (time.monotonic() - start_time) * 1000

        report = ComplianceReport(
            results=results,
            score=score,
            total=total,
            passed=passed,
            threshold=self._threshold,
            generated_at=datetime.now(UTC),
            evaluation_id=evaluation_id,
            evaluation_duration_ms=round(duration_ms, 3),
        )

        logger.info(
            "Compliance evaluation complete",
            evaluation_id=str(evaluation_id),
            score=score,
            total=total,
            passed=passed,
            duration_ms=report.evaluation_duration_ms,
        )
        return report

    def evaluate_many(self, descriptors: Iterable[WorkloadDescriptor]) -> list[ComplianceReport]:
        """Evaluate several descriptors independently.

        Args:
            descriptors: Workloads to evaluate.

        Returns:
            One report per descriptor, in input order.
        """
        return [self.evaluate(descriptor) for descriptor in descriptors]

    @staticmethod
    def _run_rule(
        rule: Rule,
        descriptor: WorkloadDescriptor,
        evaluation_id: uuid.UUID,
    ) -> RuleResult:
        """Run one rule, converting an unexpected exception into a failing result.

        Baseline rules never raise; a custom rule that does still yields exactly
        one result so the report stays complete.
        """
        try:
            return rule.evaluate(descriptor)
        except Exception as exc:
            logger.exception(
                "Rule raised during evaluation",
                evaluation_id=str(evaluation_id),
                rule=rule.name,
            )
            return RuleResult(
                rule_name=rule.name,
                passed=False,
                reason=f"rule raised {type(exc).__name__}: {exc}",
            )


def create_default_engine(settings: Settings | None = None) -> ComplianceEngine:
    """Create an engine with the ten baseline rules.

    Args:
        settings: Source of the threshold and trusted registries. Defaults to
            settings read from the environment.

    Returns:
        Configured ComplianceEngine instance.
    """
    settings = settings or Settings()
    registry = create_baseline_registry(settings.trusted_registries)
    return ComplianceEngine(registry=registry, threshold=settings.compliance_threshold)
