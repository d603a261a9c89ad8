"""Data model for workload compliance evaluation.

A WorkloadDescriptor is the structured snapshot of a deployable unit's
security-relevant configuration. Every section is optional: an absent section
means "not provided", and each rule decides whether that is a failure for the
property it checks.

All types are frozen dataclasses whose collections are tuples or frozensets,
so descriptors and reports can be shared across threads without copying.

Types defined:
- ContainerSpec and its parts (security context, resources, env bindings)
- PodSpec, NetworkPolicySpec, AuditConfig, StorageConfig, NetworkConfig
- SecurityScan with the ScanStatus enum
- WorkloadDescriptor
- RuleResult and ComplianceReport
"""

import enum
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime

Quantity = str | int | float


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContainerSecurityContext:
    """Container-level security context flags.

    Attributes:
        run_as_non_root: Whether the container must run as a non-root user.
        read_only_root_filesystem: Whether the root filesystem is read-only.
        capabilities_drop: Linux capabilities dropped from the container.
    """

    run_as_non_root: bool | None = None
    read_only_root_filesystem: bool | None = None
    capabilities_drop: frozenset[str] | None = None


@dataclass(frozen=True)
class ResourceRequirements:
    """CPU and memory limits and requests, as Kubernetes quantities."""

    cpu_limit: Quantity | None = None
    memory_limit: Quantity | None = None
    cpu_request: Quantity | None = None
    memory_request: Quantity | None = None


@dataclass(frozen=True)
class SecretKeyRef:
    """Reference to a key inside a secret."""

    name: str
    key: str | None = None


@dataclass(frozen=True)
class EnvVar:
    """An environment variable binding.

    Exactly one of value or secret_ref is normally set. A binding with neither
    (a ConfigMap or downward-API reference, for example) is neither a literal
    nor a secret.

    Attributes:
        name: Environment variable name.
        value: Literal (hardcoded) value.
        secret_ref: Secret the value is read from.
    """

    name: str
    value: str | None = None
    secret_ref: SecretKeyRef | None = None

    @property
    def is_literal(self) -> bool:
        """True when the variable carries a hardcoded value."""
        return self.value is not None

    @property
    def is_secret_reference(self) -> bool:
        """True when the variable is sourced from a secret and carries no literal."""
        return self.secret_ref is not None and self.value is None


@dataclass(frozen=True)
class ContainerSpec:
    """Security-relevant configuration of a single container."""

    security_context: ContainerSecurityContext | None = None
    resources: ResourceRequirements | None = None
    image: str | None = None
    env: tuple[EnvVar, ...] | None = None


# ---------------------------------------------------------------------------
# Pod and cluster-level configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PodSecurityContext:
    """Pod-level security context."""

    run_as_non_root: bool | None = None
    fs_group: int | None = None


@dataclass(frozen=True)
class PodSpec:
    """Pod identity and security settings.

    Attributes:
        security_context: Pod-level security context.
        service_account_name: Service account the pod runs as.
        automount_service_account_token: Whether the API token is mounted.
    """

    security_context: PodSecurityContext | None = None
    service_account_name: str | None = None
    automount_service_account_token: bool | None = None


@dataclass(frozen=True)
class NetworkPolicySpec:
    """Network policy coverage of the workload.

    Attributes:
        present: Whether at least one network policy selects the workload.
        policy_types: Effective policy types, e.g. {"Ingress", "Egress"}.
    """

    present: bool = False
    policy_types: frozenset[str] = frozenset()


@dataclass(frozen=True)
class AuditConfig:
    """Cluster audit logging configuration."""

    enabled: bool | None = None
    policy_configured: bool | None = None


@dataclass(frozen=True)
class StorageConfig:
    """Storage encryption configuration."""

    encryption_at_rest: bool | None = None


@dataclass(frozen=True)
class NetworkConfig:
    """Transport security configuration."""

    tls_in_transit: bool | None = None


# ---------------------------------------------------------------------------
# Security scan results
# ---------------------------------------------------------------------------


class ScanStatus(str, enum.Enum):
    """Outcome reported by the external scanners."""

    PASSED = "passed"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SecurityScan:
    """Aggregated findings from SAST, DAST, container and dependency scanners.

    Attributes:
        status: Overall scan status.
        critical_count: Number of critical findings.
        high_count: Number of high-severity findings.
        sources: Names of the reports the counts were derived from.
    """

    status: ScanStatus = ScanStatus.UNKNOWN
    critical_count: int | None = None
    high_count: int | None = None
    sources: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkloadDescriptor:
    """The subject of a compliance evaluation.

    Built fresh by the caller for each evaluation; carries no identity.
    """

    container: ContainerSpec | None = None
    pod: PodSpec | None = None
    network_policy: NetworkPolicySpec | None = None
    audit: AuditConfig | None = None
    storage: StorageConfig | None = None
    network: NetworkConfig | None = None
    security_scan: SecurityScan | None = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleResult:
    """Outcome of a single rule against a single descriptor.

    Attributes:
        rule_name: Name of the rule that produced this result.
        passed: Whether the descriptor satisfied the rule.
        reason: Human-readable explanation; on failure it names the offending field.
    """

    rule_name: str
    passed: bool
    reason: str = ""


@dataclass(frozen=True)
class ComplianceReport:
    """Result of evaluating every registered rule against a descriptor.

    Attributes:
        results: One RuleResult per rule, in registration order.
        score: Number of passing rules.
        total: Number of evaluated rules.
        passed: Whether score / total meets the threshold.
        threshold: Threshold the verdict was computed against.
        generated_at: When the report was produced (UTC).
        evaluation_id: Unique ID for this evaluation.
        evaluation_duration_ms: Wall-clock evaluation time.
    """

    results: tuple[RuleResult, ...]
    score: int
    total: int
    passed: bool
    threshold: float
    generated_at: datetime
    evaluation_id: uuid.UUID = field(default_factory=uuid.uuid4)
    evaluation_duration_ms: float = 0.0

    @property
    def ratio(self) -> float:
        """Passing ratio; 1.0 for a report with no rules."""
        if self.total == 0:
            return 1.0
        return self.score / self.total

    @property
    def failed_results(self) -> tuple[RuleResult, ...]:
        """Failing results, in registration order."""
        return tuple(r for r in self.results if not r.passed)

    def result_for(self, rule_name: str) -> RuleResult | None:
        """Return the result for a rule name, or None if it was not evaluated."""
        return next((r for r in self.results if r.rule_name == rule_name), None)


def merge_descriptors(base: WorkloadDescriptor, overlay: WorkloadDescriptor) -> WorkloadDescriptor:
    """Combine two descriptors section by section.

    Sections set on the overlay replace those of the base; sections the
    overlay leaves as None are taken from the base. Neither input is modified.

    Args:
        base: Descriptor providing default sections.
        overlay: Descriptor whose non-empty sections take precedence.

    Returns:
        A new WorkloadDescriptor.
    """
    return WorkloadDescriptor(
        **{
            f.name: getattr(overlay, f.name) if getattr(overlay, f.name) is not None else getattr(base, f.name)
            for f in fields(WorkloadDescriptor)
        }
    )
