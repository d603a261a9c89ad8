"""Baseline security rules for workload compliance.

Each rule is a pure predicate over a WorkloadDescriptor that returns a
RuleResult. Rules never raise for missing or malformed input: a required field
that is absent is a failure, and the reason names the field so the finding is
actionable.

Baseline rules (registration order):
 1. container_security      non-root, read-only root fs, drops ALL capabilities
 2. network_security        network policy with Ingress and Egress types
 3. resource_limits         cpu/memory limits and requests set and positive
 4. secrets_management      env vars come from secrets, never literals
 5. image_security          digest-pinned image from a trusted registry
 6. pod_security_standards  pod runs as non-root with an fsGroup
 7. rbac_compliance         named service account, token automount disabled
 8. audit_logging           audit logging enabled with a policy
 9. encryption_compliance   encryption at rest and TLS in transit
10. vulnerability_scanning  scans passed with no critical/high findings
"""

import fnmatch
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from workload_compliance.core.models import RuleResult, ScanStatus, WorkloadDescriptor
from workload_compliance.core.quantity import is_positive_quantity

CONTAINER_SECURITY = "container_security"
NETWORK_SECURITY = "network_security"
RESOURCE_LIMITS = "resource_limits"
SECRETS_MANAGEMENT = "secrets_management"
IMAGE_SECURITY = "image_security"
POD_SECURITY_STANDARDS = "pod_security_standards"
RBAC_COMPLIANCE = "rbac_compliance"
AUDIT_LOGGING = "audit_logging"
ENCRYPTION_COMPLIANCE = "encryption_compliance"
VULNERABILITY_SCANNING = "vulnerability_scanning"

# Shell-style patterns matched against the registry host of an image reference
DEFAULT_TRUSTED_REGISTRIES: tuple[str, ...] = (
    "*.ecr.amazonaws.com",
    "*.dkr.ecr.*.amazonaws.com",
    "gcr.io",
    "*.gcr.io",
    "*-docker.pkg.dev",
    "*.azurecr.io",
)

# Registry assumed by container runtimes when an image names no host
_IMPLICIT_REGISTRY = "docker.io"

_DIGEST_PATTERN = re.compile(r"@sha256:[0-9a-f]{64}$")


@runtime_checkable
class Rule(Protocol):
    """A named, stateless predicate over a workload descriptor.

    Implementations must not mutate the descriptor or any shared state, and
    must not depend on the result of another rule.
    """

    @property
    def name(self) -> str:
        """Unique rule identifier."""
        ...

    @property
    def description(self) -> str:
        """Human-readable summary of what the rule checks."""
        ...

    def evaluate(self, descriptor: WorkloadDescriptor) -> RuleResult:
        """Evaluate the rule against a descriptor.

        Args:
            descriptor: The workload under evaluation.

        Returns:
            The rule's pass/fail result with a reason.
        """
        ...


@dataclass(frozen=True)
class FunctionRule:
    """Rule backed by a plain check function.

    Attributes:
        name: Unique rule identifier.
        description: What the rule checks.
        check: Function computing the list of problems for a descriptor.
        success_reason: Reason reported when no problems are found.
    """

    name: str
    description: str
    check: Callable[[WorkloadDescriptor], list[str]]
    success_reason: str = "compliant"

    def evaluate(self, descriptor: WorkloadDescriptor) -> RuleResult:
        return _to_result(self.name, self.check(descriptor), self.success_reason)


def _to_result(rule_name: str, problems: Sequence[str], success_reason: str) -> RuleResult:
    if problems:
        return RuleResult(rule_name=rule_name, passed=False, reason="; ".join(problems))
    return RuleResult(rule_name=rule_name, passed=True, reason=success_reason)


# ---------------------------------------------------------------------------
# Check functions
# ---------------------------------------------------------------------------


def check_container_security(descriptor: WorkloadDescriptor) -> list[str]:
    """Container must run as non-root, with a read-only root fs, dropping ALL capabilities."""
    if descriptor.container is None:
        return ["container not provided"]
    context = descriptor.container.security_context
    if context is None:
        return ["container security_context not set"]

    problems: list[str] = []
    if context.run_as_non_root is not True:
        problems.append(_flag_problem("run_as_non_root", context.run_as_non_root))
    if context.read_only_root_filesystem is not True:
        problems.append(
            _flag_problem("read_only_root_filesystem", context.read_only_root_filesystem)
        )
    if context.capabilities_drop is None:
        problems.append("capabilities_drop not set")
    elif "ALL" not in {c.upper() for c in context.capabilities_drop}:
        problems.append("capabilities_drop does not include ALL")
    return problems


def check_network_security(descriptor: WorkloadDescriptor) -> list[str]:
    """A network policy must select the workload and cover both directions."""
    policy = descriptor.network_policy
    if policy is None or not policy.present:
        return ["network policy not present"]

    declared = {t.lower() for t in policy.policy_types}
    missing = [t for t in ("Ingress", "Egress") if t.lower() not in declared]
    if missing:
        return [f"network policy policy_types missing {', '.join(missing)}"]
    return []


def check_resource_limits(descriptor: WorkloadDescriptor) -> list[str]:
    """CPU and memory limits and requests must all be set to positive quantities."""
    if descriptor.container is None:
        return ["container not provided"]
    resources = descriptor.container.resources
    if resources is None:
        return ["container resources not set"]

    problems: list[str] = []
    for label, value in (
        ("cpu limit", resources.cpu_limit),
        ("memory limit", resources.memory_limit),
        ("cpu request", resources.cpu_request),
        ("memory request", resources.memory_request),
    ):
        if value is None:
            problems.append(f"{label} not set")
        elif not is_positive_quantity(value):
            problems.append(f"{label} {value!r} is not a positive quantity")
    return problems


def check_secrets_management(descriptor: WorkloadDescriptor) -> list[str]:
    """Every environment variable must be a secret reference.

    Stops at the first offending variable and names it.
    """
    if descriptor.container is None:
        return ["container not provided"]

    for env_var in descriptor.container.env or ():
        if env_var.is_literal:
            return [f"environment variable '{env_var.name}' has a hardcoded value"]
        if not env_var.is_secret_reference:
            return [f"environment variable '{env_var.name}' is not a secret reference"]
    return []


def check_pod_security_standards(descriptor: WorkloadDescriptor) -> list[str]:
    """Pod security context must enforce non-root and set an fsGroup."""
    if descriptor.pod is None:
        return ["pod not provided"]
    context = descriptor.pod.security_context
    if context is None:
        return ["pod security_context not set"]

    problems: list[str] = []
    if context.run_as_non_root is not True:
        problems.append(_flag_problem("pod run_as_non_root", context.run_as_non_root))
    if context.fs_group is None:
        problems.append("pod fs_group not set")
    return problems


def check_rbac_compliance(descriptor: WorkloadDescriptor) -> list[str]:
    """Pod must use a named service account and must not automount its token."""
    if descriptor.pod is None:
        return ["pod not provided"]

    problems: list[str] = []
    if not (descriptor.pod.service_account_name or "").strip():
        problems.append("service_account_name not set")
    automount = descriptor.pod.automount_service_account_token
    if automount is None:
        problems.append("automount_service_account_token not set (defaults to true)")
    elif automount is not False:
        problems.append("automount_service_account_token is true")
    return problems


def check_audit_logging(descriptor: WorkloadDescriptor) -> list[str]:
    """Audit logging must be enabled with an audit policy configured."""
    if descriptor.audit is None:
        return ["audit configuration not provided"]

    problems: list[str] = []
    if descriptor.audit.enabled is not True:
        problems.append(_flag_problem("audit enabled", descriptor.audit.enabled))
    if descriptor.audit.policy_configured is not True:
        problems.append("audit policy not configured")
    return problems


def check_encryption_compliance(descriptor: WorkloadDescriptor) -> list[str]:
    """Storage must be encrypted at rest and traffic encrypted in transit."""
    problems: list[str] = []
    if descriptor.storage is None:
        problems.append("storage configuration not provided")
    elif descriptor.storage.encryption_at_rest is not True:
        problems.append(_flag_problem("storage encryption_at_rest", descriptor.storage.encryption_at_rest))

    if descriptor.network is None:
        problems.append("network configuration not provided")
    elif descriptor.network.tls_in_transit is not True:
        problems.append(_flag_problem("network tls_in_transit", descriptor.network.tls_in_transit))
    return problems


def check_vulnerability_scanning(descriptor: WorkloadDescriptor) -> list[str]:
    """Scans must have passed with zero critical and zero high findings."""
    scan = descriptor.security_scan
    if scan is None:
        return ["security scan results not provided"]

    problems: list[str] = []
    if scan.status != ScanStatus.PASSED:
        status = scan.status.value if isinstance(scan.status, ScanStatus) else scan.status
        problems.append(f"security scan status is '{status}'")
    for label, count in (("critical", scan.critical_count), ("high", scan.high_count)):
        if count is None:
            problems.append(f"{label} finding count not reported")
        elif count != 0:
            problems.append(f"{count} {label} findings")
    return problems


def _flag_problem(field_name: str, value: bool | None) -> str:
    if value is None:
        return f"{field_name} not set"
    return f"{field_name} is {str(value).lower()}"


# ---------------------------------------------------------------------------
# Image security
# ---------------------------------------------------------------------------


def registry_host(image: str) -> str:
    """Return the registry host of an image reference, without port.

    Images without an explicit host ("nginx", "library/nginx") resolve to
    docker.io, the same as container runtimes do.

    Args:
        image: Image reference, e.g. "123.dkr.ecr.us-east-1.amazonaws.com/app@sha256:...".

    Returns:
        Lower-cased registry host.
    """
    name = image.split("@", 1)[0]
    first, sep, _ = name.partition("/")
    if not sep:
        return _IMPLICIT_REGISTRY
    if "." in first or ":" in first or first == "localhost":
        return first.split(":", 1)[0].lower()
    return _IMPLICIT_REGISTRY


def is_digest_pinned(image: str) -> bool:
    """True when the image reference ends in an @sha256 digest."""
    return _DIGEST_PATTERN.search(image.strip()) is not None


@dataclass(frozen=True)
class ImageSecurityRule:
    """Image must be pinned by digest and pulled from a trusted registry.

    Attributes:
        trusted_registries: Shell-style patterns matched against the registry host.
    """

    trusted_registries: tuple[str, ...] = DEFAULT_TRUSTED_REGISTRIES
    name: str = IMAGE_SECURITY
    description: str = "Container image is pinned by sha256 digest and hosted in a trusted registry"

    def is_trusted(self, host: str) -> bool:
        """Return True when the host matches a trusted registry pattern."""
        return any(
            fnmatch.fnmatchcase(host.lower(), pattern.lower()) for pattern in self.trusted_registries
        )

    def evaluate(self, descriptor: WorkloadDescriptor) -> RuleResult:
        container = descriptor.container
        if container is None:
            return _to_result(self.name, ["container not provided"], "")
        image = (container.image or "").strip()
        if not image:
            return _to_result(self.name, ["container image not set"], "")

        problems: list[str] = []
        if not is_digest_pinned(image):
            problems.append(f"image '{image}' is not pinned by sha256 digest")
        host = registry_host(image)
        if not self.is_trusted(host):
            problems.append(f"image registry '{host}' is not trusted")
        return _to_result(self.name, problems, f"image pinned by digest from trusted registry '{host}'")


# ---------------------------------------------------------------------------
# Baseline rule set
# ---------------------------------------------------------------------------


def build_baseline_rules(
    trusted_registries: Iterable[str] = DEFAULT_TRUSTED_REGISTRIES,
) -> list[Rule]:
    """Build the ten baseline rules in their canonical order.

    Args:
        trusted_registries: Registry host patterns accepted by image_security.

    Returns:
        List of Rule instances.
    """
    return [
        FunctionRule(
            name=CONTAINER_SECURITY,
            description="Container runs as non-root with a read-only root filesystem and drops ALL capabilities",
            check=check_container_security,
            success_reason="container security context is hardened",
        ),
        FunctionRule(
            name=NETWORK_SECURITY,
            description="A network policy with both Ingress and Egress types selects the workload",
            check=check_network_security,
            success_reason="network policy covers ingress and egress",
        ),
        FunctionRule(
            name=RESOURCE_LIMITS,
            description="CPU and memory limits and requests are set to positive quantities",
            check=check_resource_limits,
            success_reason="cpu and memory limits and requests are set",
        ),
        FunctionRule(
            name=SECRETS_MANAGEMENT,
            description="Environment variables are sourced from secrets, never hardcoded",
            check=check_secrets_management,
            success_reason="no hardcoded environment values",
        ),
        ImageSecurityRule(trusted_registries=tuple(trusted_registries)),
        FunctionRule(
            name=POD_SECURITY_STANDARDS,
            description="Pod security context enforces non-root and sets an fsGroup",
            check=check_pod_security_standards,
            success_reason="pod security context meets the standard",
        ),
        FunctionRule(
            name=RBAC_COMPLIANCE,
            description="Pod uses a named service account and disables token automount",
            check=check_rbac_compliance,
            success_reason="service account configured without token automount",
        ),
        FunctionRule(
            name=AUDIT_LOGGING,
            description="Audit logging is enabled with an audit policy",
            check=check_audit_logging,
            success_reason="audit logging enabled with policy",
        ),
        FunctionRule(
            name=ENCRYPTION_COMPLIANCE,
            description="Storage is encrypted at rest and traffic uses TLS in transit",
            check=check_encryption_compliance,
            success_reason="encrypted at rest and in transit",
        ),
        FunctionRule(
            name=VULNERABILITY_SCANNING,
            description="Security scans passed with no critical or high findings",
            check=check_vulnerability_scanning,
            success_reason="security scans passed with no critical or high findings",
        ),
    ]
