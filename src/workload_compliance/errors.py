"""Exception hierarchy for the workload compliance engine.

Two families of errors exist:

- ConfigurationError (DuplicateRuleError, InvalidThresholdError) is raised
  while a registry or engine is being assembled. It is fatal to setup and is
  never raised during evaluation.
- IngestError (ManifestError, ScanReportError) belongs to the adapters that
  translate external artifacts into descriptors. The core engine never raises
  it.

Missing or malformed descriptor data is not an error at all: it surfaces as a
failing RuleResult with an explanatory reason.
"""


class ComplianceEngineError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ComplianceEngineError):
    """Raised when a registry or engine is configured incorrectly."""


class DuplicateRuleError(ConfigurationError):
    """Raised when a rule name is registered twice.

    Attributes:
        rule_name: The name that was already present in the registry.
    """

    def __init__(self, rule_name: str) -> None:
        self.rule_name = rule_name
        super().__init__(f"Rule '{rule_name}' is already registered")


class InvalidThresholdError(ConfigurationError):
    """Raised when a compliance threshold falls outside [0, 1].

    Attributes:
        threshold: The rejected value.
    """

    def __init__(self, threshold: object) -> None:
        self.threshold = threshold
        super().__init__(f"Compliance threshold must be a number in [0, 1], got {threshold!r}")


class IngestError(ComplianceEngineError):
    """Raised when an external artifact cannot be translated into descriptor fields."""


class ManifestError(IngestError):
    """Raised for unreadable or unsupported Kubernetes manifests."""


class ScanReportError(IngestError):
    """Raised for malformed scanner reports (Trivy, SARIF, ZAP, Dependency-Check)."""
