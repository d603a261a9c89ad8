"""Pydantic request and response schemas for the compliance API.

All API inputs and outputs use Pydantic models. Descriptor request bodies use
the schemas in workload_compliance.core.schemas.

Resources:
- ComplianceReport: evaluation output
- Rule: registered rule listing
- AdmissionReview: Kubernetes validating admission webhook envelope
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from workload_compliance.compliance.rules import Rule
from workload_compliance.core.models import ComplianceReport


# ---------------------------------------------------------------------------
# Report schemas
# ---------------------------------------------------------------------------


class RuleResultSchema(BaseModel):
    """Schema for a single rule result."""

    rule: str = Field(description="Rule name")
    passed: bool
    reason: str


class ComplianceReportResponse(BaseModel):
    """Response schema for POST /compliance/evaluate."""

    evaluation_id: str
    generated_at: datetime
    passed: bool = Field(description="Whether score / total meets the threshold")
    score: int = Field(description="Number of passing rules")
    total: int = Field(description="Number of evaluated rules")
    ratio: float
    threshold: float
    evaluation_duration_ms: float
    results: list[RuleResultSchema] = Field(description="Results in rule registration order")

    @classmethod
    def from_report(cls, report: ComplianceReport) -> "ComplianceReportResponse":
        """Build the response from an engine report."""
        return cls(
            evaluation_id=str(report.evaluation_id),
            generated_at=report.generated_at,
            passed=report.passed,
            score=report.score,
            total=report.total,
            ratio=report.ratio,
            threshold=report.threshold,
            evaluation_duration_ms=report.evaluation_duration_ms,
            results=[
                RuleResultSchema(rule=r.rule_name, passed=r.passed, reason=r.reason)
                for r in report.results
            ],
        )


class RuleInfo(BaseModel):
    """Schema for a registered rule."""

    name: str
    description: str

    @classmethod
    def from_rule(cls, rule: Rule) -> "RuleInfo":
        return cls(name=rule.name, description=rule.description)


class RuleListResponse(BaseModel):
    """Response schema for GET /compliance/rules."""

    threshold: float
    rules: list[RuleInfo]


# ---------------------------------------------------------------------------
# AdmissionReview schemas (admission.k8s.io/v1)
# ---------------------------------------------------------------------------


class AdmissionRequest(BaseModel):
    """The request half of an AdmissionReview. Only the fields used are modelled."""

    model_config = ConfigDict(extra="allow")

    uid: str
    namespace: str | None = None
    object: dict[str, Any] | None = None


class AdmissionReviewRequest(BaseModel):
    """AdmissionReview sent by the Kubernetes API server."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    request: AdmissionRequest


class AdmissionStatus(BaseModel):
    message: str


class AdmissionResponse(BaseModel):
    uid: str
    allowed: bool
    status: AdmissionStatus | None = None
    warnings: list[str] | None = None


class AdmissionReviewResponse(BaseModel):
    """AdmissionReview returned to the Kubernetes API server."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    response: AdmissionResponse
