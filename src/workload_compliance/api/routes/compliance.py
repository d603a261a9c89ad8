"""Compliance API routes.

FastAPI endpoints for the compliance engine:
- POST /api/v1/compliance/evaluate           evaluate a descriptor document
- POST /api/v1/compliance/evaluate/manifest  evaluate Kubernetes manifests
- GET  /api/v1/compliance/rules              list registered rules
- POST /api/v1/compliance/admission          validating admission webhook

Routes are thin: evaluation lives in ComplianceEngine, translation in the
ingest package.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from workload_compliance.api.dependencies import (
    get_admission_context,
    get_compliance_engine,
    get_settings,
)
from workload_compliance.api.schemas import (
    AdmissionResponse,
    AdmissionReviewRequest,
    AdmissionReviewResponse,
    AdmissionStatus,
    ComplianceReportResponse,
    RuleInfo,
    RuleListResponse,
)
from workload_compliance.compliance.engine import ComplianceEngine
from workload_compliance.core.models import ComplianceReport, WorkloadDescriptor, merge_descriptors
from workload_compliance.core.schemas import WorkloadDescriptorSchema
from workload_compliance.errors import ManifestError
from workload_compliance.ingest.kubernetes import descriptor_from_documents, descriptor_from_manifest
from workload_compliance.observability import get_logger
from workload_compliance.settings import Settings

logger = get_logger(__name__)

compliance_router = APIRouter(prefix="/compliance", tags=["compliance"])


class ManifestEvaluateRequest(BaseModel):
    """Request body for POST /compliance/evaluate/manifest."""

    documents: list[dict[str, Any]] = Field(
        description="Workload manifest followed by any NetworkPolicy manifests",
        min_length=1,
    )
    container_name: str | None = Field(
        default=None,
        description="Container to evaluate (defaults to the first container)",
    )
    context: WorkloadDescriptorSchema | None = Field(
        default=None,
        description="Descriptor sections that override those derived from the manifests",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@compliance_router.post(
    "/evaluate",
    response_model=ComplianceReportResponse,
    summary="Evaluate a workload descriptor",
)
async def evaluate_descriptor(
    request: WorkloadDescriptorSchema,
    engine: Annotated[ComplianceEngine, Depends(get_compliance_engine)],
) -> ComplianceReportResponse:
    """Evaluate a descriptor against every registered rule.

    Args:
        request: Descriptor document.
        engine: Injected ComplianceEngine.

    Returns:
        The compliance report.
    """
    report = engine.evaluate(request.to_descriptor())
    return ComplianceReportResponse.from_report(report)


@compliance_router.post(
    "/evaluate/manifest",
    response_model=ComplianceReportResponse,
    summary="Evaluate Kubernetes manifests",
)
async def evaluate_manifest(
    request: ManifestEvaluateRequest,
    engine: Annotated[ComplianceEngine, Depends(get_compliance_engine)],
) -> ComplianceReportResponse:
    """Translate manifests into a descriptor and evaluate it.

    Args:
        request: Manifest documents and optional context overrides.
        engine: Injected ComplianceEngine.

    Returns:
        The compliance report.

    Raises:
        HTTPException 422: If the manifests cannot be translated.
    """
    try:
        descriptor = descriptor_from_documents(request.documents, request.container_name)
    except ManifestError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if request.context is not None:
        descriptor = merge_descriptors(descriptor, request.context.to_descriptor())

    report = engine.evaluate(descriptor)
    return ComplianceReportResponse.from_report(report)


@compliance_router.get(
    "/rules",
    response_model=RuleListResponse,
    summary="List registered rules",
)
async def list_rules(
    engine: Annotated[ComplianceEngine, Depends(get_compliance_engine)],
) -> RuleListResponse:
    """Return the rules evaluated by this service, in evaluation order."""
    return RuleListResponse(
        threshold=engine.threshold,
        rules=[RuleInfo.from_rule(rule) for rule in engine.rules],
    )


@compliance_router.post(
    "/admission",
    response_model=AdmissionReviewResponse,
    response_model_exclude_none=True,
    summary="Validating admission webhook",
)
async def admission_review(
    review: AdmissionReviewRequest,
    engine: Annotated[ComplianceEngine, Depends(get_compliance_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
    context: Annotated[WorkloadDescriptor, Depends(get_admission_context)],
) -> AdmissionReviewResponse:
    """Admit or deny a workload based on its compliance report.

    Objects that are not workloads (or carry no object, such as DELETE
    requests) are allowed with a warning. When enforcement is disabled every
    workload is allowed and failing rules are returned as warnings.

    Args:
        review: AdmissionReview from the API server.
        engine: Injected ComplianceEngine.
        settings: Application settings.
        context: Cluster-level descriptor sections.

    Returns:
        AdmissionReview response echoing the request UID.
    """
    uid = review.request.uid
    try:
        descriptor = descriptor_from_manifest(
            {"kind": "AdmissionReview", "request": review.request.model_dump()}
        )
    except ManifestError as exc:
        logger.info("Admission request not evaluated", uid=uid, reason=str(exc))
        return AdmissionReviewResponse(
            api_version=review.api_version,
            response=AdmissionResponse(uid=uid, allowed=True, warnings=[f"not evaluated: {exc}"]),
        )

    report = engine.evaluate(merge_descriptors(descriptor, context))
    allowed = report.passed or not settings.admission_enforce
    warnings = [f"{r.rule_name}: {r.reason}" for r in report.failed_results]

    logger.info(
        "Admission review evaluated",
        uid=uid,
        namespace=review.request.namespace,
        allowed=allowed,
        score=report.score,
        total=report.total,
    )
    return AdmissionReviewResponse(
        api_version=review.api_version,
        response=AdmissionResponse(
            uid=uid,
            allowed=allowed,
            status=None if report.passed else AdmissionStatus(message=_denial_message(report)),
            warnings=warnings or None,
        ),
    )


def _denial_message(report: ComplianceReport) -> str:
    failing = ", ".join(r.rule_name for r in report.failed_results)
    return (
        f"compliance score {report.score}/{report.total} is below threshold "
        f"{report.threshold:.0%}; failing rules: {failing}"
    )
