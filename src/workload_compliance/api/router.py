"""API router for the workload compliance engine.

All endpoints are registered here and included in main.py under the /api/v1
prefix. Routes are thin: evaluation logic lives in the compliance package.

Endpoints:
- POST  /compliance/evaluate           evaluate a descriptor document
- POST  /compliance/evaluate/manifest  evaluate Kubernetes manifests
- GET   /compliance/rules              list registered rules
- POST  /compliance/admission          validating admission webhook
- GET   /health                        liveness check
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from workload_compliance.api.dependencies import get_compliance_engine
from workload_compliance.api.routes.compliance import compliance_router
from workload_compliance.compliance.engine import ComplianceEngine

router = APIRouter()
router.include_router(compliance_router)


class HealthResponse(BaseModel):
    status: str
    rules: int


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health(
    engine: Annotated[ComplianceEngine, Depends(get_compliance_engine)],
) -> HealthResponse:
    """Report liveness and the number of loaded rules."""
    return HealthResponse(status="ok", rules=len(engine.rules))
