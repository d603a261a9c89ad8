"""FastAPI dependency providers.

Shared objects are created once in main.create_app and stored on app.state;
these providers hand them to route handlers and are the seams tests override.
"""

from fastapi import Request

from workload_compliance.compliance.engine import ComplianceEngine
from workload_compliance.core.models import WorkloadDescriptor
from workload_compliance.settings import Settings


def get_compliance_engine(request: Request) -> ComplianceEngine:
    """Return the process-wide ComplianceEngine."""
    return request.app.state.engine


def get_settings(request: Request) -> Settings:
    """Return the application settings."""
    return request.app.state.settings


def get_admission_context(request: Request) -> WorkloadDescriptor:
    """Return the cluster-level descriptor sections used for admission reviews."""
    return request.app.state.admission_context
