"""Pydantic schemas for workload descriptor documents.

Descriptor documents arrive as JSON request bodies, as --descriptor and
--context files on the CLI, and as the admission webhook's cluster context.
All of them are validated here and converted into the immutable dataclasses
of workload_compliance.core.models. Unknown fields are rejected so typos
surface as validation errors instead of silently failing rules.
"""

from pydantic import BaseModel, ConfigDict, Field

from workload_compliance.core.models import (
    AuditConfig,
    ContainerSecurityContext,
    ContainerSpec,
    EnvVar,
    NetworkConfig,
    NetworkPolicySpec,
    PodSecurityContext,
    PodSpec,
    ResourceRequirements,
    ScanStatus,
    SecretKeyRef,
    SecurityScan,
    StorageConfig,
    WorkloadDescriptor,
)


class _StrictModel(BaseModel):
    """Base for input schemas: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Descriptor schemas
# ---------------------------------------------------------------------------


class ContainerSecurityContextSchema(_StrictModel):
    run_as_non_root: bool | None = None
    read_only_root_filesystem: bool | None = None
    capabilities_drop: list[str] | None = Field(
        default=None,
        description="Dropped Linux capabilities, e.g. ['ALL']",
    )


class ResourceRequirementsSchema(_StrictModel):
    cpu_limit: str | int | float | None = Field(default=None, description="Kubernetes quantity, e.g. '500m'")
    memory_limit: str | int | float | None = Field(default=None, description="Kubernetes quantity, e.g. '256Mi'")
    cpu_request: str | int | float | None = None
    memory_request: str | int | float | None = None


class SecretKeyRefSchema(_StrictModel):
    name: str = Field(min_length=1)
    key: str | None = None


class EnvVarSchema(_StrictModel):
    name: str = Field(min_length=1)
    value: str | None = Field(default=None, description="Literal value. Fails secrets_management.")
    secret_ref: SecretKeyRefSchema | None = None


class ContainerSchema(_StrictModel):
    security_context: ContainerSecurityContextSchema | None = None
    resources: ResourceRequirementsSchema | None = None
    image: str | None = None
    env: list[EnvVarSchema] | None = None


class PodSecurityContextSchema(_StrictModel):
    run_as_non_root: bool | None = None
    fs_group: int | None = None


class PodSchema(_StrictModel):
    security_context: PodSecurityContextSchema | None = None
    service_account_name: str | None = None
    automount_service_account_token: bool | None = None


class NetworkPolicySchema(_StrictModel):
    present: bool = False
    policy_types: list[str] = Field(default_factory=list, description="e.g. ['Ingress', 'Egress']")


class AuditSchema(_StrictModel):
    enabled: bool | None = None
    policy_configured: bool | None = None


class StorageSchema(_StrictModel):
    encryption_at_rest: bool | None = None


class NetworkSchema(_StrictModel):
    tls_in_transit: bool | None = None


class SecurityScanSchema(_StrictModel):
    status: ScanStatus = ScanStatus.UNKNOWN
    critical_count: int | None = Field(default=None, ge=0)
    high_count: int | None = Field(default=None, ge=0)
    sources: list[str] = Field(default_factory=list)


class WorkloadDescriptorSchema(_StrictModel):
    """Request body describing the workload to evaluate.

    Every section is optional; an absent section fails the rules that need it.
    """

    container: ContainerSchema | None = None
    pod: PodSchema | None = None
    network_policy: NetworkPolicySchema | None = None
    audit: AuditSchema | None = None
    storage: StorageSchema | None = None
    network: NetworkSchema | None = None
    security_scan: SecurityScanSchema | None = None

    def to_descriptor(self) -> WorkloadDescriptor:
        """Convert the validated schema into an immutable WorkloadDescriptor."""
        return WorkloadDescriptor(
            container=_container(self.container) if self.container else None,
            pod=_pod(self.pod) if self.pod else None,
            network_policy=(
                NetworkPolicySpec(
                    present=self.network_policy.present,
                    policy_types=frozenset(self.network_policy.policy_types),
                )
                if self.network_policy
                else None
            ),
            audit=(
                AuditConfig(enabled=self.audit.enabled, policy_configured=self.audit.policy_configured)
                if self.audit
                else None
            ),
            storage=StorageConfig(encryption_at_rest=self.storage.encryption_at_rest) if self.storage else None,
            network=NetworkConfig(tls_in_transit=self.network.tls_in_transit) if self.network else None,
            security_scan=(
                SecurityScan(
                    status=self.security_scan.status,
                    critical_count=self.security_scan.critical_count,
                    high_count=self.security_scan.high_count,
                    sources=tuple(self.security_scan.sources),
                )
                if self.security_scan
                else None
            ),
        )


def _container(schema: ContainerSchema) -> ContainerSpec:
    context = schema.security_context
    resources = schema.resources
    return ContainerSpec(
        security_context=(
            ContainerSecurityContext(
                run_as_non_root=context.run_as_non_root,
                read_only_root_filesystem=context.read_only_root_filesystem,
                capabilities_drop=(
                    frozenset(context.capabilities_drop) if context.capabilities_drop is not None else None
                ),
            )
            if context
            else None
        ),
        resources=ResourceRequirements(**resources.model_dump()) if resources else None,
        image=schema.image,
        env=(
            tuple(
                EnvVar(
                    name=e.name,
                    value=e.value,
                    secret_ref=SecretKeyRef(name=e.secret_ref.name, key=e.secret_ref.key) if e.secret_ref else None,
                )
                for e in schema.env
            )
            if schema.env is not None
            else None
        ),
    )


def _pod(schema: PodSchema) -> PodSpec:
    context = schema.security_context
    return PodSpec(
        security_context=(
            PodSecurityContext(run_as_non_root=context.run_as_non_root, fs_group=context.fs_group)
            if context
            else None
        ),
        service_account_name=schema.service_account_name,
        automount_service_account_token=schema.automount_service_account_token,
    )

