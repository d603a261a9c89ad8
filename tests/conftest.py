"""Test fixtures for the workload compliance engine.

Provides:
- image_digest / trusted_image: a digest-pinned image in a trusted registry
- compliant_descriptor: a descriptor that passes all ten baseline rules
- baseline_engine: a ComplianceEngine with the baseline rules and default threshold
- deployment_manifest / network_policy_manifest: Kubernetes documents whose
  translation passes every manifest-derived rule
- cluster_context: descriptor sections a manifest cannot express
"""

from typing import Any

import pytest

from workload_compliance.compliance.engine import ComplianceEngine
from workload_compliance.compliance.registry import create_baseline_registry
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

IMAGE_DIGEST = "a" * 64
TRUSTED_IMAGE = f"123456789012.dkr.ecr.us-east-1.amazonaws.com/payments/api@sha256:{IMAGE_DIGEST}"


@pytest.fixture()
def trusted_image() -> str:
    """Return a digest-pinned image reference hosted in ECR."""
    return TRUSTED_IMAGE


@pytest.fixture()
def compliant_descriptor() -> WorkloadDescriptor:
    """Create a descriptor that satisfies every baseline rule.

    Returns:
        A fully populated, compliant WorkloadDescriptor.
    """
    return WorkloadDescriptor(
        container=ContainerSpec(
            security_context=ContainerSecurityContext(
                run_as_non_root=True,
                read_only_root_filesystem=True,
                capabilities_drop=frozenset({"ALL"}),
            ),
            resources=ResourceRequirements(
                cpu_limit="500m",
                memory_limit="256Mi",
                cpu_request="250m",
                memory_request="128Mi",
            ),
            image=TRUSTED_IMAGE,
            env=(
                EnvVar(name="DATABASE_PASSWORD", secret_ref=SecretKeyRef(name="db", key="password")),
                EnvVar(name="API_TOKEN", secret_ref=SecretKeyRef(name="api", key="token")),
            ),
        ),
        pod=PodSpec(
            security_context=PodSecurityContext(run_as_non_root=True, fs_group=2000),
            service_account_name="payments-api",
            automount_service_account_token=False,
        ),
        network_policy=NetworkPolicySpec(present=True, policy_types=frozenset({"Ingress", "Egress"})),
        audit=AuditConfig(enabled=True, policy_configured=True),
        storage=StorageConfig(encryption_at_rest=True),
        network=NetworkConfig(tls_in_transit=True),
        security_scan=SecurityScan(status=ScanStatus.PASSED, critical_count=0, high_count=0),
    )


@pytest.fixture()
def baseline_engine() -> ComplianceEngine:
    """Create an engine with the ten baseline rules and threshold 0.8."""
    return ComplianceEngine(registry=create_baseline_registry())


@pytest.fixture()
def deployment_manifest() -> dict[str, Any]:
    """Return a hardened Deployment manifest.

    Returns:
        Deployment whose pod template passes every manifest-derived rule.
    """
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "payments-api", "namespace": "payments"},
        "spec": {
            "replicas": 2,
            "template": {
                "metadata": {"labels": {"app": "payments-api", "tier": "backend"}},
                "spec": {
                    "serviceAccountName": "payments-api",
                    "automountServiceAccountToken": False,
                    "securityContext": {"runAsNonRoot": True, "fsGroup": 2000},
                    "containers": [
                        {
                            "name": "api",
                            "image": TRUSTED_IMAGE,
                            "securityContext": {
                                "readOnlyRootFilesystem": True,
                                "capabilities": {"drop": ["ALL"]},
                            },
                            "resources": {
                                "limits": {"cpu": "500m", "memory": "256Mi"},
                                "requests": {"cpu": "250m", "memory": "128Mi"},
                            },
                            "env": [
                                {
                                    "name": "DATABASE_PASSWORD",
                                    "valueFrom": {"secretKeyRef": {"name": "db", "key": "password"}},
                                }
                            ],
                        },
                        {
                            "name": "sidecar",
                            "image": "envoyproxy/envoy:v1.29.0",
                            "env": [{"name": "LOG_LEVEL", "value": "debug"}],
                        },
                    ],
                },
            },
        },
    }


@pytest.fixture()
def network_policy_manifest() -> dict[str, Any]:
    """Return a NetworkPolicy selecting the payments-api pods in both directions."""
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicy",
        "metadata": {"name": "payments-api", "namespace": "payments"},
        "spec": {
            "podSelector": {"matchLabels": {"app": "payments-api"}},
            "policyTypes": ["Ingress", "Egress"],
        },
    }


@pytest.fixture()
def cluster_context() -> WorkloadDescriptor:
    """Return cluster-level sections that complete a manifest-derived descriptor."""
    return WorkloadDescriptor(
        audit=AuditConfig(enabled=True, policy_configured=True),
        storage=StorageConfig(encryption_at_rest=True),
        network=NetworkConfig(tls_in_transit=True),
        security_scan=SecurityScan(status=ScanStatus.PASSED, critical_count=0, high_count=0),
    )
