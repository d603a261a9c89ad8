"""Kubernetes manifest ingestion.

Translates workload manifests into the container, pod and network_policy
sections of a WorkloadDescriptor.

Supported documents:
- Pod
- Deployment, StatefulSet, DaemonSet, ReplicaSet, Job (spec.template)
- CronJob (spec.jobTemplate.spec.template)
- AdmissionReview (request.object holds one of the above)
- NetworkPolicy (applied to workloads it selects)

Only the fields the baseline rules inspect are read; everything else in the
manifest is ignored.
"""

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from workload_compliance.core.models import (
    ContainerSecurityContext,
    ContainerSpec,
    EnvVar,
    NetworkPolicySpec,
    PodSecurityContext,
    PodSpec,
    ResourceRequirements,
    SecretKeyRef,
    WorkloadDescriptor,
)
from workload_compliance.errors import ManifestError
from workload_compliance.observability import get_logger

logger = get_logger(__name__)

_TEMPLATE_KINDS = frozenset({"Deployment", "StatefulSet", "DaemonSet", "ReplicaSet", "Job"})
_ADMISSION_REVIEW = "AdmissionReview"
_NETWORK_POLICY = "NetworkPolicy"


def load_manifests(text: str) -> list[dict[str, Any]]:
    """Parse a (possibly multi-document) YAML or JSON manifest stream.

    Args:
        text: Manifest text.

    Returns:
        Non-empty documents in file order.

    Raises:
        ManifestError: If the text is not valid YAML or a document is not a mapping.
    """
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid manifest YAML: {exc}") from exc

    for index, doc in enumerate(documents):
        if not isinstance(doc, dict):
            raise ManifestError(f"Manifest document {index} is not a mapping")
    return documents


def load_manifest_file(path: Path | str) -> list[dict[str, Any]]:
    """Read and parse a manifest file.

    Args:
        path: Path to a YAML or JSON manifest, possibly multi-document.

    Returns:
        Non-empty documents in file order.

    Raises:
        ManifestError: If the file cannot be read, is not UTF-8 or is not valid YAML.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(f"Manifest {path} is not valid UTF-8: {exc}") from exc
    return load_manifests(text)


def unwrap_admission_review(manifest: Mapping[str, Any]) -> tuple[dict[str, Any], str | None]:
    """Return the object under review and its namespace.

    Args:
        manifest: A manifest that may be an AdmissionReview envelope.

    Returns:
        Tuple of (workload manifest, namespace or None).
    """
    if manifest.get("kind") != _ADMISSION_REVIEW:
        metadata = _mapping(manifest.get("metadata"), "metadata")
        return dict(manifest), metadata.get("namespace")

    request = _mapping(manifest.get("request"), "request")
    obj = _mapping(request.get("object"), "request.object")
    if not obj:
        raise ManifestError("AdmissionReview request carries no object")
    metadata = _mapping(obj.get("metadata"), "request.object.metadata")
    return obj, metadata.get("namespace") or request.get("namespace")


def extract_pod_template(manifest: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """Locate the pod spec and pod labels of a workload manifest.

    Args:
        manifest: Pod, controller or CronJob manifest.

    Returns:
        Tuple of (pod spec, pod labels).

    Raises:
        ManifestError: If the kind is unsupported or the pod spec is missing.
    """
    kind = manifest.get("kind")
    spec = _mapping(manifest.get("spec"), "spec")

    if kind == "Pod":
        metadata = _mapping(manifest.get("metadata"), "metadata")
        pod_spec, labels = spec, _mapping(metadata.get("labels"), "metadata.labels")
    elif kind in _TEMPLATE_KINDS:
        template = _mapping(spec.get("template"), "spec.template")
        pod_spec, labels = _template_parts(template, "spec.template")
    elif kind == "CronJob":
        job_template = _mapping(spec.get("jobTemplate"), "spec.jobTemplate")
        job_spec = _mapping(job_template.get("spec"), "spec.jobTemplate.spec")
        template = _mapping(job_spec.get("template"), "spec.jobTemplate.spec.template")
        pod_spec, labels = _template_parts(template, "spec.jobTemplate.spec.template")
    else:
        raise ManifestError(f"Unsupported workload kind: {kind!r}")

    if not pod_spec:
        raise ManifestError(f"{kind} manifest has no pod spec")
    return pod_spec, {str(k): str(v) for k, v in labels.items()}


def descriptor_from_manifest(
    manifest: Mapping[str, Any],
    container_name: str | None = None,
    network_policies: Iterable[Mapping[str, Any]] = (),
) -> WorkloadDescriptor:
    """Build a descriptor from a workload manifest.

    Args:
        manifest: Workload manifest or AdmissionReview.
        container_name: Container to evaluate. Defaults to the first container.
        network_policies: NetworkPolicy manifests to match against the workload.

    Returns:
        WorkloadDescriptor with container, pod and network_policy populated.

    Raises:
        ManifestError: If the manifest is unsupported or the container is not found.
    """
    workload, namespace = unwrap_admission_review(manifest)
    pod_spec, labels = extract_pod_template(workload)
    pod_context = _mapping(pod_spec.get("securityContext"), "securityContext")
    container = select_container(pod_spec, container_name)

    descriptor = WorkloadDescriptor(
        container=_container_spec(container, pod_context),
        pod=_pod_spec(pod_spec, pod_context),
        network_policy=network_policy_for(labels, namespace, network_policies),
    )
    logger.debug(
        "Descriptor built from manifest",
        kind=workload.get("kind"),
        container=container.get("name"),
        namespace=namespace,
    )
    return descriptor


def descriptor_from_documents(
    documents: Iterable[Mapping[str, Any]],
    container_name: str | None = None,
) -> WorkloadDescriptor:
    """Build a descriptor from a manifest stream.

    Uses the first workload document and applies every NetworkPolicy
    document in the stream.

    Args:
        documents: Parsed manifest documents.
        container_name: Container to evaluate.

    Returns:
        WorkloadDescriptor for the first workload.

    Raises:
        ManifestError: If the stream contains no workload.
    """
    docs = list(documents)
    policies = [d for d in docs if d.get("kind") == _NETWORK_POLICY]
    workloads = [d for d in docs if d.get("kind") != _NETWORK_POLICY]
    if not workloads:
        raise ManifestError("No workload manifest found")
    if len(workloads) > 1:
        logger.warning(
            "Multiple workloads in manifest stream, evaluating the first",
            count=len(workloads),
            kind=workloads[0].get("kind"),
        )
    return descriptor_from_manifest(workloads[0], container_name, policies)


def select_container(pod_spec: Mapping[str, Any], container_name: str | None = None) -> dict[str, Any]:
    """Pick a container from a pod spec.

    Args:
        pod_spec: The pod spec.
        container_name: Name to select; the first container when None.

    Returns:
        The container mapping.

    Raises:
        ManifestError: If the pod has no containers or the name is not found.
    """
    containers = pod_spec.get("containers") or []
    if not isinstance(containers, list) or not containers:
        raise ManifestError("Pod spec has no containers")

    if container_name is None:
        return _mapping(containers[0], "containers[0]")
    for index, container in enumerate(containers):
        container = _mapping(container, f"containers[{index}]")
        if container.get("name") == container_name:
            return container
    raise ManifestError(f"Container '{container_name}' not found in pod spec")


# ---------------------------------------------------------------------------
# Network policies
# ---------------------------------------------------------------------------


def effective_policy_types(policy: Mapping[str, Any]) -> frozenset[str]:
    """Return the policy types a NetworkPolicy enforces.

    When spec.policyTypes is omitted, Kubernetes treats the policy as Ingress,
    plus Egress if it declares egress rules.

    Raises:
        ManifestError: If spec.policyTypes is present but not a list.
    """
    spec = _mapping(policy.get("spec"), "spec")
    declared = spec.get("policyTypes")
    if declared is not None and not isinstance(declared, list):
        raise ManifestError(f"Expected a list at 'spec.policyTypes', got {type(declared).__name__}")
    if declared:
        return frozenset(str(t) for t in declared)
    types = {"Ingress"}
    if spec.get("egress"):
        types.add("Egress")
    return frozenset(types)


def selects(policy: Mapping[str, Any], labels: Mapping[str, str], namespace: str | None) -> bool:
    """Return True when a NetworkPolicy's podSelector matches the labels.

    Only matchLabels is considered; an empty selector selects every pod in the
    policy's namespace.
    """
    metadata = _mapping(policy.get("metadata"), "metadata")
    policy_namespace = metadata.get("namespace")
    if policy_namespace and namespace and policy_namespace != namespace:
        return False

    spec = _mapping(policy.get("spec"), "spec")
    selector = _mapping(spec.get("podSelector"), "spec.podSelector")
    match_labels = _mapping(selector.get("matchLabels"), "spec.podSelector.matchLabels")
    return all(labels.get(str(k)) == str(v) for k, v in match_labels.items())


def network_policy_for(
    labels: Mapping[str, str],
    namespace: str | None,
    policies: Iterable[Mapping[str, Any]],
) -> NetworkPolicySpec:
    """Compute network policy coverage for a pod.

    Args:
        labels: Pod template labels.
        namespace: Workload namespace, if known.
        policies: Candidate NetworkPolicy manifests.

    Returns:
        NetworkPolicySpec with the union of types across matching policies.
    """
    types: set[str] = set()
    present = False
    for policy in policies:
        if selects(policy, labels, namespace):
            present = True
            types.update(effective_policy_types(policy))
    return NetworkPolicySpec(present=present, policy_types=frozenset(types))


# ---------------------------------------------------------------------------
# Field translation
# ---------------------------------------------------------------------------


def _container_spec(container: Mapping[str, Any], pod_context: Mapping[str, Any]) -> ContainerSpec:
    context = _mapping(container.get("securityContext"), "securityContext")
    capabilities = _mapping(context.get("capabilities"), "securityContext.capabilities")
    drop = capabilities.get("drop")

    run_as_non_root = context.get("runAsNonRoot")
    if run_as_non_root is None:
        run_as_non_root = pod_context.get("runAsNonRoot")

    resources = _mapping(container.get("resources"), "resources")
    limits = _mapping(resources.get("limits"), "resources.limits")
    requests = _mapping(resources.get("requests"), "resources.requests")

    return ContainerSpec(
        security_context=ContainerSecurityContext(
            run_as_non_root=_bool_or_none(run_as_non_root),
            read_only_root_filesystem=_bool_or_none(context.get("readOnlyRootFilesystem")),
            capabilities_drop=frozenset(str(c) for c in drop) if isinstance(drop, list) else None,
        ),
        resources=ResourceRequirements(
            cpu_limit=limits.get("cpu"),
            memory_limit=limits.get("memory"),
            cpu_request=requests.get("cpu"),
            memory_request=requests.get("memory"),
        ),
        image=container.get("image"),
        env=tuple(_env_var(entry) for entry in container.get("env") or []),
    )


def _env_var(entry: Any) -> EnvVar:
    entry = _mapping(entry, "env")
    name = str(entry.get("name", ""))
    if "value" in entry and entry["value"] is not None:
        return EnvVar(name=name, value=str(entry["value"]))

    value_from = _mapping(entry.get("valueFrom"), f"env[{name}].valueFrom")
    secret = value_from.get("secretKeyRef")
    if isinstance(secret, dict) and secret.get("name"):
        return EnvVar(name=name, secret_ref=SecretKeyRef(name=str(secret["name"]), key=secret.get("key")))
    return EnvVar(name=name)


def _pod_spec(pod_spec: Mapping[str, Any], pod_context: Mapping[str, Any]) -> PodSpec:
    fs_group = pod_context.get("fsGroup")
    if isinstance(fs_group, bool) or not isinstance(fs_group, int):
        fs_group = None

    security_context = None
    if "securityContext" in pod_spec and pod_spec["securityContext"] is not None:
        security_context = PodSecurityContext(
            run_as_non_root=_bool_or_none(pod_context.get("runAsNonRoot")),
            fs_group=fs_group,
        )

    return PodSpec(
        security_context=security_context,
        service_account_name=pod_spec.get("serviceAccountName") or pod_spec.get("serviceAccount"),
        automount_service_account_token=_bool_or_none(pod_spec.get("automountServiceAccountToken")),
    )


def _template_parts(template: Mapping[str, Any], path: str) -> tuple[dict[str, Any], dict[str, Any]]:
    metadata = _mapping(template.get("metadata"), f"{path}.metadata")
    return (
        _mapping(template.get("spec"), f"{path}.spec"),
        _mapping(metadata.get("labels"), f"{path}.metadata.labels"),
    )


def _mapping(value: Any, path: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(f"Expected a mapping at '{path}', got {type(value).__name__}")
    return value


def _bool_or_none(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None
