"""Descriptor document loading.

A descriptor document is a JSON or YAML mapping following
WorkloadDescriptorSchema. It may be partial: the CLI and the admission
webhook use partial documents to supply cluster-level sections (audit,
storage, network) that a workload manifest cannot express.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from workload_compliance.core.models import WorkloadDescriptor
from workload_compliance.core.schemas import WorkloadDescriptorSchema
from workload_compliance.errors import IngestError


def parse_descriptor_document(data: Mapping[str, Any] | None, source: str = "document") -> WorkloadDescriptor:
    """Validate a descriptor mapping and convert it.

    Args:
        data: Parsed document; None is treated as an empty descriptor.
        source: Name used in error messages.

    Returns:
        The WorkloadDescriptor.

    Raises:
        IngestError: If the document does not match the schema.
    """
    if data is None:
        return WorkloadDescriptor()
    if not isinstance(data, Mapping):
        raise IngestError(f"Descriptor {source} must be a mapping, got {type(data).__name__}")
    try:
        return WorkloadDescriptorSchema.model_validate(data).to_descriptor()
    except ValidationError as exc:
        raise IngestError(f"Invalid descriptor {source}: {exc}") from exc


def load_descriptor_document(path: Path | str) -> WorkloadDescriptor:
    """Read a JSON or YAML descriptor document from disk.

    Args:
        path: Path to the document. JSON is a subset of YAML, so one parser
            handles both.

    Returns:
        The WorkloadDescriptor.

    Raises:
        IngestError: If the file cannot be read, parsed or validated.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise IngestError(f"Cannot read descriptor {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise IngestError(f"Descriptor {path} is not valid UTF-8: {exc}") from exc
    except yaml.YAMLError as exc:
        raise IngestError(f"Invalid descriptor {path}: {exc}") from exc
    return parse_descriptor_document(data, source=str(path))
