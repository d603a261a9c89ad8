"""Settings for the workload compliance engine.

Values are read from environment variables with the WORKLOAD_COMPLIANCE_
prefix (or a local .env file) and cover:
- Logging
- Compliance threshold
- Trusted container registries for the image_security rule
- Admission webhook enforcement mode

Settings are passed explicitly into the engine factory; nothing in the core
reads them implicitly, so engines with different policies can coexist.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workload_compliance.compliance.rules import DEFAULT_TRUSTED_REGISTRIES


class Settings(BaseSettings):
    """Settings for the workload compliance engine.

    Environment variable prefix: WORKLOAD_COMPLIANCE_
    """

    service_name: str = "workload-compliance-engine"
    log_level: str = Field(
        default="INFO",
        description="Root log level for the CLI and the HTTP service.",
    )

    # -------------------------------------------------------------------------
    # Compliance policy
    # -------------------------------------------------------------------------

    compliance_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Minimum ratio of passing rules required for an overall pass.",
    )
    trusted_registries: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRUSTED_REGISTRIES),
        description="Shell-style wildcard patterns for trusted image registry hosts. "
        "Set as a JSON list in the environment.",
    )

    # -------------------------------------------------------------------------
    # Admission webhook
    # -------------------------------------------------------------------------

    context_path: Path | None = Field(
        default=None,
        description="Descriptor document (JSON or YAML) supplying cluster-level sections "
        "(audit, storage, network, network_policy, security_scan) that admission "
        "requests cannot carry. Its sections override those derived from the manifest.",
    )
    admission_enforce: bool = Field(
        default=True,
        description="Deny admission when the report fails. When false the webhook "
        "always allows and returns failing rules as warnings.",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKLOAD_COMPLIANCE_",
        env_file=".env",
        extra="ignore",
    )
