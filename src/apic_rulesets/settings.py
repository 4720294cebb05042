"""Deployment settings loaded from environment variables."""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from apic_rulesets.azure_api import ANALYZER_API_VERSION, SERVICE_API_VERSION, ServiceScope
from apic_rulesets.models import DEFAULT_ANALYZER_TYPE, TierPolicy

DEFAULT_ANALYZER_CONFIG = "spectral-openapi"

# Maximum number of analyzer configs per API Center tier.
TIER_LIMITS: dict[str, int] = {"Free": 1, "Standard": 3}


class DeploySettings(BaseSettings):
    """Configuration for a ruleset deployment run.

    Values are read from ``APIC_``-prefixed environment variables
    (case-insensitive) and optionally from a ``.env`` file in the working
    directory.  Command-line options take precedence.
    """

    subscription_id: str = ""
    resource_group: str = ""
    service_name: str = ""
    workspace: str = "default"
    tenant_id: str = ""

    service_api_version: str = SERVICE_API_VERSION
    analyzer_api_version: str = ANALYZER_API_VERSION

    analyzer_type: str = DEFAULT_ANALYZER_TYPE
    protected_configs: list[str] = Field(default_factory=lambda: [DEFAULT_ANALYZER_CONFIG])
    tier_policy: TierPolicy = TierPolicy.prune

    settle_delay: float = 15.0
    import_max_attempts: int = 3
    import_retry_delay: float = 10.0
    poll_interval: float = 5.0
    max_polls: int = 60

    model_config = {
        "env_prefix": "APIC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _validate_counts(self) -> "DeploySettings":
        if self.import_max_attempts < 1:
            raise ValueError("APIC_IMPORT_MAX_ATTEMPTS must be at least 1")
        if self.max_polls < 1:
            raise ValueError("APIC_MAX_POLLS must be at least 1")
        if DEFAULT_ANALYZER_CONFIG not in self.protected_configs:
            self.protected_configs = [DEFAULT_ANALYZER_CONFIG, *self.protected_configs]
        return self

    def missing_scope_fields(self) -> list[str]:
        """Return the names of required scope settings that are empty."""
        return [
            name
            for name in ("subscription_id", "resource_group", "service_name")
            if not getattr(self, name)
        ]

    def scope(self) -> ServiceScope:
        return ServiceScope(
            subscription_id=self.subscription_id,
            resource_group=self.resource_group,
            service_name=self.service_name,
            workspace=self.workspace,
            service_api_version=self.service_api_version,
            analyzer_api_version=self.analyzer_api_version,
            tenant_id=self.tenant_id or None,
        )
