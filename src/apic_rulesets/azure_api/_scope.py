"""Addressing for an API Center service and its analyzer configs."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from apic_rulesets.azure_api._auth import AZURE_MGMT_URL

SERVICE_API_VERSION = "2024-03-01"
ANALYZER_API_VERSION = "2024-06-01-preview"


@dataclass(frozen=True)
class ServiceScope:
    """Identifies one API Center service workspace on ARM."""

    subscription_id: str
    resource_group: str
    service_name: str
    workspace: str = "default"
    service_api_version: str = SERVICE_API_VERSION
    analyzer_api_version: str = ANALYZER_API_VERSION
    tenant_id: str | None = None

    @property
    def service_path(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/Microsoft.ApiCenter/services/{self.service_name}"
        )

    def service_url(self) -> str:
        return f"{AZURE_MGMT_URL}{self.service_path}?api-version={self.service_api_version}"

    def analyzer_url(self, name: str | None = None, action: str | None = None) -> str:
        """Return the URL of the analyzer config collection, a config, or a config action."""
        path = f"{AZURE_MGMT_URL}{self.service_path}/workspaces/{self.workspace}/analyzerConfigs"
        if name:
            path += f"/{quote(name, safe='')}"
            if action:
                path += f"/{action}"
        return f"{path}?api-version={self.analyzer_api_version}"
