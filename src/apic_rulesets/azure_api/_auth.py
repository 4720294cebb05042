"""Authentication helpers for Azure ARM API calls."""

from __future__ import annotations

import logging

from azure.identity import DefaultAzureCredential

logger = logging.getLogger(__name__)

AZURE_MGMT_URL = "https://management.azure.com"

credential = DefaultAzureCredential()


def _get_headers(tenant_id: str | None = None) -> dict[str, str]:
    """Return authorization headers using *DefaultAzureCredential*.

    When *tenant_id* is provided the token is scoped to that tenant.
    """
    kwargs: dict[str, str] = {}
    if tenant_id:
        kwargs["tenant_id"] = tenant_id
    token = credential.get_token(f"{AZURE_MGMT_URL}/.default", **kwargs)
    return {
        "Authorization": f"Bearer {token.token}",
        "Content-Type": "application/json",
    }
