"""API Center service lookup and creation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

from apic_rulesets.azure_api._auth import _get_headers
from apic_rulesets.azure_api._scope import ServiceScope
from apic_rulesets.errors import OperationFailedError, ServiceNotFoundError

logger = logging.getLogger(__name__)

SERVICE_SKUS = ("Free", "Standard")


def get_service(scope: ServiceScope) -> dict | None:
    """Return the API Center service resource, or ``None`` when it does not exist."""
    headers = _get_headers(scope.tenant_id)
    resp = requests.get(scope.service_url(), headers=headers, timeout=30)
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json()


def create_service(
    scope: ServiceScope,
    location: str,
    sku: str = "Free",
    *,
    poll_interval: float = 5,
    max_polls: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Create the API Center service and wait until it is provisioned."""
    if sku not in SERVICE_SKUS:
        raise ValueError(f"Unsupported API Center SKU {sku!r}, expected one of {SERVICE_SKUS}")

    headers = _get_headers(scope.tenant_id)
    payload = {
        "location": location,
        "sku": {"name": sku},
        "identity": {"type": "SystemAssigned"},
        "properties": {},
    }
    logger.info("Creating API Center service %s (%s, %s)", scope.service_name, location, sku)
    resp = requests.put(scope.service_url(), headers=headers, json=payload, timeout=60)
    resp.raise_for_status()
    service: dict = resp.json()

    for poll in range(max_polls):
        state = service.get("properties", {}).get("provisioningState", "Succeeded")
        if state == "Succeeded":
            return service
        if state in ("Failed", "Canceled"):
            raise OperationFailedError(
                f"Provisioning of API Center service {scope.service_name} ended in {state}"
            )
        logger.debug("Service provisioning state %s (poll %s/%s)", state, poll + 1, max_polls)
        sleep(poll_interval)
        service = get_service(scope) or service

    raise OperationFailedError(
        f"API Center service {scope.service_name} was not provisioned after {max_polls} polls"
    )


def ensure_service(
    scope: ServiceScope,
    location: str | None = None,
    sku: str = "Free",
    *,
    poll_interval: float = 5,
    max_polls: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Make sure the API Center service exists and return its SKU (tier) name.

    When the service is missing it is created in *location*; without a
    location a :class:`ServiceNotFoundError` is raised instead.
    """
    service = get_service(scope)
    if service is None:
        if not location:
            raise ServiceNotFoundError(
                f"API Center service {scope.service_name} not found in resource group "
                f"{scope.resource_group}. Pass --location to create it."
            )
        service = create_service(
            scope,
            location,
            sku,
            poll_interval=poll_interval,
            max_polls=max_polls,
            sleep=sleep,
        )
    tier: str = service.get("sku", {}).get("name") or sku
    logger.info("API Center service %s uses the %s tier", scope.service_name, tier)
    return tier
