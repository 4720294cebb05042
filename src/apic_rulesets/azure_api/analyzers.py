"""Analyzer config CRUD and ruleset import/export actions."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

from apic_rulesets.azure_api._auth import _get_headers
from apic_rulesets.azure_api._http import _paginate, _wait_for_operation
from apic_rulesets.azure_api._scope import ServiceScope

logger = logging.getLogger(__name__)

INLINE_ZIP_FORMAT = "inline-zip"


def get_analyzer_config(scope: ServiceScope, name: str) -> dict | None:
    """Return the analyzer config *name*, or ``None`` when it does not exist."""
    headers = _get_headers(scope.tenant_id)
    resp = requests.get(scope.analyzer_url(name), headers=headers, timeout=30)
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json()


def list_analyzer_configs(scope: ServiceScope) -> list[dict]:
    """Return every analyzer config in the scope's workspace."""
    headers = _get_headers(scope.tenant_id)
    return _paginate(scope.analyzer_url(), headers)


def create_analyzer_config(
    scope: ServiceScope,
    name: str,
    analyzer_type: str,
    title: str | None = None,
) -> dict:
    """Create (or overwrite) the analyzer config *name* with the given engine."""
    headers = _get_headers(scope.tenant_id)
    payload = {
        "properties": {
            "title": title or name,
            "description": f"Spectral ruleset {name}",
            "analyzerType": analyzer_type,
        }
    }
    resp = requests.put(scope.analyzer_url(name), headers=headers, json=payload, timeout=30)
    resp.raise_for_status()
    return resp.json() if resp.text else {}


def delete_analyzer_config(scope: ServiceScope, name: str) -> bool:
    """Delete the analyzer config *name*.

    Returns ``False`` when the config was already absent.
    """
    headers = _get_headers(scope.tenant_id)
    resp = requests.delete(scope.analyzer_url(name), headers=headers, timeout=30)
    if resp.status_code == 404:
        return False
    resp.raise_for_status()
    return True


def import_ruleset(
    scope: ServiceScope,
    name: str,
    encoded_package: str,
    *,
    poll_interval: float = 5,
    max_polls: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """POST an ``inline-zip`` package to the config's ``importRuleset`` action.

    Accepted (HTTP 202) imports are followed until the operation completes.
    """
    headers = _get_headers(scope.tenant_id)
    payload = {"format": INLINE_ZIP_FORMAT, "value": encoded_package}
    resp = requests.post(
        scope.analyzer_url(name, "importRuleset"), headers=headers, json=payload, timeout=120
    )
    resp.raise_for_status()
    if resp.status_code == 202:
        return _wait_for_operation(
            resp, headers, poll_interval=poll_interval, max_polls=max_polls, sleep=sleep
        )
    return resp.json() if resp.text else {}


def _envelope(data: dict) -> dict:
    """Pull the ``{format, value}`` envelope out of a direct or LRO response body."""
    if "value" in data:
        return data
    for key in ("properties", "result"):
        nested = data.get(key)
        if isinstance(nested, dict) and "value" in nested:
            return nested
    return {}


def export_ruleset(
    scope: ServiceScope,
    name: str,
    *,
    poll_interval: float = 5,
    max_polls: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Return the ``{"format": ..., "value": ...}`` envelope of the config's ruleset."""
    headers = _get_headers(scope.tenant_id)
    resp = requests.post(
        scope.analyzer_url(name, "exportRuleset"),
        headers=headers,
        json={"format": INLINE_ZIP_FORMAT},
        timeout=60,
    )
    resp.raise_for_status()
    if resp.status_code == 202:
        data = _wait_for_operation(
            resp, headers, poll_interval=poll_interval, max_polls=max_polls, sleep=sleep
        )
    else:
        data = resp.json()
    return _envelope(data)
