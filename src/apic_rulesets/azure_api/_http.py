"""ARM paging and long-running operation helpers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

from apic_rulesets.errors import OperationFailedError

logger = logging.getLogger(__name__)

_TERMINAL_FAILURES = ("Failed", "Canceled", "Cancelled")


def _paginate(url: str, headers: dict[str, str], timeout: int = 30) -> list[dict]:
    """Fetch all pages from an ARM list endpoint and return the merged values."""
    items: list[dict] = []
    while url:
        resp = requests.get(url, headers=headers, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
        items.extend(data.get("value", []))
        url = data.get("nextLink")
    return items


def _retry_after(resp: requests.Response, default: float) -> float:
    try:
        return float(resp.headers.get("Retry-After", default))
    except (TypeError, ValueError):
        return default


def _wait_for_operation(
    resp: requests.Response,
    headers: dict[str, str],
    *,
    poll_interval: float,
    max_polls: int,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Follow an accepted (HTTP 202) ARM operation until it completes.

    ARM advertises the status monitor through either ``Azure-AsyncOperation``
    (a status document with a ``status`` field) or ``Location`` (``202`` while
    running, then the final result).  Returns the last JSON body, which is
    ``{}`` when the operation has no payload.

    Raises :class:`OperationFailedError` when the operation reports
    ``Failed``/``Canceled`` or does not finish within *max_polls* polls.
    """
    monitor = resp.headers.get("Azure-AsyncOperation") or resp.headers.get("Location")
    if not monitor:
        logger.debug("Accepted operation has no status monitor, assuming completion")
        return {}

    delay = _retry_after(resp, poll_interval)
    for poll in range(max_polls):
        sleep(delay)
        status_resp = requests.get(monitor, headers=headers, timeout=30)
        status_resp.raise_for_status()
        delay = _retry_after(status_resp, poll_interval)
        if status_resp.status_code == 202:
            logger.debug("Operation still running (poll %s/%s)", poll + 1, max_polls)
            continue

        data = status_resp.json() if status_resp.text else {}
        status = data.get("status")
        if status in _TERMINAL_FAILURES:
            error = data.get("error") or {}
            raise OperationFailedError(
                f"Operation {status.lower()}: {error.get('message') or error or 'no details'}"
            )
        if status is None or status == "Succeeded":
            return data
        logger.debug("Operation status %s (poll %s/%s)", status, poll + 1, max_polls)

    raise OperationFailedError(f"Operation did not complete after {max_polls} polls")
