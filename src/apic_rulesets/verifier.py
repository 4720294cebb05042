"""Post-import verification by exporting the ruleset back."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

from apic_rulesets import azure_api
from apic_rulesets.azure_api import ServiceScope
from apic_rulesets.errors import OperationFailedError
from apic_rulesets.models import VerificationStatus
from apic_rulesets.packaging import read_rule_file

logger = logging.getLogger(__name__)


def normalize(text: str) -> str:
    """Trim surrounding whitespace and unify line endings."""
    return text.replace("\r\n", "\n").strip()


def verify_import(
    scope: ServiceScope,
    config_name: str,
    source_text: str,
    *,
    poll_interval: float = 5,
    max_polls: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> VerificationStatus:
    """Export *config_name* and compare its rule file with *source_text*."""
    try:
        envelope = azure_api.export_ruleset(
            scope, config_name, poll_interval=poll_interval, max_polls=max_polls, sleep=sleep
        )
        encoded = envelope.get("value")
        if not encoded:
            raise ValueError("export returned no package")
        exported = read_rule_file(encoded).decode("utf-8")
    except (requests.RequestException, OperationFailedError, ValueError) as exc:
        logger.warning(
            "Could not verify %s (may be normal for newly created configs): %s",
            config_name,
            exc,
        )
        return VerificationStatus.unverifiable

    if normalize(exported) == normalize(source_text):
        logger.info("Verified ruleset content of %s", config_name)
        return VerificationStatus.match

    logger.warning("Exported ruleset of %s differs from the source file", config_name)
    return VerificationStatus.mismatch
