"""Ruleset upload with retry."""

from __future__ import annotations

import logging

from apic_rulesets import azure_api
from apic_rulesets.azure_api import ServiceScope
from apic_rulesets.retry import RetryPolicy

logger = logging.getLogger(__name__)


def import_package(
    scope: ServiceScope,
    config_name: str,
    encoded_package: str,
    policy: RetryPolicy,
    *,
    poll_interval: float = 5,
    max_polls: int = 60,
) -> int:
    """Upload *encoded_package* to *config_name*; return the number of attempts used.

    Raises :class:`~apic_rulesets.errors.RetryExhaustedError` when every
    attempt fails.
    """

    def _attempt() -> dict:
        return azure_api.import_ruleset(
            scope,
            config_name,
            encoded_package,
            poll_interval=poll_interval,
            max_polls=max_polls,
            sleep=policy.sleep,
        )

    _, attempts = policy.run(_attempt, description=f"Import into {config_name}")
    logger.info("Imported ruleset into %s (%s attempt(s))", config_name, attempts)
    return attempts
