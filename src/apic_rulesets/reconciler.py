"""Create-if-absent and prune-if-stale reconciliation of analyzer configs."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from apic_rulesets import azure_api
from apic_rulesets.azure_api import ServiceScope
from apic_rulesets.models import EnsureResult, PruneResult
from apic_rulesets.settings import DEFAULT_ANALYZER_CONFIG

logger = logging.getLogger(__name__)


def _analyzer_type_of(config: dict) -> str | None:
    return config.get("properties", {}).get("analyzerType")


def ensure_exists(
    scope: ServiceScope,
    name: str,
    analyzer_type: str,
    *,
    settle_delay: float = 15.0,
    sleep: Callable[[float], None] = time.sleep,
) -> EnsureResult:
    """Make sure the analyzer config *name* exists.

    A missing config is created with *analyzer_type*, then the function waits
    *settle_delay* seconds before returning.  An existing config is left
    untouched; an engine different from *analyzer_type* is only logged.
    """
    existing = azure_api.get_analyzer_config(scope, name)
    if existing is not None:
        result = EnsureResult(
            name=name,
            created=False,
            analyzer_type=_analyzer_type_of(existing),
            requested_type=analyzer_type,
        )
        if result.engine_mismatch:
            logger.warning(
                "Analyzer config %s uses engine %s, not %s; importing anyway",
                name,
                result.analyzer_type,
                analyzer_type,
            )
        else:
            logger.info("Analyzer config %s already exists", name)
        return result

    logger.info("Creating analyzer config %s (%s)", name, analyzer_type)
    created = azure_api.create_analyzer_config(scope, name, analyzer_type)
    if settle_delay > 0:
        logger.info("Waiting %ss for analyzer config %s to settle", settle_delay, name)
        sleep(settle_delay)
    return EnsureResult(
        name=name,
        created=True,
        analyzer_type=_analyzer_type_of(created) or analyzer_type,
        requested_type=analyzer_type,
    )


def stale_names(
    existing: Iterable[str], target_names: Iterable[str], protected_names: Iterable[str] = ()
) -> list[str]:
    """Return the *existing* names that are neither targets nor protected."""
    keep = {n.lower() for n in target_names}
    keep |= {n.lower() for n in protected_names}
    keep.add(DEFAULT_ANALYZER_CONFIG)
    return [n for n in existing if n.lower() not in keep]


def prune_stale(
    scope: ServiceScope,
    target_names: Iterable[str],
    protected_names: Iterable[str] = (),
) -> PruneResult:
    """Delete remote analyzer configs that are not in *target_names*.

    The built-in default config and *protected_names* are always kept.
    Deletion failures are logged and reported in the result; they never
    raise.
    """
    existing = [c["name"] for c in azure_api.list_analyzer_configs(scope) if c.get("name")]
    stale = stale_names(existing, target_names, protected_names)
    result = PruneResult(kept=[n for n in existing if n not in stale])

    for name in stale:
        try:
            azure_api.delete_analyzer_config(scope, name)
        except Exception as exc:
            logger.warning("Failed to delete stale analyzer config %s: %s", name, exc)
            result.failed.append(name)
        else:
            logger.info("Deleted stale analyzer config %s", name)
            result.deleted.append(name)
    return result
