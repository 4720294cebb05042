"""Per-ruleset deployment workflow and run summary.

Each ruleset moves through filter → package → ensure config → import →
verify and ends up recorded as succeeded, skipped or failed.  A failure in
one ruleset never stops the others; the caller decides what to do with the
returned :class:`RunSummary`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import requests

from apic_rulesets import azure_api
from apic_rulesets.azure_api import ServiceScope
from apic_rulesets.importer import import_package
from apic_rulesets.locator import discover_rulesets, filter_by_api_type, load_ruleset
from apic_rulesets.models import (
    ApiType,
    Outcome,
    RoutingMetadata,
    RulesetDirectory,
    RulesetResult,
    RunSummary,
    TierPolicy,
    VerificationStatus,
)
from apic_rulesets.packaging import build_package
from apic_rulesets.reconciler import ensure_exists, prune_stale
from apic_rulesets.retry import RetryPolicy
from apic_rulesets.settings import DEFAULT_ANALYZER_CONFIG, TIER_LIMITS, DeploySettings
from apic_rulesets.verifier import verify_import

logger = logging.getLogger(__name__)


@dataclass
class DeployOptions:
    api_type: ApiType | None = None
    tier: str | None = None
    tier_policy: TierPolicy = TierPolicy.prune
    # None prunes unless a standalone ruleset is being deployed.
    prune: bool | None = None
    verify: bool = True

    def prunes(self, rulesets: list[RulesetDirectory]) -> bool:
        """Whether a run over *rulesets* deletes stale configs."""
        if self.tier_policy != TierPolicy.prune:
            return False
        if self.prune is not None:
            return self.prune
        return not any(r.standalone for r in rulesets)



# ---------------------------------------------------------------------------
# Discovery & selection
# ---------------------------------------------------------------------------


def collect_rulesets(source: Path, config_name: str | None = None) -> list[RulesetDirectory]:
    """Return the rulesets to consider for *source*.

    *source* is either a single ruleset directory or a root holding one
    ruleset per subdirectory.  *config_name* overrides the target config and
    is only accepted for a single ruleset directory.
    """
    single = load_ruleset(source) if source.is_dir() else None
    if single is None:
        if config_name:
            raise ValueError("--config-name requires SOURCE to be a single ruleset directory")
        return discover_rulesets(source)

    single.standalone = True
    if config_name:
        metadata = single.metadata or RoutingMetadata()
        single.metadata = metadata.model_copy(update={"analyzerConfigName": config_name})
    return [single]


@dataclass
class Selection:
    """Skip reasons per ruleset name, plus the rulesets dropped for tier capacity."""

    skips: dict[str, str] = field(default_factory=dict)
    over_capacity: list[str] = field(default_factory=list)

    def keep_names(self, rulesets: list[RulesetDirectory]) -> list[str]:
        """Config names pruning must leave alone.

        Configs of rulesets skipped for capacity are left out so that pruning
        frees their slots.
        """
        return [r.config_name for r in rulesets if r.name not in self.over_capacity]


def fit_capacity(
    candidates: list[RulesetDirectory],
    limit: int,
    existing: list[str] | None = None,
    keep: list[str] | None = None,
    prune: bool = True,
) -> list[RulesetDirectory]:
    """Return the *candidates* that fit in a tier holding at most *limit* configs.

    *existing* are the remote config names; when unknown, the first *limit*
    candidates fit.  With *prune*, only the remote configs named in *keep*
    survive besides the candidates, so the first ``limit - survivors``
    candidates fit.  Without it every remote config stays, and a candidate
    whose config already exists does not take a new slot.
    """
    if existing is None:
        return candidates[:limit]

    targets = {r.config_name.lower() for r in candidates}
    remote = {n.lower() for n in existing}
    if prune:
        survivors = (remote & {n.lower() for n in keep or ()}) - targets
        return candidates[: max(0, limit - len(survivors))]

    occupied = set(remote)
    fitted: list[RulesetDirectory] = []
    for r in candidates:
        key = r.config_name.lower()
        if key in occupied or len(occupied) < limit:
            occupied.add(key)
            fitted.append(r)
    return fitted


def select_rulesets(
    rulesets: list[RulesetDirectory],
    options: DeployOptions,
    existing: list[str] | None = None,
    protected: list[str] | None = None,
) -> Selection:
    """Decide which rulesets are skipped and why.

    *existing* lists the remote config names; it lets the ``prune`` tier
    policy count the configs that outlive the run against the tier limit.
    """
    selection = Selection()
    skips = selection.skips

    matched, filtered = filter_by_api_type(rulesets, options.api_type)
    for r in filtered:
        skips[r.name] = f"apiType {r.api_type} does not match filter {options.api_type}"

    seen: dict[str, str] = {}
    candidates: list[RulesetDirectory] = []
    for r in matched:
        key = r.config_name.lower()
        if key in seen:
            skips[r.name] = f"config {r.config_name} is already targeted by {seen[key]}"
            continue
        seen[key] = r.name
        candidates.append(r)

    limit = TIER_LIMITS.get(options.tier) if options.tier else None
    if options.tier_policy == TierPolicy.first_only:
        if options.tier == "Free" and not options.api_type:
            for r in candidates[1:]:
                skips[r.name] = "Free tier: only the first ruleset is deployed"
        return selection
    if limit is None:
        return selection

    keep = [*(protected or ()), DEFAULT_ANALYZER_CONFIG]
    keep += [r.config_name for r in rulesets if r.name in skips]
    fitted = fit_capacity(candidates, limit, existing, keep, options.prunes(rulesets))
    dropped = [r for r in candidates if r not in fitted]
    if dropped:
        logger.warning(
            "%s tier allows %s analyzer config(s); skipping %s ruleset(s)",
            options.tier,
            limit,
            len(dropped),
        )
    for r in dropped:
        skips[r.name] = f"{options.tier} tier capacity ({limit}) reached"
        selection.over_capacity.append(r.name)
    return selection


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


def deploy_ruleset(
    scope: ServiceScope,
    ruleset: RulesetDirectory,
    settings: DeploySettings,
    *,
    verify: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> RulesetResult:
    """Package, ensure, import and verify a single ruleset."""
    result = RulesetResult(
        name=ruleset.name, config_name=ruleset.config_name, outcome=Outcome.failed
    )
    analyzer_type = ruleset.analyzer_type if ruleset.metadata else settings.analyzer_type
    policy = RetryPolicy(
        max_attempts=settings.import_max_attempts,
        delay=settings.import_retry_delay,
        sleep=sleep,
    )

    try:
        source_text = ruleset.rule_file.read_text(encoding="utf-8")
        with build_package(ruleset.rule_file, ruleset.functions_dir) as package:
            ensured = ensure_exists(
                scope,
                ruleset.config_name,
                analyzer_type,
                settle_delay=settings.settle_delay,
                sleep=sleep,
            )
            result.created = ensured.created
            if ensured.engine_mismatch:
                result.warnings.append(
                    f"config uses engine {ensured.analyzer_type}, requested {analyzer_type}"
                )
            result.attempts = import_package(
                scope,
                ruleset.config_name,
                package.encoded,
                policy,
                poll_interval=settings.poll_interval,
                max_polls=settings.max_polls,
            )
    except Exception as exc:
        logger.error("Deployment of %s failed: %s", ruleset.name, exc)
        result.message = str(exc)
        return result

    result.outcome = Outcome.succeeded
    if verify:
        result.verification = verify_import(
            scope,
            ruleset.config_name,
            source_text,
            poll_interval=settings.poll_interval,
            max_polls=settings.max_polls,
            sleep=sleep,
        )
        if result.verification == VerificationStatus.mismatch:
            result.warnings.append("exported ruleset differs from source")
    return result


def deploy_rulesets(
    settings: DeploySettings,
    rulesets: list[RulesetDirectory],
    options: DeployOptions,
    *,
    sleep: Callable[[float], None] = time.sleep,
    progress: Callable[[RulesetResult], None] | None = None,
) -> RunSummary:
    """Deploy *rulesets* in discovery order and return the run summary."""
    scope = settings.scope()
    summary = RunSummary(tier=options.tier)

    existing = None
    if options.tier_policy == TierPolicy.prune and options.tier in TIER_LIMITS:
        try:
            existing = [c["name"] for c in azure_api.list_analyzer_configs(scope) if c.get("name")]
        except requests.RequestException as exc:
            logger.warning("Could not list analyzer configs to check tier capacity: %s", exc)
    selection = select_rulesets(rulesets, options, existing, settings.protected_configs)
    skips = selection.skips

    if options.prunes(rulesets):
        try:
            summary.pruned = prune_stale(
                scope, selection.keep_names(rulesets), settings.protected_configs
            )
        except requests.RequestException as exc:
            logger.warning("Could not list analyzer configs for pruning: %s", exc)
    elif options.tier_policy == TierPolicy.prune:
        logger.info("Not pruning: deploying a standalone ruleset or --no-prune given")

    for ruleset in rulesets:
        if ruleset.name in skips:
            logger.info("Skipping %s: %s", ruleset.name, skips[ruleset.name])
            result = RulesetResult(
                name=ruleset.name,
                config_name=ruleset.config_name,
                outcome=Outcome.skipped,
                message=skips[ruleset.name],
            )
        else:
            logger.info("Deploying %s to analyzer config %s", ruleset.name, ruleset.config_name)
            result = deploy_ruleset(scope, ruleset, settings, verify=options.verify, sleep=sleep)
        summary.results.append(result)
        if progress is not None:
            progress(result)

    logger.info(
        "Run complete: %s succeeded, %s skipped, %s failed",
        len(summary.succeeded),
        len(summary.skipped),
        len(summary.failed),
    )
    return summary
