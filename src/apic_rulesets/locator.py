"""Ruleset directory discovery and sidecar descriptor parsing."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from apic_rulesets.errors import RulesetConfigError
from apic_rulesets.models import RoutingMetadata, RulesetDirectory

logger = logging.getLogger(__name__)

RULE_FILE_NAMES = ("ruleset.yaml", "ruleset.yml")
DESCRIPTOR_FILE_NAMES = ("config.yaml", "config.yml")
FUNCTIONS_DIR_NAME = "functions"


def _first_existing(directory: Path, names: tuple[str, ...]) -> Path | None:
    for name in names:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def parse_descriptor(path: Path) -> RoutingMetadata:
    """Parse a sidecar descriptor into :class:`RoutingMetadata`.

    An empty file yields the defaults.  Anything that is not a mapping, or a
    mapping with an unsupported ``apiType``, raises :class:`RulesetConfigError`.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise RulesetConfigError(f"{path}: invalid YAML: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RulesetConfigError(f"{path}: descriptor root must be a mapping")

    try:
        return RoutingMetadata.model_validate(data)
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise RulesetConfigError(f"{path}: {errors}") from exc


def load_ruleset(directory: Path) -> RulesetDirectory | None:
    """Return the ruleset held in *directory*, or ``None`` if it has no rule file."""
    rule_file = _first_existing(directory, RULE_FILE_NAMES)
    if rule_file is None:
        return None

    descriptor = _first_existing(directory, DESCRIPTOR_FILE_NAMES)
    metadata = parse_descriptor(descriptor) if descriptor else None

    functions_dir = directory / FUNCTIONS_DIR_NAME
    return RulesetDirectory(
        name=directory.name,
        path=directory,
        rule_file=rule_file,
        functions_dir=functions_dir if functions_dir.is_dir() else None,
        metadata=metadata,
    )


def discover_rulesets(root: Path) -> list[RulesetDirectory]:
    """Return the rulesets found in the immediate subdirectories of *root*.

    Subdirectories are visited in name order so that discovery order is
    stable across runs.  Raises :class:`FileNotFoundError` when *root* does
    not exist.
    """
    if not root.is_dir():
        raise FileNotFoundError(f"Ruleset root not found: {root}")

    rulesets: list[RulesetDirectory] = []
    for child in sorted(p for p in root.iterdir() if p.is_dir()):
        ruleset = load_ruleset(child)
        if ruleset is None:
            logger.debug("Skipping %s: no %s", child, " or ".join(RULE_FILE_NAMES))
            continue
        logger.info(
            "Found ruleset %s (apiType=%s, config=%s)",
            ruleset.name,
            ruleset.api_type,
            ruleset.config_name,
        )
        rulesets.append(ruleset)

    if not rulesets:
        logger.warning("No ruleset directories found under %s", root)
    return rulesets


def filter_by_api_type(
    rulesets: list[RulesetDirectory], api_type: str | None
) -> tuple[list[RulesetDirectory], list[RulesetDirectory]]:
    """Split *rulesets* into ``(matched, skipped)`` for an optional api-type filter."""
    if not api_type:
        return list(rulesets), []
    matched = [r for r in rulesets if r.api_type == api_type]
    skipped = [r for r in rulesets if r.api_type != api_type]
    return matched, skipped
