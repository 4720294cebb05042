"""Data models for ruleset discovery and deployment outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel

from apic_rulesets.errors import DeploymentError

DEFAULT_ANALYZER_TYPE = "spectral"

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ApiType(StrEnum):
    """API description kinds a ruleset can target."""

    rest = "rest"
    graphql = "graphql"
    mcp = "mcp"


class TierPolicy(StrEnum):
    """How to handle the per-tier analyzer config limit."""

    first_only = "first-only"
    prune = "prune"


class Outcome(StrEnum):
    succeeded = "succeeded"
    skipped = "skipped"
    failed = "failed"


class VerificationStatus(StrEnum):
    match = "match"
    mismatch = "mismatch"
    unverifiable = "unverifiable"
    not_run = "not-run"


# ---------------------------------------------------------------------------
# Sidecar descriptor
# ---------------------------------------------------------------------------


class RoutingMetadata(BaseModel):
    """Routing keys read from a ruleset's ``config.yaml`` descriptor.

    Field names mirror the descriptor keys.  Unknown keys are ignored.
    """

    model_config = {"extra": "ignore"}

    apiType: ApiType = ApiType.rest
    analyzerType: str = DEFAULT_ANALYZER_TYPE
    analyzerConfigName: str | None = None


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


@dataclass
class RulesetDirectory:
    name: str
    path: Path
    rule_file: Path
    functions_dir: Path | None = None
    metadata: RoutingMetadata | None = None
    # Given directly as SOURCE rather than discovered under a root.
    standalone: bool = False

    @property
    def api_type(self) -> ApiType:
        """Resolved API type; rulesets without a descriptor are ``rest``."""
        return self.metadata.apiType if self.metadata else ApiType.rest

    @property
    def analyzer_type(self) -> str:
        return self.metadata.analyzerType if self.metadata else DEFAULT_ANALYZER_TYPE

    @property
    def config_name(self) -> str:
        """Target analyzer config; defaults to the directory name."""
        if self.metadata and self.metadata.analyzerConfigName:
            return self.metadata.analyzerConfigName
        return self.name


# ---------------------------------------------------------------------------
# Step and run results
# ---------------------------------------------------------------------------


@dataclass
class EnsureResult:
    name: str
    created: bool
    analyzer_type: str | None
    requested_type: str

    @property
    def engine_mismatch(self) -> bool:
        return (
            self.analyzer_type is not None
            and self.analyzer_type.lower() != self.requested_type.lower()
        )


@dataclass
class PruneResult:
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)


@dataclass
class RulesetResult:
    name: str
    config_name: str
    outcome: Outcome
    message: str = ""
    attempts: int = 0
    created: bool = False
    verification: VerificationStatus = VerificationStatus.not_run
    warnings: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    results: list[RulesetResult] = field(default_factory=list)
    tier: str | None = None
    pruned: PruneResult | None = None

    def _names(self, outcome: Outcome) -> list[str]:
        return [r.name for r in self.results if r.outcome == outcome]

    @property
    def succeeded(self) -> list[str]:
        return self._names(Outcome.succeeded)

    @property
    def skipped(self) -> list[str]:
        return self._names(Outcome.skipped)

    @property
    def failed(self) -> list[str]:
        return self._names(Outcome.failed)

    @property
    def ok(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> None:
        """Raise :class:`DeploymentError` listing every failed ruleset."""
        if self.failed:
            raise DeploymentError(self.failed)
