"""Exception types raised by the deployment workflow."""

from __future__ import annotations


class ApicRulesetsError(Exception):
    """Base class for errors raised by apic-rulesets."""


class RulesetConfigError(ApicRulesetsError):
    """A ruleset's sidecar descriptor could not be parsed or validated."""


class ServiceNotFoundError(ApicRulesetsError):
    """The API Center service does not exist and cannot be created."""


class OperationFailedError(ApicRulesetsError):
    """An ARM long-running operation ended in a non-successful state."""


class RetryExhaustedError(ApicRulesetsError):
    """Every attempt allowed by a retry policy failed."""

    def __init__(self, message: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class DeploymentError(ApicRulesetsError):
    """One or more rulesets failed to deploy."""

    def __init__(self, failed: list[str]) -> None:
        super().__init__(f"{len(failed)} ruleset(s) failed to deploy: {', '.join(failed)}")
        self.failed = failed
