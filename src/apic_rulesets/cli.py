"""Command-line interface for apic-rulesets.

Subcommands:
    apic-rulesets deploy  – package and deploy rulesets to API Center
    apic-rulesets list    – list analyzer configs on the service
    apic-rulesets export  – download a config's ruleset file
    apic-rulesets delete  – delete an analyzer config
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import requests
from pydantic import ValidationError

from apic_rulesets import __version__, azure_api
from apic_rulesets.errors import ApicRulesetsError, DeploymentError
from apic_rulesets.models import ApiType, Outcome, RulesetResult, RunSummary, TierPolicy
from apic_rulesets.settings import DeploySettings

logger = logging.getLogger(__name__)

_OUTCOME_COLOURS = {
    Outcome.succeeded: "green",
    Outcome.skipped: "yellow",
    Outcome.failed: "red",
}


def _setup_logging(level: int = logging.WARNING) -> None:
    """Configure the root ``apic_rulesets`` logger with uvicorn-style colours."""
    from uvicorn.logging import DefaultFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(
        DefaultFormatter(fmt="%(levelprefix)s %(name)s - %(message)s", use_colors=True)
    )
    app_logger = logging.getLogger("apic_rulesets")
    app_logger.handlers = [handler]
    app_logger.setLevel(level)
    app_logger.propagate = False

    # Silence noisy third-party loggers
    logging.getLogger("azure").setLevel(logging.WARNING)


def _scope_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options that identify the API Center service."""
    options = [
        click.option("--subscription-id", help="Subscription ID [env: APIC_SUBSCRIPTION_ID]."),
        click.option("--resource-group", help="Resource group [env: APIC_RESOURCE_GROUP]."),
        click.option("--service-name", help="API Center service [env: APIC_SERVICE_NAME]."),
        click.option("--tenant-id", help="Entra tenant to authenticate against."),
        click.option("--service-api-version", help="API version for the service resource."),
        click.option("--analyzer-api-version", help="API version for analyzer configs."),
        click.option(
            "--verbose",
            "-v",
            is_flag=True,
            default=False,
            help="Enable verbose logging.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_settings(verbose: bool, **overrides: Any) -> DeploySettings:
    """Build settings from the environment, letting non-empty CLI values win."""
    _setup_logging(level=logging.DEBUG if verbose else logging.WARNING)
    try:
        settings = DeploySettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        raise click.UsageError(str(exc)) from exc
    missing = settings.missing_scope_fields()
    if missing:
        flags = ", ".join("--" + name.replace("_", "-") for name in missing)
        raise click.UsageError(f"Missing required settings: {flags}")
    return settings


def _echo_result(result: RulesetResult) -> None:
    colour = _OUTCOME_COLOURS[result.outcome]
    line = f"  {click.style(result.outcome.value.upper().ljust(9), fg=colour, bold=True)} "
    line += f"{result.name} → {result.config_name}"
    if result.outcome == Outcome.succeeded:
        details = [f"{result.attempts} attempt(s)", f"verify: {result.verification.value}"]
        if result.created:
            details.insert(0, "created")
        line += f" ({', '.join(details)})"
    elif result.message:
        line += f" – {result.message}"
    click.echo(line)
    for warning in result.warnings:
        click.echo(f"            {click.style('⚠ ' + warning, fg='yellow')}")


def _echo_summary(summary: RunSummary) -> None:
    click.echo()
    click.echo(click.style("Summary", bold=True))
    if summary.tier:
        click.echo(f"  Tier:      {summary.tier}")
    if summary.pruned is not None and (summary.pruned.deleted or summary.pruned.failed):
        click.echo(f"  Pruned:    {', '.join(summary.pruned.deleted) or '-'}")
        if summary.pruned.failed:
            click.echo(
                f"  {click.style('Not pruned', fg='yellow')}: {', '.join(summary.pruned.failed)}"
            )
    click.echo(f"  Succeeded: {', '.join(summary.succeeded) or '-'}")
    click.echo(f"  Skipped:   {', '.join(summary.skipped) or '-'}")
    failed = ", ".join(summary.failed) or "-"
    click.echo(f"  Failed:    {click.style(failed, fg='red') if summary.failed else failed}")


@click.group()
@click.version_option(version=__version__, prog_name="apic-rulesets")
def cli() -> None:
    """Deploy Spectral rulesets to Azure API Center."""


@cli.command()
@click.argument(
    "source",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@_scope_options
@click.option(
    "--api-type",
    type=click.Choice([t.value for t in ApiType]),
    default=None,
    help="Only deploy rulesets targeting this API type.",
)
@click.option("--config-name", help="Target config name (single ruleset directory only).")
@click.option("--location", help="Azure region used to create the service when missing.")
@click.option(
    "--sku",
    type=click.Choice(list(azure_api.SERVICE_SKUS)),
    default="Free",
    show_default=True,
    help="SKU used when creating the service.",
)
@click.option(
    "--tier-policy",
    type=click.Choice([p.value for p in TierPolicy]),
    default=None,
    help="How to handle the tier's analyzer config limit [default: prune].",
)
@click.option(
    "--tier",
    type=click.Choice(list(azure_api.SERVICE_SKUS)),
    default=None,
    help="Tier to plan capacity for [default: the service's SKU].",
)
@click.option(
    "--prune/--no-prune",
    default=None,
    help="Delete stale configs [default: prune, except for a single ruleset directory].",
)
@click.option(
    "--verify/--no-verify",
    default=True,
    show_default=True,
    help="Export each ruleset after import and compare it with the source.",
)
def deploy(
    source: Path,
    api_type: str | None,
    config_name: str | None,
    location: str | None,
    sku: str,
    tier_policy: str | None,
    tier: str | None,
    prune: bool | None,
    verify: bool,
    verbose: bool,
    **scope_overrides: Any,
) -> None:
    """Package and deploy the rulesets found in SOURCE."""
    from apic_rulesets.orchestrator import DeployOptions, collect_rulesets, deploy_rulesets

    settings = _load_settings(verbose, tier_policy=tier_policy, **scope_overrides)
    scope = settings.scope()

    try:
        rulesets = collect_rulesets(source, config_name)
        observed_tier = azure_api.ensure_service(
            scope,
            location,
            sku,
            poll_interval=settings.poll_interval,
            max_polls=settings.max_polls,
        )
    except (ApicRulesetsError, FileNotFoundError, ValueError, requests.RequestException) as exc:
        raise click.ClickException(str(exc)) from exc

    if not rulesets:
        click.echo(click.style(f"No rulesets found under {source}", fg="yellow"))
        return

    tier = tier or observed_tier
    click.echo(
        f"✦ Deploying {len(rulesets)} ruleset(s) to "
        f"{click.style(settings.service_name, fg='cyan', bold=True)} ({tier} tier)"
    )
    options = DeployOptions(
        api_type=ApiType(api_type) if api_type else None,
        tier=tier,
        tier_policy=settings.tier_policy,
        prune=prune,
        verify=verify,
    )
    summary = deploy_rulesets(settings, rulesets, options, progress=_echo_result)
    _echo_summary(summary)
    try:
        summary.raise_for_failures()
    except DeploymentError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("list")
@_scope_options
def list_configs(verbose: bool, **scope_overrides: Any) -> None:
    """List the analyzer configs on the service."""
    settings = _load_settings(verbose, **scope_overrides)
    try:
        configs = azure_api.list_analyzer_configs(settings.scope())
    except requests.RequestException as exc:
        raise click.ClickException(str(exc)) from exc

    if not configs:
        click.echo("No analyzer configs found.")
        return
    for config in sorted(configs, key=lambda c: c.get("name", "")):
        props = config.get("properties", {})
        name = config.get("name", "?")
        marker = " (protected)" if name in settings.protected_configs else ""
        click.echo(
            f"{click.style(name, fg='cyan')}{marker}  "
            f"engine={props.get('analyzerType', '?')}  "
            f"state={props.get('state') or props.get('provisioningState', '?')}"
        )


@cli.command()
@click.argument("name")
@_scope_options
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="File to write the ruleset to [default: stdout].",
)
def export(name: str, output: Path | None, verbose: bool, **scope_overrides: Any) -> None:
    """Export the ruleset file of analyzer config NAME."""
    from apic_rulesets.packaging import read_rule_file

    settings = _load_settings(verbose, **scope_overrides)
    try:
        envelope = azure_api.export_ruleset(
            settings.scope(),
            name,
            poll_interval=settings.poll_interval,
            max_polls=settings.max_polls,
        )
        content = read_rule_file(envelope.get("value") or "")
    except (ApicRulesetsError, ValueError, requests.RequestException) as exc:
        raise click.ClickException(f"Could not export {name}: {exc}") from exc

    if output is None:
        click.echo(content.decode("utf-8"), nl=False)
    else:
        output.write_bytes(content)
        click.echo(f"Wrote {name} ruleset to {output}")


@cli.command()
@click.argument("name")
@_scope_options
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
def delete(name: str, yes: bool, verbose: bool, **scope_overrides: Any) -> None:
    """Delete analyzer config NAME."""
    settings = _load_settings(verbose, **scope_overrides)
    if name.lower() in {p.lower() for p in settings.protected_configs}:
        raise click.ClickException(f"{name} is a protected analyzer config")
    if not yes:
        click.confirm(f"Delete analyzer config {name}?", abort=True)
    try:
        deleted = azure_api.delete_analyzer_config(settings.scope(), name)
    except requests.RequestException as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Deleted {name}" if deleted else f"{name} does not exist")
