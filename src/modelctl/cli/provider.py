"""``modelctl provider`` commands."""

from __future__ import annotations

import sys

import click

from modelctl.cli import get_app
from modelctl.cli.output import (
    EXIT_FAILURE,
    emit_json,
    handle_errors,
    json_option,
    make_table,
    print_modify,
    print_table,
    print_warning,
    print_warnings,
    wants_json,
)
from modelctl.cli.model import render_discovery
from modelctl.exceptions import InvalidInputError
from modelctl.providers.registry import get_visible_provider_types, is_known_provider
from modelctl.services.interactive import interactive_add
from modelctl.services.providers import (
    AddProviderResult,
    ProviderRow,
    add_provider,
    edit_provider,
    list_providers,
    remove_provider,
    run_provider_tests,
    set_default_provider,
)


@click.group()
def provider() -> None:
    """Manage LLM providers."""
    pass


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def _render_added(result: AddProviderResult) -> None:
    if result.dry_run is not None:
        print_modify(result.dry_run.path, result.dry_run.description)
        for problem in result.dry_run.problems:
            print_warning(f"{problem}; the change would be rejected")
        return
    click.echo(f"Added provider '{result.name}' (type: {result.type})")
    if result.api_key:
        click.echo(f"  API key:  {result.api_key}")
    if result.base_url:
        click.echo(f"  Base URL: {result.base_url}")
    if result.models:
        click.echo(f"  Models:   {', '.join(result.models)}")
    if result.set_as_default:
        click.echo("  Set as default provider")


@provider.command("add")
@click.argument("name", required=False)
@click.option("--type", "provider_type", help="Provider type (e.g. anthropic, ollama)")
@click.option("--api-key", help="API key (visible in shell history; prefer --api-key-env)")
@click.option("--api-key-env", metavar="NAME", help="Environment variable holding the API key")
@click.option("--base-url", help="Override the provider endpoint")
@click.option("--dry-run", is_flag=True, help="Show the change without writing it")
@json_option
@handle_errors("provider add")
def add_command(
    name: str | None,
    provider_type: str | None,
    api_key: str | None,
    api_key_env: str | None,
    base_url: str | None,
    dry_run: bool,
) -> None:
    """Register a provider.

    NAME defaults to the provider type. Without --type, NAME is used as the
    type when it names one; otherwise an interactive terminal walks through
    the setup.
    """
    app = get_app()
    if provider_type is None:
        if name and is_known_provider(name):
            provider_type = name
        elif app.can_prompt and not (dry_run or api_key or api_key_env or base_url):
            show = None if wants_json() else render_discovery
            guided = interactive_add(app, name, show_discovery=show)
            print_warnings(guided.added.warnings + guided.warnings)
            if wants_json():
                emit_json("provider add", {"provider": guided.to_dict()})
                return
            _render_added(guided.added)
            if guided.discovery and guided.discovery.registered:
                click.echo(f"  Registered {len(guided.discovery.registered)} discovered model(s)")
            return
        else:
            visible = ", ".join(get_visible_provider_types(app.environ))
            raise InvalidInputError(
                "--type is required",
                suggestions=[f"Available types: {visible}"],
            )

    result = add_provider(
        app,
        name,
        provider_type,
        api_key=api_key,
        api_key_env=api_key_env,
        base_url=base_url,
        dry_run=dry_run,
    )
    print_warnings(result.warnings)
    if wants_json():
        emit_json("provider add", {"provider": result.to_dict()})
        return
    _render_added(result)


@provider.command("remove")
@click.argument("name")
@click.option("--force", is_flag=True, help="Also remove tier and agent mappings that use it")
@json_option
@handle_errors("provider remove")
def remove_command(name: str, force: bool) -> None:
    """Remove a provider."""
    result = remove_provider(get_app(), name, force=force)
    print_warnings(result.warnings)
    if wants_json():
        emit_json("provider remove", {"provider": result.to_dict()})
        return
    if result.cancelled:
        click.echo("Cancelled.")
        return
    click.echo(f"Removed provider '{name}'")
    if result.removed_tiers:
        click.echo(f"  Removed tier mappings: {', '.join(result.removed_tiers)}")
    if result.removed_agent_mappings:
        click.echo(f"  Removed agent mappings: {', '.join(result.removed_agent_mappings)}")


@provider.command("edit")
@click.argument("name")
@click.option("--api-key", help="New API key (visible in shell history)")
@click.option("--api-key-env", metavar="NAME", help="Environment variable holding the new key")
@click.option("--base-url", help="New endpoint; pass an empty string to restore the default")
@json_option
@handle_errors("provider edit")
def edit_command(
    name: str, api_key: str | None, api_key_env: str | None, base_url: str | None
) -> None:
    """Change a provider's credential or endpoint."""
    result = edit_provider(
        get_app(), name, api_key=api_key, api_key_env=api_key_env, base_url=base_url
    )
    print_warnings(result.warnings)
    if wants_json():
        emit_json("provider edit", {"provider": result.to_dict()})
        return
    click.echo(f"Updated provider '{name}'")
    for change in result.changes:
        click.echo(f"  {change}")


def _status(row: ProviderRow) -> str:
    if row.health is None:
        return "UNKNOWN"
    if row.health.healthy:
        return "OK"
    return f"ERROR: {row.health.short_error()}"


@provider.command("list")
@json_option
@handle_errors("provider list")
def list_command() -> None:
    """List providers with a quick health check."""
    rows = list_providers(get_app())
    if wants_json():
        emit_json("provider list", {"providers": [row.to_dict() for row in rows]})
        return
    if not rows:
        click.echo("No providers configured.")
        click.echo("Add one with 'modelctl provider add <name> --type <type>'")
        return
    table = make_table("Providers", "Name", "Type", "Default", "Status")
    for row in rows:
        table.add_row(row.name, row.type, "*" if row.is_default else "", _status(row))
    print_table(table)


@provider.command("test")
@click.argument("name", required=False)
@click.option("--all", "all_providers", is_flag=True, help="Test every configured provider")
@json_option
@handle_errors("provider test")
def test_command(name: str | None, all_providers: bool) -> None:
    """Check that providers are configured, authenticated and working."""
    reports = run_provider_tests(get_app(), name=name, all_providers=all_providers)
    failed = [report for report in reports if not report.result.healthy]

    if wants_json():
        emit_json(
            "provider test",
            {"results": [report.to_dict() for report in reports]},
            success=not failed,
            errors=[
                {
                    "code": report.result.kind.value if report.result.kind else "probe_failed",
                    "message": f"{report.name}: {report.result.error}",
                    "suggestion": None,
                }
                for report in failed
            ],
        )
    else:
        for report in reports:
            result = report.result
            click.echo(f"{report.name} ({report.type})")
            click.echo(f"  configured:    {_yes_no(result.configured)}")
            click.echo(f"  authenticated: {_yes_no(result.authenticated)}")
            click.echo(f"  working:       {_yes_no(result.working)}")
            click.echo(f"  latency:       {result.latency_ms} ms")
            if result.version:
                click.echo(f"  version:       {result.version}")
            if result.error:
                click.echo(f"  error:         {result.error}")
        if failed:
            click.echo(
                f"Error: provider test: {len(failed)} of {len(reports)} provider(s) failed",
                err=True,
            )

    if failed:
        sys.exit(EXIT_FAILURE)


@provider.command("set-default")
@click.argument("name")
@json_option
@handle_errors("provider set-default")
def set_default_command(name: str) -> None:
    """Make NAME the default provider."""
    previous = set_default_provider(get_app(), name)
    if wants_json():
        emit_json("provider set-default", {"default_provider": name, "previous": previous})
        return
    suffix = f" (was {previous})" if previous and previous != name else ""
    click.echo(f"Default provider: {name}{suffix}")
