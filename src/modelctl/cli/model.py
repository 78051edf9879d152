"""``modelctl model`` commands."""

from __future__ import annotations

import click

from modelctl.cli import get_app
from modelctl.cli.output import (
    emit_json,
    handle_errors,
    json_option,
    make_table,
    print_table,
    print_warnings,
    wants_json,
)
from modelctl.services.models import (
    DiscoveryResult,
    ModelRow,
    add_model,
    discover_models,
    list_models,
    model_info,
    register_discovered,
    remove_model,
    set_tier,
)

# Longer discovery results are truncated in human output
DISCOVERY_DISPLAY_LIMIT = 50


@click.group()
def model() -> None:
    """Manage models and tier assignments."""
    pass


def _format_count(value: int) -> str:
    return f"{value:,}" if value else "-"


def _format_price(value: float) -> str:
    return f"${value:.2f}" if value else "-"


@model.command("add")
@click.argument("reference", metavar="PROVIDER/MODEL")
@click.option("--context-window", type=int, help="Context window in tokens")
@click.option("--input-price", type=float, help="USD per million input tokens")
@click.option("--output-price", type=float, help="USD per million output tokens")
@json_option
@handle_errors("model add")
def add_command(
    reference: str,
    context_window: int | None,
    input_price: float | None,
    output_price: float | None,
) -> None:
    """Register a model under an existing provider."""
    added = add_model(
        get_app(),
        reference,
        context_window=context_window,
        input_price=input_price,
        output_price=output_price,
    )
    if wants_json():
        emit_json(
            "model add",
            {
                "model": {
                    "reference": reference,
                    "context_window": added.context_window,
                    "input_price_per_mtok": added.input_price_per_mtok,
                    "output_price_per_mtok": added.output_price_per_mtok,
                }
            },
        )
        return
    click.echo(f"Added model '{reference}'")


@model.command("remove")
@click.argument("reference", metavar="PROVIDER/MODEL")
@click.option("--force", is_flag=True, help="Remove even if a tier points at it")
@json_option
@handle_errors("model remove")
def remove_command(reference: str, force: bool) -> None:
    """Unregister a model."""
    result = remove_model(get_app(), reference, force=force)
    print_warnings(result.warnings)
    if wants_json():
        emit_json("model remove", {"model": result.to_dict()})
        return
    click.echo(f"Removed model '{result.reference}'")


@model.command("list")
@click.argument("provider", required=False)
@click.option("--tiers", "with_tiers", is_flag=True, help="Show the tiers bound to each model")
@json_option
@handle_errors("model list")
def list_command(provider: str | None, with_tiers: bool) -> None:
    """List registered models, sorted by provider/model."""
    rows = list_models(get_app(), provider=provider, with_tiers=with_tiers)
    if wants_json():
        emit_json("model list", {"models": [row.to_dict() for row in rows]})
        return
    if not rows:
        click.echo("No models registered.")
        return
    columns = ["Model", "Context", "Input $/MTok", "Output $/MTok"]
    if with_tiers:
        columns.append("Tiers")
    table = make_table("Models", *columns)
    for row in rows:
        cells = [
            row.reference,
            _format_count(row.config.context_window),
            _format_price(row.config.input_price_per_mtok),
            _format_price(row.config.output_price_per_mtok),
        ]
        if with_tiers:
            cells.append(", ".join(row.tiers))
        table.add_row(*cells)
    print_table(table)


def _render_info(row: ModelRow) -> None:
    click.echo(f"Model:          {row.reference}")
    click.echo(f"Provider type:  {row.provider_type}")
    click.echo(f"Context window: {_format_count(row.config.context_window)}")
    click.echo(f"Input price:    {_format_price(row.config.input_price_per_mtok)} per MTok")
    click.echo(f"Output price:   {_format_price(row.config.output_price_per_mtok)} per MTok")
    click.echo(f"Tiers:          {', '.join(row.tiers) if row.tiers else '(none)'}")


@model.command("info")
@click.argument("reference", metavar="PROVIDER/MODEL")
@json_option
@handle_errors("model info")
def info_command(reference: str) -> None:
    """Show a model's metadata and the tiers bound to it."""
    row = model_info(get_app(), reference)
    if wants_json():
        emit_json("model info", {"model": row.to_dict()})
        return
    _render_info(row)


@model.command("set-tier")
@click.argument("tier")
@click.argument("reference", metavar="PROVIDER/MODEL")
@json_option
@handle_errors("model set-tier")
def set_tier_command(tier: str, reference: str) -> None:
    """Bind TIER (fast, balanced or strategic) to PROVIDER/MODEL."""
    previous = set_tier(get_app(), tier, reference)
    if wants_json():
        emit_json("model set-tier", {"tier": tier, "reference": reference, "previous": previous})
        return
    suffix = f" (was {previous})" if previous and previous != reference else ""
    click.echo(f"Tier {tier} -> {reference}{suffix}")


@model.command("discover")
@click.argument("provider")
@click.option("--register", is_flag=True, help="Add newly discovered models to the settings")
@click.option("--yes", "-y", is_flag=True, help="Register without asking")
@json_option
@handle_errors("model discover")
def discover_command(provider: str, register: bool, yes: bool) -> None:
    """List the models a provider offers."""
    app = get_app()
    result = discover_models(app, provider)
    if wants_json():
        if register:
            register_discovered(app, result, yes=yes)
        emit_json("model discover", {"discovery": result.to_dict()})
        return

    render_discovery(result)
    if not result.models:
        return
    if register:
        register_discovered(app, result, yes=yes)

    if result.cancelled:
        click.echo("Registration cancelled.")
    elif result.registered:
        click.echo(f"Registered {len(result.registered)} new model(s) with '{provider}'")
    elif register:
        click.echo("All discovered models are already registered.")
    elif result.new_models:
        click.echo(
            f"{len(result.new_models)} new model(s); "
            f"run 'modelctl model discover {provider} --register' to add them"
        )


def render_discovery(result: DiscoveryResult) -> None:
    """Print the discovered models, marking those already in the settings."""
    if not result.models:
        click.echo(f"No models reported by '{result.provider}'.")
        return
    new = set(result.new_models)
    shown = result.models[:DISCOVERY_DISPLAY_LIMIT]
    table = make_table(f"Models available from {result.provider}", "Model", "Registered")
    for name in shown:
        table.add_row(name, "" if name in new else "yes")
    print_table(table)
    if len(result.models) > len(shown):
        click.echo(
            f"... {len(result.models) - len(shown)} more not shown "
            f"(showing {len(shown)} of {len(result.models)})"
        )
