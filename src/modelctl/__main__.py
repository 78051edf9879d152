"""CLI entry point for modelctl."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click

from modelctl import __version__
from modelctl.cli.model import model
from modelctl.cli.output import fail, print_warning
from modelctl.cli.prompts import ClickPrompter
from modelctl.cli.provider import provider
from modelctl.config.diagnostics import collect_warnings
from modelctl.config.env import load_env_settings
from modelctl.context import AppContext
from modelctl.exceptions import ModelctlError
from modelctl.log import configure_logging
from modelctl.paths import PathResolver
from modelctl.secrets.store import KeyringSecretStore

logger = logging.getLogger(__name__)


def build_context(config_path: Path | None) -> AppContext:
    """Assemble the context for a real invocation."""
    return AppContext(
        paths=PathResolver(config_override=config_path),
        secrets=KeyringSecretStore(),
        environ=os.environ,
        prompter=ClickPrompter(),
        interactive=sys.stdin.isatty() and sys.stdout.isatty(),
    )


@click.group(invoke_without_command=True)
@click.option("--json", "json_output", is_flag=True, help="Print machine-readable JSON")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (default: $MODELCTL_CONFIG or <config-dir>/settings.yaml)",
)
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug)")
@click.version_option(__version__, prog_name="modelctl")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    config_path: Path | None,
    verbose: int,
) -> None:
    """modelctl - manage LLM providers, models and tiers."""
    ctx.ensure_object(dict)
    if json_output:
        ctx.obj["json"] = True

    app: AppContext | None = ctx.obj.get("app")
    if app is None:
        app = build_context(config_path)
        ctx.obj["app"] = app
    elif config_path is not None:
        app.paths.config_override = config_path

    try:
        env = load_env_settings(app.environ)
    except ModelctlError as e:
        fail("modelctl", e)
    configure_logging(verbose, level=env.log_level, fmt=env.log_format)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    # Surface document problems once per invocation without failing it
    try:
        config = app.load_config()
    except ModelctlError as e:
        logger.debug(f"Skipping diagnostics: {e.message}")
        return
    for warning in collect_warnings(config):
        print_warning(f"{warning.message} [{warning.code}]")


cli.add_command(provider)
cli.add_command(model)


def main() -> None:
    """Main entry point for modelctl CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
