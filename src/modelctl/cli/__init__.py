"""Command groups for the modelctl CLI."""

from __future__ import annotations

import click

from modelctl.context import AppContext

__all__ = ["get_app"]


def get_app(ctx: click.Context | None = None) -> AppContext:
    """Return the :class:`AppContext` built by the root command."""
    ctx = ctx or click.get_current_context()
    obj = ctx.find_object(dict)
    if not obj or "app" not in obj:
        raise click.UsageError("modelctl context is not initialized")
    app: AppContext = obj["app"]
    return app
