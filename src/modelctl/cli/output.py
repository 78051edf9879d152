"""Rendering helpers shared by the command groups.

Human output goes to stdout through click or rich; errors, warnings and
suggestions go to stderr. In JSON mode every command prints exactly one
envelope object, on success and on failure.
"""

from __future__ import annotations

import functools
import json
import re
import sys
from typing import Any, Callable, Iterable, NoReturn, TypeVar

import click
from rich.console import Console
from rich.table import Table

from modelctl.exceptions import ModelctlError, UserAbortedError

F = TypeVar("F", bound=Callable[..., Any])

JSON_VERSION = "1.0"
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def wants_json(ctx: click.Context | None = None) -> bool:
    ctx = ctx or click.get_current_context()
    obj = ctx.find_object(dict)
    return bool(obj and obj.get("json"))


def _enable_json(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if value:
        ctx.ensure_object(dict)["json"] = True


def json_option(f: F) -> F:
    """``--json`` on a single command, equivalent to the global flag."""
    return click.option(
        "--json",
        "json_output",
        is_flag=True,
        expose_value=False,
        callback=_enable_json,
        help="Print machine-readable JSON",
    )(f)


def error_code(exc: BaseException) -> str:
    """Stable identifier for an error, e.g. ``provider_not_found``."""
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    name = type(exc).__name__.removesuffix("Error")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def error_entry(exc: BaseException) -> dict[str, Any]:
    message = exc.message if isinstance(exc, ModelctlError) else str(exc)
    suggestions = exc.suggestions if isinstance(exc, ModelctlError) else []
    return {
        "code": error_code(exc),
        "message": message,
        "suggestion": "; ".join(suggestions) if suggestions else None,
    }


def emit_json(
    command: str,
    payload: dict[str, Any] | None = None,
    success: bool = True,
    errors: Iterable[dict[str, Any]] = (),
) -> None:
    """Print the envelope ``{"@version", "command", "success", ..., "errors"}``."""
    envelope: dict[str, Any] = {
        "@version": JSON_VERSION,
        "command": command,
        "success": success,
    }
    envelope.update(payload or {})
    envelope["errors"] = list(errors)
    click.echo(json.dumps(envelope, indent=2, default=str))


def print_error(exc: ModelctlError) -> None:
    click.echo(f"Error: {exc.message}", err=True)
    for suggestion in exc.suggestions:
        click.echo(f"  {suggestion}", err=True)


def print_warning(message: str) -> None:
    click.echo(f"Warning: {message}", err=True)


def print_warnings(messages: Iterable[str]) -> None:
    for message in messages:
        print_warning(message)


def print_modify(path: str, description: str) -> None:
    """Dry-run line describing a change to a file."""
    click.echo(f"MODIFY: {path} - {description}")


def make_table(title: str | None, *columns: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for column in columns:
        table.add_column(column, overflow="fold")
    return table


def print_table(table: Table) -> None:
    # Piped output is not wrapped at 80 columns
    width = None if sys.stdout.isatty() else 200
    Console(file=sys.stdout, width=width).print(table)


def handle_errors(command: str) -> Callable[[F], F]:
    """Turn modelctl errors into the standard failure output and exit codes.

    Exit code 1 for failures, 130 when the user interrupts a prompt.
    """

    def decorator(f: F) -> F:
        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return f(*args, **kwargs)
            except KeyboardInterrupt:
                fail(command, UserAbortedError())
            except ModelctlError as e:
                fail(command, e)

        return wrapper  # type: ignore[return-value]

    return decorator


def fail(command: str, exc: ModelctlError) -> NoReturn:
    """Report ``exc`` in the current output mode and exit."""
    if not isinstance(exc, UserAbortedError):
        exc.with_context(command)
    if wants_json():
        emit_json(command, success=False, errors=[error_entry(exc)])
    else:
        print_error(exc)
    sys.exit(EXIT_INTERRUPTED if isinstance(exc, UserAbortedError) else EXIT_FAILURE)
