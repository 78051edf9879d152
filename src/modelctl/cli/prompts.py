"""Terminal prompter backed by click."""

from __future__ import annotations

from typing import Sequence

import click

from modelctl.exceptions import UserAbortedError


class ClickPrompter:
    """Prompter that asks on the controlling terminal.

    ``click.Abort`` (Ctrl+C or EOF at a prompt) becomes
    :class:`~modelctl.exceptions.UserAbortedError`.
    """

    def confirm(self, message: str, default: bool = False) -> bool:
        try:
            return click.confirm(message, default=default)
        except (click.Abort, KeyboardInterrupt) as e:
            raise UserAbortedError() from e

    def prompt(
        self, message: str, default: str | None = None, hide_input: bool = False
    ) -> str:
        try:
            value = click.prompt(
                message,
                default=default,
                hide_input=hide_input,
                show_default=not hide_input,
            )
        except (click.Abort, KeyboardInterrupt) as e:
            raise UserAbortedError() from e
        return str(value)

    def choose(
        self, message: str, choices: Sequence[str], default: str | None = None
    ) -> str:
        try:
            value = click.prompt(
                message,
                type=click.Choice(list(choices)),
                default=default,
            )
        except (click.Abort, KeyboardInterrupt) as e:
            raise UserAbortedError() from e
        return str(value)
