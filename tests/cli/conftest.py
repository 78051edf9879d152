"""Fixtures for command line tests."""

from __future__ import annotations

import json
from typing import Any, Callable

import pytest
from click.testing import CliRunner, Result

from modelctl.__main__ import cli
from modelctl.context import AppContext


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def invoke(runner: CliRunner, app: AppContext) -> Callable[..., Result]:
    """Run the CLI against the test context."""

    def run(*args: str, input: str | None = None) -> Result:
        return runner.invoke(cli, list(args), obj={"app": app}, input=input)

    return run


@pytest.fixture
def invoke_json(invoke: Callable[..., Result]) -> Callable[..., tuple[Result, dict[str, Any]]]:
    """Run the CLI with ``--json`` and decode stdout."""

    def run(*args: str) -> tuple[Result, dict[str, Any]]:
        result = invoke("--json", *args)
        return result, json.loads(result.stdout)

    return run
