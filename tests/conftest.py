"""Pytest configuration and shared fixtures for modelctl tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from modelctl.context import AppContext
from modelctl.paths import PathResolver
from modelctl.secrets.store import MemorySecretStore


class ScriptedPrompter:
    """Prompter that replays canned answers and records every question.

    An answer that is an exception instance is raised instead of returned,
    which is how tests simulate Ctrl+C at a prompt.
    """

    def __init__(
        self,
        confirms: list[Any] | None = None,
        prompts: list[Any] | None = None,
        choices: list[Any] | None = None,
    ) -> None:
        self.confirms = list(confirms or [])
        self.prompts = list(prompts or [])
        self.choices = list(choices or [])
        self.asked: list[str] = []

    @staticmethod
    def _next(queue: list[Any], message: str) -> Any:
        if not queue:
            raise AssertionError(f"unexpected prompt: {message}")
        answer = queue.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    def confirm(self, message: str, default: bool = False) -> bool:
        self.asked.append(message)
        return bool(self._next(self.confirms, message))

    def prompt(self, message: str, default: str | None = None, hide_input: bool = False) -> str:
        self.asked.append(message)
        answer = self._next(self.prompts, message)
        if answer is None:
            return default or ""
        return str(answer)

    def choose(self, message: str, choices: Any, default: str | None = None) -> str:
        self.asked.append(message)
        answer = self._next(self.choices, message)
        assert answer in choices
        return str(answer)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by CLI invocations between tests."""
    yield
    logger = logging.getLogger("modelctl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def environ(tmp_path: Path) -> dict[str, str]:
    """Environment pointing the XDG directories into ``tmp_path``."""
    return {
        "XDG_CONFIG_HOME": str(tmp_path / "config"),
        "XDG_DATA_HOME": str(tmp_path / "data"),
    }


@pytest.fixture
def paths(environ: dict[str, str], tmp_path: Path) -> PathResolver:
    return PathResolver(environ=environ, home=tmp_path / "home")


@pytest.fixture
def settings_path(paths: PathResolver) -> Path:
    return paths.settings_path()


@pytest.fixture
def secrets() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def app(paths: PathResolver, secrets: MemorySecretStore, environ: dict[str, str]) -> AppContext:
    """Non-interactive context over temporary directories and an in-memory keychain."""
    return AppContext(paths=paths, secrets=secrets, environ=environ)


@pytest.fixture
def write_settings(settings_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a settings document and return its path."""

    def write(data: dict[str, Any]) -> Path:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return settings_path

    return write


@pytest.fixture
def read_settings(settings_path: Path) -> Callable[[], dict[str, Any]]:
    def read() -> dict[str, Any]:
        return yaml.safe_load(settings_path.read_text(encoding="utf-8"))

    return read


@pytest.fixture
def anthropic_settings() -> dict[str, Any]:
    """Document with one Anthropic provider, two models and two tiers."""
    return {
        "version": 1,
        "default_provider": "anthropic",
        "providers": {
            "anthropic": {
                "type": "anthropic",
                "api_key": "$secret:providers/anthropic/api_key",
                "models": {
                    "claude-3-5-haiku-20241022": {"context_window": 200000},
                    "claude-sonnet-4-20250514": {"context_window": 200000},
                },
            }
        },
        "tiers": {
            "fast": "anthropic/claude-3-5-haiku-20241022",
            "balanced": "anthropic/claude-sonnet-4-20250514",
        },
    }


@pytest.fixture
def interactive(app: AppContext) -> Callable[..., ScriptedPrompter]:
    """Turn ``app`` interactive with scripted answers; returns the prompter."""

    def make(**answers: list[Any]) -> ScriptedPrompter:
        prompter = ScriptedPrompter(**answers)
        app.prompter = prompter
        app.interactive = True
        return prompter

    return make
