"""Capability context handed to every operation.

Operations never read ``os.environ``, the keychain or the terminal directly;
they go through an :class:`AppContext`. The CLI builds one from the real
process state, tests build one around temporary directories and an
in-memory secret store.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Protocol, Sequence

from modelctl.config.env import EnvSettings, load_env_settings
from modelctl.config.models import Config
from modelctl.config.store import DEFAULT_LOCK_TIMEOUT, SettingsStore
from modelctl.paths import PathResolver
from modelctl.secrets.store import ChainedSecretStore, EnvSecretStore, SecretStore

__all__ = ["AppContext", "Prompter"]


class Prompter(Protocol):
    """Interactive collaborator.

    Implementations raise :class:`~modelctl.exceptions.UserAbortedError` when
    the user interrupts a prompt. Non-interactive code paths never call it.
    """

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def prompt(
        self, message: str, default: str | None = None, hide_input: bool = False
    ) -> str: ...

    def choose(
        self, message: str, choices: Sequence[str], default: str | None = None
    ) -> str: ...


@dataclass
class AppContext:
    """Everything an operation may consult besides its arguments.

    Attributes:
        paths: Config and data directory resolver.
        secrets: Writable secret store (normally the OS keychain).
        environ: Environment used for ``$env:`` references and settings.
        prompter: Interactive collaborator, or None.
        interactive: Whether prompts may be shown.
        clock: Monotonic clock.
        lock_timeout: Seconds to wait for the settings lock.
    """

    paths: PathResolver
    secrets: SecretStore
    environ: Mapping[str, str] = field(default_factory=dict)
    prompter: Prompter | None = None
    interactive: bool = False
    clock: Callable[[], float] = time.monotonic
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT

    @property
    def env(self) -> EnvSettings:
        return load_env_settings(self.environ)

    @property
    def read_secrets(self) -> SecretStore:
        """Store used when resolving references: env backend first, then ``secrets``."""
        return ChainedSecretStore(EnvSecretStore(self.environ), self.secrets)

    @property
    def can_prompt(self) -> bool:
        return self.interactive and self.prompter is not None

    def store(self) -> SettingsStore:
        return SettingsStore(
            self.paths.settings_path(),
            paths=self.paths,
            lock_timeout=self.lock_timeout,
        )

    def load_config(self) -> Config:
        """Unlocked snapshot of the settings document."""
        return self.store().load()
