"""Secret storage backends.

The operations layer only depends on the :class:`SecretStore` protocol.
Backends:

- :class:`KeyringSecretStore`: the OS keychain through ``keyring``
  (macOS Keychain, Secret Service/KWallet on Linux, Windows Credential
  Manager)
- :class:`EnvSecretStore`: read-only ``MODELCTL_SECRET_<KEY>`` variables for
  CI and headless hosts
- :class:`MemorySecretStore`: in-process dictionary for dry-runs and tests
- :class:`ChainedSecretStore`: reads through several stores in order
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Mapping, Protocol, runtime_checkable

import keyring
import keyring.errors
from keyring.backends import fail

from modelctl.exceptions import SecretStoreFailureError, SecretStoreUnavailableError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_SERVICE",
    "ENV_SECRET_PREFIX",
    "ChainedSecretStore",
    "EnvSecretStore",
    "KeyringSecretStore",
    "MemorySecretStore",
    "SecretStore",
    "env_secret_name",
    "keychain_remediation",
]

DEFAULT_SERVICE = "modelctl"
ENV_SECRET_PREFIX = "MODELCTL_SECRET_"
_PROBE_KEY = "__modelctl_probe__"


@runtime_checkable
class SecretStore(Protocol):
    """Capability for storing credential material."""

    writable: bool

    def available(self) -> bool:
        """Report whether the backend can be used right now."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        ...

    def get(self, key: str) -> str | None:
        """Return the value under ``key``, or None if absent."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        ...


def keychain_remediation(platform: str | None = None) -> list[str]:
    """Platform-specific hints for an unreachable keychain.

    Args:
        platform: A ``sys.platform`` value; defaults to the current one.
    """
    platform = platform or sys.platform
    if platform == "darwin":
        hints = [
            "Open Keychain Access and make sure the login keychain is unlocked",
        ]
    elif platform.startswith("win"):
        hints = [
            "Check that the Credential Manager service is running "
            "(services.msc > Credential Manager)",
        ]
    else:
        hints = [
            "Start the system secret service (gnome-keyring-daemon or KWallet)",
            "On headless hosts, install a keyring backend such as keyrings.alt",
        ]
    hints.append("Alternatively pass --api-key-env NAME to reference an environment variable")
    return hints


class KeyringSecretStore:
    """Secret store backed by the OS keychain.

    Example:
        >>> store = KeyringSecretStore()
        >>> if store.available():
        ...     store.set("providers/anthropic/api_key", "sk-ant-...")
    """

    writable = True

    def __init__(
        self,
        service: str = DEFAULT_SERVICE,
        backend: Any | None = None,
        platform: str | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            service: Keychain service name all entries are filed under.
            backend: A keyring backend; defaults to ``keyring.get_keyring()``.
            platform: Override for remediation text selection.
        """
        self.service = service
        self._backend = backend
        self._platform = platform
        self._available: bool | None = None

    @property
    def backend(self) -> Any:
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    def available(self) -> bool:
        if self._available is None:
            self._available = self._probe()
        return self._available

    def _probe(self) -> bool:
        try:
            backend = self.backend
            if isinstance(backend, fail.Keyring):
                logger.debug("No usable keyring backend is installed")
                return False
            # A missing probe entry still proves the keychain answers
            backend.get_password(self.service, _PROBE_KEY)
        except (keyring.errors.KeyringError, RuntimeError) as e:
            logger.debug(f"Keychain probe failed: {e}")
            return False
        return True

    def _unavailable(self) -> SecretStoreUnavailableError:
        return SecretStoreUnavailableError(
            "keychain backend not available - please ensure your system "
            "keychain is accessible",
            suggestions=keychain_remediation(self._platform),
        )

    def set(self, key: str, value: str) -> None:
        if not self.available():
            raise self._unavailable()
        try:
            self.backend.set_password(self.service, key, value)
        except keyring.errors.KeyringError as e:
            raise SecretStoreFailureError(
                f"failed to store secret '{key}' in keychain: {e}",
                suggestions=keychain_remediation(self._platform),
            ) from e
        logger.debug(f"Stored secret {key} in keychain service {self.service}")

    def get(self, key: str) -> str | None:
        if not self.available():
            raise self._unavailable()
        try:
            value: str | None = self.backend.get_password(self.service, key)
        except keyring.errors.KeyringError as e:
            raise SecretStoreFailureError(
                f"failed to read secret '{key}' from keychain: {e}",
                suggestions=keychain_remediation(self._platform),
            ) from e
        return value

    def delete(self, key: str) -> None:
        if not self.available():
            raise self._unavailable()
        try:
            self.backend.delete_password(self.service, key)
        except keyring.errors.PasswordDeleteError:
            logger.debug(f"Secret {key} was not in the keychain")
        except keyring.errors.KeyringError as e:
            raise SecretStoreFailureError(
                f"failed to delete secret '{key}' from keychain: {e}",
                suggestions=keychain_remediation(self._platform),
            ) from e


def env_secret_name(key: str) -> str:
    """Environment variable consulted for secret ``key``.

    Example:
        >>> env_secret_name("providers/anthropic/api_key")
        'MODELCTL_SECRET_PROVIDERS_ANTHROPIC_API_KEY'
    """
    normalized = key.upper()
    for char in "/.-":
        normalized = normalized.replace(char, "_")
    return f"{ENV_SECRET_PREFIX}{normalized}"


class EnvSecretStore:
    """Read-only store resolving secrets from ``MODELCTL_SECRET_*`` variables."""

    writable = False

    def __init__(self, environ: Mapping[str, str]) -> None:
        self.environ = environ

    def available(self) -> bool:
        return True

    def set(self, key: str, value: str) -> None:
        raise SecretStoreFailureError(
            "environment secret backend is read-only",
            suggestions=[f"Export {env_secret_name(key)} instead"],
        )

    def get(self, key: str) -> str | None:
        return self.environ.get(env_secret_name(key)) or None

    def delete(self, key: str) -> None:
        raise SecretStoreFailureError("environment secret backend is read-only")


class MemorySecretStore:
    """Dictionary-backed store.

    Used for dry-runs (so nothing reaches the keychain) and in tests. Passing
    ``available=False`` simulates a locked or missing keychain.
    """

    writable = True

    def __init__(
        self,
        values: Mapping[str, str] | None = None,
        available: bool = True,
    ) -> None:
        self.values: dict[str, str] = dict(values or {})
        self._available = available

    def available(self) -> bool:
        return self._available

    def _check(self) -> None:
        if not self._available:
            raise SecretStoreUnavailableError(
                "keychain backend not available - please ensure your system "
                "keychain is accessible",
                suggestions=keychain_remediation(),
            )

    def set(self, key: str, value: str) -> None:
        self._check()
        self.values[key] = value

    def get(self, key: str) -> str | None:
        self._check()
        return self.values.get(key)

    def delete(self, key: str) -> None:
        self._check()
        self.values.pop(key, None)


class ChainedSecretStore:
    """Reads from the first store holding a key; writes to the first writable store."""

    def __init__(self, *stores: SecretStore) -> None:
        if not stores:
            raise ValueError("ChainedSecretStore needs at least one store")
        self.stores = stores

    @property
    def writable(self) -> bool:
        return any(store.writable for store in self.stores)

    def _primary(self) -> SecretStore | None:
        for store in self.stores:
            if store.writable:
                return store
        return None

    def available(self) -> bool:
        primary = self._primary()
        return primary is not None and primary.available()

    def set(self, key: str, value: str) -> None:
        primary = self._primary()
        if primary is None:
            raise SecretStoreFailureError("no writable secret store configured")
        primary.set(key, value)

    def get(self, key: str) -> str | None:
        for store in self.stores:
            if not store.available():
                continue
            value = store.get(key)
            if value is not None:
                return value
        return None

    def delete(self, key: str) -> None:
        primary = self._primary()
        if primary is not None:
            primary.delete(key)
