"""Opaque secret references stored in place of credentials.

Two forms are recognized in the settings document:

- ``$secret:<key>``: the value lives in the secret store under ``<key>``
- ``$env:<NAME>``: the value is read from environment variable ``NAME``

References are resolved only when a value is needed (probes, downstream
consumers); the resolved value is never written back to disk.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Mapping

from modelctl.exceptions import InvalidInputError

if TYPE_CHECKING:
    from modelctl.secrets.store import SecretStore

logger = logging.getLogger(__name__)

__all__ = [
    "ENV_REF_PREFIX",
    "SECRET_REF_PREFIX",
    "SecretReference",
    "env_reference",
    "is_reference",
    "mask_secret",
    "parse_reference",
    "provider_secret_key",
    "resolve_api_key",
    "secret_reference",
]

SECRET_REF_PREFIX = "$secret:"
ENV_REF_PREFIX = "$env:"

SECRET_KEY_PATTERN = re.compile(r"[A-Za-z0-9._/-]+")
ENV_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class SecretReference:
    """A parsed ``$secret:`` or ``$env:`` reference.

    Attributes:
        kind: ``secret`` or ``env``.
        target: Secret-store key or environment variable name.
    """

    kind: Literal["secret", "env"]
    target: str

    def __str__(self) -> str:
        prefix = SECRET_REF_PREFIX if self.kind == "secret" else ENV_REF_PREFIX
        return f"{prefix}{self.target}"


def is_reference(value: str | None) -> bool:
    """Return True if ``value`` uses one of the reference prefixes."""
    return bool(value) and (
        value.startswith(SECRET_REF_PREFIX) or value.startswith(ENV_REF_PREFIX)
    )


def parse_reference(value: str) -> SecretReference:
    """Parse a reference string.

    Raises:
        InvalidInputError: If ``value`` is not a well-formed reference.
    """
    if value.startswith(SECRET_REF_PREFIX):
        key = value[len(SECRET_REF_PREFIX) :]
        if not SECRET_KEY_PATTERN.fullmatch(key):
            raise InvalidInputError(f"malformed secret reference '{value}'")
        return SecretReference("secret", key)
    if value.startswith(ENV_REF_PREFIX):
        name = value[len(ENV_REF_PREFIX) :]
        if not ENV_NAME_PATTERN.fullmatch(name):
            raise InvalidInputError(f"malformed environment reference '{value}'")
        return SecretReference("env", name)
    raise InvalidInputError(
        "value is not a secret reference",
        suggestions=["Use $secret:<key> or $env:<NAME>"],
    )


def secret_reference(key: str) -> str:
    """Build a ``$secret:<key>`` reference."""
    return str(SecretReference("secret", key))


def env_reference(name: str) -> str:
    """Build a ``$env:<NAME>`` reference."""
    return str(SecretReference("env", name))


def provider_secret_key(provider: str) -> str:
    """Secret-store key under which a provider's API key is kept."""
    return f"providers/{provider}/api_key"


def resolve_api_key(
    value: str | None,
    store: SecretStore | None,
    environ: Mapping[str, str],
) -> str | None:
    """Resolve an ``api_key`` field to the credential it stands for.

    Args:
        value: The field as found in the document.
        store: Secret store consulted for ``$secret:`` references.
        environ: Environment consulted for ``$env:`` references.

    Returns:
        The credential, or None if the field is empty or the referenced
        value is missing.

    Raises:
        InvalidInputError: If the reference is malformed.
        SecretStoreError: If the secret store fails.
    """
    if not value:
        return None
    if not is_reference(value):
        logger.warning(
            "API key is stored in plaintext in the settings file; "
            "re-add it with 'modelctl provider edit --api-key-env'"
        )
        return value
    reference = parse_reference(value)
    if reference.kind == "env":
        return environ.get(reference.target) or None
    if store is None:
        return None
    return store.get(reference.target)


def mask_secret(value: str) -> str:
    """Mask a credential for display: first 4 + ``***`` + last 4.

    Values of 8 characters or fewer are fully masked.

    Example:
        >>> mask_secret("sk-live-abcdefghijklmnop")
        'sk-l***mnop'
    """
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}***{value[-4:]}"
