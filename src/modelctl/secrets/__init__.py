"""Credential storage and the ``$secret:`` / ``$env:`` reference format."""

from modelctl.secrets.references import (
    SecretReference,
    env_reference,
    is_reference,
    mask_secret,
    parse_reference,
    provider_secret_key,
    resolve_api_key,
    secret_reference,
)
from modelctl.secrets.store import (
    ChainedSecretStore,
    EnvSecretStore,
    KeyringSecretStore,
    MemorySecretStore,
    SecretStore,
    keychain_remediation,
)

__all__ = [
    "ChainedSecretStore",
    "EnvSecretStore",
    "KeyringSecretStore",
    "MemorySecretStore",
    "SecretReference",
    "SecretStore",
    "env_reference",
    "is_reference",
    "keychain_remediation",
    "mask_secret",
    "parse_reference",
    "provider_secret_key",
    "resolve_api_key",
    "secret_reference",
]
