"""Tests for the secret store backends."""

import keyring.errors
import pytest
from keyring.backend import KeyringBackend
from keyring.backends import fail

from modelctl.exceptions import SecretStoreFailureError, SecretStoreUnavailableError
from modelctl.secrets.store import (
    ChainedSecretStore,
    EnvSecretStore,
    KeyringSecretStore,
    MemorySecretStore,
    SecretStore,
    env_secret_name,
    keychain_remediation,
)


class DictKeyring(KeyringBackend):
    """In-memory keyring backend."""

    priority = 1

    def __init__(self, error=None):
        super().__init__()
        self.passwords = {}
        self.error = error

    def get_password(self, service, username):
        if self.error:
            raise self.error
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        if self.error:
            raise self.error
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        if (service, username) not in self.passwords:
            raise keyring.errors.PasswordDeleteError("not found")
        del self.passwords[(service, username)]


class TestKeyringSecretStore:
    """Tests for KeyringSecretStore."""

    def test_set_get_delete(self):
        backend = DictKeyring()
        store = KeyringSecretStore(backend=backend)
        assert store.available()

        store.set("providers/a/api_key", "sk-live-abcdefghijklmnop")
        assert backend.passwords[("modelctl", "providers/a/api_key")] == "sk-live-abcdefghijklmnop"
        assert store.get("providers/a/api_key") == "sk-live-abcdefghijklmnop"

        store.delete("providers/a/api_key")
        assert store.get("providers/a/api_key") is None

    def test_delete_missing_is_ignored(self):
        KeyringSecretStore(backend=DictKeyring()).delete("never/set")

    def test_fail_backend_is_unavailable(self):
        """Test that keyring's null backend reports the keychain as unavailable."""
        store = KeyringSecretStore(backend=fail.Keyring(), platform="linux")
        assert not store.available()
        with pytest.raises(SecretStoreUnavailableError) as exc_info:
            store.set("k", "value-1234")
        assert "keychain backend not available" in exc_info.value.message
        assert any("gnome-keyring" in hint for hint in exc_info.value.suggestions)

    def test_probe_error_is_unavailable(self):
        store = KeyringSecretStore(backend=DictKeyring(error=keyring.errors.KeyringLocked("locked")))
        assert not store.available()

    def test_backend_failure_after_probe(self):
        """Test that errors after a successful probe are reported as failures."""
        backend = DictKeyring()
        store = KeyringSecretStore(backend=backend)
        assert store.available()
        backend.error = keyring.errors.KeyringError("write denied")
        with pytest.raises(SecretStoreFailureError, match="write denied"):
            store.set("k", "value-1234")

    def test_implements_protocol(self):
        assert isinstance(KeyringSecretStore(backend=DictKeyring()), SecretStore)


class TestKeychainRemediation:
    """Tests for keychain_remediation."""

    @pytest.mark.parametrize(
        ("platform", "fragment"),
        [("darwin", "Keychain Access"), ("win32", "Credential Manager"), ("linux", "secret service")],
    )
    def test_platform_hints(self, platform, fragment):
        hints = keychain_remediation(platform)
        assert fragment in hints[0]
        assert "--api-key-env" in hints[-1]


class TestEnvSecretStore:
    """Tests for EnvSecretStore."""

    def test_name_mapping(self):
        assert env_secret_name("providers/my-ollama/api_key") == "MODELCTL_SECRET_PROVIDERS_MY_OLLAMA_API_KEY"

    def test_read_only(self):
        store = EnvSecretStore({"MODELCTL_SECRET_PROVIDERS_A_API_KEY": "value-1234"})
        assert store.get("providers/a/api_key") == "value-1234"
        assert store.get("providers/b/api_key") is None
        with pytest.raises(SecretStoreFailureError, match="read-only"):
            store.set("providers/a/api_key", "other")


class TestChainedSecretStore:
    """Tests for ChainedSecretStore."""

    def test_reads_in_order_and_writes_to_first_writable(self):
        env = EnvSecretStore({"MODELCTL_SECRET_FROM_ENV": "env-value"})
        memory = MemorySecretStore({"shared": "memory-value"})
        store = ChainedSecretStore(env, memory)

        assert store.get("from/env") == "env-value"
        assert store.get("shared") == "memory-value"
        store.set("new", "stored")
        assert memory.values["new"] == "stored"
        assert store.writable

    def test_skips_unavailable_stores(self):
        locked = MemorySecretStore({"k": "hidden"}, available=False)
        store = ChainedSecretStore(locked, EnvSecretStore({"MODELCTL_SECRET_K": "visible"}))
        assert store.get("k") == "visible"
        assert not store.available()

    def test_needs_a_store(self):
        with pytest.raises(ValueError):
            ChainedSecretStore()
