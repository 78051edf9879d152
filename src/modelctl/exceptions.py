"""Exception hierarchy for modelctl.

Every error raised by the settings store, the resolver, the secret store and
the provider operations derives from :class:`ModelctlError`. Each carries a
stable machine ``code`` (used in JSON output) and an optional list of
remediation ``suggestions`` that the CLI prints as indented lines below the
message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence


class ModelctlError(Exception):
    """Base exception for all modelctl errors.

    Attributes:
        message: Human readable, single-line description.
        code: Stable identifier for machine-readable output.
        suggestions: Remediation hints, one per line.
    """

    code: str = "error"

    def __init__(
        self,
        message: str,
        *,
        suggestions: Iterable[str] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions: list[str] = list(suggestions or [])
        if code is not None:
            self.code = code

    def with_context(self, operation: str) -> ModelctlError:
        """Prefix the message with the name of the failing operation."""
        if not self.message.startswith(f"{operation}: "):
            self.message = f"{operation}: {self.message}"
            self.args = (self.message,)
        return self


class InvalidInputError(ModelctlError):
    """Raised when user supplied input is rejected before any state changes."""

    code = "invalid_input"


class OperationError(ModelctlError):
    """Raised when an operation precondition does not hold.

    Example: removing a model that is still bound to a tier without
    ``--force``.
    """

    code = "operation_failed"


class UserAbortedError(ModelctlError):
    """Raised when the user cancels an interactive prompt."""

    code = "user_aborted"

    def __init__(self, message: str = "aborted by user") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Settings document
# ---------------------------------------------------------------------------


class ConfigError(ModelctlError):
    """Base exception for settings document problems."""

    code = "config_error"


class ConfigIOError(ConfigError):
    """Raised when the settings file or its lock file cannot be read or written.

    Attributes:
        path: The offending file.
        cause: The underlying operating system error.
    """

    code = "config_io"

    def __init__(self, path: Path | str, cause: BaseException | str) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"cannot access {self.path}: {cause}")


class ConfigParseError(ConfigError):
    """Raised when the settings file is not a well-formed YAML mapping."""

    code = "config_parse"

    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = Path(path)
        self.detail = detail
        super().__init__(
            f"cannot parse {self.path}: {detail}",
            suggestions=[f"Fix the YAML syntax in {self.path} and retry"],
        )


@dataclass(frozen=True)
class ValidationIssue:
    """A single configuration rule violation.

    Attributes:
        path: Dotted field path, e.g. ``providers.openai.type``.
        message: Description of the violation.
        code: Stable rule identifier, used to compare issue sets.
    """

    path: str
    message: str
    code: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class ConfigValidationError(ConfigError):
    """Raised when a document violates one or more configuration rules.

    All findings of a validation pass are collected into ``issues``.
    """

    code = "config_validation"

    def __init__(self, issues: Sequence[ValidationIssue]) -> None:
        self.issues = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"invalid configuration:\n{lines}")


class LockTimeoutError(ConfigError):
    """Raised when the settings lock cannot be acquired before the deadline."""

    code = "lock_timeout"

    def __init__(self, path: Path | str, timeout: float) -> None:
        self.path = Path(path)
        self.timeout = timeout
        super().__init__(
            f"timed out after {timeout:g}s waiting for lock {self.path}",
            suggestions=[
                "Another modelctl process is modifying the configuration",
                "Wait for it to finish and retry",
            ],
        )


# ---------------------------------------------------------------------------
# Tier and model resolution
# ---------------------------------------------------------------------------


class ResolutionError(ModelctlError):
    """Base exception for tier and model reference resolution failures."""

    code = "resolution_error"


class TierNotMappedError(ResolutionError):
    """Raised when a tier has no model reference bound to it."""

    code = "tier_not_mapped"

    def __init__(self, tier: str) -> None:
        self.tier = tier
        super().__init__(
            f"tier '{tier}' is not mapped to a model",
            suggestions=[f"Run 'modelctl model set-tier {tier} <provider/model>'"],
        )


class InvalidTierReferenceError(ResolutionError):
    """Raised when a model reference is not of the form ``provider/model``."""

    code = "invalid_tier_reference"

    def __init__(self, reference: str, reason: str = "") -> None:
        self.reference = reference
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"invalid model reference '{reference}' (expected provider/model){detail}"
        )


class ProviderNotFoundError(ResolutionError):
    """Raised when a referenced provider is not configured."""

    code = "provider_not_found"

    def __init__(self, provider: str, available: Iterable[str] = ()) -> None:
        self.provider = provider
        self.available = sorted(available)
        suggestions = []
        if self.available:
            suggestions.append(f"Available providers: {', '.join(self.available)}")
        else:
            suggestions.append("Run 'modelctl provider add' to configure one")
        super().__init__(f"provider '{provider}' not found", suggestions=suggestions)


class ModelNotFoundError(ResolutionError):
    """Raised when a referenced model is not registered under its provider."""

    code = "model_not_found"

    def __init__(self, provider: str, model: str) -> None:
        self.provider = provider
        self.model = model
        super().__init__(
            f"model '{model}' not found in provider '{provider}'",
            suggestions=[
                f"Run 'modelctl model add {provider}/{model}' or "
                f"'modelctl model discover {provider} --register'"
            ],
        )


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


class SecretStoreError(ModelctlError):
    """Base exception for secret backend problems."""

    code = "secret_store_error"


class SecretStoreUnavailableError(SecretStoreError):
    """Raised when the OS keychain cannot be reached."""

    code = "secret_store_unavailable"


class SecretStoreFailureError(SecretStoreError):
    """Raised when the keychain is reachable but an operation on it failed."""

    code = "secret_store_failure"


# ---------------------------------------------------------------------------
# URLs and probes
# ---------------------------------------------------------------------------


class URLValidationError(ModelctlError):
    """Raised when a base URL is malformed or targets a blocked host."""

    code = "url_validation"

    def __init__(self, reason: str, code: str = "invalid_url") -> None:
        self.reason = reason
        super().__init__(reason, code=code)


class ProbeFailureKind(str, Enum):
    """Classification of a failed provider probe."""

    NETWORK = "network"
    AUTH = "auth"
    TIMEOUT = "timeout"
    NOT_INSTALLED = "not_installed"
    UNSUPPORTED = "unsupported"
    CANCELLED = "cancelled"
    CONFIG = "config"


class ProbeError(ModelctlError):
    """Raised when a bounded-latency provider probe fails.

    Attributes:
        kind: What went wrong, see :class:`ProbeFailureKind`.
    """

    code = "probe_failure"

    def __init__(
        self,
        message: str,
        kind: ProbeFailureKind = ProbeFailureKind.NETWORK,
        *,
        suggestions: Iterable[str] | None = None,
    ) -> None:
        self.kind = kind
        super().__init__(message, suggestions=suggestions)
