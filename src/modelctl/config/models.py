"""Pydantic models for the modelctl settings document.

The document lives at ``<config-dir>/settings.yaml``. Only the provider,
model, tier and agent-mapping sections are interpreted by modelctl; the
``log``, ``llm``, ``security``, ``daemon`` and ``workspaces`` sections belong
to downstream consumers and are carried through load/save unchanged.

Every section accepts unknown keys (``extra="allow"``) so that a document
written by a newer release round-trips without losing data.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
)

__all__ = [
    "SUPPORTED_VERSIONS",
    "Config",
    "DaemonAuthConfig",
    "DaemonConfig",
    "LLMConfig",
    "LogConfig",
    "ModelConfig",
    "ProviderConfig",
    "SecurityConfig",
    "parse_duration",
]

CURRENT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({CURRENT_VERSION})

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> float:
    """Parse a duration string such as ``30s``, ``5m`` or ``1h30m``.

    Args:
        value: Duration made of ``<number><unit>`` parts, units ``ms``,
            ``s``, ``m`` and ``h``.

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    text = value.strip()
    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if not text or position != len(text):
        raise ValueError(f"invalid duration {value!r} (expected e.g. 30s, 5m, 1h30m)")
    return total


def _empty_if_none(value: Any) -> Any:
    return {} if value is None else value


def _duration_to_str(value: Any) -> Any:
    # Bare numbers are kept as text so validation can report the missing unit
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class _Section(BaseModel):
    """Base for all document sections.

    Unknown keys are preserved, and declared optional fields that are unset
    are left out of the dump so absent keys stay absent.
    """

    model_config = ConfigDict(
        extra="allow",
        validate_assignment=True,
    )

    @model_serializer(mode="wrap")
    def _drop_unset(self, serializer: Any) -> dict[str, Any]:
        data: dict[str, Any] = serializer(self)
        declared = type(self).model_fields
        return {
            key: value
            for key, value in data.items()
            if not (value is None and key in declared)
        }


class ModelConfig(_Section):
    """Metadata for a single model. Zero means unknown."""

    context_window: int = Field(
        default=0,
        ge=0,
        description="Context window in tokens (0 = unknown)",
    )
    input_price_per_mtok: float = Field(
        default=0.0,
        ge=0,
        description="Input price in USD per million tokens (0 = unknown)",
    )
    output_price_per_mtok: float = Field(
        default=0.0,
        ge=0,
        description="Output price in USD per million tokens (0 = unknown)",
    )

    @model_serializer(mode="wrap")
    def _drop_unset(self, serializer: Any) -> dict[str, Any]:
        data: dict[str, Any] = serializer(self)
        declared = type(self).model_fields
        return {
            key: value
            for key, value in data.items()
            if not (key in declared and not value)
        }


class ProviderConfig(_Section):
    """A configured provider.

    ``api_key`` is never a literal credential on disk; it holds a
    ``$secret:<key>`` or ``$env:<NAME>`` reference.
    """

    type: str = Field(
        default="",
        description="Provider type: claude-code, anthropic, openai or ollama",
    )
    api_key: str | None = Field(
        default=None,
        description="Secret reference for the API key",
    )
    base_url: str | None = Field(
        default=None,
        description="Override for the provider API endpoint",
    )
    models: dict[str, ModelConfig] = Field(
        default_factory=dict,
        description="Registered models keyed by model name",
    )

    @field_validator("models", mode="before")
    @classmethod
    def _models_default(cls, v: Any) -> Any:
        return _empty_if_none(v)


class LogConfig(_Section):
    """Daemon logging settings."""

    level: str | None = Field(default=None, description="debug, info, warn or error")
    format: str | None = Field(default=None, description="json or text")
    add_source: bool | None = Field(
        default=None, description="Include source location in records"
    )


class LLMConfig(_Section):
    """Defaults used by the runtime when calling providers."""

    default_timeout: str | None = Field(
        default=None, description="Per-request timeout, e.g. 5m"
    )
    max_retries: int | None = Field(
        default=None, description="Retry attempts for failed requests"
    )
    retry_backoff: str | None = Field(
        default=None, description="Initial backoff between retries"
    )

    @field_validator("default_timeout", "retry_backoff", mode="before")
    @classmethod
    def _durations(cls, v: Any) -> Any:
        return _duration_to_str(v)


class SecurityConfig(_Section):
    """Security profile selection; the profiles themselves are external."""

    default_profile: str | None = Field(
        default=None, description="Name of the default security profile"
    )


class DaemonAuthConfig(_Section):
    """Authentication for the daemon control API."""

    enabled: bool | None = Field(default=None, description="Require authentication")
    allow_unix_socket: bool | None = Field(
        default=None, description="Trust connections over the unix socket"
    )


class DaemonConfig(_Section):
    """Settings for the background daemon."""

    auto_start: bool | None = Field(default=None)
    socket_path: str | None = Field(default=None)
    port: int | None = Field(
        default=None, description="Optional TCP port, 1024-65535"
    )
    data_dir: str | None = Field(default=None)
    idle_timeout: str | None = Field(default=None)
    default_timeout: str | None = Field(default=None)
    shutdown_timeout: str | None = Field(default=None)
    drain_timeout: str | None = Field(default=None)
    run_retention: str | None = Field(default=None)
    max_concurrent_runs: int | None = Field(default=None)
    auth: DaemonAuthConfig = Field(default_factory=DaemonAuthConfig)

    @field_validator(
        "idle_timeout",
        "default_timeout",
        "shutdown_timeout",
        "drain_timeout",
        "run_retention",
        mode="before",
    )
    @classmethod
    def _durations(cls, v: Any) -> Any:
        return _duration_to_str(v)

    @field_validator("auth", mode="before")
    @classmethod
    def _auth_default(cls, v: Any) -> Any:
        return _empty_if_none(v)


class Config(_Section):
    """Root of the settings document.

    Example:
        >>> config = Config.model_validate(
        ...     {"version": 1, "providers": {"claude": {"type": "claude-code"}}}
        ... )
        >>> config.providers["claude"].type
        'claude-code'
    """

    version: int | None = Field(default=None, description="Schema version")
    default_provider: str | None = Field(
        default=None, description="Provider used when nothing else is selected"
    )
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    tiers: dict[str, str] = Field(
        default_factory=dict,
        description="Tier name to provider/model reference",
    )
    agent_mappings: dict[str, str] = Field(
        default_factory=dict,
        description="Agent name to provider name",
    )
    acknowledged_defaults: list[str] = Field(
        default_factory=list,
        description="Warning codes the user has acknowledged",
    )
    suppress_unmapped_warnings: bool | None = Field(default=None)
    log: LogConfig = Field(default_factory=LogConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)
    workspaces: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "providers",
        "tiers",
        "agent_mappings",
        "workspaces",
        "log",
        "llm",
        "security",
        "daemon",
        mode="before",
    )
    @classmethod
    def _mapping_default(cls, v: Any) -> Any:
        return _empty_if_none(v)

    @field_validator("acknowledged_defaults", mode="before")
    @classmethod
    def _normalize_acknowledged(cls, v: Any) -> Any:
        """Treat acknowledged defaults as a set: sorted and de-duplicated."""
        if v is None:
            return []
        if isinstance(v, (list, tuple, set, frozenset)):
            return sorted({str(item) for item in v})
        return v

    def provider_names(self) -> list[str]:
        """Return configured provider names in sorted order."""
        return sorted(self.providers)
