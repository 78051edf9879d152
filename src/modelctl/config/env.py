"""Environment variable settings for modelctl itself.

These settings control the tool, not the providers it manages. They are read
from ``MODELCTL_*`` environment variables.

Environment Variables:
    MODELCTL_ALL_PROVIDERS: Set to exactly ``1`` to enable provider types that
        are known but not supported in this build.
    MODELCTL_CONFIG: Explicit path of the settings file.
    MODELCTL_LOG_LEVEL: Log level for the CLI (default: WARNING).
    MODELCTL_LOG_FORMAT: ``text`` or ``json`` (default: text).
    MODELCTL_SECRET_<KEY>: Read-only secret backend, see
        :mod:`modelctl.secrets.store`.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from modelctl.exceptions import InvalidInputError

__all__ = ["ENV_PREFIX", "EnvSettings", "load_env_settings"]

ENV_PREFIX = "MODELCTL_"


class EnvSettings(BaseSettings):
    """modelctl settings loaded from the environment.

    Example:
        >>> settings = load_env_settings({"MODELCTL_ALL_PROVIDERS": "1"})
        >>> settings.all_providers_enabled
        True
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
    )

    all_providers: str = Field(
        default="",
        description="Escape hatch for unsupported provider types; only '1' enables it",
    )
    config: str | None = Field(
        default=None,
        description="Explicit settings file path",
    )
    log_level: str | None = Field(
        default=None,
        description="CLI log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="CLI log record format",
    )

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: Any) -> Any:
        """Accept any case and surrounding whitespace, e.g. ``JSON``."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def all_providers_enabled(self) -> bool:
        """Whether the escape hatch is set.

        Other truthy spellings such as ``true`` or ``yes`` are deliberately
        not accepted.
        """
        return self.all_providers == "1"


def load_env_settings(environ: Mapping[str, str] | None = None) -> EnvSettings:
    """Load settings from ``environ``, or from the process environment.

    Args:
        environ: Explicit environment mapping. When given, the process
            environment is not consulted at all.

    Returns:
        Validated EnvSettings instance.

    Raises:
        InvalidInputError: If a ``MODELCTL_*`` variable has an invalid value.
    """
    try:
        if environ is None:
            return EnvSettings()

        values: dict[str, str] = {}
        for key, value in environ.items():
            if not key.upper().startswith(ENV_PREFIX):
                continue
            field = key[len(ENV_PREFIX) :].lower()
            if field in EnvSettings.model_fields:
                values[field] = value
        # model_validate skips the settings sources, so only ``environ`` is used
        return EnvSettings.model_validate(values)
    except ValidationError as e:
        problems = [
            f"{ENV_PREFIX}{'_'.join(str(part) for part in error['loc']).upper()}: {error['msg']}"
            for error in e.errors()
        ]
        raise InvalidInputError(
            f"invalid environment setting ({'; '.join(problems)})",
            suggestions=["Fix or unset the variable and retry"],
        ) from e
