"""Default construction and defaults fill-in for the settings document.

``default_config()`` builds a fully populated document. ``apply_defaults()``
copies values from it into a loaded document wherever a field is unset, so a
minimal ``settings.yaml`` is immediately usable.

A field counts as unset when it is ``None`` or an empty string. Explicit
values, including ``0`` and ``false``, are never overwritten; out-of-range
values are reported by validation instead.
"""

from __future__ import annotations

from typing import Any

from modelctl.config.models import CURRENT_VERSION, Config
from modelctl.paths import PathResolver

__all__ = [
    "DEFAULTED_FIELDS",
    "UNDEFAULTED_FIELDS",
    "apply_defaults",
    "default_config",
]

# Every leaf of the document appears in exactly one of these two tables.
DEFAULTED_FIELDS: tuple[str, ...] = (
    "version",
    "suppress_unmapped_warnings",
    "log.level",
    "log.format",
    "log.add_source",
    "llm.default_timeout",
    "llm.max_retries",
    "llm.retry_backoff",
    "security.default_profile",
    "daemon.auto_start",
    "daemon.socket_path",
    "daemon.data_dir",
    "daemon.idle_timeout",
    "daemon.default_timeout",
    "daemon.shutdown_timeout",
    "daemon.drain_timeout",
    "daemon.run_retention",
    "daemon.max_concurrent_runs",
    "daemon.auth.enabled",
    "daemon.auth.allow_unix_socket",
    "workspaces",
)

# User data with no meaningful default; empty is a valid state.
UNDEFAULTED_FIELDS: tuple[str, ...] = (
    "default_provider",
    "providers",
    "tiers",
    "agent_mappings",
    "acknowledged_defaults",
    "daemon.port",
)


def default_config(paths: PathResolver | None = None) -> Config:
    """Build a fully populated settings document.

    Args:
        paths: Resolver used for the daemon data directory and socket path.

    Returns:
        A Config with every defaulted field set and no providers.
    """
    paths = paths or PathResolver()
    data_dir = paths.data_dir()
    return Config.model_validate(
        {
            "version": CURRENT_VERSION,
            "providers": {},
            "tiers": {},
            "agent_mappings": {},
            "acknowledged_defaults": [],
            "suppress_unmapped_warnings": False,
            "log": {"level": "info", "format": "json", "add_source": False},
            "llm": {
                "default_timeout": "5m",
                "max_retries": 3,
                "retry_backoff": "1s",
            },
            "security": {"default_profile": "standard"},
            "daemon": {
                "auto_start": True,
                "socket_path": str(data_dir / "modelctl.sock"),
                "data_dir": str(data_dir),
                "idle_timeout": "30m",
                "default_timeout": "30m",
                "shutdown_timeout": "30s",
                "drain_timeout": "30s",
                "run_retention": "24h",
                "max_concurrent_runs": 10,
                # Control API stays authenticated unless explicitly disabled
                "auth": {"enabled": True, "allow_unix_socket": True},
            },
            "workspaces": {
                "default": {
                    "default_profile": "default",
                    "profiles": {"default": {"security": "standard"}},
                }
            },
        }
    )


def apply_defaults(config: Config, paths: PathResolver | None = None) -> Config:
    """Fill unset fields of ``config`` in place from :func:`default_config`.

    Args:
        config: Loaded document.
        paths: Resolver used to compute path-valued defaults.

    Returns:
        The same ``config`` instance, for chaining.
    """
    defaults = default_config(paths)
    for dotted in DEFAULTED_FIELDS:
        parent, name = _locate(config, dotted)
        current = getattr(parent, name)
        if _is_unset(current):
            default_parent, _ = _locate(defaults, dotted)
            setattr(parent, name, getattr(default_parent, name))
    return config


def _locate(config: Config, dotted: str) -> tuple[Any, str]:
    *sections, name = dotted.split(".")
    target: Any = config
    for section in sections:
        target = getattr(target, section)
    return target, name


def _is_unset(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, dict):
        return not value
    return False
