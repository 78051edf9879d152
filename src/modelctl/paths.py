"""Per-user configuration and data directory resolution.

Follows the XDG base directory conventions:

- Config dir: ``$XDG_CONFIG_HOME/modelctl`` or ``~/.config/modelctl``
- Data dir: ``$XDG_DATA_HOME/modelctl`` or ``~/.modelctl/data``

The resolver never reads ``os.environ`` directly once constructed; tests and
dry-runs inject their own environment mapping and home directory.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping

from modelctl.exceptions import ConfigIOError

logger = logging.getLogger(__name__)

__all__ = [
    "APP_NAME",
    "CONFIG_PLACEHOLDER",
    "SETTINGS_FILENAME",
    "PathResolver",
]

APP_NAME = "modelctl"
SETTINGS_FILENAME = "settings.yaml"
CONFIG_PLACEHOLDER = "<config-dir>"
CONFIG_OVERRIDE_ENV = "MODELCTL_CONFIG"


def _default_home() -> Path | None:
    try:
        return Path.home()
    except (RuntimeError, KeyError):
        return None


class PathResolver:
    """Computes the settings file location and the data directory.

    Example:
        >>> paths = PathResolver(environ={"XDG_CONFIG_HOME": "/tmp/cfg"})
        >>> paths.settings_path(create=False)
        PosixPath('/tmp/cfg/modelctl/settings.yaml')
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
        app_name: str = APP_NAME,
        config_override: Path | str | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            environ: Environment mapping; defaults to ``os.environ``.
            home: Home directory; defaults to ``Path.home()``.
            app_name: Directory name used under the XDG roots.
            config_override: Explicit settings-file path (``--config``);
                takes precedence over ``MODELCTL_CONFIG``.
        """
        self.environ: Mapping[str, str] = os.environ if environ is None else environ
        self.home = home if home is not None else _default_home()
        self.app_name = app_name
        self.config_override = Path(config_override) if config_override else None

    def config_dir(self, create: bool = True) -> Path:
        """Return the configuration directory, creating it with mode 0700.

        Raises:
            ConfigIOError: If no home directory is known and
                ``XDG_CONFIG_HOME`` is unset, or the directory cannot be
                created.
        """
        xdg = self.environ.get("XDG_CONFIG_HOME", "")
        if xdg:
            path = Path(xdg) / self.app_name
        elif self.home is not None:
            path = self.home / ".config" / self.app_name
        else:
            raise ConfigIOError(
                f"~/.config/{self.app_name}",
                "home directory is unavailable and XDG_CONFIG_HOME is not set",
            )

        if create:
            _ensure_private_dir(path)
        return path

    def data_dir(self) -> Path:
        """Return the data directory used by the daemon for its state."""
        xdg = self.environ.get("XDG_DATA_HOME", "")
        if xdg:
            return Path(xdg) / self.app_name
        if self.home is not None:
            return self.home / f".{self.app_name}" / "data"
        fallback = Path(tempfile.gettempdir()) / f"{self.app_name}-data"
        logger.debug(f"Home directory unavailable, using {fallback} for data")
        return fallback

    def settings_path(self, create: bool = True) -> Path:
        """Return the path of ``settings.yaml``.

        ``--config`` wins over ``MODELCTL_CONFIG``, which wins over the
        config directory.
        """
        if self.config_override is not None:
            return self.config_override
        override = self.environ.get(CONFIG_OVERRIDE_ENV, "")
        if override:
            return Path(override).expanduser()
        return self.config_dir(create=create) / SETTINGS_FILENAME

    def placeholder(self, path: Path) -> str:
        """Render ``path`` with the config directory replaced by ``<config-dir>``.

        Used by dry-run output so that it does not leak the user's home path.
        Paths outside the config directory are returned unchanged.
        """
        try:
            config_dir = self.config_dir(create=False)
        except ConfigIOError:
            return str(path)
        try:
            relative = path.relative_to(config_dir)
        except ValueError:
            return str(path)
        return f"{CONFIG_PLACEHOLDER}/{relative.as_posix()}"


def _ensure_private_dir(path: Path) -> None:
    if path.is_dir():
        return
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigIOError(path, e) from e
