"""Tests for config and data directory resolution."""

import os
import stat

import pytest

from modelctl.exceptions import ConfigIOError
from modelctl.paths import PathResolver


class TestPathResolver:
    """Tests for PathResolver."""

    def test_xdg_config_home(self, tmp_path):
        paths = PathResolver(environ={"XDG_CONFIG_HOME": str(tmp_path / "cfg")}, home=tmp_path)
        assert paths.settings_path() == tmp_path / "cfg" / "modelctl" / "settings.yaml"

    def test_home_fallback(self, tmp_path):
        paths = PathResolver(environ={}, home=tmp_path)
        assert paths.config_dir(create=False) == tmp_path / ".config" / "modelctl"
        assert paths.data_dir() == tmp_path / ".modelctl" / "data"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
    def test_config_dir_created_private(self, tmp_path):
        """Test that the config directory is created with mode 0700."""
        path = PathResolver(environ={}, home=tmp_path).config_dir()
        assert path.is_dir()
        assert stat.S_IMODE(path.stat().st_mode) == 0o700

    def test_no_home_and_no_xdg(self):
        with pytest.raises(ConfigIOError, match="home directory is unavailable"):
            PathResolver(environ={}, home=None).config_dir()

    def test_override_precedence(self, tmp_path):
        """Test that --config beats MODELCTL_CONFIG, which beats the config dir."""
        environ = {"MODELCTL_CONFIG": str(tmp_path / "env.yaml"), "XDG_CONFIG_HOME": str(tmp_path)}
        assert PathResolver(environ=environ).settings_path() == tmp_path / "env.yaml"
        explicit = PathResolver(environ=environ, config_override=tmp_path / "flag.yaml")
        assert explicit.settings_path() == tmp_path / "flag.yaml"

    def test_placeholder(self, paths, settings_path, tmp_path):
        """Test that dry-run paths hide the user's config directory."""
        assert paths.placeholder(settings_path) == "<config-dir>/settings.yaml"
        outside = tmp_path / "elsewhere.yaml"
        assert paths.placeholder(outside) == str(outside)
