"""Tests for default construction and the defaults fill-in."""

from typing import get_origin

from pydantic import BaseModel

from modelctl.config.defaults import (
    DEFAULTED_FIELDS,
    UNDEFAULTED_FIELDS,
    apply_defaults,
    default_config,
)
from modelctl.config.models import Config
from modelctl.config.validation import validate_config


def _leaf_paths(model: type[BaseModel], prefix: str = "") -> set[str]:
    """Dotted paths of every declared leaf field, descending into sub-sections."""
    leaves = set()
    for name, field in model.model_fields.items():
        annotation = field.annotation
        is_class = get_origin(annotation) is None and isinstance(annotation, type)
        if is_class and issubclass(annotation, BaseModel):
            leaves |= _leaf_paths(annotation, f"{prefix}{name}.")
        else:
            leaves.add(f"{prefix}{name}")
    return leaves


class TestFieldTables:
    """Tests that the defaults tables cover the whole document."""

    def test_every_leaf_is_classified(self):
        """Test that each field is either defaulted or deliberately left empty."""
        classified = set(DEFAULTED_FIELDS) | set(UNDEFAULTED_FIELDS)
        assert _leaf_paths(Config) == classified

    def test_tables_do_not_overlap(self):
        """Test that no field is listed in both tables."""
        assert not set(DEFAULTED_FIELDS) & set(UNDEFAULTED_FIELDS)


class TestDefaultConfig:
    """Tests for default_config."""

    def test_defaults_are_valid(self, paths):
        """Test that the default document passes validation."""
        assert validate_config(default_config(paths)) == []

    def test_expected_values(self, paths):
        """Test a representative set of default values."""
        config = default_config(paths)
        assert config.version == 1
        assert config.log.level == "info"
        assert config.log.format == "json"
        assert config.llm.default_timeout == "5m"
        assert config.llm.max_retries == 3
        assert config.security.default_profile == "standard"
        assert config.daemon.max_concurrent_runs == 10
        assert config.daemon.auth.enabled is True
        assert config.daemon.port is None
        assert config.providers == {}

    def test_daemon_paths_follow_data_dir(self, paths, tmp_path):
        """Test that the socket lives in the XDG data directory."""
        config = default_config(paths)
        assert config.daemon.data_dir == str(tmp_path / "data" / "modelctl")
        assert config.daemon.socket_path == str(tmp_path / "data" / "modelctl" / "modelctl.sock")


class TestApplyDefaults:
    """Tests for apply_defaults."""

    def test_minimal_document_gets_every_default(self, paths):
        """Test that a minimal document is filled in completely."""
        config = Config.model_validate(
            {"version": 1, "providers": {"claude": {"type": "claude-code"}}}
        )
        apply_defaults(config, paths)

        defaults = default_config(paths)
        for dotted in DEFAULTED_FIELDS:
            actual, expected = config, defaults
            for part in dotted.split("."):
                actual, expected = getattr(actual, part), getattr(expected, part)
            assert actual == expected, dotted
        assert validate_config(config) == []

    def test_explicit_values_are_kept(self, paths):
        """Test that explicit zero and false are not replaced by defaults."""
        config = Config.model_validate(
            {
                "version": 1,
                "llm": {"max_retries": 0},
                "daemon": {"auto_start": False, "max_concurrent_runs": 0},
                "log": {"level": "debug"},
            }
        )
        apply_defaults(config, paths)
        assert config.llm.max_retries == 0
        assert config.daemon.auto_start is False
        assert config.daemon.max_concurrent_runs == 0
        assert config.log.level == "debug"

    def test_out_of_range_explicit_value_reported_not_replaced(self, paths):
        """Test that validation, not the fill-in, handles bad explicit values."""
        config = apply_defaults(
            Config.model_validate({"version": 1, "daemon": {"max_concurrent_runs": 0}}),
            paths,
        )
        codes = [issue.code for issue in validate_config(config)]
        assert "invalid_concurrency" in codes

    def test_empty_string_counts_as_unset(self, paths):
        """Test that empty strings are filled like missing values."""
        config = apply_defaults(
            Config.model_validate({"security": {"default_profile": ""}}), paths
        )
        assert config.security.default_profile == "standard"

    def test_missing_version_filled(self, paths):
        """Test that a document without a version is treated as version 1."""
        config = apply_defaults(Config.model_validate({}), paths)
        assert config.version == 1
