"""Tests for whole-document validation."""

import pytest

from modelctl.config.models import Config
from modelctl.config.validation import check_config, validate_config
from modelctl.exceptions import ConfigValidationError


def codes(data):
    return [issue.code for issue in validate_config(Config.model_validate(data))]


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid_document(self, anthropic_settings):
        assert codes(anthropic_settings) == []

    def test_version_rules(self):
        """Test that the version is required and must be supported."""
        assert codes({}) == ["version_missing"]
        assert codes({"version": 2}) == ["version_unsupported"]

    @pytest.mark.parametrize(
        ("section", "code"),
        [
            ({"log": {"level": "verbose"}}, "invalid_log_level"),
            ({"log": {"format": "xml"}}, "invalid_log_format"),
            ({"llm": {"default_timeout": "soon"}}, "invalid_duration"),
            ({"llm": {"retry_backoff": "0s"}}, "invalid_duration"),
            ({"llm": {"max_retries": -1}}, "invalid_retries"),
            ({"daemon": {"port": 80}}, "invalid_port"),
            ({"daemon": {"port": 70000}}, "invalid_port"),
            ({"daemon": {"max_concurrent_runs": 0}}, "invalid_concurrency"),
        ],
    )
    def test_section_rules(self, section, code):
        assert codes({"version": 1, **section}) == [code]

    def test_port_boundaries(self):
        assert codes({"version": 1, "daemon": {"port": 1024}}) == []
        assert codes({"version": 1, "daemon": {"port": 65535}}) == []

    def test_log_level_case_insensitive(self):
        assert codes({"version": 1, "log": {"level": "WARN"}}) == []

    def test_provider_rules(self):
        """Test name, type and credential checks on providers."""
        data = {
            "version": 1,
            "providers": {
                "list": {"type": "ollama"},
                "notype": {},
                "plain": {"type": "anthropic", "api_key": "sk-plain-123456"},
                "badref": {"type": "anthropic", "api_key": "$env:1BAD"},
            },
        }
        assert codes(data) == [
            "invalid_secret_reference",
            "invalid_provider_name",
            "provider_type_missing",
            "plaintext_api_key",
        ]

    def test_unknown_default_and_agent_provider(self, anthropic_settings):
        anthropic_settings["default_provider"] = "ghost"
        anthropic_settings["agent_mappings"] = {"reviewer": "ghost"}
        issues = validate_config(Config.model_validate(anthropic_settings))
        assert [issue.code for issue in issues] == ["unknown_default_provider", "unknown_agent_provider"]
        assert "Available: anthropic" in issues[0].message

    def test_default_provider_ignored_without_providers(self):
        """Test that a dangling default is tolerated while nothing is configured."""
        assert codes({"version": 1, "default_provider": "ghost"}) == []

    def test_tier_rules(self, anthropic_settings):
        """Test that every tier problem is reported with its own code."""
        anthropic_settings["tiers"] = {
            "fast": "anthropic/missing",
            "balanced": "ghost/model",
            "strategic": "no-slash",
            "turbo": "anthropic/claude-3-5-haiku-20241022",
        }
        issues = validate_config(Config.model_validate(anthropic_settings))
        assert [(issue.path, issue.code) for issue in issues] == [
            ("tiers.balanced", "orphaned_tier:balanced"),
            ("tiers.fast", "orphaned_tier:fast"),
            ("tiers.strategic", "invalid_tier_reference"),
            ("tiers.turbo", "unknown_tier"),
        ]

    def test_all_findings_collected(self):
        """Test that one pass reports every violation, not just the first."""
        found = codes({"log": {"level": "loud"}, "daemon": {"port": 1}})
        assert found == ["version_missing", "invalid_log_level", "invalid_port"]


class TestCheckConfig:
    """Tests for check_config."""

    def test_raises_with_every_issue(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            check_config(Config.model_validate({"daemon": {"port": 1}}))
        assert len(exc_info.value.issues) == 2
        assert "daemon.port" in exc_info.value.message

    def test_valid_passes(self, anthropic_settings):
        check_config(Config.model_validate(anthropic_settings))
