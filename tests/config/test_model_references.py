"""Tests for names and references entered by users."""

import pytest

from modelctl.config.references import (
    RESERVED_PROVIDER_NAMES,
    format_model_reference,
    parse_model_reference,
    provider_name_problem,
    validate_api_key,
    validate_env_var_name,
    validate_provider_name,
    validate_tier_name,
)
from modelctl.exceptions import InvalidInputError, InvalidTierReferenceError


class TestModelReferences:
    """Tests for parse_model_reference and format_model_reference."""

    @pytest.mark.parametrize(
        ("provider", "model"),
        [
            ("anthropic", "claude-3-5-haiku-20241022"),
            ("local", "llama3:8b"),
            ("p", "m"),
            ("claude", "sonnet"),
        ],
    )
    def test_parse_inverts_format(self, provider, model):
        """Test that parsing a formatted reference gives back its parts."""
        assert parse_model_reference(format_model_reference(provider, model)) == (provider, model)

    def test_model_may_contain_slash(self):
        """Test that only the first slash separates provider from model."""
        assert parse_model_reference("ollama/library/llama3") == ("ollama", "library/llama3")

    def test_whitespace_is_stripped(self):
        """Test that surrounding whitespace on each half is ignored."""
        assert parse_model_reference(" anthropic / haiku ") == ("anthropic", "haiku")

    @pytest.mark.parametrize("reference", ["no-slash", "/model", "provider/", " / ", ""])
    def test_malformed(self, reference):
        """Test that references without both halves are rejected."""
        with pytest.raises(InvalidTierReferenceError):
            parse_model_reference(reference)


class TestTierNames:
    """Tests for validate_tier_name."""

    @pytest.mark.parametrize("tier", ["fast", "balanced", "strategic"])
    def test_known_tiers(self, tier):
        assert validate_tier_name(tier) == tier

    @pytest.mark.parametrize("tier", ["Fast", "slow", ""])
    def test_unknown_tiers(self, tier):
        """Test that tier names are case-sensitive and fixed."""
        with pytest.raises(InvalidInputError, match="invalid tier"):
            validate_tier_name(tier)


class TestProviderNames:
    """Tests for provider name validation."""

    @pytest.mark.parametrize("name", sorted(RESERVED_PROVIDER_NAMES))
    def test_reserved_names_rejected(self, name):
        """Test that subcommand names cannot be used as provider names."""
        with pytest.raises(InvalidInputError, match="reserved"):
            validate_provider_name(name)

    def test_length_boundary(self):
        """Test that 64 characters are accepted and 65 rejected."""
        assert validate_provider_name("a" * 64) == "a" * 64
        with pytest.raises(InvalidInputError, match="too long"):
            validate_provider_name("a" * 65)

    @pytest.mark.parametrize("name", ["1abc", "has space", "dot.name", "-dash", "", "abc\n", "a" * 64 + "\n"])
    def test_malformed_names(self, name):
        assert provider_name_problem(name) is not None

    @pytest.mark.parametrize("name", ["anthropic", "_private", "my-ollama_2", "A"])
    def test_valid_names(self, name):
        assert provider_name_problem(name) is None

    def test_existing_name_rejected(self):
        """Test that a taken name fails with a remediation hint."""
        with pytest.raises(InvalidInputError) as exc_info:
            validate_provider_name("anthropic", existing=["anthropic"])
        assert exc_info.value.message == "provider 'anthropic' already exists"
        assert "modelctl provider remove anthropic" in exc_info.value.suggestions[0]


class TestApiKeys:
    """Tests for validate_api_key."""

    def test_length_boundaries(self):
        """Test the 8 and 8192 character limits."""
        assert validate_api_key("a" * 8)
        assert validate_api_key("a" * 8192)
        with pytest.raises(InvalidInputError, match="too short"):
            validate_api_key("a" * 7)
        with pytest.raises(InvalidInputError, match="too long"):
            validate_api_key("a" * 8193)

    @pytest.mark.parametrize("key", ["XXX-placeholder-key", "your-api-key-goes-here", "dummy-key-1234"])
    def test_placeholders_rejected(self, key):
        with pytest.raises(InvalidInputError, match="placeholder"):
            validate_api_key(key)

    def test_error_does_not_echo_key(self):
        """Test that the rejected key is not part of the error message."""
        with pytest.raises(InvalidInputError) as exc_info:
            validate_api_key("short")
        assert "short" not in exc_info.value.message.replace("too short", "")


class TestEnvVarNames:
    """Tests for validate_env_var_name."""

    @pytest.mark.parametrize("name", ["ANTHROPIC_API_KEY", "_K", "k1"])
    def test_valid(self, name):
        assert validate_env_var_name(name) == name

    @pytest.mark.parametrize("name", ["1KEY", "MY-KEY", "", "A B", "FOO\n"])
    def test_invalid(self, name):
        with pytest.raises(InvalidInputError):
            validate_env_var_name(name)
