"""Parsing and validation of names and references used in the settings document.

- Model references: ``provider/model``
- Tier names: ``fast``, ``balanced``, ``strategic``
- Provider names, API keys and environment variable names entered by users
"""

from __future__ import annotations

import re
from typing import Iterable

from modelctl.exceptions import InvalidInputError, InvalidTierReferenceError

__all__ = [
    "API_KEY_MAX_LENGTH",
    "API_KEY_MIN_LENGTH",
    "PLACEHOLDER_MARKERS",
    "RESERVED_PROVIDER_NAMES",
    "TIER_NAMES",
    "format_model_reference",
    "parse_model_reference",
    "provider_name_problem",
    "validate_api_key",
    "validate_env_var_name",
    "validate_provider_name",
    "validate_tier_name",
]

TIER_NAMES: tuple[str, ...] = ("fast", "balanced", "strategic")

RESERVED_PROVIDER_NAMES = frozenset({"add", "remove", "list", "test", "edit"})

PLACEHOLDER_MARKERS: tuple[str, ...] = (
    "xxx",
    "dummy",
    "test",
    "sk-test-",
    "placeholder",
    "your-api-key",
    "api_key_here",
)

API_KEY_MIN_LENGTH = 8
API_KEY_MAX_LENGTH = 8192

PROVIDER_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_-]{0,63}")
ENV_VAR_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def parse_model_reference(reference: str) -> tuple[str, str]:
    """Split ``provider/model`` on the first slash.

    Model names may themselves contain slashes (``ollama/library/llama3``
    resolves to provider ``ollama``, model ``library/llama3``).

    Args:
        reference: Reference string.

    Returns:
        Tuple of (provider, model), both stripped of surrounding whitespace.

    Raises:
        InvalidTierReferenceError: If there is no slash or either half is empty.
    """
    provider, sep, model = reference.partition("/")
    if not sep:
        raise InvalidTierReferenceError(reference, "missing '/'")
    provider, model = provider.strip(), model.strip()
    if not provider:
        raise InvalidTierReferenceError(reference, "empty provider")
    if not model:
        raise InvalidTierReferenceError(reference, "empty model")
    return provider, model


def format_model_reference(provider: str, model: str) -> str:
    """Inverse of :func:`parse_model_reference`."""
    return f"{provider}/{model}"


def validate_tier_name(name: str) -> str:
    """Check that ``name`` is one of the fixed tier names (case-sensitive).

    Raises:
        InvalidInputError: If the name is not a known tier.
    """
    if name not in TIER_NAMES:
        raise InvalidInputError(
            f"invalid tier '{name}'",
            suggestions=[f"Valid tiers: {', '.join(TIER_NAMES)}"],
        )
    return name


def provider_name_problem(name: str) -> str | None:
    """Return why ``name`` is not a valid provider name, or None if it is."""
    if not name:
        return "provider name cannot be empty"
    if len(name) > 64:
        return f"provider name is too long ({len(name)} characters, max 64)"
    if not PROVIDER_NAME_PATTERN.fullmatch(name):
        return (
            f"invalid provider name '{name}': must start with a letter or "
            "underscore and contain only letters, digits, '_' or '-'"
        )
    if name in RESERVED_PROVIDER_NAMES:
        return f"provider name '{name}' is reserved"
    return None


def validate_provider_name(name: str, existing: Iterable[str] = ()) -> str:
    """Validate a new provider name.

    Args:
        name: Proposed name.
        existing: Names already configured.

    Returns:
        The validated name.

    Raises:
        InvalidInputError: If the name is malformed, reserved or taken.
    """
    problem = provider_name_problem(name)
    if problem is not None:
        suggestions = []
        if name in RESERVED_PROVIDER_NAMES:
            suggestions.append(
                f"Reserved names: {', '.join(sorted(RESERVED_PROVIDER_NAMES))}"
            )
        raise InvalidInputError(problem, suggestions=suggestions)
    if name in set(existing):
        raise InvalidInputError(
            f"provider '{name}' already exists",
            suggestions=[f"Use 'modelctl provider remove {name}' first"],
        )
    return name


def validate_api_key(key: str) -> str:
    """Reject API keys that are too short, too long or obvious placeholders.

    Raises:
        InvalidInputError: If the key is unacceptable. The message never
            contains the key itself.
    """
    if len(key) < API_KEY_MIN_LENGTH:
        raise InvalidInputError(
            f"API key is too short (minimum {API_KEY_MIN_LENGTH} characters)"
        )
    if len(key) > API_KEY_MAX_LENGTH:
        raise InvalidInputError(
            f"API key is too long (maximum {API_KEY_MAX_LENGTH} characters)"
        )
    lowered = key.lower()
    for marker in PLACEHOLDER_MARKERS:
        if marker in lowered:
            raise InvalidInputError(
                "API key looks like a placeholder",
                suggestions=["Paste the real key from your provider's console"],
            )
    return key


def validate_env_var_name(name: str) -> str:
    """Validate an environment variable name.

    Raises:
        InvalidInputError: If ``name`` is not a valid variable name.
    """
    if not ENV_VAR_NAME_PATTERN.fullmatch(name):
        raise InvalidInputError(
            f"invalid environment variable name '{name}'",
            suggestions=["Use letters, digits and '_' only, not starting with a digit"],
        )
    return name
