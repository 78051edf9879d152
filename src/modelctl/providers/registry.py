"""Registry of provider types and their capabilities.

A provider type bundles static facts (display name, whether it needs an API
key, default endpoint and models) with optional capabilities: ``detect``,
``health_check`` and ``discover_models``. Callers branch on whether a
capability is present, never on the type name.

Types are either *supported* (fully working in this build) or merely
*known*. Known-but-unsupported types are hidden unless the escape hatch
``MODELCTL_ALL_PROVIDERS=1`` is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping

from modelctl.config.env import load_env_settings
from modelctl.providers import anthropic, claude_code, ollama, openai
from modelctl.providers.health import (
    Deadline,
    DetectionResult,
    HealthCheckResult,
    ProbeRequest,
)
from modelctl.security.urls import ValidatedURL, validate_base_url, validate_ollama_base_url

logger = logging.getLogger(__name__)

__all__ = [
    "ProviderType",
    "all_providers_enabled",
    "get_provider_type",
    "get_visible_provider_types",
    "is_known_provider",
    "is_supported_provider",
    "known_provider_types",
    "register_provider_type",
    "warn_unsupported_provider",
]


@dataclass(frozen=True)
class ProviderType:
    """Static description and capabilities of a provider type.

    Attributes:
        name: Type identifier used in ``settings.yaml``.
        display_name: Human readable name.
        description: One-line description for prompts.
        supported: Whether the type works without the escape hatch.
        is_cli: The provider is a local CLI rather than an HTTP API.
        requires_api_key: Adding the provider requires a credential.
        api_key_env: Conventional environment variable holding the key.
        default_base_url: Endpoint used when none is configured.
        pin_base_url: Write the default endpoint into the settings file
            when the provider is added.
        default_models: Models registered when the provider is added.
        validate_url: Base URL check appropriate for the type.
        detect: Optional installation detector.
        health_check: Optional three-step probe.
        discover_models: Optional model listing.
    """

    name: str
    display_name: str
    description: str = ""
    supported: bool = True
    is_cli: bool = False
    requires_api_key: bool = False
    api_key_env: str | None = None
    default_base_url: str | None = None
    pin_base_url: bool = False
    default_models: tuple[str, ...] = ()
    validate_url: Callable[[str], ValidatedURL] = validate_base_url
    detect: Callable[[Deadline], DetectionResult] | None = None
    health_check: Callable[[ProbeRequest], HealthCheckResult] | None = None
    discover_models: Callable[[ProbeRequest], list[str]] | None = None


_REGISTRY: dict[str, ProviderType] = {}


def register_provider_type(provider_type: ProviderType) -> None:
    """Add or replace a provider type. Registration order is display order."""
    _REGISTRY[provider_type.name] = provider_type


register_provider_type(
    ProviderType(
        name="claude-code",
        display_name="Claude Code",
        description="Anthropic's Claude Code CLI (uses its own login)",
        is_cli=True,
        default_models=claude_code.DEFAULT_MODELS,
        detect=claude_code.detect,
        health_check=claude_code.health_check,
        discover_models=claude_code.discover_models,
    )
)
register_provider_type(
    ProviderType(
        name="anthropic",
        display_name="Anthropic API",
        description="Claude models through the Anthropic API",
        requires_api_key=True,
        api_key_env="ANTHROPIC_API_KEY",
        default_base_url=anthropic.DEFAULT_BASE_URL,
        health_check=anthropic.health_check,
        discover_models=anthropic.discover_models,
    )
)
register_provider_type(
    ProviderType(
        name="openai",
        display_name="OpenAI API",
        description="GPT models through the OpenAI API",
        supported=False,
        requires_api_key=True,
        api_key_env="OPENAI_API_KEY",
        default_base_url=openai.DEFAULT_BASE_URL,
        health_check=openai.health_check,
        discover_models=openai.discover_models,
    )
)
register_provider_type(
    ProviderType(
        name="ollama",
        display_name="Ollama",
        description="Local models served by Ollama",
        default_base_url=ollama.DEFAULT_BASE_URL,
        pin_base_url=True,
        validate_url=validate_ollama_base_url,
        health_check=ollama.health_check,
        discover_models=ollama.discover_models,
    )
)


def known_provider_types() -> list[str]:
    """All registered type names, in display order."""
    return list(_REGISTRY)


def is_known_provider(type_name: str) -> bool:
    return type_name in _REGISTRY


def is_supported_provider(type_name: str) -> bool:
    """Whether ``type_name`` has a working integration in this build."""
    provider_type = _REGISTRY.get(type_name)
    return provider_type is not None and provider_type.supported


def get_provider_type(type_name: str) -> ProviderType | None:
    return _REGISTRY.get(type_name)


def all_providers_enabled(environ: Mapping[str, str] | None = None) -> bool:
    """Whether ``MODELCTL_ALL_PROVIDERS`` is exactly ``"1"``."""
    return load_env_settings(environ).all_providers_enabled


def get_visible_provider_types(environ: Mapping[str, str] | None = None) -> list[str]:
    """Types offered to the user: supported only, or all known with the escape hatch."""
    if all_providers_enabled(environ):
        return known_provider_types()
    return [name for name, provider_type in _REGISTRY.items() if provider_type.supported]


def warn_unsupported_provider(type_name: str) -> None:
    """Log a warning when a known but unsupported type is selected."""
    if is_known_provider(type_name) and not is_supported_provider(type_name):
        logger.warning(
            f"Provider type '{type_name}' is not supported in this build; "
            "it was enabled through MODELCTL_ALL_PROVIDERS=1 and may not work"
        )
