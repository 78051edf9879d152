"""Tier to model resolution over a settings document.

Tiers are an indirection: workflows ask for ``fast``, ``balanced`` or
``strategic`` and the document maps each to a ``provider/model`` reference.
"""

from __future__ import annotations

from modelctl.config.models import Config, ModelConfig
from modelctl.config.references import (
    TIER_NAMES,
    format_model_reference,
    parse_model_reference,
)
from modelctl.exceptions import (
    ModelNotFoundError,
    ProviderNotFoundError,
    ResolutionError,
    TierNotMappedError,
)

__all__ = [
    "PRIMARY_TIER_ORDER",
    "get_model_config",
    "get_primary_provider",
    "list_models",
    "resolve_reference",
    "resolve_tier",
    "tiers_for_model",
    "tiers_for_provider",
    "validate_tiers",
]

PRIMARY_TIER_ORDER: tuple[str, ...] = ("balanced", "fast", "strategic")


def resolve_reference(config: Config, reference: str) -> tuple[str, str]:
    """Resolve a ``provider/model`` reference against the configured providers.

    Raises:
        InvalidTierReferenceError: If the reference does not parse.
        ProviderNotFoundError: If the provider is not configured.
        ModelNotFoundError: If the model is not registered under it.
    """
    provider, model = parse_model_reference(reference)
    get_model_config(config, provider, model)
    return provider, model


def resolve_tier(config: Config, tier: str) -> tuple[str, str]:
    """Resolve a tier name to ``(provider, model)``.

    Checks, in order: the tier is mapped, its reference parses, the provider
    exists, the model exists.

    Args:
        config: Settings document.
        tier: Tier name.

    Returns:
        Tuple of (provider, model).

    Raises:
        TierNotMappedError: If the tier is unknown or has no mapping.
        InvalidTierReferenceError: If the mapped reference is malformed.
        ProviderNotFoundError: If the provider is not configured.
        ModelNotFoundError: If the model is not registered.

    Example:
        >>> resolve_tier(config, "fast")
        ('anthropic', 'claude-3-5-haiku-20241022')
    """
    if tier not in TIER_NAMES:
        raise TierNotMappedError(tier)
    reference = config.tiers.get(tier, "")
    if not reference:
        raise TierNotMappedError(tier)
    return resolve_reference(config, reference)


def validate_tiers(config: Config) -> list[tuple[str, ResolutionError]]:
    """Resolve every tier mapping and collect the failures.

    Returns:
        ``(tier, error)`` pairs sorted by tier name; empty when all resolve.
    """
    problems: list[tuple[str, ResolutionError]] = []
    for tier in sorted(config.tiers):
        try:
            if tier not in TIER_NAMES:
                raise TierNotMappedError(tier)
            resolve_reference(config, config.tiers[tier])
        except ResolutionError as e:
            problems.append((tier, e))
    return problems


def list_models(config: Config) -> list[str]:
    """Return every registered model as ``provider/model``, sorted."""
    return sorted(
        format_model_reference(provider, model)
        for provider, provider_config in config.providers.items()
        for model in provider_config.models
    )


def get_model_config(config: Config, provider: str, model: str) -> ModelConfig:
    """Look up a model's metadata.

    Raises:
        ProviderNotFoundError: If the provider is not configured.
        ModelNotFoundError: If the model is not registered.
    """
    provider_config = config.providers.get(provider)
    if provider_config is None:
        raise ProviderNotFoundError(provider, config.providers)
    model_config = provider_config.models.get(model)
    if model_config is None:
        raise ModelNotFoundError(provider, model)
    return model_config


def get_primary_provider(config: Config) -> str:
    """Pick a deterministic primary provider.

    The provider behind ``balanced`` wins, then ``fast``, then ``strategic``;
    otherwise the alphabetically first provider. Returns ``""`` when no
    providers are configured.
    """
    if not config.providers:
        return ""
    for tier in PRIMARY_TIER_ORDER:
        reference = config.tiers.get(tier)
        if not reference:
            continue
        provider, _, _ = reference.partition("/")
        provider = provider.strip()
        if provider in config.providers:
            return provider
    return min(config.providers)


def tiers_for_provider(config: Config, provider: str) -> list[str]:
    """Return the sorted tier names whose reference points at ``provider``."""
    matches = []
    for tier, reference in config.tiers.items():
        target, _, _ = reference.partition("/")
        if target.strip() == provider:
            matches.append(tier)
    return sorted(matches)


def tiers_for_model(config: Config, provider: str, model: str) -> list[str]:
    """Return the sorted tier names whose reference points at ``provider/model``."""
    matches = []
    for tier, reference in config.tiers.items():
        target, sep, name = reference.partition("/")
        if sep and target.strip() == provider and name.strip() == model:
            matches.append(tier)
    return sorted(matches)
