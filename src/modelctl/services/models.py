"""Model registration, tier assignment and discovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from modelctl.config.models import Config, ModelConfig
from modelctl.config.references import (
    format_model_reference,
    parse_model_reference,
    validate_tier_name,
)
from modelctl.config.tiers import get_model_config, tiers_for_model
from modelctl.context import AppContext
from modelctl.exceptions import (
    InvalidInputError,
    ModelNotFoundError,
    OperationError,
)
from modelctl.pricing import get_model_metadata
from modelctl.providers.health import Deadline, ProbeRequest
from modelctl.providers.registry import get_provider_type
from modelctl.secrets.references import resolve_api_key
from modelctl.services.providers import require_provider

logger = logging.getLogger(__name__)

__all__ = [
    "DISCOVERY_DEADLINE",
    "DiscoveryResult",
    "ModelRow",
    "RemoveModelResult",
    "add_model",
    "discover_models",
    "list_models",
    "model_info",
    "register_discovered",
    "remove_model",
    "set_tier",
]

DISCOVERY_DEADLINE = 10.0


@dataclass
class ModelRow:
    """One registered model, optionally annotated with the tiers bound to it."""

    provider: str
    model: str
    config: ModelConfig
    tiers: list[str] = field(default_factory=list)
    provider_type: str = ""

    @property
    def reference(self) -> str:
        return format_model_reference(self.provider, self.model)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "provider": self.provider,
            "model": self.model,
            "type": self.provider_type,
            "context_window": self.config.context_window,
            "input_price_per_mtok": self.config.input_price_per_mtok,
            "output_price_per_mtok": self.config.output_price_per_mtok,
            "tiers": list(self.tiers),
        }


@dataclass
class RemoveModelResult:
    reference: str
    orphaned_tiers: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "orphaned_tiers": list(self.orphaned_tiers),
            "warnings": list(self.warnings),
        }


@dataclass
class DiscoveryResult:
    """Models reported by a provider and what was done with them.

    Attributes:
        provider: Provider name.
        models: Every model the provider reported, sorted.
        new_models: Reported models not yet registered.
        registered: Models added to the settings file.
        cancelled: The user declined registration.
    """

    provider: str
    models: list[str] = field(default_factory=list)
    new_models: list[str] = field(default_factory=list)
    registered: list[str] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "models": list(self.models),
            "new_models": list(self.new_models),
            "registered": list(self.registered),
            "cancelled": self.cancelled,
        }


def _check_metadata(name: str, value: float | None) -> None:
    if value is not None and value < 0:
        raise InvalidInputError(f"{name} cannot be negative, got {value:g}")


def add_model(
    ctx: AppContext,
    reference: str,
    context_window: int | None = None,
    input_price: float | None = None,
    output_price: float | None = None,
) -> ModelConfig:
    """Register a model under an existing provider.

    Metadata that is not supplied stays 0 (unknown).

    Raises:
        InvalidTierReferenceError: Malformed reference.
        ProviderNotFoundError: Unknown provider.
        InvalidInputError: Model already registered or negative metadata.
    """
    provider_name, model_name = parse_model_reference(reference)
    _check_metadata("context window", context_window)
    _check_metadata("input price", input_price)
    _check_metadata("output price", output_price)
    model = ModelConfig(
        context_window=context_window or 0,
        input_price_per_mtok=input_price or 0.0,
        output_price_per_mtok=output_price or 0.0,
    )

    def mutate(config: Config) -> None:
        provider = require_provider(config, provider_name)
        if model_name in provider.models:
            raise InvalidInputError(
                f"model '{model_name}' already exists in provider '{provider_name}'",
                suggestions=[f"Inspect it with 'modelctl model info {reference}'"],
            )
        provider.models[model_name] = model

    ctx.store().mutate(mutate)
    logger.info(f"Added model {provider_name}/{model_name}")
    return model


def remove_model(ctx: AppContext, reference: str, force: bool = False) -> RemoveModelResult:
    """Unregister a model.

    A model bound to a tier is only removed with ``force``; the tier mapping
    is then kept (orphaned) and a warning is returned.

    Raises:
        ProviderNotFoundError: Unknown provider.
        ModelNotFoundError: Unknown model.
        OperationError: Bound to a tier and ``force`` not set.
    """
    provider_name, model_name = parse_model_reference(reference)
    canonical = format_model_reference(provider_name, model_name)
    result = RemoveModelResult(reference=canonical)

    def mutate(config: Config) -> None:
        provider = require_provider(config, provider_name)
        if model_name not in provider.models:
            raise ModelNotFoundError(provider_name, model_name)
        tiers = tiers_for_model(config, provider_name, model_name)
        if tiers and not force:
            raise OperationError(
                f"model '{canonical}' is mapped to tier(s) [{', '.join(tiers)}]",
                suggestions=[
                    "Reassign the tier first with 'modelctl model set-tier <tier> <provider/model>'",
                    "Or pass --force to remove it and leave the tier mapping orphaned",
                ],
            )
        del provider.models[model_name]
        result.orphaned_tiers = tiers
        for tier in tiers:
            result.warnings.append(
                f"tier '{tier}' still points at '{canonical}' and will not resolve; "
                f"fix it with 'modelctl model set-tier {tier} <provider/model>'"
            )

    ctx.store().mutate(mutate, allow=("orphaned_tier", "tier_unresolvable"))
    logger.info(f"Removed model {canonical}")
    return result


def list_models(
    ctx: AppContext, provider: str | None = None, with_tiers: bool = False
) -> list[ModelRow]:
    """Registered models sorted by ``provider/model``.

    Raises:
        ProviderNotFoundError: If ``provider`` is given but unknown.
    """
    config = ctx.load_config()
    if provider:
        require_provider(config, provider)
    rows = []
    for provider_name, provider_config in config.providers.items():
        if provider and provider_name != provider:
            continue
        for model_name, model in provider_config.models.items():
            tiers = tiers_for_model(config, provider_name, model_name) if with_tiers else []
            rows.append(
                ModelRow(
                    provider=provider_name,
                    model=model_name,
                    config=model,
                    tiers=tiers,
                    provider_type=provider_config.type,
                )
            )
    return sorted(rows, key=lambda row: row.reference)


def model_info(ctx: AppContext, reference: str) -> ModelRow:
    """Metadata of one model plus the tiers bound to it."""
    config = ctx.load_config()
    provider_name, model_name = parse_model_reference(reference)
    model = get_model_config(config, provider_name, model_name)
    return ModelRow(
        provider=provider_name,
        model=model_name,
        config=model,
        tiers=tiers_for_model(config, provider_name, model_name),
        provider_type=config.providers[provider_name].type,
    )


def set_tier(ctx: AppContext, tier: str, reference: str) -> str | None:
    """Bind ``tier`` to ``provider/model``.

    Returns:
        The previous binding, if any.

    Raises:
        InvalidInputError: Unknown tier name.
        InvalidTierReferenceError: Malformed reference.
        ProviderNotFoundError: Unknown provider.
        ModelNotFoundError: Unknown model.
    """
    validate_tier_name(tier)
    provider_name, model_name = parse_model_reference(reference)
    canonical = format_model_reference(provider_name, model_name)

    def mutate(config: Config) -> str | None:
        get_model_config(config, provider_name, model_name)
        previous = config.tiers.get(tier)
        config.tiers[tier] = canonical
        return previous

    previous = ctx.store().mutate(mutate)
    logger.info(f"Tier {tier} -> {canonical}")
    return previous


def discover_models(ctx: AppContext, provider: str) -> DiscoveryResult:
    """Ask a provider which models it offers.

    Discovery runs under a 10 second deadline and changes nothing; pass the
    result to :func:`register_discovered` once it has been shown.

    Args:
        ctx: Application context.
        provider: Provider name.

    Returns:
        DiscoveryResult with ``models`` and ``new_models`` filled in.

    Raises:
        ProviderNotFoundError: Unknown provider.
        OperationError: The provider type cannot list models.
        ProbeError: Discovery failed or timed out.
    """
    config = ctx.load_config()
    provider_config = require_provider(config, provider)
    ptype = get_provider_type(provider_config.type)
    if ptype is None or ptype.discover_models is None:
        raise OperationError(
            f"provider type '{provider_config.type}' does not support model discovery",
            suggestions=[f"Register models manually with 'modelctl model add {provider}/<model>'"],
        )

    request = ProbeRequest(
        name=provider,
        provider=provider_config,
        api_key=resolve_api_key(provider_config.api_key, ctx.read_secrets, ctx.environ),
        base_url=provider_config.base_url or ptype.default_base_url,
        deadline=Deadline(DISCOVERY_DEADLINE, clock=ctx.clock),
    )
    discovered = sorted(set(ptype.discover_models(request)))
    result = DiscoveryResult(
        provider=provider,
        models=discovered,
        new_models=[m for m in discovered if m not in provider_config.models],
    )
    logger.debug(f"Discovered {len(discovered)} model(s) for {provider}")
    return result


def register_discovered(
    ctx: AppContext, result: DiscoveryResult, yes: bool = False
) -> DiscoveryResult:
    """Register the new models of a discovery after confirmation.

    The new models are merged into the provider's ``models`` map; existing
    entries are left untouched. ``result`` is updated in place.

    Args:
        ctx: Application context.
        result: Outcome of :func:`discover_models`.
        yes: Skip the confirmation prompt.

    Returns:
        ``result`` with ``registered`` or ``cancelled`` set.

    Raises:
        InvalidInputError: Confirmation is needed and there is no way to ask.
        UserAbortedError: The confirmation prompt was interrupted.
    """
    if not result.new_models:
        return result
    provider = result.provider

    if not yes:
        prompter = ctx.prompter if ctx.can_prompt else None
        if prompter is None:
            raise InvalidInputError(
                "registering discovered models needs confirmation",
                suggestions=["Pass --yes to register without prompting"],
            )
        if not prompter.confirm(
            f"Register {len(result.new_models)} new model(s) with '{provider}'?",
            default=True,
        ):
            result.cancelled = True
            return result

    def mutate(config: Config) -> list[str]:
        target = require_provider(config, provider)
        added = []
        for model_name in result.new_models:
            if model_name not in target.models:
                target.models[model_name] = get_model_metadata(target.type, model_name)
                added.append(model_name)
        return added

    result.registered = ctx.store().mutate(mutate)
    logger.info(f"Registered {len(result.registered)} model(s) with {provider}")
    return result
