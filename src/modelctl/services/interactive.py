"""Guided ``provider add`` for terminals.

The flow asks for the type, name and credential source, adds the provider
through :func:`~modelctl.services.providers.add_provider` and then offers
model discovery. Every question goes through the context's prompter, so an
interrupt surfaces as :class:`~modelctl.exceptions.UserAbortedError` before
anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from modelctl.context import AppContext
from modelctl.exceptions import InvalidInputError, ProbeError
from modelctl.providers.registry import get_provider_type, get_visible_provider_types
from modelctl.services.models import DiscoveryResult, discover_models, register_discovered
from modelctl.services.providers import AddProviderResult, add_provider

logger = logging.getLogger(__name__)

KEY_SOURCE_ENV = "environment variable"
KEY_SOURCE_PROMPT = "enter it now (stored in the keychain)"


@dataclass
class InteractiveAddResult:
    added: AddProviderResult
    discovery: DiscoveryResult | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.added.to_dict()
        data["discovery"] = self.discovery.to_dict() if self.discovery else None
        data["warnings"] = [*self.added.warnings, *self.warnings]
        return data


def interactive_add(
    ctx: AppContext,
    name: str | None = None,
    show_discovery: Callable[[DiscoveryResult], None] | None = None,
) -> InteractiveAddResult:
    """Ask for everything ``provider add`` needs, add it, then offer discovery.

    Args:
        ctx: Application context; must be able to prompt.
        name: Provider name given on the command line, if any.
        show_discovery: Called with the discovered models before asking
            whether to register them.

    Raises:
        InvalidInputError: If the context cannot prompt.
        UserAbortedError: If the user interrupts a prompt.
    """
    prompter = ctx.prompter if ctx.can_prompt else None
    if prompter is None:
        raise InvalidInputError(
            "provider type is required",
            suggestions=["Pass --type, e.g. 'modelctl provider add ollama --type ollama'"],
        )

    types = get_visible_provider_types(ctx.environ)
    type_name = prompter.choose("Provider type", types, default=types[0])
    ptype = get_provider_type(type_name)
    if ptype is None:
        raise InvalidInputError(f"unknown provider type '{type_name}'")
    name = name or prompter.prompt("Provider name", default=type_name)

    api_key = api_key_env = None
    if ptype.requires_api_key:
        source = prompter.choose(
            "Where should the API key come from?",
            [KEY_SOURCE_ENV, KEY_SOURCE_PROMPT],
            default=KEY_SOURCE_ENV,
        )
        if source == KEY_SOURCE_ENV:
            api_key_env = prompter.prompt("Environment variable", default=ptype.api_key_env)
        else:
            api_key = prompter.prompt("API key", hide_input=True)

    base_url = None
    if not ptype.is_cli:
        base_url = prompter.prompt(
            "Base URL (leave empty for the default)", default=ptype.default_base_url or ""
        ).strip()
        if not base_url or base_url == ptype.default_base_url:
            base_url = None

    added = add_provider(
        ctx,
        name,
        type_name,
        api_key=api_key,
        api_key_env=api_key_env,
        base_url=base_url,
        api_key_prompted=api_key is not None,
    )
    result = InteractiveAddResult(added=added)

    if ptype.discover_models is not None and prompter.confirm(
        "Discover available models now?", default=True
    ):
        try:
            discovery = discover_models(ctx, added.name)
        except ProbeError as e:
            logger.debug(f"Discovery after add failed: {e.message}")
            result.warnings.append(
                f"model discovery failed: {e.message}; retry with "
                f"'modelctl model discover {added.name} --register'"
            )
        else:
            if show_discovery is not None:
                show_discovery(discovery)
            result.discovery = register_discovered(ctx, discovery)
    return result
