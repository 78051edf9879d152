"""Non-fatal warnings about a settings document.

Warnings have stable codes so users can acknowledge them. Matching rules:

- A warning is hidden when its exact code is listed in
  ``acknowledged_defaults`` (e.g. ``unmapped_tier:strategic``).
- ``suppress_unmapped_warnings: true`` hides every ``unmapped_tier:*``
  warning.
- ``plaintext_api_key:*`` warnings are never hidden.
"""

from __future__ import annotations

from dataclasses import dataclass

from modelctl.config.models import Config
from modelctl.config.references import TIER_NAMES
from modelctl.config.tiers import validate_tiers
from modelctl.secrets.references import is_reference

__all__ = [
    "UNSUPPRESSIBLE_PREFIXES",
    "ConfigWarning",
    "collect_warnings",
    "is_suppressed",
]

UNSUPPRESSIBLE_PREFIXES: tuple[str, ...] = ("plaintext_api_key:",)


@dataclass(frozen=True)
class ConfigWarning:
    """A warning with a stable, acknowledgeable code."""

    code: str
    message: str


def is_suppressed(config: Config, code: str) -> bool:
    """Whether the user has silenced warning ``code``."""
    if code.startswith(UNSUPPRESSIBLE_PREFIXES):
        return False
    if code.startswith("unmapped_tier:") and config.suppress_unmapped_warnings:
        return True
    return code in config.acknowledged_defaults


def collect_warnings(config: Config, include_suppressed: bool = False) -> list[ConfigWarning]:
    """Collect warnings for ``config``.

    Args:
        config: Settings document.
        include_suppressed: Return acknowledged warnings as well.

    Returns:
        Warnings ordered by code.
    """
    warnings: list[ConfigWarning] = []

    for name in sorted(config.providers):
        api_key = config.providers[name].api_key
        if api_key and not is_reference(api_key):
            warnings.append(
                ConfigWarning(
                    f"plaintext_api_key:{name}",
                    f"provider '{name}' stores its API key in plaintext; "
                    f"run 'modelctl provider edit {name} --api-key-env NAME'",
                )
            )

    if config.providers:
        if not config.default_provider:
            warnings.append(
                ConfigWarning(
                    "no_default_provider",
                    "no default provider is set; "
                    "run 'modelctl provider set-default <NAME>'",
                )
            )
        for tier in TIER_NAMES:
            if not config.tiers.get(tier):
                warnings.append(
                    ConfigWarning(
                        f"unmapped_tier:{tier}",
                        f"tier '{tier}' is not mapped; "
                        f"run 'modelctl model set-tier {tier} <provider/model>'",
                    )
                )

    for tier, error in validate_tiers(config):
        warnings.append(ConfigWarning(f"orphaned_tier:{tier}", f"tier '{tier}': {error.message}"))

    warnings.sort(key=lambda w: w.code)
    if include_suppressed:
        return warnings
    return [w for w in warnings if not is_suppressed(config, w.code)]
