"""modelctl - manage LLM providers, models and capability tiers.

Keeps a single versioned ``settings.yaml`` describing the configured
providers, their models and which model serves each abstract tier
(``fast``, ``balanced``, ``strategic``). Credentials live in the OS keychain
and the file only holds references to them.

Quick Start:
    >>> from modelctl import SettingsStore, resolve_tier
    >>> from modelctl.paths import PathResolver
    >>> store = SettingsStore(PathResolver().settings_path())
    >>> resolve_tier(store.load(), "fast")
    ('anthropic', 'claude-3-5-haiku-20241022')
"""

__version__ = "0.1.0"

from modelctl.config import Config, SettingsStore, resolve_tier
from modelctl.exceptions import ModelctlError

__all__ = [
    "Config",
    "ModelctlError",
    "SettingsStore",
    "__version__",
    "resolve_tier",
]
