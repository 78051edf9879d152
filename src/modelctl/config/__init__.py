"""Configuration module for modelctl.

This module provides the Pydantic models for the settings document, the
settings store that owns it on disk, and the tier/model resolver.
"""

from modelctl.config.defaults import apply_defaults, default_config
from modelctl.config.diagnostics import ConfigWarning, collect_warnings
from modelctl.config.env import EnvSettings, load_env_settings
from modelctl.config.models import (
    Config,
    DaemonConfig,
    LLMConfig,
    LogConfig,
    ModelConfig,
    ProviderConfig,
    SecurityConfig,
    parse_duration,
)
from modelctl.config.references import (
    TIER_NAMES,
    format_model_reference,
    parse_model_reference,
    validate_api_key,
    validate_env_var_name,
    validate_provider_name,
    validate_tier_name,
)
from modelctl.config.store import SettingsStore, dump_config
from modelctl.config.tiers import (
    get_model_config,
    get_primary_provider,
    list_models,
    resolve_tier,
    validate_tiers,
)
from modelctl.config.validation import check_config, validate_config

__all__ = [
    "TIER_NAMES",
    "Config",
    "ConfigWarning",
    "DaemonConfig",
    "EnvSettings",
    "LLMConfig",
    "LogConfig",
    "ModelConfig",
    "ProviderConfig",
    "SecurityConfig",
    "SettingsStore",
    "apply_defaults",
    "check_config",
    "collect_warnings",
    "default_config",
    "dump_config",
    "format_model_reference",
    "get_model_config",
    "get_primary_provider",
    "list_models",
    "load_env_settings",
    "parse_duration",
    "parse_model_reference",
    "resolve_tier",
    "validate_api_key",
    "validate_config",
    "validate_env_var_name",
    "validate_provider_name",
    "validate_tier_name",
    "validate_tiers",
]
