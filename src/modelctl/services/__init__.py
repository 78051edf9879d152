"""Provider and model operations behind the CLI commands."""

from modelctl.services.interactive import InteractiveAddResult, interactive_add
from modelctl.services.models import (
    DiscoveryResult,
    ModelRow,
    RemoveModelResult,
    add_model,
    discover_models,
    list_models,
    model_info,
    register_discovered,
    remove_model,
    set_tier,
)
from modelctl.services.providers import (
    AddProviderResult,
    DryRunChange,
    EditProviderResult,
    ProviderRow,
    ProviderTestReport,
    RemoveProviderResult,
    add_provider,
    check_provider_health,
    edit_provider,
    list_providers,
    remove_provider,
    run_provider_tests,
    set_default_provider,
)

__all__ = [
    "AddProviderResult",
    "DiscoveryResult",
    "DryRunChange",
    "EditProviderResult",
    "InteractiveAddResult",
    "ModelRow",
    "ProviderRow",
    "ProviderTestReport",
    "RemoveModelResult",
    "RemoveProviderResult",
    "add_model",
    "add_provider",
    "check_provider_health",
    "discover_models",
    "edit_provider",
    "interactive_add",
    "list_models",
    "list_providers",
    "model_info",
    "register_discovered",
    "remove_model",
    "remove_provider",
    "run_provider_tests",
    "set_default_provider",
    "set_tier",
]
