"""Provider types, their probes and model discovery."""

from modelctl.providers.health import (
    Deadline,
    DetectionResult,
    HealthCheckResult,
    ProbeRequest,
)
from modelctl.providers.registry import (
    ProviderType,
    all_providers_enabled,
    get_provider_type,
    get_visible_provider_types,
    is_known_provider,
    is_supported_provider,
    warn_unsupported_provider,
)

__all__ = [
    "Deadline",
    "DetectionResult",
    "HealthCheckResult",
    "ProbeRequest",
    "ProviderType",
    "all_providers_enabled",
    "get_provider_type",
    "get_visible_provider_types",
    "is_known_provider",
    "is_supported_provider",
    "warn_unsupported_provider",
]
