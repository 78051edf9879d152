"""URL safety checks for provider endpoints."""

from modelctl.security.urls import (
    BaseURLValidator,
    NetworkPolicy,
    ValidatedURL,
    validate_base_url,
    validate_ollama_base_url,
)

__all__ = [
    "BaseURLValidator",
    "NetworkPolicy",
    "ValidatedURL",
    "validate_base_url",
    "validate_ollama_base_url",
]
