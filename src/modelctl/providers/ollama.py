"""Ollama provider: local inference server with no authentication."""

from __future__ import annotations

import logging

from modelctl.exceptions import ProbeError, ProbeFailureKind
from modelctl.providers.health import (
    STEP_WORKING,
    HealthCheckResult,
    ProbeRequest,
)
from modelctl.providers.http import get_json

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"


def _tags_url(request: ProbeRequest) -> str:
    base_url = (request.base_url or DEFAULT_BASE_URL).rstrip("/")
    return f"{base_url}/api/tags"


def health_check(request: ProbeRequest) -> HealthCheckResult:
    """Check that the Ollama server answers ``/api/tags``."""
    result = HealthCheckResult(configured=True, authenticated=True)
    try:
        get_json(_tags_url(request), request)
    except ProbeError as e:
        return result.fail(STEP_WORKING, e)
    result.working = True
    return result


def discover_models(request: ProbeRequest) -> list[str]:
    """List the models installed on the Ollama server.

    Raises:
        ProbeError: If the server cannot be reached or answers garbage.
    """
    try:
        data = get_json(_tags_url(request), request, step="discover")
    except ProbeError as e:
        if e.kind == ProbeFailureKind.NETWORK:
            e.suggestions.append("Start Ollama with 'ollama serve'")
        raise
    if not isinstance(data, dict) or not isinstance(data.get("models", []), list):
        raise ProbeError("unexpected response from Ollama /api/tags", ProbeFailureKind.NETWORK)
    names = []
    for entry in data.get("models") or []:
        if isinstance(entry, dict) and entry.get("name"):
            names.append(str(entry["name"]))
    logger.debug(f"Ollama reported {len(names)} model(s)")
    return sorted(names)
