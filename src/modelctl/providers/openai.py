"""OpenAI API provider. Known but not supported without the escape hatch."""

from __future__ import annotations

from modelctl.exceptions import ProbeError, ProbeFailureKind
from modelctl.providers.health import HealthCheckResult, ProbeRequest
from modelctl.providers.http import api_health_check, get_json

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def _models_url(request: ProbeRequest) -> str:
    return f"{(request.base_url or DEFAULT_BASE_URL).rstrip('/')}/models"


def _headers(request: ProbeRequest) -> dict[str, str]:
    return {"Authorization": f"Bearer {request.api_key or ''}"}


def health_check(request: ProbeRequest) -> HealthCheckResult:
    return api_health_check(request, _models_url(request), _headers(request))


def discover_models(request: ProbeRequest) -> list[str]:
    """List model IDs from ``GET /models``.

    Raises:
        ProbeError: If no key is configured or the request fails.
    """
    if not request.api_key:
        raise ProbeError("no API key configured", ProbeFailureKind.CONFIG)
    data = get_json(_models_url(request), request, _headers(request), step="discover")
    entries = data.get("data", []) if isinstance(data, dict) else []
    return sorted(str(e["id"]) for e in entries if isinstance(e, dict) and e.get("id"))
