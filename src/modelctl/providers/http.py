"""HTTP helper shared by API-based provider probes."""

from __future__ import annotations

import logging
from typing import Any

import requests

from modelctl.exceptions import ProbeError, ProbeFailureKind
from modelctl.providers.health import (
    STEP_AUTHENTICATED,
    STEP_CONFIGURED,
    STEP_WORKING,
    HealthCheckResult,
    ProbeRequest,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_CAP = 10.0


def get_json(
    url: str,
    request: ProbeRequest,
    headers: dict[str, str] | None = None,
    step: str = STEP_WORKING,
) -> Any:
    """GET ``url`` within the request's deadline and decode the JSON body.

    Raises:
        ProbeError: ``auth`` for 401/403, ``timeout`` for timeouts, ``network``
            for connection errors, other status codes and undecodable bodies.
    """
    request.deadline.check(step)
    try:
        response = requests.get(
            url,
            headers=headers or {},
            timeout=request.deadline.timeout(REQUEST_TIMEOUT_CAP),
        )
    except requests.Timeout as e:
        raise ProbeError(f"request to {url} timed out", ProbeFailureKind.TIMEOUT) from e
    except requests.ConnectionError as e:
        raise ProbeError(f"cannot connect to {url}", ProbeFailureKind.NETWORK) from e
    except requests.RequestException as e:
        raise ProbeError(f"request to {url} failed: {e}", ProbeFailureKind.NETWORK) from e

    if response.status_code in (401, 403):
        raise ProbeError(
            f"credentials rejected (HTTP {response.status_code})",
            ProbeFailureKind.AUTH,
        )
    if response.status_code >= 400:
        raise ProbeError(
            f"unexpected response from {url} (HTTP {response.status_code})",
            ProbeFailureKind.NETWORK,
        )
    try:
        return response.json()
    except ValueError as e:
        raise ProbeError(f"invalid JSON from {url}", ProbeFailureKind.NETWORK) from e


def api_health_check(
    request: ProbeRequest, url: str, headers: dict[str, str]
) -> HealthCheckResult:
    """Probe a key-authenticated API by listing its models."""
    result = HealthCheckResult()
    if not request.api_key:
        return result.fail(
            STEP_CONFIGURED,
            ProbeError("no API key configured", ProbeFailureKind.CONFIG),
        )
    result.configured = True
    try:
        get_json(url, request, headers)
    except ProbeError as e:
        step = STEP_AUTHENTICATED if e.kind == ProbeFailureKind.AUTH else STEP_WORKING
        return result.fail(step, e)
    result.authenticated = True
    result.working = True
    return result
