"""Claude Code CLI provider.

The CLI handles its own authentication, so the probe only checks that the
``claude`` executable is installed and answers ``--version``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from modelctl.exceptions import ProbeError, ProbeFailureKind
from modelctl.pricing import CLAUDE_CODE_MODELS
from modelctl.providers.health import (
    STEP_CONFIGURED,
    STEP_WORKING,
    Deadline,
    DetectionResult,
    HealthCheckResult,
    ProbeRequest,
)

logger = logging.getLogger(__name__)

CLI_NAME = "claude"
VERSION_TIMEOUT = 5.0
DEFAULT_MODELS: tuple[str, ...] = tuple(CLAUDE_CODE_MODELS)


def detect(deadline: Deadline) -> DetectionResult:
    """Look for the ``claude`` executable and read its version.

    Returns:
        DetectionResult; ``installed`` is False if the binary is missing.
        A binary that is present but fails ``--version`` is reported as
        installed with ``error`` set.
    """
    path = shutil.which(CLI_NAME)
    if path is None:
        return DetectionResult(installed=False, error=f"'{CLI_NAME}' not found in PATH")

    try:
        deadline.check("version")
        result = subprocess.run(
            [path, "--version"],
            capture_output=True,
            text=True,
            timeout=deadline.timeout(VERSION_TIMEOUT),
            check=False,
        )
    except subprocess.TimeoutExpired:
        return DetectionResult(
            installed=True, path=path, error="'claude --version' timed out", timed_out=True
        )
    except ProbeError as e:
        return DetectionResult(installed=True, path=path, error=e.message)
    except OSError as e:
        return DetectionResult(installed=True, path=path, error=str(e))

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        return DetectionResult(installed=True, path=path, error=detail)
    return DetectionResult(installed=True, path=path, version=result.stdout.strip())


def health_check(request: ProbeRequest) -> HealthCheckResult:
    """Installed -> authenticated (delegated to the CLI) -> working."""
    detection = detect(request.deadline)
    result = HealthCheckResult(version=detection.version)
    if not detection.installed:
        return result.fail(
            STEP_CONFIGURED,
            ProbeError(detection.error or "not installed", ProbeFailureKind.NOT_INSTALLED),
        )
    result.configured = True
    result.authenticated = True
    if detection.error:
        kind = ProbeFailureKind.TIMEOUT if detection.timed_out else ProbeFailureKind.NETWORK
        return result.fail(STEP_WORKING, ProbeError(detection.error, kind))
    result.working = True
    return result


def discover_models(request: ProbeRequest) -> list[str]:
    """Return the model aliases accepted by the CLI.

    Raises:
        ProbeError: If the CLI is not installed.
    """
    request.deadline.check("discover")
    if shutil.which(CLI_NAME) is None:
        raise ProbeError(
            f"'{CLI_NAME}' not found in PATH",
            ProbeFailureKind.NOT_INSTALLED,
            suggestions=["Install Claude Code: https://docs.anthropic.com/claude-code"],
        )
    return list(DEFAULT_MODELS)
