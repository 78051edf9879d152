"""Bounded-latency provider probes.

Every probe runs against a :class:`Deadline`. Probes check the deadline
between steps and never wait on the network or a subprocess longer than the
time that remains, so ``provider list`` and ``provider test`` cannot hang.
A deadline can also be cancelled from another thread (e.g. on Ctrl+C), which
makes in-flight probes stop at their next step.
"""

from __future__ import annotations

import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from modelctl.config.models import ProviderConfig
from modelctl.exceptions import ProbeError, ProbeFailureKind

__all__ = [
    "STEP_AUTHENTICATED",
    "STEP_CONFIGURED",
    "STEP_WORKING",
    "Deadline",
    "DetectionResult",
    "HealthCheckResult",
    "ProbeRequest",
]

STEP_CONFIGURED = "configured"
STEP_AUTHENTICATED = "authenticated"
STEP_WORKING = "working"


class Deadline:
    """A point in time after which a probe must give up.

    Example:
        >>> deadline = Deadline(5.0)
        >>> requests.get(url, timeout=deadline.timeout(2.0))
    """

    def __init__(
        self,
        seconds: float,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.seconds = seconds
        self._clock = clock
        self._end = clock() + seconds
        self.cancel_event = cancel_event or threading.Event()

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._end - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cancel(self) -> None:
        """Signal every probe sharing this deadline to stop."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def timeout(self, cap: float | None = None) -> float:
        """Timeout to pass to a blocking call: remaining time, optionally capped."""
        remaining = self.remaining()
        return remaining if cap is None else min(cap, remaining)

    def child(self, seconds: float) -> Deadline:
        """A nested deadline no later than this one, sharing its cancellation."""
        return Deadline(
            min(seconds, self.remaining()),
            clock=self._clock,
            cancel_event=self.cancel_event,
        )

    def check(self, step: str) -> None:
        """Raise if the probe should stop before starting ``step``.

        Raises:
            ProbeError: With kind ``cancelled`` or ``timeout``.
        """
        if self.cancelled:
            raise ProbeError(f"{step}: cancelled", ProbeFailureKind.CANCELLED)
        if self.expired():
            raise ProbeError(
                f"{step}: timed out after {self.seconds:g}s", ProbeFailureKind.TIMEOUT
            )


@dataclass
class DetectionResult:
    """Outcome of looking for a CLI-based provider's executable."""

    installed: bool
    path: str | None = None
    version: str | None = None
    error: str | None = None
    timed_out: bool = False


@dataclass
class ProbeRequest:
    """Everything a probe needs about one configured provider.

    Attributes:
        name: Provider name from the settings file.
        provider: The provider's settings.
        api_key: Resolved credential, or None. Never persisted.
        base_url: Effective base URL (configured or type default).
        deadline: Deadline the probe must respect.
    """

    name: str
    provider: ProviderConfig
    api_key: str | None
    base_url: str | None
    deadline: Deadline

    def __repr__(self) -> str:
        # Keep the credential out of logs and tracebacks
        return (
            f"ProbeRequest(name={self.name!r}, type={self.provider.type!r}, "
            f"base_url={self.base_url!r})"
        )


@dataclass
class HealthCheckResult:
    """Outcome of the three-step probe: configured, authenticated, working.

    Attributes:
        configured: Credentials and endpoint are present (or the CLI is
            installed).
        authenticated: The backend accepted the credentials.
        working: A request succeeded end to end.
        latency_ms: Wall time of the probe.
        version: Version reported by a CLI provider, if any.
        error_step: First step that failed.
        error: Message of the first failure.
        kind: Classification of the first failure.
    """

    configured: bool = False
    authenticated: bool = False
    working: bool = False
    latency_ms: int | None = None
    version: str | None = None
    error_step: str | None = None
    error: str | None = None
    kind: ProbeFailureKind | None = field(default=None)

    @property
    def healthy(self) -> bool:
        return self.configured and self.authenticated and self.working

    def fail(self, step: str, error: ProbeError | str) -> HealthCheckResult:
        """Record the first failure and return self."""
        if self.error_step is None:
            self.error_step = step
            if isinstance(error, ProbeError):
                self.error = error.message
                self.kind = error.kind
            else:
                self.error = error
        return self

    def short_error(self) -> str:
        """One-word-ish summary used in table rows."""
        if self.kind == ProbeFailureKind.NOT_INSTALLED:
            return "not installed"
        if self.kind == ProbeFailureKind.TIMEOUT:
            return "timed out"
        if self.kind == ProbeFailureKind.CANCELLED:
            return "cancelled"
        if self.error_step == STEP_CONFIGURED:
            return "not configured"
        if self.error_step == STEP_AUTHENTICATED:
            return "not authenticated"
        if self.error_step == STEP_WORKING:
            return "connectivity failed"
        return self.error or "unknown error"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value if self.kind else None
        data["healthy"] = self.healthy
        return data
