"""Tests for probe deadlines and health results."""

import pytest

from modelctl.config.models import ProviderConfig
from modelctl.exceptions import ProbeError, ProbeFailureKind
from modelctl.providers.health import (
    STEP_AUTHENTICATED,
    STEP_CONFIGURED,
    STEP_WORKING,
    Deadline,
    HealthCheckResult,
    ProbeRequest,
)


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestDeadline:
    """Tests for Deadline."""

    def test_remaining_and_expiry(self):
        clock = Clock()
        deadline = Deadline(5.0, clock=clock)
        assert deadline.remaining() == 5.0
        clock.now += 3.0
        assert deadline.timeout() == 2.0
        assert deadline.timeout(1.0) == 1.0
        clock.now += 10.0
        assert deadline.remaining() == 0.0
        assert deadline.expired()

    def test_check_timeout(self):
        clock = Clock()
        deadline = Deadline(1.0, clock=clock)
        deadline.check("configured")
        clock.now += 2.0
        with pytest.raises(ProbeError) as exc_info:
            deadline.check("working")
        assert exc_info.value.kind == ProbeFailureKind.TIMEOUT
        assert "working: timed out after 1s" == exc_info.value.message

    def test_child_never_outlives_parent(self):
        """Test that a child deadline is capped by its parent's remaining time."""
        clock = Clock()
        parent = Deadline(5.0, clock=clock)
        clock.now += 4.0
        assert parent.child(10.0).remaining() == pytest.approx(1.0)
        assert parent.child(0.5).remaining() == pytest.approx(0.5)

    def test_cancellation_is_shared(self):
        parent = Deadline(60.0)
        child = parent.child(10.0)
        parent.cancel()
        assert child.cancelled
        with pytest.raises(ProbeError) as exc_info:
            child.check("discover")
        assert exc_info.value.kind == ProbeFailureKind.CANCELLED


class TestHealthCheckResult:
    """Tests for HealthCheckResult."""

    def test_first_failure_wins(self):
        result = HealthCheckResult(configured=True)
        result.fail(STEP_AUTHENTICATED, ProbeError("rejected", ProbeFailureKind.AUTH))
        result.fail(STEP_WORKING, "later")
        assert result.error_step == STEP_AUTHENTICATED
        assert result.error == "rejected"
        assert result.kind == ProbeFailureKind.AUTH
        assert not result.healthy

    @pytest.mark.parametrize(
        ("step", "kind", "summary"),
        [
            (STEP_CONFIGURED, ProbeFailureKind.NOT_INSTALLED, "not installed"),
            (STEP_WORKING, ProbeFailureKind.TIMEOUT, "timed out"),
            (STEP_CONFIGURED, ProbeFailureKind.CONFIG, "not configured"),
            (STEP_AUTHENTICATED, ProbeFailureKind.AUTH, "not authenticated"),
            (STEP_WORKING, ProbeFailureKind.NETWORK, "connectivity failed"),
        ],
    )
    def test_short_error(self, step, kind, summary):
        assert HealthCheckResult().fail(step, ProbeError("x", kind)).short_error() == summary

    def test_to_dict(self):
        data = HealthCheckResult(configured=True, authenticated=True, working=True, latency_ms=12).to_dict()
        assert data["healthy"] is True
        assert data["kind"] is None
        assert data["latency_ms"] == 12


class TestProbeRequest:
    """Tests for ProbeRequest."""

    def test_repr_hides_api_key(self):
        request = ProbeRequest(
            name="anthropic",
            provider=ProviderConfig(type="anthropic"),
            api_key="sk-live-abcdefghijklmnop",
            base_url=None,
            deadline=Deadline(1.0),
        )
        assert "sk-live" not in repr(request)
        assert "anthropic" in repr(request)
