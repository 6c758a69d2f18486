"""FlowRegistry tests — keying, per-flow locking, idle eviction.

Flows are constructed but never started; the registry only needs their
user and session ids.  Time is driven by a hand-advanced clock.
"""

import pytest

from helpers.fakes import FakeContentStore

from onboarding_engine.errors import DuplicateFlowError, NotFoundError
from onboarding_engine.flow import OnboardingFlow
from onboarding_server.registry import FlowRegistry


class FakeClock:
    """Callable clock advanced by hand, in seconds."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _flow(session_id: str, user_id: str = "u1") -> OnboardingFlow:
    return OnboardingFlow(
        FakeContentStore([]), user_id=user_id, session_id=session_id, partition="assessment",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return FlowRegistry(ttl_seconds=60, clock=clock)


# =====================================================================
# Keying
# =====================================================================


class TestKeying:

    def test_add_get_remove(self, registry):
        flow = _flow("s1")
        registry.add(flow)
        assert registry.get("u1", "s1") is flow
        assert registry.exists("u1", "s1")
        registry.remove("u1", "s1")
        assert not registry.exists("u1", "s1")
        assert len(registry) == 0

    def test_duplicate_add_rejected(self, registry):
        registry.add(_flow("s1"))
        with pytest.raises(DuplicateFlowError):
            registry.add(_flow("s1"))

    def test_same_session_for_two_users(self, registry):
        registry.add(_flow("s1", user_id="u1"))
        registry.add(_flow("s1", user_id="u2"))
        assert len(registry) == 2

    def test_unknown_flow(self, registry):
        with pytest.raises(NotFoundError):
            registry.get("u1", "missing")
        with pytest.raises(NotFoundError):
            registry.remove("u1", "missing")


# =====================================================================
# Idle eviction
# =====================================================================


class TestEviction:
    """Flows untouched for longer than the TTL leave memory."""

    def test_idle_flows_swept_when_a_flow_is_added(self, registry, clock):
        registry.add(_flow("old"))
        clock.advance(61)
        registry.add(_flow("new"))

        assert len(registry) == 1, "The idle flow must be evicted by the sweep"
        assert registry.exists("u1", "new")
        assert not registry.exists("u1", "old")

    def test_expired_flow_is_not_found(self, registry, clock):
        registry.add(_flow("s1"))
        clock.advance(61)
        with pytest.raises(NotFoundError):
            registry.get("u1", "s1")
        assert len(registry) == 0

    def test_expired_session_can_be_added_again(self, registry, clock):
        registry.add(_flow("s1"))
        clock.advance(61)
        registry.add(_flow("s1"))
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_access_refreshes_ttl(self, registry, clock):
        registry.add(_flow("s1"))
        clock.advance(50)
        async with registry.checkout("u1", "s1"):
            pass
        clock.advance(50)
        assert registry.exists("u1", "s1"), "Checkout must reset the idle timer"

    @pytest.mark.asyncio
    async def test_checked_out_flow_is_never_evicted(self, registry, clock):
        registry.add(_flow("busy"))
        async with registry.checkout("u1", "busy"):
            clock.advance(120)
            assert registry.evict_expired() == 0
            assert registry.exists("u1", "busy")

    def test_evict_expired_reports_count(self, registry, clock):
        registry.add(_flow("a"))
        registry.add(_flow("b"))
        clock.advance(30)
        registry.add(_flow("c"))
        clock.advance(31)
        assert registry.evict_expired() == 2
        assert registry.exists("u1", "c")

    def test_zero_ttl_keeps_flows(self, clock):
        registry = FlowRegistry(ttl_seconds=0, clock=clock)
        registry.add(_flow("s1"))
        clock.advance(10 ** 6)
        assert registry.evict_expired() == 0
        assert registry.get("u1", "s1").session_id == "s1"
