import asyncio

import pytest

from jobpay.api.dependencies import get_session
from jobpay.core.exceptions import (
    CheckoutCapacityError,
    CheckoutSessionClosedError,
    CheckoutSessionNotFoundError,
)
from jobpay.services.session_registry import CheckoutSessionRegistry


@pytest.fixture
def registry(payments_client):
    return CheckoutSessionRegistry(payments_client, max_open_sessions=2, poll_interval=0, poll_max_attempts=3)


def test_open_applies_registry_poll_settings(registry, plan):
    session = registry.open(plan, job_id="job-1", add_on_slugs=["featured"])

    assert registry.get(session.id) is session
    assert session.poll_interval == 0
    assert session.poll_max_attempts == 3
    assert session.add_on_slugs == ("featured",)
    assert len(registry) == 1


def test_capacity(registry, plan):
    registry.open(plan)
    registry.open(plan)

    with pytest.raises(CheckoutCapacityError) as exc_info:
        registry.open(plan)
    assert exc_info.value.details == {"limit": 2}


def test_close_removes_and_freezes(registry, plan):
    session = registry.open(plan)

    registry.close(session.id)

    assert session.closed
    with pytest.raises(CheckoutSessionNotFoundError):
        registry.get(session.id)
    with pytest.raises(CheckoutSessionNotFoundError):
        registry.close(session.id)


def test_closed_session_is_not_resolved(registry, plan):
    session = registry.open(plan)
    session.close()

    with pytest.raises(CheckoutSessionClosedError):
        get_session(session.id, registry)


@pytest.mark.asyncio
async def test_close_all_stops_polling(registry, plan, backend):
    session = registry.open(plan)
    session.set_phone("671234567")
    await session.submit()

    assert registry.close_all() == 1
    await session.wait_for_settlement()

    assert len(registry) == 0
    assert session.closed
    assert session.status.value == "polling"


@pytest.mark.asyncio
async def test_success_is_logged_once(registry, plan, backend, caplog):
    backend.status_script = ["completed"]
    session = registry.open(plan)
    session.set_phone("671234567")

    with caplog.at_level("INFO", logger="jobpay.services.session_registry"):
        await session.submit()
        await session.wait_for_settlement()

    paid = [r for r in caplog.records if "paid for plan" in r.getMessage()]
    assert len(paid) == 1


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_abandoned_terminal_sessions_are_evicted(payments_client, plan, backend):
    backend.initiate_response = (400, {"error": "Plan not found"})
    clock = FakeClock()
    registry = CheckoutSessionRegistry(
        payments_client, max_open_sessions=2, ttl_seconds=600, poll_interval=0, clock=clock
    )
    abandoned = []
    for _ in range(2):
        session = registry.open(plan)
        session.set_phone("671234567")
        await session.submit()
        assert session.status.value == "failed"
        abandoned.append(session)

    with pytest.raises(CheckoutCapacityError):
        registry.open(plan)

    clock.now += 601
    fresh = registry.open(plan)

    assert len(registry) == 1
    assert registry.get(fresh.id) is fresh
    assert all(s.closed for s in abandoned)
    with pytest.raises(CheckoutSessionNotFoundError):
        registry.get(abandoned[0].id)


def test_recent_access_keeps_session_alive(payments_client, plan):
    clock = FakeClock()
    registry = CheckoutSessionRegistry(payments_client, max_open_sessions=5, ttl_seconds=600, clock=clock)
    kept = registry.open(plan)
    dropped = registry.open(plan)

    clock.now += 500
    registry.get(kept.id)
    clock.now += 200

    assert registry.evict_expired() == 1
    assert registry.get(kept.id) is kept
    assert dropped.closed


@pytest.mark.asyncio
async def test_session_with_payment_in_flight_is_not_evicted(payments_client, plan, backend):
    backend.status_gate = asyncio.Event()
    clock = FakeClock()
    registry = CheckoutSessionRegistry(payments_client, ttl_seconds=600, poll_interval=0, clock=clock)
    session = registry.open(plan)
    session.set_phone("671234567")
    await session.submit()

    clock.now += 10_000

    assert registry.evict_expired() == 0
    assert registry.get(session.id) is session
    registry.close_all()
