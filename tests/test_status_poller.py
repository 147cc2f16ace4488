"""Bounded confirmation polling."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from jobpay.core.exceptions import PaymentTransportError
from jobpay.services.status_poller import PollOutcome, StatusPoller


def _poller(client, outcomes, **kwargs):
    kwargs.setdefault("interval", 0)
    kwargs.setdefault("max_attempts", 60)
    return StatusPoller(client, "tx-1", lambda outcome, attempts: outcomes.append((outcome, attempts)), **kwargs)


@pytest.mark.asyncio
async def test_completes_on_third_poll(backend, payments_client):
    backend.status_script = ["pending", "processing", "completed"]
    outcomes = []
    poller = _poller(payments_client, outcomes)

    poller.start()
    await poller.wait()

    assert outcomes == [(PollOutcome.COMPLETED, 3)]
    assert backend.status_calls == 3


@pytest.mark.asyncio
async def test_failed_status_is_declined(backend, payments_client):
    backend.status_script = ["pending", "failed"]
    outcomes = []
    poller = _poller(payments_client, outcomes)

    poller.start()
    await poller.wait()

    assert outcomes == [(PollOutcome.DECLINED, 2)]


@pytest.mark.asyncio
async def test_times_out_after_exactly_max_attempts(backend, payments_client):
    outcomes = []
    poller = _poller(payments_client, outcomes)

    poller.start()
    await poller.wait()

    assert outcomes == [(PollOutcome.TIMED_OUT, 60)]
    assert backend.status_calls == 60

    await asyncio.sleep(0)
    assert backend.status_calls == 60


@pytest.mark.asyncio
async def test_transient_errors_are_retried(backend, payments_client):
    backend.status_script = [
        "pending",
        httpx.ConnectError("network down"),
        httpx.Response(502, content=b"bad gateway"),
        "completed",
    ]
    outcomes = []
    poller = _poller(payments_client, outcomes)

    poller.start()
    await poller.wait()

    assert outcomes == [(PollOutcome.COMPLETED, 4)]


@pytest.mark.asyncio
async def test_errors_count_towards_the_attempt_bound(payments_client, monkeypatch):
    calls = 0

    async def always_failing(transaction_id):
        nonlocal calls
        calls += 1
        raise PaymentTransportError("unreachable")

    monkeypatch.setattr(payments_client, "poll_once", always_failing)
    outcomes = []
    poller = _poller(payments_client, outcomes, max_attempts=5)

    poller.start()
    await poller.wait()

    assert outcomes == [(PollOutcome.TIMED_OUT, 5)]
    assert calls == 5


@pytest.mark.asyncio
async def test_unknown_statuses_keep_polling(backend, payments_client):
    backend.status_script = ["initiated", "", "PENDING", "COMPLETED", "completed"]
    outcomes = []
    poller = _poller(payments_client, outcomes)

    poller.start()
    await poller.wait()

    assert outcomes == [(PollOutcome.COMPLETED, 5)]


@pytest.mark.asyncio
async def test_cancel_drops_in_flight_response(backend, payments_client):
    backend.status_gate = asyncio.Event()
    backend.status_entered = asyncio.Event()
    backend.default_status = "completed"
    outcomes = []
    poller = _poller(payments_client, outcomes)

    poller.start()
    await asyncio.wait_for(backend.status_entered.wait(), timeout=1)
    poller.cancel()
    backend.status_gate.set()
    await poller.wait()

    assert outcomes == []
    assert poller.active is False
    assert backend.status_calls == 1


@pytest.mark.asyncio
async def test_cancel_between_polls_stops_the_loop(backend, payments_client):
    outcomes = []
    poller = _poller(payments_client, outcomes, interval=30)

    poller.start()
    while backend.status_calls < 1:
        await asyncio.sleep(0)
    poller.cancel()
    await poller.wait()

    assert outcomes == []
    assert backend.status_calls == 1


@pytest.mark.asyncio
async def test_outcome_handler_errors_are_contained(backend, payments_client):
    backend.status_script = ["completed"]

    def exploding(outcome, attempts):
        raise RuntimeError("handler bug")

    poller = StatusPoller(payments_client, "tx-1", exploding, interval=0)
    task = poller.start()
    await poller.wait()

    assert task.exception() is None


@pytest.mark.asyncio
async def test_cannot_start_twice(payments_client):
    poller = _poller(payments_client, [])
    poller.start()
    with pytest.raises(RuntimeError):
        poller.start()
    poller.cancel()
    await poller.wait()
