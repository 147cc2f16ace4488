"""Bounded confirmation polling for a Mobile Money transaction.

The customer approves the charge on their handset, so the backend only
learns the outcome asynchronously. The poller queries the status endpoint
at a fixed cadence until it sees ``completed`` or ``failed``, or until
``max_attempts`` queries went unanswered. Any other status, and any error
while querying, counts as still pending.

The loop runs as a single asyncio task; ``cancel()`` stops it before the
next query and drops any response still in flight.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from typing import Callable

from jobpay.models.payment_models import REMOTE_STATUS_COMPLETED, REMOTE_STATUS_FAILED
from jobpay.services.payments_client import PaymentsClient

logger = logging.getLogger(__name__)


class PollOutcome(str, enum.Enum):
    COMPLETED = "completed"
    DECLINED = "declined"
    TIMED_OUT = "timed_out"


OutcomeCallback = Callable[[PollOutcome, int], None]


class StatusPoller:
    def __init__(
        self,
        client: PaymentsClient,
        transaction_id: str,
        on_outcome: OutcomeCallback,
        *,
        interval: float = 5.0,
        max_attempts: int = 60,
    ):
        self.client = client
        self.transaction_id = transaction_id
        self.interval = interval
        self.max_attempts = max_attempts
        self.attempts = 0
        self._on_outcome = on_outcome
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError("poller already started")
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"payment-poll:{self.transaction_id}"
        )
        return self._task

    def cancel(self) -> None:
        """Stop polling; no outcome is reported after this returns."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Block until the loop has finished or was cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _run(self) -> None:
        while not self._cancelled:
            # Bound is checked before each query, so the worst-case overrun
            # past max_attempts * interval is one interval.
            if self.attempts >= self.max_attempts:
                logger.warning(
                    "Payment %s timed out after %s status checks", self.transaction_id, self.attempts
                )
                self._finish(PollOutcome.TIMED_OUT)
                return
            self.attempts += 1

            try:
                status = await self.client.poll_once(self.transaction_id)
            except Exception as exc:  # noqa: BLE001 - a flaky poll must not abort the flow
                logger.warning(
                    "Status check %s/%s for %s failed, retrying: %s",
                    self.attempts,
                    self.max_attempts,
                    self.transaction_id,
                    exc,
                )
                status = None

            if self._cancelled:
                return
            if status == REMOTE_STATUS_COMPLETED:
                self._finish(PollOutcome.COMPLETED)
                return
            if status == REMOTE_STATUS_FAILED:
                self._finish(PollOutcome.DECLINED)
                return

            logger.debug("Payment %s still pending (status=%r)", self.transaction_id, status)
            await asyncio.sleep(self.interval)

    def _finish(self, outcome: PollOutcome) -> None:
        if self._cancelled:
            return
        logger.info(
            "Payment %s polling finished: %s after %s attempts",
            self.transaction_id,
            outcome.value,
            self.attempts,
        )
        try:
            self._on_outcome(outcome, self.attempts)
        except Exception:  # noqa: BLE001
            logger.exception("Outcome handler failed for payment %s", self.transaction_id)
