"""In-memory ownership of open checkout sessions.

The registry is the only holder of live ``PaymentSession`` objects for the
HTTP surface. Closing a session removes it from the registry, so a closed
session is never handed out again.

Sessions whose dialog went away without a DELETE are evicted once they
have not been touched for ``ttl_seconds``. A session with a payment in
flight is never evicted; its polling is bounded and it becomes evictable
once it reaches a terminal status.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Iterable
from uuid import uuid4

from jobpay import metrics
from jobpay.core.exceptions import CheckoutCapacityError, CheckoutSessionNotFoundError
from jobpay.models.payment_models import Plan
from jobpay.services.payment_session import PaymentSession
from jobpay.services.payments_client import PaymentsClient

logger = logging.getLogger(__name__)

DEFAULT_TTL = 1800.0  # 30 minutes without a request


class CheckoutSessionRegistry:
    def __init__(
        self,
        client: PaymentsClient,
        *,
        max_open_sessions: int = 1000,
        ttl_seconds: float = DEFAULT_TTL,
        poll_interval: float | None = None,
        poll_max_attempts: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.max_open_sessions = max_open_sessions
        self.ttl_seconds = ttl_seconds
        self.poll_interval = poll_interval
        self.poll_max_attempts = poll_max_attempts
        self._clock = clock
        self._sessions: dict[str, PaymentSession] = {}
        self._touched: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def open(
        self,
        plan: Plan,
        *,
        job_id: str | None = None,
        add_on_slugs: Iterable[str] | None = None,
    ) -> PaymentSession:
        self.evict_expired()
        if len(self._sessions) >= self.max_open_sessions:
            raise CheckoutCapacityError(self.max_open_sessions)

        session_id = uuid4().hex

        def _log_success() -> None:
            logger.info("Checkout session %s paid for plan=%s", session_id, plan.slug)

        session = PaymentSession(
            plan,
            self.client,
            job_id=job_id,
            add_on_slugs=add_on_slugs,
            on_success=_log_success,
            poll_interval=self.poll_interval,
            poll_max_attempts=self.poll_max_attempts,
            session_id=session_id,
        )
        self._sessions[session.id] = session
        self._touched[session.id] = self._clock()
        metrics.checkout_session_opened()
        logger.info("Opened checkout session %s plan=%s amount=%s", session.id, plan.slug, plan.amount)
        return session

    def get(self, session_id: str) -> PaymentSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise CheckoutSessionNotFoundError(session_id)
        self._touched[session_id] = self._clock()
        return session

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        self._touched.pop(session_id, None)
        if session is None:
            raise CheckoutSessionNotFoundError(session_id)
        session.close()

    def evict_expired(self) -> int:
        """Close and drop sessions idle for longer than the TTL."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            session_id
            for session_id, touched in self._touched.items()
            if touched <= cutoff and not self._sessions[session_id].busy
        ]
        for session_id in expired:
            self._touched.pop(session_id)
            self._sessions.pop(session_id).close()
        if expired:
            logger.info("Evicted %s idle checkout sessions", len(expired))
        return len(expired)

    def close_all(self) -> int:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        self._touched.clear()
        for session in sessions:
            session.close()
        if sessions:
            logger.info("Closed %s open checkout sessions", len(sessions))
        return len(sessions)
