"""Metrics facade.

Service code should ONLY call the semantic helpers here so the backend
can change freely. Counters live in the default Prometheus registry and
are exposed by ``GET /metrics``.

Metrics:
- checkout_sessions_opened_total     Payment dialogs opened
- promo_validations_total            Promo checks by outcome (valid/invalid/error)
- payment_initiated_total            Initiation requests by gateway override
- payment_succeeded_total            Payments confirmed by polling
- payment_failed_total               Failures by reason (rejected/transport/declined/timeout)
- payment_poll_attempts              Attempts needed to reach a terminal outcome
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_SESSIONS_OPENED = Counter("checkout_sessions_opened_total", "Checkout sessions opened")
_PROMO_VALIDATIONS = Counter(
    "promo_validations_total", "Promo code validations by outcome", ["outcome"]
)
_PAYMENT_INITIATED = Counter(
    "payment_initiated_total", "Mobile Money payment initiations", ["gateway"]
)
_PAYMENT_SUCCEEDED = Counter("payment_succeeded_total", "Payments confirmed as completed")
_PAYMENT_FAILED = Counter("payment_failed_total", "Failed payments", ["reason"])
_POLL_ATTEMPTS = Histogram(
    "payment_poll_attempts",
    "Status polls issued before a terminal outcome",
    buckets=(1, 2, 3, 5, 10, 20, 30, 45, 60),
)
_RATE_LIMIT_EXCEEDED = Counter("rate_limit_exceeded_total", "Rate limit exceeded events")


def checkout_session_opened():
    _SESSIONS_OPENED.inc()


def promo_validated(outcome: str):
    _PROMO_VALIDATIONS.labels(outcome=outcome).inc()


def payment_initiated(gateway: str | None):
    _PAYMENT_INITIATED.labels(gateway=gateway or "auto").inc()


def payment_succeeded(poll_attempts: int | None = None):
    _PAYMENT_SUCCEEDED.inc()
    if poll_attempts is not None:
        _POLL_ATTEMPTS.observe(poll_attempts)


def payment_failed(reason: str, poll_attempts: int | None = None):
    _PAYMENT_FAILED.labels(reason=reason).inc()
    if poll_attempts is not None:
        _POLL_ATTEMPTS.observe(poll_attempts)


def rate_limit_exceeded():
    _RATE_LIMIT_EXCEEDED.inc()
    logger.debug("metric rate_limit_exceeded_total += 1")
