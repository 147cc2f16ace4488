"""Mobile Money payment session.

One ``PaymentSession`` backs one open payment dialog. It holds the phone
and promo inputs, validates promo codes, initiates the payment and follows
it to a terminal status through a ``StatusPoller``.

Status transitions::

    idle -> processing -> polling -> success
                 |           |
                 v           v
               failed <------+
                 |
                 +--> processing   (customer retries)

Payment failures never raise out of the session; they land in ``status``
and ``error``. After ``close()`` nothing in the session changes again,
including when a request that was already in flight completes.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable
from uuid import uuid4

from jobpay import metrics
from jobpay.core.config import settings
from jobpay.core.exceptions import PaymentRejectedError, PaymentTransportError, UnsupportedCarrierError
from jobpay.models.payment_models import (
    Failed,
    Idle,
    PaymentPhase,
    PaymentRequest,
    PaymentStatus,
    Plan,
    Polling,
    Processing,
    PromoResult,
    Succeeded,
)
from jobpay.services.carrier import detect_carrier, mask_phone, normalize_phone, resolve_gateway
from jobpay.services.payments_client import PaymentsClient
from jobpay.services.status_poller import PollOutcome, StatusPoller
from jobpay.utils.currency_fmt import discount_label, pay_label, prompt_message, transaction_reference

logger = logging.getLogger(__name__)

PHONE_REQUIRED_MESSAGE = "Please enter your phone number"
DECLINED_MESSAGE = "Payment was declined. Please try again."
TIMED_OUT_MESSAGE = "Payment timed out. Please check your phone and try again."
INVALID_PROMO_MESSAGE = "Invalid promo code"

_ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.IDLE: frozenset({PaymentStatus.PROCESSING}),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.POLLING, PaymentStatus.FAILED}),
    PaymentStatus.POLLING: frozenset({PaymentStatus.SUCCESS, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PROCESSING}),
    PaymentStatus.SUCCESS: frozenset(),
}

_BUSY = frozenset({PaymentStatus.PROCESSING, PaymentStatus.POLLING})


class PaymentSession:
    def __init__(
        self,
        plan: Plan,
        client: PaymentsClient,
        *,
        job_id: str | None = None,
        add_on_slugs: Iterable[str] | None = None,
        on_success: Callable[[], None] | None = None,
        poll_interval: float | None = None,
        poll_max_attempts: int | None = None,
        session_id: str | None = None,
    ):
        self.id = session_id or uuid4().hex
        self.plan = plan
        self.job_id = job_id
        self.add_on_slugs = tuple(add_on_slugs or ())
        self.poll_interval = (
            settings.PAYMENT_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        )
        self.poll_max_attempts = (
            settings.PAYMENT_POLL_MAX_ATTEMPTS if poll_max_attempts is None else poll_max_attempts
        )
        self.promo_result: PromoResult | None = None
        self.promo_loading = False
        self.error = ""
        self._client = client
        self._on_success = on_success
        self._success_notified = False
        self._phone = ""
        self._promo_code = ""
        self._phase: PaymentPhase = Idle()
        self._poller: StatusPoller | None = None
        self._closed = False

    # --- Derived state ---

    @property
    def status(self) -> PaymentStatus:
        return self._phase.status

    @property
    def phase(self) -> PaymentPhase:
        return self._phase

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        return self.status in _BUSY

    @property
    def phone(self) -> str:
        return self._phone

    @property
    def promo_code(self) -> str:
        return self._promo_code

    @property
    def transaction_id(self) -> str | None:
        return getattr(self._phase, "transaction_id", None)

    @property
    def transaction_reference(self) -> str | None:
        return transaction_reference(self.transaction_id)

    @property
    def poll_attempts(self) -> int:
        return self._poller.attempts if self._poller is not None else 0

    @property
    def carrier(self) -> str:
        return detect_carrier(self._phone)

    @property
    def final_amount(self) -> int:
        if self.promo_result is not None and self.promo_result.valid:
            return self.promo_result.final_amount
        return self.plan.amount

    @property
    def discount_amount(self) -> int:
        if self.promo_result is not None and self.promo_result.valid:
            return self.promo_result.discount_amount
        return 0

    @property
    def promo_message(self) -> str | None:
        if self.promo_result is None:
            return None
        if self.promo_result.valid:
            return discount_label(self.promo_result.discount_amount)
        return self.promo_result.reason or INVALID_PROMO_MESSAGE

    @property
    def suggested_gateway(self) -> str | None:
        """Gateway the phone number routes to, None when no carrier matches."""
        try:
            return resolve_gateway(self._phone, default=settings.PAYMENTS_DEFAULT_GATEWAY)
        except UnsupportedCarrierError:
            return None

    @property
    def pay_label(self) -> str:
        return pay_label(self.final_amount, self.suggested_gateway)

    @property
    def prompt_message(self) -> str:
        return prompt_message(self.carrier)

    @property
    def can_submit(self) -> bool:
        return (
            not self._closed
            and bool(self._phone.strip())
            and self.status not in _BUSY
            and self.status is not PaymentStatus.SUCCESS
        )

    # --- Inputs ---

    def set_phone(self, phone: str) -> bool:
        """Replace the phone input. Ignored once closed or while a payment is in flight."""
        if self._closed or self.busy:
            return False
        self._phone = phone
        return True

    def set_promo_code(self, code: str) -> bool:
        """Replace the promo input; any edit forgets the previous promo result."""
        if self._closed or self.busy:
            return False
        code = code.upper()
        if code != self._promo_code:
            self._promo_code = code
            self.promo_result = None
        return True

    async def apply_promo(self) -> PromoResult | None:
        """Validate the current promo code and store the result."""
        code = self._promo_code.strip()
        if self._closed or not code or self.promo_loading or self.busy:
            return self.promo_result

        self.promo_loading = True
        self.promo_result = None
        try:
            result = await self._client.validate_promo(code, self.plan)
        finally:
            if not self._closed:
                self.promo_loading = False

        if self._closed:
            return None
        if self._promo_code.strip() != code:
            logger.info("Session %s: promo code edited during validation, result dropped", self.id)
            return None

        self.promo_result = result
        if result.valid:
            outcome = "valid"
        elif result.reason == PromoResult.VALIDATION_FAILED:
            outcome = "error"
        else:
            outcome = "invalid"
        metrics.promo_validated(outcome)
        logger.info(
            "Session %s: promo %s for plan=%s -> %s (discount=%s)",
            self.id,
            code,
            self.plan.slug,
            outcome,
            result.discount_amount,
        )
        return result

    # --- Payment ---

    def build_request(self, gateway: str | None = None) -> PaymentRequest:
        code = self._promo_code.strip()
        promo_code = None
        # Only a code whose own latest validation came back valid is sent
        if code and self.promo_result is not None and self.promo_result.applies_to(code):
            promo_code = code
        return PaymentRequest(
            plan_slug=self.plan.slug,
            phone_number=normalize_phone(self._phone),
            promo_code=promo_code,
            gateway=gateway or None,
            job_id=self.job_id or None,
            add_on_slugs=self.add_on_slugs,
        )

    async def submit(self, gateway: str | None = None) -> PaymentStatus:
        """Initiate the payment and start confirmation polling.

        *gateway* is passed through to the backend unchanged.
        """
        if self._closed:
            logger.debug("Session %s: submit ignored, session closed", self.id)
            return self.status
        if self.status in _BUSY or self.status is PaymentStatus.SUCCESS:
            return self.status
        if not self._phone.strip():
            self.error = PHONE_REQUIRED_MESSAGE
            return self.status

        self.error = ""
        self._transition(Processing())
        request = self.build_request(gateway)
        metrics.payment_initiated(request.gateway)
        logger.info(
            "Session %s: initiating payment plan=%s phone=%s gateway=%s promo=%s",
            self.id,
            request.plan_slug,
            mask_phone(request.phone_number),
            request.gateway or "auto",
            request.promo_code or "-",
        )

        try:
            transaction_id = await self._client.initiate(request)
        except PaymentRejectedError as exc:
            if not self._closed:
                logger.warning("Session %s: payment rejected: %s", self.id, exc.message)
                self._fail(exc.message, reason="rejected")
            return self.status
        except PaymentTransportError as exc:
            if not self._closed:
                logger.warning("Session %s: payment request failed: %s", self.id, exc.reason)
                self._fail(PaymentTransportError.USER_MESSAGE, reason="transport")
            return self.status
        except asyncio.CancelledError:
            if not self._closed:
                self._fail(PaymentTransportError.USER_MESSAGE, reason="transport")
            raise
        except Exception:  # noqa: BLE001
            if not self._closed:
                logger.exception("Session %s: unexpected error during payment initiation", self.id)
                self._fail(PaymentTransportError.USER_MESSAGE, reason="transport")
            return self.status

        if self._closed:
            logger.info("Session %s: closed before transaction %s could be tracked", self.id, transaction_id)
            return self.status

        self._transition(Polling(transaction_id))
        self._poller = StatusPoller(
            self._client,
            transaction_id,
            self._on_poll_outcome,
            interval=self.poll_interval,
            max_attempts=self.poll_max_attempts,
        )
        self._poller.start()
        return self.status

    async def wait_for_settlement(self) -> PaymentStatus:
        """Wait for the running confirmation poll (if any) to finish."""
        if self._poller is not None:
            await self._poller.wait()
        return self.status

    def close(self) -> None:
        """Stop polling and freeze the session."""
        if self._closed:
            return
        self._closed = True
        if self._poller is not None:
            self._poller.cancel()
        logger.info("Session %s closed in status=%s", self.id, self.status.value)

    # --- Transitions ---

    def _transition(self, phase: PaymentPhase) -> None:
        current = self._phase.status
        if phase.status not in _ALLOWED_TRANSITIONS[current]:
            raise RuntimeError(f"Illegal payment transition {current.value} -> {phase.status.value}")
        logger.debug("Session %s: %s -> %s", self.id, current.value, phase.status.value)
        self._phase = phase

    def _fail(self, message: str, *, reason: str) -> None:
        self._transition(Failed(message, transaction_id=self.transaction_id))
        self.error = message
        metrics.payment_failed(reason, self.poll_attempts if reason in ("declined", "timeout") else None)

    def _on_poll_outcome(self, outcome: PollOutcome, attempts: int) -> None:
        if self._closed or not isinstance(self._phase, Polling):
            return
        if outcome is PollOutcome.COMPLETED:
            self._transition(Succeeded(self._phase.transaction_id))
            metrics.payment_succeeded(attempts)
            self._notify_success()
        elif outcome is PollOutcome.DECLINED:
            self._fail(DECLINED_MESSAGE, reason="declined")
        else:
            self._fail(TIMED_OUT_MESSAGE, reason="timeout")

    def _notify_success(self) -> None:
        if self._success_notified or self._on_success is None:
            return
        self._success_notified = True
        try:
            self._on_success()
        except Exception:  # noqa: BLE001
            logger.exception("Session %s: success callback failed", self.id)
