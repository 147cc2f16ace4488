"""Exception hierarchy for the checkout service.

Error codes follow pattern: [CATEGORY][NUMBER]
- PAY: Payment boundary errors (200-299)
- CHK: Checkout session errors (300-399)

Payment errors are raised by the HTTP client helpers and caught by the
payment state machine, which turns them into a status + message pair.
Checkout errors surface at the API layer only.
"""

from __future__ import annotations

from typing import Any


class JobPayException(Exception):
    """Base exception for all checkout service errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# PAYMENT ERRORS (PAY200-299)
# ============================================================================

class PaymentError(JobPayException):
    """Base class for payment-boundary errors."""
    pass


class PaymentRejectedError(PaymentError):
    """The payments backend answered a non-2xx status.

    ``message`` is the backend's own ``error`` text (or a generic fallback)
    and is shown to the user verbatim.
    """

    DEFAULT_MESSAGE = "Payment failed"

    def __init__(self, message: str | None = None, http_status: int | None = None):
        super().__init__(
            message=message or self.DEFAULT_MESSAGE,
            code="PAY201",
            status_code=402,
            details={"http_status": http_status} if http_status is not None else {},
        )
        self.http_status = http_status


class PaymentTransportError(PaymentError):
    """Network failure or a response that could not be understood."""

    USER_MESSAGE = "Something went wrong. Please try again."

    def __init__(self, reason: str, *, endpoint: str | None = None):
        super().__init__(
            message=reason,
            code="PAY202",
            status_code=502,
            details={"endpoint": endpoint} if endpoint else {},
        )
        self.reason = reason
        self.endpoint = endpoint


class UnsupportedCarrierError(PaymentError):
    """Phone number does not belong to a supported Mobile Money carrier."""

    def __init__(self):
        super().__init__(
            message="Unable to detect a supported Mobile Money provider. Use an MTN or Orange number.",
            code="PAY203",
            status_code=400,
            details={},
        )


# ============================================================================
# CHECKOUT SESSION ERRORS (CHK300-399)
# ============================================================================

class CheckoutError(JobPayException):
    """Base class for checkout-session errors."""
    pass


class CheckoutSessionNotFoundError(CheckoutError):
    def __init__(self, session_id: str):
        super().__init__(
            message=f"Checkout session {session_id} not found",
            code="CHK301",
            status_code=404,
            details={"session_id": session_id},
        )


class CheckoutSessionClosedError(CheckoutError):
    def __init__(self, session_id: str):
        super().__init__(
            message=f"Checkout session {session_id} is closed",
            code="CHK302",
            status_code=409,
            details={"session_id": session_id},
        )


class CheckoutCapacityError(CheckoutError):
    """Too many sessions are open at once."""

    def __init__(self, limit: int):
        super().__init__(
            message="Too many open checkout sessions. Please try again shortly.",
            code="CHK303",
            status_code=503,
            details={"limit": limit},
        )


class CheckoutSessionBusyError(CheckoutError):
    """Inputs are locked while a payment is being initiated or confirmed."""

    def __init__(self, session_id: str):
        super().__init__(
            message="A payment is already in progress for this session",
            code="CHK304",
            status_code=409,
            details={"session_id": session_id},
        )
