"""Domain types for Mobile Money checkout.

Amounts are plain integers in XAF (CFA francs have no subdivision).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union


class PaymentStatus(str, enum.Enum):
    """UI-visible status of a checkout session."""
    IDLE = "idle"
    VALIDATING = "validating"  # reserved; promo checks use the promo_loading flag instead
    PROCESSING = "processing"  # initiation request in flight
    POLLING = "polling"        # waiting for the customer to approve on their phone
    SUCCESS = "success"
    FAILED = "failed"


class Gateway(str, enum.Enum):
    """Payunit routing codes for the supported carriers."""
    CM_MTN = "CM_MTN"
    CM_ORANGE = "CM_ORANGE"


# Statuses returned by GET /payments/{id}/status that end polling
REMOTE_STATUS_COMPLETED = "completed"
REMOTE_STATUS_FAILED = "failed"


@dataclass(frozen=True)
class Plan:
    """Pricing plan being paid for (read-only input)."""
    id: str
    slug: str
    name: str
    amount: int
    duration_days: int | None = None


@dataclass(frozen=True)
class PromoResult:
    """Outcome of a promo code check.

    ``code`` is the exact code string the result was computed for, so a
    result can never be reused for a different code.
    """
    valid: bool
    discount_amount: int
    final_amount: int
    reason: str | None = None
    code: str = ""

    VALIDATION_FAILED: ClassVar[str] = "Validation failed"

    @classmethod
    def accepted(cls, plan_amount: int, discount_amount: int, code: str) -> PromoResult:
        discount = min(max(int(discount_amount), 0), plan_amount)
        return cls(
            valid=True,
            discount_amount=discount,
            final_amount=plan_amount - discount,
            code=code,
        )

    @classmethod
    def rejected(cls, plan_amount: int, reason: str | None, code: str) -> PromoResult:
        # An invalid result never carries a discount, whatever the payload said
        return cls(
            valid=False,
            discount_amount=0,
            final_amount=plan_amount,
            reason=reason,
            code=code,
        )

    @classmethod
    def validation_failed(cls, plan_amount: int, code: str) -> PromoResult:
        return cls.rejected(plan_amount, cls.VALIDATION_FAILED, code)

    def applies_to(self, code: str) -> bool:
        return self.valid and bool(code) and self.code == code


@dataclass(frozen=True)
class PaymentRequest:
    """Body of POST /payments."""
    plan_slug: str
    phone_number: str
    promo_code: str | None = None
    gateway: str | None = None
    job_id: str | None = None
    add_on_slugs: tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "plan_slug": self.plan_slug,
            "phone_number": self.phone_number,
        }
        if self.promo_code:
            body["promo_code"] = self.promo_code
        if self.gateway:
            body["gateway"] = self.gateway
        if self.job_id:
            body["job_id"] = self.job_id
        if self.add_on_slugs:
            body["add_on_slugs"] = list(self.add_on_slugs)
        return body


# ── Session phases ───────────────────────────────────────────────────
# Each phase carries exactly the data valid in that state: a transaction
# id exists only once initiation succeeded.

@dataclass(frozen=True)
class Idle:
    status: ClassVar[PaymentStatus] = PaymentStatus.IDLE


@dataclass(frozen=True)
class Processing:
    status: ClassVar[PaymentStatus] = PaymentStatus.PROCESSING


@dataclass(frozen=True)
class Polling:
    transaction_id: str
    status: ClassVar[PaymentStatus] = PaymentStatus.POLLING


@dataclass(frozen=True)
class Succeeded:
    transaction_id: str
    status: ClassVar[PaymentStatus] = PaymentStatus.SUCCESS


@dataclass(frozen=True)
class Failed:
    message: str
    transaction_id: str | None = None
    status: ClassVar[PaymentStatus] = PaymentStatus.FAILED


PaymentPhase = Union[Idle, Processing, Polling, Succeeded, Failed]
