"""Request and response schemas for checkout session endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field

from jobpay.models.payment_models import PaymentStatus, Plan, PromoResult


# ── Requests ──────────────────────────────────────────────────────────

class PlanIn(BaseModel):
    id: str
    slug: str = Field(..., min_length=1)
    name: str
    amount: int = Field(..., ge=0, description="Plan price in XAF")
    duration_days: int | None = None

    def to_plan(self) -> Plan:
        return Plan(
            id=self.id,
            slug=self.slug,
            name=self.name,
            amount=self.amount,
            duration_days=self.duration_days,
        )


class OpenSessionIn(BaseModel):
    plan: PlanIn
    job_id: str | None = None
    add_on_slugs: list[str] = Field(default_factory=list)


class PhoneIn(BaseModel):
    phone: str
    sanitize: bool = True


class PromoCodeIn(BaseModel):
    code: str


class PayIn(BaseModel):
    gateway: str | None = None


# ── Responses ─────────────────────────────────────────────────────────

class PromoResultOut(BaseModel):
    valid: bool
    discount_amount: int
    final_amount: int
    reason: str | None = None

    @classmethod
    def from_result(cls, result: PromoResult) -> PromoResultOut:
        return cls(
            valid=result.valid,
            discount_amount=result.discount_amount,
            final_amount=result.final_amount,
            reason=result.reason,
        )


class CheckoutSessionOut(BaseModel):
    session_id: str
    plan_slug: str
    plan_name: str
    base_amount: int
    discount_amount: int
    final_amount: int
    status: PaymentStatus
    error: str
    phone: str
    carrier: str
    promo_code: str
    promo: PromoResultOut | None = None
    promo_loading: bool
    promo_message: str | None = None
    transaction_id: str | None = None
    transaction_reference: str | None = None
    poll_attempts: int
    suggested_gateway: str | None = None
    pay_label: str
    prompt_message: str
    can_submit: bool


class CarrierOut(BaseModel):
    phone: str
    carrier: str
    gateway: str | None = None
