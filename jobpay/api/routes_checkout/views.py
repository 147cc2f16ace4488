"""Serialisation of a PaymentSession into its API view."""
from jobpay.services.payment_session import PaymentSession

from .schemas import CheckoutSessionOut, PromoResultOut


def session_view(session: PaymentSession) -> CheckoutSessionOut:
    promo = session.promo_result
    return CheckoutSessionOut(
        session_id=session.id,
        plan_slug=session.plan.slug,
        plan_name=session.plan.name,
        base_amount=session.plan.amount,
        discount_amount=session.discount_amount,
        final_amount=session.final_amount,
        status=session.status,
        error=session.error,
        phone=session.phone,
        carrier=session.carrier,
        promo_code=session.promo_code,
        promo=PromoResultOut.from_result(promo) if promo is not None else None,
        promo_loading=session.promo_loading,
        promo_message=session.promo_message,
        transaction_id=session.transaction_id,
        transaction_reference=session.transaction_reference,
        poll_attempts=session.poll_attempts,
        suggested_gateway=session.suggested_gateway,
        pay_label=session.pay_label,
        prompt_message=session.prompt_message,
        can_submit=session.can_submit,
    )
