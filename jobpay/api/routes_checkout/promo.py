"""Promo code validation endpoint."""
from fastapi import APIRouter, Request

from jobpay.api.dependencies import SessionDep
from jobpay.api.rate_limit import RATE_LIMITS, limiter

from .schemas import CheckoutSessionOut
from .views import session_view

router = APIRouter()


@router.post("/sessions/{session_id}/promo-code/apply", response_model=CheckoutSessionOut)
@limiter.limit(RATE_LIMITS["promo_apply"])
async def apply_promo_code(request: Request, session: SessionDep):
    """
    Validate the session's promo code against its plan.

    A blank code is a no-op. Validation failures come back as an invalid
    promo result, never as an error response.
    """
    await session.apply_promo()
    return session_view(session)
