"""Payment initiation endpoint."""
from fastapi import APIRouter, Request

from jobpay.api.dependencies import SessionDep
from jobpay.api.rate_limit import RATE_LIMITS, limiter

from .schemas import CheckoutSessionOut, PayIn
from .views import session_view

router = APIRouter()


@router.post("/sessions/{session_id}/pay", response_model=CheckoutSessionOut)
@limiter.limit(RATE_LIMITS["pay"])
async def pay(request: Request, session: SessionDep, payload: PayIn | None = None):
    """
    Initiate the Mobile Money payment.

    **Flow:**
    1. Payment request is sent to the payments backend
    2. Customer receives an MTN MoMo / Orange Money prompt on their phone
    3. Confirmation is polled in the background (every 5s, up to 5 minutes)
    4. Clients follow progress with ``GET /checkout/sessions/{id}``

    Returns the session view right after initiation: ``polling`` on
    success, ``failed`` with the error text otherwise, or unchanged with an
    inline error when no phone number was entered.
    """
    gateway = payload.gateway if payload is not None else None
    await session.submit(gateway)
    return session_view(session)
