"""Open, inspect, edit and close checkout sessions."""
import logging

from fastapi import APIRouter, Response

from jobpay.api.dependencies import RegistryDep, SessionDep
from jobpay.core.exceptions import CheckoutSessionBusyError
from jobpay.services.carrier import sanitize_phone_input

from .schemas import CheckoutSessionOut, OpenSessionIn, PhoneIn, PromoCodeIn
from .views import session_view

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sessions", status_code=201, response_model=CheckoutSessionOut)
async def open_session(payload: OpenSessionIn, registry: RegistryDep):
    """
    Open a payment session for a plan.

    Called when the payment dialog opens. The optional job id and add-on
    slugs are forwarded with the payment request.
    """
    session = registry.open(
        payload.plan.to_plan(),
        job_id=payload.job_id,
        add_on_slugs=payload.add_on_slugs,
    )
    return session_view(session)


@router.get("/sessions/{session_id}", response_model=CheckoutSessionOut)
async def get_session_state(session: SessionDep):
    return session_view(session)


@router.put("/sessions/{session_id}/phone", response_model=CheckoutSessionOut)
async def update_phone(payload: PhoneIn, session: SessionDep):
    phone = sanitize_phone_input(payload.phone) if payload.sanitize else payload.phone
    if not session.set_phone(phone):
        raise CheckoutSessionBusyError(session.id)
    return session_view(session)


@router.put("/sessions/{session_id}/promo-code", response_model=CheckoutSessionOut)
async def update_promo_code(payload: PromoCodeIn, session: SessionDep):
    """Replace the promo code text. Any previous validation result is dropped."""
    if not session.set_promo_code(payload.code):
        raise CheckoutSessionBusyError(session.id)
    return session_view(session)


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str, registry: RegistryDep):
    """Close the dialog: stops confirmation polling and discards the session."""
    registry.close(session_id)
    return Response(status_code=204)
