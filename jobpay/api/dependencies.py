"""Request-scoped access to the checkout session registry."""
from typing import Annotated, TypeAlias

from fastapi import Depends, Request

from jobpay.core.exceptions import CheckoutSessionClosedError
from jobpay.services.payment_session import PaymentSession
from jobpay.services.session_registry import CheckoutSessionRegistry


def get_registry(request: Request) -> CheckoutSessionRegistry:
    return request.app.state.checkout_registry


RegistryDep: TypeAlias = Annotated[CheckoutSessionRegistry, Depends(get_registry)]


def get_session(session_id: str, registry: RegistryDep) -> PaymentSession:
    """Resolve the ``{session_id}`` path parameter to an open session."""
    session = registry.get(session_id)
    if session.closed:
        raise CheckoutSessionClosedError(session_id)
    return session


SessionDep: TypeAlias = Annotated[PaymentSession, Depends(get_session)]
