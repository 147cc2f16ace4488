"""Checkout sessions for Mobile Money payments.

Sub-modules:
- schemas: Request/response models
- views: Session -> response serialisation
- sessions: Open / read / edit / close endpoints
- promo: Promo code validation endpoint
- pay: Payment initiation endpoint
- carrier: Carrier lookup
"""
from fastapi import APIRouter

from .carrier import router as carrier_router
from .pay import router as pay_router
from .promo import router as promo_router
from .sessions import router as sessions_router

router = APIRouter()
router.include_router(sessions_router)
router.include_router(promo_router)
router.include_router(pay_router)
router.include_router(carrier_router)

__all__ = ["router"]
