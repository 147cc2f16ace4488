"""Carrier lookup for the phone field."""
from fastapi import APIRouter, Query

from jobpay.core.config import settings
from jobpay.core.exceptions import UnsupportedCarrierError
from jobpay.services.carrier import detect_carrier, normalize_phone, resolve_gateway

from .schemas import CarrierOut

router = APIRouter()


@router.get("/carrier", response_model=CarrierOut)
async def lookup_carrier(phone: str = Query(..., description="Phone number, local or +237")):
    try:
        gateway = resolve_gateway(phone, default=settings.PAYMENTS_DEFAULT_GATEWAY)
    except UnsupportedCarrierError:
        gateway = None
    return CarrierOut(phone=normalize_phone(phone), carrier=detect_carrier(phone), gateway=gateway)
