"""Cameroon Mobile Money carrier detection from phone number prefixes.

MTN MoMo:      67x, 650-654, 680-689
Orange Money:  69x, 655-659
"""
from __future__ import annotations

import re

from jobpay.core.exceptions import UnsupportedCarrierError
from jobpay.models.payment_models import Gateway

MTN_MOMO = "MTN MoMo"
ORANGE_MONEY = "Orange Money"

_SEPARATORS = re.compile(r"[\s\-()]")
_COUNTRY_CODE = re.compile(r"^\+?237")
_LEADING_DIGITS = re.compile(r"[0-9]+")
_NON_DIGITS = re.compile(r"[^0-9]")

LOCAL_NUMBER_LENGTH = 9


def _strip_separators(phone: str) -> str:
    return _SEPARATORS.sub("", phone)


def _leading_int(text: str) -> int | None:
    """Integer value of the leading digit run, None if there is none."""
    match = _LEADING_DIGITS.match(text)
    return int(match.group()) if match else None


def detect_carrier(phone: str) -> str:
    """Return ``"MTN MoMo"``, ``"Orange Money"`` or ``""`` for *phone*."""
    cleaned = _COUNTRY_CODE.sub("", _strip_separators(phone), count=1)
    if len(cleaned) < 3:
        return ""

    prefix2 = cleaned[:2]
    prefix_num = _leading_int(cleaned[:3])

    if prefix2 == "67" or (prefix_num is not None and (650 <= prefix_num <= 654 or 680 <= prefix_num <= 689)):
        return MTN_MOMO
    if prefix2 == "69" or (prefix_num is not None and 655 <= prefix_num <= 659):
        return ORANGE_MONEY
    return ""


def normalize_phone(phone: str) -> str:
    """Local digits only: separators, ``+`` and the 237 country code removed."""
    cleaned = _strip_separators(phone)
    if cleaned.startswith("+"):
        cleaned = cleaned[1:]
    if cleaned.startswith("237"):
        cleaned = cleaned[3:]
    return cleaned


def sanitize_phone_input(raw: str) -> str:
    """Mirror the phone field: digits only, at most nine of them."""
    digits = _NON_DIGITS.sub("", raw)
    return digits[:LOCAL_NUMBER_LENGTH]


def mask_phone(phone: str) -> str:
    digits = normalize_phone(phone)
    if len(digits) <= 3:
        return "***"
    return "*" * (len(digits) - 3) + digits[-3:]


def resolve_gateway(phone: str, override: str | None = None, default: str | None = None) -> str:
    """Pick the Payunit gateway code for *phone*.

    An explicit override always wins; otherwise the carrier decides, then
    the configured default. Raises UnsupportedCarrierError when nothing fits.
    """
    if override:
        return override

    carrier = detect_carrier(phone)
    if carrier == MTN_MOMO:
        return Gateway.CM_MTN.value
    if carrier == ORANGE_MONEY:
        return Gateway.CM_ORANGE.value

    if default:
        return default
    raise UnsupportedCarrierError()
