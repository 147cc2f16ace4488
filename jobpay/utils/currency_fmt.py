"""Display strings for XAF amounts and the checkout dialog.

Usage
-----
    from jobpay.utils.currency_fmt import fmt_xaf, pay_label

    fmt_xaf(4500)                 # "4,500 CFA"
    pay_label(4500, "CM_ORANGE")  # "Pay 4,500 CFA with Orange"
"""

from __future__ import annotations

from jobpay.models.payment_models import Gateway

_GATEWAY_BRANDS = {
    Gateway.CM_MTN.value: "MTN",
    Gateway.CM_ORANGE.value: "Orange",
}

DEFAULT_WALLET_LABEL = "Mobile Money"


def fmt_xaf(amount: int) -> str:
    """Format a CFA franc amount with thousands separators (no decimals)."""
    return f"{int(amount or 0):,} CFA"


def pay_label(amount: int, gateway: str | None = None) -> str:
    brand = _GATEWAY_BRANDS.get(gateway or "")
    if brand:
        return f"Pay {fmt_xaf(amount)} with {brand}"
    return f"Pay {fmt_xaf(amount)}"


def discount_label(discount_amount: int) -> str:
    return f"Discount applied: -{fmt_xaf(discount_amount)}"


def prompt_message(carrier: str) -> str:
    """Text shown while waiting for the customer to approve on their phone."""
    return f"Check your phone for the {carrier or DEFAULT_WALLET_LABEL} prompt and approve the payment."


def transaction_reference(transaction_id: str | None) -> str | None:
    """Short reference shown to the customer (first 8 characters)."""
    if not transaction_id:
        return None
    return transaction_id[:8]
