from jobpay.models.payment_models import PromoResult
from jobpay.services.payment_session import PaymentSession
from jobpay.utils.currency_fmt import discount_label, fmt_xaf, pay_label, prompt_message, transaction_reference


def test_fmt_xaf():
    assert fmt_xaf(4500) == "4,500 CFA"
    assert fmt_xaf(1250000) == "1,250,000 CFA"
    assert fmt_xaf(0) == "0 CFA"


def test_pay_label_brands():
    assert pay_label(4500, "CM_MTN") == "Pay 4,500 CFA with MTN"
    assert pay_label(4500, "CM_ORANGE") == "Pay 4,500 CFA with Orange"
    assert pay_label(4500, None) == "Pay 4,500 CFA"
    assert pay_label(4500, "SOMETHING_ELSE") == "Pay 4,500 CFA"


def test_discount_and_prompt():
    assert discount_label(500) == "Discount applied: -500 CFA"
    assert prompt_message("MTN MoMo") == "Check your phone for the MTN MoMo prompt and approve the payment."
    assert prompt_message("") == "Check your phone for the Mobile Money prompt and approve the payment."


def test_transaction_reference():
    assert transaction_reference("abcdef1234567890") == "abcdef12"
    assert transaction_reference("short") == "short"
    assert transaction_reference(None) is None


def test_session_pay_label_follows_phone_and_promo(plan, payments_client):
    session = PaymentSession(plan, payments_client, poll_interval=0)
    assert session.suggested_gateway is None
    assert session.pay_label == "Pay 5,000 CFA"

    session.set_phone("691234567")
    session.set_promo_code("SAVE10")
    session.promo_result = PromoResult.accepted(plan.amount, 500, "SAVE10")

    assert session.suggested_gateway == "CM_ORANGE"
    assert session.pay_label == "Pay 4,500 CFA with Orange"
