"""HTTP client for the payments backend.

Three endpoints are consumed, relative to ``PAYMENTS_API_BASE_URL``:

- ``POST /promo-codes/validate``       promo check, never raises
- ``POST /payments``                   initiation, returns the transaction id
- ``GET  /payments/{id}/status``       one status query for the poller
"""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from jobpay.core.config import settings
from jobpay.core.exceptions import PaymentRejectedError, PaymentTransportError
from jobpay.models.payment_models import PaymentRequest, Plan, PromoResult

logger = logging.getLogger(__name__)

PROMO_VALIDATE_PATH = "/promo-codes/validate"
PAYMENTS_PATH = "/payments"


class PromoValidationPayload(BaseModel):
    """Wire shape of the promo validation response."""
    model_config = ConfigDict(extra="ignore")

    valid: StrictBool | None = None
    discount_amount: int | None = None
    final_amount: int | None = None
    reason: str | None = None


class PaymentsClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> PaymentsClient:
        return cls(
            settings.PAYMENTS_API_BASE_URL,
            timeout=settings.PAYMENTS_HTTP_TIMEOUT,
            token=settings.PAYMENTS_API_TOKEN,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> PaymentsClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- Promo codes ---

    async def validate_promo(self, code: str, plan: Plan) -> PromoResult:
        """Ask the backend to price *plan* with *code*.

        Transport and parse failures are downgraded to an invalid result with
        reason "Validation failed"; promo codes are optional, so this never
        raises.
        """
        try:
            response = await self._client.post(
                PROMO_VALIDATE_PATH,
                json={"code": code, "plan_slug": plan.slug},
            )
            payload = PromoValidationPayload.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("Promo validation for plan=%s failed: %s", plan.slug, exc)
            return PromoResult.validation_failed(plan.amount, code)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error validating promo for plan=%s", plan.slug)
            return PromoResult.validation_failed(plan.amount, code)

        if payload.valid is not True:
            return PromoResult.rejected(plan.amount, payload.reason, code)

        result = PromoResult.accepted(plan.amount, payload.discount_amount or 0, code)
        if payload.final_amount is not None and payload.final_amount != result.final_amount:
            logger.warning(
                "Promo final_amount mismatch for plan=%s: backend=%s computed=%s",
                plan.slug,
                payload.final_amount,
                result.final_amount,
            )
        return result

    # --- Payments ---

    async def initiate(self, request: PaymentRequest) -> str:
        """Submit *request* and return the new transaction id.

        Raises PaymentRejectedError for a non-2xx answer (message taken from
        the body's ``error`` field) and PaymentTransportError for network
        failures or unreadable responses.
        """
        try:
            response = await self._client.post(PAYMENTS_PATH, json=request.to_payload())
        except httpx.HTTPError as exc:
            raise PaymentTransportError(str(exc) or type(exc).__name__, endpoint=PAYMENTS_PATH) from exc

        data = self._json_body(response, PAYMENTS_PATH)

        if not response.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            if not isinstance(message, str):
                message = None
            raise PaymentRejectedError(message, http_status=response.status_code)

        transaction_id = data.get("transaction_id") if isinstance(data, dict) else None
        if not isinstance(transaction_id, str) or not transaction_id:
            raise PaymentTransportError("Response is missing transaction_id", endpoint=PAYMENTS_PATH)
        return transaction_id

    async def poll_once(self, transaction_id: str) -> str | None:
        """Return the backend's status string for *transaction_id*.

        ``None`` means the body carried no status at all; callers treat it
        like any other non-terminal value.
        """
        path = f"{PAYMENTS_PATH}/{quote(transaction_id, safe='')}/status"
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as exc:
            raise PaymentTransportError(str(exc) or type(exc).__name__, endpoint=path) from exc

        data = self._json_body(response, path)
        status = data.get("status") if isinstance(data, dict) else None
        return status if isinstance(status, str) else None

    @staticmethod
    def _json_body(response: httpx.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise PaymentTransportError(
                f"Malformed response (HTTP {response.status_code})", endpoint=endpoint
            ) from exc
