import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import httpx

from .gateway import BasePaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)

SQUARE_API_VERSION = "2024-01-18"
_BASE_URLS = {
    "production": "https://connect.squareup.com",
    "sandbox": "https://connect.squareupsandbox.com",
}
_STATUS_MAP = {
    "COMPLETED": "completed",
    "APPROVED": "completed",
    "PENDING": "pending",
    "FAILED": "failed",
    "CANCELED": "failed",
}


def to_minor_units(amount: float) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class SquareGateway(BasePaymentGateway):
    name = "square"

    @property
    def base_url(self) -> str:
        return _BASE_URLS.get(self.settings.square_environment, _BASE_URLS["sandbox"])

    def create_payment(
        self,
        order_id: str,
        amount: float,
        currency: str,
        description: str,
        source_id: str | None,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        if not self.settings.square_access_token or not self.settings.square_location_id:
            raise PaymentGatewayError("Square is not configured")
        if not source_id:
            raise PaymentGatewayError("A card token is required")
        logger.info("Creating Square payment", extra={"order_id": order_id, "amount": amount})
        body = {
            "idempotency_key": order_id,
            "source_id": source_id,
            "amount_money": {"amount": to_minor_units(amount), "currency": currency},
            "location_id": self.settings.square_location_id,
            "note": description[:500],
            "reference_id": order_id[:40],
        }
        headers = {
            "Authorization": f"Bearer {self.settings.square_access_token}",
            "Square-Version": SQUARE_API_VERSION,
        }
        try:
            with httpx.Client(base_url=self.base_url, timeout=15, headers=headers) as client:
                response = client.post("/v2/payments", json=body)
        except httpx.HTTPError as exc:
            logger.exception("Square request failed", extra={"order_id": order_id})
            raise PaymentGatewayError("Payment processor is unavailable") from exc
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        if response.status_code >= 400:
            errors = data.get("errors") or []
            detail = errors[0].get("detail") if errors else response.reason_phrase
            logger.warning(
                "Square declined payment",
                extra={"order_id": order_id, "status_code": response.status_code},
            )
            raise PaymentGatewayError(detail or "Payment was declined")
        payment = data.get("payment", {})
        return {
            "order_id": order_id,
            "provider_payment_id": payment.get("id"),
            "amount": amount,
            "currency": currency,
            "status": _STATUS_MAP.get(payment.get("status", ""), "failed"),
            "receipt_url": payment.get("receipt_url"),
            "metadata": metadata,
        }
