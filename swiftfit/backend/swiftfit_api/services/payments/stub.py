from __future__ import annotations

from typing import Any

from .gateway import BasePaymentGateway


class StubGateway(BasePaymentGateway):
    """Simple payment gateway stub that pretends every payment succeeds."""

    name = "stub"

    def create_payment(
        self,
        order_id: str,
        amount: float,
        currency: str,
        description: str,
        source_id: str | None,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "order_id": order_id,
            "provider_payment_id": f"stub_{order_id}",
            "amount": amount,
            "currency": currency,
            "status": "completed",
            "description": description,
            "metadata": metadata,
        }
