from abc import ABC, abstractmethod
from typing import Any
from ...config import Settings


class PaymentGatewayError(Exception):
    pass


class BasePaymentGateway(ABC):
    name: str = "base"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abstractmethod
    def create_payment(
        self,
        order_id: str,
        amount: float,
        currency: str,
        description: str,
        source_id: str | None,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        """Charge the card; return ``status`` and ``provider_payment_id``.

        Raises ``PaymentGatewayError`` when the processor declines or is unreachable.
        """
        raise NotImplementedError


def get_gateway(settings: Settings) -> BasePaymentGateway:
    if settings.payment_provider == "stub":
        from .stub import StubGateway

        return StubGateway(settings)
    if settings.payment_provider == "square":
        from .square import SquareGateway

        return SquareGateway(settings)
    raise ValueError(f"Unsupported payment provider {settings.payment_provider}")
