from .gateway import BasePaymentGateway, PaymentGatewayError, get_gateway
from .stub import StubGateway
from .square import SquareGateway

__all__ = [
    "BasePaymentGateway",
    "PaymentGatewayError",
    "get_gateway",
    "StubGateway",
    "SquareGateway",
]
