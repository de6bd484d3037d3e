# app/services/payment/__init__.py
from .gateway_interface import PaymentGateway, PaymentGatewayError
from .gateway_factory import get_payment_gateway

__all__ = [
    "PaymentGateway",
    "PaymentGatewayError",
    "get_payment_gateway",
]
