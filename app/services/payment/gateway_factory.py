# app/services/payment/gateway_factory.py
import logging
from typing import Dict, Optional

from app.core.config import settings
from .gateway_interface import PaymentGateway
from .providers.stripe_gateway import StripeGateway, StripeConfig

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY = "stripe"


class PaymentGatewayFactory:
    """Creates and holds the configured payment gateways."""

    def __init__(self):
        self._gateways: Dict[str, PaymentGateway] = {}
        self._initialize_gateways()

    def _initialize_gateways(self) -> None:
        if settings.STRIPE_SECRET_KEY:
            config = StripeConfig(
                secret_key=settings.STRIPE_SECRET_KEY,
                api_version=settings.STRIPE_API_VERSION,
                max_retries=settings.STRIPE_MAX_NETWORK_RETRIES,
            )
            self._gateways["stripe"] = StripeGateway(config)
            logger.info("Stripe payment gateway initialized")
        else:
            logger.warning(
                "Stripe gateway not initialized: STRIPE_SECRET_KEY is not set"
            )

    def get_gateway(self, code: str = DEFAULT_GATEWAY) -> Optional[PaymentGateway]:
        """Return the gateway for ``code``, or None when it is not configured."""
        return self._gateways.get(code)


# Global factory instance (singleton pattern)
_factory_instance: Optional[PaymentGatewayFactory] = None


def get_payment_gateway_factory() -> PaymentGatewayFactory:
    """Get the global payment gateway factory instance."""
    global _factory_instance
    if _factory_instance is None:
        _factory_instance = PaymentGatewayFactory()
    return _factory_instance


def get_payment_gateway() -> Optional[PaymentGateway]:
    return get_payment_gateway_factory().get_gateway()
