# app/services/payment/providers/stripe_gateway.py
import asyncio
import stripe
import time
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass

from ..gateway_interface import (
    PaymentGateway,
    PaymentGatewayError,
    ChargeParams,
    ChargeResult,
    ChargeStatus,
    HealthCheckResult,
)

logger = logging.getLogger(__name__)


@dataclass
class StripeConfig:
    """Configuration for the Stripe gateway."""
    secret_key: str
    api_version: str = "2023-10-16"
    max_retries: int = 2


# PaymentIntent statuses that count as money collected
STRIPE_SUCCESS_STATUSES = {"succeeded", "requires_capture"}


class StripeGateway(PaymentGateway):
    """
    Stripe implementation of PaymentGateway.

    Charges are off-session PaymentIntents confirmed immediately against the
    payer's saved default payment method. ``payer_id`` is the Stripe customer id.

    SECURITY NOTES:
    - Never log full card details
    - Use idempotency keys for all mutations
    """

    def __init__(self, config: StripeConfig):
        self._config = config

        # Initialize Stripe with locked API version
        stripe.api_key = config.secret_key
        stripe.api_version = config.api_version
        stripe.max_network_retries = config.max_retries

    @property
    def code(self) -> str:
        return "stripe"

    def _build_intent_params(self, params: ChargeParams) -> Dict[str, Any]:
        return {
            "amount": params.amount,
            "currency": params.currency.lower(),
            "customer": params.payer_id,
            "description": params.description,
            "metadata": {
                **(params.metadata or {}),
                "purpose": params.purpose.value,
            },
            "confirm": True,
            "off_session": True,
        }

    async def charge(self, params: ChargeParams) -> ChargeResult:
        """
        Create and confirm a PaymentIntent.

        The blocking Stripe call runs in a worker thread so callers can bound
        it with ``asyncio.wait_for``.
        """
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                **self._build_intent_params(params),
                idempotency_key=params.idempotency_key,
            )
        except stripe.CardError as e:
            logger.error(f"Card error charging {params.purpose.value}: {e.user_message}")
            return ChargeResult(
                status=ChargeStatus.FAILED,
                failure_code=e.code or "card_declined",
                failure_message=e.user_message or "Card was declined",
            )
        except stripe.RateLimitError as e:
            logger.error(f"Rate limit error: {e}")
            raise PaymentGatewayError(
                code="RATE_LIMIT",
                message="Too many requests. Please try again.",
                retryable=True,
            )
        except stripe.InvalidRequestError as e:
            logger.error(f"Invalid request error: {e}")
            raise PaymentGatewayError(
                code="INVALID_REQUEST",
                message=str(e),
                retryable=False,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error charging {params.purpose.value}: {e}")
            raise PaymentGatewayError(
                code="PROVIDER_ERROR",
                message="Payment service temporarily unavailable",
                retryable=True,
            )

        if intent.status in STRIPE_SUCCESS_STATUSES:
            return ChargeResult(
                status=ChargeStatus.SUCCEEDED,
                charge_id=intent.id,
                provider_metadata={"livemode": intent.livemode},
            )

        last_error = getattr(intent, "last_payment_error", None)
        return ChargeResult(
            status=ChargeStatus.FAILED,
            charge_id=intent.id,
            failure_code=intent.status,
            failure_message=getattr(last_error, "message", None)
            or f"Payment intent ended in status {intent.status}",
        )

    async def health_check(self) -> HealthCheckResult:
        """Health check for Stripe API."""
        try:
            start_time = time.time()
            # Simple balance retrieval to check API connectivity
            await asyncio.to_thread(stripe.Balance.retrieve)
            latency_ms = (time.time() - start_time) * 1000

            return HealthCheckResult(
                healthy=True,
                latency_ms=latency_ms,
                message="Stripe API is healthy",
            )
        except stripe.AuthenticationError:
            return HealthCheckResult(
                healthy=False,
                latency_ms=0,
                message="Invalid Stripe API key",
            )
        except stripe.StripeError as e:
            return HealthCheckResult(
                healthy=False,
                latency_ms=0,
                message=f"Stripe API error: {str(e)}",
            )
