# app/services/payment/gateway_interface.py
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum


class ChargePurpose(str, Enum):
    """What a charge pays for."""
    HOST_MARKUP = "host-markup"
    PLATFORM_FEE = "platform-fee"
    TRAFFIC_BONUS = "traffic-bonus"


class ChargeStatus(str, Enum):
    """Standardized charge outcome."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ChargeParams:
    """Parameters for a single logical charge."""
    payer_id: str
    amount: int  # In smallest currency unit (cents)
    currency: str  # ISO 4217, lowercase
    purpose: ChargePurpose
    idempotency_key: str  # Stable per logical charge so retries never double-charge
    description: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None


@dataclass
class ChargeResult:
    """Result of a charge attempt."""
    status: ChargeStatus
    charge_id: Optional[str] = None
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None
    provider_metadata: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ChargeStatus.SUCCEEDED


@dataclass
class HealthCheckResult:
    """Health check result."""
    healthy: bool
    latency_ms: float
    message: Optional[str] = None


class PaymentGatewayError(Exception):
    """Raised by gateways when a charge cannot be attempted or completed."""

    def __init__(self, code: str, message: str, retryable: bool = False):
        self.code = code
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class PaymentGateway(ABC):
    """
    Opaque money-movement capability used by the collaboration engine.
    Implementations must honour the idempotency key.
    """

    @property
    @abstractmethod
    def code(self) -> str:
        """Gateway code identifier (e.g., 'stripe')."""
        pass

    @abstractmethod
    async def charge(self, params: ChargeParams) -> ChargeResult:
        """Charge the payer. Returns a failed result or raises on error."""
        pass

    @abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Check connectivity to the gateway."""
        pass
