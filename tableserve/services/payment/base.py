"""
Payment Service Abstract Base Class

Defines the interface every payment provider implements. Subscriptions
are charged and refunded through it, so the subscription code works the
same against the mock provider (development) and Stripe.

Design Pattern: Strategy Pattern
    - Providers are chosen at runtime from ENV_MODE
    - Tests and local runs never touch a real card network
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PaymentResult:
    """
    Standardized result from a charge.

    Attributes:
        success: Whether the charge went through
        payment_intent_id: Provider reference for the charge (pi_xxx)
        amount: Amount charged in major currency units
        currency: Currency code (e.g., "usd")
        error_message: Human-readable decline reason
        error_code: Machine-readable decline code
        response_time_ms: Time the provider took
        metadata: Extra data echoed back by the provider
    """
    success: bool
    payment_intent_id: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: Optional[dict] = None


@dataclass
class RefundResult:
    success: bool
    refund_id: Optional[str] = None
    amount: Optional[float] = None
    status: str = "pending"
    error_message: Optional[str] = None


class BasePaymentService(ABC):
    """
    Interface for payment providers.

    Example:
        >>> service = get_payment_service()
        >>> result = await service.process_payment(29.0, customer_email="owner@example.com")
        >>> if result.success:
        ...     print(result.payment_intent_id)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider name (e.g., "mock", "stripe")."""

    @abstractmethod
    async def process_payment(
        self,
        amount: float,
        currency: str = "usd",
        customer_email: Optional[str] = None,
        customer_name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Charge an amount.

        Args:
            amount: Amount in major units (29.99), never cents
            currency: Three-letter currency code
            customer_email: Receipt address
            customer_name: Name for the provider's records
            description: Statement description
            metadata: Key-value data attached to the charge
        """

    @abstractmethod
    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Refund a previous charge, fully when ``amount`` is None."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the provider is reachable."""
