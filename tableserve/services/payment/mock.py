"""
Mock Payment Service Implementation

Simulates Stripe-like subscription charges without network calls. Used in
development mode (ENV_MODE=development) and by the test-suite.

Behavior:
    - Simulated latency between ``min_latency`` and ``max_latency``
    - Declines a configurable share of charges with real Stripe decline codes
    - Generates Stripe-like IDs (pi_mock_xxx, re_mock_xxx)
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from tableserve.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        failure_rate: Probability of a simulated decline (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> service = MockPaymentService(failure_rate=0.0, max_latency=0.0)
        >>> result = await service.process_payment(49.0)
        >>> result.success
        True
    """

    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("expired_card", "Your card has expired."),
        ("processing_error", "An error occurred while processing your card."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.10,
        min_latency: float = 0.0,
        max_latency: float = 0.8,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min(min_latency, max_latency)
        self.max_latency = max_latency

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={self.min_latency}-{self.max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """Sleep for a random latency and return it in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def process_payment(
        self,
        amount: float,
        currency: str = "usd",
        customer_email: Optional[str] = None,
        customer_name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        logger.debug(f"Mock: Charging {amount:.2f} {currency.upper()} ({description})")

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        latency_ms = await self._simulate_latency()

        if self._should_fail():
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.debug(f"Mock: Charge declined - {error_code}")
            return PaymentResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        payment_intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        logger.info(f"Mock: Charge successful - {payment_intent_id} - {amount:.2f}")

        return PaymentResult(
            success=True,
            payment_intent_id=payment_intent_id,
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
            metadata={
                "customer_email": customer_email,
                "customer_name": customer_name,
                "description": description,
                "mock": True,
                **(metadata or {}),
            },
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        await self._simulate_latency()

        if not payment_intent_id.startswith("pi_"):
            return RefundResult(success=False, status="failed", error_message="Invalid payment intent ID")

        refund_id = f"re_mock_{uuid.uuid4().hex[:24]}"
        logger.info(f"Mock: Refund processed - {refund_id} ({reason or 'no reason'})")

        return RefundResult(success=True, refund_id=refund_id, amount=amount, status="succeeded")

    async def health_check(self) -> bool:
        return True
