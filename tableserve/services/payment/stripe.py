"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment

Security Notes:
    - Never log card details
    - Amounts are converted to the smallest currency unit before sending
"""

import asyncio
import logging
import time
from typing import Optional

import stripe

from tableserve.core.config import get_settings
from tableserve.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Stripe-backed subscription charges and refunds.

    Stripe SDK calls are blocking, so they run in a worker thread to keep
    the event loop free.
    """

    def __init__(self):
        """
        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required outside development mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        stripe.api_version = "2023-10-16"
        self._currency = settings.currency

        logger.info(f"StripePaymentService initialized (api_version={stripe.api_version})")

    @property
    def provider_name(self) -> str:
        return "stripe"

    @staticmethod
    def _to_cents(amount: float) -> int:
        return int(round(amount * 100))

    @staticmethod
    def _from_cents(cents: int) -> float:
        return cents / 100.0

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
        Charge a subscription through a confirmed PaymentIntent.
        """
        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        started = time.perf_counter()
        logger.info(f"Stripe: Charging {amount:.2f} {currency.upper()}")

        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                amount=self._to_cents(amount),
                currency=currency or self._currency,
                description=description or "TableServe subscription",
                receipt_email=customer_email,
                metadata={
                    "customer_name": customer_name or "",
                    "source": "tableserve",
                    **(metadata or {}),
                },
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
            )
        except stripe.CardError as e:
            logger.warning(f"Stripe: Card declined - {e.code}: {e.user_message}")
            return PaymentResult(
                success=False,
                error_message=e.user_message,
                error_code=e.code,
                response_time_ms=(time.perf_counter() - started) * 1000,
            )
        except stripe.AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )
        except stripe.APIConnectionError as e:
            logger.error(f"Stripe: Connection error - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=(time.perf_counter() - started) * 1000,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe: Error - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
                response_time_ms=(time.perf_counter() - started) * 1000,
            )

        logger.info(f"Stripe: PaymentIntent {intent.id} - status={intent.status}")
        return PaymentResult(
            success=True,
            payment_intent_id=intent.id,
            amount=self._from_cents(intent.amount),
            currency=intent.currency,
            response_time_ms=(time.perf_counter() - started) * 1000,
            metadata={"status": intent.status, "client_secret": intent.client_secret},
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        params = {"payment_intent": payment_intent_id}
        if amount is not None:
            params["amount"] = self._to_cents(amount)
        if reason:
            params["metadata"] = {"reason": reason}

        try:
            refund = await asyncio.to_thread(stripe.Refund.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe: Refund failed - {e}")
            return RefundResult(success=False, status="failed", error_message=str(e))

        logger.info(f"Stripe: Refund {refund.id} - status={refund.status}")
        return RefundResult(
            success=True,
            refund_id=refund.id,
            amount=self._from_cents(refund.amount),
            status=refund.status,
        )

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(stripe.Account.retrieve)
        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
        return True
