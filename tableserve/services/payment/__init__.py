"""
Payment Service Factory

Single entry point for the configured payment provider:

    - ENV_MODE=development -> MockPaymentService (no API calls)
    - ENV_MODE=staging -> StripePaymentService (test keys)
    - ENV_MODE=production -> StripePaymentService (live keys)

Usage:
    from tableserve.services.payment import get_payment_service

    result = await get_payment_service().process_payment(29.0)
"""

import logging
from functools import lru_cache

from tableserve.core.config import get_settings
from tableserve.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)
from tableserve.services.payment.mock import MockPaymentService
from tableserve.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance (cached per process).

    Raises:
        ValueError: outside development mode without a Stripe key
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=settings.mock_payment_failure_rate,
            max_latency=settings.mock_payment_max_latency,
        )

    logger.info(f"Payment Service: Using StripePaymentService ({settings.env_mode.value} mode)")
    return StripePaymentService()


__all__ = [
    "get_payment_service",
    "BasePaymentService",
    "PaymentResult",
    "RefundResult",
    "MockPaymentService",
    "StripePaymentService",
]
