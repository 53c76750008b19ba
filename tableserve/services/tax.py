"""
Tax Calculation

Orders are taxed with the organization's active tax configuration for the
order's service type. Configurations can be exempt, price-inclusive (tax is
carved out of the listed prices) or exclusive (tax is added on top).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.config import get_settings
from tableserve.core.enums import ServiceType, TaxType
from tableserve.core.exceptions import NotFoundError
from tableserve.models import TaxConfiguration
from tableserve.schemas import TaxConfigurationCreate, TaxConfigurationUpdate

logger = logging.getLogger(__name__)


def round_money(value: float) -> float:
    """Round half-up to cents."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass
class OrderLine:
    unit_price: float
    quantity: int
    modifiers_price: float = 0.0

    @property
    def line_total(self) -> float:
        return (self.unit_price + self.modifiers_price) * self.quantity


@dataclass
class TaxSettings:
    tax_rate: float
    tax_type: TaxType = TaxType.GST
    is_tax_exempt: bool = False
    is_price_inclusive: bool = False
    name: Optional[str] = None

    @classmethod
    def from_configuration(cls, config: TaxConfiguration) -> "TaxSettings":
        return cls(
            tax_rate=config.tax_rate,
            tax_type=config.tax_type,
            is_tax_exempt=config.is_tax_exempt,
            is_price_inclusive=config.is_price_inclusive,
            name=config.name,
        )

    @classmethod
    def default(cls) -> "TaxSettings":
        return cls(tax_rate=get_settings().default_tax_rate)


@dataclass
class OrderTotals:
    subtotal_amount: float
    tax_amount: float
    total_amount: float
    tax_rate: float
    tax_type: TaxType
    service_type: ServiceType
    is_tax_exempt: bool
    is_price_inclusive: bool

    @property
    def display_message(self) -> Optional[str]:
        if self.is_tax_exempt:
            return "Tax exempt"
        if self.is_price_inclusive:
            return f"Prices include {self.tax_rate:g}% {self.tax_type.value}"
        if self.tax_rate:
            return f"{self.tax_rate:g}% {self.tax_type.value} added"
        return None

    def to_dict(self) -> dict:
        return {
            "subtotal_amount": self.subtotal_amount,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "service_type": self.service_type,
            "tax_breakdown": {
                "tax_type": self.tax_type,
                "tax_rate": self.tax_rate,
                "tax_amount": self.tax_amount,
                "is_price_inclusive": self.is_price_inclusive,
                "is_tax_exempt": self.is_tax_exempt,
            },
            "display_message": self.display_message,
        }


def calculate_order_totals(
    lines: Iterable[OrderLine],
    tax: TaxSettings,
    service_type: ServiceType = ServiceType.DINE_IN,
) -> OrderTotals:
    """
    Compute subtotal, tax and total for a set of order lines.

    Exempt orders carry no tax. Inclusive rates extract the tax from the
    subtotal, which is then also the total. Exclusive rates add it.
    """
    subtotal = round_money(sum(line.line_total for line in lines))
    rate = tax.tax_rate or 0.0

    if tax.is_tax_exempt:
        tax_amount = 0.0
        total = subtotal
    elif tax.is_price_inclusive:
        tax_amount = round_money(subtotal - subtotal / (1 + rate / 100))
        total = subtotal
    else:
        tax_amount = round_money(subtotal * rate / 100)
        total = round_money(subtotal + tax_amount)

    return OrderTotals(
        subtotal_amount=subtotal,
        tax_amount=tax_amount,
        total_amount=total,
        tax_rate=0.0 if tax.is_tax_exempt else rate,
        tax_type=tax.tax_type,
        service_type=service_type,
        is_tax_exempt=tax.is_tax_exempt,
        is_price_inclusive=tax.is_price_inclusive,
    )


# =============================================================================
# CONFIGURATION LOOKUP
# =============================================================================

async def get_applicable_tax_configuration(
    db: AsyncSession,
    organization_id: str,
    service_type: ServiceType,
) -> Optional[TaxConfiguration]:
    """
    Pick the active configuration for a service type.

    An exact service type match beats ALL; within each, the default
    configuration wins, then the oldest one.
    """
    result = await db.execute(
        select(TaxConfiguration).where(
            TaxConfiguration.organization_id == organization_id,
            TaxConfiguration.is_active.is_(True),
            TaxConfiguration.service_type.in_([service_type, ServiceType.ALL]),
        )
    )
    configs = list(result.scalars().all())
    if not configs:
        return None

    configs.sort(
        key=lambda c: (
            c.service_type != service_type,
            not c.is_default,
            c.created_at.timestamp() if c.created_at else 0,
        )
    )
    return configs[0]


async def resolve_tax_settings(
    db: AsyncSession,
    organization_id: str,
    service_type: ServiceType,
) -> TaxSettings:
    config = await get_applicable_tax_configuration(db, organization_id, service_type)
    if config is None:
        return TaxSettings.default()
    return TaxSettings.from_configuration(config)


# =============================================================================
# CONFIGURATION CRUD
# =============================================================================

async def list_tax_configurations(db: AsyncSession, organization_id: str) -> list[TaxConfiguration]:
    result = await db.execute(
        select(TaxConfiguration)
        .where(TaxConfiguration.organization_id == organization_id)
        .order_by(TaxConfiguration.created_at)
    )
    return list(result.scalars().all())


async def get_tax_configuration(
    db: AsyncSession,
    organization_id: str,
    config_id: str,
) -> TaxConfiguration:
    config = await db.get(TaxConfiguration, config_id)
    if not config or config.organization_id != organization_id:
        raise NotFoundError(f"Tax configuration {config_id} not found")
    return config


async def _clear_other_defaults(db: AsyncSession, config: TaxConfiguration) -> None:
    result = await db.execute(
        select(TaxConfiguration).where(
            TaxConfiguration.organization_id == config.organization_id,
            TaxConfiguration.service_type == config.service_type,
            TaxConfiguration.is_default.is_(True),
            TaxConfiguration.id != config.id,
        )
    )
    for other in result.scalars().all():
        other.is_default = False


async def create_tax_configuration(
    db: AsyncSession,
    organization_id: str,
    data: TaxConfigurationCreate,
) -> TaxConfiguration:
    config = TaxConfiguration(organization_id=organization_id, **data.model_dump())
    db.add(config)
    await db.flush()

    if config.is_default:
        await _clear_other_defaults(db, config)

    await db.commit()
    logger.info(f"Tax configuration '{config.name}' created for organization {organization_id}")
    return config


async def update_tax_configuration(
    db: AsyncSession,
    config: TaxConfiguration,
    data: TaxConfigurationUpdate,
) -> TaxConfiguration:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(config, key, value)

    if config.is_default:
        await _clear_other_defaults(db, config)

    await db.commit()
    return config


async def delete_tax_configuration(db: AsyncSession, config: TaxConfiguration) -> None:
    await db.delete(config)
    await db.commit()
    logger.info(f"Tax configuration {config.id} deleted")
