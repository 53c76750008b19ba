"""
Organization & Membership Service

Organizations are the tenants. Every organization keeps at least one
OWNER: the last owner cannot be demoted, removed or leave.
"""

import logging
import re
import unicodedata
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.enums import ACTIVE_ORDER_STATUSES, MemberRole, StaffType
from tableserve.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from tableserve.core.security import generate_api_token
from tableserve.models import (
    Menu,
    Order,
    Organization,
    OrganizationMember,
    User,
    Venue,
)
from tableserve.schemas import (
    MemberAdd,
    MemberUpdate,
    OrganizationCreate,
    OrganizationUpdate,
    UserCreate,
)

logger = logging.getLogger(__name__)


# =============================================================================
# USERS
# =============================================================================

async def register_user(db: AsyncSession, data: UserCreate) -> User:
    existing = await db.execute(select(User).where(User.email == data.email))
    if existing.scalar_one_or_none():
        raise ConflictError(f"A user with email {data.email} already exists")

    user = User(name=data.name, email=data.email, api_token=generate_api_token())
    db.add(user)
    await db.commit()
    logger.info(f"User registered: {user.email}")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


# =============================================================================
# ORGANIZATIONS
# =============================================================================

def slugify(value: str) -> str:
    """``"Café Spice & Co"`` -> ``"cafe-spice-co"``."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value).strip("-").lower()
    return value or "organization"


async def _unique_slug(db: AsyncSession, name: str) -> str:
    base = slugify(name)
    result = await db.execute(
        select(Organization.slug).where(
            (Organization.slug == base) | Organization.slug.like(f"{base}-%")
        )
    )
    taken = set(result.scalars().all())
    if base not in taken:
        return base

    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


async def create_organization(db: AsyncSession, owner: User, data: OrganizationCreate) -> Organization:
    """Create an organization and make its creator the OWNER."""
    organization = Organization(slug=await _unique_slug(db, data.name), **data.model_dump())
    organization.members.append(OrganizationMember(user_id=owner.id, role=MemberRole.OWNER, venue_ids=[]))
    db.add(organization)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Organization slug for '{data.name}' is already taken")

    logger.info(f"Organization '{organization.name}' ({organization.slug}) created by {owner.email}")
    return organization


async def list_user_organizations(db: AsyncSession, user: User) -> list[Organization]:
    query = select(Organization).order_by(Organization.created_at)
    if not user.is_super_admin:
        query = query.join(OrganizationMember).where(OrganizationMember.user_id == user.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_organization_by_slug(db: AsyncSession, slug: str, active_only: bool = True) -> Organization:
    result = await db.execute(select(Organization).where(Organization.slug == slug))
    organization = result.scalar_one_or_none()
    if not organization or (active_only and not organization.is_active):
        raise NotFoundError(f"Organization '{slug}' not found")
    return organization


async def update_organization(
    db: AsyncSession,
    organization: Organization,
    data: OrganizationUpdate,
) -> Organization:
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] != organization.name:
        organization.slug = await _unique_slug(db, changes["name"])

    for key, value in changes.items():
        setattr(organization, key, value)

    await db.commit()
    return organization


async def delete_organization(db: AsyncSession, organization: Organization) -> None:
    await db.delete(organization)
    await db.commit()
    logger.info(f"Organization {organization.slug} deleted")


async def count_venues(db: AsyncSession, organization_id: str) -> int:
    result = await db.execute(select(func.count(Venue.id)).where(Venue.organization_id == organization_id))
    return result.scalar() or 0


async def get_organization_stats(db: AsyncSession, organization: Organization) -> dict:
    async def _count(column, *conditions) -> int:
        return (await db.execute(select(func.count(column)).where(*conditions))).scalar() or 0

    org_id = organization.id
    return {
        "venue_count": await count_venues(db, org_id),
        "member_count": len(organization.members),
        "menu_count": await _count(Menu.id, Menu.organization_id == org_id),
        "order_count": await _count(Order.id, Order.organization_id == org_id),
        "active_order_count": await _count(
            Order.id, Order.organization_id == org_id, Order.status.in_(ACTIVE_ORDER_STATUSES)
        ),
    }


# =============================================================================
# MEMBERS
# =============================================================================

def _owner_count(organization: Organization) -> int:
    return sum(1 for m in organization.members if m.role == MemberRole.OWNER)


def _normalize_staff_type(role: MemberRole, staff_type: Optional[StaffType]) -> Optional[StaffType]:
    if role != MemberRole.STAFF:
        return None
    return staff_type or StaffType.GENERAL


async def _validate_venue_ids(db: AsyncSession, organization_id: str, venue_ids: list[str]) -> list[str]:
    if not venue_ids:
        return []
    result = await db.execute(
        select(Venue.id).where(Venue.organization_id == organization_id, Venue.id.in_(venue_ids))
    )
    found = set(result.scalars().all())
    missing = [v for v in venue_ids if v not in found]
    if missing:
        raise ValidationFailedError(f"Unknown venues for this organization: {', '.join(missing)}")
    return list(dict.fromkeys(venue_ids))


def get_member(organization: Organization, member_id: str) -> OrganizationMember:
    member = next((m for m in organization.members if m.id == member_id), None)
    if not member:
        raise NotFoundError(f"Member {member_id} not found")
    return member


async def add_member(db: AsyncSession, organization: Organization, data: MemberAdd) -> OrganizationMember:
    """Add an existing user to the organization."""
    user = await get_user_by_email(db, data.email)
    if not user:
        raise NotFoundError(f"No user registered with email {data.email}")

    if any(m.user_id == user.id for m in organization.members):
        raise ConflictError(f"{data.email} is already a member of this organization")

    member = OrganizationMember(
        organization_id=organization.id,
        user_id=user.id,
        role=data.role,
        staff_type=_normalize_staff_type(data.role, data.staff_type),
        venue_ids=await _validate_venue_ids(db, organization.id, data.venue_ids),
    )
    db.add(member)
    await db.commit()
    await db.refresh(member, ["user"])

    logger.info(f"{user.email} added to {organization.slug} as {data.role.value}")
    return member


async def update_member(
    db: AsyncSession,
    organization: Organization,
    member: OrganizationMember,
    data: MemberUpdate,
) -> OrganizationMember:
    changes = data.model_dump(exclude_unset=True)
    new_role = changes.get("role", member.role)

    if member.role == MemberRole.OWNER and new_role != MemberRole.OWNER and _owner_count(organization) <= 1:
        raise ConflictError("The last owner cannot be demoted")

    member.role = new_role
    member.staff_type = _normalize_staff_type(new_role, changes.get("staff_type", member.staff_type))
    if "venue_ids" in changes:
        member.venue_ids = await _validate_venue_ids(db, organization.id, changes["venue_ids"] or [])

    await db.commit()
    await db.refresh(member, ["user"])
    logger.info(f"Member {member.id} in {organization.slug} updated to {member.role.value}")
    return member


async def remove_member(db: AsyncSession, organization: Organization, member: OrganizationMember) -> None:
    if member.role == MemberRole.OWNER and _owner_count(organization) <= 1:
        raise ConflictError("The last owner cannot be removed")

    organization.members.remove(member)
    await db.commit()
    logger.info(f"Member {member.id} removed from {organization.slug}")


async def leave_organization(db: AsyncSession, organization: Organization, user: User) -> None:
    member = next((m for m in organization.members if m.user_id == user.id), None)
    if not member:
        raise NotFoundError("You are not a member of this organization")
    if member.role == MemberRole.OWNER and _owner_count(organization) <= 1:
        raise ConflictError("The last owner cannot leave the organization")

    organization.members.remove(member)
    await db.commit()
    logger.info(f"{user.email} left {organization.slug}")
