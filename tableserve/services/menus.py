"""
Menu Service

Menus hold categories, categories hold items, items hold modifiers.
Every lookup checks the chain back to the organization so one tenant
can never reach another tenant's menu through an ID.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.exceptions import NotFoundError
from tableserve.models import Category, Menu, MenuItem, Modifier
from tableserve.schemas import (
    CategoryCreate,
    CategoryUpdate,
    MenuCreate,
    MenuItemCreate,
    MenuItemUpdate,
    MenuUpdate,
    ModifierCreate,
)

logger = logging.getLogger(__name__)


async def _reload_menu(db: AsyncSession, menu_id: str) -> Menu:
    result = await db.execute(
        select(Menu).where(Menu.id == menu_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


# =============================================================================
# MENUS
# =============================================================================

async def list_menus(db: AsyncSession, organization_id: str, active_only: bool = False) -> list[Menu]:
    query = select(Menu).where(Menu.organization_id == organization_id).order_by(Menu.created_at)
    if active_only:
        query = query.where(Menu.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_menu(db: AsyncSession, organization_id: str, menu_id: str) -> Menu:
    menu = await db.get(Menu, menu_id)
    if not menu or menu.organization_id != organization_id:
        raise NotFoundError(f"Menu {menu_id} not found")
    return menu


async def create_menu(db: AsyncSession, organization_id: str, data: MenuCreate) -> Menu:
    menu = Menu(organization_id=organization_id, **data.model_dump())
    db.add(menu)
    await db.commit()
    logger.info(f"Menu '{menu.name}' created for organization {organization_id}")
    return await _reload_menu(db, menu.id)


async def update_menu(db: AsyncSession, menu: Menu, data: MenuUpdate) -> Menu:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(menu, key, value)
    await db.commit()
    return await _reload_menu(db, menu.id)


async def delete_menu(db: AsyncSession, menu: Menu) -> None:
    await db.delete(menu)
    await db.commit()
    logger.info(f"Menu {menu.id} deleted")


# =============================================================================
# CATEGORIES
# =============================================================================

async def get_category(db: AsyncSession, organization_id: str, category_id: str) -> Category:
    result = await db.execute(
        select(Category)
        .join(Menu, Category.menu_id == Menu.id)
        .where(Category.id == category_id, Menu.organization_id == organization_id)
    )
    category = result.scalar_one_or_none()
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


async def create_category(db: AsyncSession, menu: Menu, data: CategoryCreate) -> Category:
    category = Category(menu_id=menu.id, **data.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category, ["items"])
    return category


async def update_category(db: AsyncSession, category: Category, data: CategoryUpdate) -> Category:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(category, key, value)
    await db.commit()
    return category


async def delete_category(db: AsyncSession, category: Category) -> None:
    await db.delete(category)
    await db.commit()


# =============================================================================
# ITEMS & MODIFIERS
# =============================================================================

async def get_menu_item(db: AsyncSession, organization_id: str, item_id: str) -> MenuItem:
    result = await db.execute(
        select(MenuItem)
        .join(Category, MenuItem.category_id == Category.id)
        .join(Menu, Category.menu_id == Menu.id)
        .where(MenuItem.id == item_id, Menu.organization_id == organization_id)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError(f"Menu item {item_id} not found")
    return item


async def create_menu_item(db: AsyncSession, category: Category, data: MenuItemCreate) -> MenuItem:
    item = MenuItem(category_id=category.id, **data.model_dump(exclude={"modifiers"}))
    item.modifiers = [Modifier(name=m.name, price=m.price) for m in data.modifiers]
    db.add(item)
    await db.commit()
    logger.info(f"Menu item '{item.name}' added to category {category.id}")
    return item


async def update_menu_item(db: AsyncSession, item: MenuItem, data: MenuItemUpdate) -> MenuItem:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(item, key, value)
    await db.commit()
    return item


async def set_menu_item_availability(db: AsyncSession, item: MenuItem, is_available: bool) -> MenuItem:
    item.is_available = is_available
    await db.commit()
    logger.info(f"Menu item {item.id} {'available' if is_available else 'unavailable'}")
    return item


async def delete_menu_item(db: AsyncSession, item: MenuItem) -> None:
    await db.delete(item)
    await db.commit()


async def add_modifier(db: AsyncSession, item: MenuItem, data: ModifierCreate) -> Modifier:
    modifier = Modifier(name=data.name, price=data.price)
    item.modifiers.append(modifier)
    await db.commit()
    return modifier


async def delete_modifier(db: AsyncSession, item: MenuItem, modifier_id: str) -> None:
    modifier = next((m for m in item.modifiers if m.id == modifier_id), None)
    if not modifier:
        raise NotFoundError(f"Modifier {modifier_id} not found")
    item.modifiers.remove(modifier)
    await db.commit()


# =============================================================================
# PUBLIC VIEW
# =============================================================================

def public_menu_view(menu: Menu) -> dict:
    """A menu as guests see it: active categories and available items only."""
    categories = []
    for category in menu.categories:
        if not category.is_active:
            continue
        categories.append({
            "id": category.id,
            "menu_id": category.menu_id,
            "name": category.name,
            "description": category.description,
            "image_url": category.image_url,
            "display_order": category.display_order,
            "is_active": category.is_active,
            "items": [item for item in category.items if item.is_available],
        })

    return {
        "id": menu.id,
        "organization_id": menu.organization_id,
        "name": menu.name,
        "description": menu.description,
        "is_active": menu.is_active,
        "created_at": menu.created_at,
        "categories": categories,
    }
