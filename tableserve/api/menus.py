"""
Menu, category, menu item and modifier endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import require
from tableserve.core.permissions import Permission
from tableserve.core.security import MembershipContext
from tableserve.database import get_db
from tableserve.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MenuCreate,
    MenuItemAvailabilityUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuResponse,
    MenuUpdate,
    ModifierCreate,
    ModifierResponse,
)
from tableserve.services import menus as menu_service

router = APIRouter(prefix="/api/organizations/{organization_id}", tags=["Menus"])


# =============================================================================
# MENUS
# =============================================================================

@router.get("/menus", response_model=list[MenuResponse])
async def list_menus(
    active_only: bool = False,
    ctx: MembershipContext = Depends(require(Permission.VIEW_MENUS)),
    db: AsyncSession = Depends(get_db),
):
    return await menu_service.list_menus(db, ctx.organization_id, active_only)


@router.post("/menus", response_model=MenuResponse, status_code=status.HTTP_201_CREATED)
async def create_menu(
    data: MenuCreate,
    ctx: MembershipContext = Depends(require(Permission.CREATE_MENU)),
    db: AsyncSession = Depends(get_db),
):
    return await menu_service.create_menu(db, ctx.organization_id, data)


@router.get("/menus/{menu_id}", response_model=MenuResponse)
async def get_menu(
    menu_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_MENUS)),
    db: AsyncSession = Depends(get_db),
):
    return await menu_service.get_menu(db, ctx.organization_id, menu_id)


@router.patch("/menus/{menu_id}", response_model=MenuResponse)
async def update_menu(
    menu_id: str,
    data: MenuUpdate,
    ctx: MembershipContext = Depends(require(Permission.EDIT_MENU)),
    db: AsyncSession = Depends(get_db),
):
    menu = await menu_service.get_menu(db, ctx.organization_id, menu_id)
    return await menu_service.update_menu(db, menu, data)


@router.delete("/menus/{menu_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu(
    menu_id: str,
    ctx: MembershipContext = Depends(require(Permission.DELETE_MENU)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    menu = await menu_service.get_menu(db, ctx.organization_id, menu_id)
    await menu_service.delete_menu(db, menu)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/menus/{menu_id}/categories", response_model=list[CategoryResponse], tags=["Categories"])
async def list_categories(
    menu_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_MENUS)),
    db: AsyncSession = Depends(get_db),
):
    menu = await menu_service.get_menu(db, ctx.organization_id, menu_id)
    return menu.categories


@router.post(
    "/menus/{menu_id}/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Categories"],
)
async def create_category(
    menu_id: str,
    data: CategoryCreate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
):
    menu = await menu_service.get_menu(db, ctx.organization_id, menu_id)
    return await menu_service.create_category(db, menu, data)


@router.patch("/categories/{category_id}", response_model=CategoryResponse, tags=["Categories"])
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
):
    category = await menu_service.get_category(db, ctx.organization_id, category_id)
    return await menu_service.update_category(db, category, data)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Categories"])
async def delete_category(
    category_id: str,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    category = await menu_service.get_category(db, ctx.organization_id, category_id)
    await menu_service.delete_category(db, category)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# ITEMS & MODIFIERS
# =============================================================================

@router.get("/categories/{category_id}/items", response_model=list[MenuItemResponse], tags=["Menu Items"])
async def list_menu_items(
    category_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_MENUS)),
    db: AsyncSession = Depends(get_db),
):
    category = await menu_service.get_category(db, ctx.organization_id, category_id)
    return category.items


@router.post(
    "/categories/{category_id}/items",
    response_model=MenuItemResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Menu Items"],
)
async def create_menu_item(
    category_id: str,
    data: MenuItemCreate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
):
    category = await menu_service.get_category(db, ctx.organization_id, category_id)
    return await menu_service.create_menu_item(db, category, data)


@router.get("/items/{item_id}", response_model=MenuItemResponse, tags=["Menu Items"])
async def get_menu_item(
    item_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_MENUS)),
    db: AsyncSession = Depends(get_db),
):
    return await menu_service.get_menu_item(db, ctx.organization_id, item_id)


@router.patch("/items/{item_id}", response_model=MenuItemResponse, tags=["Menu Items"])
async def update_menu_item(
    item_id: str,
    data: MenuItemUpdate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
):
    item = await menu_service.get_menu_item(db, ctx.organization_id, item_id)
    return await menu_service.update_menu_item(db, item, data)


@router.patch("/items/{item_id}/availability", response_model=MenuItemResponse, tags=["Menu Items"])
async def set_availability(
    item_id: str,
    data: MenuItemAvailabilityUpdate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
):
    item = await menu_service.get_menu_item(db, ctx.organization_id, item_id)
    return await menu_service.set_menu_item_availability(db, item, data.is_available)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Menu Items"])
async def delete_menu_item(
    item_id: str,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    item = await menu_service.get_menu_item(db, ctx.organization_id, item_id)
    await menu_service.delete_menu_item(db, item)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/items/{item_id}/modifiers",
    response_model=ModifierResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Menu Items"],
)
async def add_modifier(
    item_id: str,
    data: ModifierCreate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
):
    item = await menu_service.get_menu_item(db, ctx.organization_id, item_id)
    return await menu_service.add_modifier(db, item, data)


@router.delete(
    "/items/{item_id}/modifiers/{modifier_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Menu Items"],
)
async def delete_modifier(
    item_id: str,
    modifier_id: str,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_MENU_ITEMS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    item = await menu_service.get_menu_item(db, ctx.organization_id, item_id)
    await menu_service.delete_modifier(db, item, modifier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
