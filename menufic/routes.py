"""
HTTP routes for menus, categories and menu items.

Procedures are exposed RPC-style, one endpoint per operation, and all of
them require a signed-in user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from menufic.auth import SessionUser
from menufic.categories import CategoryService
from menufic.dependencies import (
    get_category_service,
    get_current_user,
    get_menu_service,
)
from menufic.menus import MenuService
from menufic.schemas import (
    ID_PATTERN,
    CategoryCreatePayload,
    CategoryResponse,
    CategoryUpdatePayload,
    IdPayload,
    MenuCreatePayload,
    MenuItemCreatePayload,
    MenuItemResponse,
    MenuResponse,
    PositionPayload,
)

router = APIRouter()


@router.post("/category/create", response_model=CategoryResponse)
def create_category(
    payload: CategoryCreatePayload,
    user: SessionUser = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Create a new category under a menu of a restaurant."""
    return service.create(
        user.id, payload.menu_id, payload.name, payload.image_base64
    )


@router.post("/category/delete", response_model=CategoryResponse)
def delete_category(
    payload: IdPayload,
    user: SessionUser = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Delete a category along with the items and images related to it."""
    return service.delete(user.id, payload.id)


@router.get("/category/getAll", response_model=list[CategoryResponse])
def get_all_categories(
    menu_id: str = Query(
        ..., alias="menuId", min_length=1, max_length=64, pattern=ID_PATTERN
    ),
    user: SessionUser = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return service.get_all(user.id, menu_id)


@router.post("/category/update", response_model=CategoryResponse)
def update_category(
    payload: CategoryUpdatePayload,
    user: SessionUser = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return service.update(user.id, payload.id, payload.name, payload.image_base64)


@router.post("/category/updatePosition", response_model=list[CategoryResponse])
def update_category_position(
    payload: list[PositionPayload],
    user: SessionUser = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Update the position of the categories within a restaurant menu."""
    return service.update_position(
        user.id, [(item.id, item.new_position) for item in payload]
    )


@router.post("/menu/create", response_model=MenuResponse)
def create_menu(
    payload: MenuCreatePayload,
    user: SessionUser = Depends(get_current_user),
    service: MenuService = Depends(get_menu_service),
):
    return service.create_menu(user.id, payload.name)


@router.get("/menu/getAll", response_model=list[MenuResponse])
def get_all_menus(
    user: SessionUser = Depends(get_current_user),
    service: MenuService = Depends(get_menu_service),
):
    return service.get_menus(user.id)


@router.post("/menuItem/create", response_model=MenuItemResponse)
def create_menu_item(
    payload: MenuItemCreatePayload,
    user: SessionUser = Depends(get_current_user),
    service: MenuService = Depends(get_menu_service),
):
    return service.create_item(
        user.id,
        payload.category_id,
        payload.name,
        payload.price,
        description=payload.description,
        image_base64=payload.image_base64,
    )
