"""
Menus and menu items owned by a user.
"""

from __future__ import annotations

import logging
from typing import Optional

from menufic.db import ImageRecord, MenuItemRecord, MenuRecord, MenuStore
from menufic.images import dominant_color, perceptual_hash, rgba_to_hex
from menufic.storage import ImageStore

logger = logging.getLogger(__name__)


def menu_item_image_folder(user_id: str) -> str:
    return f"user/{user_id}/menu-item"


class MenuService:
    def __init__(self, store: MenuStore, images: ImageStore):
        self.store = store
        self.images = images

    def create_menu(self, user_id: str, name: str) -> MenuRecord:
        return self.store.create_menu(user_id, name)

    def get_menus(self, user_id: str) -> list[MenuRecord]:
        return self.store.list_menus(user_id)

    def create_item(
        self,
        user_id: str,
        category_id: str,
        name: str,
        price: float,
        description: Optional[str] = None,
        image_base64: Optional[str] = None,
    ) -> MenuItemRecord:
        """
        Add an item at the end of a category. An uploaded image is recorded
        with its hash and dominant color, keyed by its store path.
        """
        self.store.get_category(category_id, user_id)

        image = None
        if image_base64:
            uploaded = self.images.upload(image_base64, menu_item_image_folder(user_id))
            image = ImageRecord(
                id=uploaded.path,
                blur_hash=perceptual_hash(image_base64),
                color=rgba_to_hex(dominant_color(image_base64)),
            )
            logger.info("Stored menu item image %s", uploaded.path)

        return self.store.create_menu_item(
            category_id=category_id,
            user_id=user_id,
            name=name,
            price=price,
            description=description,
            image=image,
        )
