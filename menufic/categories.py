"""
Category management for restaurant menus.

Database writes go through MenuStore transactions. Image store calls sit
outside those transactions: uploads must succeed for the operation to
proceed, while cleanup deletes are best-effort and only logged on failure.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from menufic.db import CategoryRecord, MenuStore
from menufic.errors import ImageStoreError
from menufic.images import dominant_color, perceptual_hash, rgba_to_hex
from menufic.storage import ImageStore

logger = logging.getLogger(__name__)


def category_image_folder(user_id: str) -> str:
    return f"user/{user_id}/category"


class CategoryService:
    def __init__(self, store: MenuStore, images: ImageStore):
        self.store = store
        self.images = images

    def create(
        self,
        user_id: str,
        menu_id: str,
        name: str,
        image_base64: Optional[str] = None,
    ) -> CategoryRecord:
        """Create a category at the end of a menu owned by the user."""
        self.store.get_menu(menu_id, user_id)

        image_url = None
        if image_base64:
            uploaded = self.images.upload(image_base64, category_image_folder(user_id))
            # Hash and color are not stored on categories yet.
            blur_hash = perceptual_hash(image_base64)
            color = rgba_to_hex(dominant_color(image_base64))
            logger.debug(
                "Category image %s hash=%s color=%s", uploaded.path, blur_hash, color
            )
            image_url = uploaded.path

        return self.store.create_category(
            menu_id=menu_id, user_id=user_id, name=name, image_url=image_url
        )

    def delete(self, user_id: str, category_id: str) -> CategoryRecord:
        """
        Delete a category along with its menu items and their images.

        Returns the category as it was before deletion.
        """
        current = self.store.get_category(category_id, user_id)
        image_paths = [item.image_id for item in current.items if item.image_id]

        if current.image_url:
            self._remove_file(current.image_url)

        self.store.delete_category(category_id, user_id, image_paths)

        if image_paths:
            self._remove_files(image_paths)
        return current

    def get_all(self, user_id: str, menu_id: str) -> list[CategoryRecord]:
        self.store.get_menu(menu_id, user_id)
        return self.store.list_categories(menu_id, user_id)

    def update(
        self,
        user_id: str,
        category_id: str,
        name: str,
        image_base64: Optional[str] = None,
    ) -> CategoryRecord:
        current = self.store.get_category(category_id, user_id)

        image_url = None
        if image_base64:
            if current.image_url:
                self._remove_file(current.image_url)
            uploaded = self.images.upload(image_base64, category_image_folder(user_id))
            image_url = uploaded.path

        return self.store.update_category(
            category_id, user_id, name=name, image_url=image_url
        )

    def update_position(
        self, user_id: str, positions: Iterable[tuple[str, int]]
    ) -> list[CategoryRecord]:
        """Reorder categories; positions are applied exactly as given."""
        return self.store.update_category_positions(user_id, positions)

    def _remove_file(self, path: str) -> None:
        try:
            self.images.delete_file(path)
        except ImageStoreError as e:
            logger.warning("Failed to delete category image %s: %s", path, e)

    def _remove_files(self, paths: list[str]) -> None:
        try:
            self.images.bulk_delete_files(paths)
        except ImageStoreError as e:
            logger.warning(
                "Failed to delete %d menu item images %s: %s", len(paths), paths, e
            )
