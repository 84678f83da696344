import base64
import io
import unittest
from unittest.mock import MagicMock, call, patch

from PIL import Image

from menufic.categories import CategoryService
from menufic.db import MenuStore
from menufic.errors import ImageStoreError, NotFoundError
from menufic.menus import MenuService
from menufic.storage import InMemoryImageStore


def png_base64(color=(200, 30, 30)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class CategoryServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = MenuStore("sqlite+pysqlite:///:memory:")
        self.images = InMemoryImageStore()
        self.service = CategoryService(self.store, self.images)
        self.menus = MenuService(self.store, self.images)
        self.menu = self.store.create_menu("alice", "Dinner")

    def test_positions_increase_from_zero(self):
        created = [
            self.service.create("alice", self.menu.id, name)
            for name in ("Starters", "Mains", "Desserts")
        ]
        self.assertEqual([c.position for c in created], [0, 1, 2])

    def test_positions_continue_after_gap(self):
        first = self.service.create("alice", self.menu.id, "Starters")
        self.service.create("alice", self.menu.id, "Mains")
        self.service.delete("alice", first.id)
        third = self.service.create("alice", self.menu.id, "Desserts")
        self.assertEqual(third.position, 2)

    def test_create_without_image_skips_image_store(self):
        images = MagicMock()
        service = CategoryService(self.store, images)
        category = service.create("alice", self.menu.id, "Drinks")
        self.assertIsNone(category.image_url)
        self.assertEqual(images.mock_calls, [])

    def test_create_with_image_stores_path(self):
        category = self.service.create(
            "alice", self.menu.id, "Drinks", image_base64=png_base64()
        )
        self.assertTrue(category.image_url.startswith("user/alice/category/"))
        self.assertTrue(category.image_url.endswith(".png"))
        self.assertIn(category.image_url, self.images.stored_objects)

    def test_create_aborts_when_upload_fails(self):
        images = MagicMock()
        images.upload.side_effect = ImageStoreError("boom")
        service = CategoryService(self.store, images)
        with self.assertRaises(ImageStoreError):
            service.create("alice", self.menu.id, "Drinks", image_base64=png_base64())
        self.assertEqual(self.service.get_all("alice", self.menu.id), [])

    def test_create_in_foreign_menu_fails(self):
        with self.assertRaises(NotFoundError):
            self.service.create("mallory", self.menu.id, "Sneaky")

    def test_get_all_orders_categories_and_items(self):
        mains = self.service.create("alice", self.menu.id, "Mains")
        self.menus.create_item("alice", mains.id, "Pasta", 12.5)
        self.menus.create_item("alice", mains.id, "Steak", 25.0)
        self.service.create("alice", self.menu.id, "Desserts")

        categories = self.service.get_all("alice", self.menu.id)
        self.assertEqual([c.name for c in categories], ["Mains", "Desserts"])
        self.assertEqual([i.name for i in categories[0].items], ["Pasta", "Steak"])
        self.assertEqual([i.position for i in categories[0].items], [0, 1])

    def test_get_all_rejects_foreign_menu(self):
        self.service.create("alice", self.menu.id, "Mains")
        with self.assertRaises(NotFoundError):
            self.service.get_all("mallory", self.menu.id)
        with self.assertRaises(NotFoundError):
            self.service.get_all("alice", "missing")

    def test_delete_removes_category_items_and_images(self):
        category = self.service.create(
            "alice", self.menu.id, "Mains", image_base64=png_base64()
        )
        item = self.menus.create_item(
            "alice", category.id, "Pasta", 12.5, image_base64=png_base64((0, 0, 255))
        )
        self.assertEqual(len(self.images.stored_objects), 2)

        deleted = self.service.delete("alice", category.id)

        self.assertEqual(deleted.id, category.id)
        self.assertEqual(len(deleted.items), 1)
        self.assertEqual(self.service.get_all("alice", self.menu.id), [])
        self.assertIsNone(self.store.get_image(item.image_id))
        self.assertEqual(self.images.stored_objects, {})

    def test_delete_proceeds_when_image_delete_fails(self):
        category = self.service.create(
            "alice", self.menu.id, "Mains", image_base64=png_base64()
        )
        self.menus.create_item(
            "alice", category.id, "Pasta", 12.5, image_base64=png_base64()
        )
        with patch.object(
            self.images, "delete_file", side_effect=ImageStoreError("down")
        ), patch.object(
            self.images, "bulk_delete_files", side_effect=ImageStoreError("down")
        ), self.assertLogs("menufic.categories", level="WARNING") as logs:
            self.service.delete("alice", category.id)

        self.assertEqual(self.service.get_all("alice", self.menu.id), [])
        self.assertEqual(len(logs.records), 2)

    def test_delete_foreign_category_fails(self):
        category = self.service.create("alice", self.menu.id, "Mains")
        with self.assertRaises(NotFoundError):
            self.service.delete("mallory", category.id)
        self.assertEqual(len(self.service.get_all("alice", self.menu.id)), 1)

    def test_update_renames_without_touching_image(self):
        category = self.service.create(
            "alice", self.menu.id, "Mains", image_base64=png_base64()
        )
        updated = self.service.update("alice", category.id, "Main courses")
        self.assertEqual(updated.name, "Main courses")
        self.assertEqual(updated.image_url, category.image_url)

    def test_update_replaces_image_after_deleting_previous(self):
        category = self.service.create(
            "alice", self.menu.id, "Mains", image_base64=png_base64()
        )
        images = MagicMock(wraps=self.images)
        service = CategoryService(self.store, images)

        updated = service.update(
            "alice", category.id, "Mains", image_base64=png_base64((0, 255, 0))
        )

        self.assertEqual(
            [c[0] for c in images.method_calls], ["delete_file", "upload"]
        )
        images.delete_file.assert_has_calls([call(category.image_url)])
        self.assertNotEqual(updated.image_url, category.image_url)
        self.assertNotIn(category.image_url, self.images.stored_objects)

    def test_update_completes_when_old_image_delete_fails(self):
        category = self.service.create(
            "alice", self.menu.id, "Mains", image_base64=png_base64()
        )
        with patch.object(
            self.images, "delete_file", side_effect=ImageStoreError("down")
        ), self.assertLogs("menufic.categories", level="WARNING"):
            updated = self.service.update(
                "alice", category.id, "Mains", image_base64=png_base64((0, 255, 0))
            )
        self.assertNotEqual(updated.image_url, category.image_url)

    def test_update_foreign_category_fails(self):
        category = self.service.create("alice", self.menu.id, "Mains")
        with self.assertRaises(NotFoundError):
            self.service.update("mallory", category.id, "Mine now")

    def test_update_position_reorders(self):
        a = self.service.create("alice", self.menu.id, "A")
        b = self.service.create("alice", self.menu.id, "B")
        self.service.update_position("alice", [(a.id, 2), (b.id, 1)])
        names = [c.name for c in self.service.get_all("alice", self.menu.id)]
        self.assertEqual(names, ["B", "A"])

    def test_update_position_is_atomic(self):
        a = self.service.create("alice", self.menu.id, "A")
        b = self.service.create("alice", self.menu.id, "B")
        with self.assertRaises(NotFoundError):
            self.service.update_position("alice", [(a.id, 5), ("missing", 0)])
        with self.assertRaises(NotFoundError):
            self.service.update_position("mallory", [(b.id, 0)])
        positions = [c.position for c in self.service.get_all("alice", self.menu.id)]
        self.assertEqual(positions, [0, 1])


if __name__ == "__main__":
    unittest.main()
