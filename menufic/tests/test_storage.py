import base64
import io
import unittest

from botocore.stub import ANY, Stubber
from PIL import Image

from menufic.errors import ImageStoreError, InvalidImageError
from menufic.storage import InMemoryImageStore, S3ImageStore


def png_base64() -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), (1, 2, 3)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class InMemoryImageStoreTests(unittest.TestCase):
    def test_upload_and_delete(self):
        store = InMemoryImageStore()
        result = store.upload(png_base64(), "/user/u1/category/")
        self.assertTrue(result.path.startswith("user/u1/category/"))
        store.delete_file(result.path)
        self.assertEqual(store.stored_objects, {})
        with self.assertRaises(ImageStoreError):
            store.delete_file(result.path)

    def test_upload_rejects_non_images(self):
        with self.assertRaises(InvalidImageError):
            InMemoryImageStore().upload("aGVsbG8=", "user/u1/category")


class S3ImageStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = S3ImageStore(
            bucket="menu-images",
            region="us-east-1",
            endpoint="",
            access_key_id="key",
            secret_access_key="secret",
        )
        self.stubber = Stubber(self.store._client)
        self.addCleanup(self.stubber.deactivate)

    def test_upload_puts_object_with_content_type(self):
        self.stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": "menu-images",
                "Key": ANY,
                "Body": ANY,
                "ContentType": "image/png",
            },
        )
        self.stubber.activate()
        result = self.store.upload(png_base64(), "user/u1/category")
        self.assertRegex(result.path, r"^user/u1/category/[0-9a-f]{32}\.png$")
        self.stubber.assert_no_pending_responses()

    def test_delete_failure_is_wrapped(self):
        self.stubber.add_client_error("delete_object", "AccessDenied")
        self.stubber.activate()
        with self.assertRaises(ImageStoreError):
            self.store.delete_file("/user/u1/category/a.png")

    def test_bulk_delete_strips_leading_slash(self):
        self.stubber.add_response(
            "delete_objects",
            {"Deleted": [{"Key": "a.png"}, {"Key": "b.png"}]},
            {
                "Bucket": "menu-images",
                "Delete": {
                    "Objects": [{"Key": "a.png"}, {"Key": "b.png"}],
                    "Quiet": True,
                },
            },
        )
        self.stubber.activate()
        self.store.bulk_delete_files(["/a.png", "b.png"])
        self.stubber.assert_no_pending_responses()

    def test_bulk_delete_reports_partial_failure(self):
        self.stubber.add_response(
            "delete_objects",
            {"Errors": [{"Key": "a.png", "Code": "AccessDenied"}]},
        )
        self.stubber.activate()
        with self.assertRaises(ImageStoreError):
            self.store.bulk_delete_files(["a.png"])


if __name__ == "__main__":
    unittest.main()
