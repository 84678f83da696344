import base64
import io
import unittest
from unittest.mock import patch

from PIL import Image

from menufic.errors import InvalidImageError
from menufic.images import decode_image, dominant_color, perceptual_hash, rgba_to_hex


def encode(img: Image.Image, image_format: str = "PNG") -> str:
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class ImageHelperTests(unittest.TestCase):
    def test_decode_accepts_data_url(self):
        payload = "data:image/png;base64," + encode(Image.new("RGB", (4, 4)))
        decoded = decode_image(payload)
        self.assertEqual(decoded.format, "PNG")
        self.assertEqual(decoded.extension, "png")
        self.assertEqual(decoded.content_type, "image/png")

    def test_decode_jpeg_extension(self):
        decoded = decode_image(encode(Image.new("RGB", (4, 4)), "JPEG"))
        self.assertEqual(decoded.extension, "jpg")

    def test_decode_rejects_garbage(self):
        with self.assertRaises(InvalidImageError):
            decode_image("not base64!!")
        with self.assertRaises(InvalidImageError):
            decode_image(base64.b64encode(b"plain text").decode("ascii"))

    def test_decode_rejects_decompression_bomb(self):
        payload = encode(Image.new("RGB", (16, 16)))
        with patch.object(Image, "MAX_IMAGE_PIXELS", 10):
            with self.assertRaises(InvalidImageError):
                decode_image(payload)

    def test_perceptual_hash_of_flat_image_is_zero(self):
        payload = encode(Image.new("RGB", (32, 32), (120, 120, 120)))
        self.assertEqual(perceptual_hash(payload), "0" * 16)

    def test_perceptual_hash_tracks_brightness_layout(self):
        left_bright = Image.new("L", (32, 32), 0)
        left_bright.paste(255, (0, 0, 16, 32))
        right_bright = Image.new("L", (32, 32), 0)
        right_bright.paste(255, (16, 0, 32, 32))

        left_hash = perceptual_hash(encode(left_bright))
        right_hash = perceptual_hash(encode(right_bright))
        self.assertEqual(len(left_hash), 16)
        self.assertNotEqual(left_hash, right_hash)
        self.assertEqual(left_hash, perceptual_hash(encode(left_bright)))

    def test_dominant_color_of_solid_image(self):
        payload = encode(Image.new("RGB", (20, 20), (255, 0, 0)))
        self.assertEqual(dominant_color(payload), (255, 0, 0, 255))

    def test_rgba_to_hex(self):
        self.assertEqual(rgba_to_hex((255, 0, 16, 255)), "#ff0010ff")


if __name__ == "__main__":
    unittest.main()
