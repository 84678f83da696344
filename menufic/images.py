"""
Helpers for base64 image payloads: decoding, perceptual hash and dominant color.
"""

from __future__ import annotations

import base64
import binascii
import io
import re
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from menufic.errors import InvalidImageError

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?;base64,", re.IGNORECASE)

EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
}

HASH_SIZE = 8
COLOR_SAMPLE_SIZE = (64, 64)
PALETTE_SIZE = 8


@dataclass
class DecodedImage:
    data: bytes
    format: str
    content_type: str

    @property
    def extension(self) -> str:
        return EXTENSIONS.get(self.format, self.format.lower())


def decode_image(image_base64: str) -> DecodedImage:
    """
    Decode a raw or ``data:`` URL base64 payload and check it is an image.

    Raises:
        InvalidImageError: If the payload is not base64 or not a supported image.
    """
    payload = DATA_URL_PATTERN.sub("", image_base64.strip(), count=1)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError("Image payload is not valid base64") from e
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImageError("Image payload is not a readable image") from e
    if image_format not in EXTENSIONS:
        raise InvalidImageError(f"Unsupported image format: {image_format}")
    return DecodedImage(
        data=data,
        format=image_format,
        content_type=Image.MIME.get(image_format, "application/octet-stream"),
    )


def _open(image_base64: str) -> Image.Image:
    decoded = decode_image(image_base64)
    img = Image.open(io.BytesIO(decoded.data))
    img.load()
    return img


def perceptual_hash(image_base64: str) -> str:
    """
    Average hash: the image is shrunk to 8x8 grayscale and each pixel
    brighter than the mean sets one bit. Returned as 16 hex characters.
    """
    with _open(image_base64) as img:
        small = img.convert("L").resize(
            (HASH_SIZE, HASH_SIZE), Image.Resampling.LANCZOS
        )
        pixels = list(small.getdata())
    mean = sum(pixels) / len(pixels)
    bits = 0
    for pixel in pixels:
        bits = (bits << 1) | (1 if pixel > mean else 0)
    return f"{bits:0{HASH_SIZE * HASH_SIZE // 4}x}"


def dominant_color(image_base64: str) -> Tuple[int, int, int, int]:
    """Most common color of a reduced palette, as an RGBA tuple."""
    with _open(image_base64) as img:
        rgba = img.convert("RGBA").resize(COLOR_SAMPLE_SIZE)
    alpha = rgba.getchannel("A")
    alpha_values = list(alpha.getdata())
    quantized = rgba.convert("RGB").quantize(colors=PALETTE_SIZE)
    palette = quantized.getpalette()
    _, index = max(quantized.getcolors())
    r, g, b = palette[index * 3 : index * 3 + 3]
    a = round(sum(alpha_values) / len(alpha_values))
    return r, g, b, a


def rgba_to_hex(rgba: Tuple[int, int, int, int]) -> str:
    return "#" + "".join(f"{channel:02x}" for channel in rgba)
