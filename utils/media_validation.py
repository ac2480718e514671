"""Validation helpers for uploaded images."""

import io
from typing import NamedTuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from models.errors import InvalidImage

# Pillow format name -> (mime type, file extension)
ALLOWED_IMAGE_FORMATS = {
    "JPEG": ("image/jpeg", "jpg"),
    "PNG": ("image/png", "png"),
    "WEBP": ("image/webp", "webp"),
    "GIF": ("image/gif", "gif"),
    "BMP": ("image/bmp", "bmp"),
    "HEIF": ("image/heif", "heic"),
}


class ImageInfo(NamedTuple):
    mime_type: str
    extension: str


def inspect_image(raw: bytes) -> ImageInfo:
    """Return the mime type and extension of `raw`, checking it decodes as an image.

    The declared content type of an upload is not trusted; the format is
    taken from the bytes.

    Raises:
        InvalidImage: If the bytes are empty, unreadable, or an unsupported format.
    """
    if not raw:
        raise InvalidImage("Uploaded image is empty.")
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise InvalidImage("Uploaded bytes are not a supported image format.") from exc

    if fmt not in ALLOWED_IMAGE_FORMATS:
        raise InvalidImage(f"Unsupported image format: {fmt}")
    return ImageInfo(*ALLOWED_IMAGE_FORMATS[fmt])


async def read_image_bytes(upload: UploadFile) -> bytes:
    """Read an uploaded image, ensuring the upload is not empty."""
    data = await upload.read()
    if not data:
        raise InvalidImage("Uploaded image is empty.")
    return data
