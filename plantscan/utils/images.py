import io
import logging
from typing import List, Optional

from PIL import Image, UnidentifiedImageError

from plantscan.config import MAX_IMAGE_BYTES, MAX_IMAGES
from plantscan.errors import ValidationError

logger = logging.getLogger(__name__)

_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
    "HEIF": "image/heif",
}


def image_format(image_bytes: bytes) -> Optional[str]:
    """Return the Pillow format name (e.g. 'JPEG'), or None when Pillow cannot read it"""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.debug(f"Could not sniff upload format: {e}")
        return None


def image_mime(image_bytes: bytes) -> str:
    return _FORMAT_MIME.get(image_format(image_bytes) or "", "application/octet-stream")


def validate_images(images: List[bytes], max_images: int = MAX_IMAGES, max_bytes: int = MAX_IMAGE_BYTES):
    """
    Reject missing, empty or oversized uploads before anything is sent upstream.

    Payloads are forwarded unchanged otherwise; formats Pillow cannot decode
    (HEIC from phones, for example) are left for the provider to judge.
    """
    if not images:
        raise ValidationError("No images provided.")
    if len(images) > max_images:
        raise ValidationError(f"Too many images (maximum {max_images}).")
    for image_bytes in images:
        if not image_bytes:
            raise ValidationError("One of the uploaded images is empty.")
        if len(image_bytes) > max_bytes:
            raise ValidationError(
                f"Image too large (maximum {max_bytes // (1024 * 1024)} MB per image).",
                status_code=413,
            )
