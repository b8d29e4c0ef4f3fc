"""
File Storage Helpers
Uploads are kept in the database as Base64 text. This module reads multipart
uploads, enforces MIME type and size limits, and builds image thumbnails
with Pillow.
"""

import base64
import binascii
import io
import logging
import mimetypes
import os
import uuid
from typing import Optional, Set, Tuple

from PIL import Image, UnidentifiedImageError

from constants import (
    MB, THUMBNAIL_SIZE,
    MAX_IMAGE_SIZE_BYTES, MAX_EXPOSE_SIZE_BYTES, MAX_ATTACHMENT_SIZE_BYTES,
    ALLOWED_IMAGE_MIME_TYPES, ALLOWED_EXPOSE_MIME_TYPES, ALLOWED_ATTACHMENT_MIME_TYPES,
)
from exceptions import StorageError
from validators import sanitize_filename

logger = logging.getLogger(__name__)


def read_upload(file_storage) -> Tuple[bytes, str, str]:
    """
    Read a werkzeug FileStorage into memory

    Returns:
        Tuple of (data, original_filename, content_type)
    """
    if file_storage is None or not file_storage.filename:
        raise StorageError("No file provided")

    data = file_storage.read()
    if not data:
        raise StorageError("File is empty")

    filename = file_storage.filename
    content_type = (file_storage.mimetype
                    or mimetypes.guess_type(filename)[0]
                    or 'application/octet-stream')
    return data, filename, content_type.lower()


def validate_upload(data: bytes, content_type: str, allowed: Set[str], max_size: int, label: str = "File"):
    if not data:
        raise StorageError(f"{label} is empty")

    if content_type not in allowed:
        raise StorageError(
            f"{label} type {content_type} is not allowed. Allowed types: {', '.join(sorted(allowed))}"
        )

    if len(data) > max_size:
        raise StorageError(
            f"{label} too large (maximum {max_size / MB:.0f}MB)",
            status_code=413
        )


def validate_image(data: bytes, content_type: str):
    validate_upload(data, content_type, ALLOWED_IMAGE_MIME_TYPES, MAX_IMAGE_SIZE_BYTES, "Image")


def validate_expose(data: bytes, content_type: str):
    validate_upload(data, content_type, ALLOWED_EXPOSE_MIME_TYPES, MAX_EXPOSE_SIZE_BYTES, "Expose")


def validate_attachment(data: bytes, content_type: str):
    validate_upload(data, content_type, ALLOWED_ATTACHMENT_MIME_TYPES, MAX_ATTACHMENT_SIZE_BYTES, "Attachment")


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def decode_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise StorageError(f"Stored file data is corrupt: {e}")


def generate_stored_filename(original_filename: Optional[str]) -> str:
    """UUID-based name keeping the original extension"""
    extension = os.path.splitext(sanitize_filename(original_filename or ''))[1].lower()
    return f"{uuid.uuid4()}{extension}"


# ============================================================================
# IMAGES
# ============================================================================

def _open_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    except Image.DecompressionBombError as e:
        raise StorageError(f"Image dimensions too large: {e}", status_code=413)
    except (UnidentifiedImageError, OSError) as e:
        raise StorageError(f"Could not read image: {e}")


def read_image_dimensions(data: bytes) -> Tuple[int, int]:
    image = _open_image(data)
    return image.size


def make_thumbnail(data: bytes, content_type: str = None, size: int = THUMBNAIL_SIZE) -> str:
    """
    Scale an image down to fit inside size x size (aspect ratio kept)

    Returns:
        Base64-encoded JPEG thumbnail
    """
    image = _open_image(data)
    image.thumbnail((size, size))

    if image.mode not in ('RGB', 'L'):
        image = image.convert('RGB')

    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=85)
    logger.debug(f"Generated {image.size[0]}x{image.size[1]} thumbnail from {content_type or 'image'}")
    return encode_base64(buffer.getvalue())


def format_file_size(size: Optional[int]) -> str:
    """Human-readable size, e.g. 1.5 MB"""
    if size is None:
        return '0 B'
    if size < 1024:
        return f"{size} B"
    if size < MB:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * MB:
        return f"{size / MB:.1f} MB"
    return f"{size / (1024 * MB):.1f} GB"
