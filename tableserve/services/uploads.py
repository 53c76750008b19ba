"""
Image Upload Service

Stores organization logos, venue, category and menu item images on local
disk under ``settings.upload_directory``. Records keep only the returned
public URL.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from tableserve.core.config import get_settings
from tableserve.core.exceptions import NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def upload_dir() -> Path:
    path = Path(get_settings().upload_directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def public_url(filename: str) -> str:
    return f"{get_settings().upload_url_prefix.rstrip('/')}/{filename}"


def _safe_path(filename: str) -> Path:
    if not filename or Path(filename).name != filename or filename.startswith("."):
        raise ValidationFailedError("Invalid file name")
    return upload_dir() / filename


def save_image(contents: bytes, content_type: Optional[str]) -> dict:
    """
    Validate and store an uploaded image.

    Returns:
        dict: ``{url, filename, size, content_type}``

    Raises:
        ValidationFailedError: unsupported type, empty or oversized file
    """
    settings = get_settings()

    if content_type not in settings.allowed_image_types_list:
        raise ValidationFailedError(
            f"Invalid file type. Allowed: {', '.join(settings.allowed_image_types_list)}"
        )
    if not contents:
        raise ValidationFailedError("Uploaded file is empty")
    if len(contents) > settings.max_upload_bytes:
        raise ValidationFailedError(
            f"File too large. Max size: {settings.max_upload_bytes // (1024 * 1024)}MB"
        )

    filename = f"{uuid.uuid4()}{EXTENSIONS.get(content_type, '.img')}"
    (upload_dir() / filename).write_bytes(contents)
    logger.info(f"Stored upload {filename} ({len(contents)} bytes)")

    return {
        "url": public_url(filename),
        "filename": filename,
        "size": len(contents),
        "content_type": content_type,
    }


def delete_image(filename: str) -> None:
    path = _safe_path(filename)
    if not path.exists():
        raise NotFoundError(f"File {filename} not found")
    path.unlink()
    logger.info(f"Deleted upload {filename}")
