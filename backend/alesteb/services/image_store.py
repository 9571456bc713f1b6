"""
Image store adapter.

Uploaded images are normalised with Pillow (EXIF orientation, RGB, bounded
size, JPEG) and written under a storage key. The key is returned together
with the public URL and must be stored by the caller; deletion works on the
key only.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from io import BytesIO
from typing import Tuple

from fastapi import Request
from PIL import Image, ImageOps, UnidentifiedImageError

from alesteb.core.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

SERVICE_NAME = "image-store"


@dataclass(frozen=True)
class StoredImage:
    url: str
    key: str


def process_image(content: bytes, max_size: int = 2000, quality: int = 85) -> Tuple[bytes, str]:
    """
    Normalise an uploaded image:
    - fix orientation from EXIF
    - convert to RGB (transparent areas on white)
    - shrink to fit max_size
    - re-encode as JPEG
    """
    try:
        image = Image.open(BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable image: {e}") from e

    image = ImageOps.exif_transpose(image)

    if image.mode in ('RGBA', 'LA', 'P'):
        if image.mode == 'P':
            image = image.convert('RGBA')
        rgb_image = Image.new('RGB', image.size, (255, 255, 255))
        rgb_image.paste(image, mask=image.split()[-1])
        image = rgb_image
    elif image.mode != 'RGB':
        image = image.convert('RGB')

    width, height = image.size
    if width > max_size or height > max_size:
        image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    output = BytesIO()
    image.save(output, format='JPEG', quality=quality, optimize=True)
    return output.getvalue(), '.jpg'


class LocalImageStore:
    """Object store backed by a directory served under url_prefix"""

    def __init__(self, root_dir: str, url_prefix: str = "/uploads", folder: str = "products"):
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")
        self.folder = folder

    def _path(self, key: str) -> str:
        return os.path.join(self.root_dir, *key.split("/"))

    def upload(self, content: bytes, filename: str = "", folder: str = None) -> StoredImage:
        try:
            processed, ext = process_image(content)
        except ValueError as e:
            raise ValidationError(f"{filename or 'image'}: {e}") from e

        key = f"{folder or self.folder}/{uuid.uuid4().hex}{ext}"
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as buffer:
                buffer.write(processed)
        except OSError as e:
            logger.error("Image upload failed for %s: %s", filename or key, e)
            raise ExternalServiceError(SERVICE_NAME, "Failed to save image") from e

        logger.info("Stored image %s (%s)", key, filename or "unnamed")
        return StoredImage(url=f"{self.url_prefix}/{key}", key=key)

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Image %s already missing from store", key)
            return
        except OSError as e:
            logger.error("Image delete failed for %s: %s", key, e)
            raise ExternalServiceError(SERVICE_NAME, "Failed to delete image") from e
        logger.info("Deleted image %s", key)

    def exists(self, key: str) -> bool:
        return os.path.exists(self._path(key))


def get_image_store(request: Request) -> LocalImageStore:
    return request.app.state.image_store
