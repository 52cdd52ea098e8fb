"""
Content-addressed storage for donation item images.

Images are stored under the SHA-256 of their bytes, so the same photo uploaded
twice is written once. Existence is checked here, once, when the image is
written; readers only ever see the URLs this store returned.
"""

import hashlib
import logging
from pathlib import PurePath

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils.module_loading import import_string
from PIL import Image, UnidentifiedImageError

from .conf import donation_settings

logger = logging.getLogger(__name__)

PILLOW_FORMAT_EXTENSIONS = {
    'JPEG': '.jpg',
    'PNG': '.png',
    'WEBP': '.webp',
}


def _read_bytes(content):
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if hasattr(content, 'seek'):
        content.seek(0)
    if hasattr(content, 'chunks'):
        return b''.join(content.chunks())
    return content.read()


def _guess_extension(data, filename):
    if filename:
        suffix = PurePath(filename).suffix.lower()
        if suffix == '.jpeg':
            return '.jpg'
        if suffix:
            return suffix
    try:
        with Image.open(ContentFile(data)) as image:
            return PILLOW_FORMAT_EXTENSIONS.get(image.format, '.bin')
    except (UnidentifiedImageError, OSError):
        return '.bin'


class ContentAddressedImageStore:
    """
    Image store backed by a Django storage.

    Args:
        storage: Django storage backend (defaults to ``default_storage``)
        upload_dir: Directory prefix inside the storage
    """

    def __init__(self, storage=None, upload_dir=None):
        self.storage = storage or default_storage
        self.upload_dir = upload_dir or donation_settings('IMAGE_UPLOAD_DIR')

    def name_for(self, data, filename=None):
        digest = hashlib.sha256(data).hexdigest()
        return f'{self.upload_dir}/{digest[:2]}/{digest}{_guess_extension(data, filename)}'

    def persist(self, content, filename=None):
        """
        Store image bytes and return their public URL.

        Args:
            content: bytes or a file-like object
            filename: Original filename, used for the extension

        Returns:
            str: URL of the stored image
        """
        if filename is None:
            filename = getattr(content, 'name', None)
        data = _read_bytes(content)
        name = self.name_for(data, filename)

        if self.storage.exists(name):
            logger.debug(f"Image already stored. Name: {name}")
        else:
            name = self.storage.save(name, ContentFile(data))
            logger.info(f"Image stored. Name: {name}, Size: {len(data)} bytes")

        return self.storage.url(name)


def get_image_store():
    """Instantiate the store named by the ``IMAGE_STORE`` setting."""
    return import_string(donation_settings('IMAGE_STORE'))()
