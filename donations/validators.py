"""
Custom validators for donation models and uploads.
"""

import re

from django.core.exceptions import ValidationError
from PIL import Image, UnidentifiedImageError

from .conf import donation_settings

VALID_IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'webp']
VALID_IMAGE_CONTENT_TYPES = ['image/jpeg', 'image/png', 'image/webp']


def validate_phone_number(value):
    """
    Validate phone number format.

    Accepts digits with optional country code, spaces, dashes and parentheses.
    Requires at least 9 digits so local formats like 02-123-4567 pass.

    Args:
        value: Phone number string to validate

    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # optional field
        return

    if not re.match(r'^[\d\s\-\+\(\)]+$', value):
        raise ValidationError(
            'Phone number can only contain digits, spaces, dashes, parentheses, and plus sign.',
            code='invalid_phone_chars'
        )

    digits = re.sub(r'\D', '', value)

    if len(digits) < 9:
        raise ValidationError(
            'Phone number must contain at least 9 digits.',
            code='phone_too_short'
        )


def validate_item_image(image):
    """
    Validate an uploaded donation item image.

    Checks, in order:
    - File size (``IMAGE_MAX_SIZE``, 5MB by default)
    - File extension (jpg, jpeg, png, webp)
    - Declared MIME type, when the upload carries one
    - That Pillow can actually decode the bytes

    The file position is restored afterwards so the caller can still read it.

    Args:
        image: UploadedFile object

    Raises:
        ValidationError: If image is invalid
    """
    if not image:
        return

    max_size = donation_settings('IMAGE_MAX_SIZE')
    if image.size > max_size:
        raise ValidationError(
            f'Image file size cannot exceed {max_size / (1024 * 1024):.0f}MB. '
            f'Current size: {image.size / (1024 * 1024):.2f}MB',
            code='image_too_large'
        )

    file_name = (image.name or '').lower()
    if not any(file_name.endswith(f'.{ext}') for ext in VALID_IMAGE_EXTENSIONS):
        raise ValidationError(
            f'Invalid image format. Allowed formats: {", ".join(VALID_IMAGE_EXTENSIONS)}',
            code='invalid_image_format'
        )

    content_type = getattr(image, 'content_type', None)
    if content_type and content_type not in VALID_IMAGE_CONTENT_TYPES:
        raise ValidationError(
            f'Invalid image content type: {content_type}',
            code='invalid_content_type'
        )

    position = image.tell() if hasattr(image, 'tell') else 0
    try:
        with Image.open(image) as decoded:
            decoded.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError(
            'Uploaded file is not a valid image.',
            code='invalid_image'
        )
    finally:
        image.seek(position)
