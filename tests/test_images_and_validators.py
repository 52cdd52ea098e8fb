"""
Tests for upload validation and the content-addressed image store.
"""

import hashlib
import shutil
import tempfile

import pytest
from django.core.exceptions import ValidationError
from django.core.files.storage import FileSystemStorage
from django.core.files.uploadedfile import SimpleUploadedFile

from donations.storage import ContentAddressedImageStore, get_image_store
from donations.validators import validate_item_image, validate_phone_number
from tests.utils import create_test_image


@pytest.fixture
def storage():
    location = tempfile.mkdtemp()
    yield FileSystemStorage(location=location, base_url='/media/')
    shutil.rmtree(location, ignore_errors=True)


class TestPhoneNumberValidator:

    @pytest.mark.parametrize('value', ['', '010-1234-5678', '+82 (2) 555-0100', '02-123-4567'])
    def test_valid_numbers(self, value):
        validate_phone_number(value)

    @pytest.mark.parametrize('value,code', [
        ('call me maybe', 'invalid_phone_chars'),
        ('123-45', 'phone_too_short'),
    ])
    def test_invalid_numbers(self, value, code):
        with pytest.raises(ValidationError) as excinfo:
            validate_phone_number(value)

        assert excinfo.value.code == code


class TestItemImageValidator:

    @pytest.mark.parametrize('filename,format', [
        ('photo.jpg', 'JPEG'),
        ('photo.jpeg', 'JPEG'),
        ('photo.png', 'PNG'),
        ('photo.webp', 'WEBP'),
    ])
    def test_accepts_supported_images(self, filename, format):
        image = create_test_image(filename, format=format)

        validate_item_image(image)

        assert image.tell() == 0

    def test_rejects_wrong_extension(self):
        image = create_test_image('photo.gif')

        with pytest.raises(ValidationError) as excinfo:
            validate_item_image(image)

        assert excinfo.value.code == 'invalid_image_format'

    def test_rejects_wrong_content_type(self):
        image = SimpleUploadedFile('photo.jpg', create_test_image().read(), content_type='text/html')

        with pytest.raises(ValidationError) as excinfo:
            validate_item_image(image)

        assert excinfo.value.code == 'invalid_content_type'

    def test_rejects_undecodable_bytes(self):
        image = SimpleUploadedFile('photo.png', b'\x89PNG not really', content_type='image/png')

        with pytest.raises(ValidationError) as excinfo:
            validate_item_image(image)

        assert excinfo.value.code == 'invalid_image'

    def test_rejects_oversized_image(self, settings):
        settings.DONATIONS = {'IMAGE_MAX_SIZE': 100}

        with pytest.raises(ValidationError) as excinfo:
            validate_item_image(create_test_image())

        assert excinfo.value.code == 'image_too_large'


class TestContentAddressedImageStore:

    def test_name_is_sha256_of_content(self, storage):
        store = ContentAddressedImageStore(storage=storage, upload_dir='items')
        image = create_test_image('front.JPEG')
        data = image.read()
        digest = hashlib.sha256(data).hexdigest()

        url = store.persist(image)

        assert url == f'/media/items/{digest[:2]}/{digest}.jpg'
        assert storage.exists(f'items/{digest[:2]}/{digest}.jpg')

    def test_same_bytes_are_written_once(self, storage):
        store = ContentAddressedImageStore(storage=storage, upload_dir='items')
        first = create_test_image('a.png', format='PNG')
        second = create_test_image('b.png', format='PNG')

        assert store.persist(first) == store.persist(second)
        digest_dirs = storage.listdir('items')[0]
        assert len(digest_dirs) == 1
        assert len(storage.listdir(f'items/{digest_dirs[0]}')[1]) == 1

    def test_raw_bytes_use_detected_format(self, storage):
        store = ContentAddressedImageStore(storage=storage, upload_dir='items')
        data = create_test_image('x.png', format='PNG').read()

        url = store.persist(data)

        assert url.endswith('.png')

    def test_unrecognised_bytes_get_generic_extension(self, storage):
        store = ContentAddressedImageStore(storage=storage, upload_dir='items')

        assert store.persist(b'opaque').endswith('.bin')

    def test_configured_store_is_used(self, settings):
        settings.DONATIONS = {'IMAGE_STORE': 'tests.utils.InMemoryImageStore'}

        store = get_image_store()

        assert store.persist(b'data', 'a.jpg') == 'https://cdn.test/1.jpg'
