"""
Shared helpers for the test suite.
"""

from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image
from rest_framework_simplejwt.tokens import RefreshToken

from donations.models import Donation, DonationItem, Organization, User
from donations.notifications import NotificationSink


def create_test_user(email, user_type=User.DONOR, **kwargs):
    """Create a test user with given parameters."""
    return User.objects.create_user(
        username=email.split('@')[0],
        email=email,
        password='testpass123',
        user_type=user_type,
        **kwargs
    )


def create_admin_user(email='admin@test.com'):
    return create_test_user(email, is_staff=True)


def create_test_organization(name, status=Organization.APPROVED, email=None, **kwargs):
    """Create an organization, with a linked account when ``email`` is given."""
    user = None
    if email:
        user = create_test_user(email, user_type=User.ORGANIZATION)
    return Organization.objects.create(name=name, status=status, user=user, **kwargs)


def create_test_donation(donor, match_type=Donation.INDIRECT, organization=None, **kwargs):
    """Create a donation with a default item, bypassing the workflow."""
    item = {
        'gender_type': kwargs.pop('gender_type', 'women'),
        'main_category': kwargs.pop('main_category', 'outerwear'),
        'detail_category': kwargs.pop('detail_category', 'Wool coat'),
        'size': kwargs.pop('size', 'm'),
        'description': kwargs.pop('description', 'Worn for one winter.'),
    }
    donation = Donation.objects.create(
        donor=donor,
        match_type=match_type,
        organization=organization,
        **kwargs
    )
    DonationItem.objects.create(donation=donation, **item)
    return donation


def item_spec(**overrides):
    spec = {
        'gender_type': 'men',
        'main_category': 'top',
        'detail_category': 'Knit sweater',
        'size': 'l',
        'description': 'Hand knitted, no holes.',
    }
    spec.update(overrides)
    return spec


def get_jwt_token(user):
    """Generate JWT token for a user."""
    refresh = RefreshToken.for_user(user)
    return str(refresh.access_token)


def create_test_image(filename='test.jpg', size=(100, 100), format='JPEG', color='red'):
    """Create a test image file."""
    file = BytesIO()
    image = Image.new('RGB', size, color=color)
    image.save(file, format)
    file.seek(0)
    return SimpleUploadedFile(
        filename,
        file.read(),
        content_type=f'image/{format.lower()}'
    )


class RecordingSink(NotificationSink):
    """Notification sink that keeps every call in memory."""

    def __init__(self):
        self.sent = []

    def notify(self, user, kind, title, body, reference_id=None, reference_type='donation'):
        self.sent.append({
            'user': user,
            'kind': kind,
            'title': title,
            'body': body,
            'reference_id': reference_id,
            'reference_type': reference_type,
        })

    def recipients(self):
        return [entry['user'] for entry in self.sent]


class FailingSink(NotificationSink):
    """Notification sink whose every call fails."""

    def __init__(self):
        self.attempts = 0

    def notify(self, user, kind, title, body, reference_id=None, reference_type='donation'):
        self.attempts += 1
        raise ConnectionError('notification service unavailable')


class InMemoryImageStore:
    """Image store that remembers what it was given."""

    def __init__(self):
        self.persisted = []

    def persist(self, content, filename=None):
        self.persisted.append(getattr(content, 'name', filename))
        return f'https://cdn.test/{len(self.persisted)}.jpg'
