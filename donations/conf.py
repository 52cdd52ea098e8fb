"""
App-level settings for the donation workflow.

Values come from ``settings.DONATIONS`` and fall back to the defaults below,
so a project only has to override what it changes.
"""

from django.conf import settings

DEFAULTS = {
    'NOTIFICATION_SINK': 'donations.notifications.DatabaseNotificationSink',
    'IMAGE_STORE': 'donations.storage.ContentAddressedImageStore',
    'IMAGE_UPLOAD_DIR': 'donation_images',
    'IMAGE_MAX_SIZE': 5 * 1024 * 1024,
    'DEFAULT_REJECT_REASON': 'Rejected by the platform administrator.',
    'UNSPECIFIED': 'unspecified',
    'UNSPECIFIED_PHONE': '000-0000-0000',
}


def donation_settings(name):
    """
    Look up a donation setting.

    Read on every call so ``override_settings`` takes effect in tests.

    Args:
        name: Key in ``DEFAULTS``

    Returns:
        The configured value, or the default

    Raises:
        KeyError: If ``name`` is not a known setting
    """
    if name not in DEFAULTS:
        raise KeyError(f'Unknown donation setting: {name}')
    configured = getattr(settings, 'DONATIONS', {}) or {}
    return configured.get(name, DEFAULTS[name])
