"""
Notification sinks.

The workflow talks to a sink through ``notify(user, kind, title, body,
reference_id, reference_type)``. Delivery is fire-and-forget: the workflow
calls sinks only after its transaction has committed and logs any failure
instead of propagating it.
"""

import logging

from django.utils.module_loading import import_string

from .conf import donation_settings
from .models import Notification

logger = logging.getLogger(__name__)


class NotificationSink:
    """Interface for notification delivery."""

    def notify(self, user, kind, title, body, reference_id=None, reference_type='donation'):
        raise NotImplementedError


class DatabaseNotificationSink(NotificationSink):
    """Stores notifications in the user's inbox table."""

    def notify(self, user, kind, title, body, reference_id=None, reference_type='donation'):
        notification = Notification.objects.create(
            recipient=user,
            kind=kind,
            title=title,
            body=body,
            reference_id=reference_id,
            reference_type=reference_type or '',
        )
        logger.debug(
            f"Notification stored. ID: {notification.id}, "
            f"Recipient: {user.pk}, Kind: {kind}, Reference: {reference_type}:{reference_id}"
        )
        return notification


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the log only. Useful for local development."""

    def notify(self, user, kind, title, body, reference_id=None, reference_type='donation'):
        logger.info(
            f"Notification. Recipient: {user.pk}, Kind: {kind}, Title: {title}, "
            f"Reference: {reference_type}:{reference_id}"
        )


def get_notification_sink():
    """Instantiate the sink named by the ``NOTIFICATION_SINK`` setting."""
    return import_string(donation_settings('NOTIFICATION_SINK'))()
