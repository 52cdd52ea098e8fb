"""
Workflow service for the donation lifecycle.

Every mutating operation follows the same steps:

1. Open a transaction and load the donation row with ``select_for_update()``.
2. Ask the matching engine whether the transition is legal. This is the last
   step before the write, so a lost race surfaces as a state conflict.
3. Save only the changed fields.
4. After commit, dispatch notifications best-effort.

Delivery bootstrap runs inside a savepoint of the same transaction. When it
fails the savepoint is rolled back, the failure is logged and the transition
stands.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from . import matching
from .conf import donation_settings
from .exceptions import (
    INVALID_MATCH_TYPE,
    NOT_AUTHORIZED,
    NOT_PENDING,
    AdvisoryFailure,
    NotFound,
    StateConflict,
)
from .matching import Actor
from .models import Delivery, Donation, DonationItem, Notification, Organization
from .notifications import get_notification_sink
from .projection import delivery_of, project_status
from .storage import get_image_store
from .validators import validate_item_image

logger = logging.getLogger(__name__)

ITEM_FIELDS = ('gender_type', 'main_category', 'detail_category', 'size', 'description')


@dataclass(frozen=True)
class Notice:
    """A notification queued during a transition, sent after commit."""

    recipient: object
    kind: str
    title: str
    body: str
    reference_id: Optional[int] = None
    reference_type: str = 'donation'


def _describe(actor):
    return f"{actor.role} (ID: {actor.user_id})"


def _item_name(donation):
    try:
        return donation.item.display_name()
    except DonationItem.DoesNotExist:
        return 'donated item'


class DonationWorkflow:
    """
    Orchestrates the matching engine, the entity store and side effects.

    Args:
        notifier: Notification sink; defaults to the ``NOTIFICATION_SINK`` setting
        image_store: Image store; defaults to the ``IMAGE_STORE`` setting
    """

    def __init__(self, notifier=None, image_store=None):
        self.notifier = notifier if notifier is not None else get_notification_sink()
        self._image_store = image_store

    @property
    def image_store(self):
        if self._image_store is None:
            self._image_store = get_image_store()
        return self._image_store

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_donation(self, donor, item_spec, match_type, organization_id=None,
                        delivery_method=Donation.COURIER, is_anonymous=False, images=None):
        """
        Register a new donation with its item.

        Args:
            donor: User offering the donation
            item_spec: dict with gender_type, main_category, detail_category,
                size and description
            match_type: 'direct' or 'indirect'
            organization_id: Chosen organization for a direct match; ignored
                for an indirect match
            delivery_method: 'courier' or 'drop_off'
            is_anonymous: Hide the donor's name from the organization
            images: Uploaded image files for the item

        Returns:
            Donation: The created donation (status and admin decision pending)

        Raises:
            ValidationError: If the input is malformed
            StateConflict: INVALID_MATCH_TYPE for an unusable direct match,
                NOT_AUTHORIZED if the user cannot donate
            NotFound: If the chosen organization does not exist
        """
        if Actor.for_user(donor).role != Actor.DONOR:
            logger.warning(
                f"Donation creation refused for non-donor account. "
                f"User ID: {donor.pk}, User Type: {donor.user_type}"
            )
            raise StateConflict(NOT_AUTHORIZED)

        if match_type not in (Donation.DIRECT, Donation.INDIRECT):
            raise ValidationError({'match_type': f'Invalid match type: {match_type}.'})

        organization = None
        if match_type == Donation.DIRECT:
            if organization_id is None:
                raise StateConflict(
                    INVALID_MATCH_TYPE, 'A direct match requires an organization.'
                )
            organization = Organization.objects.filter(pk=organization_id).first()
            if organization is None:
                raise NotFound('Organization', organization_id)
            if not organization.is_approved():
                raise StateConflict(
                    INVALID_MATCH_TYPE,
                    'The selected organization is not approved for matching.'
                )

        images = list(images or [])
        for image in images:
            validate_item_image(image)

        item_values = {name: item_spec[name] for name in ITEM_FIELDS if name in item_spec}
        donation = Donation(
            donor=donor,
            organization=organization,
            match_type=match_type,
            delivery_method=delivery_method,
            is_anonymous=bool(is_anonymous),
        )
        item = DonationItem(**item_values)

        # Nothing reaches the image store until both records validate
        donation.full_clean()
        item.full_clean(exclude=['donation', 'image_urls'])

        # Written once here; listings only ever read the stored URLs
        image_urls = [self.image_store.persist(image) for image in images]

        with transaction.atomic():
            donation.save()
            item.donation = donation
            item.image_urls = image_urls
            item.save()

        logger.info(
            f"Donation created. "
            f"Donation ID: {donation.pk}, "
            f"Donor ID: {donor.pk}, "
            f"Match Type: {match_type}, "
            f"Organization ID: {donation.organization_id}, "
            f"Images: {len(image_urls)}"
        )
        return donation

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def assign_organization(self, actor, donation_id, organization_id):
        """
        Assign an organization to an indirect donation.

        Raises:
            NotFound: If the donation or organization does not exist
            StateConflict: If the matching engine refuses the assignment
        """
        with transaction.atomic():
            donation = self._load(donation_id)
            organization = Organization.objects.filter(pk=organization_id).first()
            if organization is None:
                raise NotFound('Organization', organization_id)
            self._apply(donation, actor, matching.ASSIGN_ORGANIZATION, organization=organization)

        return donation

    def admin_approve(self, actor, donation_id):
        """Open the admin gate: the donation moves to in progress."""
        with transaction.atomic():
            donation = self._load(donation_id)
            self._apply(donation, actor, matching.APPROVE)

        notices = [Notice(
            donation.donor,
            Notification.DONATION_APPROVED,
            'Donation approved',
            f"Your donation of '{_item_name(donation)}' was approved by the platform.",
            donation.pk,
        )]
        organization = donation.organization
        if organization is not None and organization.user is not None:
            notices.append(Notice(
                organization.user,
                Notification.DONATION_MATCHED,
                'New donation matched',
                f"A donation of '{_item_name(donation)}' is waiting for your confirmation.",
                donation.pk,
            ))
        self._dispatch(notices)
        return donation

    def admin_reject(self, actor, donation_id, reason=None):
        """
        Reject the donation request. The record is kept with its reason.
        """
        with transaction.atomic():
            donation = self._load(donation_id)
            self._apply(donation, actor, matching.REJECT, reason=reason)

        self._dispatch([Notice(
            donation.donor,
            Notification.DONATION_REJECTED,
            'Donation rejected',
            f"Your donation request was rejected. Reason: {donation.cancel_reason}",
            donation.pk,
        )])
        return donation

    # ------------------------------------------------------------------
    # Organization operations
    # ------------------------------------------------------------------

    def organization_approve(self, actor, donation_id):
        """
        Final acceptance by the assigned organization.

        Completes the donation and bootstraps its delivery record.
        """
        with transaction.atomic():
            donation = self._load(donation_id)
            self._apply(donation, actor, matching.APPROVE)
            self._bootstrap_delivery(donation, donation.organization)

        organization = donation.organization
        notices = [Notice(
            donation.donor,
            Notification.DONATION_APPROVED,
            'Donation accepted',
            f"{organization.name} accepted your donation of '{_item_name(donation)}'.",
            donation.pk,
        )]
        if organization.user is not None:
            notices.append(Notice(
                organization.user,
                Notification.DONATION_APPROVED,
                'Donation confirmed',
                f"You accepted donation {donation.reference_code}. A delivery has been scheduled.",
                donation.pk,
            ))
        self._dispatch(notices)
        return donation

    def organization_reject(self, actor, donation_id, reason=None):
        """Refuse the donation. It is cancelled and the organization cleared."""
        with transaction.atomic():
            donation = self._load(donation_id)
            organization = donation.organization
            self._apply(donation, actor, matching.REJECT, reason=reason)

        self._dispatch([Notice(
            donation.donor,
            Notification.DONATION_REJECTED,
            'Donation declined',
            f"{organization.name} declined your donation. Reason: {donation.cancel_reason}",
            donation.pk,
        )])
        return donation

    # ------------------------------------------------------------------
    # Donor operations
    # ------------------------------------------------------------------

    def cancel(self, actor, donation_id, reason=None):
        """Withdraw a donation that is still awaiting approval or a match."""
        with transaction.atomic():
            donation = self._load(donation_id)
            self._apply(donation, actor, matching.CANCEL, reason=reason)

        notices = [Notice(
            donation.donor,
            Notification.DONATION_CANCELLED,
            'Donation cancelled',
            f"Your donation {donation.reference_code} was cancelled.",
            donation.pk,
        )]
        organization = donation.organization
        if organization is not None and organization.user is not None:
            notices.append(Notice(
                organization.user,
                Notification.DONATION_CANCELLED,
                'Donation withdrawn',
                f"The donor withdrew donation {donation.reference_code}.",
                donation.pk,
            ))
        self._dispatch(notices)
        return donation

    def project_status(self, donation):
        """Read-only display label and explanation."""
        return project_status(donation)

    # ------------------------------------------------------------------
    # Logistics
    # ------------------------------------------------------------------

    def update_delivery_status(self, actor, delivery_id, new_status, carrier=None,
                               tracking_number=None):
        """
        Move a delivery forward (pending -> shipped -> delivered).

        Args:
            actor: Admin actor
            delivery_id: Delivery primary key
            new_status: Target delivery status
            carrier: Optional carrier name to record
            tracking_number: Optional tracking number to record

        Returns:
            Delivery: The updated delivery

        Raises:
            ValidationError: If ``new_status`` is not a delivery status
            StateConflict: NOT_AUTHORIZED for non-admins, NOT_PENDING for an
                out-of-order transition
            NotFound: If the delivery does not exist
        """
        if actor.role != Actor.ADMIN:
            logger.warning(
                f"Delivery update refused. Delivery ID: {delivery_id}, Actor: {_describe(actor)}"
            )
            raise StateConflict(NOT_AUTHORIZED)

        if new_status not in dict(Delivery.STATUS_CHOICES):
            raise ValidationError({'status': f'Invalid delivery status: {new_status}.'})

        with transaction.atomic():
            try:
                delivery = Delivery.objects.select_for_update().select_related(
                    'donation', 'donation__donor'
                ).get(pk=delivery_id)
            except Delivery.DoesNotExist:
                logger.warning(f"Delivery update for non-existent delivery. Delivery ID: {delivery_id}")
                raise NotFound('Delivery', delivery_id)

            is_valid, message = delivery.can_transition_to(new_status)
            if not is_valid:
                logger.warning(
                    f"Delivery transition refused. "
                    f"Delivery ID: {delivery_id}, "
                    f"Old Status: {delivery.status}, "
                    f"New Status: {new_status}"
                )
                raise StateConflict(NOT_PENDING, message)

            old_status = delivery.status
            delivery.status = new_status
            update_fields = ['status', 'updated_at']
            if new_status == Delivery.SHIPPED:
                delivery.shipped_at = timezone.now()
                update_fields.append('shipped_at')
            elif new_status == Delivery.DELIVERED:
                delivery.delivered_at = timezone.now()
                update_fields.append('delivered_at')
            if carrier is not None:
                delivery.carrier = carrier
                update_fields.append('carrier')
            if tracking_number is not None:
                delivery.tracking_number = tracking_number
                update_fields.append('tracking_number')
            delivery.save(update_fields=update_fields)

        logger.info(
            f"Delivery status updated. "
            f"Delivery ID: {delivery.pk}, "
            f"Donation ID: {delivery.donation_id}, "
            f"Old Status: {old_status}, "
            f"New Status: {new_status}, "
            f"Actor: {_describe(actor)}"
        )

        self._dispatch([Notice(
            delivery.donation.donor,
            Notification.DELIVERY_UPDATED,
            'Delivery update',
            f"Your donation {delivery.donation.reference_code} is now {delivery.get_status_display().lower()}.",
            delivery.pk,
            'delivery',
        )])
        return delivery

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, donation_id):
        """Load and lock a donation. Must be called inside a transaction."""
        try:
            return Donation.objects.locked().get(pk=donation_id)
        except Donation.DoesNotExist:
            logger.warning(f"Transition attempted on non-existent donation. Donation ID: {donation_id}")
            raise NotFound('Donation', donation_id)

    def _apply(self, donation, actor, action, organization=None, reason=None):
        old_status = donation.status
        old_decision = donation.admin_decision
        try:
            changed = matching.apply_transition(
                donation, actor, action, organization=organization, reason=reason
            )
        except StateConflict as exc:
            logger.warning(
                f"Donation transition refused. "
                f"Donation ID: {donation.pk}, "
                f"Action: {action}, "
                f"Actor: {_describe(actor)}, "
                f"Code: {exc.code}"
            )
            raise

        donation.save(update_fields=changed + ['updated_at'])

        logger.info(
            f"Donation transition applied. "
            f"Donation ID: {donation.pk}, "
            f"Action: {action}, "
            f"Actor: {_describe(actor)}, "
            f"Old Status: {old_status}, "
            f"New Status: {donation.status}, "
            f"Old Decision: {old_decision}, "
            f"New Decision: {donation.admin_decision}, "
            f"Organization ID: {donation.organization_id}"
        )

    def _bootstrap_delivery(self, donation, organization):
        try:
            with transaction.atomic():
                self._create_or_reset_delivery(donation, organization)
        except AdvisoryFailure as exc:
            logger.warning(f"Delivery bootstrap skipped. Donation ID: {donation.pk}, Error: {exc}")

    def _create_or_reset_delivery(self, donation, organization):
        unspecified = donation_settings('UNSPECIFIED')
        unspecified_phone = donation_settings('UNSPECIFIED_PHONE')
        try:
            delivery = delivery_of(donation)
            if delivery is not None:
                delivery.status = Delivery.PENDING
                delivery.shipped_at = None
                delivery.delivered_at = None
                delivery.save(update_fields=['status', 'shipped_at', 'delivered_at', 'updated_at'])
                logger.info(f"Delivery reset to pending. Delivery ID: {delivery.pk}, Donation ID: {donation.pk}")
                return delivery

            donor = donation.donor
            delivery = Delivery.objects.create(
                donation=donation,
                sender_name=donor.name or unspecified,
                sender_phone=donor.phone_number or unspecified_phone,
                sender_address=donor.address or unspecified,
                receiver_name=organization.name or unspecified,
                receiver_phone=organization.phone_number or unspecified_phone,
                receiver_address=organization.address or unspecified,
            )
        except DatabaseError as exc:
            raise AdvisoryFailure(f'Could not create delivery: {exc}') from exc

        logger.info(f"Delivery created. Delivery ID: {delivery.pk}, Donation ID: {donation.pk}")
        return delivery

    def _dispatch(self, notices):
        for notice in notices:
            try:
                self._notify(notice)
            except AdvisoryFailure as exc:
                logger.warning(
                    f"Notification not delivered. "
                    f"Recipient ID: {notice.recipient.pk}, "
                    f"Kind: {notice.kind}, "
                    f"Reference: {notice.reference_type}:{notice.reference_id}, "
                    f"Error: {exc}"
                )

    def _notify(self, notice):
        try:
            self.notifier.notify(
                notice.recipient,
                notice.kind,
                notice.title,
                notice.body,
                notice.reference_id,
                notice.reference_type,
            )
        except Exception as exc:
            raise AdvisoryFailure(str(exc)) from exc
