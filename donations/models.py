"""
Entity store for the clothing donation platform.

Donation is the aggregate root. It owns exactly one DonationItem and, once the
receiving organization gives final approval, exactly one Delivery.
"""

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .validators import validate_phone_number


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - name: Display name used on delivery snapshots
    - phone_number: Optional phone number with validation
    - address: Optional postal address used as delivery sender address
    - user_type: Either 'donor' or 'organization'
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp

    Platform administrators are regular users with ``is_staff=True``.
    """

    DONOR = 'donor'
    ORGANIZATION = 'organization'

    USER_TYPE_CHOICES = [
        (DONOR, 'Donor'),
        (ORGANIZATION, 'Organization'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    name = models.CharField(
        _('name'),
        max_length=100,
        blank=True,
        default='',
        help_text=_('Full name shown to organizations and couriers.')
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in international format.')
    )

    address = models.CharField(
        _('address'),
        max_length=300,
        blank=True,
        default='',
        help_text=_('Postal address used when shipping donations.')
    )

    user_type = models.CharField(
        _('user type'),
        max_length=20,
        choices=USER_TYPE_CHOICES,
        default=DONOR,
        help_text=_('Whether the account donates clothing or represents an organization.')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
            models.Index(fields=['user_type'], name='user_type_idx'),
        ]

    def __str__(self):
        return self.email or self.username

    def is_donor(self):
        return self.user_type == self.DONOR

    def is_organization_user(self):
        return self.user_type == self.ORGANIZATION

    def is_platform_admin(self):
        return self.is_staff

    def save(self, *args, **kwargs):
        # Case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Organization(models.Model):
    """
    Benefiting organization that receives donations.

    Only organizations with status 'approved' are eligible match targets.
    """

    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
    ]

    user = models.OneToOneField(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='organization',
        help_text=_('Account that acts on behalf of the organization')
    )

    name = models.CharField(_('name'), max_length=200)

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number]
    )

    address = models.CharField(_('address'), max_length=300, blank=True, default='')

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING,
        help_text=_('Platform review status of the organization')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('organization')
        verbose_name_plural = _('organizations')
        ordering = ['name']
        indexes = [
            models.Index(fields=['status'], name='organization_status_idx'),
        ]

    def __str__(self):
        return self.name

    def is_approved(self):
        return self.status == self.APPROVED

    def clean(self):
        super().clean()
        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Organization name cannot be empty.')
            })


class DonationQuerySet(models.QuerySet):
    """Named queries for the listing views."""

    def with_details(self):
        return self.select_related(
            'donor', 'organization', 'organization__user', 'item', 'delivery'
        )

    def locked(self):
        """
        Row-locking load used by the workflow.

        Only the donation row is locked. Every relation, the donor included,
        is prefetched in a separate query so FOR UPDATE never reaches a
        joined row.
        """
        return self.select_for_update().prefetch_related(
            'donor', 'organization__user', 'item', 'delivery'
        )

    def active(self):
        return self.exclude(status__in=Donation.TERMINAL_STATUSES)

    def for_donor(self, user):
        return self.filter(donor=user)

    def awaiting_admin_decision(self):
        return self.filter(
            status=Donation.PENDING,
            admin_decision=Donation.DECISION_PENDING,
        )

    def awaiting_assignment(self):
        return self.active().filter(
            match_type=Donation.INDIRECT,
            organization__isnull=True,
            admin_decision=Donation.DECISION_PENDING,
        )

    def matched_to(self, organization):
        return self.filter(organization=organization, status=Donation.IN_PROGRESS)

    def received_by(self, organization):
        return self.filter(organization=organization, status=Donation.COMPLETED)


class Donation(models.Model):
    """
    A donor's offer of one clothing item.

    ``status`` tracks the lifecycle, ``admin_decision`` the platform approval
    gate. The two move independently: an admin rejection leaves ``status``
    untouched and the record is kept, never deleted.

    Fields:
    - donor: Owning user, immutable
    - organization: Receiving organization; null until assigned for indirect matches
    - match_type: 'direct' (donor chose) or 'indirect' (admin assigns), immutable
    - delivery_method: How the item leaves the donor
    - status: pending, in_progress, completed, cancelled
    - admin_decision: pending, approved, rejected
    - cancel_reason: Set on rejection or cancellation
    - is_anonymous: Hide the donor's name from the organization
    """

    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (IN_PROGRESS, 'In progress'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    TERMINAL_STATUSES = (COMPLETED, CANCELLED)

    DECISION_PENDING = 'pending'
    DECISION_APPROVED = 'approved'
    DECISION_REJECTED = 'rejected'

    ADMIN_DECISION_CHOICES = [
        (DECISION_PENDING, 'Pending'),
        (DECISION_APPROVED, 'Approved'),
        (DECISION_REJECTED, 'Rejected'),
    ]

    DIRECT = 'direct'
    INDIRECT = 'indirect'

    MATCH_TYPE_CHOICES = [
        (DIRECT, 'Direct match'),
        (INDIRECT, 'Indirect match'),
    ]

    COURIER = 'courier'
    DROP_OFF = 'drop_off'

    DELIVERY_METHOD_CHOICES = [
        (COURIER, 'Courier pickup'),
        (DROP_OFF, 'Drop-off'),
    ]

    donor = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='donations',
        help_text=_('User offering the donation')
    )

    organization = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='donations',
        help_text=_('Organization receiving the donation')
    )

    match_type = models.CharField(
        _('match type'),
        max_length=20,
        choices=MATCH_TYPE_CHOICES,
        help_text=_('Whether the donor chose the organization')
    )

    delivery_method = models.CharField(
        _('delivery method'),
        max_length=20,
        choices=DELIVERY_METHOD_CHOICES,
        default=COURIER
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING
    )

    admin_decision = models.CharField(
        _('admin decision'),
        max_length=20,
        choices=ADMIN_DECISION_CHOICES,
        default=DECISION_PENDING
    )

    cancel_reason = models.TextField(_('cancel reason'), blank=True, default='')

    is_anonymous = models.BooleanField(_('anonymous'), default=False)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = DonationQuerySet.as_manager()

    class Meta:
        verbose_name = _('donation')
        verbose_name_plural = _('donations')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='donation_status_idx'),
            models.Index(fields=['admin_decision'], name='donation_decision_idx'),
            models.Index(fields=['match_type'], name='donation_match_type_idx'),
        ]

    def __str__(self):
        return f"Donation {self.reference_code} by {self.donor_id}"

    @property
    def reference_code(self):
        return f"DN-{self.pk:06d}" if self.pk else 'DN-NEW'

    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def clean(self):
        """
        Validate creation shape and immutable fields.

        Ensures:
        - A direct match names an organization when it is created
        - match_type and donor never change after creation

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.pk is None:
            if self.match_type == self.DIRECT and not self.organization_id:
                raise ValidationError({
                    'organization': _('A direct match requires an organization.')
                })
            return

        original = Donation.objects.filter(pk=self.pk).values('match_type', 'donor_id').first()
        if original is None:
            return
        if original['match_type'] != self.match_type:
            raise ValidationError({
                'match_type': _('Match type cannot be changed after creation.')
            })
        if original['donor_id'] != self.donor_id:
            raise ValidationError({
                'donor': _('Donor cannot be changed after creation.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class DonationItem(models.Model):
    """
    The clothing item offered by a donation.

    Created together with its Donation and deleted with it.
    """

    GENDER_CHOICES = [
        ('men', 'Men'),
        ('women', 'Women'),
        ('unisex', 'Unisex'),
        ('kids', 'Kids'),
    ]

    CATEGORY_CHOICES = [
        ('top', 'Top'),
        ('bottom', 'Bottom'),
        ('outerwear', 'Outerwear'),
        ('dress', 'Dress'),
        ('shoes', 'Shoes'),
        ('accessory', 'Accessory'),
        ('other', 'Other'),
    ]

    SIZE_CHOICES = [
        ('xs', 'XS'),
        ('s', 'S'),
        ('m', 'M'),
        ('l', 'L'),
        ('xl', 'XL'),
        ('xxl', 'XXL'),
        ('free', 'Free size'),
    ]

    donation = models.OneToOneField(
        Donation,
        on_delete=models.CASCADE,
        related_name='item'
    )

    gender_type = models.CharField(_('gender'), max_length=10, choices=GENDER_CHOICES)

    main_category = models.CharField(_('category'), max_length=20, choices=CATEGORY_CHOICES)

    detail_category = models.CharField(
        _('detail category'),
        max_length=50,
        blank=True,
        default=''
    )

    size = models.CharField(_('size'), max_length=10, choices=SIZE_CHOICES)

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(500)]
    )

    image_urls = models.JSONField(
        _('image URLs'),
        default=list,
        blank=True,
        help_text=_('Storage URLs of the item photos, first one is the cover')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('donation item')
        verbose_name_plural = _('donation items')

    def __str__(self):
        return self.display_name()

    def display_name(self):
        if self.detail_category and self.detail_category.strip():
            return self.detail_category.strip()
        return self.get_main_category_display()

    @property
    def cover_image_url(self):
        return self.image_urls[0] if self.image_urls else None

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Delivery(models.Model):
    """
    Shipment of a completed donation to its organization.

    Created once, when the organization gives final approval. Sender and
    receiver fields are snapshots taken at that moment.
    """

    PENDING = 'pending'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (SHIPPED, 'Shipped'),
        (DELIVERED, 'Delivered'),
    ]

    VALID_TRANSITIONS = {
        PENDING: [SHIPPED],
        SHIPPED: [DELIVERED],
        DELIVERED: [],  # Terminal state
    }

    donation = models.OneToOneField(
        Donation,
        on_delete=models.CASCADE,
        related_name='delivery'
    )

    sender_name = models.CharField(_('sender name'), max_length=100)
    sender_phone = models.CharField(_('sender phone'), max_length=20)
    sender_address = models.CharField(_('sender address'), max_length=300)

    receiver_name = models.CharField(_('receiver name'), max_length=200)
    receiver_phone = models.CharField(_('receiver phone'), max_length=20)
    receiver_address = models.CharField(_('receiver address'), max_length=300)

    carrier = models.CharField(_('carrier'), max_length=50, blank=True, default='')
    tracking_number = models.CharField(_('tracking number'), max_length=100, blank=True, default='')

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING
    )

    shipped_at = models.DateTimeField(_('shipped at'), null=True, blank=True)
    delivered_at = models.DateTimeField(_('delivered at'), null=True, blank=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('delivery')
        verbose_name_plural = _('deliveries')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='delivery_status_idx'),
        ]

    def __str__(self):
        return f"Delivery for donation {self.donation_id} ({self.status})"

    def is_in_transit(self):
        return self.status == self.SHIPPED

    def can_transition_to(self, new_status):
        """
        Check if the delivery may move to ``new_status``.

        Args:
            new_status: Target delivery status

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        if new_status not in dict(self.STATUS_CHOICES):
            return False, f'Invalid delivery status: {new_status}.'
        if new_status in self.VALID_TRANSITIONS.get(self.status, []):
            return True, None
        return False, f'Invalid delivery status transition from {self.status} to {new_status}.'


class Notification(models.Model):
    """Persisted notice shown in a user's notification inbox."""

    DONATION_APPROVED = 'donation_approved'
    DONATION_REJECTED = 'donation_rejected'
    DONATION_MATCHED = 'donation_matched'
    DONATION_CANCELLED = 'donation_cancelled'
    DELIVERY_UPDATED = 'delivery_updated'

    KIND_CHOICES = [
        (DONATION_APPROVED, 'Donation approved'),
        (DONATION_REJECTED, 'Donation rejected'),
        (DONATION_MATCHED, 'Donation matched'),
        (DONATION_CANCELLED, 'Donation cancelled'),
        (DELIVERY_UPDATED, 'Delivery updated'),
    ]

    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    kind = models.CharField(_('kind'), max_length=30, choices=KIND_CHOICES)
    title = models.CharField(_('title'), max_length=200)
    body = models.TextField(_('body'), blank=True, default='')

    reference_id = models.PositiveBigIntegerField(_('reference id'), null=True, blank=True)
    reference_type = models.CharField(_('reference type'), max_length=50, blank=True, default='')

    is_read = models.BooleanField(_('read'), default=False)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='notification_inbox_idx'),
        ]

    def __str__(self):
        return f"{self.kind} for {self.recipient_id}: {self.title}"
