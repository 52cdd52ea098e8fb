"""
Serializers for the ReWear donation API.

Input serializers validate request shape only. State rules live in the
matching engine, so nothing here looks at a donation's current status.
Output serializers render models and the projection view models.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .matching import available_actions
from .models import Delivery, Donation, DonationItem, Organization
from .projection import delivery_of, project_status
from .validators import validate_item_image

MAX_IMAGES = 10


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Obtain a JWT pair with email and password instead of username.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()


# ============================================================================
# Input serializers
# ============================================================================

class DonationCreateSerializer(serializers.Serializer):
    """
    Serializer for registering a donation.

    Fields:
    - gender_type, main_category, size: Required item choices
    - detail_category: Optional, max 50 characters
    - description: Optional, max 500 characters
    - match_type: 'direct' or 'indirect'
    - organization_id: Required by the workflow for a direct match
    - delivery_method: 'courier' (default) or 'drop_off'
    - is_anonymous: Hide the donor's name from the organization
    - images: Optional list of up to 10 images (JPEG, PNG, WebP, max 5MB each)

    Whether a direct match is usable (organization exists and is approved) is
    decided by the workflow, not here.
    """

    gender_type = serializers.ChoiceField(choices=DonationItem.GENDER_CHOICES)
    main_category = serializers.ChoiceField(choices=DonationItem.CATEGORY_CHOICES)
    detail_category = serializers.CharField(
        max_length=50, required=False, allow_blank=True, default=''
    )
    size = serializers.ChoiceField(choices=DonationItem.SIZE_CHOICES)
    description = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default=''
    )
    match_type = serializers.ChoiceField(choices=Donation.MATCH_TYPE_CHOICES)
    organization_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    delivery_method = serializers.ChoiceField(
        choices=Donation.DELIVERY_METHOD_CHOICES, default=Donation.COURIER
    )
    is_anonymous = serializers.BooleanField(required=False, default=False)
    images = serializers.ListField(
        child=serializers.ImageField(),
        required=False,
        default=list,
        max_length=MAX_IMAGES,
        help_text='Up to 10 image files (JPEG, PNG, WebP, max 5MB each)'
    )

    def validate_detail_category(self, value):
        return value.strip()

    def validate_description(self, value):
        return value.strip()

    def validate_images(self, value):
        """
        Run each image through the item image validator.

        Raises:
            ValidationError: With one message per rejected image
        """
        errors = []
        for index, image in enumerate(value):
            try:
                validate_item_image(image)
            except DjangoValidationError as exc:
                errors.extend(f'Image {index + 1}: {message}' for message in exc.messages)
        if errors:
            raise serializers.ValidationError(errors)
        return value

    def item_spec(self):
        data = self.validated_data
        return {
            'gender_type': data['gender_type'],
            'main_category': data['main_category'],
            'detail_category': data.get('detail_category', ''),
            'size': data['size'],
            'description': data.get('description', ''),
        }


class ReasonSerializer(serializers.Serializer):
    """Optional free-text reason for rejections and cancellations."""

    reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, allow_null=True
    )

    def validate_reason(self, value):
        if value is None:
            return None
        return value.strip() or None


class AssignOrganizationSerializer(serializers.Serializer):
    organization_id = serializers.IntegerField(min_value=1)


class DeliveryStatusUpdateSerializer(serializers.Serializer):
    """
    Serializer for admin delivery progress updates.

    Only the shape is checked; the pending -> shipped -> delivered order is
    enforced by the workflow.
    """

    status = serializers.ChoiceField(choices=Delivery.STATUS_CHOICES)
    carrier = serializers.CharField(max_length=50, required=False, allow_blank=True)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)


# ============================================================================
# Output serializers
# ============================================================================

class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ['id', 'name', 'phone_number', 'address', 'status']
        read_only_fields = fields


class DonationItemSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)
    cover_image_url = serializers.CharField(read_only=True, allow_null=True)

    class Meta:
        model = DonationItem
        fields = [
            'gender_type',
            'main_category',
            'detail_category',
            'display_name',
            'size',
            'description',
            'image_urls',
            'cover_image_url',
        ]
        read_only_fields = fields


class DeliverySerializer(serializers.ModelSerializer):
    class Meta:
        model = Delivery
        fields = [
            'id',
            'sender_name',
            'sender_phone',
            'sender_address',
            'receiver_name',
            'receiver_phone',
            'receiver_address',
            'carrier',
            'tracking_number',
            'status',
            'shipped_at',
            'delivered_at',
            'updated_at',
        ]
        read_only_fields = fields


class DonationSerializer(serializers.ModelSerializer):
    """
    Full donation representation.

    ``display_status`` is the projected label and explanation. When the view
    passes an ``actor`` in the context, ``available_actions`` lists the
    transitions that actor could request right now.
    """

    reference_code = serializers.CharField(read_only=True)
    organization = OrganizationSerializer(read_only=True)
    item = DonationItemSerializer(read_only=True)
    delivery = serializers.SerializerMethodField()
    display_status = serializers.SerializerMethodField()
    available_actions = serializers.SerializerMethodField()

    class Meta:
        model = Donation
        fields = [
            'id',
            'reference_code',
            'donor',
            'organization',
            'match_type',
            'delivery_method',
            'status',
            'admin_decision',
            'cancel_reason',
            'is_anonymous',
            'item',
            'delivery',
            'display_status',
            'available_actions',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_delivery(self, obj):
        delivery = delivery_of(obj)
        if delivery is None:
            return None
        return DeliverySerializer(delivery).data

    def get_display_status(self, obj):
        projection = project_status(obj)
        return {'label': projection.label, 'explanation': projection.explanation}

    def get_available_actions(self, obj):
        actor = self.context.get('actor')
        if actor is None:
            return []
        return available_actions(obj, actor)


class ApprovalItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    category = serializers.CharField(allow_null=True)
    registered_at = serializers.CharField()
    status = serializers.CharField()
    matching_info = serializers.CharField()
    matched_organization = serializers.CharField(allow_null=True)
    reference_code = serializers.CharField()


class CompletedDonationSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    date = serializers.CharField()
    items = serializers.CharField()
    organization = serializers.CharField(allow_null=True)
    status = serializers.CharField()


class StatusOverviewSerializer(serializers.Serializer):
    """Donor status page: active items, history and per-label counts."""

    approval_items = ApprovalItemSerializer(many=True)
    completed_donations = CompletedDonationSerializer(many=True)
    status_counts = serializers.DictField(child=serializers.IntegerField())


class DonationSummarySerializer(serializers.Serializer):
    """Listing row for admin queues and organization inboxes."""

    id = serializers.IntegerField()
    reference_code = serializers.CharField()
    donor_name = serializers.CharField()
    item_name = serializers.CharField()
    item_description = serializers.CharField(allow_blank=True)
    images = serializers.ListField(child=serializers.CharField())
    match_type = serializers.CharField()
    organization_id = serializers.IntegerField(allow_null=True)
    organization_name = serializers.CharField(allow_null=True)
    status = serializers.CharField()
    matching_info = serializers.CharField()
    registered_at = serializers.CharField()
