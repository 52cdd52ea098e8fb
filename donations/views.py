"""
API views for the ReWear donation platform.

Views are thin: they validate request shape, resolve the acting user into an
``Actor`` and call the workflow service. Workflow errors are mapped to HTTP
responses in one place, ``workflow_error_response``.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from .exceptions import NOT_AUTHORIZED, NotFound, StateConflict
from .matching import Actor
from .models import Donation, Organization
from .permissions import CanViewDonation, IsDonor, IsOrganizationMember, IsPlatformAdmin
from .projection import build_donation_summary, build_status_overview
from .serializers import (
    AssignOrganizationSerializer,
    DeliverySerializer,
    DeliveryStatusUpdateSerializer,
    DonationCreateSerializer,
    DonationSerializer,
    DonationSummarySerializer,
    EmailTokenObtainPairSerializer,
    OrganizationSerializer,
    ReasonSerializer,
    StatusOverviewSerializer,
)
from .services import DonationWorkflow

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def workflow_error_response(exc):
    """
    Map a workflow error to an HTTP response.

    - Django ValidationError -> 400
    - NotFound -> 404
    - StateConflict NOT_AUTHORIZED -> 403
    - Any other StateConflict -> 409

    Bodies carry ``detail`` and ``code``.
    """
    if isinstance(exc, NotFound):
        return Response(
            {'detail': exc.message, 'code': 'not_found'},
            status=status.HTTP_404_NOT_FOUND
        )

    if isinstance(exc, StateConflict):
        http_status = (
            status.HTTP_403_FORBIDDEN if exc.code == NOT_AUTHORIZED
            else status.HTTP_409_CONFLICT
        )
        return Response({'detail': exc.message, 'code': exc.code}, status=http_status)

    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
        return Response(
            {'detail': detail, 'code': 'invalid'},
            status=status.HTTP_400_BAD_REQUEST
        )

    raise exc


class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Obtain a JWT pair with email and password.

    POST /api/token/
    Request body: {"email": "...", "password": "..."}
    """
    serializer_class = EmailTokenObtainPairSerializer


# ============================================================================
# Donor endpoints
# ============================================================================

class DonationCreateView(APIView):
    """
    API endpoint for registering a donation.

    POST /api/donations/
    Headers: Authorization: Bearer <access_token>
    Content-Type: multipart/form-data (with images) or application/json

    Request fields:
    - gender_type, main_category, size (required)
    - detail_category, description (optional)
    - match_type: "direct" or "indirect"
    - organization_id: required for a direct match
    - delivery_method: "courier" or "drop_off"
    - is_anonymous: boolean
    - images: up to 10 image files

    Success response (201): the created donation
    Error responses:
    - 400: Invalid input
    - 403: Not a donor account
    - 404: Chosen organization does not exist
    - 409: Direct match with a missing or unapproved organization
    """
    permission_classes = [IsAuthenticated, IsDonor]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request, *args, **kwargs):
        serializer = DonationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            donation = DonationWorkflow().create_donation(
                request.user,
                serializer.item_spec(),
                data['match_type'],
                organization_id=data.get('organization_id'),
                delivery_method=data['delivery_method'],
                is_anonymous=data['is_anonymous'],
                images=data.get('images') or [],
            )
        except (StateConflict, NotFound, DjangoValidationError) as exc:
            return workflow_error_response(exc)
        except Exception as e:
            logger.error(
                f"Unexpected error during donation creation. "
                f"User: {request.user.email} (ID: {request.user.id}), "
                f"Error: {str(e)}",
                exc_info=True
            )
            return Response(
                {'detail': 'An unexpected error occurred. Please try again later.'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        donation = Donation.objects.with_details().get(pk=donation.pk)
        response_serializer = DonationSerializer(
            donation, context={'actor': Actor.for_user(request.user)}
        )
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class DonationStatusView(APIView):
    """
    Donor status page.

    GET /api/donations/status/

    Success response (200):
    {
        "approval_items": [...],
        "completed_donations": [...],
        "status_counts": {"awaiting-approval": 1, ...}
    }
    """
    permission_classes = [IsAuthenticated, IsDonor]

    def get(self, request, *args, **kwargs):
        donations = Donation.objects.for_donor(request.user).with_details()
        overview = build_status_overview(donations)
        return Response(StatusOverviewSerializer(overview).data, status=status.HTTP_200_OK)


class DonationDetailView(APIView):
    """
    Donation detail with its projected status.

    GET /api/donations/<id>/

    Visible to the donor, platform admins and the assigned organization.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        donation_id = kwargs.get('pk')
        try:
            donation = Donation.objects.with_details().get(pk=donation_id)
        except Donation.DoesNotExist:
            return workflow_error_response(NotFound('Donation', donation_id))

        permission = CanViewDonation()
        if not permission.has_object_permission(request, self, donation):
            logger.warning(
                f"Unauthorized donation detail access. "
                f"Donation ID: {donation_id}, "
                f"User: {request.user.email} (ID: {request.user.id}), "
                f"IP: {get_client_ip(request)}"
            )
            return Response(
                {'detail': permission.message, 'code': NOT_AUTHORIZED},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = DonationSerializer(donation, context={'actor': Actor.for_user(request.user)})
        return Response(serializer.data, status=status.HTTP_200_OK)


class DonationTransitionView(APIView):
    """
    Base view for POST endpoints that move a donation through its lifecycle.

    Subclasses set ``input_serializer_class`` (optional) and implement
    ``perform_transition``. The response is the updated donation.
    """
    input_serializer_class = None

    def perform_transition(self, workflow, actor, donation_id, data):
        raise NotImplementedError

    def post(self, request, *args, **kwargs):
        donation_id = kwargs.get('pk')
        data = {}
        if self.input_serializer_class is not None:
            serializer = self.input_serializer_class(data=request.data)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            data = serializer.validated_data

        actor = Actor.for_user(request.user)
        try:
            donation = self.perform_transition(DonationWorkflow(), actor, donation_id, data)
        except (StateConflict, NotFound, DjangoValidationError) as exc:
            if isinstance(exc, StateConflict) and exc.code == NOT_AUTHORIZED:
                logger.warning(
                    f"Unauthorized donation transition attempt. "
                    f"Donation ID: {donation_id}, "
                    f"View: {self.__class__.__name__}, "
                    f"User: {request.user.email} (ID: {request.user.id}), "
                    f"IP: {get_client_ip(request)}"
                )
            return workflow_error_response(exc)

        donation = Donation.objects.with_details().get(pk=donation.pk)
        response_serializer = DonationSerializer(donation, context={'actor': actor})
        return Response(response_serializer.data, status=status.HTTP_200_OK)


class DonationCancelView(DonationTransitionView):
    """POST /api/donations/<id>/cancel/  body: {"reason": "..."} (optional)"""
    permission_classes = [IsAuthenticated, IsDonor]
    input_serializer_class = ReasonSerializer

    def perform_transition(self, workflow, actor, donation_id, data):
        return workflow.cancel(actor, donation_id, reason=data.get('reason'))


# ============================================================================
# Admin endpoints
# ============================================================================

class DonationSummaryListView(ListAPIView):
    """
    Paginated listing of donation summary rows.

    Subclasses provide ``get_queryset``; rows are built by the projection
    view-model builder.
    """
    serializer_class = DonationSummarySerializer
    hide_anonymous = False

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        donations = page if page is not None else queryset
        summaries = [
            build_donation_summary(donation, hide_anonymous=self.hide_anonymous)
            for donation in donations
        ]
        serializer = self.get_serializer(summaries, many=True)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)


class AdminPendingDonationListView(DonationSummaryListView):
    """GET /api/admin/donations/pending/  Donations awaiting the admin decision."""
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def get_queryset(self):
        return Donation.objects.awaiting_admin_decision().with_details()


class AdminAwaitingAssignmentListView(DonationSummaryListView):
    """GET /api/admin/donations/awaiting-assignment/  Indirect donations with no organization."""
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def get_queryset(self):
        return Donation.objects.awaiting_assignment().with_details()


class AdminAssignOrganizationView(DonationTransitionView):
    """POST /api/admin/donations/<id>/assign/  body: {"organization_id": 3}"""
    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    input_serializer_class = AssignOrganizationSerializer

    def perform_transition(self, workflow, actor, donation_id, data):
        return workflow.assign_organization(actor, donation_id, data['organization_id'])


class AdminApproveDonationView(DonationTransitionView):
    """POST /api/admin/donations/<id>/approve/"""
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def perform_transition(self, workflow, actor, donation_id, data):
        return workflow.admin_approve(actor, donation_id)


class AdminRejectDonationView(DonationTransitionView):
    """POST /api/admin/donations/<id>/reject/  body: {"reason": "..."} (optional)"""
    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    input_serializer_class = ReasonSerializer

    def perform_transition(self, workflow, actor, donation_id, data):
        return workflow.admin_reject(actor, donation_id, reason=data.get('reason'))


class AdminDeliveryStatusView(APIView):
    """
    API endpoint for progressing a delivery.

    PUT /api/admin/deliveries/<id>/
    Request body: {"status": "shipped", "carrier": "...", "tracking_number": "..."}

    Error responses:
    - 400: Unknown status value
    - 403: Not an administrator
    - 404: Delivery not found
    - 409: Out-of-order transition (e.g. pending -> delivered)
    """
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def put(self, request, *args, **kwargs):
        serializer = DeliveryStatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            delivery = DonationWorkflow().update_delivery_status(
                Actor.for_user(request.user),
                kwargs.get('pk'),
                data['status'],
                carrier=data.get('carrier'),
                tracking_number=data.get('tracking_number'),
            )
        except (StateConflict, NotFound, DjangoValidationError) as exc:
            return workflow_error_response(exc)

        return Response(DeliverySerializer(delivery).data, status=status.HTTP_200_OK)


# ============================================================================
# Organization endpoints
# ============================================================================

class ApprovedOrganizationListView(ListAPIView):
    """GET /api/organizations/approved/  Organizations a donor can pick for a direct match."""
    serializer_class = OrganizationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Organization.objects.filter(status=Organization.APPROVED)


class OrganizationDonationListView(DonationSummaryListView):
    """
    Donations for the requesting organization.

    GET /api/organization/donations/?scope=matched|received

    - matched (default): admin-approved donations awaiting this organization's decision
    - received: donations this organization has accepted
    """
    permission_classes = [IsAuthenticated, IsOrganizationMember]
    hide_anonymous = True

    def get_queryset(self):
        organization = self.request.user.organization
        if self.request.query_params.get('scope') == 'received':
            return Donation.objects.received_by(organization).with_details()
        return Donation.objects.matched_to(organization).with_details()


class OrganizationApproveDonationView(DonationTransitionView):
    """POST /api/organization/donations/<id>/approve/  Final acceptance; creates the delivery."""
    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def perform_transition(self, workflow, actor, donation_id, data):
        return workflow.organization_approve(actor, donation_id)


class OrganizationRejectDonationView(DonationTransitionView):
    """POST /api/organization/donations/<id>/reject/  body: {"reason": "..."} (optional)"""
    permission_classes = [IsAuthenticated, IsOrganizationMember]
    input_serializer_class = ReasonSerializer

    def perform_transition(self, workflow, actor, donation_id, data):
        return workflow.organization_reject(actor, donation_id, reason=data.get('reason'))
