"""
URL configuration for the ReWear donation marketplace.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView, TokenVerifyView

from donations.views import (
    AdminApproveDonationView,
    AdminAssignOrganizationView,
    AdminAwaitingAssignmentListView,
    AdminDeliveryStatusView,
    AdminPendingDonationListView,
    AdminRejectDonationView,
    ApprovedOrganizationListView,
    DonationCancelView,
    DonationCreateView,
    DonationDetailView,
    DonationStatusView,
    EmailTokenObtainPairView,
    OrganizationApproveDonationView,
    OrganizationDonationListView,
    OrganizationRejectDonationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Donor endpoints
    path('api/donations/', DonationCreateView.as_view(), name='donation_create'),
    path('api/donations/status/', DonationStatusView.as_view(), name='donation_status'),
    path('api/donations/<int:pk>/', DonationDetailView.as_view(), name='donation_detail'),
    path('api/donations/<int:pk>/cancel/', DonationCancelView.as_view(), name='donation_cancel'),

    # Admin endpoints
    path('api/admin/donations/pending/', AdminPendingDonationListView.as_view(), name='admin_donation_pending'),
    path(
        'api/admin/donations/awaiting-assignment/',
        AdminAwaitingAssignmentListView.as_view(),
        name='admin_donation_awaiting_assignment'
    ),
    path('api/admin/donations/<int:pk>/assign/', AdminAssignOrganizationView.as_view(), name='admin_donation_assign'),
    path('api/admin/donations/<int:pk>/approve/', AdminApproveDonationView.as_view(), name='admin_donation_approve'),
    path('api/admin/donations/<int:pk>/reject/', AdminRejectDonationView.as_view(), name='admin_donation_reject'),
    path('api/admin/deliveries/<int:pk>/', AdminDeliveryStatusView.as_view(), name='admin_delivery_status'),

    # Organization endpoints
    path('api/organizations/approved/', ApprovedOrganizationListView.as_view(), name='organization_approved_list'),
    path('api/organization/donations/', OrganizationDonationListView.as_view(), name='organization_donation_list'),
    path(
        'api/organization/donations/<int:pk>/approve/',
        OrganizationApproveDonationView.as_view(),
        name='organization_donation_approve'
    ),
    path(
        'api/organization/donations/<int:pk>/reject/',
        OrganizationRejectDonationView.as_view(),
        name='organization_donation_reject'
    ),

    # JWT Authentication endpoints
    path('api/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
