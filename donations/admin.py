"""
Django admin configuration for the donation platform.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Delivery, Donation, DonationItem, Notification, Organization, User
from .projection import project_status


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the donor/organization fields.
    """

    list_display = [
        'email',
        'username',
        'name',
        'user_type',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'user_type',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'name',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'name',
                'email',
                'phone_number',
                'address',
            )
        }),
        (_('Account Type'), {
            'fields': ('user_type',)
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'user_type',
                'name',
            ),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    date_hierarchy = 'created_at'

    list_per_page = 25


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'user', 'phone_number', 'created_at']
    list_filter = ['status']
    search_fields = ['name', 'user__email']
    readonly_fields = ['created_at', 'updated_at']
    actions = ['mark_approved', 'mark_rejected']

    @admin.action(description=_('Approve selected organizations'))
    def mark_approved(self, request, queryset):
        updated = queryset.update(status=Organization.APPROVED)
        self.message_user(request, f'{updated} organization(s) approved.')

    @admin.action(description=_('Reject selected organizations'))
    def mark_rejected(self, request, queryset):
        updated = queryset.update(status=Organization.REJECTED)
        self.message_user(request, f'{updated} organization(s) rejected.')


class DonationItemInline(admin.StackedInline):
    model = DonationItem
    can_delete = False
    readonly_fields = ['created_at']


class DeliveryInline(admin.StackedInline):
    model = Delivery
    can_delete = False
    extra = 0
    readonly_fields = ['shipped_at', 'delivered_at', 'created_at', 'updated_at']


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    """
    Read-mostly view of donations.

    Lifecycle fields are read-only here: transitions go through the API so
    the matching rules and notifications apply.
    """

    list_display = [
        'reference_code',
        'donor',
        'organization',
        'match_type',
        'status',
        'admin_decision',
        'display_label',
        'created_at',
    ]
    list_filter = ['status', 'admin_decision', 'match_type', 'delivery_method']
    search_fields = ['donor__email', 'organization__name']
    list_select_related = ['donor', 'organization', 'delivery']
    readonly_fields = [
        'donor',
        'match_type',
        'status',
        'admin_decision',
        'cancel_reason',
        'created_at',
        'updated_at',
    ]
    inlines = [DonationItemInline, DeliveryInline]
    date_hierarchy = 'created_at'
    list_per_page = 25

    @admin.display(description=_('Display status'))
    def display_label(self, obj):
        return project_status(obj).label


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'kind', 'title', 'reference_type', 'reference_id', 'is_read', 'created_at']
    list_filter = ['kind', 'is_read']
    search_fields = ['recipient__email', 'title']
    readonly_fields = ['created_at']
