"""
Status projection and view models.

Maps a donation's stored (status, admin_decision, match_type, organization,
cancel_reason) plus its delivery to one externally visible label and a
human-readable explanation. The explanation is display text only; nothing
reads it back.

The view-model builders below assemble flat structs for listing screens so
serializers never walk the entity graph themselves.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.core.exceptions import ObjectDoesNotExist
from django.utils import timezone

from .models import Delivery, Donation

AWAITING_APPROVAL = 'awaiting-approval'
AWAITING_MATCH = 'awaiting-match'
MATCHED = 'matched'
REJECTED = 'rejected'
AWAITING_SHIPMENT = 'awaiting-shipment'
CANCELLED = 'cancelled'
COMPLETED = 'completed'

LABELS = (
    AWAITING_APPROVAL,
    AWAITING_MATCH,
    MATCHED,
    REJECTED,
    AWAITING_SHIPMENT,
    CANCELLED,
    COMPLETED,
)

# Completed donations only show up in history views
ACTIVE_LABELS = tuple(label for label in LABELS if label != COMPLETED)


@dataclass(frozen=True)
class StatusProjection:
    label: str
    explanation: str


def delivery_of(donation):
    """Return the donation's delivery, or None when it has none yet."""
    try:
        return donation.delivery
    except ObjectDoesNotExist:
        return None


def resolve_label(donation):
    """
    Resolve the display label. First matching rule wins.

    Args:
        donation: Donation instance

    Returns:
        str: One of ``LABELS``
    """
    if donation.status == Donation.CANCELLED:
        return CANCELLED

    if donation.admin_decision == Donation.DECISION_REJECTED:
        return REJECTED

    delivery = delivery_of(donation)
    if delivery is not None and delivery.status == Delivery.SHIPPED:
        return AWAITING_SHIPMENT

    # Admin approved; an assigned organization has not yet accepted
    if donation.status == Donation.IN_PROGRESS:
        return AWAITING_MATCH

    if donation.status == Donation.PENDING or donation.admin_decision == Donation.DECISION_PENDING:
        return AWAITING_APPROVAL

    if donation.status == Donation.COMPLETED:
        return COMPLETED

    return AWAITING_APPROVAL


def explain(donation, label):
    """Build the explanation text for ``label``."""
    organization_name = donation.organization.name if donation.organization_id else None
    reason = (donation.cancel_reason or '').strip()

    if label == AWAITING_APPROVAL:
        return 'The platform administrator is reviewing your donation.'
    if label == AWAITING_MATCH:
        if organization_name:
            return f'Waiting for {organization_name} to confirm the donation.'
        return 'Waiting to be matched with an organization.'
    if label == MATCHED:
        if organization_name:
            return f'Connected with {organization_name}.'
        return 'Connected with an organization.'
    if label == REJECTED:
        if reason:
            return f'Reason for rejection: {reason}'
        return 'Please check the reason and apply again.'
    if label == AWAITING_SHIPMENT:
        return 'Your donation is on its way to the organization.'
    if label == CANCELLED:
        if reason:
            return f'Cancelled: {reason}'
        return 'The donation request was cancelled.'
    if label == COMPLETED:
        if organization_name:
            return f'{organization_name} accepted your donation.'
        return 'The donation has been completed.'
    return 'In progress.'


def project_status(donation):
    """
    Project a donation to its display label and explanation.

    Args:
        donation: Donation instance

    Returns:
        StatusProjection: Label and explanation
    """
    label = resolve_label(donation)
    return StatusProjection(label=label, explanation=explain(donation, label))


def format_date(value):
    """Format a datetime as YYYY-MM-DD, or '-' when missing."""
    if value is None:
        return '-'
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return value.date().isoformat()


def _item_of(donation):
    try:
        return donation.item
    except ObjectDoesNotExist:
        return None


def _item_name(item, fallback='Donated item'):
    return item.display_name() if item is not None else fallback


# ============================================================================
# View models
# ============================================================================

@dataclass(frozen=True)
class ApprovalItem:
    id: int
    name: str
    category: Optional[str]
    registered_at: str
    status: str
    matching_info: str
    matched_organization: Optional[str]
    reference_code: str


@dataclass(frozen=True)
class CompletedDonation:
    id: int
    date: str
    items: str
    organization: Optional[str]
    status: str


@dataclass(frozen=True)
class StatusOverview:
    approval_items: List[ApprovalItem] = field(default_factory=list)
    completed_donations: List[CompletedDonation] = field(default_factory=list)
    status_counts: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DonationSummary:
    """Admin and organization listing row."""

    id: int
    reference_code: str
    donor_name: str
    item_name: str
    item_description: str
    images: List[str]
    match_type: str
    organization_id: Optional[int]
    organization_name: Optional[str]
    status: str
    matching_info: str
    registered_at: str


def build_approval_item(donation, projection=None):
    projection = projection or project_status(donation)
    item = _item_of(donation)
    return ApprovalItem(
        id=donation.pk,
        name=_item_name(item),
        category=item.get_main_category_display() if item is not None else None,
        registered_at=format_date(donation.created_at),
        status=projection.label,
        matching_info=projection.explanation,
        matched_organization=donation.organization.name if donation.organization_id else None,
        reference_code=donation.reference_code,
    )


def build_completed_donation(donation, projection=None):
    projection = projection or project_status(donation)
    item = _item_of(donation)
    return CompletedDonation(
        id=donation.pk,
        date=format_date(donation.updated_at),
        items=_item_name(item),
        organization=donation.organization.name if donation.organization_id else None,
        status=projection.label,
    )


def build_status_overview(donations):
    """
    Build a donor's status page.

    Completed donations go to the history list; every other donation is an
    approval item and counts towards its label.

    Args:
        donations: Iterable of Donation instances (ideally ``with_details()``)

    Returns:
        StatusOverview: Approval items, history and per-label counts
    """
    approval_items = []
    completed_donations = []
    status_counts = {label: 0 for label in ACTIVE_LABELS}

    for donation in donations:
        projection = project_status(donation)
        if projection.label == COMPLETED:
            completed_donations.append(build_completed_donation(donation, projection))
            continue
        approval_items.append(build_approval_item(donation, projection))
        status_counts[projection.label] += 1

    return StatusOverview(
        approval_items=approval_items,
        completed_donations=completed_donations,
        status_counts=status_counts,
    )


def build_donation_summary(donation, hide_anonymous=False):
    """
    Build a listing row for admins or organizations.

    Args:
        donation: Donation instance
        hide_anonymous: Mask the donor's name when the donor asked for anonymity

    Returns:
        DonationSummary: Flat listing row
    """
    projection = project_status(donation)
    item = _item_of(donation)
    donor = donation.donor

    if hide_anonymous and donation.is_anonymous:
        donor_name = 'Anonymous'
    else:
        donor_name = donor.name or donor.username

    return DonationSummary(
        id=donation.pk,
        reference_code=donation.reference_code,
        donor_name=donor_name,
        item_name=_item_name(item),
        item_description=item.description if item is not None else '',
        images=list(item.image_urls) if item is not None else [],
        match_type=donation.get_match_type_display(),
        organization_id=donation.organization_id,
        organization_name=donation.organization.name if donation.organization_id else None,
        status=projection.label,
        matching_info=projection.explanation,
        registered_at=format_date(donation.created_at),
    )
