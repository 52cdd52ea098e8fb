"""
Tests for the status projection and the view-model builders.
"""

from datetime import datetime, timezone as dt_timezone

import pytest

from donations import projection
from donations.models import Delivery, Donation, DonationItem, Organization, User
from donations.projection import (
    ACTIVE_LABELS,
    AWAITING_APPROVAL,
    AWAITING_MATCH,
    AWAITING_SHIPMENT,
    CANCELLED,
    COMPLETED,
    LABELS,
    MATCHED,
    REJECTED,
    build_donation_summary,
    build_status_overview,
    format_date,
    project_status,
)


def make_donation(delivery_status=None, **kwargs):
    values = {
        'donor_id': 10,
        'match_type': Donation.INDIRECT,
        'status': Donation.PENDING,
        'admin_decision': Donation.DECISION_PENDING,
    }
    values.update(kwargs)
    donation = Donation(**values)
    if delivery_status is not None:
        donation.delivery = Delivery(status=delivery_status)
    return donation


GREEN_CLOSET = Organization(pk=1, name='Green Closet', status=Organization.APPROVED)


class TestResolutionOrder:

    def test_fresh_indirect_donation_awaits_approval(self):
        assert project_status(make_donation()).label == AWAITING_APPROVAL

    def test_cancelled_wins_over_everything(self):
        donation = make_donation(
            status=Donation.CANCELLED,
            admin_decision=Donation.DECISION_REJECTED,
            delivery_status=Delivery.SHIPPED,
        )
        assert project_status(donation).label == CANCELLED

    def test_admin_rejection_wins_over_delivery(self):
        donation = make_donation(
            admin_decision=Donation.DECISION_REJECTED,
            delivery_status=Delivery.SHIPPED,
        )
        assert project_status(donation).label == REJECTED

    def test_shipped_delivery_is_awaiting_shipment(self):
        donation = make_donation(
            status=Donation.COMPLETED,
            admin_decision=Donation.DECISION_APPROVED,
            organization=GREEN_CLOSET,
            delivery_status=Delivery.SHIPPED,
        )
        assert project_status(donation).label == AWAITING_SHIPMENT

    @pytest.mark.parametrize('delivery_status', [Delivery.PENDING, Delivery.DELIVERED])
    def test_only_shipped_counts_as_in_transit(self, delivery_status):
        donation = make_donation(
            status=Donation.COMPLETED,
            admin_decision=Donation.DECISION_APPROVED,
            organization=GREEN_CLOSET,
            delivery_status=delivery_status,
        )
        assert project_status(donation).label == COMPLETED

    def test_in_progress_with_organization_awaits_match(self):
        donation = make_donation(
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
            organization=GREEN_CLOSET,
        )
        assert project_status(donation).label == AWAITING_MATCH

    def test_pending_direct_donation_awaits_approval(self):
        donation = make_donation(match_type=Donation.DIRECT, organization=GREEN_CLOSET)
        assert project_status(donation).label == AWAITING_APPROVAL

    def test_labels_are_closed_set(self):
        assert set(LABELS) == {
            AWAITING_APPROVAL, AWAITING_MATCH, MATCHED, REJECTED,
            AWAITING_SHIPMENT, CANCELLED, COMPLETED,
        }
        assert COMPLETED not in ACTIVE_LABELS


class TestExplanations:

    def test_awaiting_match_names_organization(self):
        donation = make_donation(
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
            organization=GREEN_CLOSET,
        )
        assert 'Green Closet' in project_status(donation).explanation

    def test_rejection_shows_reason(self):
        donation = make_donation(
            admin_decision=Donation.DECISION_REJECTED,
            cancel_reason='Stained fabric',
        )
        assert project_status(donation).explanation == 'Reason for rejection: Stained fabric'

    def test_rejection_without_reason(self):
        donation = make_donation(admin_decision=Donation.DECISION_REJECTED)
        assert project_status(donation).explanation == 'Please check the reason and apply again.'

    def test_cancellation_shows_reason(self):
        donation = make_donation(status=Donation.CANCELLED, cancel_reason='Moved abroad')
        assert 'Moved abroad' in project_status(donation).explanation

    def test_every_label_has_an_explanation(self):
        donation = make_donation(organization=GREEN_CLOSET)
        for label in LABELS:
            assert projection.explain(donation, label)


class TestFormatDate:

    def test_missing_date(self):
        assert format_date(None) == '-'

    def test_date_format(self, settings):
        settings.TIME_ZONE = 'UTC'
        value = datetime(2024, 3, 9, 12, 30, tzinfo=dt_timezone.utc)
        assert format_date(value) == '2024-03-09'


class TestViewModels:

    def donation_with_item(self, **kwargs):
        donation = make_donation(**kwargs)
        donation.item = DonationItem(
            gender_type='women',
            main_category='outerwear',
            detail_category='Wool coat',
            size='m',
            description='Warm',
            image_urls=['https://cdn.test/a.jpg'],
        )
        return donation

    def test_status_overview_splits_completed_from_active(self):
        active = self.donation_with_item()
        completed = self.donation_with_item(
            status=Donation.COMPLETED,
            admin_decision=Donation.DECISION_APPROVED,
            organization=GREEN_CLOSET,
        )
        rejected = self.donation_with_item(admin_decision=Donation.DECISION_REJECTED)

        overview = build_status_overview([active, completed, rejected])

        assert [item.status for item in overview.approval_items] == [AWAITING_APPROVAL, REJECTED]
        assert len(overview.completed_donations) == 1
        assert overview.completed_donations[0].organization == 'Green Closet'
        assert overview.completed_donations[0].items == 'Wool coat'
        assert overview.status_counts[AWAITING_APPROVAL] == 1
        assert overview.status_counts[REJECTED] == 1
        assert COMPLETED not in overview.status_counts

    def test_approval_item_fields(self):
        donation = self.donation_with_item()

        overview = build_status_overview([donation])
        item = overview.approval_items[0]

        assert item.name == 'Wool coat'
        assert item.category == 'Outerwear'
        assert item.matched_organization is None
        assert item.reference_code == 'DN-NEW'

    def test_summary_masks_anonymous_donor(self):
        donation = self.donation_with_item(is_anonymous=True)
        donation.donor = User(pk=10, username='kim', name='Kim Lee')

        assert build_donation_summary(donation).donor_name == 'Kim Lee'
        assert build_donation_summary(donation, hide_anonymous=True).donor_name == 'Anonymous'

    def test_summary_falls_back_to_username(self):
        donation = self.donation_with_item()
        donation.donor = User(pk=10, username='kim')

        summary = build_donation_summary(donation)

        assert summary.donor_name == 'kim'
        assert summary.images == ['https://cdn.test/a.jpg']
        assert summary.match_type == 'Indirect match'
        assert summary.status == AWAITING_APPROVAL
