"""
Tests for the matching engine.

The engine is pure, so most of these tests build unsaved model instances and
never touch the database.

Test Coverage:
- Terminal guard precedence
- Actor/action authorization
- Per-action preconditions and their failure codes
- Idempotent assignment
- In-memory mutations performed by apply_transition
- available_actions
- Actor resolution from users
"""

import pytest

from donations import exceptions
from donations.matching import (
    APPROVE,
    ASSIGN_ORGANIZATION,
    CANCEL,
    DONOR_CANCEL_REASON,
    REJECT,
    Actor,
    apply_transition,
    available_actions,
    check_transition,
)
from donations.models import Delivery, Donation, Organization, User
from donations.projection import AWAITING_MATCH, project_status

DONOR_ID = 10

DONOR = Actor(Actor.DONOR, user_id=DONOR_ID)
OTHER_DONOR = Actor(Actor.DONOR, user_id=DONOR_ID + 1)
ADMIN = Actor(Actor.ADMIN, user_id=1)


def make_organization(pk=1, name='Green Closet', status=Organization.APPROVED):
    return Organization(pk=pk, name=name, status=status)


def organization_actor(organization_id):
    return Actor(Actor.ORGANIZATION, user_id=50, organization_id=organization_id)


def make_donation(**kwargs):
    values = {
        'donor_id': DONOR_ID,
        'match_type': Donation.INDIRECT,
        'status': Donation.PENDING,
        'admin_decision': Donation.DECISION_PENDING,
    }
    values.update(kwargs)
    return Donation(**values)


ALL_REQUESTS = [
    (DONOR, CANCEL),
    (ADMIN, ASSIGN_ORGANIZATION),
    (ADMIN, APPROVE),
    (ADMIN, REJECT),
    (organization_actor(1), APPROVE),
    (organization_actor(1), REJECT),
]


class TestTerminalGuard:

    @pytest.mark.parametrize('status', [Donation.COMPLETED, Donation.CANCELLED])
    @pytest.mark.parametrize('actor,action', ALL_REQUESTS)
    def test_terminal_donation_refuses_everything(self, status, actor, action):
        donation = make_donation(status=status, organization=make_organization())

        result = check_transition(donation, actor, action, organization=make_organization(pk=2))

        assert result.allowed is False
        assert result.error == exceptions.ALREADY_TERMINAL

    def test_terminal_guard_wins_over_authorization(self):
        donation = make_donation(status=Donation.CANCELLED)

        result = check_transition(donation, OTHER_DONOR, APPROVE)

        assert result.error == exceptions.ALREADY_TERMINAL

    def test_apply_on_terminal_raises_state_conflict(self):
        donation = make_donation(status=Donation.COMPLETED)

        with pytest.raises(exceptions.StateConflict) as excinfo:
            apply_transition(donation, DONOR, CANCEL)

        assert excinfo.value.code == exceptions.ALREADY_TERMINAL
        assert donation.status == Donation.COMPLETED


class TestAuthorization:

    def test_donor_cannot_approve(self):
        result = check_transition(make_donation(), DONOR, APPROVE)
        assert result.error == exceptions.NOT_AUTHORIZED

    def test_donor_cannot_cancel_someone_elses_donation(self):
        result = check_transition(make_donation(), OTHER_DONOR, CANCEL)
        assert result.error == exceptions.NOT_AUTHORIZED

    def test_admin_cannot_cancel(self):
        result = check_transition(make_donation(), ADMIN, CANCEL)
        assert result.error == exceptions.NOT_AUTHORIZED

    def test_organization_cannot_assign(self):
        organization = make_organization()
        donation = make_donation(organization=organization)

        result = check_transition(donation, organization_actor(1), ASSIGN_ORGANIZATION, organization)

        assert result.error == exceptions.NOT_AUTHORIZED

    @pytest.mark.parametrize('action', [APPROVE, REJECT])
    def test_organization_must_be_the_assigned_one(self, action):
        donation = make_donation(
            organization=make_organization(pk=1),
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
        )

        result = check_transition(donation, organization_actor(2), action)

        assert result.error == exceptions.NOT_AUTHORIZED

    @pytest.mark.parametrize('action', [APPROVE, REJECT])
    def test_organization_cannot_act_on_unassigned_donation(self, action):
        donation = make_donation(status=Donation.IN_PROGRESS)

        result = check_transition(donation, organization_actor(1), action)

        assert result.error == exceptions.NOT_AUTHORIZED

    def test_organization_account_without_organization_is_not_authorized(self):
        donation = make_donation(
            organization=make_organization(pk=1),
            status=Donation.IN_PROGRESS,
        )

        result = check_transition(donation, organization_actor(None), APPROVE)

        assert result.error == exceptions.NOT_AUTHORIZED


class TestAssignOrganization:

    def test_assign_sets_organization(self):
        donation = make_donation()
        organization = make_organization()

        changed = apply_transition(donation, ADMIN, ASSIGN_ORGANIZATION, organization=organization)

        assert changed == ['organization']
        assert donation.organization_id == organization.pk

    def test_direct_donation_cannot_be_assigned(self):
        donation = make_donation(match_type=Donation.DIRECT, organization=make_organization(pk=1))

        result = check_transition(donation, ADMIN, ASSIGN_ORGANIZATION, make_organization(pk=2))

        assert result.error == exceptions.INVALID_MATCH_TYPE

    @pytest.mark.parametrize('status', [Organization.PENDING, Organization.REJECTED])
    def test_unapproved_organization_is_refused(self, status):
        result = check_transition(
            make_donation(), ADMIN, ASSIGN_ORGANIZATION, make_organization(status=status)
        )
        assert result.error == exceptions.INVALID_MATCH_TYPE

    def test_missing_organization_is_refused(self):
        result = check_transition(make_donation(), ADMIN, ASSIGN_ORGANIZATION, None)
        assert result.error == exceptions.MISSING_ORGANIZATION

    def test_same_organization_twice_is_already_assigned(self):
        organization = make_organization()
        donation = make_donation()
        apply_transition(donation, ADMIN, ASSIGN_ORGANIZATION, organization=organization)

        with pytest.raises(exceptions.StateConflict) as excinfo:
            apply_transition(donation, ADMIN, ASSIGN_ORGANIZATION, organization=make_organization())

        assert excinfo.value.code == exceptions.ALREADY_ASSIGNED
        assert donation.organization_id == organization.pk

    def test_rejected_donation_cannot_be_assigned(self):
        donation = make_donation(admin_decision=Donation.DECISION_REJECTED)

        result = check_transition(donation, ADMIN, ASSIGN_ORGANIZATION, make_organization())

        assert result.error == exceptions.NOT_PENDING

    def test_reassignment_after_admin_approval_is_allowed(self):
        donation = make_donation(
            organization=make_organization(pk=1),
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
        )

        apply_transition(donation, ADMIN, ASSIGN_ORGANIZATION, organization=make_organization(pk=2))

        assert donation.organization_id == 2
        assert donation.status == Donation.IN_PROGRESS


class TestAdminApprove:

    def test_indirect_without_organization_is_missing_organization(self):
        result = check_transition(make_donation(), ADMIN, APPROVE)
        assert result.error == exceptions.MISSING_ORGANIZATION

    def test_indirect_with_organization_moves_to_in_progress(self):
        donation = make_donation(organization=make_organization())

        changed = apply_transition(donation, ADMIN, APPROVE)

        assert set(changed) == {'admin_decision', 'status'}
        assert donation.admin_decision == Donation.DECISION_APPROVED
        assert donation.status == Donation.IN_PROGRESS

    def test_direct_donation_can_be_approved(self):
        donation = make_donation(match_type=Donation.DIRECT, organization=make_organization())

        assert check_transition(donation, ADMIN, APPROVE).allowed is True

    @pytest.mark.parametrize('decision', [Donation.DECISION_APPROVED, Donation.DECISION_REJECTED])
    def test_decision_must_be_pending(self, decision):
        donation = make_donation(organization=make_organization(), admin_decision=decision)

        result = check_transition(donation, ADMIN, APPROVE)

        assert result.error == exceptions.NOT_PENDING

    def test_admin_approval_never_completes(self):
        donation = make_donation(organization=make_organization())

        apply_transition(donation, ADMIN, APPROVE)

        assert donation.status != Donation.COMPLETED


class TestAdminReject:

    def test_reject_keeps_status_and_records_reason(self):
        donation = make_donation()

        changed = apply_transition(donation, ADMIN, REJECT, reason='Item is damaged.')

        assert set(changed) == {'admin_decision', 'cancel_reason'}
        assert donation.admin_decision == Donation.DECISION_REJECTED
        assert donation.cancel_reason == 'Item is damaged.'
        assert donation.status == Donation.PENDING

    def test_reject_without_reason_uses_default(self, settings):
        settings.DONATIONS = {'DEFAULT_REJECT_REASON': 'Not accepted.'}
        donation = make_donation()

        apply_transition(donation, ADMIN, REJECT)

        assert donation.cancel_reason == 'Not accepted.'

    def test_second_reject_is_not_pending(self):
        donation = make_donation()
        apply_transition(donation, ADMIN, REJECT, reason='First')

        result = check_transition(donation, ADMIN, REJECT)

        assert result.error == exceptions.NOT_PENDING


class TestOrganizationDecisions:

    def in_progress_donation(self):
        return make_donation(
            organization=make_organization(pk=1, name='Green Closet'),
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
        )

    def test_approve_completes_donation(self):
        donation = self.in_progress_donation()

        changed = apply_transition(donation, organization_actor(1), APPROVE)

        assert changed == ['status']
        assert donation.status == Donation.COMPLETED
        assert donation.organization_id == 1

    def test_reject_cancels_and_clears_organization(self):
        donation = self.in_progress_donation()

        apply_transition(donation, organization_actor(1), REJECT)

        assert donation.status == Donation.CANCELLED
        assert donation.organization is None
        assert donation.cancel_reason == 'Rejected by organization Green Closet.'

    def test_reject_with_reason(self):
        donation = self.in_progress_donation()

        apply_transition(donation, organization_actor(1), REJECT, reason='No storage space.')

        assert donation.cancel_reason == 'No storage space.'

    @pytest.mark.parametrize('action', [APPROVE, REJECT])
    def test_decision_before_admin_approval_is_not_pending(self, action):
        donation = make_donation(match_type=Donation.DIRECT, organization=make_organization(pk=1))

        result = check_transition(donation, organization_actor(1), action)

        assert result.error == exceptions.NOT_PENDING


class TestDonorCancel:

    def test_cancel_pending_donation(self):
        donation = make_donation()

        apply_transition(donation, DONOR, CANCEL)

        assert donation.status == Donation.CANCELLED
        assert donation.cancel_reason == DONOR_CANCEL_REASON

    def test_cancel_awaiting_match_donation(self):
        donation = make_donation(
            organization=make_organization(),
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
        )
        assert project_status(donation).label == AWAITING_MATCH

        apply_transition(donation, DONOR, CANCEL, reason='Changed my mind.')

        assert donation.status == Donation.CANCELLED
        assert donation.cancel_reason == 'Changed my mind.'

    def test_cancel_rejected_donation_is_not_pending(self):
        donation = make_donation(admin_decision=Donation.DECISION_REJECTED)

        result = check_transition(donation, DONOR, CANCEL)

        assert result.error == exceptions.NOT_PENDING

    def test_cancel_while_shipment_in_transit_is_not_pending(self):
        donation = make_donation(
            organization=make_organization(),
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
        )
        donation.delivery = Delivery(status=Delivery.SHIPPED)

        result = check_transition(donation, DONOR, CANCEL)

        assert result.error == exceptions.NOT_PENDING

    def test_cancel_completed_donation_is_already_terminal(self):
        donation = make_donation(status=Donation.COMPLETED, organization=make_organization())

        result = check_transition(donation, DONOR, CANCEL)

        assert result.error == exceptions.ALREADY_TERMINAL


class TestScenarios:

    def test_rejected_direct_donation_accepts_nothing_further(self):
        organization = make_organization(pk=2, name='Warm Hands')
        donation = make_donation(match_type=Donation.DIRECT, organization=organization)
        apply_transition(donation, ADMIN, REJECT, reason='reason X')

        assert donation.admin_decision == Donation.DECISION_REJECTED
        assert donation.cancel_reason == 'reason X'

        for actor, action in [
            (ADMIN, APPROVE),
            (ADMIN, REJECT),
            (ADMIN, ASSIGN_ORGANIZATION),
            (DONOR, CANCEL),
            (organization_actor(2), APPROVE),
            (organization_actor(2), REJECT),
        ]:
            result = check_transition(donation, actor, action, organization=make_organization(pk=3))
            assert result.error in (exceptions.NOT_PENDING, exceptions.ALREADY_TERMINAL), (actor, action)


class TestAvailableActions:

    def test_fresh_indirect_donation(self):
        donation = make_donation()

        assert available_actions(donation, ADMIN) == [ASSIGN_ORGANIZATION, REJECT]
        assert available_actions(donation, DONOR) == [CANCEL]
        assert available_actions(donation, OTHER_DONOR) == []

    def test_assigned_donation_can_be_approved(self):
        donation = make_donation(organization=make_organization())

        assert available_actions(donation, ADMIN) == [APPROVE, ASSIGN_ORGANIZATION, REJECT]

    def test_organization_actions_after_admin_approval(self):
        donation = make_donation(
            organization=make_organization(pk=1),
            status=Donation.IN_PROGRESS,
            admin_decision=Donation.DECISION_APPROVED,
        )

        assert available_actions(donation, organization_actor(1)) == [APPROVE, REJECT]
        assert available_actions(donation, organization_actor(2)) == []

    def test_terminal_donation_has_no_actions(self):
        donation = make_donation(status=Donation.CANCELLED)

        for actor in (DONOR, ADMIN, organization_actor(1)):
            assert available_actions(donation, actor) == []


@pytest.mark.django_db
class TestActorForUser:

    def test_staff_user_is_admin(self):
        user = User.objects.create_user(
            username='admin', email='admin@test.com', password='pw', is_staff=True
        )
        assert Actor.for_user(user) == Actor(Actor.ADMIN, user_id=user.pk)

    def test_donor_user(self):
        user = User.objects.create_user(username='donor', email='donor@test.com', password='pw')
        assert Actor.for_user(user) == Actor(Actor.DONOR, user_id=user.pk)

    def test_organization_user_carries_organization_id(self):
        user = User.objects.create_user(
            username='org', email='org@test.com', password='pw', user_type=User.ORGANIZATION
        )
        organization = Organization.objects.create(name='Green Closet', user=user)

        actor = Actor.for_user(user)

        assert actor.role == Actor.ORGANIZATION
        assert actor.organization_id == organization.pk

    def test_organization_user_without_organization(self):
        user = User.objects.create_user(
            username='org', email='org@test.com', password='pw', user_type=User.ORGANIZATION
        )

        actor = Actor.for_user(user)

        assert actor.role == Actor.ORGANIZATION
        assert actor.organization_id is None
