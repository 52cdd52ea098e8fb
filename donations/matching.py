"""
Matching engine: decides which donation transitions are legal.

Nothing here touches the database. ``check_transition`` inspects a donation
snapshot and answers allowed/refused with a reason code, ``apply_transition``
performs the in-memory mutation for an allowed transition and reports which
fields changed so the caller can persist them.

Rules are evaluated in a fixed order and the first failing rule decides the
reason code:

1. Terminal guard: completed or cancelled donations accept nothing.
2. Actor/action authorization.
3. Per-action preconditions.
4. Idempotence: assigning the organization that is already assigned.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional

from . import exceptions
from .conf import donation_settings
from .models import Donation
from .projection import AWAITING_APPROVAL, AWAITING_MATCH, project_status

CANCEL = 'cancel'
ASSIGN_ORGANIZATION = 'assign_organization'
APPROVE = 'approve'
REJECT = 'reject'

ACTIONS = (CANCEL, ASSIGN_ORGANIZATION, APPROVE, REJECT)

# Display labels from which a donor may still withdraw
CANCELLABLE_LABELS = (AWAITING_APPROVAL, AWAITING_MATCH)

DONOR_CANCEL_REASON = 'Cancelled by the donor.'


@dataclass(frozen=True)
class Actor:
    """Who is asking for a transition."""

    DONOR = 'donor'
    ADMIN = 'admin'
    ORGANIZATION = 'organization'

    role: str
    user_id: Optional[int] = None
    organization_id: Optional[int] = None

    @classmethod
    def for_user(cls, user):
        """
        Resolve the acting role for an authenticated user.

        Staff users act as admin. Organization accounts act for their linked
        organization (``organization_id`` stays None when no organization is
        linked, which the engine treats as unauthorized).

        Args:
            user: User instance

        Returns:
            Actor: Actor for the user
        """
        if user.is_staff:
            return cls(role=cls.ADMIN, user_id=user.pk)
        if user.is_organization_user():
            organization = getattr(user, 'organization', None)
            return cls(
                role=cls.ORGANIZATION,
                user_id=user.pk,
                organization_id=organization.pk if organization else None,
            )
        return cls(role=cls.DONOR, user_id=user.pk)


ACTOR_ACTIONS = {
    Actor.DONOR: {CANCEL},
    Actor.ADMIN: {ASSIGN_ORGANIZATION, APPROVE, REJECT},
    Actor.ORGANIZATION: {APPROVE, REJECT},
}


class TransitionCheck(NamedTuple):
    allowed: bool
    error: Optional[str] = None


ALLOWED = TransitionCheck(True, None)


def _refuse(code):
    return TransitionCheck(False, code)


def _check_assign(donation, organization):
    if donation.admin_decision == Donation.DECISION_REJECTED:
        return _refuse(exceptions.NOT_PENDING)
    if donation.match_type != Donation.INDIRECT:
        return _refuse(exceptions.INVALID_MATCH_TYPE)
    if organization is None:
        return _refuse(exceptions.MISSING_ORGANIZATION)
    # Same code create_donation uses for an unapproved direct target
    if not organization.is_approved():
        return _refuse(exceptions.INVALID_MATCH_TYPE)
    if donation.organization_id is not None and donation.organization_id == organization.pk:
        return _refuse(exceptions.ALREADY_ASSIGNED)
    return ALLOWED


def _check_admin_approve(donation, organization):
    if donation.admin_decision != Donation.DECISION_PENDING:
        return _refuse(exceptions.NOT_PENDING)
    if donation.match_type == Donation.INDIRECT and donation.organization_id is None:
        return _refuse(exceptions.MISSING_ORGANIZATION)
    return ALLOWED


def _check_admin_reject(donation, organization):
    if donation.admin_decision != Donation.DECISION_PENDING:
        return _refuse(exceptions.NOT_PENDING)
    return ALLOWED


def _check_organization_decision(donation, organization):
    # The organization only decides once the admin gate has opened
    if donation.status != Donation.IN_PROGRESS:
        return _refuse(exceptions.NOT_PENDING)
    return ALLOWED


def _check_donor_cancel(donation, organization):
    if project_status(donation).label not in CANCELLABLE_LABELS:
        return _refuse(exceptions.NOT_PENDING)
    return ALLOWED


PRECONDITIONS = {
    (Actor.ADMIN, ASSIGN_ORGANIZATION): _check_assign,
    (Actor.ADMIN, APPROVE): _check_admin_approve,
    (Actor.ADMIN, REJECT): _check_admin_reject,
    (Actor.ORGANIZATION, APPROVE): _check_organization_decision,
    (Actor.ORGANIZATION, REJECT): _check_organization_decision,
    (Actor.DONOR, CANCEL): _check_donor_cancel,
}


def _is_authorized(donation, actor, action):
    if action not in ACTOR_ACTIONS.get(actor.role, set()):
        return False
    if actor.role == Actor.DONOR:
        return actor.user_id is not None and donation.donor_id == actor.user_id
    if actor.role == Actor.ORGANIZATION:
        return (
            actor.organization_id is not None
            and donation.organization_id == actor.organization_id
        )
    return True


def check_transition(donation, actor, action, organization=None):
    """
    Decide whether ``actor`` may perform ``action`` on ``donation``.

    Args:
        donation: Donation snapshot (freshly loaded inside the caller's transaction)
        actor: Actor requesting the transition
        action: One of ``ACTIONS``
        organization: Target organization, only for ASSIGN_ORGANIZATION

    Returns:
        TransitionCheck: (allowed, error code or None)
    """
    if donation.status in Donation.TERMINAL_STATUSES:
        return _refuse(exceptions.ALREADY_TERMINAL)

    if not _is_authorized(donation, actor, action):
        return _refuse(exceptions.NOT_AUTHORIZED)

    return PRECONDITIONS[(actor.role, action)](donation, organization)


def available_actions(donation, actor):
    """
    List the actions ``actor`` could perform right now.

    ASSIGN_ORGANIZATION is listed when the donation accepts an assignment in
    principle; the concrete target is checked when it is requested.
    """
    actions = []
    for action in sorted(ACTOR_ACTIONS.get(actor.role, set())):
        if action == ASSIGN_ORGANIZATION:
            if (
                not donation.is_terminal()
                and donation.match_type == Donation.INDIRECT
                and donation.admin_decision != Donation.DECISION_REJECTED
            ):
                actions.append(action)
            continue
        if check_transition(donation, actor, action).allowed:
            actions.append(action)
    return actions


def apply_transition(donation, actor, action, organization=None, reason=None):
    """
    Validate and apply a transition to the in-memory donation.

    The caller persists the returned fields. The donation is left untouched
    when the transition is refused.

    Args:
        donation: Donation instance to mutate
        actor: Actor requesting the transition
        action: One of ``ACTIONS``
        organization: Target organization for ASSIGN_ORGANIZATION
        reason: Optional free-text reason for rejections and cancellations

    Returns:
        list: Names of the fields that changed

    Raises:
        StateConflict: If the transition is not legal
    """
    allowed, error = check_transition(donation, actor, action, organization)
    if not allowed:
        raise exceptions.StateConflict(error)

    if action == ASSIGN_ORGANIZATION:
        donation.organization = organization
        return ['organization']

    if actor.role == Actor.ADMIN and action == APPROVE:
        donation.admin_decision = Donation.DECISION_APPROVED
        donation.status = Donation.IN_PROGRESS
        return ['admin_decision', 'status']

    if actor.role == Actor.ADMIN and action == REJECT:
        donation.admin_decision = Donation.DECISION_REJECTED
        donation.cancel_reason = reason or donation_settings('DEFAULT_REJECT_REASON')
        return ['admin_decision', 'cancel_reason']

    if actor.role == Actor.ORGANIZATION and action == APPROVE:
        donation.status = Donation.COMPLETED
        return ['status']

    if actor.role == Actor.ORGANIZATION and action == REJECT:
        organization_name = donation.organization.name if donation.organization else 'the organization'
        donation.status = Donation.CANCELLED
        donation.cancel_reason = reason or f'Rejected by organization {organization_name}.'
        donation.organization = None
        return ['status', 'cancel_reason', 'organization']

    # Donor cancel
    donation.status = Donation.CANCELLED
    donation.cancel_reason = reason or DONOR_CANCEL_REASON
    return ['status', 'cancel_reason']
