"""
Error taxonomy for the donation workflow.

- ``StateConflict``: the matching engine refused a transition. Carries one of
  the codes below; each code maps to exactly one user-facing message.
- ``NotFound``: a donation, organization or delivery id did not resolve.
- ``AdvisoryFailure``: a side effect (notification, delivery bootstrap)
  failed. Logged by the workflow, never propagated to the caller.

Bad input shape is reported with Django's ``ValidationError``.
"""

ALREADY_TERMINAL = 'already_terminal'
NOT_AUTHORIZED = 'not_authorized'
MISSING_ORGANIZATION = 'missing_organization'
INVALID_MATCH_TYPE = 'invalid_match_type'
ALREADY_ASSIGNED = 'already_assigned'
NOT_PENDING = 'not_pending'

ERROR_MESSAGES = {
    ALREADY_TERMINAL: 'This donation is already completed or cancelled.',
    NOT_AUTHORIZED: 'You do not have permission to perform this action on this donation.',
    MISSING_ORGANIZATION: 'An approved organization must be assigned before this action.',
    INVALID_MATCH_TYPE: 'This action is not valid for the donation\'s match type.',
    ALREADY_ASSIGNED: 'This organization is already assigned to the donation.',
    NOT_PENDING: 'This donation is not in a state that allows this action.',
}


class DonationError(Exception):
    """Base class for donation workflow errors."""


class StateConflict(DonationError):
    """
    A transition was refused by the matching engine.

    Attributes:
        code: One of the module-level error codes
        message: User-facing message for ``code``
    """

    def __init__(self, code, message=None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, 'Invalid donation state transition.')
        super().__init__(self.message)


class NotFound(DonationError):
    """A referenced record does not exist."""

    def __init__(self, resource, identifier):
        self.resource = resource
        self.identifier = identifier
        self.message = f'{resource} with ID {identifier} does not exist.'
        super().__init__(self.message)


class AdvisoryFailure(DonationError):
    """A best-effort side effect failed; the transition itself stands."""
