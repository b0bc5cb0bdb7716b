"""
Ticket status transition table.

    DRAFT --submit--> OPEN
    active --escalate/transfer/return/update/medical report--> active
    active --close--> CLOSED --reopen--> REOPENED (active again)

"active" is every status that is neither DRAFT nor CLOSED. Every
status-changing operation in tickets.workflow goes through
is_valid_transition before touching the row.
"""

from types import MappingProxyType

from .models import TicketStatus as S
from .roles import ALLOWED_CLOSERS, OVERSIGHT

_ACTIVE_TARGETS = frozenset(S.ACTIVE) - {S.REOPENED} | {S.CLOSED}

TRANSITIONS = MappingProxyType({
    S.DRAFT: frozenset({S.OPEN}),
    **{status: _ACTIVE_TARGETS for status in S.ACTIVE},
    S.CLOSED: frozenset({S.REOPENED}),
})

# Target statuses only some roles may move a ticket into
ROLE_GUARDS = MappingProxyType({
    S.CLOSED: ALLOWED_CLOSERS,
    S.REOPENED: OVERSIGHT,
})

# Statuses a plain edit may set; everything else has a dedicated operation
EDITABLE_STATUSES = frozenset({S.OPEN, S.UNDER_REVIEW, S.AWAITING_MEDICAL, S.RESOLVED})


def is_valid_transition(from_status, to_status, actor_role):
    if to_status not in TRANSITIONS.get(from_status, frozenset()):
        return False
    guard = ROLE_GUARDS.get(to_status)
    return guard is None or actor_role in guard
