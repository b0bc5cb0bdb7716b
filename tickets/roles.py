"""
Role tables for the ticket workflow.

Fixed at import time and shared by every request; nothing here is ever
mutated. Groups are frozensets, per-role tables are read-only mappings.

Groups:
- creators file tickets from the track
- processors act on the tickets of their department
- Scrutineers and Judgement take decisions and pass tickets between them
- ADMIN and CHIEF_OF_CONTROL oversee everything
"""

from types import MappingProxyType

from authentication.models import UserRole as R

from .models import TicketType


# =============================================================================
# ROLE GROUPS
# =============================================================================

MEDICAL_CREATORS = frozenset({R.MEDICAL_MARSHAL, R.MEDICAL_VENDOR, R.MEDICAL_EVACUATION})
SPORT_CREATORS = frozenset({R.SPORT_MARSHAL})
SAFETY_CREATORS = frozenset({R.SAFETY_MARSHAL})

MEDICAL_PROCESSORS = frozenset({R.MEDICAL_OP_TEAM, R.DEPUTY_MEDICAL_OFFICER, R.CHIEF_MEDICAL_OFFICER})
SPORT_PROCESSORS = frozenset({R.CONTROL_OP_TEAM, R.DEPUTY_CONTROL_OP_OFFICER, R.CHIEF_OF_CONTROL})
SAFETY_PROCESSORS = frozenset({R.SAFETY_OP_TEAM, R.DEPUTY_SAFETY_OFFICER, R.SAFETY_OFFICER_CHIEF})

SCRUTINEERS = frozenset({R.SCRUTINEERS})
JUDGES = frozenset({R.JUDGEMENT})
ADMIN = frozenset({R.ADMIN})

ALL_CREATORS = MEDICAL_CREATORS | SPORT_CREATORS | SAFETY_CREATORS
ALL_PROCESSORS = MEDICAL_PROCESSORS | SPORT_PROCESSORS | SAFETY_PROCESSORS
DECISION_MAKERS = SCRUTINEERS | JUDGES

# Unrestricted visibility and the only roles that may reopen
OVERSIGHT = frozenset({R.ADMIN, R.CHIEF_OF_CONTROL})

# Deputies and chiefs. Without intake enabled they only see their own queue.
SENIOR_PROCESSORS = frozenset({
    R.DEPUTY_MEDICAL_OFFICER, R.CHIEF_MEDICAL_OFFICER,
    R.DEPUTY_SAFETY_OFFICER, R.SAFETY_OFFICER_CHIEF,
    R.DEPUTY_CONTROL_OP_OFFICER, R.CHIEF_OF_CONTROL,
})

# May close any ticket, assigned to them or not
SUPER_CLOSERS = ADMIN | SENIOR_PROCESSORS

# Scrutineers and Judgement close only what sits in their queue
ALLOWED_CLOSERS = SUPER_CLOSERS | DECISION_MAKERS

# Department processor group responsible for each ticket type
PROCESSOR_GROUPS = MappingProxyType({
    TicketType.MEDICAL: MEDICAL_PROCESSORS,
    TicketType.SPORT: SPORT_PROCESSORS,
    TicketType.SAFETY: SAFETY_PROCESSORS,
})


# =============================================================================
# CREATION RIGHTS
# =============================================================================

# role -> (primary type, types the role may file)
CREATION_RIGHTS = MappingProxyType({
    **{role: (TicketType.MEDICAL, frozenset(TicketType.ALL)) for role in MEDICAL_CREATORS},
    **{role: (TicketType.SPORT, frozenset({TicketType.SPORT, TicketType.SAFETY})) for role in SPORT_CREATORS},
    **{role: (TicketType.SAFETY, frozenset({TicketType.SPORT, TicketType.SAFETY})) for role in SAFETY_CREATORS},
    **{role: (TicketType.MEDICAL, frozenset({TicketType.MEDICAL})) for role in MEDICAL_PROCESSORS},
    **{role: (TicketType.SPORT, frozenset({TicketType.SPORT})) for role in SPORT_PROCESSORS},
    **{role: (TicketType.SAFETY, frozenset({TicketType.SAFETY})) for role in SAFETY_PROCESSORS},
    R.ADMIN: (TicketType.SPORT, frozenset(TicketType.ALL)),
})


# =============================================================================
# HANDOFF GRAPHS
# =============================================================================

ESCALATION_TARGETS = MappingProxyType({
    R.MEDICAL_OP_TEAM: frozenset({
        R.DEPUTY_MEDICAL_OFFICER, R.CHIEF_MEDICAL_OFFICER, R.SAFETY_OP_TEAM, R.CONTROL_OP_TEAM,
    }),
    R.DEPUTY_MEDICAL_OFFICER: frozenset({R.CHIEF_MEDICAL_OFFICER}),
    R.CHIEF_MEDICAL_OFFICER: frozenset(),

    R.SAFETY_OP_TEAM: frozenset({
        R.DEPUTY_SAFETY_OFFICER, R.SAFETY_OFFICER_CHIEF, R.MEDICAL_OP_TEAM, R.CONTROL_OP_TEAM,
    }),
    R.DEPUTY_SAFETY_OFFICER: frozenset({R.SAFETY_OFFICER_CHIEF}),
    R.SAFETY_OFFICER_CHIEF: frozenset(),

    R.CONTROL_OP_TEAM: frozenset({
        R.CHIEF_OF_CONTROL, R.DEPUTY_CONTROL_OP_OFFICER, R.MEDICAL_OP_TEAM, R.SAFETY_OP_TEAM,
    }),
    R.DEPUTY_CONTROL_OP_OFFICER: frozenset({
        R.MEDICAL_OP_TEAM, R.SAFETY_OP_TEAM, R.SCRUTINEERS, R.JUDGEMENT, R.CHIEF_OF_CONTROL,
    }),
    R.CHIEF_OF_CONTROL: frozenset({
        R.MEDICAL_OP_TEAM, R.SAFETY_OP_TEAM, R.SCRUTINEERS, R.JUDGEMENT,
    }),
})

# Scrutineers and Judgement hand over to each other only
TRANSFER_TARGETS = MappingProxyType({
    R.SCRUTINEERS: R.JUDGEMENT,
    R.JUDGEMENT: R.SCRUTINEERS,
})

# Who a decision can be returned to
RETURN_TARGET_ROLES = frozenset({R.CHIEF_OF_CONTROL, R.DEPUTY_CONTROL_OP_OFFICER})


# =============================================================================
# LOOKUPS
# =============================================================================

def creatable_types(role):
    """Ticket types ``role`` may file (empty for Scrutineers/Judgement)."""
    rights = CREATION_RIGHTS.get(role)
    return rights[1] if rights else frozenset()


def can_create(role, requested_type=None):
    """
    Effective type of a ticket filed by ``role``.

    The requested type when the role may file it, otherwise the role's
    primary type. None when the role cannot file tickets at all.
    """
    rights = CREATION_RIGHTS.get(role)
    if rights is None:
        return None
    primary, allowed = rights
    if requested_type in allowed:
        return requested_type
    return primary


def processor_type(role):
    """Ticket type whose department ``role`` processes, or None."""
    for ticket_type, group in PROCESSOR_GROUPS.items():
        if role in group:
            return ticket_type
    return None


def can_escalate(from_role, to_role):
    if from_role == R.ADMIN:
        return to_role in R.ALL
    return to_role in ESCALATION_TARGETS.get(from_role, frozenset())
