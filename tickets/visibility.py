"""
Ticket visibility.

TicketVisibility is the per-role list filter: a handful of clauses
(creator, assignee, department type, escalated-to roles) OR-ed together.
It is built once per request from the authenticated user and either
applied to a queryset or matched against a single ticket.

Rules, first match wins:
- ADMIN, CHIEF_OF_CONTROL: everything
- creators: tickets they created
- deputies/chiefs without intake: assigned to them, escalated to their
  role, or created by them
- other processors: non-draft tickets of their department's type, plus
  anything escalated to a role of their department
- Scrutineers/Judgement: assigned to them or escalated to their role

Escalating to a bare role without an assignee leaves the ticket reachable
only through the escalated-role clause, which is the role queue.
"""

from django.db.models import Q

from .models import Ticket, TicketStatus
from .roles import (
    ALL_CREATORS,
    ALL_PROCESSORS,
    DECISION_MAKERS,
    OVERSIGHT,
    PROCESSOR_GROUPS,
    SENIOR_PROCESSORS,
    processor_type,
)


class TicketVisibility:

    def __init__(self, unrestricted=False, created_by_id=None, assigned_to_id=None,
                 department_type=None, escalated_roles=()):
        self.unrestricted = unrestricted
        self.created_by_id = created_by_id
        self.assigned_to_id = assigned_to_id
        self.department_type = department_type
        self.escalated_roles = frozenset(escalated_roles)

    def __repr__(self):
        if self.unrestricted:
            return '<TicketVisibility unrestricted>'
        return (
            f'<TicketVisibility created_by={self.created_by_id} '
            f'assigned_to={self.assigned_to_id} department={self.department_type} '
            f'escalated_roles={sorted(self.escalated_roles)}>'
        )

    @classmethod
    def for_user(cls, user):
        role = user.role

        if role in OVERSIGHT:
            return cls(unrestricted=True)

        if role in ALL_CREATORS:
            return cls(created_by_id=user.id)

        if role in ALL_PROCESSORS:
            if role in SENIOR_PROCESSORS and not user.is_intake_enabled:
                return cls(
                    created_by_id=user.id,
                    assigned_to_id=user.id,
                    escalated_roles=[role],
                )
            department = processor_type(role)
            return cls(
                department_type=department,
                escalated_roles=PROCESSOR_GROUPS[department],
            )

        if role in DECISION_MAKERS:
            return cls(assigned_to_id=user.id, escalated_roles=[role])

        return cls()

    @property
    def is_empty(self):
        return not (
            self.unrestricted or self.created_by_id or self.assigned_to_id
            or self.department_type or self.escalated_roles
        )

    def to_q(self):
        """Q object for the filter; None when unrestricted."""
        if self.unrestricted:
            return None

        clauses = []
        if self.created_by_id:
            clauses.append(Q(created_by_id=self.created_by_id))
        if self.assigned_to_id:
            clauses.append(Q(assigned_to_id=self.assigned_to_id))
        if self.department_type:
            clauses.append(Q(type=self.department_type) & ~Q(status=TicketStatus.DRAFT))
        if self.escalated_roles:
            clauses.append(Q(escalated_to_role__in=self.escalated_roles))

        q = Q(pk__in=[])
        for clause in clauses:
            q |= clause
        return q

    def apply(self, queryset):
        q = self.to_q()
        if q is None:
            return queryset
        if self.is_empty:
            return queryset.none()
        return queryset.filter(q)

    def matches(self, ticket):
        if self.unrestricted:
            return True
        if self.created_by_id and ticket.created_by_id == self.created_by_id:
            return True
        if self.assigned_to_id and ticket.assigned_to_id == self.assigned_to_id:
            return True
        if (self.department_type and ticket.type == self.department_type
                and ticket.status != TicketStatus.DRAFT):
            return True
        return bool(ticket.escalated_to_role) and ticket.escalated_to_role in self.escalated_roles


def visible_tickets_for_user(user, queryset=None):
    if queryset is None:
        queryset = Ticket.objects.all()
    return TicketVisibility.for_user(user).apply(queryset)
