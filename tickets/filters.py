"""
Query parameters of the ticket list.

    GET /api/v1/tickets/?type=MEDICAL&status=ESCALATED&created_after=2026-05-01&search=turn 3
"""

import django_filters
from django.db.models import Q

from .models import Ticket, TicketPriority, TicketStatus, TicketType


class TicketFilter(django_filters.FilterSet):
    type = django_filters.MultipleChoiceFilter(choices=TicketType.CHOICES)
    status = django_filters.MultipleChoiceFilter(choices=TicketStatus.CHOICES)
    priority = django_filters.ChoiceFilter(choices=TicketPriority.CHOICES)
    escalated_to_role = django_filters.CharFilter()
    created_after = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_before = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Ticket
        fields = ['type', 'status', 'priority', 'escalated_to_role']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(ticket_no__icontains=value)
            | Q(description__icontains=value)
            | Q(location__icontains=value)
            | Q(event_name__icontains=value)
            | Q(reporter_name__icontains=value)
        )
