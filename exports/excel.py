"""
Ticket spreadsheet export (openpyxl).

One "Tickets" sheet, bold header row, one row per ticket with the medical
and pit/grid specifics flattened into their own columns.
"""

from django.utils import timezone
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font

COLUMNS = [
    ('Ticket No', 14),
    ('Event', 24),
    ('Open Date', 12),
    ('Closed Date', 12),
    ('Type', 10),
    ('Status', 20),
    ('Priority', 10),
    ('Reporter', 20),
    ('Description', 50),
    ('Assigned To', 20),
    ('Patient Name', 20),
    ('Injury Type', 16),
    ('License Action', 14),
    ('Car No', 8),
    ('Pit Violation', 30),
]


def _date(value):
    return timezone.localtime(value).strftime('%Y-%m-%d') if value else '-'


def _cell(value):
    """openpyxl refuses control characters in cell text."""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def ticket_row(ticket):
    medical = ticket.get_report('medical_report')
    pit = ticket.get_report('pit_grid_report')

    if ticket.created_by_id:
        reporter = ticket.created_by.display_name
    else:
        reporter = ticket.reporter_name or 'Unknown'

    car_number = ''
    if pit is not None and pit.car_number:
        car_number = pit.car_number
    elif medical is not None:
        car_number = medical.car_number

    return [
        ticket.ticket_no,
        ticket.event_name,
        _date(ticket.created_at),
        _date(ticket.closed_at),
        ticket.type,
        ticket.status,
        ticket.priority,
        reporter,
        ticket.description,
        ticket.assigned_to.display_name if ticket.assigned_to_id else 'Unassigned',
        medical.patient_full_name if medical is not None else '',
        medical.injury_type if medical is not None else '',
        medical.license_action if medical is not None else '',
        car_number,
        ', '.join(pit.violations) if pit is not None else '',
    ]


def build_ticket_workbook(tickets):
    wb = Workbook()
    ws = wb.active
    ws.title = 'Tickets'

    bold = Font(bold=True)
    for column, (header, width) in enumerate(COLUMNS, start=1):
        cell = ws.cell(row=1, column=column, value=header)
        cell.font = bold
        ws.column_dimensions[cell.column_letter].width = width
    ws.freeze_panes = 'A2'

    for ticket in tickets:
        ws.append([_cell(value) for value in ticket_row(ticket)])

    return wb
