"""
Ticket PDF report.

Drawn directly on a reportlab canvas with the built-in Helvetica fonts,
which only cover Latin-1. Every string goes through clean_text() before it
is measured or drawn.

Layout is a cursor moving down the page (PageBuilder). Every drawing call
first asks for the vertical space it needs; when the current page cannot
hold it a new page is started and the cursor goes back to the top margin.

    renderer = TicketReportRenderer(ticket, verify_token)
    pdf_bytes = renderer.render()
    renderer.sections          # titles of the sections drawn, in order
    renderer.timeline_entries  # activity entries drawn, newest first
"""

import io
import secrets
import string

from django.conf import settings
from django.utils import timezone
from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from tickets.models import LicenseAction

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
LABEL_WIDTH = 110

FONT = 'Helvetica'
FONT_BOLD = 'Helvetica-Bold'

COLORS = {
    'text': HexColor('#1f2937'),
    'muted': HexColor('#6b7280'),
    'accent': HexColor('#047857'),
    'band': HexColor('#111827'),
    'light': HexColor('#f9fafb'),
    'border': HexColor('#e5e7eb'),
    'alert_bg': HexColor('#fef2f2'),
    'alert_text': HexColor('#991b1b'),
}

HEADER_HEIGHT = 70
FOOTER_HEIGHT = 100

TOKEN_ALPHABET = string.digits + string.ascii_uppercase
TOKEN_LENGTH = 8


# =============================================================================
# TEXT
# =============================================================================

_PUNCTUATION = {
    '\u2018': "'", '\u2019': "'", '\u201a': "'", '\u201b': "'",
    '\u201c': '"', '\u201d': '"', '\u201e': '"', '\u201f': '"',
    '\u2010': '-', '\u2011': '-', '\u2012': '-', '\u2013': '-',
    '\u2014': '-', '\u2015': '-', '\u2212': '-',
    '\u2026': '...',
    '\u00a0': ' ', '\u202f': ' ', '\u2007': ' ',
    '\t': ' ',
}

# Zero-width and bidi control characters
_INVISIBLE = (
    '\u200b\u200c\u200d\u200e\u200f'
    '\u202a\u202b\u202c\u202d\u202e'
    '\u2060\u2066\u2067\u2068\u2069\ufeff'
)

_CLEAN_TABLE = str.maketrans({
    **_PUNCTUATION,
    **{char: None for char in _INVISIBLE},
})


def clean_text(value):
    """
    Make ``value`` drawable with a Latin-1 font.

    Typographic punctuation becomes its ASCII form, invisible control
    characters are dropped and anything else above U+00FF becomes '?'.
    ASCII input comes back unchanged.
    """
    if value is None:
        return ''
    text = str(value).translate(_CLEAN_TABLE)
    return ''.join(char if ord(char) <= 0xFF else '?' for char in text)


def _split_long_word(word, font_name, font_size, max_width):
    pieces = []
    current = ''
    for char in word:
        if current and stringWidth(current + char, font_name, font_size) > max_width:
            pieces.append(current)
            current = char
        else:
            current += char
    pieces.append(current)
    return pieces


def wrap_text(text, font_name, font_size, max_width):
    """
    Greedy line breaking.

    Words are added to the current line while it still fits in
    ``max_width``; the line is flushed when the next word would overflow.
    Explicit newlines start a new line and a word wider than the whole
    line is broken between characters.
    """
    lines = []
    for paragraph in clean_text(text).split('\n'):
        line = ''
        for word in paragraph.split():
            candidate = f"{line} {word}" if line else word
            if stringWidth(candidate, font_name, font_size) <= max_width:
                line = candidate
                continue
            if line:
                lines.append(line)
            if stringWidth(word, font_name, font_size) <= max_width:
                line = word
            else:
                *full, line = _split_long_word(word, font_name, font_size, max_width)
                lines.extend(full)
        lines.append(line)
    return lines


def generate_verify_token():
    """Random 8 character upper-case base36 token."""
    return ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


# =============================================================================
# PAGE BUILDER
# =============================================================================

class PageBuilder:
    """
    Cursor over a canvas.

    ``y`` is the baseline of the next thing to draw, measured from the
    bottom of the page like every reportlab coordinate.
    """

    def __init__(self, pdf, page_height=PAGE_HEIGHT, margin=MARGIN):
        self.pdf = pdf
        self.margin = margin
        self.top = page_height - margin
        self.bottom = margin
        self.y = self.top
        self.page_count = 1

    @property
    def remaining(self):
        return self.y - self.bottom

    def new_page_if_needed(self, min_space):
        if self.remaining >= min_space:
            return False
        self.pdf.showPage()
        self.page_count += 1
        self.y = self.top
        return True

    def spacer(self, height):
        self.y -= height

    def _text(self, text, x, font_name, font_size, color):
        self.pdf.setFont(font_name, font_size)
        self.pdf.setFillColor(color)
        self.pdf.drawString(x, self.y, clean_text(text))

    def title(self, text):
        """Section heading with a rule underneath."""
        self.new_page_if_needed(40)
        self.spacer(18)
        self._text(text.upper(), self.margin, FONT_BOLD, 11, COLORS['text'])
        self.pdf.setStrokeColor(COLORS['border'])
        self.pdf.setLineWidth(1)
        self.pdf.line(self.margin, self.y - 4, self.margin + CONTENT_WIDTH, self.y - 4)
        self.spacer(18)

    def bold_label(self, text, size=9, color=None):
        self.new_page_if_needed(size + 4)
        self._text(text, self.margin, FONT_BOLD, size, color or COLORS['text'])
        self.spacer(size + 4)

    def label(self, name, value):
        """``NAME`` in the left column, wrapped value to the right of it."""
        lines = wrap_text(value or '-', FONT, 9, CONTENT_WIDTH - LABEL_WIDTH)
        self.new_page_if_needed(12)
        self._text(name.upper(), self.margin, FONT_BOLD, 7, COLORS['muted'])
        for index, line in enumerate(lines):
            if index:
                self.new_page_if_needed(12)
            self._text(line, self.margin + LABEL_WIDTH, FONT, 9, COLORS['text'])
            self.spacer(12)
        self.spacer(2)

    def paragraph(self, text, font_name=FONT, font_size=9, color=None, indent=0, leading=None):
        leading = leading or font_size + 3
        for line in wrap_text(text, font_name, font_size, CONTENT_WIDTH - indent):
            self.new_page_if_needed(leading)
            self._text(line, self.margin + indent, font_name, font_size, color or COLORS['text'])
            self.spacer(leading)


# =============================================================================
# TICKET REPORT
# =============================================================================

def _yes_no(value):
    return 'Yes' if value else 'No'


def _humanize(value):
    return (value or '').replace('_', ' ')


def _format_people(entries):
    """drivers / witnesses are lists of strings or small dicts."""
    names = []
    for entry in entries or []:
        if isinstance(entry, dict):
            names.append(' '.join(str(value) for value in entry.values() if value))
        elif entry:
            names.append(str(entry))
    return ', '.join(names)


class TicketReportRenderer:

    def __init__(self, ticket, verify_token, generated_at=None, timeline_limit=None):
        self.ticket = ticket
        self.verify_token = verify_token
        self.generated_at = generated_at or timezone.now()
        self.timeline_limit = timeline_limit or settings.REPORT_TIMELINE_LIMIT
        self.sections = []
        self.timeline_entries = []
        self.page = None

    def render(self):
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Incident report {self.ticket.ticket_no}")
        pdf.setAuthor('Race Incident Management')

        self.page = PageBuilder(pdf)
        self.draw_header()
        self.draw_basic_info()
        self.draw_description()
        self.draw_medical()
        self.draw_control()
        self.draw_pit_grid()
        self.draw_safety()
        self.draw_attachments()
        self.draw_timeline()
        self.draw_footer()

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def section(self, title):
        self.sections.append(title)
        self.page.title(title)

    # -------------------------------------------------------------------------
    # Header / footer
    # -------------------------------------------------------------------------

    def draw_header(self):
        page = self.page
        pdf = page.pdf
        band_bottom = PAGE_HEIGHT - HEADER_HEIGHT

        pdf.setFillColor(COLORS['band'])
        pdf.rect(0, band_bottom, PAGE_WIDTH, HEADER_HEIGHT, stroke=0, fill=1)

        pdf.setFillColor(white)
        pdf.setFont(FONT_BOLD, 16)
        pdf.drawString(MARGIN, band_bottom + 38, 'OFFICIAL INCIDENT REPORT')
        pdf.setFont(FONT, 9)
        pdf.drawString(MARGIN, band_bottom + 22, clean_text(f"REF: {self.ticket.ticket_no}"))

        # Status badge sized to its text
        status_text = clean_text(_humanize(self.ticket.status))
        badge_width = stringWidth(status_text, FONT_BOLD, 8) + 16
        badge_x = PAGE_WIDTH - MARGIN - badge_width
        badge_color = COLORS['muted'] if self.ticket.is_closed else COLORS['accent']
        pdf.setFillColor(badge_color)
        pdf.roundRect(badge_x, band_bottom + 30, badge_width, 16, 3, stroke=0, fill=1)
        pdf.setFillColor(white)
        pdf.setFont(FONT_BOLD, 8)
        pdf.drawCentredString(badge_x + badge_width / 2, band_bottom + 35, status_text)

        page.y = band_bottom - 10

    def draw_footer(self):
        page = self.page
        pdf = page.pdf
        page.new_page_if_needed(FOOTER_HEIGHT)
        page.spacer(20)

        pdf.setStrokeColor(COLORS['border'])
        pdf.line(MARGIN, page.y, PAGE_WIDTH - MARGIN, page.y)
        page.spacer(16)

        page.bold_label('AUTHENTICITY VERIFICATION')
        page.paragraph(
            'Verify this report on the incident portal with the token below. '
            'Any modification of this document invalidates it.',
            font_size=7, color=COLORS['muted'],
        )
        page.bold_label(f"TOKEN: {self.verify_token}", size=8, color=COLORS['accent'])
        page.paragraph(
            f"{settings.REPORT_VERIFY_BASE_URL.rstrip('/')}/{self.verify_token}",
            font_size=7, color=COLORS['muted'],
        )
        page.paragraph(
            f"Generated: {self.generated_at.isoformat()}",
            font_size=7, color=COLORS['muted'],
        )

    # -------------------------------------------------------------------------
    # Body
    # -------------------------------------------------------------------------

    def draw_basic_info(self):
        ticket = self.ticket
        creator = ticket.created_by
        page = self.page

        self.section('Basic Information')
        page.label('Event', ticket.event_name)
        page.label('Venue / Location', ' / '.join(filter(None, [ticket.venue, ticket.location])))
        page.label('Type', ticket.get_type_display())
        page.label('Priority', ticket.get_priority_display())
        page.label('Post', ticket.post_number)
        incident_date = ticket.incident_date.isoformat() if ticket.incident_date else ''
        page.label('Incident date / time', ' '.join(filter(None, [incident_date, ticket.incident_time])))
        page.label('Reported', timezone.localtime(ticket.created_at).strftime('%Y-%m-%d %H:%M'))
        page.label('Reporter', ticket.reporter_name or (creator.display_name if creator else ''))
        page.label('Contact', ticket.marshal_mobile or (creator.mobile or creator.email if creator else ''))
        if ticket.marshal_id:
            page.label('Marshal ID', ticket.marshal_id)
        if ticket.assigned_to_id:
            page.label('Assigned to', f"{ticket.assigned_to.display_name} ({_humanize(ticket.assigned_to.role)})")
        if ticket.escalated_to_role:
            page.label('Escalated to', _humanize(ticket.escalated_to_role))
        if ticket.is_closed and ticket.closed_at:
            page.label(
                'Closed',
                f"{timezone.localtime(ticket.closed_at).strftime('%Y-%m-%d %H:%M')} by "
                f"{ticket.closed_by} ({_humanize(ticket.closed_by_role)})"
            )

    def draw_description(self):
        page = self.page
        self.section('Description')
        page.paragraph(self.ticket.description or 'No description provided.')
        drivers = _format_people(self.ticket.drivers)
        witnesses = _format_people(self.ticket.witnesses)
        if drivers or witnesses:
            page.spacer(6)
        if drivers:
            page.label('Drivers involved', drivers)
        if witnesses:
            page.label('Witnesses', witnesses)

    def draw_medical(self):
        report = self.ticket.get_report('medical_report')
        if report is None:
            return
        page = self.page

        self.section('Medical Assessment')
        page.label('Patient', report.patient_full_name)
        page.label('Role', _humanize(report.patient_role))
        page.label('Car / competitor #', report.car_number)
        dob = report.patient_dob.isoformat() if report.patient_dob else '-'
        page.label('Gender / DOB', f"{report.patient_gender or '-'} / {dob}")
        page.label('Injury type', _humanize(report.injury_type))
        page.label('Consciousness', report.consciousness_level)
        page.label('Condition', report.initial_condition)
        page.label('Treatment', report.treatment_given)
        page.label('Transport required', _yes_no(report.transport_required))
        page.label('Summary', report.summary)
        page.label('Recommendation', report.recommendation)

        if report.license_action not in LicenseAction.NO_ACTION:
            self._alert(f"LICENSE ACTION REQUIRED: {report.get_license_action_display().upper()}")

    def _alert(self, text):
        page = self.page
        pdf = page.pdf
        page.new_page_if_needed(40)
        page.spacer(6)
        box_bottom = page.y - 22
        pdf.setFillColor(COLORS['alert_bg'])
        pdf.rect(MARGIN, box_bottom, CONTENT_WIDTH, 30, stroke=0, fill=1)
        pdf.setFillColor(COLORS['alert_text'])
        pdf.rect(MARGIN, box_bottom, 4, 30, stroke=0, fill=1)
        pdf.setFont(FONT_BOLD, 10)
        pdf.drawString(MARGIN + 15, box_bottom + 11, clean_text(text))
        page.y = box_bottom - 10

    def draw_control(self):
        report = self.ticket.get_report('control_report')
        if report is None:
            return
        page = self.page

        self.section('Race Control')
        page.label('Competitor #', report.competitor_number)
        page.label('Violation', report.violation_type)
        page.label('Lap', str(report.lap_number) if report.lap_number else '')
        page.label('Remarks', report.remarks)

    def draw_pit_grid(self):
        report = self.ticket.get_report('pit_grid_report')
        if report is None:
            return
        page = self.page

        self.section('Pit / Grid')
        page.label('Pit #', report.pit_number)
        page.label('Session', report.session_category)
        page.label('Car #', report.car_number)
        page.label('Lap', str(report.lap_number) if report.lap_number is not None else '')
        page.label('Speed limit / recorded', f"{report.speed_limit or '-'} / {report.speed_recorded or '-'}")
        page.label(
            'Radar operator',
            ' / '.join(filter(None, [report.radar_operator_name, report.radar_operator_phone]))
        )
        page.label('Violations', ', '.join(report.violations) or 'None')
        page.label('Remarks', report.remarks)

    def draw_safety(self):
        report = self.ticket.get_report('safety_report')
        if report is None:
            return
        page = self.page

        self.section('Safety')
        page.label('Hazard', _humanize(report.hazard_type))
        page.label('Track status', report.get_track_status_display())
        page.label('Location detail', report.location_detail)
        page.label('Action taken', report.action_taken)

    def draw_attachments(self):
        attachments = list(self.ticket.attachments.all())
        if not attachments:
            return
        self.section('Attachments')
        for attachment in attachments:
            self.page.label(
                attachment.ref_id or attachment.kind,
                f"{attachment.original_name} ({attachment.get_kind_display()})"
            )

    def draw_timeline(self):
        entries = list(
            self.ticket.activity.select_related('actor').order_by('-created_at')[:self.timeline_limit]
        )
        if not entries:
            return
        page = self.page
        pdf = page.pdf

        self.section('Activity Timeline')
        for entry in entries:
            page.new_page_if_needed(30)
            stamp = timezone.localtime(entry.created_at)
            pdf.setFont(FONT, 7)
            pdf.setFillColor(COLORS['muted'])
            pdf.drawRightString(MARGIN + 50, page.y, stamp.strftime('%Y-%m-%d'))
            pdf.drawRightString(MARGIN + 50, page.y - 8, stamp.strftime('%H:%M'))

            pdf.setFillColor(COLORS['border'])
            pdf.circle(MARGIN + 60, page.y + 2, 2, stroke=0, fill=1)

            pdf.setFont(FONT_BOLD, 8)
            pdf.setFillColor(COLORS['text'])
            pdf.drawString(MARGIN + 75, page.y, clean_text(_humanize(entry.action)))
            page.spacer(10)

            actor = entry.actor.display_name if entry.actor_id else 'System'
            page.paragraph(
                f"{actor} - {entry.details}",
                font_size=8, color=COLORS['muted'], indent=75, leading=10,
            )
            page.spacer(6)
            self.timeline_entries.append(entry)
