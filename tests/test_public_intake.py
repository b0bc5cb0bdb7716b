import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from authentication.models import UserRole as R
from notifications.models import Notification
from tickets.models import ActivityAction, Ticket, TicketStatus, TicketType, TrackStatus

pytestmark = pytest.mark.django_db

PUBLIC_URL = '/api/v1/public/submit/'


def _form(**extra):
    data = {
        'marshal_id': 'M-1042',
        'post_number': '12',
        'description': 'Oil on the racing line',
    }
    data.update(extra)
    return data


def test_safety_submission_creates_open_ticket(api_client):
    response = api_client.post(f"{PUBLIC_URL}safety/", _form(is_track_blocked='true', hazard_type='OIL'))

    assert response.status_code == 201
    assert response.data['success'] is True
    assert response.data['message'] == 'Ticket created successfully'

    ticket = Ticket.objects.get(pk=response.data['id'])
    assert ticket.ticket_no == response.data['ticket_no']
    assert ticket.type == TicketType.SAFETY
    assert ticket.status == TicketStatus.OPEN
    assert ticket.location == 'Post 12'
    assert ticket.incident_date is not None
    assert ticket.created_by is None
    assert ticket.safety_report.track_status == TrackStatus.RED
    assert ticket.activity.get().action == ActivityAction.TICKET_CREATED


def test_submission_links_known_marshal(api_client, sport_marshal):
    response = api_client.post(f"{PUBLIC_URL}control/", _form(competitor_number='44', lap_number='7'))
    ticket = Ticket.objects.get(pk=response.data['id'])

    assert ticket.created_by == sport_marshal
    assert ticket.type == TicketType.SPORT
    assert ticket.control_report.lap_number == 7


def test_control_lap_number_falls_back_to_zero(api_client):
    response = api_client.post(f"{PUBLIC_URL}control/", _form(lap_number='last lap'))
    assert Ticket.objects.get(pk=response.data['id']).control_report.lap_number == 0


def test_medical_submission(api_client):
    response = api_client.post(f"{PUBLIC_URL}medical/", _form(
        patient_name='A. Driver', injury_type='Burns', conscious='false',
    ))
    report = Ticket.objects.get(pk=response.data['id']).medical_report
    assert report.patient_name == 'A. Driver'
    assert report.consciousness_level == 'Unconscious'
    assert report.summary == 'Oil on the racing line'


def test_missing_required_fields(api_client):
    response = api_client.post(f"{PUBLIC_URL}safety/", _form(post_number=''))
    assert response.status_code == 400
    assert response.data['message'] == 'Missing required fields (Marshal ID, Post #, Description)'
    assert not Ticket.objects.exists()


def test_files_become_attachments(api_client):
    response = api_client.post(f"{PUBLIC_URL}safety/", _form(files=[
        SimpleUploadedFile('oil.jpg', b'jpeg', content_type='image/jpeg'),
        SimpleUploadedFile('clip.mp4', b'mp4', content_type='video/mp4'),
    ]), format='multipart')
    ticket = Ticket.objects.get(pk=response.data['id'])
    assert sorted(a.ref_id for a in ticket.attachments.all()) == [
        f"{ticket.ticket_no}-A1", f"{ticket.ticket_no}-A2",
    ]
    assert all(a.uploaded_by is None for a in ticket.attachments.all())


def test_too_many_files(api_client, settings):
    settings.PUBLIC_INTAKE_MAX_FILES = 1
    response = api_client.post(f"{PUBLIC_URL}safety/", _form(files=[
        SimpleUploadedFile('a.jpg', b'a', content_type='image/jpeg'),
        SimpleUploadedFile('b.jpg', b'b', content_type='image/jpeg'),
    ]), format='multipart')
    assert response.status_code == 400
    assert not Ticket.objects.exists()


def test_department_is_notified(api_client, make_user):
    safety_op = make_user(R.SAFETY_OP_TEAM)
    make_user(R.CONTROL_OP_TEAM)

    api_client.post(f"{PUBLIC_URL}safety/", _form())

    assert list(Notification.objects.values_list('recipient', flat=True)) == [safety_op.id]


def test_oversized_upload_saves_nothing(api_client, settings, make_user):
    safety_op = make_user(R.SAFETY_OP_TEAM)
    settings.ATTACHMENT_MAX_UPLOAD_SIZE = 10
    response = api_client.post(f"{PUBLIC_URL}safety/", _form(files=[
        SimpleUploadedFile('oil.jpg', b'x' * 100, content_type='image/jpeg'),
    ]), format='multipart')

    assert response.status_code == 400
    assert response.data['code'] == 'VALIDATION_ERROR'
    assert not Ticket.all_objects.exists()
    assert not Notification.objects.filter(recipient=safety_op).exists()
