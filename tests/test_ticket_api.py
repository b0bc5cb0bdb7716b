import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from authentication.models import UserRole as R
from tickets.models import ActivityAction, Ticket, TicketStatus, TicketType
from tickets.workflow import TicketWorkflow

pytestmark = pytest.mark.django_db

TICKETS_URL = '/api/v1/tickets/'


def ticket_url(ticket, action=''):
    url = f"{TICKETS_URL}{ticket.id}/"
    return f"{url}{action}/" if action else url


def test_unauthenticated_requests_are_rejected(api_client):
    response = api_client.get(TICKETS_URL)
    assert response.status_code == 401
    assert response.data['code'] == 'UNAUTHORIZED'


def test_create_ticket(client_for, sport_marshal):
    response = client_for(sport_marshal).post(TICKETS_URL, {
        'type': TicketType.SPORT,
        'description': 'Car 44 spun at turn 3',
        'location': 'Turn 3',
        'control_report': {'competitor_number': '44', 'lap_number': 7},
    }, format='json')

    assert response.status_code == 201
    assert response.data['status'] == TicketStatus.OPEN
    assert response.data['type'] == TicketType.SPORT
    assert response.data['control_report']['competitor_number'] == '44'
    assert response.data['medical_report'] is None
    assert [entry['action'] for entry in response.data['activity']] == [ActivityAction.TICKET_CREATED]


def test_create_draft_and_submit(client_for, sport_marshal):
    client = client_for(sport_marshal)
    response = client.post(TICKETS_URL, {'description': 'x', 'save_as_draft': True}, format='json')
    assert response.data['status'] == TicketStatus.DRAFT
    ticket = Ticket.objects.get(pk=response.data['id'])

    response = client.post(ticket_url(ticket, 'submit'))
    assert response.status_code == 200
    assert response.data['status'] == TicketStatus.OPEN

    response = client.post(ticket_url(ticket, 'submit'))
    assert response.status_code == 400
    assert response.data == {'message': 'Ticket is already submitted', 'code': 'CONFLICT'}


def test_list_is_filtered_per_role(client_for, sport_marshal, make_user):
    other_marshal = make_user(R.SPORT_MARSHAL)
    TicketWorkflow.create_ticket(sport_marshal, TicketType.SPORT, {'description': 'mine'})
    TicketWorkflow.create_ticket(other_marshal, TicketType.SPORT, {'description': 'theirs'})
    TicketWorkflow.create_ticket(make_user(R.SAFETY_MARSHAL), TicketType.SAFETY, {'description': 'oil'})

    response = client_for(sport_marshal).get(TICKETS_URL)
    assert response.status_code == 200
    assert [t['description'] for t in response.data['results']] == ['mine']

    response = client_for(make_user(R.CONTROL_OP_TEAM)).get(TICKETS_URL)
    assert response.data['count'] == 2

    response = client_for(make_user(R.ADMIN)).get(TICKETS_URL, {'type': TicketType.SAFETY})
    assert [t['description'] for t in response.data['results']] == ['oil']


def test_list_search(client_for, sport_marshal, admin_user):
    TicketWorkflow.create_ticket(sport_marshal, TicketType.SPORT, {'description': 'Car 44 spun'})
    TicketWorkflow.create_ticket(sport_marshal, TicketType.SPORT, {'description': 'Debris at turn 1'})

    response = client_for(admin_user).get(TICKETS_URL, {'search': 'debris'})
    assert [t['description'] for t in response.data['results']] == ['Debris at turn 1']


def test_draft_detail_forbidden_for_others(client_for, sport_marshal, control_op, admin_user):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    assert client_for(sport_marshal).get(ticket_url(draft)).status_code == 200
    for user in (control_op, admin_user):
        response = client_for(user).get(ticket_url(draft))
        assert response.status_code == 403
        assert response.data['code'] == 'FORBIDDEN'


def test_draft_cannot_be_read_through_update(client_for, sport_marshal, admin_user):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'secret draft'}, save_as_draft=True
    )
    response = client_for(admin_user).put(ticket_url(draft), {}, format='json')

    assert response.status_code == 403
    assert 'description' not in response.data


def test_draft_submitted_only_through_submit(client_for, sport_marshal):
    client = client_for(sport_marshal)
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    response = client.patch(ticket_url(draft), {'status': TicketStatus.OPEN}, format='json')

    assert response.status_code == 400
    assert response.data['code'] == 'CONFLICT'
    draft.refresh_from_db()
    assert draft.status == TicketStatus.DRAFT


def test_detail_not_found(client_for, admin_user):
    response = client_for(admin_user).get(f"{TICKETS_URL}00000000-0000-0000-0000-000000000000/")
    assert response.status_code == 404
    assert response.data == {'message': 'Ticket not found.', 'code': 'NOT_FOUND'}


def test_creator_cannot_read_foreign_ticket(client_for, sport_ticket, make_user):
    response = client_for(make_user(R.SAFETY_MARSHAL)).get(ticket_url(sport_ticket))
    assert response.status_code == 403


def test_update_ticket(client_for, sport_ticket, control_op):
    response = client_for(control_op).patch(ticket_url(sport_ticket), {
        'status': TicketStatus.UNDER_REVIEW,
        'priority': 'HIGH',
    }, format='json')
    assert response.status_code == 200
    assert response.data['status'] == TicketStatus.UNDER_REVIEW
    assert response.data['priority'] == 'HIGH'
    assert response.data['can_edit'] is True


def test_update_forbidden_for_creator(client_for, sport_ticket, sport_marshal):
    response = client_for(sport_marshal).put(ticket_url(sport_ticket), {'description': 'edit'}, format='json')
    assert response.status_code == 403


def test_escalate_and_close(client_for, sport_ticket, control_op, chief_of_control):
    response = client_for(control_op).post(ticket_url(sport_ticket, 'escalate'), {
        'to_role': R.CHIEF_OF_CONTROL,
        'reason': 'needs ruling',
    }, format='json')
    assert response.status_code == 200
    assert response.data['status'] == TicketStatus.ESCALATED
    assert response.data['escalated_to_role'] == R.CHIEF_OF_CONTROL

    response = client_for(chief_of_control).post(ticket_url(sport_ticket, 'close'), {'notes': 'Warning issued'})
    assert response.status_code == 200
    assert response.data['status'] == TicketStatus.CLOSED
    assert response.data['closed_by_role'] == R.CHIEF_OF_CONTROL


def test_escalation_outside_graph_is_forbidden(client_for, sport_ticket, control_op):
    response = client_for(control_op).post(ticket_url(sport_ticket, 'escalate'), {
        'to_role': R.JUDGEMENT,
    }, format='json')
    assert response.status_code == 403
    assert R.CONTROL_OP_TEAM in response.data['message']
    assert R.JUDGEMENT in response.data['message']


def test_close_forbidden_for_op_team(client_for, sport_ticket, control_op):
    response = client_for(control_op).post(ticket_url(sport_ticket, 'close'))
    assert response.status_code == 403
    assert response.data['message'] == 'Not authorized to close tickets'


def test_reopen_open_ticket(client_for, sport_ticket, chief_of_control):
    response = client_for(chief_of_control).post(ticket_url(sport_ticket, 'reopen'))
    assert response.status_code == 400
    assert response.data['message'] == 'Ticket is not closed.'


def test_transfer_and_return(client_for, sport_ticket, chief_of_control, make_user):
    scrutineer = make_user(R.SCRUTINEERS)
    judge = make_user(R.JUDGEMENT)
    TicketWorkflow.escalate(sport_ticket, chief_of_control, R.SCRUTINEERS, assigned_to_id=scrutineer.id)

    response = client_for(scrutineer).post(ticket_url(sport_ticket, 'transfer'), {
        'to_role': R.JUDGEMENT,
        'assigned_to_id': str(judge.id),
    }, format='json')
    assert response.status_code == 200
    assert response.data['status'] == TicketStatus.AWAITING_DECISION
    assert response.data['assigned_to']['id'] == str(judge.id)

    response = client_for(judge).post(ticket_url(sport_ticket, 'return'), {
        'assigned_to_id': str(chief_of_control.id),
        'reason': 'Decision taken',
    }, format='json')
    assert response.status_code == 200
    assert response.data['status'] == TicketStatus.RETURNED_TO_CONTROL


def test_comments(client_for, sport_ticket, control_op):
    client = client_for(control_op)
    response = client.post(ticket_url(sport_ticket, 'comments'), {'text': 'Marshal confirmed'})
    assert response.status_code == 201
    assert response.data['action'] == ActivityAction.COMMENT_ADDED
    assert response.data['actor']['name'] == 'Control Op'

    response = client.get(ticket_url(sport_ticket, 'comments'))
    assert [c['details'] for c in response.data] == ['Marshal confirmed']

    response = client.post(ticket_url(sport_ticket, 'comments'), {'text': ''})
    assert response.status_code == 400
    assert response.data['code'] == 'VALIDATION_ERROR'


def test_attachments_upload(client_for, sport_ticket, control_op):
    client = client_for(control_op)
    response = client.post(ticket_url(sport_ticket, 'attachments'), {
        'files': [SimpleUploadedFile('turn3.jpg', b'jpeg-bytes', content_type='image/jpeg')],
    }, format='multipart')
    assert response.status_code == 201
    assert response.data[0]['ref_id'] == f"{sport_ticket.ticket_no}-A1"
    assert response.data[0]['kind'] == 'IMAGE'
    assert response.data[0]['url'].startswith('http://testserver/uploads/attachments/')

    response = client.post(ticket_url(sport_ticket, 'attachments'), {}, format='multipart')
    assert response.status_code == 400


def test_medical_report_endpoint(client_for, make_user):
    ticket = TicketWorkflow.create_ticket(make_user(R.MEDICAL_MARSHAL), TicketType.MEDICAL, {'description': 'x'})
    assessor = make_user(R.MEDICAL_OP_TEAM)
    url = ticket_url(ticket, 'medical-report')

    assert client_for(assessor).get(url).status_code == 404

    response = client_for(make_user(R.CONTROL_OP_TEAM)).post(url, {'summary': 'x'}, format='json')
    assert response.status_code == 403

    response = client_for(assessor).post(url, {
        'summary': 'Mild concussion',
        'recommendation': 'Not fit to race today',
        'license_action': 'SUSPEND',
    }, format='json')
    assert response.status_code == 201
    assert response.data['license_action'] == 'SUSPEND'
    assert response.data['author_name'] == assessor.name

    ticket.refresh_from_db()
    assert ticket.status == TicketStatus.ESCALATED
