import re

import pytest
from django.contrib import admin
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from authentication.models import UserRole as R
from core.exceptions import (
    ResourceNotFound,
    WorkflowConflict,
    WorkflowForbidden,
    WorkflowValidationError,
)
from tickets.admin import TicketAdmin
from tickets.models import (
    ActivityAction,
    ActivityLog,
    AttachmentKind,
    LicenseAction,
    Ticket,
    TicketStatus,
    TicketType,
)
from tickets.workflow import TicketWorkflow, pick_report

pytestmark = pytest.mark.django_db


def _actions(ticket):
    return list(ticket.activity.order_by('created_at').values_list('action', flat=True))


# =============================================================================
# CREATION
# =============================================================================

def test_create_ticket_opens_with_number_and_activity(sport_ticket, sport_marshal):
    assert sport_ticket.status == TicketStatus.OPEN
    assert sport_ticket.type == TicketType.SPORT
    assert re.fullmatch(rf"INC-{timezone.now().year}-\d{{5}}", sport_ticket.ticket_no)
    assert _actions(sport_ticket) == [ActivityAction.TICKET_CREATED]
    assert sport_ticket.created_by == sport_marshal


def test_create_ticket_defaults_reporter_from_actor(sport_ticket):
    assert sport_ticket.reporter_name == 'Sport Marshal'
    assert sport_ticket.marshal_mobile == '555-0100'
    assert sport_ticket.marshal_id == 'M-1042'


def test_create_ticket_uses_primary_type_when_requested_one_is_not_allowed(sport_marshal):
    ticket = TicketWorkflow.create_ticket(sport_marshal, TicketType.MEDICAL, {'description': 'x'})
    assert ticket.type == TicketType.SPORT


def test_create_ticket_refused_for_decision_makers(make_user):
    judge = make_user(R.JUDGEMENT)
    with pytest.raises(WorkflowForbidden, match='cannot create tickets'):
        TicketWorkflow.create_ticket(judge, TicketType.SPORT, {'description': 'x'})
    assert not Ticket.objects.exists()


def test_create_ticket_keeps_only_the_report_of_its_type(make_user):
    medic = make_user(R.MEDICAL_MARSHAL)
    ticket = TicketWorkflow.create_ticket(
        medic,
        TicketType.MEDICAL,
        {'description': 'Driver dizzy'},
        reports={
            'medical_report': {'patient_name': 'A. Driver', 'violation_type': 'leak', 'bogus': 1},
            'control_report': {'competitor_number': '7'},
        },
    )
    assert ticket.medical_report.patient_name == 'A. Driver'
    assert ticket.medical_report.author == medic
    assert ticket.get_report('control_report') is None


def test_pick_report_prefers_pit_grid_for_sport():
    name, fields = pick_report(TicketType.SPORT, {
        'control_report': {'remarks': 'a'},
        'pit_grid_report': {'car_number': '12', 'patient_name': 'x'},
    })
    assert name == 'pit_grid_report'
    assert fields == {'car_number': '12'}
    assert pick_report(TicketType.SAFETY, {'medical_report': {'summary': 'x'}}) == (None, None)


def test_ticket_numbers_probe_past_existing_numbers(sport_marshal):
    year = timezone.now().year
    Ticket.objects.create(ticket_no=f"INC-{year}-00002", type=TicketType.SPORT)

    ticket = TicketWorkflow.create_ticket(sport_marshal, TicketType.SPORT, {'description': 'x'})

    assert ticket.ticket_no == f"INC-{year}-00003"


def test_ticket_number_retries_after_concurrent_allocation(sport_marshal, monkeypatch):
    year = timezone.now().year
    taken = f"INC-{year}-00001"
    Ticket.objects.create(ticket_no=taken, type=TicketType.SPORT)

    def racy_number(offset=1):
        return taken if offset == 1 else f"INC-{year}-{offset + 10:05d}"

    monkeypatch.setattr(Ticket, 'generate_ticket_number', staticmethod(racy_number))

    ticket = TicketWorkflow.create_ticket(sport_marshal, TicketType.SPORT, {'description': 'x'})

    assert ticket.ticket_no == f"INC-{year}-00012"
    assert Ticket.objects.count() == 2


def test_ticket_numbers_are_unique(sport_marshal):
    numbers = {
        TicketWorkflow.create_ticket(sport_marshal, TicketType.SPORT, {'description': str(n)}).ticket_no
        for n in range(5)
    }
    assert len(numbers) == 5


# =============================================================================
# DRAFTS
# =============================================================================

def test_draft_is_private_to_its_creator(sport_marshal, control_op, admin_user):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    assert draft.status == TicketStatus.DRAFT
    TicketWorkflow.ensure_can_view(sport_marshal, draft)
    for other in (control_op, admin_user):
        with pytest.raises(WorkflowForbidden, match='Draft tickets are private'):
            TicketWorkflow.ensure_can_view(other, draft)


def test_submit_twice_conflicts(sport_marshal):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    TicketWorkflow.submit(draft, sport_marshal)
    assert draft.status == TicketStatus.OPEN

    with pytest.raises(WorkflowConflict) as excinfo:
        TicketWorkflow.submit(draft, sport_marshal)
    assert excinfo.value.status_code == 400
    assert _actions(draft) == [ActivityAction.TICKET_CREATED, ActivityAction.TICKET_SUBMITTED]


def test_only_creator_submits(sport_marshal, admin_user):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.submit(draft, admin_user)


# =============================================================================
# UPDATE
# =============================================================================

def test_processor_updates_fields_and_status(sport_ticket, control_op):
    TicketWorkflow.update_ticket(
        sport_ticket, control_op,
        {'description': 'Car 44 spun, rejoined', 'status': TicketStatus.UNDER_REVIEW},
    )
    sport_ticket.refresh_from_db()
    assert sport_ticket.description == 'Car 44 spun, rejoined'
    assert sport_ticket.status == TicketStatus.UNDER_REVIEW
    entry = sport_ticket.activity.get(action=ActivityAction.TICKET_UPDATED)
    assert entry.details == 'Details updated. Status: OPEN -> UNDER_REVIEW'


def test_update_cannot_close(sport_ticket, control_op):
    with pytest.raises(WorkflowConflict):
        TicketWorkflow.update_ticket(sport_ticket, control_op, {'status': TicketStatus.CLOSED})


def test_creator_cannot_edit_submitted_ticket(sport_ticket, sport_marshal):
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.update_ticket(sport_ticket, sport_marshal, {'description': 'changed'})


def test_other_department_cannot_edit(sport_ticket, make_user):
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.update_ticket(sport_ticket, make_user(R.MEDICAL_OP_TEAM), {'description': 'x'})


def test_creator_edits_own_draft(sport_marshal):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    TicketWorkflow.update_ticket(draft, sport_marshal, {'location': 'Turn 9'})
    draft.refresh_from_db()
    assert draft.location == 'Turn 9'
    assert draft.status == TicketStatus.DRAFT


def test_edit_cannot_submit_a_draft(sport_marshal, admin_user):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    for actor in (sport_marshal, admin_user):
        with pytest.raises(WorkflowConflict):
            TicketWorkflow.update_ticket(draft, actor, {'status': TicketStatus.OPEN})

    draft.refresh_from_db()
    assert draft.status == TicketStatus.DRAFT
    assert _actions(draft) == [ActivityAction.TICKET_CREATED]


def test_update_refuses_a_second_report_type(sport_marshal, control_op):
    ticket = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'},
        reports={'control_report': {'competitor_number': '44'}},
    )
    with pytest.raises(WorkflowValidationError, match='already has'):
        TicketWorkflow.update_ticket(
            ticket, control_op, {}, reports={'pit_grid_report': {'car_number': '44'}}
        )


def test_update_upserts_existing_report(sport_marshal, control_op):
    ticket = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'},
        reports={'control_report': {'competitor_number': '44'}},
    )
    TicketWorkflow.update_ticket(ticket, control_op, {}, reports={'control_report': {'remarks': 'seen on camera'}})
    report = Ticket.objects.get(pk=ticket.pk).control_report
    assert report.competitor_number == '44'
    assert report.remarks == 'seen on camera'
    assert report.author == sport_marshal


# =============================================================================
# ESCALATE / TRANSFER / RETURN
# =============================================================================

def test_escalate_outside_graph_names_both_roles(sport_ticket, make_user):
    deputy_medical = make_user(R.DEPUTY_MEDICAL_OFFICER)
    with pytest.raises(WorkflowForbidden) as excinfo:
        TicketWorkflow.escalate(sport_ticket, deputy_medical, R.SCRUTINEERS)
    message = str(excinfo.value.detail)
    assert R.DEPUTY_MEDICAL_OFFICER in message
    assert R.SCRUTINEERS in message
    assert excinfo.value.status_code == 403


def test_escalate_requires_a_known_role(sport_ticket, control_op):
    with pytest.raises(WorkflowValidationError):
        TicketWorkflow.escalate(sport_ticket, control_op, 'PIT_CREW')


def test_escalate_with_assignee_checks_role(sport_ticket, control_op, chief_of_control, make_user):
    with pytest.raises(WorkflowValidationError):
        TicketWorkflow.escalate(
            sport_ticket, control_op, R.CHIEF_OF_CONTROL,
            assigned_to_id=make_user(R.SCRUTINEERS).id,
        )
    TicketWorkflow.escalate(
        sport_ticket, control_op, R.CHIEF_OF_CONTROL, assigned_to_id=chief_of_control.id
    )
    assert sport_ticket.assigned_to == chief_of_control


def test_escalate_to_unknown_user(sport_ticket, control_op):
    with pytest.raises(ResourceNotFound):
        TicketWorkflow.escalate(
            sport_ticket, control_op, R.CHIEF_OF_CONTROL,
            assigned_to_id='00000000-0000-0000-0000-000000000000',
        )


def test_admin_escalates_anywhere(sport_ticket, admin_user):
    TicketWorkflow.escalate(sport_ticket, admin_user, R.SAFETY_OFFICER_CHIEF, reason='fire')
    assert sport_ticket.status == TicketStatus.ESCALATED
    assert sport_ticket.escalated_to_role == R.SAFETY_OFFICER_CHIEF


def test_transfer_and_return_between_decision_makers(sport_ticket, chief_of_control, make_user):
    scrutineer = make_user(R.SCRUTINEERS)
    judge = make_user(R.JUDGEMENT)
    TicketWorkflow.escalate(sport_ticket, chief_of_control, R.SCRUTINEERS, assigned_to_id=scrutineer.id)

    TicketWorkflow.transfer(sport_ticket, scrutineer, R.JUDGEMENT, assigned_to_id=judge.id, reason='checked')
    assert sport_ticket.status == TicketStatus.AWAITING_DECISION
    assert sport_ticket.assigned_to == judge

    TicketWorkflow.return_to_control(sport_ticket, judge, assigned_to_id=chief_of_control.id)
    assert sport_ticket.status == TicketStatus.RETURNED_TO_CONTROL
    assert sport_ticket.assigned_to == chief_of_control
    assert _actions(sport_ticket)[-2:] == [ActivityAction.TICKET_TRANSFERRED, ActivityAction.TICKET_RETURNED]


def test_transfer_rules(sport_ticket, control_op, make_user):
    scrutineer = make_user(R.SCRUTINEERS)
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.transfer(sport_ticket, control_op, R.JUDGEMENT)
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.transfer(sport_ticket, scrutineer, R.SCRUTINEERS)
    with pytest.raises(WorkflowValidationError):
        TicketWorkflow.transfer(sport_ticket, scrutineer, R.JUDGEMENT)


def test_return_only_to_control_officers(sport_ticket, control_op, make_user):
    judge = make_user(R.JUDGEMENT)
    with pytest.raises(WorkflowValidationError):
        TicketWorkflow.return_to_control(sport_ticket, judge, assigned_to_id=control_op.id)
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.return_to_control(sport_ticket, control_op, assigned_to_id=control_op.id)


# =============================================================================
# CLOSE / REOPEN
# =============================================================================

@pytest.mark.parametrize('role', [R.SPORT_MARSHAL, R.CONTROL_OP_TEAM, R.MEDICAL_OP_TEAM, R.SAFETY_OP_TEAM])
def test_close_refused_outside_allow_list(sport_ticket, make_user, role):
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.close(sport_ticket, make_user(role))
    sport_ticket.refresh_from_db()
    assert sport_ticket.status == TicketStatus.OPEN


def test_close_stamps_closer_and_refuses_second_close(sport_ticket, chief_of_control):
    TicketWorkflow.close(sport_ticket, chief_of_control, notes='Penalty applied')
    sport_ticket.refresh_from_db()
    assert sport_ticket.status == TicketStatus.CLOSED
    assert sport_ticket.closed_by == 'Chief Control'
    assert sport_ticket.closed_by_role == R.CHIEF_OF_CONTROL
    assert sport_ticket.closed_at is not None

    with pytest.raises(WorkflowConflict):
        TicketWorkflow.close(sport_ticket, chief_of_control)


def test_decision_maker_closes_only_own_queue(sport_ticket, chief_of_control, make_user):
    judge = make_user(R.JUDGEMENT)
    with pytest.raises(WorkflowForbidden, match='escalated or assigned to you'):
        TicketWorkflow.close(sport_ticket, judge)

    TicketWorkflow.escalate(sport_ticket, chief_of_control, R.JUDGEMENT)
    TicketWorkflow.close(sport_ticket, judge)
    assert sport_ticket.status == TicketStatus.CLOSED


def test_close_draft_conflicts(sport_marshal, admin_user):
    draft = TicketWorkflow.create_ticket(
        sport_marshal, TicketType.SPORT, {'description': 'x'}, save_as_draft=True
    )
    with pytest.raises(WorkflowConflict):
        TicketWorkflow.close(draft, admin_user)


def test_reopen_requires_closed_ticket(sport_ticket, chief_of_control):
    with pytest.raises(WorkflowConflict, match='Ticket is not closed.'):
        TicketWorkflow.reopen(sport_ticket, chief_of_control)


def test_reopen_only_by_oversight(sport_ticket, chief_of_control, make_user):
    TicketWorkflow.close(sport_ticket, chief_of_control)
    with pytest.raises(WorkflowForbidden):
        TicketWorkflow.reopen(sport_ticket, make_user(R.DEPUTY_CONTROL_OP_OFFICER))


def test_chief_reopens_to_self_and_clears_closure(sport_ticket, chief_of_control):
    TicketWorkflow.close(sport_ticket, chief_of_control)
    TicketWorkflow.reopen(sport_ticket, chief_of_control, reason='new evidence')

    sport_ticket.refresh_from_db()
    assert sport_ticket.status == TicketStatus.REOPENED
    assert sport_ticket.assigned_to == chief_of_control
    assert sport_ticket.closed_at is None
    assert sport_ticket.closed_by == ''


def test_admin_reopen_assigns_chief_of_control(sport_ticket, admin_user, chief_of_control):
    TicketWorkflow.close(sport_ticket, admin_user)
    TicketWorkflow.reopen(sport_ticket, admin_user)
    assert sport_ticket.assigned_to == chief_of_control


def test_admin_reopen_without_chief_fails(sport_ticket, admin_user):
    TicketWorkflow.close(sport_ticket, admin_user)
    with pytest.raises(ResourceNotFound):
        TicketWorkflow.reopen(sport_ticket, admin_user)
    sport_ticket.refresh_from_db()
    assert sport_ticket.status == TicketStatus.CLOSED


def test_reopened_ticket_can_be_closed_again(sport_ticket, chief_of_control):
    TicketWorkflow.close(sport_ticket, chief_of_control)
    TicketWorkflow.reopen(sport_ticket, chief_of_control)
    TicketWorkflow.close(sport_ticket, chief_of_control)
    assert sport_ticket.status == TicketStatus.CLOSED


# =============================================================================
# MEDICAL ASSESSMENT
# =============================================================================

@pytest.fixture
def medical_ticket(make_user):
    return TicketWorkflow.create_ticket(
        make_user(R.MEDICAL_MARSHAL), TicketType.MEDICAL, {'description': 'Driver dizzy'}
    )


def test_suspension_escalates(medical_ticket, make_user):
    assessor = make_user(R.MEDICAL_OP_TEAM)
    report = TicketWorkflow.submit_medical_report(
        medical_ticket, assessor,
        {'summary': 'Concussion', 'license_action': LicenseAction.SUSPEND},
    )
    medical_ticket.refresh_from_db()
    assert medical_ticket.status == TicketStatus.ESCALATED
    assert report.license_action == LicenseAction.SUSPEND
    assert _actions(medical_ticket)[-1] == ActivityAction.MEDICAL_REPORT_SUBMITTED


def test_assessment_without_action_awaits_decision(medical_ticket, make_user):
    report = TicketWorkflow.submit_medical_report(medical_ticket, make_user(R.MEDICAL_OP_TEAM), {'summary': 'Fine'})
    assert report.license_action == LicenseAction.NONE
    assert medical_ticket.status == TicketStatus.AWAITING_DECISION


def test_medical_report_update_keeps_original_author(medical_ticket, make_user):
    first = make_user(R.MEDICAL_OP_TEAM)
    second = make_user(R.CHIEF_MEDICAL_OFFICER)
    TicketWorkflow.submit_medical_report(medical_ticket, first, {'summary': 'First look'})
    report = TicketWorkflow.submit_medical_report(medical_ticket, second, {'summary': 'Reviewed'})
    assert report.summary == 'Reviewed'
    assert report.author == first


def test_medical_report_on_sport_ticket_conflicts(sport_ticket, make_user):
    with pytest.raises(WorkflowConflict):
        TicketWorkflow.submit_medical_report(sport_ticket, make_user(R.MEDICAL_OP_TEAM), {'summary': 'x'})


# =============================================================================
# COMMENTS, ATTACHMENTS, ACTIVITY LOG
# =============================================================================

def test_comment_is_a_timeline_entry(sport_ticket, control_op):
    entry = TicketWorkflow.add_comment(sport_ticket, control_op, '  Debris cleared  ')
    assert entry.action == ActivityAction.COMMENT_ADDED
    assert entry.details == 'Debris cleared'
    with pytest.raises(WorkflowValidationError):
        TicketWorkflow.add_comment(sport_ticket, control_op, '   ')


def test_attachments_get_sequential_references(sport_ticket, control_op):
    first = TicketWorkflow.add_attachments(sport_ticket, control_op, [
        SimpleUploadedFile('turn3.jpg', b'jpeg', content_type='image/jpeg'),
        SimpleUploadedFile('onboard.mp4', b'mp4', content_type='video/mp4'),
    ])
    second = TicketWorkflow.add_attachments(sport_ticket, control_op, [
        SimpleUploadedFile('notes.pdf', b'pdf', content_type='application/pdf'),
    ])
    assert [a.ref_id for a in first + second] == [
        f"{sport_ticket.ticket_no}-A1", f"{sport_ticket.ticket_no}-A2", f"{sport_ticket.ticket_no}-A3",
    ]
    assert [a.kind for a in first + second] == [AttachmentKind.IMAGE, AttachmentKind.VIDEO, AttachmentKind.DOCUMENT]


def test_attachment_size_limit(sport_ticket, control_op, settings):
    settings.ATTACHMENT_MAX_UPLOAD_SIZE = 4
    with pytest.raises(WorkflowValidationError):
        TicketWorkflow.add_attachments(sport_ticket, control_op, [
            SimpleUploadedFile('big.jpg', b'too large', content_type='image/jpeg'),
        ])
    assert not sport_ticket.attachments.exists()


def test_closed_ticket_takes_no_comments(sport_ticket, chief_of_control):
    TicketWorkflow.close(sport_ticket, chief_of_control)
    with pytest.raises(WorkflowConflict):
        TicketWorkflow.add_comment(sport_ticket, chief_of_control, 'late note')


def test_activity_log_is_append_only(sport_ticket):
    entry = sport_ticket.activity.get()
    entry.details = 'rewritten'
    with pytest.raises(PermissionError):
        entry.save()
    with pytest.raises(PermissionError):
        entry.delete()
    with pytest.raises(PermissionError):
        ActivityLog.objects.filter(ticket=sport_ticket).update(details='x')
    with pytest.raises(PermissionError):
        ActivityLog.objects.filter(ticket=sport_ticket).delete()


# =============================================================================
# END TO END
# =============================================================================

def test_marshal_to_chief_scenario(sport_ticket, control_op, chief_of_control):
    TicketWorkflow.escalate(sport_ticket, control_op, R.CHIEF_OF_CONTROL, reason='needs ruling')
    sport_ticket.refresh_from_db()
    assert sport_ticket.status == TicketStatus.ESCALATED
    assert sport_ticket.escalated_to_role == R.CHIEF_OF_CONTROL

    TicketWorkflow.close(sport_ticket, chief_of_control)
    sport_ticket.refresh_from_db()
    assert sport_ticket.status == TicketStatus.CLOSED
    assert sport_ticket.closed_by_role == R.CHIEF_OF_CONTROL

    assert _actions(sport_ticket) == [
        ActivityAction.TICKET_CREATED,
        ActivityAction.TICKET_ESCALATED,
        ActivityAction.TICKET_CLOSED,
    ]
    escalation = sport_ticket.activity.get(action=ActivityAction.TICKET_ESCALATED)
    assert 'needs ruling' in escalation.details


def test_admin_delete_is_soft_and_restorable(sport_ticket, rf):
    ticket_admin = TicketAdmin(Ticket, admin.site)
    request = rf.post('/admin/tickets/ticket/')

    ticket_admin.delete_queryset(request, Ticket.objects.filter(pk=sport_ticket.pk))
    assert not Ticket.objects.filter(pk=sport_ticket.pk).exists()
    deleted = Ticket.all_objects.get(pk=sport_ticket.pk)
    assert deleted.is_deleted and deleted.deleted_at is not None
    assert deleted.activity.count() == 1

    ticket_admin.restore_tickets(request, Ticket.all_objects.filter(pk=sport_ticket.pk))
    restored = Ticket.objects.get(pk=sport_ticket.pk)
    assert restored.deleted_at is None
