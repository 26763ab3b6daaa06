from datetime import date, time

import pytest
from sqlalchemy import event as sa_event
from sqlalchemy.exc import DataError

from shelter import db
from shelter.errors import InvalidStatus, InvalidTransition, MissingReason, NotFound, ValidationError
from shelter.models import (AbuseReport, AdoptionAppointment, AdoptionRequest, AppointmentStatus, Notification,
                            ReviewStatus)
from shelter.services import workflow_service
from shelter.services.workflow_service import ABUSE_REPORT, ADOPTION_APPOINTMENT, ADOPTION_REQUEST, transition

from conftest import published


@pytest.fixture
def reserved_request(adopter, make_animal):
    animal = make_animal(is_temporarily_adopted=True)
    adoption_request = AdoptionRequest(
        user_id=adopter.id, animal_id=animal.id,
        question1='Yes', question2='A house with a yard', question3='Daily walks',
        valid_id='adoption_files/id.png', selfie_with_id='adoption_files/selfie.png',
    )
    db.session.add(adoption_request)
    db.session.commit()
    return adoption_request


@pytest.fixture
def report(adopter):
    report = AbuseReport(user_id=adopter.id, description='Dog left chained in the rain',
                         photos=['abuse_photos/evidence.jpg'])
    db.session.add(report)
    db.session.commit()
    return report


@pytest.fixture
def appointment(reserved_request):
    reserved_request.status = ReviewStatus.APPROVED
    appointment = AdoptionAppointment(adoption_request_id=reserved_request.id,
                                      appointment_date=date(2099, 5, 1), appointment_time=time(15, 0))
    db.session.add(appointment)
    db.session.commit()
    return appointment


def test_approving_request_adopts_animal_and_notifies(reserved_request, adopter, emitter):
    transition(ADOPTION_REQUEST, reserved_request.id, 'approved')

    animal = reserved_request.animal
    assert reserved_request.status is ReviewStatus.APPROVED
    assert animal.is_adopted is True
    assert animal.is_temporarily_adopted is False

    notification = Notification.query.filter_by(user_id=adopter.id).one()
    assert notification.message == 'Your adoption request for Bella has been approved.'
    assert notification.type == 'AdoptionStatusUpdated'
    assert notification.image_path == 'animal_profiles/bella.png'

    [(event, payload, room)] = published(emitter)
    assert event == 'adoption.status.updated'
    assert room == f'user.{adopter.id}'
    assert payload['id'] == notification.id
    assert payload['userId'] == adopter.id
    assert payload['animal_name'] == 'Bella'
    assert payload['status'] == 'approved'


def test_rejecting_request_releases_animal(reserved_request, adopter):
    transition(ADOPTION_REQUEST, reserved_request.id, 'Rejected', 'Incomplete documents')

    assert reserved_request.status is ReviewStatus.REJECTED
    assert reserved_request.rejection_reason == 'Incomplete documents'
    assert reserved_request.animal.is_temporarily_adopted is False
    assert reserved_request.animal.is_adopted is False
    notification = Notification.query.filter_by(user_id=adopter.id).one()
    assert notification.message == ('Your adoption request for Bella was rejected. '
                                    'Reason: Incomplete documents')


@pytest.mark.parametrize('reason', [None, '', '   '])
def test_rejection_requires_reason(reserved_request, emitter, reason):
    with pytest.raises(MissingReason):
        transition(ADOPTION_REQUEST, reserved_request.id, 'rejected', reason)

    assert reserved_request.status is ReviewStatus.PENDING
    assert reserved_request.animal.is_temporarily_adopted is True
    assert Notification.query.count() == 0
    emitter.emit.assert_not_called()


def test_unknown_status_is_rejected(reserved_request):
    with pytest.raises(InvalidStatus):
        transition(ADOPTION_REQUEST, reserved_request.id, 'archived')
    assert reserved_request.status is ReviewStatus.PENDING


def test_unknown_kind_is_rejected():
    with pytest.raises(ValidationError):
        transition('vet_visit', 1, 'approved')


def test_missing_entity_is_not_found(app):
    with pytest.raises(NotFound):
        transition(ADOPTION_REQUEST, 999, 'approved')


def test_terminal_status_cannot_be_reopened(reserved_request):
    transition(ADOPTION_REQUEST, reserved_request.id, 'approved')

    with pytest.raises(InvalidTransition) as excinfo:
        transition(ADOPTION_REQUEST, reserved_request.id, 'pending')
    assert excinfo.value.status_code == 409
    assert reserved_request.status is ReviewStatus.APPROVED


def test_lenient_mode_allows_any_known_status(app, reserved_request):
    app.config['WORKFLOW_STRICT_TRANSITIONS'] = False
    transition(ADOPTION_REQUEST, reserved_request.id, 'approved')
    transition(ADOPTION_REQUEST, reserved_request.id, 'pending')
    assert reserved_request.status is ReviewStatus.PENDING


def test_abuse_report_status_notifies_reporter(report, adopter, emitter):
    transition(ABUSE_REPORT, report.id, 'rejected', 'Not enough evidence')

    assert report.status is ReviewStatus.REJECTED
    assert report.rejection_reason == 'Not enough evidence'
    notification = Notification.query.filter_by(user_id=adopter.id).one()
    assert notification.message == 'Your animal abuse report was rejected. Reason: Not enough evidence'
    assert notification.image_path == 'abuse_photos/evidence.jpg'
    [(event, payload, room)] = published(emitter)
    assert event == 'animal.abuse.status.updated'
    assert room == f'user.{adopter.id}'
    assert payload['status'] == 'rejected'


def test_approving_report_clears_reason(report):
    report.rejection_reason = 'stale'
    db.session.commit()
    transition(ABUSE_REPORT, report.id, 'approved')
    assert report.rejection_reason is None


def test_appointment_cancel_keeps_reason_and_sends_no_notification(appointment, emitter):
    transition(ADOPTION_APPOINTMENT, appointment.id, 'cancelled', 'Adopter unavailable')

    assert appointment.status is AppointmentStatus.CANCELLED
    assert appointment.rejection_reason == 'Adopter unavailable'
    assert Notification.query.count() == 0
    emitter.emit.assert_not_called()


def test_appointment_completion_drops_reason(appointment):
    transition(ADOPTION_APPOINTMENT, appointment.id, 'confirmed')
    transition(ADOPTION_APPOINTMENT, appointment.id, 'completed', 'ignored')
    assert appointment.status is AppointmentStatus.COMPLETED
    assert appointment.rejection_reason is None

    with pytest.raises(InvalidTransition):
        transition(ADOPTION_APPOINTMENT, appointment.id, 'pending')


def test_publish_failure_keeps_committed_change(reserved_request, adopter, emitter):
    emitter.emit.side_effect = RuntimeError('socket server down')

    transition(ADOPTION_REQUEST, reserved_request.id, 'approved')

    assert reserved_request.status is ReviewStatus.APPROVED
    assert Notification.query.filter_by(user_id=adopter.id).count() == 1


def test_status_tables_cover_every_status():
    assert set(workflow_service.REVIEW_TRANSITIONS) == set(ReviewStatus)
    assert set(workflow_service.APPOINTMENT_TRANSITIONS) == set(AppointmentStatus)


@pytest.fixture
def failing_notification_insert():
    def _reject(mapper, connection, target):
        raise DataError('INSERT INTO notification', {}, Exception('value too long for column "message"'))

    sa_event.listen(Notification, 'before_insert', _reject)
    yield
    sa_event.remove(Notification, 'before_insert', _reject)


def test_failed_notification_rolls_back_status_change(reserved_request, emitter, failing_notification_insert):
    with pytest.raises(DataError):
        transition(ADOPTION_REQUEST, reserved_request.id, 'rejected', 'Landlord does not allow pets')

    db.session.expire_all()
    adoption_request = db.session.get(AdoptionRequest, reserved_request.id)
    assert adoption_request.status is ReviewStatus.PENDING
    assert adoption_request.rejection_reason is None
    assert adoption_request.animal.is_temporarily_adopted is True
    assert Notification.query.count() == 0
    emitter.emit.assert_not_called()


def test_status_endpoint_reports_failure_without_partial_write(client, staff, auth_headers, reserved_request,
                                                               failing_notification_insert):
    response = client.post(f'/adoptions/{reserved_request.id}/status', headers=auth_headers(staff),
                           json={'status': 'approved'})

    assert response.status_code == 500
    db.session.expire_all()
    adoption_request = db.session.get(AdoptionRequest, reserved_request.id)
    assert adoption_request.status is ReviewStatus.PENDING
    assert adoption_request.animal.is_adopted is False


def test_overlong_reason_is_rejected_before_any_write(client, staff, auth_headers, reserved_request):
    reason = 'x' * (workflow_service.MAX_REASON_LENGTH + 1)
    response = client.post(f'/adoptions/{reserved_request.id}/status', headers=auth_headers(staff),
                           json={'status': 'rejected', 'rejection_reason': reason})

    assert response.status_code == 422
    assert 'rejection_reason' in response.get_json()['errors']
    assert reserved_request.status is ReviewStatus.PENDING
    assert Notification.query.count() == 0


def test_long_reason_is_stored_in_notification(reserved_request, adopter):
    reason = 'y' * workflow_service.MAX_REASON_LENGTH
    transition(ADOPTION_REQUEST, reserved_request.id, 'rejected', reason)
    notification = Notification.query.filter_by(user_id=adopter.id).one()
    assert notification.message.endswith(reason)
