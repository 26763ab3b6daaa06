# Adoption request and appointment service module
import logging
from datetime import date, datetime, time

from dateutil.parser import isoparse, parse as parse_datetime
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import NotFound, ValidationError
from shelter.models import (Animal, User, AdoptionRequest, AdoptionAppointment, ReviewStatus,
                            ACTIVE_APPOINTMENT_STATUSES)
from . import notification_service
from .events import EventType, WorkflowEvent

logger = logging.getLogger(__name__)

MAX_ANSWER_LENGTH = 1000
QUESTION_FIELDS = ('question1', 'question2', 'question3')


def _user_summary(user):
    return {
        'id': user.id if user else None,
        'name': user.name if user else 'Unknown User',
        'email': user.email if user else 'Unknown Email',
    }


def _animal_summary(animal):
    return {
        'id': animal.id if animal else None,
        'name': animal.name if animal else 'Unknown Animal',
        'breed': animal.breed if animal else '',
        'image': animal.image if animal else None,
    }


def format_request(adoption_request):
    return {
        'id': adoption_request.id,
        'user_id': adoption_request.user_id,
        'animal_id': adoption_request.animal_id,
        'answers': adoption_request.answers,
        'valid_id': adoption_request.valid_id,
        'selfie_with_id': adoption_request.selfie_with_id,
        'status': adoption_request.status.value,
        'rejection_reason': adoption_request.rejection_reason,
        'created_at': adoption_request.created_at.isoformat(),
        'user': _user_summary(adoption_request.user),
        'animal': _animal_summary(adoption_request.animal),
    }


def format_appointment(appointment):
    adoption_request = appointment.adoption_request
    return {
        'id': appointment.id,
        'adoption_request_id': appointment.adoption_request_id,
        'date': appointment.appointment_date.isoformat(),
        'time': appointment.appointment_time.strftime('%H:%M'),
        'status': appointment.status.value,
        'notes': appointment.notes,
        'rejection_reason': appointment.rejection_reason,
        'user': _user_summary(adoption_request.user if adoption_request else None),
        'animal': _animal_summary(adoption_request.animal if adoption_request else None),
    }


def submit_request(principal, animal_id, answers, valid_id, selfie_with_id):
    """Create a pending adoption request and reserve the animal."""
    user = db.session.get(User, principal.id)
    if user is None:
        raise NotFound('User not found')
    missing = user.missing_profile_fields()
    if missing:
        raise ValidationError('Please complete your profile: ' + ' and '.join(missing), {'profile': missing})

    errors = {}
    answers = list(answers or [])
    answers += [None] * (len(QUESTION_FIELDS) - len(answers))
    for field, answer in zip(QUESTION_FIELDS, answers):
        if not answer or not str(answer).strip():
            errors[field] = 'This field is required'
        elif len(answer) > MAX_ANSWER_LENGTH:
            errors[field] = f'Must be at most {MAX_ANSWER_LENGTH} characters'
    if not valid_id:
        errors['valid_id'] = 'A valid ID document is required'
    if not selfie_with_id:
        errors['selfie_with_id'] = 'A selfie with the ID is required'
    if animal_id in (None, ''):
        errors['animal_id'] = 'This field is required'
    if errors:
        raise ValidationError('Invalid adoption request', errors)

    animal = db.session.get(Animal, animal_id, with_for_update=True)
    if animal is None:
        raise NotFound('Animal profile not found')
    if not animal.is_available:
        raise ValidationError('Animal is not available for adoption',
                              {'animal_id': 'Already adopted or reserved'})

    adoption_request = AdoptionRequest(
        user_id=user.id,
        animal_id=animal.id,
        question1=answers[0].strip(),
        question2=answers[1].strip(),
        question3=answers[2].strip(),
        valid_id=valid_id,
        selfie_with_id=selfie_with_id,
        status=ReviewStatus.PENDING
    )
    animal.is_temporarily_adopted = True
    db.session.add(adoption_request)
    db.session.commit()
    logger.info(f"Adoption request {adoption_request.id} submitted by user {user.id} for animal {animal.id}")
    return adoption_request


def list_requests():
    return AdoptionRequest.query.order_by(AdoptionRequest.created_at.desc(), AdoptionRequest.id.desc()).all()


def _parse_date(value):
    if isinstance(value, date):
        return value
    try:
        return isoparse(str(value)).date()
    except ValueError:
        raise ValidationError('Invalid appointment date', {'appointment_date': 'Use ISO format (YYYY-MM-DD)'})


def _parse_time(value):
    if isinstance(value, time):
        return value
    try:
        return parse_datetime(str(value)).time().replace(second=0, microsecond=0)
    except (ValueError, OverflowError):
        raise ValidationError('Invalid appointment time', {'appointment_time': 'Use HH:MM'})


def schedule_appointment(adoption_request_id, appointment_date, appointment_time, notes=None, today=None):
    """Schedule a virtual appointment for an approved request and notify the adopter."""
    if not appointment_date or not appointment_time:
        errors = {}
        if not appointment_date:
            errors['appointment_date'] = 'This field is required'
        if not appointment_time:
            errors['appointment_time'] = 'This field is required'
        raise ValidationError('Invalid appointment', errors)
    appointment_date = _parse_date(appointment_date)
    appointment_time = _parse_time(appointment_time)
    today = today or datetime.utcnow().date()
    if appointment_date < today:
        raise ValidationError('Invalid appointment date', {'appointment_date': 'Must be today or later'})

    adoption_request = db.session.get(AdoptionRequest, adoption_request_id, with_for_update=True)
    if adoption_request is None:
        raise NotFound('Adoption request not found')
    if adoption_request.status is not ReviewStatus.APPROVED:
        raise ValidationError('Appointments can only be scheduled for approved requests',
                              {'adoption_request_id': f'Request is {adoption_request.status.value}'})
    if any(a.is_active for a in adoption_request.appointments):
        raise ValidationError('This request already has an active appointment',
                              {'adoption_request_id': 'Active appointment exists'})

    appointment = AdoptionAppointment(
        adoption_request_id=adoption_request.id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        notes=notes or None
    )
    event = WorkflowEvent(
        type=EventType.APPOINTMENT_SCHEDULED,
        user_id=adoption_request.user_id,
        subject=appointment,
    )
    try:
        db.session.add(appointment)
        db.session.flush()
        notification, payload = notification_service.record(event)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to schedule appointment for adoption request {adoption_request.id}: {e}")
        raise
    logger.info(f"Appointment {appointment.id} scheduled for adoption request {adoption_request.id}")

    notification_service.publish(event, notification, payload)
    return appointment


def list_appointments():
    return (AdoptionAppointment.query
            .order_by(AdoptionAppointment.appointment_date.asc(), AdoptionAppointment.appointment_time.asc())
            .all())


def approved_without_appointment():
    """Approved requests that still have no active appointment."""
    active = AdoptionRequest.appointments.any(AdoptionAppointment.status.in_(ACTIVE_APPOINTMENT_STATUSES))
    return (AdoptionRequest.query
            .filter(AdoptionRequest.status == ReviewStatus.APPROVED)
            .filter(~active)
            .order_by(AdoptionRequest.updated_at.desc())
            .all())


def delete_appointment(appointment_id):
    appointment = db.session.get(AdoptionAppointment, appointment_id)
    if appointment is None:
        raise NotFound('Appointment not found')
    db.session.delete(appointment)
    db.session.commit()
    logger.info(f"Appointment {appointment_id} deleted")
