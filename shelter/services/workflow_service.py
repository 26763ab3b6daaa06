# Status workflow engine for adoption requests, appointments and abuse reports
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import ValidationError, NotFound, InvalidStatus, InvalidTransition, MissingReason
from shelter.models import (Animal, AdoptionRequest, AdoptionAppointment, AbuseReport, ReviewStatus,
                            AppointmentStatus)
from . import notification_service
from .events import EventType, WorkflowEvent

logger = logging.getLogger(__name__)

ADOPTION_REQUEST = 'adoption_request'
ADOPTION_APPOINTMENT = 'adoption_appointment'
ABUSE_REPORT = 'abuse_report'

MAX_REASON_LENGTH = 1000

REVIEW_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.PENDING, ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: set(),
    ReviewStatus.REJECTED: set(),
}

APPOINTMENT_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED,
                                AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED,
                                  AppointmentStatus.COMPLETED},
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.COMPLETED: set(),
}


@dataclass(frozen=True)
class Workflow:
    label: str
    model: type
    statuses: type
    transitions: dict
    apply: Callable
    event_type: Optional[EventType] = None
    owner: Optional[Callable] = None


def _apply_adoption_request(adoption_request, status, reason):
    animal = db.session.get(Animal, adoption_request.animal_id, with_for_update=True)
    if status is ReviewStatus.REJECTED:
        adoption_request.rejection_reason = reason
        if animal is not None:
            animal.is_temporarily_adopted = False
    else:
        adoption_request.rejection_reason = None
    if status is ReviewStatus.APPROVED and animal is not None:
        animal.is_adopted = True
        animal.is_temporarily_adopted = False
    adoption_request.status = status


def _apply_abuse_report(report, status, reason):
    report.rejection_reason = reason if status is ReviewStatus.REJECTED else None
    report.status = status


def _apply_appointment(appointment, status, reason):
    appointment.rejection_reason = reason if status is AppointmentStatus.CANCELLED else None
    appointment.status = status


WORKFLOWS = {
    ADOPTION_REQUEST: Workflow(
        label='Adoption request',
        model=AdoptionRequest,
        statuses=ReviewStatus,
        transitions=REVIEW_TRANSITIONS,
        apply=_apply_adoption_request,
        event_type=EventType.ADOPTION_STATUS_UPDATED,
        owner=lambda adoption_request: adoption_request.user_id,
    ),
    ADOPTION_APPOINTMENT: Workflow(
        label='Appointment',
        model=AdoptionAppointment,
        statuses=AppointmentStatus,
        transitions=APPOINTMENT_TRANSITIONS,
        apply=_apply_appointment,
    ),
    ABUSE_REPORT: Workflow(
        label='Abuse report',
        model=AbuseReport,
        statuses=ReviewStatus,
        transitions=REVIEW_TRANSITIONS,
        apply=_apply_abuse_report,
        event_type=EventType.ABUSE_STATUS_UPDATED,
        owner=lambda report: report.user_id,
    ),
}


def parse_status(statuses, value):
    if isinstance(value, statuses):
        return value
    try:
        return statuses(str(value).strip().lower())
    except ValueError:
        allowed = ', '.join(s.value for s in statuses)
        raise InvalidStatus(f'Invalid status: {value}. Allowed: {allowed}', {'status': f'Allowed: {allowed}'})


def transition(kind, entity_id, new_status, reason=None, actor=None):
    """Move an entity to ``new_status``, apply its side effects and notify its owner.

    The status change, its side effects and the owner's Notification are
    committed together; the real-time publish happens only after that commit.

    Raises ValidationError for an unknown kind or an overlong reason,
    InvalidStatus for a status outside the kind's enum, MissingReason for a
    rejection without reason, NotFound for a missing entity and
    InvalidTransition when the move is not allowed from the current status.
    """
    workflow = WORKFLOWS.get(kind)
    if workflow is None:
        raise ValidationError(f'Unknown entity kind: {kind}', {'kind': 'Unknown entity kind'})

    status = parse_status(workflow.statuses, new_status)
    reason = (reason or '').strip() or None
    if status.value == 'rejected' and reason is None:
        raise MissingReason()
    if reason is not None and len(reason) > MAX_REASON_LENGTH:
        raise ValidationError('Rejection reason is too long',
                              {'rejection_reason': f'Must be at most {MAX_REASON_LENGTH} characters'})

    entity = db.session.get(workflow.model, entity_id, with_for_update=True)
    if entity is None:
        raise NotFound(f'{workflow.label} not found')

    previous = entity.status
    if current_app.config.get('WORKFLOW_STRICT_TRANSITIONS', True) and \
            status not in workflow.transitions.get(previous, set()):
        raise InvalidTransition(
            f'{workflow.label} cannot move from {previous.value} to {status.value}',
            {'status': f'Not allowed from {previous.value}'}
        )

    event = None
    try:
        workflow.apply(entity, status, reason)
        if workflow.event_type is not None:
            event = WorkflowEvent(
                type=workflow.event_type,
                user_id=workflow.owner(entity),
                subject=entity,
                status=status.value,
            )
            notification, payload = notification_service.record(event)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to update {kind} {entity_id} to {status.value}: {e}")
        raise
    by = f" by user {actor.id}" if actor is not None else ""
    logger.info(f"{workflow.label} {entity_id} moved from {previous.value} to {status.value}{by}")

    if event is not None:
        notification_service.publish(event, notification, payload)
    return entity
