# Notification dispatch and per-user notification queries
import logging
from datetime import datetime

from shelter import db
from shelter.errors import NotFound
from shelter.models import Notification
from shelter.realtime import get_broadcaster, user_channel
from .events import EventType

logger = logging.getLogger(__name__)

UNKNOWN_ANIMAL = 'an animal'

ADOPTION_MESSAGES = {
    'approved': 'Your adoption request for {animal} has been approved.',
    'rejected': 'Your adoption request for {animal} was rejected. Reason: {reason}',
    'pending': 'Your adoption request for {animal} is now pending.',
}

ABUSE_MESSAGES = {
    'approved': 'Your animal abuse report has been approved.',
    'rejected': 'Your animal abuse report was rejected. Reason: {reason}',
    'pending': 'Your animal abuse report is now pending.',
}

APPOINTMENT_MESSAGE = ('Your virtual appointment for adopting {animal} has been scheduled '
                       'on {date} at {time}.')


def format_long_date(value):
    # e.g. April 27, 2025
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_clock_time(value):
    # e.g. 3:00 PM
    return value.strftime('%I:%M %p').lstrip('0')


def _adoption_status(event):
    adoption_request = event.subject
    animal = adoption_request.animal
    animal_name = animal.name if animal else None
    template = ADOPTION_MESSAGES.get(event.status, ADOPTION_MESSAGES['pending'])
    message = template.format(animal=animal_name or UNKNOWN_ANIMAL,
                              reason=adoption_request.rejection_reason)
    image = animal.image if animal else None
    extra = {
        'animal_name': animal_name,
        'animal_image': image,
        'status': event.status,
    }
    return message, image, {}, extra


def _abuse_status(event):
    report = event.subject
    template = ABUSE_MESSAGES.get(event.status, ABUSE_MESSAGES['pending'])
    message = template.format(reason=report.rejection_reason)
    return message, report.cover_image, {}, {'status': event.status}


def _appointment_scheduled(event):
    appointment = event.subject
    animal = appointment.adoption_request.animal
    message = APPOINTMENT_MESSAGE.format(animal=animal.name if animal else UNKNOWN_ANIMAL,
                                         date=format_long_date(appointment.appointment_date),
                                         time=format_clock_time(appointment.appointment_time))
    fields = {
        'appointment_date': appointment.appointment_date,
        'appointment_time': appointment.appointment_time,
    }
    extra = {
        'appointment_date': appointment.appointment_date.isoformat(),
        'appointment_time': appointment.appointment_time.strftime('%H:%M'),
    }
    return message, animal.image if animal else None, fields, extra


# Each builder returns (message, image_path, extra notification columns, extra payload)
_BUILDERS = {
    EventType.ADOPTION_STATUS_UPDATED: _adoption_status,
    EventType.ABUSE_STATUS_UPDATED: _abuse_status,
    EventType.APPOINTMENT_SCHEDULED: _appointment_scheduled,
}


def record(event):
    """Add the event's Notification to the current transaction.

    The caller commits together with the change that caused the event and
    then hands the returned payload to ``publish``.
    """
    message, image_path, fields, extra = _BUILDERS[event.type](event)
    notification = Notification(
        user_id=event.user_id,
        message=message,
        image_path=image_path,
        type=event.type.value,
        **fields
    )
    db.session.add(notification)
    db.session.flush()

    payload = {
        'id': notification.id,
        'message': notification.message,
        'userId': notification.user_id,
        'type': notification.type,
        'image_path': notification.image_path,
    }
    payload.update(extra)
    return notification, payload


def publish(event, notification, payload):
    logger.info(f"Notification {notification.id} ({event.type.value}) stored for user {event.user_id}")
    return get_broadcaster().publish(user_channel(event.user_id), event.broadcast_name, payload)


def dispatch(event):
    """Persist a Notification for the event, then publish it to the user's channel."""
    notification, payload = record(event)
    db.session.commit()
    publish(event, notification, payload)
    return notification


def _owned(user_id):
    return Notification.query.filter_by(user_id=user_id)


def _get_owned(user_id, notification_id):
    notification = _owned(user_id).filter_by(id=notification_id).first()
    if notification is None:
        raise NotFound('Notification not found')
    return notification


def list_notifications(user_id):
    return (_owned(user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all())


def unread_count(user_id):
    return _owned(user_id).filter(Notification.read_at.is_(None)).count()


def mark_as_read(user_id, notification_id):
    notification = _get_owned(user_id, notification_id)
    if notification.read_at is None:
        notification.read_at = datetime.utcnow()
        db.session.commit()
    return notification


def mark_all_as_read(user_id):
    updated = (_owned(user_id)
               .filter(Notification.read_at.is_(None))
               .update({Notification.read_at: datetime.utcnow()}, synchronize_session=False))
    db.session.commit()
    return updated


def delete_notification(user_id, notification_id):
    notification = _get_owned(user_id, notification_id)
    db.session.delete(notification)
    db.session.commit()


def clear_all(user_id):
    deleted = _owned(user_id).delete(synchronize_session=False)
    db.session.commit()
    return deleted
