# Chat service module: direct messages between adopters and staff
import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import and_, case, func, or_

from shelter import db
from shelter.errors import EmptyMessage, NotFound, ValidationError
from shelter.models import Message, User, STAFF_ROLES
from shelter.realtime import get_broadcaster, chat_channel
from shelter.utils.util import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, file_extension, save_upload

logger = logging.getLogger(__name__)

MESSAGE_SENT_EVENT = 'message.sent'
NO_MESSAGES = 'No messages yet'


def _between(user_a, user_b):
    return or_(
        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
    )


def broadcast_payload(message):
    return {
        'id': message.id,
        'sender_id': message.sender_id,
        'receiver_id': message.receiver_id,
        'message': message.body,
        'timestamp': message.created_at.isoformat(),
        'image_path': message.image_path,
        'video_path': message.video_path,
    }


def store_attachment(file):
    """Save an uploaded attachment and return (image_path, video_path)."""
    extension = file_extension(file.filename or '')
    if extension in IMAGE_EXTENSIONS:
        return save_upload(file, 'messages/images', IMAGE_EXTENSIONS), None
    if extension in VIDEO_EXTENSIONS:
        return None, save_upload(file, 'messages/videos', VIDEO_EXTENSIONS)
    allowed = ', '.join(sorted(IMAGE_EXTENSIONS | VIDEO_EXTENSIONS))
    raise ValidationError('Invalid file', {'file': f'Allowed extensions: {allowed}'})


def send(sender_id, receiver_id, body=None, image_path=None, video_path=None):
    body = (body or '').strip() or None
    if body is None and not image_path and not video_path:
        raise EmptyMessage()
    if receiver_id == sender_id:
        raise ValidationError('Cannot send a message to yourself', {'receiver_id': 'Must be another user'})
    if db.session.get(User, receiver_id) is None:
        raise NotFound('Receiver not found')

    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        body=body,
        image_path=image_path,
        video_path=video_path,
        unread=True,
        seen=False,
        created_at=datetime.utcnow()
    )
    db.session.add(message)
    db.session.commit()
    logger.info(f"Message {message.id} sent from user {sender_id} to user {receiver_id}")

    get_broadcaster().publish(chat_channel(receiver_id), MESSAGE_SENT_EVENT, broadcast_payload(message))
    return message


def fetch_thread(user_a, user_b):
    return (Message.query
            .filter(_between(user_a, user_b))
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all())


def mark_thread_read(user_id, contact_id):
    """Mark every unread message from ``contact_id`` to ``user_id`` as read."""
    updated = (Message.query
               .filter_by(sender_id=contact_id, receiver_id=user_id, unread=True)
               .update({Message.unread: False}, synchronize_session=False))
    db.session.commit()
    return updated


def unread_count(user_id):
    return Message.query.filter_by(receiver_id=user_id, unread=True).count()


def visible_contacts(principal):
    query = User.query.filter(User.id != principal.id)
    if not principal.is_staff:
        query = query.filter(User.role.in_(STAFF_ROLES))
    return query.all()


def list_contacts(principal, now=None):
    now = now or datetime.utcnow()
    window = current_app.config.get('ONLINE_WINDOW_SECONDS', 120)

    # The other party of each message involving the principal
    partner = case((Message.sender_id == principal.id, Message.receiver_id), else_=Message.sender_id)
    ranked = (db.session.query(
                  Message.id.label('message_id'),
                  partner.label('contact_id'),
                  func.row_number().over(
                      partition_by=partner,
                      order_by=(Message.created_at.desc(), Message.id.desc())
                  ).label('position'))
              .filter(or_(Message.sender_id == principal.id, Message.receiver_id == principal.id))
              .subquery())
    last_messages = dict(db.session.query(ranked.c.contact_id, Message)
                         .join(Message, Message.id == ranked.c.message_id)
                         .filter(ranked.c.position == 1)
                         .all())
    unread_counts = dict(db.session.query(Message.sender_id, func.count(Message.id))
                         .filter(Message.receiver_id == principal.id, Message.unread.is_(True))
                         .group_by(Message.sender_id)
                         .all())

    with_messages = []
    without_messages = []
    for contact in visible_contacts(principal):
        last_message = last_messages.get(contact.id)
        entry = {
            'id': contact.id,
            'name': contact.name or 'Unknown',
            'last_name': contact.last_name or '',
            'profile_photo': contact.profile_photo,
            'last_message': last_message.body if last_message else NO_MESSAGES,
            'last_message_time': last_message.created_at.isoformat() if last_message else None,
            'unread_messages_count': unread_counts.get(contact.id, 0),
            'is_online': contact.is_online(window, now),
        }
        if last_message:
            with_messages.append((last_message.created_at, last_message.id, entry))
        else:
            without_messages.append(entry)
    with_messages.sort(key=lambda item: (item[0], item[1]), reverse=True)
    return [entry for _, _, entry in with_messages] + without_messages
