import io
from datetime import datetime, timedelta

import pytest
from sqlalchemy import event as sa_event

from shelter import db
from shelter.errors import EmptyMessage, NotFound, ValidationError
from shelter.models import Message, Role
from shelter.services import chat_service
from shelter.utils.auth_middleware import Principal

from conftest import image_file, published


def _principal(user):
    return Principal(id=user.id, role=user.role)


def _message(sender, receiver, body, minutes, unread=True):
    message = Message(sender_id=sender.id, receiver_id=receiver.id, body=body, unread=unread,
                      created_at=datetime(2025, 4, 27, 10, 0) + timedelta(minutes=minutes))
    db.session.add(message)
    db.session.commit()
    return message


def test_send_requires_content(adopter, staff):
    with pytest.raises(EmptyMessage):
        chat_service.send(adopter.id, staff.id, '   ')
    assert Message.query.count() == 0


def test_send_rejects_self_and_unknown_receiver(adopter):
    with pytest.raises(ValidationError):
        chat_service.send(adopter.id, adopter.id, 'hi')
    with pytest.raises(NotFound):
        chat_service.send(adopter.id, 9999, 'hi')


def test_send_publishes_to_receiver_chat_channel(adopter, staff, emitter):
    message = chat_service.send(adopter.id, staff.id, ' Is Bella still available? ')

    assert message.body == 'Is Bella still available?'
    assert message.unread is True
    [(event, payload, room)] = published(emitter)
    assert event == 'message.sent'
    assert room == f'chat.{staff.id}'
    assert payload['sender_id'] == adopter.id
    assert payload['message'] == 'Is Bella still available?'


def test_attachment_only_message_is_allowed(adopter, staff):
    message = chat_service.send(adopter.id, staff.id, None, image_path='messages/images/a.png')
    assert message.body is None
    assert message.image_path == 'messages/images/a.png'


def test_thread_is_oldest_first_and_reading_clears_unread(adopter, staff):
    _message(adopter, staff, 'first', 0)
    _message(staff, adopter, 'second', 1)
    _message(adopter, staff, 'third', 2)

    thread = chat_service.fetch_thread(staff.id, adopter.id)
    assert [m.body for m in thread] == ['first', 'second', 'third']

    assert chat_service.unread_count(staff.id) == 2
    assert chat_service.mark_thread_read(staff.id, adopter.id) == 2
    assert chat_service.unread_count(staff.id) == 0
    assert chat_service.unread_count(adopter.id) == 1


def test_thread_with_no_messages_is_empty(adopter, staff):
    assert chat_service.fetch_thread(adopter.id, staff.id) == []


def test_adopters_only_see_staff_contacts(adopter, staff, make_user):
    other_adopter = make_user()
    admin = make_user(role=Role.ADMIN)

    ids = {c['id'] for c in chat_service.list_contacts(_principal(adopter))}
    assert ids == {staff.id, admin.id}

    ids = {c['id'] for c in chat_service.list_contacts(_principal(staff))}
    assert ids == {adopter.id, other_adopter.id, admin.id}


def test_contacts_sorted_by_latest_message(adopter, staff, make_user):
    quiet = make_user()
    recent = make_user()
    _message(adopter, staff, 'older', 0)
    _message(recent, staff, 'newer', 5)
    _message(staff, recent, 'reply', 6, unread=False)

    contacts = chat_service.list_contacts(_principal(staff))

    assert [c['id'] for c in contacts] == [recent.id, adopter.id, quiet.id]
    assert contacts[0]['last_message'] == 'reply'
    assert contacts[0]['unread_messages_count'] == 1
    assert contacts[1]['unread_messages_count'] == 1
    assert contacts[2]['last_message'] == 'No messages yet'
    assert contacts[2]['last_message_time'] is None


def test_online_flag_uses_activity_window(app, adopter, staff):
    now = datetime(2025, 4, 27, 12, 0)
    staff.last_activity_at = now - timedelta(seconds=30)
    db.session.commit()
    [contact] = chat_service.list_contacts(_principal(adopter), now=now)
    assert contact['is_online'] is True

    staff.last_activity_at = now - timedelta(seconds=app.config['ONLINE_WINDOW_SECONDS'] + 1)
    db.session.commit()
    [contact] = chat_service.list_contacts(_principal(adopter), now=now)
    assert contact['is_online'] is False


def test_send_endpoint_with_attachment(client, adopter, staff, auth_headers, emitter):
    response = client.post('/chats/send', headers=auth_headers(adopter), content_type='multipart/form-data',
                           data={'receiver_id': str(staff.id), 'file': image_file('dog.jpg')})

    assert response.status_code == 201
    body = response.get_json()
    assert body['image_path'].startswith('messages/images/')
    assert body['video_path'] is None
    assert published(emitter)[0][2] == f'chat.{staff.id}'


def test_send_endpoint_rejects_unsupported_file(client, adopter, staff, auth_headers):
    response = client.post('/chats/send', headers=auth_headers(adopter), content_type='multipart/form-data',
                           data={'receiver_id': str(staff.id), 'file': image_file('notes.exe')})
    assert response.status_code == 422
    assert Message.query.count() == 0


def test_empty_message_endpoint_returns_422(client, adopter, staff, auth_headers):
    response = client.post('/chats/send', headers=auth_headers(adopter), content_type='multipart/form-data',
                           data={'receiver_id': str(staff.id), 'message': ''})
    assert response.status_code == 422


def test_thread_endpoint_marks_messages_read(client, adopter, staff, auth_headers):
    _message(staff, adopter, 'Welcome!', 0)

    response = client.get(f'/chats/messages/{staff.id}', headers=auth_headers(adopter))

    assert response.status_code == 200
    [message] = response.get_json()
    assert message['message'] == 'Welcome!'
    assert message['unread'] is True
    assert chat_service.unread_count(adopter.id) == 0
    assert client.get('/chats/unread-count', headers=auth_headers(adopter)).get_json() == {'count': 0}


@pytest.fixture
def statements(app):
    """SQL statements executed while the fixture is active."""
    executed = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        executed.append(statement)

    sa_event.listen(db.engine, 'before_cursor_execute', _record)
    yield executed
    sa_event.remove(db.engine, 'before_cursor_execute', _record)


def test_contacts_query_count_does_not_grow_with_contacts(staff, make_user, statements):
    senders = [make_user() for _ in range(6)]
    for minutes, sender in enumerate(senders):
        _message(sender, staff, f'hello {minutes}', minutes)
        _message(staff, sender, f'reply {minutes}', minutes + 10, unread=False)

    statements.clear()
    contacts = chat_service.list_contacts(_principal(staff))

    assert len(contacts) == 6
    assert len(statements) <= 3
    assert contacts[0]['id'] == senders[-1].id
    assert contacts[0]['last_message'] == 'reply 5'
    assert all(c['unread_messages_count'] == 1 for c in contacts)


def test_send_endpoint_accepts_chat_video(client, adopter, staff, auth_headers):
    response = client.post('/chats/send', headers=auth_headers(adopter), content_type='multipart/form-data',
                           data={'receiver_id': str(staff.id), 'file': (io.BytesIO(b'fake video'), 'clip.mov')})
    assert response.status_code == 201
    assert response.get_json()['video_path'].startswith('messages/videos/')


def test_send_endpoint_rejects_mpeg_video(client, adopter, staff, auth_headers):
    response = client.post('/chats/send', headers=auth_headers(adopter), content_type='multipart/form-data',
                           data={'receiver_id': str(staff.id), 'file': (io.BytesIO(b'fake video'), 'clip.mpeg')})
    assert response.status_code == 422
    assert 'mpeg' not in response.get_json()['errors']['file']
    assert Message.query.count() == 0
