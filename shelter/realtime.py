"""Socket.IO transport for notifications and chat delivery.

Every connection joins its own ``user.<id>`` and ``chat.<id>`` rooms. Clients
may also ask to join a channel explicitly with the ``subscribe`` event, which
is refused unless the channel belongs to the connecting user.
"""
import logging

import socketio
from flask import current_app
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

logger = logging.getLogger(__name__)

CHANNEL_PREFIXES = ('user', 'chat')


def user_channel(user_id):
    return f'user.{user_id}'


def chat_channel(user_id):
    return f'chat.{user_id}'


def authorize_channel(principal_id, channel):
    """Return True when ``channel`` is one of the principal's own channels."""
    prefix, _, owner = (channel or '').partition('.')
    if prefix not in CHANNEL_PREFIXES:
        return False
    try:
        return int(owner) == int(principal_id)
    except (TypeError, ValueError):
        return False


def _bearer_token(environ):
    header = environ.get('HTTP_AUTHORIZATION', '')
    if header.startswith('Bearer '):
        return header.split(' ', 1)[1]
    return None


class ShelterNamespace(socketio.Namespace):
    def __init__(self, app, namespace='/'):
        super().__init__(namespace)
        self.app = app
        self._sessions = {}

    def on_connect(self, sid, environ, auth=None):
        token = (auth or {}).get('token') or _bearer_token(environ)
        if not token:
            raise ConnectionRefusedError('missing token')
        try:
            with self.app.app_context():
                claims = decode_token(token)
            user_id = int(claims['sub'])
        except (PyJWTError, JWTExtendedException, KeyError, ValueError) as e:
            logger.warning(f"Socket connection {sid} refused: {e}")
            raise ConnectionRefusedError('invalid token')
        self._sessions[sid] = user_id
        self.enter_room(sid, user_channel(user_id))
        self.enter_room(sid, chat_channel(user_id))
        logger.debug(f"Socket {sid} connected for user {user_id}")

    def on_disconnect(self, sid, reason=None):
        self._sessions.pop(sid, None)

    def on_subscribe(self, sid, data):
        user_id = self._sessions.get(sid)
        channel = (data or {}).get('channel')
        if user_id is None or not authorize_channel(user_id, channel):
            logger.warning(f"User {user_id} may not subscribe to {channel}")
            return {'ok': False, 'error': 'forbidden'}
        self.enter_room(sid, channel)
        return {'ok': True, 'channel': channel}

    def user_for(self, sid):
        return self._sessions.get(sid)


class Broadcaster:
    """Best-effort publisher: failures are logged, never raised."""

    def __init__(self, server=None, namespace='/'):
        self.server = server
        self.namespace = namespace

    def publish(self, channel, event, payload):
        if self.server is None:
            logger.debug(f"No realtime server configured, dropping {event} for {channel}")
            return False
        try:
            self.server.emit(event, payload, room=channel, namespace=self.namespace)
        except Exception:
            logger.exception(f"Failed to publish {event} to {channel}")
            return False
        logger.debug(f"Published {event} to {channel}")
        return True


def init_realtime(app):
    server = socketio.Server(async_mode='threading',
                             cors_allowed_origins=app.config.get('SOCKETIO_CORS_ORIGINS', '*'))
    server.register_namespace(ShelterNamespace(app))
    app.wsgi_app = socketio.WSGIApp(server, app.wsgi_app)
    app.extensions['socketio'] = server
    app.extensions['broadcaster'] = Broadcaster(server)
    return server


def get_broadcaster():
    return current_app.extensions['broadcaster']
