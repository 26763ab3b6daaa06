import logging

from flask_restx import Namespace, Resource, fields, reqparse
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import ShelterError
from shelter.services import chat_service
from shelter.utils import current_principal, token_required, remove_upload

logger = logging.getLogger(__name__)

chat_ns = Namespace('chats', description='Direct messages between adopters and staff', path='/chats')

# Request parser for an optional attachment and message text
chat_parser = reqparse.RequestParser()
chat_parser.add_argument('receiver_id', type=int, required=True, location='form', help='Recipient user ID')
chat_parser.add_argument('message', type=str, location='form', help='Message text')
chat_parser.add_argument('file', type=reqparse.FileStorage, location='files', help='Optional image or video')

# Swagger models
message_model = chat_ns.model('Message', {
    'id': fields.Integer(description='Message ID'),
    'sender_id': fields.Integer(),
    'receiver_id': fields.Integer(),
    'message': fields.String(description='Message text'),
    'image_path': fields.String(),
    'video_path': fields.String(),
    'unread': fields.Boolean(),
    'seen': fields.Boolean(),
    'timestamp': fields.String(description='Message timestamp (ISO format)'),
})

contact_model = chat_ns.model('Contact', {
    'id': fields.Integer(),
    'name': fields.String(),
    'last_name': fields.String(),
    'profile_photo': fields.String(),
    'last_message': fields.String(),
    'last_message_time': fields.String(),
    'unread_messages_count': fields.Integer(),
    'is_online': fields.Boolean(),
})


@chat_ns.route('/contacts')
class ContactList(Resource):
    @token_required
    @chat_ns.marshal_list_with(contact_model)
    def get(self):
        """Contacts with their latest message, most recent conversation first"""
        return chat_service.list_contacts(current_principal()), 200


@chat_ns.route('/messages/<int:contact_id>')
class Thread(Resource):
    @token_required
    @chat_ns.marshal_list_with(message_model)
    def get(self, contact_id):
        """Conversation with a contact, oldest first; marks incoming messages as read"""
        user_id = current_principal().id
        messages = chat_service.fetch_thread(user_id, contact_id)
        payload = [m.to_dict() for m in messages]
        chat_service.mark_thread_read(user_id, contact_id)
        return payload, 200


@chat_ns.route('/send')
class SendMessage(Resource):
    @token_required
    @chat_ns.expect(chat_parser)
    def post(self):
        """Send a message with optional file upload"""
        args = chat_parser.parse_args()
        image_path = video_path = None
        try:
            if args.get('file'):
                image_path, video_path = chat_service.store_attachment(args['file'])
            message = chat_service.send(
                current_principal().id, args['receiver_id'], args.get('message'), image_path, video_path
            )
        except ShelterError:
            remove_upload(image_path)
            remove_upload(video_path)
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            remove_upload(image_path)
            remove_upload(video_path)
            logger.error(f"Error sending message: {e}")
            return {'message': 'Error sending message', 'error': str(e)}, 500
        return message.to_dict(), 201


@chat_ns.route('/mark-as-read/<int:contact_id>')
class MarkThreadRead(Resource):
    @token_required
    def post(self, contact_id):
        updated = chat_service.mark_thread_read(current_principal().id, contact_id)
        return {'updated': updated}, 200


@chat_ns.route('/unread-count')
class UnreadMessages(Resource):
    @token_required
    def get(self):
        return {'count': chat_service.unread_count(current_principal().id)}, 200
