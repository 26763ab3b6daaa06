from flask_restx import Namespace, Resource

from shelter.services import notification_service
from shelter.utils import current_principal, token_required

notification_ns = Namespace('notifications', description='Per-user notification inbox', path='/notifications')


@notification_ns.route('')
class NotificationList(Resource):
    @token_required
    def get(self):
        """Notifications of the current user, newest first"""
        notifications = notification_service.list_notifications(current_principal().id)
        return [n.to_dict() for n in notifications], 200


@notification_ns.route('/unread-count')
class UnreadNotifications(Resource):
    @token_required
    def get(self):
        return {'count': notification_service.unread_count(current_principal().id)}, 200


@notification_ns.route('/<int:notification_id>/read')
class ReadNotification(Resource):
    @token_required
    def post(self, notification_id):
        notification = notification_service.mark_as_read(current_principal().id, notification_id)
        return notification.to_dict(), 200


@notification_ns.route('/mark-as-read')
class ReadAllNotifications(Resource):
    @token_required
    def post(self):
        updated = notification_service.mark_all_as_read(current_principal().id)
        return {'message': 'All notifications marked as read', 'updated': updated}, 200


@notification_ns.route('/<int:notification_id>')
class NotificationResource(Resource):
    @token_required
    def delete(self, notification_id):
        notification_service.delete_notification(current_principal().id, notification_id)
        return {'message': 'Notification deleted'}, 200


@notification_ns.route('/clear-all')
class ClearNotifications(Resource):
    @token_required
    def post(self):
        deleted = notification_service.clear_all(current_principal().id)
        return {'message': 'All notifications cleared', 'deleted': deleted}, 200
