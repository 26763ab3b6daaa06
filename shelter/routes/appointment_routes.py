import logging

from flask import request
from flask_restx import Namespace, Resource, fields
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.models import Role
from shelter.services import adoption_service, workflow_service
from shelter.services.adoption_service import format_appointment, format_request
from shelter.utils import current_principal, role_required

logger = logging.getLogger(__name__)

appointment_ns = Namespace('appointments', description='Virtual adoption appointments', path='/appointments')

# Swagger models
appointment_model = appointment_ns.model('Appointment', {
    'adoption_request_id': fields.Integer(required=True, description='Approved adoption request'),
    'appointment_date': fields.String(required=True, description='Date in ISO format (YYYY-MM-DD)'),
    'appointment_time': fields.String(required=True, description='Time (HH:MM)'),
    'notes': fields.String(description='Notes for the adopter'),
})

appointment_status_model = appointment_ns.model('AppointmentStatus', {
    'status': fields.String(required=True, description='pending, confirmed, cancelled or completed'),
    'rejection_reason': fields.String(description='Kept only when cancelling'),
})


@appointment_ns.route('')
class AppointmentList(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @appointment_ns.doc('list_appointments', security='BearerAuth')
    def get(self):
        """Get all appointments ordered by date"""
        return [format_appointment(a) for a in adoption_service.list_appointments()], 200

    @role_required(Role.STAFF, Role.ADMIN)
    @appointment_ns.expect(appointment_model)
    @appointment_ns.doc('schedule_appointment', security='BearerAuth')
    def post(self):
        """Schedule an appointment for an approved request"""
        data = request.get_json(silent=True) or {}
        try:
            appointment = adoption_service.schedule_appointment(
                data.get('adoption_request_id'),
                data.get('appointment_date'),
                data.get('appointment_time'),
                data.get('notes'),
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error scheduling appointment: {e}")
            return {'message': 'Error scheduling appointment', 'error': str(e)}, 500
        return format_appointment(appointment), 201


@appointment_ns.route('/approved-requests')
class ApprovedRequests(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @appointment_ns.doc('approved_requests_without_appointment', security='BearerAuth')
    def get(self):
        """Approved adoption requests still waiting for an appointment"""
        return [format_request(r) for r in adoption_service.approved_without_appointment()], 200


@appointment_ns.route('/<int:appointment_id>/status')
class AppointmentStatusUpdate(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @appointment_ns.expect(appointment_status_model)
    @appointment_ns.doc('update_appointment_status', security='BearerAuth')
    def post(self, appointment_id):
        data = request.get_json(silent=True) or {}
        try:
            appointment = workflow_service.transition(
                workflow_service.ADOPTION_APPOINTMENT, appointment_id,
                data.get('status'), data.get('rejection_reason'),
                actor=current_principal()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error updating appointment {appointment_id}: {e}")
            return {'message': 'Error updating appointment', 'error': str(e)}, 500
        return format_appointment(appointment), 200


@appointment_ns.route('/<int:appointment_id>')
class AppointmentResource(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @appointment_ns.doc('delete_appointment', security='BearerAuth')
    def delete(self, appointment_id):
        try:
            adoption_service.delete_appointment(appointment_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error deleting appointment {appointment_id}: {e}")
            return {'message': 'Error deleting appointment', 'error': str(e)}, 500
        return {'message': 'Appointment deleted successfully'}, 200
