import logging

from flask import request
from flask_restx import Namespace, Resource, fields, reqparse
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import ShelterError
from shelter.models import Role
from shelter.services import adoption_service, workflow_service
from shelter.services.adoption_service import format_request
from shelter.utils.auth_middleware import current_principal, token_required
from shelter.utils.util import role_required, save_upload, remove_upload, DOCUMENT_EXTENSIONS, IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

adoption_ns = Namespace('adoptions', description='Adoption requests', path='/adoptions')

status_model = adoption_ns.model('AdoptionStatus', {
    'status': fields.String(required=True, description='pending, approved or rejected'),
    'rejection_reason': fields.String(description='Required when rejecting'),
})

request_parser = reqparse.RequestParser()
request_parser.add_argument('animal_id', type=int, location='form', help='Animal to adopt')
request_parser.add_argument('question1', type=str, location='form')
request_parser.add_argument('question2', type=str, location='form')
request_parser.add_argument('question3', type=str, location='form')
request_parser.add_argument('valid_id', type=reqparse.FileStorage, location='files', help='Government ID (image or PDF)')
request_parser.add_argument('selfie_with_id', type=reqparse.FileStorage, location='files', help='Selfie holding the ID')


@adoption_ns.route('')
class AdoptionRequestList(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @adoption_ns.doc('list_adoption_requests', security='BearerAuth')
    def get(self):
        """List adoption requests, newest first (staff)"""
        return [format_request(r) for r in adoption_service.list_requests()], 200

    @token_required
    @adoption_ns.expect(request_parser)
    @adoption_ns.doc('submit_adoption_request', security='BearerAuth')
    def post(self):
        """Submit an adoption request; the animal is reserved until review"""
        args = request_parser.parse_args()
        stored = []
        try:
            valid_id = None
            selfie = None
            if args.get('valid_id'):
                valid_id = save_upload(args['valid_id'], 'adoption_files', DOCUMENT_EXTENSIONS, field='valid_id')
                stored.append(valid_id)
            if args.get('selfie_with_id'):
                selfie = save_upload(args['selfie_with_id'], 'adoption_files', IMAGE_EXTENSIONS,
                                     field='selfie_with_id')
                stored.append(selfie)
            answers = [args.get('question1'), args.get('question2'), args.get('question3')]
            adoption_request = adoption_service.submit_request(
                current_principal(), args.get('animal_id'), answers, valid_id, selfie
            )
        except ShelterError:
            for reference in stored:
                remove_upload(reference)
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            for reference in stored:
                remove_upload(reference)
            logger.error(f"Error submitting adoption request: {e}")
            return {'message': 'Error submitting adoption request', 'error': str(e)}, 500
        return format_request(adoption_request), 201


@adoption_ns.route('/<int:request_id>/status')
class AdoptionRequestStatus(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @adoption_ns.expect(status_model)
    @adoption_ns.doc('update_adoption_status', security='BearerAuth')
    def post(self, request_id):
        """Approve or reject an adoption request and notify the adopter"""
        data = request.get_json(silent=True) or {}
        try:
            adoption_request = workflow_service.transition(
                workflow_service.ADOPTION_REQUEST, request_id, data.get('status'), data.get('rejection_reason'),
                actor=current_principal()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error updating adoption request {request_id}: {e}")
            return {'message': 'Error updating adoption request', 'error': str(e)}, 500
        return format_request(adoption_request), 200
