import logging

from flask import request
from flask_restx import Namespace, Resource, fields, reqparse
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import ShelterError
from shelter.models import Role
from shelter.services import abuse_service, workflow_service
from shelter.services.abuse_service import format_report
from shelter.utils import current_principal, token_required, role_required, save_upload, remove_upload
from shelter.utils.util import IMAGE_EXTENSIONS, REPORT_VIDEO_EXTENSIONS

logger = logging.getLogger(__name__)

abuse_ns = Namespace('abuse-reports', description='Animal abuse reports', path='/abuse-reports')

report_status_model = abuse_ns.model('AbuseReportStatus', {
    'status': fields.String(required=True, description='pending, approved or rejected'),
    'rejection_reason': fields.String(description='Required when rejecting'),
})

report_parser = reqparse.RequestParser()
report_parser.add_argument('description', type=str, location='form', help='What happened')
report_parser.add_argument('photos', type=reqparse.FileStorage, location='files', action='append')
report_parser.add_argument('videos', type=reqparse.FileStorage, location='files', action='append')


@abuse_ns.route('')
class AbuseReportList(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @abuse_ns.doc('list_abuse_reports', security='BearerAuth')
    def get(self):
        return [format_report(r) for r in abuse_service.list_reports()], 200

    @token_required
    @abuse_ns.expect(report_parser)
    @abuse_ns.doc('submit_abuse_report', security='BearerAuth')
    def post(self):
        """Report animal abuse with optional photos and videos"""
        args = report_parser.parse_args()
        photos, videos = [], []
        try:
            for photo in args.get('photos') or []:
                photos.append(save_upload(photo, 'abuse_photos', IMAGE_EXTENSIONS, field='photos'))
            for video in args.get('videos') or []:
                videos.append(save_upload(video, 'abuse_videos', REPORT_VIDEO_EXTENSIONS, field='videos'))
            report = abuse_service.submit_report(current_principal(), args.get('description'), photos, videos)
        except ShelterError:
            for reference in photos + videos:
                remove_upload(reference)
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            for reference in photos + videos:
                remove_upload(reference)
            logger.error(f"Error submitting abuse report: {e}")
            return {'message': 'Error submitting abuse report', 'error': str(e)}, 500
        return format_report(report), 201


@abuse_ns.route('/<int:report_id>/status')
class AbuseReportStatus(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @abuse_ns.expect(report_status_model)
    @abuse_ns.doc('update_abuse_report_status', security='BearerAuth')
    def post(self, report_id):
        data = request.get_json(silent=True) or {}
        try:
            report = workflow_service.transition(
                workflow_service.ABUSE_REPORT, report_id, data.get('status'), data.get('rejection_reason'),
                actor=current_principal()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error updating abuse report {report_id}: {e}")
            return {'message': 'Error updating abuse report', 'error': str(e)}, 500
        return format_report(report), 200
