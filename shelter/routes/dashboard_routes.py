import logging

from flask_restx import Namespace, Resource, reqparse
from sqlalchemy.exc import SQLAlchemyError

from shelter.models import Role
from shelter.services import dashboard_service
from shelter.utils import role_required

logger = logging.getLogger(__name__)

dashboard_ns = Namespace('dashboard', description='Operations related to dashboard statistics', path='/dashboard')

stats_parser = reqparse.RequestParser()
stats_parser.add_argument('year', type=int, location='args', help='Year for the monthly charts')


@dashboard_ns.route('/stats')
class DashboardStats(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @dashboard_ns.expect(stats_parser)
    def get(self):
        """Get dashboard statistics for staff"""
        args = stats_parser.parse_args()
        try:
            return dashboard_service.get_stats(args.get('year')), 200
        except SQLAlchemyError as e:
            logger.error(f"Failed to build dashboard statistics: {e}")
            return {'message': 'Failed to retrieve dashboard statistics', 'error': str(e)}, 500
