import logging

from flask_restx import Namespace, Resource, reqparse
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import ShelterError
from shelter.services import user_service
from shelter.services.user_service import format_user
from shelter.utils import current_principal, token_required, save_upload, remove_upload
from shelter.utils.util import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

profile_ns = Namespace('profile', description='Current user profile', path='/profile')

profile_parser = reqparse.RequestParser()
profile_parser.add_argument('name', type=str, location='form')
profile_parser.add_argument('last_name', type=str, location='form')
profile_parser.add_argument('email', type=str, location='form')
profile_parser.add_argument('address', type=str, location='form')
profile_parser.add_argument('phone_number', type=str, location='form', help='11 digits')
profile_parser.add_argument('age', type=str, location='form')
profile_parser.add_argument('gender', type=str, location='form', help='male, female or other')
profile_parser.add_argument('civil_status', type=str, location='form')
profile_parser.add_argument('profile_photo', type=reqparse.FileStorage, location='files')


@profile_ns.route('')
class Profile(Resource):
    @token_required
    def get(self):
        return format_user(user_service.get_user(current_principal().id)), 200

    @token_required
    @profile_ns.expect(profile_parser)
    def put(self):
        """Update the profile; adoption requests need it complete"""
        args = profile_parser.parse_args()
        photo_ref = None
        try:
            if args.get('profile_photo'):
                photo_ref = save_upload(args['profile_photo'], 'profile_photos', IMAGE_EXTENSIONS,
                                        field='profile_photo')
            user = user_service.update_profile(current_principal().id, args, photo_ref)
        except ShelterError:
            remove_upload(photo_ref)
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            remove_upload(photo_ref)
            logger.error(f"Error updating profile: {e}")
            return {'message': 'Error updating profile', 'error': str(e)}, 500
        return format_user(user), 200
