import logging

from flask_restx import Namespace, Resource, fields, reqparse
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from shelter import db
from shelter.errors import ShelterError
from shelter.models import Role
from shelter.services import animal_service
from shelter.services.animal_service import format_animal
from shelter.utils.util import role_required, save_upload, remove_upload, IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

animal_ns = Namespace('animals', description='Animal profile operations', path='/animals')

animal_model = animal_ns.model('Animal', {
    'id': fields.Integer(readonly=True),
    'name': fields.String(required=True),
    'age': fields.Integer(required=True),
    'breed': fields.String(required=True),
    'species': fields.String(required=True),
    'birthdate': fields.String(description='ISO date'),
    'color': fields.String(required=True),
    'gender': fields.String(required=True),
    'description': fields.String(required=True),
    'image': fields.String(),
    'medical_records': fields.String(),
    'is_adopted': fields.Boolean(readonly=True),
    'is_temporarily_adopted': fields.Boolean(readonly=True),
    'device_id': fields.String(),
    'traccar_id': fields.Integer(readonly=True),
})

animal_parser = reqparse.RequestParser()
animal_parser.add_argument('name', type=str, location='form', help='Animal name')
animal_parser.add_argument('age', type=str, location='form', help='Age in years')
animal_parser.add_argument('breed', type=str, location='form')
animal_parser.add_argument('species', type=str, location='form')
animal_parser.add_argument('color', type=str, location='form')
animal_parser.add_argument('gender', type=str, location='form')
animal_parser.add_argument('birthdate', type=str, location='form', help='ISO date (YYYY-MM-DD)')
animal_parser.add_argument('description', type=str, location='form')
animal_parser.add_argument('medical_records', type=str, location='form')
animal_parser.add_argument('unique_id', type=str, location='form', help='Tracking device unique id')
animal_parser.add_argument('profile_picture', type=reqparse.FileStorage, location='files', help='Animal photo')


def _store_picture(args):
    picture = args.get('profile_picture')
    if not picture:
        return None
    return save_upload(picture, 'animal_profiles', IMAGE_EXTENSIONS, field='profile_picture')


@animal_ns.route('')
class AnimalList(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @animal_ns.doc('list_animals', security='BearerAuth')
    def get(self):
        """List every animal profile (staff)"""
        return [format_animal(a) for a in animal_service.list_animals()], 200

    @role_required(Role.STAFF, Role.ADMIN)
    @animal_ns.expect(animal_parser)
    @animal_ns.doc('create_animal', security='BearerAuth')
    @animal_ns.response(201, 'Created', animal_model)
    def post(self):
        """Create an animal profile, registering its tracking device first"""
        args = animal_parser.parse_args()
        image_ref = _store_picture(args)
        try:
            animal = animal_service.create_animal(args, image_ref)
        except ShelterError:
            remove_upload(image_ref)
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            remove_upload(image_ref)
            logger.error(f"Error creating animal profile: {e}")
            return {'message': 'Error creating animal profile', 'error': str(e)}, 500
        return format_animal(animal), 201


@animal_ns.route('/available')
class AvailableAnimals(Resource):
    @jwt_required()
    @animal_ns.doc('list_available_animals', security='BearerAuth')
    def get(self):
        """Animals that are neither adopted nor reserved"""
        return [format_animal(a) for a in animal_service.list_available()], 200


@animal_ns.route('/<int:animal_id>')
class AnimalResource(Resource):
    @jwt_required()
    @animal_ns.doc('get_animal', security='BearerAuth')
    def get(self, animal_id):
        return format_animal(animal_service.get_animal(animal_id)), 200

    @role_required(Role.STAFF, Role.ADMIN)
    @animal_ns.expect(animal_parser)
    @animal_ns.doc('update_animal', security='BearerAuth')
    def put(self, animal_id):
        """Update an animal profile"""
        args = animal_parser.parse_args()
        image_ref = _store_picture(args)
        try:
            animal = animal_service.update_animal(animal_id, args, image_ref)
        except ShelterError:
            remove_upload(image_ref)
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            remove_upload(image_ref)
            logger.error(f"Error updating animal profile {animal_id}: {e}")
            return {'message': 'Error updating animal profile', 'error': str(e)}, 500
        return format_animal(animal), 200

    @role_required(Role.STAFF, Role.ADMIN)
    @animal_ns.doc('delete_animal', security='BearerAuth')
    def delete(self, animal_id):
        try:
            animal_service.delete_animal(animal_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error deleting animal profile {animal_id}: {e}")
            return {'message': 'Error deleting animal profile', 'error': str(e)}, 500
        return {'message': 'Animal profile deleted'}, 200


@animal_ns.route('/<int:animal_id>/adopted')
class AnimalAdopted(Resource):
    @role_required(Role.STAFF, Role.ADMIN)
    @animal_ns.doc('mark_animal_adopted', security='BearerAuth')
    def post(self, animal_id):
        """Mark an animal as adopted outside the request workflow"""
        return format_animal(animal_service.mark_as_adopted(animal_id)), 200
