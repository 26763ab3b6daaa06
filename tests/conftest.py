import io
from itertools import count
from unittest.mock import MagicMock

import pytest
from flask_jwt_extended import create_access_token

from shelter import create_app, db
from shelter.config import TestConfig
from shelter.errors import DependencyFailure
from shelter.models import Animal, Role, User


class FakeTrackingClient:
    """Stands in for the tracking service; records calls and hands out ids."""

    def __init__(self):
        self.registered = []
        self.updated = []
        self.fail = False
        self._ids = count(100)

    def register_device(self, name, unique_id):
        if self.fail:
            raise DependencyFailure('Failed to reach the tracking service')
        self.registered.append((name, unique_id))
        return next(self._ids)

    def update_device(self, traccar_id, name, unique_id):
        if self.fail:
            raise DependencyFailure('Failed to reach the tracking service')
        self.updated.append((traccar_id, name, unique_id))


@pytest.fixture
def app():
    app = create_app(TestConfig)
    app.extensions['tracking'] = FakeTrackingClient()
    app.extensions['broadcaster'].server = MagicMock()
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def emitter(app):
    """The mocked Socket.IO server every publish goes through."""
    return app.extensions['broadcaster'].server


@pytest.fixture
def tracking(app):
    return app.extensions['tracking']


@pytest.fixture
def make_user(app):
    serial = count(1)

    def _make(role=Role.USER, complete=True, **overrides):
        n = next(serial)
        fields = {
            'name': f'User{n}',
            'last_name': 'Tester',
            'email': f'user{n}@example.com',
            'role': role,
        }
        if complete:
            fields.update(address='12 Shelter Road', phone_number='09171234567', age=30,
                          gender='female', civil_status='single')
        fields.update(overrides)
        user = User(**fields)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_animal(app):
    def _make(**overrides):
        fields = {
            'name': 'Bella',
            'age': 2,
            'breed': 'Aspin',
            'species': 'Dog',
            'color': 'Brown',
            'gender': 'Female',
            'description': 'Friendly and calm',
            'image': 'animal_profiles/bella.png',
        }
        fields.update(overrides)
        animal = Animal(**fields)
        db.session.add(animal)
        db.session.commit()
        return animal
    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id), additional_claims={'role': user.role.value})
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def staff(make_user):
    return make_user(role=Role.STAFF)


@pytest.fixture
def adopter(make_user):
    return make_user()


def image_file(name='photo.png'):
    return io.BytesIO(b'\x89PNG fake image bytes'), name


def published(emitter):
    """(event, payload, room) for every emit the mocked server received."""
    return [(c.args[0], c.args[1], c.kwargs.get('room')) for c in emitter.emit.call_args_list]
