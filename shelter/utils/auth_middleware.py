from dataclasses import dataclass
from functools import wraps

from flask import request, g
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from shelter import db
from shelter.models.user_model import User, Role, STAFF_ROLES


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, passed explicitly into services."""
    id: int
    role: Role

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES


def current_principal():
    identity = get_jwt_identity()
    claims = get_jwt()
    try:
        role = Role(claims.get('role', Role.USER.value))
    except ValueError:
        role = Role.USER
    return Principal(id=int(identity), role=role)


def token_required(f):
    @wraps(f)
    @jwt_required()
    def decorated(*args, **kwargs):
        principal = current_principal()
        if db.session.get(User, principal.id) is None:
            return {'message': 'User not found'}, 401
        g.principal = principal
        return f(*args, **kwargs)
    return decorated


def setup_auth_middleware(app):
    from shelter.services.user_service import touch_activity

    @app.before_request
    def before_request():
        if request.method == 'OPTIONS' or request.path.startswith('/static/') or request.path == '/docs':
            return None
        try:
            verify_jwt_in_request(optional=True)
        except (JWTExtendedException, PyJWTError):
            # Rejected later by @jwt_required on the route itself
            return None
        identity = get_jwt_identity()
        if identity is not None:
            touch_activity(int(identity))
        return None
