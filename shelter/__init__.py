import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_restx import Api

from shelter.config import Config

migrate = Migrate()
db = SQLAlchemy()
jwt = JWTManager()

logger = logging.getLogger(__name__)


def build_api():
    return Api(
        title='Shelter API',
        version='1.0',
        description='Animal shelter adoption, abuse reporting, chat and notifications API',
        doc='/docs',
        ui_config={
            'displayOperationId': True,
            'docExpansion': 'none',
            'filter': True,
            'defaultModelsExpandDepth': 1,
            'defaultModelExpandDepth': 1
        },
        security=[{'BearerAuth': []}],
        authorizations={
            'BearerAuth': {
                'type': 'apiKey',
                'in': 'header',
                'name': 'Authorization',
                'description': 'Enter your JWT token as "Bearer <token>"'
            }
        }
    )


def register_error_handlers(api):
    from shelter.errors import ShelterError

    @api.errorhandler(ShelterError)
    def handle_shelter_error(error):
        db.session.rollback()
        logger.warning(f"{type(error).__name__}: {error.message}")
        return error.to_dict(), int(error.status_code)


def create_app(config_class=Config):
    app = Flask(__name__, static_url_path='/static')
    app.config.from_object(config_class)
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Create the upload directory if it doesn't exist
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Route for serving uploaded files
    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(os.path.abspath(app.config['UPLOAD_FOLDER']), filename)

    # Enable CORS
    CORS(app, resources={r"/*": {"origins": app.config.get('CORS_ORIGINS', '*')}},
         supports_credentials=app.config.get('CORS_SUPPORTS_CREDENTIALS', True),
         allow_headers=app.config.get('CORS_ALLOW_HEADERS', ["Content-Type", "Authorization"]),
         methods=app.config.get('CORS_METHODS', ["GET", "POST", "PUT", "DELETE", "OPTIONS"]))

    # Refresh presence for authenticated requests
    from .utils.auth_middleware import setup_auth_middleware
    setup_auth_middleware(app)

    # Register API namespaces
    from .routes import register_namespaces
    api = build_api()
    register_namespaces(api)
    register_error_handlers(api)
    api.init_app(app)
    app.extensions['restx_api'] = api

    # Socket.IO server for notifications and chat
    from .realtime import init_realtime
    init_realtime(app)

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({
            'message': 'You do not have permission to perform this operation',
            'error': str(error)
        }), 403

    with app.app_context():
        db.create_all()  # Create all tables

    return app
