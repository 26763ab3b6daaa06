# shelter/utils/util.py
import logging
import os
import uuid
from functools import wraps

from flask import current_app
from flask_jwt_extended import jwt_required
from werkzeug.utils import secure_filename

from shelter.errors import ValidationError, DependencyFailure
from .auth_middleware import current_principal

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif'}
VIDEO_EXTENSIONS = {'mp4', 'avi', 'mkv', 'mov'}
REPORT_VIDEO_EXTENSIONS = {'mp4', 'avi', 'mpeg'}
DOCUMENT_EXTENSIONS = IMAGE_EXTENSIONS | {'pdf'}


def role_required(*roles):
    def wrapper(fn):
        @wraps(fn)
        @jwt_required()
        def decorator(*args, **kwargs):
            if current_principal().role not in roles:
                return {'message': 'Access denied'}, 403
            return fn(*args, **kwargs)
        return decorator
    return wrapper


def file_extension(filename):
    return filename.rsplit('.', 1)[1].lower() if '.' in filename else ''


def allowed_file(filename, allowed):
    return file_extension(filename) in allowed


def save_upload(file, folder, allowed, field='file'):
    """Store an uploaded file and return its reference relative to UPLOAD_FOLDER."""
    if file is None or not file.filename or not allowed_file(file.filename, allowed):
        raise ValidationError('Invalid file', {field: f"Allowed extensions: {', '.join(sorted(allowed))}"})
    unique_name = f"{uuid.uuid4().hex}_{secure_filename(file.filename)}"
    target_dir = os.path.join(current_app.config['UPLOAD_FOLDER'], folder)
    try:
        os.makedirs(target_dir, exist_ok=True)
        file.save(os.path.join(target_dir, unique_name))
    except OSError as e:
        logger.error(f"Failed to save upload {file.filename}: {e}")
        raise DependencyFailure('Failed to store the uploaded file') from e
    return f"{folder}/{unique_name}"


def remove_upload(reference):
    if not reference:
        return
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], reference)
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Could not remove old upload {reference}: {e}")
