# Error taxonomy shared by services and routes
from http import HTTPStatus


class ShelterError(Exception):
    """Base class for errors that services raise and the API renders."""
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self):
        body = {'message': self.message}
        if self.errors:
            body['errors'] = self.errors
        return body


class ValidationError(ShelterError):
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class EmptyMessage(ValidationError):
    def __init__(self, message='Message must have text or an attachment'):
        super().__init__(message, {'message': message})


class NotFound(ShelterError):
    status_code = HTTPStatus.NOT_FOUND


class InvalidStatus(ShelterError):
    status_code = HTTPStatus.BAD_REQUEST


class InvalidTransition(InvalidStatus):
    status_code = HTTPStatus.CONFLICT


class MissingReason(ShelterError):
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, message='A rejection reason is required'):
        super().__init__(message, {'rejection_reason': message})


class DependencyFailure(ShelterError):
    status_code = HTTPStatus.BAD_GATEWAY
