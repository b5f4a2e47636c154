from flask import jsonify
from werkzeug.exceptions import HTTPException


class AppError(Exception):
    """Base class for errors that map onto the JSON error envelope."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Authentication required"


class InvalidSignature(Unauthorized):
    default_message = "Invalid token"


class TokenExpired(Unauthorized):
    default_message = "Token expired"


class SessionNotFound(Unauthorized):
    default_message = "Invalid refresh token"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class InternalError(AppError):
    status_code = 500


class DecryptionError(InternalError):
    default_message = "Unable to decrypt secret"


def _error_response(message, status_code):
    response = jsonify({'success': False, 'message': message})
    response.status_code = status_code
    return response


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        if err.status_code >= 500:
            app.logger.error("%s: %s", type(err).__name__, err.message)
        return _error_response(err.message, err.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return _error_response(err.description, err.code)

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        app.logger.exception("Unhandled exception")
        message = "Internal Server Error"
        if app.debug:
            message = f"{message}: {err}"
        return _error_response(message, 500)
