# --- blissora/errors.py ---
from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .utils.api import api_error


class ApiError(Exception):
    """Base for every error that the API reports to its callers.

    ``clear_cookies`` lists cookie names the error handler removes from the
    response, so a failed session check also drops the client's copy.
    """

    status_code = 500
    message = "Server error"

    def __init__(self, message=None, status_code=None, clear_cookies=(), data=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.clear_cookies = tuple(clear_cookies)
        self.data = data


class ValidationError(ApiError):
    status_code = 400
    message = "Invalid request"


class InvalidCredentials(ApiError):
    status_code = 400
    message = "Invalid credentials"


class UserAlreadyExists(ApiError):
    status_code = 400
    message = "User already exists"


class Unauthorized(ApiError):
    status_code = 401
    message = "Unauthorized"


class SessionExpired(ApiError):
    status_code = 403
    message = "Session expired, please login again"


class InvalidToken(ApiError):
    status_code = 403
    message = "Invalid token"


class Forbidden(ApiError):
    status_code = 403
    message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    message = "Not found"


class Conflict(ApiError):
    status_code = 409
    message = "Conflict"


class ServerError(ApiError):
    status_code = 500


def _error_response(message, status_code, data=None):
    resp = jsonify(api_error(message, data))
    resp.status_code = status_code
    return resp


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status_code >= 500:
            app.logger.error("api error: %s", e.message)
        resp = _error_response(e.message, e.status_code, e.data)
        for name in e.clear_cookies:
            resp.delete_cookie(
                name,
                httponly=True,
                secure=current_app.config["AUTH_COOKIE_SECURE"],
                samesite="Strict",
            )
        return resp

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _error_response(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception("unhandled error: %s", e)
        return _error_response("Server error", 500)


def register_jwt_handlers(jwt):
    """Give Flask-JWT-Extended's access-token failures the API envelope."""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return _error_response("Access token missing", 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return _error_response("Access token expired", 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return _error_response("Invalid token", 401)

    @jwt.user_lookup_error_loader
    def user_not_found(jwt_header, jwt_payload):
        return _error_response("Invalid token", 401)
