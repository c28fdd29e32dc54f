"""JSON error handling for the API.

Every error leaves the app as ``{"error": "<message>"}`` with a status code:

  ValidationError        400  missing/invalid field
  Conflict               400  duplicate relationship, slug exhaustion
  AuthenticationRequired 401  no logged-in user
  PermissionDenied       403  role too low / no edit access to the campaign
  NotFound               404  id or slug miss

Routes are wrapped with ``@handle_errors('Failed to ...')`` so that anything
unexpected (usually a database error) is rolled back, logged server-side and
returned as a generic 500.
"""

from functools import wraps

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP status."""
    status_code = 500

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(ApiError):
    status_code = 400


class Conflict(ApiError):
    status_code = 400


class AuthenticationRequired(ApiError):
    status_code = 401

    def __init__(self, message='Authentication required', **kwargs):
        super().__init__(message, **kwargs)


class PermissionDenied(ApiError):
    status_code = 403

    def __init__(self, message='You do not have permission to perform this action', **kwargs):
        super().__init__(message, **kwargs)


class NotFound(ApiError):
    status_code = 404


def get_or_404(model, object_id, message=None):
    """Fetch a row by primary key or raise NotFound('<Model> not found')."""
    from npc_graph import db
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFound(message or f'{model.__name__} not found')
    return obj


def handle_errors(message):
    """Decorator: turn unexpected exceptions into a logged 500 with `message`.

    ApiError and werkzeug HTTPExceptions pass through untouched; the app-level
    handlers registered in register_error_handlers() render them.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except (ApiError, HTTPException):
                raise
            except Exception:
                from npc_graph import db
                db.session.rollback()
                current_app.logger.exception(message)
                return jsonify({'error': message}), 500
        return decorated
    return decorator


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def api_error(e):
        if e.status_code >= 500:
            app.logger.error(f'{e.status_code}: {e.message}')
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        # CSRF failures, 405s, unknown routes and rate limits all come through here
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def unexpected_error(e):
        from npc_graph import db
        db.session.rollback()
        app.logger.exception('Unhandled error')
        return jsonify({'error': 'Internal server error'}), 500
