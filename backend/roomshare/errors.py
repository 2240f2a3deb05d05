"""Domain errors raised by the services and rendered by the API.

Every error carries a snake_case ``code`` that ends up in the
``{"error": code}`` body, an optional human readable ``message`` and any
extra ``details`` the caller can act on (current state, offending field...).
"""
import logging

from flask import jsonify

from .extensions import db

logger = logging.getLogger(__name__)


class DomainError(Exception):
    status_code = 400

    def __init__(self, code, message=None, status_code=None, **details):
        super().__init__(message or code)
        self.code = code
        self.message = message or code.replace("_", " ")
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        body = {"error": self.code, "message": self.message}
        body.update(self.details)
        return body


class ValidationError(DomainError):
    status_code = 400


class DuplicateRequestError(ValidationError):
    status_code = 409


class ConflictError(DomainError):
    status_code = 409


class PermissionDenied(DomainError):
    status_code = 403


class NotFound(DomainError):
    status_code = 404


def register_error_handlers(app):
    @app.errorhandler(DomainError)
    def handle_domain_error(exc):
        db.session.rollback()
        logger.info("%s: %s %s", type(exc).__name__, exc.code, exc.details)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({"error": "not_found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(exc):
        return jsonify({"error": "method_not_allowed"}), 405
