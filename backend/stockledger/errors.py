# backend/stockledger/errors.py
"""
App-wide JSON error handlers.

Routes never catch domain errors themselves: services raise from the
validation hierarchy, these handlers roll back the unit of work and map
the exception to {"error": message} with its HTTP status.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db
from .validation import ConflictError, NotFoundError, ValidationError

errors_bp = Blueprint("errors", __name__)


def _error_response(message: str, status: int):
    db.session.rollback()
    return jsonify({"error": message}), status


@errors_bp.app_errorhandler(ValidationError)
def handle_validation_error(error: ValidationError):
    return _error_response(str(error), 400)


@errors_bp.app_errorhandler(NotFoundError)
def handle_not_found(error: NotFoundError):
    return _error_response(str(error), 404)


@errors_bp.app_errorhandler(ConflictError)
def handle_conflict(error: ConflictError):
    current_app.logger.info("Conflict: %s", error)
    return _error_response(str(error), 409)


@errors_bp.app_errorhandler(HTTPException)
def handle_http_exception(error: HTTPException):
    # Unknown routes, wrong methods, malformed JSON bodies
    return _error_response(error.description or error.name, error.code or 500)


@errors_bp.app_errorhandler(Exception)
def handle_unexpected(error: Exception):
    current_app.logger.exception("Unhandled exception", exc_info=error)
    return _error_response("Internal Server Error", 500)
