from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core.exceptions import GoogleAPICallError

from .errors import (
    AppError,
    DuplicateResourceError,
    NotFoundError,
    PermissionDenied,
    TransientUnavailable,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code, **extra):
    return jsonify({"error": message, **extra}), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors, including empty messages."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(PermissionDenied)
def handle_permission_denied(error):
    """Handles mutations the caller is not allowed to perform."""
    current_app.logger.warning(f"Permission Denied: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(TransientUnavailable)
def handle_transient_unavailable(error):
    """Handles writes that failed because the store was unreachable.

    The unsent draft goes back to the client so it can restore its input.
    """
    current_app.logger.error(f"Transient Error: {error.message}")
    extra = {"retryable": True}
    if error.draft is not None:
        extra["draft"] = error.draft.to_dict()
    return _error_response(error.message, error.status_code, **extra)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_store_error(e):
    """Handles Firestore and Storage errors that reached a view."""
    current_app.logger.error(f"Store Error: {e}")
    # Avoid exposing raw backend error details to the user
    return _error_response(
        "The service is temporarily unavailable. Please try again later.",
        503,
        retryable=True,
    )


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("Not found.", 404)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or a
    request sent without the X-CSRFToken header.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _error_response(
        "Your session may have expired. Please try your action again.", 400
    )
