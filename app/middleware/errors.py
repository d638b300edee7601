"""
Error middleware
Renders the error taxonomy as structured JSON and logs every API request
"""
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from core.errors import AttendanceError
from logging_config import api_logger, log_request_info


def error_payload(kind, message):
    return {
        'ok': False,
        'success': False,
        'error': {'kind': kind, 'message': message},
    }


def register_error_middleware(app):
    """Register request logging and the error handlers with the Flask app."""

    @app.before_request
    def _log_request():
        if request.path.startswith('/api/'):
            log_request_info(request)

    @app.errorhandler(AttendanceError)
    def _handle_attendance_error(exc):
        api_logger.log_error(request.path, f"{exc.kind}: {exc.message}", exc.status_code)
        return jsonify(error_payload(exc.kind, exc.message)), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc):
        kind = (exc.name or 'http_error').lower().replace(' ', '_')
        return jsonify(error_payload(kind, exc.description)), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc):
        app.logger.error(f"Unhandled error on {request.path}: {exc}", exc_info=True)
        api_logger.log_error(request.path, str(exc), 500)
        return jsonify(error_payload('internal_error', 'Internal server error')), 500
