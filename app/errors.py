"""
Error taxonomy and JSON error handlers
Phân loại lỗi và chuyển đổi sang HTTP status + JSON
"""
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from core.recognition.descriptors import ValidationError
from database import StorageError
from logging_config import api_logger


class APIError(Exception):
    """Lỗi nghiệp vụ có mã HTTP tương ứng."""

    status_code = 500

    def __init__(self, message, data=None, error=None):
        super().__init__(message)
        self.message = message
        self.data = data
        self.error = error


class ConflictError(APIError):
    """Trùng mã sinh viên hoặc đã điểm danh trong ngày."""
    status_code = 409


class NotFoundError(APIError):
    status_code = 404


class ForbiddenError(APIError):
    status_code = 403


def error_payload(message, data=None, error=None):
    payload = {'success': False, 'message': message}
    if error is not None:
        payload['error'] = error
    if data is not None:
        payload['data'] = data
    return payload


def _respond(status_code, message, data=None, error=None):
    api_logger.log_error(request.path, error or message, status_code=status_code)
    return jsonify(error_payload(message, data=data, error=error)), status_code


def register_error_handlers(app):
    """Đăng ký các error handler trả về JSON cho Flask app."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return _respond(400, str(exc))

    @app.errorhandler(APIError)
    def handle_api_error(exc):
        return _respond(exc.status_code, exc.message, data=exc.data, error=exc.error)

    @app.errorhandler(StorageError)
    def handle_storage_error(exc):
        return _respond(500, 'Database error', error=str(exc))

    @app.errorhandler(404)
    def handle_not_found(exc):
        api_logger.log_error(request.path, 'Endpoint not found', status_code=404)
        payload = error_payload('API endpoint not found')
        payload['requested'] = request.path
        payload['availableEndpoints'] = [
            'GET /api/health',
            'GET /api/students',
            'POST /api/students/register',
            'GET /api/students/descriptors',
            'POST /api/attendance/checkin',
            'POST /api/attendance/verify',
            'GET /api/attendance/today',
        ]
        return jsonify(payload), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc):
        return _respond(exc.code or 500, exc.description or exc.name)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        app.logger.error(f"Unhandled error on {request.path}: {exc}", exc_info=True)
        return _respond(500, 'Internal server error', error=str(exc))


__all__ = [
    'APIError',
    'ConflictError',
    'ForbiddenError',
    'NotFoundError',
    'StorageError',
    'ValidationError',
    'error_payload',
    'register_error_handlers',
]
