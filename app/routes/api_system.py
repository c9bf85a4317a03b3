"""
API routes for system status
Các API cho trạng thái hệ thống và quản trị
"""
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from app import globals as app_globals
from app.errors import ForbiddenError
from database import StorageError
from logging_config import get_client_ip, security_logger

system_api_bp = Blueprint('system_api', __name__, url_prefix='/api')

API_VERSION = '1.0.0'


def _database_status():
    try:
        app_globals.database.ping()
        return 'connected'
    except StorageError as exc:
        current_app.logger.warning(f"Database ping failed: {exc}")
        return 'disconnected'


@system_api_bp.route('', methods=['GET'])
def api_index():
    """Danh sách endpoint của API"""
    return jsonify({
        'message': 'Biometric Attendance System API',
        'version': API_VERSION,
        'status': 'running',
        'database': _database_status(),
        'endpoints': {
            'health': 'GET /api/health',
            'students': {
                'list': 'GET /api/students',
                'register': 'POST /api/students/register',
                'descriptors': 'GET /api/students/descriptors',
                'getOne': 'GET /api/students/:studentId',
                'update': 'PUT /api/students/:studentId',
                'delete': 'DELETE /api/students/:studentId',
            },
            'attendance': {
                'today': 'GET /api/attendance/today',
                'checkin': 'POST /api/attendance/checkin',
                'verify': 'POST /api/attendance/verify',
                'identify': 'POST /api/attendance/identify',
                'byDate': 'GET /api/attendance/date/:date',
                'byStudent': 'GET /api/attendance/student/:studentId',
                'stats': 'GET /api/attendance/stats',
            },
        },
    })


@system_api_bp.route('/health', methods=['GET'])
def api_health():
    """Kiểm tra trạng thái API"""
    return jsonify({
        'status': 'ok',
        'message': 'Biometric Attendance API is running',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'database': _database_status(),
        'matchThreshold': app_globals.matcher.threshold,
        'descriptorLength': app_globals.matcher.descriptor_length,
    })


@system_api_bp.route('/admin/clear-all', methods=['DELETE'])
def api_clear_all():
    """Xóa toàn bộ dữ liệu (chỉ bật khi ALLOW_CLEAR_ALL=1)"""
    ip_address = get_client_ip(request)
    if not current_app.config.get('ALLOW_CLEAR_ALL'):
        security_logger.log_admin_action('clear-all (denied)', ip_address=ip_address)
        raise ForbiddenError('Clearing data is disabled on this server')

    removed = app_globals.database.clear_all()
    security_logger.log_admin_action('clear-all', ip_address=ip_address, details=removed)
    return jsonify({'success': True, 'message': 'All data cleared successfully', 'data': removed})
