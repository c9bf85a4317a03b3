"""
API routes for attendance
Các API endpoint cho điểm danh
"""
from flask import Blueprint, jsonify, request

from app import globals as app_globals
from app.errors import ConflictError
from app.utils import (
    clean_text,
    csv_response,
    get_request_data,
    normalize_student_id,
    parse_confidence,
    parse_iso_date,
    pick,
    serialize_attendance,
    serialize_student,
)

attendance_api_bp = Blueprint('attendance_api', __name__, url_prefix='/api/attendance')


def _admitted_response(record, match=None):
    payload = {
        'success': True,
        'message': 'Attendance marked successfully',
        'data': serialize_attendance(record),
    }
    if match is not None:
        payload['match'] = match.to_dict()
    return jsonify(payload), 201


@attendance_api_bp.route('/checkin', methods=['POST'])
def api_checkin():
    """Điểm danh cho sinh viên đã được nhận diện phía client."""
    data = get_request_data()
    student_id = normalize_student_id(pick(data, 'studentId', 'student_id'))
    name = clean_text(pick(data, 'name', 'student_name'))
    course = clean_text(pick(data, 'course'))
    confidence = parse_confidence(pick(data, 'confidence', 'confidence_score'))

    if not student_id or not name or not course:
        return jsonify({'success': False, 'message': 'Student information is required'}), 400

    app_globals.student_directory.get_active(student_id)
    try:
        record = app_globals.admission_gate.admit(student_id, name, course, confidence)
    except ConflictError as exc:
        exc.data = serialize_attendance(exc.data)
        raise
    return _admitted_response(record)


@attendance_api_bp.route('/verify', methods=['POST'])
def api_verify():
    """So khớp descriptor phía server rồi điểm danh."""
    data = get_request_data()
    probe = pick(data, 'faceDescriptor', 'face_descriptor', 'descriptor')
    if probe is None:
        return jsonify({'success': False, 'message': 'faceDescriptor is required'}), 400

    try:
        match, record = app_globals.recognition_service.check_in(probe)
    except ConflictError as exc:
        exc.data = serialize_attendance(exc.data)
        raise
    return _admitted_response(record, match)


@attendance_api_bp.route('/today', methods=['GET'])
def api_attendance_today():
    """Danh sách điểm danh hôm nay (?format=csv để tải file)."""
    today = app_globals.admission_gate.today()
    records = [serialize_attendance(r) for r in app_globals.database.get_attendance_by_date(today)]
    if (request.args.get('format') or '').lower() == 'csv':
        return csv_response(records, f'attendance_{today}.csv')
    return jsonify({'success': True, 'date': today, 'count': len(records), 'data': records})


@attendance_api_bp.route('/date/<attendance_date>', methods=['GET'])
def api_attendance_by_date(attendance_date):
    """Danh sách điểm danh theo ngày (YYYY-MM-DD)."""
    day = parse_iso_date(attendance_date)
    records = [serialize_attendance(r) for r in app_globals.database.get_attendance_by_date(day)]
    if (request.args.get('format') or '').lower() == 'csv':
        return csv_response(records, f'attendance_{day}.csv')
    return jsonify({'success': True, 'date': day, 'count': len(records), 'data': records})


@attendance_api_bp.route('/student/<student_id>', methods=['GET'])
def api_attendance_by_student(student_id):
    """Lịch sử điểm danh của một sinh viên."""
    normalized = normalize_student_id(student_id)
    limit = request.args.get('limit', type=int)
    history = app_globals.database.get_student_attendance_history(normalized, limit=limit)
    records = [serialize_attendance(r) for r in history]
    return jsonify({'success': True, 'studentId': normalized, 'count': len(records), 'data': records})


@attendance_api_bp.route('/stats', methods=['GET'])
def api_attendance_stats():
    """Thống kê điểm danh trong ngày."""
    stats = app_globals.database.get_attendance_stats(app_globals.admission_gate.today())
    return jsonify({
        'success': True,
        'data': {
            'totalStudents': stats['total_students'],
            'presentToday': stats['present'],
            'absentToday': stats['absent'],
            'attendanceRate': stats['attendance_rate'],
            'totalAttendanceRecords': stats['total_records'],
            'date': stats['date'],
        },
    })


@attendance_api_bp.route('/identify', methods=['POST'])
def api_identify():
    """Chỉ nhận diện, không ghi điểm danh."""
    data = get_request_data()
    probe = pick(data, 'faceDescriptor', 'face_descriptor', 'descriptor')
    if probe is None:
        return jsonify({'success': False, 'message': 'faceDescriptor is required'}), 400
    match, student = app_globals.recognition_service.identify(probe)
    return jsonify({
        'success': True,
        'data': {
            'match': match.to_dict(),
            'student': serialize_student(student),
        },
    })
