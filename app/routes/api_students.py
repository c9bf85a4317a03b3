"""
API routes for students
Các API endpoint cho đăng ký và quản lý sinh viên
"""
from flask import Blueprint, jsonify

from app import globals as app_globals
from app.utils import (
    clean_text,
    get_request_data,
    normalize_student_id,
    pick,
    serialize_descriptor_entry,
    serialize_student,
)

student_api_bp = Blueprint('student_api', __name__, url_prefix='/api/students')


@student_api_bp.route('/register', methods=['POST'])
def register_student():
    """Đăng ký sinh viên mới kèm descriptor khuôn mặt."""
    data = get_request_data()
    student = app_globals.student_directory.register(
        normalize_student_id(pick(data, 'studentId', 'student_id')),
        clean_text(pick(data, 'name', 'full_name')),
        clean_text(pick(data, 'course')),
        descriptor=pick(data, 'faceDescriptor', 'face_descriptor'),
        samples=pick(data, 'faceSamples', 'face_samples'),
    )
    return jsonify({
        'success': True,
        'message': 'Student registered successfully',
        'data': serialize_student(student),
    }), 201


@student_api_bp.route('', methods=['GET'])
def get_students():
    """Lấy danh sách sinh viên đang hoạt động (không kèm descriptor)."""
    students = [serialize_student(s) for s in app_globals.student_directory.list_active()]
    return jsonify({'success': True, 'count': len(students), 'data': students})


@student_api_bp.route('/descriptors', methods=['GET'])
def get_student_descriptors():
    """Lấy descriptor của sinh viên để so khớp phía client."""
    rows = app_globals.student_directory.descriptor_rows()
    payload = [serialize_descriptor_entry(row) for row in rows]
    return jsonify({'success': True, 'count': len(payload), 'data': payload})


@student_api_bp.route('/<student_id>', methods=['GET'])
def get_student(student_id):
    student = app_globals.student_directory.get(normalize_student_id(student_id))
    return jsonify({'success': True, 'data': serialize_student(student)})


@student_api_bp.route('/<student_id>', methods=['PUT'])
def update_student(student_id):
    """Cập nhật tên, lớp hoặc descriptor của sinh viên."""
    data = get_request_data()
    student = app_globals.student_directory.update(
        normalize_student_id(student_id),
        name=clean_text(pick(data, 'name', 'full_name')),
        course=clean_text(pick(data, 'course')),
        descriptor=pick(data, 'faceDescriptor', 'face_descriptor'),
    )
    return jsonify({
        'success': True,
        'message': 'Student updated successfully',
        'data': serialize_student(student),
    })


@student_api_bp.route('/<student_id>', methods=['DELETE'])
def delete_student(student_id):
    """Xóa mềm sinh viên."""
    app_globals.student_directory.deactivate(normalize_student_id(student_id))
    return jsonify({'success': True, 'message': 'Student deleted successfully'})
