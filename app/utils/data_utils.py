"""
Data utilities
Helper functions cho đọc request và serialize bản ghi
"""
import math
from datetime import date

from flask import request

from core.recognition.descriptors import ValidationError, descriptor_from_blob


def get_request_data():
    """Lấy request data từ JSON hoặc form."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise ValidationError('Invalid JSON body')
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        return data
    return request.form.to_dict()


def pick(data, *keys):
    """Lấy giá trị đầu tiên khác None theo danh sách khóa (camelCase, snake_case)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def clean_text(value):
    """Chuẩn hóa chuỗi đầu vào; trả về '' nếu không hợp lệ."""
    if isinstance(value, bool) or value is None:
        return ''
    if isinstance(value, (int, float)):
        return str(value).strip()
    if isinstance(value, str):
        return value.strip()
    return ''


def normalize_student_id(value):
    """Mã sinh viên: bỏ khoảng trắng, viết hoa."""
    return clean_text(value).upper()


def parse_confidence(value):
    """
    Phân tích độ tin cậy (0-100). Client gửi dạng số hoặc chuỗi ("93.4").
    Returns: float hoặc None nếu không có.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError('confidence must be a number between 0 and 100')
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        raise ValidationError('confidence must be a number between 0 and 100')
    if math.isnan(confidence) or confidence < 0 or confidence > 100:
        raise ValidationError('confidence must be a number between 0 and 100')
    return confidence


def parse_iso_date(value):
    """Kiểm tra chuỗi ngày dạng YYYY-MM-DD."""
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid date "{value}". Expected YYYY-MM-DD')


def serialize_student(row, include_descriptor=False):
    """Chuyển bản ghi sinh viên thành dict có thể serialize (khóa camelCase)."""
    if not row:
        return None
    payload = {
        'studentId': row['student_id'],
        'name': row['full_name'],
        'course': row['course'],
        'isActive': bool(row['is_active']),
        'registeredAt': row['created_at'],
        'updatedAt': row['updated_at'],
    }
    if include_descriptor:
        descriptor = descriptor_from_blob(row['face_descriptor'])
        payload['faceDescriptor'] = descriptor.tolist() if descriptor is not None else None
    return payload


def serialize_descriptor_entry(row):
    """Bản ghi phục vụ so khớp phía client: {id, name, course, faceData}."""
    descriptor = descriptor_from_blob(row['face_descriptor'])
    return {
        'id': row['student_id'],
        'name': row['full_name'],
        'course': row['course'],
        'faceData': descriptor.tolist() if descriptor is not None else [],
    }


def serialize_attendance(row):
    """Chuyển bản ghi điểm danh thành dict có thể serialize."""
    if not row:
        return None
    return {
        'id': row['id'],
        'studentId': row['student_id'],
        'name': row['student_name'],
        'course': row['course'],
        'date': row['attendance_date'],
        'checkInTime': row['check_in_time'],
        'confidence': row['confidence_score'],
    }
