"""
Utils package
"""
from .data_utils import (
    get_request_data,
    pick,
    clean_text,
    normalize_student_id,
    parse_confidence,
    parse_iso_date,
    serialize_student,
    serialize_descriptor_entry,
    serialize_attendance,
)
from .export_utils import (
    attendance_to_csv,
    csv_response,
)

__all__ = [
    'get_request_data',
    'pick',
    'clean_text',
    'normalize_student_id',
    'parse_confidence',
    'parse_iso_date',
    'serialize_student',
    'serialize_descriptor_entry',
    'serialize_attendance',
    'attendance_to_csv',
    'csv_response',
]
