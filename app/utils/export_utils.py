"""
Export utilities
Xuất danh sách điểm danh ra CSV
"""
import csv
import io

from flask import Response

CSV_COLUMNS = [
    ('studentId', 'Student ID'),
    ('name', 'Name'),
    ('course', 'Course'),
    ('date', 'Date'),
    ('checkInTime', 'Check-in Time'),
    ('confidence', 'Confidence (%)'),
]


def attendance_to_csv(records):
    """Ghi danh sách bản ghi (đã serialize) thành chuỗi CSV."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([label for _, label in CSV_COLUMNS])
    for record in records:
        row = []
        for key, _ in CSV_COLUMNS:
            value = record.get(key)
            row.append('' if value is None else value)
        writer.writerow(row)
    return buffer.getvalue()


def csv_response(records, filename):
    """Trả về file CSV để trình duyệt tải xuống."""
    return Response(
        attendance_to_csv(records),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )
