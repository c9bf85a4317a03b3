"""
Database module for Biometric Check-in
Quản lý cơ sở dữ liệu SQLite cho sinh viên và điểm danh
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from logging_config import database_logger

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Lỗi tầng lưu trữ (không phải lỗi trùng khóa)."""


def _utc_now():
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


class DatabaseManager:
    def __init__(self, db_path="attendance_system.db"):
        self.db_path = str(db_path)
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.init_database()

    @contextmanager
    def get_connection(self):
        """Mở kết nối riêng cho mỗi thao tác, commit/rollback và đóng khi xong"""
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as exc:
            database_logger.log_error('connect', str(exc))
            raise StorageError(f"Cannot open database: {exc}") from exc
        conn.row_factory = sqlite3.Row  # Cho phép truy cập theo tên cột
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as exc:
            conn.rollback()
            database_logger.log_error('query', str(exc))
            raise StorageError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_database(self):
        """Khởi tạo database và các bảng"""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            # Bảng sinh viên
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS students (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    student_id VARCHAR(50) UNIQUE NOT NULL,
                    full_name VARCHAR(100) NOT NULL,
                    course VARCHAR(100) NOT NULL,
                    face_descriptor BLOB NOT NULL,
                    is_active BOOLEAN DEFAULT 1,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            ''')

            # Bảng điểm danh: mỗi sinh viên tối đa một bản ghi mỗi ngày
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS attendance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    student_id VARCHAR(50) NOT NULL,
                    student_name VARCHAR(100) NOT NULL,
                    course VARCHAR(100) NOT NULL,
                    attendance_date DATE NOT NULL,
                    check_in_time TIMESTAMP NOT NULL,
                    confidence_score REAL,
                    created_at TIMESTAMP NOT NULL
                )
            ''')

            cursor.execute(
                'CREATE UNIQUE INDEX IF NOT EXISTS idx_attendance_student_day '
                'ON attendance(student_id, attendance_date)'
            )
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_attendance_date ON attendance(attendance_date)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_students_active ON students(is_active)')
        logger.info("Database ready at %s", self.db_path)

    # === QUẢN LÝ SINH VIÊN ===
    def add_student(self, student_id, full_name, course, face_descriptor):
        """Thêm sinh viên mới hoặc kích hoạt lại sinh viên đã xóa mềm.

        Trả về False nếu mã sinh viên đang hoạt động đã tồn tại.
        """
        now = _utc_now()
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT is_active FROM students WHERE student_id = ?', (student_id,))
            existing = cursor.fetchone()
            if existing is not None:
                if existing['is_active']:
                    return False
                cursor.execute('''
                    UPDATE students
                    SET full_name = ?, course = ?, face_descriptor = ?,
                        is_active = 1, created_at = ?, updated_at = ?
                    WHERE student_id = ? AND is_active = 0
                ''', (full_name, course, face_descriptor, now, now, student_id))
                if cursor.rowcount == 0:
                    return False
                logger.info(f"Reactivated student: {full_name} ({student_id})")
                return True
            try:
                cursor.execute('''
                    INSERT INTO students (student_id, full_name, course, face_descriptor,
                                          is_active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, 1, ?, ?)
                ''', (student_id, full_name, course, face_descriptor, now, now))
            except sqlite3.IntegrityError as e:
                logger.warning(f"Student ID {student_id} already exists: {e}")
                return False
            logger.info(f"Added student: {full_name} ({student_id})")
            return True

    def get_student(self, student_id):
        """Lấy thông tin sinh viên (kể cả đã xóa mềm)"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT * FROM students WHERE student_id = ?', (student_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_all_students(self, active_only=True):
        """Lấy danh sách sinh viên, sắp xếp theo tên"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if active_only:
                cursor.execute('SELECT * FROM students WHERE is_active = 1 ORDER BY full_name')
            else:
                cursor.execute('SELECT * FROM students ORDER BY full_name')
            return [dict(r) for r in cursor.fetchall()]

    def get_active_descriptors(self):
        """Lấy descriptor của sinh viên đang hoạt động theo thứ tự đăng ký"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT student_id, full_name, course, face_descriptor
                FROM students
                WHERE is_active = 1
                ORDER BY id
            ''')
            return [dict(r) for r in cursor.fetchall()]

    def count_active_students(self):
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM students WHERE is_active = 1')
            return cursor.fetchone()[0]

    def update_student(self, student_id, **kwargs):
        """Cập nhật thông tin sinh viên"""
        allowed_fields = ['full_name', 'course', 'face_descriptor', 'is_active']
        updates = {}
        for field in allowed_fields:
            if field in kwargs and kwargs[field] is not None:
                value = kwargs[field]
                if field == 'is_active':
                    value = 1 if bool(value) else 0
                updates[field] = value

        if not updates:
            return self.get_student(student_id) is not None

        updates['updated_at'] = _utc_now()
        set_clause = ', '.join([f"{k} = ?" for k in updates.keys()])
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'''UPDATE students SET {set_clause} WHERE student_id = ?''',
                list(updates.values()) + [student_id]
            )
            return cursor.rowcount > 0

    def delete_student(self, student_id):
        """Xóa sinh viên (soft delete)"""
        return self.update_student(student_id, is_active=False)

    # === QUẢN LÝ ĐIỂM DANH ===
    def get_attendance_for_day(self, student_id, attendance_date):
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT * FROM attendance
                WHERE student_id = ? AND attendance_date = ?
            ''', (student_id, attendance_date))
            row = cursor.fetchone()
            return dict(row) if row else None

    def insert_attendance(self, student_id, student_name, course, attendance_date,
                          check_in_time, confidence_score=None):
        """Ghi một bản ghi điểm danh.

        Trả về bản ghi vừa tạo, hoặc None nếu (student_id, attendance_date) đã tồn tại.
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute('''
                    INSERT INTO attendance (
                        student_id, student_name, course, attendance_date,
                        check_in_time, confidence_score, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (student_id, student_name, course, attendance_date,
                      check_in_time, confidence_score, _utc_now()))
            except sqlite3.IntegrityError:
                logger.info(f"Student {student_id} already marked present on {attendance_date}")
                return None
            cursor.execute('SELECT * FROM attendance WHERE id = ?', (cursor.lastrowid,))
            return dict(cursor.fetchone())

    def get_attendance_by_date(self, attendance_date):
        """Lấy danh sách điểm danh theo ngày, mới nhất trước (theo id; check_in_time mang offset múi giờ)"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT * FROM attendance
                WHERE attendance_date = ?
                ORDER BY id DESC
            ''', (attendance_date,))
            return [dict(r) for r in cursor.fetchall()]

    def get_student_attendance_history(self, student_id, limit=None):
        """Lấy lịch sử điểm danh của sinh viên"""
        query = '''
            SELECT * FROM attendance
            WHERE student_id = ?
            ORDER BY attendance_date DESC, id DESC
        '''
        params = [student_id]
        if limit:
            query += ' LIMIT ?'
            params.append(int(limit))
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [dict(r) for r in cursor.fetchall()]

    def count_attendance(self, attendance_date=None, student_id=None):
        query = 'SELECT COUNT(*) FROM attendance WHERE 1 = 1'
        params = []
        if attendance_date:
            query += ' AND attendance_date = ?'
            params.append(attendance_date)
        if student_id:
            query += ' AND student_id = ?'
            params.append(student_id)
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchone()[0]

    # === THỐNG KÊ ===
    def get_attendance_stats(self, attendance_date):
        """Lấy thống kê điểm danh trong ngày"""
        total_students = self.count_active_students()
        present = self.count_attendance(attendance_date=attendance_date)
        total_records = self.count_attendance()
        attendance_rate = (present / total_students * 100) if total_students > 0 else 0
        return {
            'total_students': total_students,
            'present': present,
            'absent': max(0, total_students - present),
            'attendance_rate': round(attendance_rate, 2),
            'total_records': total_records,
            'date': attendance_date,
        }

    # === TIỆN ÍCH ===
    def ping(self):
        with self.get_connection() as conn:
            conn.execute('SELECT 1')
        return True

    def clear_all(self):
        """Xóa toàn bộ dữ liệu (chỉ dùng khi kiểm thử)"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM attendance')
            attendance_removed = cursor.rowcount
            cursor.execute('DELETE FROM students')
            students_removed = cursor.rowcount
        logger.warning(
            "Cleared all data: %s students, %s attendance records",
            students_removed, attendance_removed,
        )
        return {'students': students_removed, 'attendance': attendance_removed}
