"""
Admission Gate - Quyết định ghi nhận có mặt trong ngày
Business logic for same-day duplicate suppression on check-in
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.errors import ConflictError
from core.recognition.descriptors import ValidationError
from logging_config import face_recognition_logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AdmissionGate:
    """
    Mỗi sinh viên chỉ có tối đa một bản ghi điểm danh cho mỗi ngày.

    "Ngày" là ngày lịch của đồng hồ máy chủ theo múi giờ cấu hình. Unique index
    (student_id, attendance_date) trong database là chốt chặn cuối cùng khi hai
    yêu cầu cùng lúc vượt qua bước kiểm tra.
    """

    def __init__(
        self,
        database,
        timezone_name: str = 'UTC',
        clock: Optional[Callable[[], datetime]] = None,
        logger=None
    ):
        self.db = database
        try:
            self.zone = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown ATTENDANCE_TIMEZONE: {timezone_name}") from exc
        self._clock = clock or utc_now
        self.logger = logger

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(self.zone)

    def today(self) -> str:
        """Ngày hôm nay dạng YYYY-MM-DD"""
        return self.now().date().isoformat()

    def existing_admission(self, student_id: str, attendance_date: Optional[str] = None):
        return self.db.get_attendance_for_day(student_id, attendance_date or self.today())

    def admit(
        self,
        student_id: str,
        name: str,
        course: str,
        confidence: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Ghi nhận có mặt.
        Returns: bản ghi mới. Raises ConflictError (kèm bản ghi cũ) nếu đã điểm danh hôm nay.
        """
        if not student_id or not name or not course:
            raise ValidationError('Student information is required')

        now = self.now()
        attendance_date = now.date().isoformat()

        existing = self.db.get_attendance_for_day(student_id, attendance_date)
        if existing:
            self._reject(student_id, attendance_date, existing)

        record = self.db.insert_attendance(
            student_id=student_id,
            student_name=name,
            course=course,
            attendance_date=attendance_date,
            check_in_time=now.isoformat(timespec='seconds'),
            confidence_score=confidence,
        )
        if record is None:
            # Yêu cầu song song đã ghi trước
            self._reject(student_id, attendance_date, self.db.get_attendance_for_day(student_id, attendance_date))

        face_recognition_logger.log_attendance_marked(name, student_id, confidence)
        if self.logger:
            self.logger.info(f"[AdmissionGate] ✅ Marked attendance: {name} ({student_id})")
        return record

    def _reject(self, student_id, attendance_date, existing):
        face_recognition_logger.log_already_checked_in(student_id, attendance_date)
        raise ConflictError('Student already checked in today', data=existing)
