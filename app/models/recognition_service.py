"""
Recognition Service - Nhận diện và điểm danh từ descriptor khuôn mặt
Ties the Matcher to the Student Directory and the Admission Gate
"""
from typing import Any, Dict, Optional, Tuple

from app.errors import NotFoundError
from core.recognition.matcher import Matcher, MatchResult
from logging_config import face_recognition_logger


class RecognitionService:
    """So khớp descriptor với sinh viên đã đăng ký rồi ghi nhận có mặt"""

    def __init__(self, directory, gate, matcher: Matcher, logger=None):
        self.directory = directory
        self.gate = gate
        self.matcher = matcher
        self.logger = logger

    def identify(self, probe) -> Tuple[MatchResult, Optional[Dict[str, Any]]]:
        """
        Tìm sinh viên gần nhất với probe.
        Returns: (MatchResult, student row hoặc None khi không khớp)
        """
        enrolled = self.directory.enrolled_descriptors()
        result = self.matcher.match(probe, enrolled)
        if not result.matched:
            face_recognition_logger.log_no_match(result.distance, len(enrolled))
            return result, None

        face_recognition_logger.log_face_recognized(
            result.student_id, result.distance, result.confidence
        )
        return result, self.directory.get_active(result.student_id)

    def check_in(self, probe) -> Tuple[MatchResult, Dict[str, Any]]:
        """Nhận diện rồi điểm danh. Raises NotFoundError khi không khớp, ConflictError khi trùng ngày."""
        result, student = self.identify(probe)
        if student is None:
            raise NotFoundError(
                'No match found in system',
                data={'distance': result.distance, 'threshold': self.matcher.threshold},
            )
        record = self.gate.admit(
            student['student_id'],
            student['full_name'],
            student['course'],
            confidence=result.confidence,
        )
        return result, record
