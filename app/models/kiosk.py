"""
Kiosk controllers - Xử lý kết quả phát hiện khuôn mặt từ CheckInSession
Detection callbacks for the local camera kiosk (check-in and enrollment)
"""
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np

from app.errors import ConflictError, NotFoundError
from core.recognition.descriptors import aggregate_descriptors


@dataclass
class KioskEvent:
    status: str  # 'admitted' | 'already_checked_in' | 'no_match'
    student_id: Optional[str] = None
    name: Optional[str] = None
    confidence: Optional[float] = None
    record: Optional[Dict[str, Any]] = None


def _largest_face(faces):
    return max(faces, key=lambda face: face.area)


class CheckInKiosk:
    """
    Nhận diện khuôn mặt lớn nhất trong khung hình và điểm danh.

    Một sinh viên đã được xử lý sẽ không được gửi lại trong `cooldown_seconds`
    để vòng phát hiện định kỳ không gọi Admission Gate liên tục. Khuôn mặt lạ
    chỉ được báo một lần mỗi `no_match_cooldown_seconds`.
    """

    def __init__(
        self,
        recognition_service,
        cooldown_seconds: float = 30.0,
        no_match_cooldown_seconds: float = 5.0,
        on_event: Optional[Callable[[KioskEvent], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        max_events: int = 100,
        logger=None
    ):
        self.service = recognition_service
        self.cooldown_seconds = cooldown_seconds
        self.no_match_cooldown_seconds = no_match_cooldown_seconds
        self.on_event = on_event
        self._clock = clock
        self._last_seen: Dict[str, float] = {}
        self._last_no_match: Optional[float] = None
        self._lock = threading.Lock()
        self.logger = logger
        # chỉ giữ các sự kiện gần nhất
        self.events: Deque[KioskEvent] = deque(maxlen=max_events)

    def _in_cooldown(self, student_id: str) -> bool:
        now = self._clock()
        with self._lock:
            last = self._last_seen.get(student_id)
            if last is not None and now - last < self.cooldown_seconds:
                return True
            self._last_seen[student_id] = now
            return False

    def _no_match_suppressed(self) -> bool:
        now = self._clock()
        with self._lock:
            last = self._last_no_match
            if last is not None and now - last < self.no_match_cooldown_seconds:
                return True
            self._last_no_match = now
            return False

    def _no_match(self) -> Optional[KioskEvent]:
        if self._no_match_suppressed():
            return None
        return self._emit(KioskEvent(status='no_match'))

    def handle_detection(self, faces, frame=None) -> Optional[KioskEvent]:
        if not faces:
            return None
        face = _largest_face(faces)
        try:
            match, student = self.service.identify(face.descriptor)
        except NotFoundError:
            # sinh viên bị xóa mềm giữa lúc lấy descriptor và lúc tra cứu
            return self._no_match()
        if student is None:
            return self._no_match()
        if self._in_cooldown(student['student_id']):
            return None

        try:
            record = self.service.gate.admit(
                student['student_id'],
                student['full_name'],
                student['course'],
                confidence=match.confidence,
            )
        except ConflictError as exc:
            return self._emit(KioskEvent(
                status='already_checked_in',
                student_id=student['student_id'],
                name=student['full_name'],
                confidence=match.confidence,
                record=exc.data,
            ))

        return self._emit(KioskEvent(
            status='admitted',
            student_id=student['student_id'],
            name=student['full_name'],
            confidence=match.confidence,
            record=record,
        ))

    def _emit(self, event: KioskEvent) -> KioskEvent:
        self.events.append(event)
        if self.on_event is not None:
            self.on_event(event)
        return event


class EnrollmentCapture:
    """
    Thu thập đủ số mẫu descriptor (mỗi khung hình đúng một khuôn mặt)
    rồi lấy trung bình để đăng ký.
    """

    def __init__(
        self,
        required_samples: int = 3,
        min_interval: float = 0.5,
        descriptor_length: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.required_samples = required_samples
        self.min_interval = min_interval
        self.descriptor_length = descriptor_length
        self._clock = clock
        self._samples: List[np.ndarray] = []
        self._last_capture: Optional[float] = None
        self._lock = threading.Lock()
        self.done = threading.Event()

    @property
    def samples(self) -> List[np.ndarray]:
        with self._lock:
            return list(self._samples)

    def handle_detection(self, faces, frame=None) -> bool:
        """Returns True nếu khung hình được lấy làm mẫu."""
        if self.done.is_set() or len(faces) != 1:
            return False
        now = self._clock()
        with self._lock:
            if self._last_capture is not None and now - self._last_capture < self.min_interval:
                return False
            self._samples.append(np.asarray(faces[0].descriptor, dtype=np.float64))
            self._last_capture = now
            if len(self._samples) >= self.required_samples:
                self.done.set()
        return True

    def enrollment_descriptor(self) -> np.ndarray:
        return aggregate_descriptors(
            self.samples,
            length=self.descriptor_length,
            min_samples=self.required_samples,
        )
