from datetime import datetime, timezone

import numpy as np
import pytest

from app.models import (
    AdmissionGate,
    CheckInKiosk,
    EnrollmentCapture,
    RecognitionService,
    StudentDirectory,
)
from core.inference.engine import DetectedFace
from core.recognition.matcher import Matcher
from database import DatabaseManager

from conftest import FakeClock, make_descriptor


class Ticker:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def service(tmp_path):
    db = DatabaseManager(db_path=tmp_path / 'kiosk.db')
    directory = StudentDirectory(db)
    directory.register('S1', 'An', 'CNTT', descriptor=make_descriptor(0.0))
    directory.register('S2', 'Binh', 'CNTT', descriptor=make_descriptor(1.0))
    gate = AdmissionGate(db, clock=FakeClock(datetime(2026, 10, 18, 7, 0, tzinfo=timezone.utc)))
    return RecognitionService(directory, gate, Matcher())


def face(value, box=(0, 10, 10, 0)):
    return DetectedFace(descriptor=np.array(make_descriptor(value)), box=box)


def test_kiosk_admits_recognized_face(service):
    events = []
    kiosk = CheckInKiosk(service, on_event=events.append, clock=Ticker())

    event = kiosk.handle_detection([face(0.0)])

    assert event.status == 'admitted'
    assert event.student_id == 'S1'
    assert event.confidence == 100.0
    assert event.record['attendance_date'] == '2026-10-18'
    assert events == [event]


def test_kiosk_cooldown_then_already_checked_in(service):
    ticker = Ticker()
    kiosk = CheckInKiosk(service, cooldown_seconds=30, clock=ticker)

    assert kiosk.handle_detection([face(0.0)]).status == 'admitted'
    ticker.now = 10.0
    assert kiosk.handle_detection([face(0.0)]) is None

    ticker.now = 45.0
    event = kiosk.handle_detection([face(0.0)])
    assert event.status == 'already_checked_in'
    assert event.record['student_id'] == 'S1'
    assert service.gate.db.count_attendance(student_id='S1') == 1


def test_kiosk_reports_unknown_face(service):
    kiosk = CheckInKiosk(service, clock=Ticker())
    assert kiosk.handle_detection([face(0.5)]).status == 'no_match'


def test_kiosk_uses_largest_face(service):
    kiosk = CheckInKiosk(service, clock=Ticker())

    event = kiosk.handle_detection([
        face(0.0, box=(0, 5, 5, 0)),
        face(1.0, box=(0, 50, 50, 0)),
    ])

    assert event.student_id == 'S2'


def test_kiosk_ignores_empty_frames(service):
    kiosk = CheckInKiosk(service, clock=Ticker())
    assert kiosk.handle_detection([]) is None
    assert len(kiosk.events) == 0


def test_enrollment_capture_collects_spaced_single_face_samples():
    ticker = Ticker()
    capture = EnrollmentCapture(required_samples=3, min_interval=0.5, clock=ticker)

    assert capture.handle_detection([face(0.1), face(0.2)]) is False
    assert capture.handle_detection([face(0.1)]) is True
    ticker.now = 0.2
    assert capture.handle_detection([face(0.9)]) is False
    ticker.now = 0.6
    assert capture.handle_detection([face(0.2)]) is True
    assert not capture.done.is_set()
    ticker.now = 1.2
    assert capture.handle_detection([face(0.6)]) is True

    assert capture.done.is_set()
    assert capture.handle_detection([face(0.7)]) is False
    assert len(capture.samples) == 3
    np.testing.assert_allclose(capture.enrollment_descriptor(), [0.3] * 128)


def test_enrollment_samples_register_as_mean(service):
    ticker = Ticker()
    capture = EnrollmentCapture(required_samples=3, min_interval=0.0, clock=ticker)
    for value in (0.2, 0.3, 0.4):
        capture.handle_detection([face(value)])

    student = service.directory.register('S3', 'Cuong', 'CNTT', samples=capture.samples)

    assert student['student_id'] == 'S3'
    match, row = service.identify(make_descriptor(0.3))
    assert row['student_id'] == 'S3'


def test_kiosk_reports_unknown_face_once_per_cooldown(service):
    ticker = Ticker()
    events = []
    kiosk = CheckInKiosk(service, no_match_cooldown_seconds=5, on_event=events.append, clock=ticker)

    for _ in range(500):
        kiosk.handle_detection([face(0.5)])
    assert len(events) == 1

    ticker.now = 6.0
    assert kiosk.handle_detection([face(0.5)]).status == 'no_match'
    assert len(events) == 2


def test_kiosk_event_history_is_bounded(service):
    ticker = Ticker()
    kiosk = CheckInKiosk(service, no_match_cooldown_seconds=1, max_events=10, clock=ticker)

    for step in range(50):
        ticker.now = float(step * 2)
        kiosk.handle_detection([face(0.5)])

    assert len(kiosk.events) == 10


def test_kiosk_student_removed_after_descriptor_fetch(service, monkeypatch):
    directory = service.directory
    stale = directory.enrolled_descriptors()
    directory.deactivate('S1')
    monkeypatch.setattr(directory, 'enrolled_descriptors', lambda: stale)
    kiosk = CheckInKiosk(service, clock=Ticker())

    event = kiosk.handle_detection([face(0.0)])

    assert event.status == 'no_match'
    assert service.gate.db.count_attendance(student_id='S1') == 0
