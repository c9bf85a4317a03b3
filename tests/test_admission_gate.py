from datetime import datetime, timezone

import pytest

from app.errors import ConflictError
from app.models import AdmissionGate
from core.recognition.descriptors import ValidationError
from database import DatabaseManager

from conftest import FakeClock


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(db_path=tmp_path / 'gate.db')


@pytest.fixture
def gate_clock():
    return FakeClock(datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def gate(db, gate_clock):
    return AdmissionGate(db, timezone_name='UTC', clock=gate_clock)


def test_first_admission_creates_record(gate, db):
    record = gate.admit('S100', 'Nguyen Van An', 'CNTT K65', confidence=93.4)

    assert record['student_id'] == 'S100'
    assert record['attendance_date'] == '2026-10-18'
    assert record['check_in_time'] == '2026-10-18T08:00:00+00:00'
    assert record['confidence_score'] == pytest.approx(93.4)
    assert db.count_attendance(student_id='S100') == 1


def test_second_admission_same_day_is_rejected_with_existing(gate, db, gate_clock):
    first = gate.admit('S100', 'Nguyen Van An', 'CNTT K65', confidence=90.0)
    gate_clock.advance(hours=5)

    with pytest.raises(ConflictError) as info:
        gate.admit('S100', 'Nguyen Van An', 'CNTT K65', confidence=99.0)

    assert info.value.status_code == 409
    assert info.value.data['id'] == first['id']
    assert info.value.data['confidence_score'] == pytest.approx(90.0)
    assert db.count_attendance(attendance_date='2026-10-18', student_id='S100') == 1


def test_next_day_admits_again(gate, db, gate_clock):
    gate.admit('S100', 'Nguyen Van An', 'CNTT K65')
    gate_clock.advance(days=1)

    record = gate.admit('S100', 'Nguyen Van An', 'CNTT K65')

    assert record['attendance_date'] == '2026-10-19'
    assert db.count_attendance(student_id='S100') == 2


def test_other_students_are_independent(gate, db):
    gate.admit('S100', 'Nguyen Van An', 'CNTT K65')
    gate.admit('S200', 'Tran Thi Binh', 'CNTT K65')
    assert db.count_attendance(attendance_date='2026-10-18') == 2


def test_missing_identity_is_validation_error(gate):
    with pytest.raises(ValidationError):
        gate.admit('S100', '', 'CNTT K65')


def test_lost_race_surfaces_as_conflict(gate, db, monkeypatch):
    winner = gate.admit('S100', 'Nguyen Van An', 'CNTT K65')

    real_lookup = db.get_attendance_for_day
    calls = []

    def stale_then_real(student_id, attendance_date):
        # lần kiểm tra đầu tiên không thấy bản ghi của yêu cầu song song
        calls.append(student_id)
        if len(calls) == 1:
            return None
        return real_lookup(student_id, attendance_date)

    monkeypatch.setattr(db, 'get_attendance_for_day', stale_then_real)

    with pytest.raises(ConflictError) as info:
        gate.admit('S100', 'Nguyen Van An', 'CNTT K65')

    assert info.value.data['id'] == winner['id']
    assert db.count_attendance(student_id='S100') == 1


def test_day_boundary_follows_configured_timezone(db):
    late_evening_utc = FakeClock(datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc))
    gate = AdmissionGate(db, timezone_name='Asia/Ho_Chi_Minh', clock=late_evening_utc)

    assert gate.today() == '2026-10-19'
    record = gate.admit('S100', 'Nguyen Van An', 'CNTT K65')
    assert record['check_in_time'] == '2026-10-19T06:30:00+07:00'


def test_naive_clock_is_treated_as_utc(db):
    gate = AdmissionGate(db, clock=lambda: datetime(2026, 10, 18, 23, 59))
    assert gate.today() == '2026-10-18'


def test_unknown_timezone_is_rejected(db):
    with pytest.raises(ValueError):
        AdmissionGate(db, timezone_name='Mars/Olympus')


def test_day_listing_is_newest_first_across_dst_fall_back(db):
    # 2026-10-25: Berlin lùi đồng hồ từ 03:00 CEST về 02:00 CET lúc 01:00 UTC
    clock = FakeClock(datetime(2026, 10, 25, 0, 30, tzinfo=timezone.utc))
    gate = AdmissionGate(db, timezone_name='Europe/Berlin', clock=clock)

    early = gate.admit('S1', 'An', 'CNTT')
    clock.advance(minutes=40)
    late = gate.admit('S2', 'Binh', 'CNTT')

    assert early['check_in_time'] == '2026-10-25T02:30:00+02:00'
    assert late['check_in_time'] == '2026-10-25T02:10:00+01:00'
    listing = db.get_attendance_by_date('2026-10-25')
    assert [row['student_id'] for row in listing] == ['S2', 'S1']
