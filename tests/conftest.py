import logging
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from app import create_app
from app import globals as app_globals


class FakeClock:
    """Đồng hồ cố định, có thể tua để sang ngày mới."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


def make_descriptor(value=0.0, length=128, step=0.0):
    return [round(value + i * step, 6) for i in range(length)]


def random_descriptor(seed, length=128, scale=0.1):
    rng = np.random.default_rng(seed)
    return rng.normal(0.0, scale, size=length).tolist()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def app(tmp_path, clock):
    app = create_app({
        'TESTING': True,
        'DATABASE_PATH': str(tmp_path / 'attendance.db'),
        'LOG_DIR': str(tmp_path / 'logs'),
        'LOG_LEVEL': 'WARNING',
        'ATTENDANCE_TIMEZONE': 'UTC',
        'ALLOW_CLEAR_ALL': False,
        'CLOCK': clock,
    })
    yield app
    app_globals.reset()
    detach_log_handlers()


def detach_log_handlers():
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if getattr(handler, '_checkin_handler', False):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def database(app):
    return app_globals.database


@pytest.fixture
def register(client):
    def _register(student_id='S100', name='Nguyen Van An', course='CNTT K65', **extra):
        body = {'studentId': student_id, 'name': name, 'course': course}
        if 'faceSamples' not in extra and 'faceDescriptor' not in extra:
            body['faceDescriptor'] = make_descriptor(0.01)
        body.update(extra)
        return client.post('/api/students/register', json=body)
    return _register
