import threading
import time

import numpy as np
import pytest

from core.inference.engine import CallableExtractor, InferenceEngine, InferenceError
from core.vision.camera_manager import CameraConfig, CameraError, CameraManager
from core.vision.session import CheckInSession, RepeatingTask


class FakeCapture:
    def __init__(self, fail_after=None):
        self.fail_after = fail_after
        self.reads = 0
        self.released = False
        self.settings = {}

    def isOpened(self):
        return not self.released

    def read(self):
        self.reads += 1
        if self.fail_after is not None and self.reads > self.fail_after:
            return False, None
        return True, np.zeros((8, 8, 3), dtype=np.uint8)

    def set(self, prop, value):
        self.settings[prop] = value
        return True

    def get(self, prop):
        return self.settings.get(prop, 0)

    def release(self):
        self.released = True


class FakeProvider:
    def __init__(self, capture):
        self.capture = capture
        self.opened = 0

    def open(self, index):
        self.opened += 1
        return self.capture


def make_camera(capture):
    return CameraManager(CameraConfig(warmup_frames=0, width=320, height=240), provider=FakeProvider(capture))


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def one_face_engine():
    engine = InferenceEngine()
    engine.add_extractor(CallableExtractor(lambda frame: [[0.1] * 128]))
    return engine


def test_camera_manager_lifecycle():
    capture = FakeCapture()
    camera = make_camera(capture)

    with pytest.raises(CameraError):
        camera.read()

    camera.start()
    camera.start()
    assert camera.provider.opened == 1
    assert camera.is_open
    assert camera.read().shape == (8, 8, 3)

    camera.stop()
    camera.stop()
    assert capture.released
    assert not camera.is_open


def test_repeating_task_runs_until_cancelled():
    ticks = threading.Event()
    count = []
    exited = threading.Event()

    def tick():
        count.append(1)
        if len(count) >= 3:
            ticks.set()

    task = RepeatingTask(0.005, tick, on_exit=exited.set)
    task.start()
    assert ticks.wait(2)

    task.cancel()
    task.join(2)

    assert not task.is_alive()
    assert exited.is_set()
    assert task.cancelled


def test_repeating_task_stops_when_fn_returns_false():
    exited = threading.Event()
    task = RepeatingTask(0.005, lambda: False, on_exit=exited.set)
    task.start()

    assert exited.wait(2)
    task.join(2)
    assert task.cancelled


def test_repeating_task_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        RepeatingTask(0, lambda: None)


def test_session_delivers_detections_and_releases_camera():
    capture = FakeCapture()
    seen = []
    enough = threading.Event()

    def on_detection(faces, frame):
        seen.append(faces)
        if len(seen) >= 3:
            enough.set()

    session = CheckInSession(
        camera=make_camera(capture),
        extractor=one_face_engine(),
        on_detection=on_detection,
        interval=0.005,
    )
    session.start()
    assert session.is_running
    assert enough.wait(2)

    session.stop()

    assert not session.is_running
    assert capture.released
    assert session.frames_processed >= 3
    assert len(seen[0]) == 1
    assert seen[0][0].descriptor.shape == (128,)
    assert session.latest_faces == []


def test_session_as_context_manager():
    capture = FakeCapture()
    with CheckInSession(camera=make_camera(capture), extractor=one_face_engine(), interval=0.005) as session:
        assert wait_for(lambda: session.frames_processed > 0)
        assert len(session.latest_faces) == 1
    assert capture.released
    assert not session.is_running


def test_session_ends_when_camera_is_lost():
    capture = FakeCapture(fail_after=2)
    session = CheckInSession(camera=make_camera(capture), extractor=one_face_engine(), interval=0.005)

    session.start()

    assert wait_for(lambda: capture.released)
    assert wait_for(lambda: not session.is_running)
    assert session.frames_processed == 2
    session.stop()


def test_session_survives_extraction_errors():
    calls = []

    def flaky(frame):
        calls.append(1)
        if len(calls) <= 2:
            raise InferenceError('blurry frame')
        return [[0.2] * 128]

    engine = InferenceEngine()
    engine.add_extractor(CallableExtractor(flaky))
    capture = FakeCapture()

    with CheckInSession(camera=make_camera(capture), extractor=engine, interval=0.005) as session:
        assert wait_for(lambda: session.frames_processed >= 1)

    assert len(calls) >= 3
    assert capture.released


def test_session_survives_callback_errors():
    def broken(faces, frame):
        raise RuntimeError('display closed')

    capture = FakeCapture()
    with CheckInSession(
        camera=make_camera(capture), extractor=one_face_engine(), on_detection=broken, interval=0.005
    ) as session:
        assert wait_for(lambda: session.frames_processed >= 3)
        assert session.is_running


def test_session_can_restart():
    capture = FakeCapture()
    camera = make_camera(capture)
    session = CheckInSession(camera=camera, extractor=one_face_engine(), interval=0.005)

    session.start()
    session.stop()
    capture.released = False
    session.start()

    assert session.is_running
    assert camera.provider.opened == 2
    session.stop()
    assert capture.released


class BrokenSettingsCapture(FakeCapture):
    def set(self, prop, value):
        raise RuntimeError('driver rejected resolution')


def test_camera_released_when_configuration_fails():
    capture = BrokenSettingsCapture()
    camera = make_camera(capture)

    with pytest.raises(RuntimeError):
        camera.start()

    assert capture.released
    assert not camera.is_open
