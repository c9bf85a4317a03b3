"""Phiên camera cho điểm danh: vòng phát hiện định kỳ gắn với vòng đời camera.

A ``CheckInSession`` owns the camera and the periodic detection loop. The
loop is a cancellable repeating task; stopping the session (explicitly, via
``with``, or because the camera died) always cancels the loop and releases
the camera.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

import numpy as np

from core.inference.engine import DetectedFace, InferenceError
from .camera_manager import CameraError, CameraManager


DetectionCallback = Callable[[List[DetectedFace], np.ndarray], None]


class RepeatingTask:
    """Calls ``fn`` every ``interval`` seconds on a worker thread until cancelled.

    ``fn`` returning ``False`` ends the loop. ``on_exit`` runs on the worker
    thread whenever the loop ends, for whatever reason.
    """

    def __init__(
        self,
        interval: float,
        fn: Callable[[], Optional[bool]],
        *,
        on_exit: Optional[Callable[[], None]] = None,
        name: str = "repeating-task",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self._fn = fn
        self._on_exit = on_exit
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._logger = logger or logging.getLogger(__name__)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        try:
            while not self._cancelled.wait(self.interval):
                if self._fn() is False:
                    break
        finally:
            self._cancelled.set()
            if self._on_exit is not None:
                try:
                    self._on_exit()
                except Exception:
                    self._logger.exception("[Task] on_exit failed")


class CheckInSession:
    """Camera + detection loop with an explicit start/stop lifecycle."""

    def __init__(
        self,
        *,
        camera: CameraManager,
        extractor,
        on_detection: Optional[DetectionCallback] = None,
        interval: float = 0.15,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.camera = camera
        self.extractor = extractor
        self.on_detection = on_detection
        self.interval = interval
        self._logger = logger or logging.getLogger(__name__)
        self._task: Optional[RepeatingTask] = None
        self._lock = threading.RLock()
        self._latest: List[DetectedFace] = []
        self._frames = 0

    # ------------------------------------------------------------------
    # Vòng đời
    def start(self) -> "CheckInSession":
        with self._lock:
            if self.is_running:
                return self
            self.camera.start()
            self._latest = []
            self._task = RepeatingTask(
                self.interval,
                self._tick,
                on_exit=self.camera.stop,
                name="checkin-detection",
                logger=self._logger,
            )
            try:
                self._task.start()
            except Exception:
                self._task = None
                self.camera.stop()
                raise
            self._logger.info("[Session] Detection loop started (every %.0f ms)", self.interval * 1000)
        return self

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        with self._lock:
            task = self._task
            self._task = None
        if task is not None:
            task.cancel()
            task.join(timeout)
        # idempotent; covers a task that never got to run on_exit
        self.camera.stop()
        with self._lock:
            self._latest = []
        if task is not None:
            self._logger.info("[Session] Detection loop stopped after %d frames", self._frames)

    @property
    def is_running(self) -> bool:
        task = self._task
        return task is not None and not task.cancelled

    def __enter__(self) -> "CheckInSession":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Phát hiện
    @property
    def latest_faces(self) -> List[DetectedFace]:
        with self._lock:
            return list(self._latest)

    @property
    def frames_processed(self) -> int:
        return self._frames

    def _tick(self) -> bool:
        try:
            frame = self.camera.read()
        except CameraError as exc:
            self._logger.warning("[Session] Camera lost, stopping detection: %s", exc)
            return False

        try:
            faces = self.extractor.extract(frame)
        except InferenceError as exc:
            self._logger.error("[Session] Detection error: %s", exc)
            return True

        self._frames += 1
        with self._lock:
            self._latest = list(faces)
        if self.on_detection is not None:
            try:
                self.on_detection(list(faces), frame)
            except Exception:
                self._logger.exception("[Session] Detection callback failed")
        return True


__all__ = ["CheckInSession", "RepeatingTask"]
