"""Camera device ownership for check-in sessions."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class CameraError(RuntimeError):
    """Raised when camera operations fail."""


class CameraProvider(Protocol):
    """Anything that can hand out an opened ``cv2.VideoCapture``-like object."""

    def open(self, index: int) -> Any:
        ...


class OpenCVCameraProvider:
    """Real provider that uses OpenCV to create VideoCapture objects."""

    def open(self, index: int) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(index)
        if not capture or not capture.isOpened():
            raise CameraError(f"Cannot open camera index {index}")
        return capture


@dataclass
class CameraConfig:
    index: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    warmup_frames: int = 3
    buffer_size: Optional[int] = 2


class CameraManager:
    """Opens, reads and releases one camera; safe to stop more than once."""

    def __init__(self, config: Optional[CameraConfig] = None, provider: Optional[CameraProvider] = None):
        self.config = config or CameraConfig()
        self.provider = provider or OpenCVCameraProvider()
        self._capture: Any = None
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._capture is not None and bool(self._capture.isOpened())

    def start(self) -> Any:
        with self._lock:
            if self.is_open:
                return self._capture
            capture = self.provider.open(self.config.index)
            try:
                self._configure(capture)
            except Exception:
                capture.release()
                raise
            self._capture = capture
            return capture

    def _configure(self, capture: Any) -> None:
        if self.config.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        if self.config.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        if self.config.buffer_size is not None and hasattr(cv2, "CAP_PROP_BUFFERSIZE"):
            capture.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        logger.info(
            "Camera %s ready: %sx%s",
            self.config.index,
            int(capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0),
            int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0),
        )

        warmup = max(0, self.config.warmup_frames)
        ok = 0
        for _ in range(warmup):
            ret, _frame = capture.read()
            if ret:
                ok += 1
            time.sleep(0.05)
        if warmup:
            logger.debug("Warmup frames ok=%s/%s", ok, warmup)

    def read(self) -> np.ndarray:
        with self._lock:
            if self._capture is None:
                raise CameraError("Camera is not started")
            ret, frame = self._capture.read()
        if not ret or frame is None:
            raise CameraError("Unable to read frame from camera")
        return frame

    def stop(self) -> None:
        with self._lock:
            capture = self._capture
            self._capture = None
        if capture is not None:
            capture.release()
            logger.info("Camera %s released", self.config.index)
