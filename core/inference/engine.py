"""Face descriptor extraction backed by an external pretrained model.

The recognition core never looks at pixels: it only consumes the fixed-length
descriptors that an extractor returns for a frame. Extractors are injected so
matching and enrollment can run without a camera or a model.
"""

from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from core.recognition.descriptors import DESCRIPTOR_LENGTH

FaceBox = Tuple[int, int, int, int]  # top, right, bottom, left


class InferenceError(RuntimeError):
    """Raised when descriptors cannot be extracted from a frame."""


@dataclass
class DetectedFace:
    descriptor: np.ndarray
    box: Optional[FaceBox] = None

    @property
    def area(self) -> int:
        if self.box is None:
            return 0
        top, right, bottom, left = self.box
        return max(0, bottom - top) * max(0, right - left)


class DescriptorExtractor:
    """Protocol-ish base class: frame in, detected faces out."""

    name: str = "extractor"

    def warmup(self) -> None:  # pragma: no cover - interface
        pass

    def extract(self, frame: np.ndarray) -> List[DetectedFace]:  # pragma: no cover - interface
        raise NotImplementedError

    def is_ready(self) -> bool:
        return True


class FaceRecognitionExtractor(DescriptorExtractor):
    """Adapter over the ``face_recognition`` (dlib) library.

    Frames are BGR as delivered by OpenCV. The library module is imported
    lazily on first use; pass ``face_module`` to use an already-imported one.
    """

    name = "face_recognition"

    def __init__(
        self,
        *,
        face_module: Any = None,
        detection_model: str = "hog",
        num_jitters: int = 1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._module = face_module
        self._detection_model = detection_model
        self._num_jitters = max(1, int(num_jitters))
        self._lock = threading.RLock()
        self._logger = logger or logging.getLogger(__name__)

    def warmup(self) -> None:
        with self._lock:
            if self._module is not None:
                return
            try:
                self._module = importlib.import_module("face_recognition")
            except ImportError as exc:
                raise InferenceError(
                    "face_recognition is not installed (pip install 'biometric-checkin[vision]')"
                ) from exc
            self._logger.info("[Inference] face_recognition model loaded")

    def is_ready(self) -> bool:
        return self._module is not None

    def extract(self, frame: np.ndarray) -> List[DetectedFace]:
        if frame is None or getattr(frame, "size", 0) == 0:
            raise InferenceError("Empty frame")
        self.warmup()
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        try:
            locations = self._module.face_locations(rgb, model=self._detection_model)
            encodings = self._module.face_encodings(
                rgb,
                known_face_locations=locations,
                num_jitters=self._num_jitters,
            )
        except Exception as exc:  # pragma: no cover - dlib errors depend on runtime
            raise InferenceError(f"face_recognition failed: {exc}") from exc
        return [
            DetectedFace(descriptor=np.asarray(encoding, dtype=np.float64), box=tuple(location))
            for location, encoding in zip(locations, encodings)
        ]


class CallableExtractor(DescriptorExtractor):
    """Wraps any ``frame -> [vector, ...]`` callable."""

    name = "callable"

    def __init__(self, fn: Callable[[np.ndarray], Sequence[Sequence[float]]], name: Optional[str] = None) -> None:
        self._fn = fn
        if name:
            self.name = name

    def extract(self, frame: np.ndarray) -> List[DetectedFace]:
        return [
            DetectedFace(descriptor=np.asarray(vector, dtype=np.float64))
            for vector in self._fn(frame)
        ]


class InferenceEngine:
    """Runs extractors in order and returns the first successful result."""

    def __init__(
        self,
        *,
        descriptor_length: int = DESCRIPTOR_LENGTH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._extractors: List[DescriptorExtractor] = []
        self._descriptor_length = descriptor_length

    def add_extractor(self, extractor: Optional[DescriptorExtractor]) -> None:
        if extractor is None:
            return
        self._logger.info("[Inference] Added extractor %s", extractor.name)
        self._extractors.append(extractor)

    def has_extractors(self) -> bool:
        return bool(self._extractors)

    def ready(self) -> bool:
        return any(extractor.is_ready() for extractor in self._extractors)

    def warmup(self) -> None:
        for extractor in self._extractors:
            try:
                extractor.warmup()
            except InferenceError as exc:
                self._logger.warning("Extractor %s warmup error: %s", extractor.name, exc)

    def extract(self, frame: np.ndarray) -> List[DetectedFace]:
        last_error: Optional[Exception] = None
        for extractor in self._extractors:
            try:
                faces = extractor.extract(frame)
            except InferenceError as exc:
                last_error = exc
                self._logger.debug("Extractor %s failed: %s", extractor.name, exc)
                continue
            return [face for face in faces if self._has_expected_length(face, extractor.name)]
        raise InferenceError(str(last_error) if last_error else "No descriptor extractor configured")

    def _has_expected_length(self, face: DetectedFace, source: str) -> bool:
        if face.descriptor.shape == (self._descriptor_length,):
            return True
        self._logger.warning(
            "Extractor %s returned descriptor of shape %s, expected (%d,)",
            source,
            face.descriptor.shape,
            self._descriptor_length,
        )
        return False


__all__ = [
    "CallableExtractor",
    "DescriptorExtractor",
    "DetectedFace",
    "FaceRecognitionExtractor",
    "InferenceEngine",
    "InferenceError",
]
