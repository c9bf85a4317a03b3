"""Face descriptor validation and enrollment averaging.

A descriptor is the fixed-length embedding produced by the external face
model for one detected face. Registration captures several of them and
stores their component-wise mean.
"""

from __future__ import annotations

from numbers import Real
from typing import Any, Optional, Sequence

import numpy as np

DESCRIPTOR_LENGTH = 128
MIN_SAMPLES = 3


class ValidationError(ValueError):
    """Raised when input data is missing or malformed."""


def as_descriptor(
    values: Any,
    length: int = DESCRIPTOR_LENGTH,
    *,
    field: str = "faceDescriptor",
) -> np.ndarray:
    """Validate ``values`` and return it as a float64 vector of ``length``."""
    message = f"Invalid {field}. Must be an array of {length} numbers"
    if isinstance(values, np.ndarray):
        if values.dtype.kind not in "iuf":
            raise ValidationError(message)
    elif not isinstance(values, (list, tuple)):
        raise ValidationError(message)
    elif any(isinstance(v, bool) or not isinstance(v, Real) for v in values):
        # JSON strings/booleans must not be coerced silently
        raise ValidationError(message)

    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1 or vector.shape[0] != length:
        raise ValidationError(message)
    if not np.all(np.isfinite(vector)):
        raise ValidationError(message)
    return vector


def aggregate_descriptors(
    samples: Any,
    length: int = DESCRIPTOR_LENGTH,
    min_samples: int = MIN_SAMPLES,
    max_samples: Optional[int] = None,
) -> np.ndarray:
    """Average captured samples into one enrollment descriptor.

    Component ``i`` of the result is the arithmetic mean of component ``i``
    of every sample. At least ``min_samples`` vectors of exactly ``length``
    components are required.
    """
    if not isinstance(samples, (list, tuple)):
        raise ValidationError(f"faceSamples must be an array of at least {min_samples} descriptors")
    if len(samples) < min_samples:
        raise ValidationError(
            f"At least {min_samples} face samples are required, got {len(samples)}"
        )
    if max_samples is not None and len(samples) > max_samples:
        raise ValidationError(
            f"At most {max_samples} face samples are accepted, got {len(samples)}"
        )

    stacked = np.vstack([
        as_descriptor(sample, length, field=f"faceSamples[{index}]")
        for index, sample in enumerate(samples)
    ])
    return stacked.mean(axis=0)


def descriptor_to_blob(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype=np.float64).tobytes()


def descriptor_from_blob(blob: Optional[bytes]) -> Optional[np.ndarray]:
    if not blob:
        return None
    return np.frombuffer(blob, dtype=np.float64).copy()


__all__ = [
    "DESCRIPTOR_LENGTH",
    "MIN_SAMPLES",
    "ValidationError",
    "as_descriptor",
    "aggregate_descriptors",
    "descriptor_to_blob",
    "descriptor_from_blob",
]
