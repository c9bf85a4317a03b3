"""
Student Directory - Quản lý hồ sơ sinh viên và descriptor đăng ký
Business logic for student registration, lookup and soft deletion
"""
from collections import OrderedDict
from typing import Any, Dict, List, Optional

import numpy as np

from app.errors import ConflictError, NotFoundError
from core.recognition.descriptors import (
    DESCRIPTOR_LENGTH,
    MIN_SAMPLES,
    ValidationError,
    aggregate_descriptors,
    as_descriptor,
    descriptor_from_blob,
    descriptor_to_blob,
)
from logging_config import face_recognition_logger


class StudentDirectory:
    """Service quản lý sinh viên"""

    def __init__(
        self,
        database,
        descriptor_length: int = DESCRIPTOR_LENGTH,
        min_samples: int = MIN_SAMPLES,
        max_samples: Optional[int] = None,
        logger=None
    ):
        self.db = database
        self.descriptor_length = descriptor_length
        self.min_samples = min_samples
        self.max_samples = max_samples
        self.logger = logger

    def build_enrollment(self, descriptor=None, samples=None) -> np.ndarray:
        """
        Tạo descriptor đăng ký từ một descriptor sẵn có hoặc từ nhiều mẫu (lấy trung bình)
        """
        if samples is not None:
            return aggregate_descriptors(
                samples,
                length=self.descriptor_length,
                min_samples=self.min_samples,
                max_samples=self.max_samples,
            )
        if descriptor is None:
            raise ValidationError('faceDescriptor or faceSamples is required')
        return as_descriptor(descriptor, self.descriptor_length)

    def register(
        self,
        student_id: str,
        name: str,
        course: str,
        descriptor=None,
        samples=None
    ) -> Dict[str, Any]:
        """Đăng ký sinh viên mới. Raises ConflictError nếu mã đã được đăng ký."""
        if not student_id or not name or not course or (descriptor is None and samples is None):
            raise ValidationError(
                'All fields are required (studentId, name, course, faceDescriptor)'
            )

        enrollment = self.build_enrollment(descriptor=descriptor, samples=samples)
        created = self.db.add_student(
            student_id,
            name,
            course,
            descriptor_to_blob(enrollment),
        )
        if not created:
            if self.logger:
                self.logger.info(f"[StudentDirectory] Duplicate registration for {student_id}")
            raise ConflictError('Student ID already registered')

        face_recognition_logger.log_student_enrolled(
            student_id, len(samples) if samples is not None else 1
        )
        if self.logger:
            self.logger.info(f"[StudentDirectory] ✅ Registered {name} ({student_id})")
        return self.db.get_student(student_id)

    def get(self, student_id: str) -> Dict[str, Any]:
        student = self.db.get_student(student_id)
        if not student:
            raise NotFoundError('Student not found')
        return student

    def get_active(self, student_id: str) -> Dict[str, Any]:
        student = self.db.get_student(student_id)
        if not student or not student.get('is_active'):
            raise NotFoundError('Student not found')
        return student

    def list_active(self) -> List[Dict[str, Any]]:
        return self.db.get_all_students(active_only=True)

    def descriptor_rows(self) -> List[Dict[str, Any]]:
        """Sinh viên đang hoạt động kèm descriptor, sắp theo tên"""
        rows = self.db.get_active_descriptors()
        return sorted(rows, key=lambda row: row['full_name'])

    def enrolled_descriptors(self) -> "OrderedDict[str, np.ndarray]":
        """Mapping mã sinh viên -> descriptor theo thứ tự đăng ký (dùng cho so khớp)"""
        enrolled = OrderedDict()
        for row in self.db.get_active_descriptors():
            descriptor = descriptor_from_blob(row['face_descriptor'])
            if descriptor is None or descriptor.shape != (self.descriptor_length,):
                if self.logger:
                    self.logger.warning(
                        f"[StudentDirectory] Skipping {row['student_id']}: bad stored descriptor"
                    )
                continue
            enrolled[row['student_id']] = descriptor
        return enrolled

    def update(
        self,
        student_id: str,
        name: Optional[str] = None,
        course: Optional[str] = None,
        descriptor=None
    ) -> Dict[str, Any]:
        """Cập nhật tên, lớp hoặc descriptor"""
        self.get(student_id)
        blob = None
        if descriptor is not None:
            blob = descriptor_to_blob(as_descriptor(descriptor, self.descriptor_length))
        self.db.update_student(
            student_id,
            full_name=name or None,
            course=course or None,
            face_descriptor=blob,
        )
        if self.logger:
            self.logger.info(f"[StudentDirectory] Updated {student_id}")
        return self.db.get_student(student_id)

    def deactivate(self, student_id: str) -> None:
        """Xóa mềm sinh viên"""
        self.get(student_id)
        self.db.delete_student(student_id)
        if self.logger:
            self.logger.info(f"[StudentDirectory] Deactivated {student_id}")

    def count_active(self) -> int:
        return self.db.count_active_students()
