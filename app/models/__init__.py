"""
Models Package - Business logic models
Centralized business logic separated from Flask routes
"""

from .student_directory import StudentDirectory
from .admission_gate import AdmissionGate
from .recognition_service import RecognitionService
from .kiosk import CheckInKiosk, EnrollmentCapture, KioskEvent

__all__ = [
    'StudentDirectory',
    'AdmissionGate',
    'RecognitionService',
    'CheckInKiosk',
    'EnrollmentCapture',
    'KioskEvent',
]
