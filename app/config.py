"""
Configuration constants và settings
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Flask app configuration
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2MB, descriptors là JSON nhỏ

# Storage & logging
DATABASE_PATH = os.getenv('DATABASE_PATH', 'attendance_system.db')
LOG_DIR = os.getenv('LOG_DIR', 'logs')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Face descriptor configuration
DESCRIPTOR_LENGTH = int(os.getenv('DESCRIPTOR_LENGTH', '128'))
MIN_FACE_SAMPLES = max(3, int(os.getenv('MIN_FACE_SAMPLES', '3')))
MAX_FACE_SAMPLES = max(MIN_FACE_SAMPLES, int(os.getenv('MAX_FACE_SAMPLES', '12')))
FACE_MATCH_THRESHOLD = float(os.getenv('FACE_MATCH_THRESHOLD', '0.6'))

# Ranh giới ngày điểm danh: ngày lịch theo múi giờ này
ATTENDANCE_TIMEZONE = os.getenv('ATTENDANCE_TIMEZONE', 'UTC')

# Admin
ALLOW_CLEAR_ALL = os.getenv('ALLOW_CLEAR_ALL', '0') == '1'
CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

# Camera configuration (kiosk)
CAMERA_INDEX = int(os.getenv('CAMERA_INDEX', '0'))
CAMERA_WIDTH = int(os.getenv('CAMERA_WIDTH', '640'))
CAMERA_HEIGHT = int(os.getenv('CAMERA_HEIGHT', '480'))
CAMERA_WARMUP_FRAMES = int(os.getenv('CAMERA_WARMUP_FRAMES', '3'))
CAMERA_BUFFER_SIZE = int(os.getenv('CAMERA_BUFFER_SIZE', '2'))
DETECTION_INTERVAL_MS = max(10, int(os.getenv('DETECTION_INTERVAL_MS', '150')))
FACE_DETECTION_MODEL = os.getenv('FACE_DETECTION_MODEL', 'hog')


def as_dict():
    """Các hằng số cấu hình (chữ in hoa) dưới dạng dict cho app.config."""
    return {key: value for key, value in globals().items() if key.isupper()}
