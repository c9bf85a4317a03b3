"""
Cấu hình logging cho hệ thống điểm danh sinh trắc học
"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

_HANDLER_TAG = '_checkin_handler'


def setup_logging(app, log_level='INFO', log_dir='logs', max_log_size=10*1024*1024, backup_count=5):
    """
    Thiết lập logging cho ứng dụng Flask

    Args:
        app: Flask app instance
        log_level: Mức độ log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Thư mục chứa file log
        max_log_size: Kích thước tối đa của file log (bytes)
        backup_count: Số lượng file log backup
    """

    # Tạo thư mục logs nếu chưa có
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, str(log_level).upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler với rotation
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'attendance_system.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(level)

    # Handler cho console
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    # Handler cho file lỗi
    error_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'errors.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Chỉ gỡ các handler do chính hàm này gắn vào trước đó
    for handler in root_logger.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    for handler in (file_handler, console_handler, error_handler):
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_TAG, True)
        root_logger.addHandler(handler)

    for name in ('security', 'face_recognition', 'database', 'api'):
        logging.getLogger(name).setLevel(logging.INFO)

    app.logger.setLevel(level)

    app.logger.info("=" * 50)
    app.logger.info("BIOMETRIC CHECK-IN STARTUP")
    app.logger.info(f"Timestamp: {datetime.now().isoformat()}")
    app.logger.info(f"Log Level: {logging.getLevelName(level)}")
    app.logger.info(f"Log Directory: {log_dir.absolute()}")
    app.logger.info("=" * 50)


class SecurityLogger:
    """Logger chuyên dụng cho các thao tác quản trị"""

    def __init__(self):
        self.logger = logging.getLogger('security')

    def log_admin_action(self, action, ip_address=None, details=None):
        """Log hành động quản trị"""
        ip_info = f", IP: {ip_address}" if ip_address else ""
        details_info = f", Details: {details}" if details else ""
        self.logger.warning(f"ADMIN ACTION - Action: {action}{ip_info}{details_info}")


class FaceRecognitionLogger:
    """Logger chuyên dụng cho nhận diện khuôn mặt"""

    def __init__(self):
        self.logger = logging.getLogger('face_recognition')

    def log_face_recognized(self, student_id, distance, confidence):
        """Log nhận diện khuôn mặt thành công"""
        self.logger.info(
            f"Face recognized - Student ID: {student_id}, Distance: {distance:.4f}, "
            f"Confidence: {confidence:.1f}"
        )

    def log_no_match(self, best_distance, enrolled_count):
        """Log không tìm thấy khuôn mặt phù hợp"""
        distance_info = f"{best_distance:.4f}" if best_distance is not None else "n/a"
        self.logger.info(f"No match - Best distance: {distance_info}, Enrolled: {enrolled_count}")

    def log_student_enrolled(self, student_id, sample_count):
        """Log đăng ký khuôn mặt"""
        self.logger.info(f"Face enrolled - Student ID: {student_id}, Samples: {sample_count}")

    def log_attendance_marked(self, name, student_id, confidence=None):
        """Log điểm danh"""
        confidence_info = f", Confidence: {confidence:.1f}" if confidence is not None else ""
        self.logger.info(f"Attendance marked - Name: {name}, Student ID: {student_id}{confidence_info}")

    def log_already_checked_in(self, student_id, attendance_date):
        self.logger.info(f"Already checked in - Student ID: {student_id}, Date: {attendance_date}")


class DatabaseLogger:
    """Logger chuyên dụng cho database operations"""

    def __init__(self):
        self.logger = logging.getLogger('database')

    def log_error(self, operation, error_message):
        """Log lỗi database"""
        self.logger.error(f"DB Error - Operation: {operation}, Error: {error_message}")


class APILogger:
    """Logger chuyên dụng cho API calls"""

    def __init__(self):
        self.logger = logging.getLogger('api')

    def log_request(self, method, endpoint, ip_address=None):
        """Log yêu cầu API"""
        ip_info = f", IP: {ip_address}" if ip_address else ""
        self.logger.info(f"API Request - {method} {endpoint}{ip_info}")

    def log_response(self, endpoint, status_code):
        """Log phản hồi API"""
        self.logger.debug(f"API Response - {endpoint}, Status: {status_code}")

    def log_error(self, endpoint, error_message, status_code=500):
        """Log lỗi API"""
        log = self.logger.error if status_code >= 500 else self.logger.warning
        log(f"API Error - {endpoint}, Status: {status_code}, Error: {error_message}")


# Các instance logger toàn cục
security_logger = SecurityLogger()
face_recognition_logger = FaceRecognitionLogger()
database_logger = DatabaseLogger()
api_logger = APILogger()


def get_client_ip(request):
    """Lấy IP address của client"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    else:
        return request.remote_addr


def log_request_info(request):
    """Log thông tin request"""
    ip_address = get_client_ip(request)
    api_logger.log_request(request.method, request.path, ip_address=ip_address)
    return ip_address
