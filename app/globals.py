"""
Global service instances
Các service dùng chung, được khởi tạo trong app/__init__.py (create_app)
"""

database = None
student_directory = None
admission_gate = None
matcher = None
recognition_service = None


def reset():
    """Xóa tham chiếu service (gọi trước khi khởi tạo app mới)"""
    global database, student_directory, admission_gate, matcher, recognition_service
    database = None
    student_directory = None
    admission_gate = None
    matcher = None
    recognition_service = None
