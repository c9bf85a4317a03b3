"""
App package initialization
Khởi tạo Flask application và cấu hình
"""
import os

from flask import Flask, request
from flask_cors import CORS

from app import config
from app import globals as app_globals
from app.errors import register_error_handlers
from app.models import AdmissionGate, RecognitionService, StudentDirectory
from core.recognition.matcher import Matcher
from database import DatabaseManager
from logging_config import api_logger, log_request_info, setup_logging


def _init_services(app):
    """Khởi tạo database và các service nghiệp vụ"""
    cfg = app.config

    app_globals.database = DatabaseManager(db_path=cfg['DATABASE_PATH'])
    app.logger.info(f"[STARTUP] Database path: {os.path.abspath(cfg['DATABASE_PATH'])}")

    app_globals.student_directory = StudentDirectory(
        database=app_globals.database,
        descriptor_length=cfg['DESCRIPTOR_LENGTH'],
        min_samples=cfg['MIN_FACE_SAMPLES'],
        max_samples=cfg['MAX_FACE_SAMPLES'],
        logger=app.logger
    )
    app.logger.info("[STARTUP] ✅ StudentDirectory initialized")

    app_globals.admission_gate = AdmissionGate(
        database=app_globals.database,
        timezone_name=cfg['ATTENDANCE_TIMEZONE'],
        clock=cfg.get('CLOCK'),
        logger=app.logger
    )
    app.logger.info(f"[STARTUP] ✅ AdmissionGate initialized (day boundary: {cfg['ATTENDANCE_TIMEZONE']})")

    app_globals.matcher = Matcher(
        threshold=cfg['FACE_MATCH_THRESHOLD'],
        descriptor_length=cfg['DESCRIPTOR_LENGTH'],
        logger=app.logger
    )
    app_globals.recognition_service = RecognitionService(
        directory=app_globals.student_directory,
        gate=app_globals.admission_gate,
        matcher=app_globals.matcher,
        logger=app.logger
    )
    app.logger.info(f"[STARTUP] ✅ Matcher initialized (threshold {cfg['FACE_MATCH_THRESHOLD']})")


def _register_request_logging(app):
    """Ghi log mọi request tới API"""

    @app.before_request
    def _log_request():
        if request.path.startswith('/api'):
            log_request_info(request)

    @app.after_request
    def _log_response(response):
        if request.path.startswith('/api'):
            api_logger.log_response(request.path, response.status_code)
        return response


def create_app(config_overrides=None):
    """Factory function để tạo Flask application"""
    app = Flask(__name__)

    # Cấu hình cơ bản
    app.config.update(config.as_dict())
    if config_overrides:
        app.config.update(config_overrides)
    app.json.sort_keys = False

    # Thiết lập logging
    setup_logging(app, log_level=app.config['LOG_LEVEL'], log_dir=app.config['LOG_DIR'])
    app.logger.info(f"[STARTUP] Working directory: {os.getcwd()}")

    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    app_globals.reset()
    _init_services(app)

    register_error_handlers(app)
    _register_request_logging(app)

    from app.routes import register_blueprints
    register_blueprints(app)

    return app
