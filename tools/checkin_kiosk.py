"""Local camera kiosk for check-in and enrollment.

Runs a ``CheckInSession`` on a webcam, extracts 128-d descriptors with the
`face_recognition` library and talks to the database directly (no HTTP).

Usage:
  python tools/checkin_kiosk.py checkin [--camera 0]
  python tools/checkin_kiosk.py register --student-id S100 --name "An" --course "CNTT"

Dependencies: face_recognition, opencv-python
"""
import argparse
import logging
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from app import config  # noqa: E402
from app.errors import ConflictError  # noqa: E402
from app.models import (  # noqa: E402
    AdmissionGate,
    CheckInKiosk,
    EnrollmentCapture,
    RecognitionService,
    StudentDirectory,
)
from core.inference.engine import FaceRecognitionExtractor, InferenceEngine, InferenceError  # noqa: E402
from core.recognition.descriptors import ValidationError  # noqa: E402
from core.recognition.matcher import Matcher  # noqa: E402
from core.vision.camera_manager import CameraConfig, CameraError, CameraManager  # noqa: E402
from core.vision.session import CheckInSession  # noqa: E402
from database import DatabaseManager  # noqa: E402

logger = logging.getLogger('kiosk')


def build_services(db_path):
    database = DatabaseManager(db_path=db_path)
    directory = StudentDirectory(
        database,
        descriptor_length=config.DESCRIPTOR_LENGTH,
        min_samples=config.MIN_FACE_SAMPLES,
        max_samples=config.MAX_FACE_SAMPLES,
        logger=logger,
    )
    gate = AdmissionGate(database, timezone_name=config.ATTENDANCE_TIMEZONE, logger=logger)
    matcher = Matcher(config.FACE_MATCH_THRESHOLD, config.DESCRIPTOR_LENGTH, logger=logger)
    return directory, RecognitionService(directory, gate, matcher, logger=logger)


def build_session(camera_index, on_detection):
    engine = InferenceEngine(descriptor_length=config.DESCRIPTOR_LENGTH, logger=logger)
    engine.add_extractor(FaceRecognitionExtractor(detection_model=config.FACE_DETECTION_MODEL, logger=logger))
    engine.warmup()
    if not engine.ready():
        raise InferenceError("face_recognition model is not available")
    camera = CameraManager(CameraConfig(
        index=camera_index,
        width=config.CAMERA_WIDTH,
        height=config.CAMERA_HEIGHT,
        warmup_frames=config.CAMERA_WARMUP_FRAMES,
        buffer_size=config.CAMERA_BUFFER_SIZE,
    ))
    return CheckInSession(
        camera=camera,
        extractor=engine,
        on_detection=on_detection,
        interval=config.DETECTION_INTERVAL_MS / 1000.0,
        logger=logger,
    )


def print_event(event):
    stamp = time.strftime('%H:%M:%S')
    if event.status == 'admitted':
        print(f"[{stamp}] ✅ Welcome {event.name} ({event.student_id}) - {event.confidence:.1f}%")
    elif event.status == 'already_checked_in':
        print(f"[{stamp}] ℹ️  {event.name} ({event.student_id}) already checked in today")
    elif event.status == 'no_match':
        print(f"[{stamp}] ❌ Not recognized")


def run_checkin(args):
    _, service = build_services(args.db)
    kiosk = CheckInKiosk(service, cooldown_seconds=args.cooldown, on_event=print_event, logger=logger)
    with build_session(args.camera, kiosk.handle_detection) as session:
        print("Check-in kiosk running. Press Ctrl+C to stop.")
        while session.is_running:
            time.sleep(0.2)
    print("Camera stopped.")
    return 0


def run_register(args):
    directory, _ = build_services(args.db)
    capture = EnrollmentCapture(
        required_samples=max(args.samples, config.MIN_FACE_SAMPLES),
        descriptor_length=config.DESCRIPTOR_LENGTH,
    )
    with build_session(args.camera, capture.handle_detection) as session:
        print(f"Look at the camera: capturing {capture.required_samples} samples...")
        while session.is_running and not capture.done.wait(0.2):
            pass
    if not capture.done.is_set():
        print(f"Stopped with {len(capture.samples)}/{capture.required_samples} samples; nothing saved.")
        return 1

    try:
        directory.register(
            args.student_id.strip().upper(),
            args.name.strip(),
            args.course.strip(),
            samples=capture.samples,
        )
    except (ConflictError, ValidationError) as exc:
        print(f"Registration failed: {exc}")
        return 1
    print(f"Registered {args.name} ({args.student_id.upper()}) from {len(capture.samples)} samples")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description='Biometric check-in kiosk')
    parser.add_argument('--camera', type=int, default=config.CAMERA_INDEX)
    parser.add_argument('--db', default=config.DATABASE_PATH)
    sub = parser.add_subparsers(dest='command', required=True)

    checkin = sub.add_parser('checkin', help='recognize faces and mark attendance')
    checkin.add_argument('--cooldown', type=float, default=30.0)

    register = sub.add_parser('register', help='capture samples and register a student')
    register.add_argument('--student-id', required=True)
    register.add_argument('--name', required=True)
    register.add_argument('--course', required=True)
    register.add_argument('--samples', type=int, default=config.MIN_FACE_SAMPLES)

    args = parser.parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        if args.command == 'checkin':
            return run_checkin(args)
        return run_register(args)
    except KeyboardInterrupt:
        print("Interrupted.")
        return 130
    except (CameraError, InferenceError) as exc:
        print(f"Kiosk error: {exc}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
