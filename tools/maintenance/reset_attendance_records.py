"""Utility script to wipe all students and attendance records.

Usage:
    python tools/maintenance/reset_attendance_records.py [--db attendance_system.db] --yes
"""
import argparse
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT))

from app import config  # noqa: E402
from database import DatabaseManager  # noqa: E402


def main(argv=None):
    parser = argparse.ArgumentParser(description='Xóa toàn bộ sinh viên và dữ liệu điểm danh')
    parser.add_argument('--db', default=config.DATABASE_PATH)
    parser.add_argument('--yes', action='store_true', help='xác nhận xóa')
    args = parser.parse_args(argv)

    if not args.yes:
        print("Thêm --yes để xác nhận xóa dữ liệu.")
        return 1

    removed = DatabaseManager(db_path=args.db).clear_all()
    print(f"Đã xóa {removed['students']} sinh viên và {removed['attendance']} bản ghi điểm danh.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
