import csv
from datetime import datetime
from sqlalchemy.orm import Session
from database.db import SessionLocal, init_db
from models.enrollments import Enrollment as EnrollmentModel  # ✅ 모델 import
from services import grading_scales

CSV_PATH = "data/enrollments.csv"  # ✅ 파일 경로


def _optional_float(value):
    return float(value) if value not in (None, "") else None


def migrate_enrollments(csv_path: str = CSV_PATH, db: Session = None) -> int:
    own_session = db is None
    db = db or SessionLocal()
    count = 0

    try:
        with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
            reader = csv.DictReader(csvfile)
            for row in reader:
                final_score = _optional_float(row.get("final_score"))
                enrollment = EnrollmentModel(
                    id=int(row["id"]),                               # 수강 고유 ID
                    student_id=int(row["student_id"]),               # 학생 ID
                    course_code=row.get("course_code") or None,      # 과목 코드
                    course_name=row.get("course_name") or None,      # 과목 이름
                    credits=int(row.get("credits") or 0),            # 학점
                    final_score=final_score,                         # 최종 점수 (이수 과목만)
                    gpa_value=grading_scales.to_gpa_scale4(final_score),
                    letter_grade=grading_scales.to_letter_grade(final_score),
                    status=row.get("status") or ("COMPLETED" if final_score is not None else "IN_PROGRESS"),
                    enrolled_at=datetime.now(),
                )
                db.add(enrollment)
                count += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        if own_session:
            db.close()

    return count


if __name__ == "__main__":
    init_db()
    imported = migrate_enrollments()
    print(f"✅ 수강 CSV → DB 마이그레이션 완료 ({imported}건)")
