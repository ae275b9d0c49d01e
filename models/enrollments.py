from sqlalchemy import Column, Integer, Float, String, DateTime
from database.db import Base


ENROLLMENT_STATUSES = ("IN_PROGRESS", "COMPLETED", "WITHDRAWN")


class Enrollment(Base):
    __tablename__ = "enrollments"  # 수강 정보 테이블 (학생 × 개설 과목)

    id = Column(Integer, primary_key=True, index=True)           # 수강 고유 ID (Primary Key)
    student_id = Column(Integer, nullable=False, index=True)     # 학생 ID
    course_code = Column(String(20))                             # 과목 코드 (예: CS101)
    course_name = Column(String(200))                            # 과목 이름
    credits = Column(Integer, nullable=False, default=0)         # 학점 수
    final_score = Column(Float)                                  # 최종 점수 (10점 만점, 이수 처리 시에만 기록)
    gpa_value = Column(Float)                                    # 4.0 환산 점수
    letter_grade = Column(String(5))                             # 등급 (예: A, B+)
    status = Column(String(20), nullable=False, default="IN_PROGRESS")  # IN_PROGRESS / COMPLETED / WITHDRAWN
    enrolled_at = Column(DateTime)                               # 수강 신청 시각
    completed_at = Column(DateTime)                              # 이수/철회 처리 시각
