from sqlalchemy import Column, Integer, Float, String, Text, DateTime, ForeignKey
from database.db import Base


GRADE_ENTRY_TYPES = ("COMPONENT", "FINAL")


class GradeEntry(Base):
    __tablename__ = "grade_entries"  # 성적 항목 테이블 (수강별 계층 구조)

    id = Column(Integer, primary_key=True, index=True)       # 성적 항목 고유 ID
    enrollment_id = Column(
        Integer, ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )                                                        # 소속 수강 ID
    parent_id = Column(
        Integer, ForeignKey("grade_entries.id", ondelete="CASCADE"), nullable=True, index=True
    )                                                        # 상위 항목 ID (루트면 NULL)
    name = Column(String(100), nullable=False)               # 항목 이름 (예: 중간고사, Quiz 1)
    weight = Column(Float, nullable=False, default=1.0)      # 상위 항목 내 가중치 (0~1)
    score = Column(Float)                                    # 직접 입력 점수 (리프 전용, 0~10)
    calculated_score = Column(Float)                         # 하위 항목 가중 평균 (내부 노드 전용)
    entry_type = Column(String(20), nullable=False, default="COMPONENT")  # COMPONENT / FINAL
    position = Column(Integer, nullable=False, default=0)    # 형제 간 입력 순서
    recorded_by = Column(String(100))                        # 입력자
    recorded_at = Column(DateTime)                           # 마지막 기록 시각
    notes = Column(Text)                                     # 비고
