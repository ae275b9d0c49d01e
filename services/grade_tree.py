"""
services/grade_tree.py

수강(enrollment)별 성적 항목 트리 관리 (저장소 + 불변식)
- 모든 변경은 [검증 → 트리 로드 → arena 변경 → 조상 재계산 → 변경 row 저장 → commit] 순서로 한 번에 처리
- 검증 실패/조회 실패/DB 오류 시 rollback 하고 예외를 그대로 올린다 (재시도 없음)
- 예상 점수 계산은 수강의 공식 final_score를 절대 변경하지 않는다
"""

import logging
import math
from contextlib import contextmanager
from datetime import datetime
from numbers import Real
from typing import List, Optional

from sqlalchemy.orm import Session

from models.enrollments import Enrollment as EnrollmentModel
from models.grade_entries import GradeEntry as GradeEntryModel, GRADE_ENTRY_TYPES
from services import grade_aggregator as aggregator
from services.exceptions import InvalidOperationError, NotFoundError, ValidationError
from services.grade_nodes import GradeForest, GradeNode

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 10.0
NAME_MAX_LENGTH = 100


# ==========================================================
# [입력 검증] 변경 작업 전에 호출
# ==========================================================
def validate_name(name) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Grade entry name must not be empty")
    name = str(name).strip()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Grade entry name must not exceed {NAME_MAX_LENGTH} characters")
    return name


def _number(value, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise ValidationError(f"{label} must be a number", details={label.lower(): value})
    return float(value)


def validate_weight(weight) -> float:
    weight = _number(weight, "Weight")
    if not 0.0 < weight <= 1.0:
        raise ValidationError("Weight must be greater than 0 and at most 1", details={"weight": weight})
    return weight


def validate_score(score) -> float:
    score = _number(score, "Score")
    if not SCORE_MIN <= score <= SCORE_MAX:
        raise ValidationError("Score must be between 0 and 10", details={"score": score})
    return score


def validate_entry_type(entry_type) -> str:
    if entry_type is None:
        return "COMPONENT"
    value = str(entry_type).strip().upper()
    if value not in GRADE_ENTRY_TYPES:
        raise ValidationError(f"Unknown entry type: {entry_type}", details={"entry_type": entry_type})
    return value


class GradeTree:
    def __init__(self, db: Session):
        self.db = db

    # ==========================================================
    # [공통] 트랜잭션 / 로드 / 저장
    # ==========================================================
    @contextmanager
    def _unit_of_work(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _require_enrollment(self, enrollment_id: int) -> None:
        exists = self.db.query(EnrollmentModel.id).filter(EnrollmentModel.id == enrollment_id).first()
        if exists is None:
            raise NotFoundError("Enrollment", enrollment_id)

    def _rows(self, enrollment_id: int) -> List[GradeEntryModel]:
        return (
            self.db.query(GradeEntryModel)
            .filter(GradeEntryModel.enrollment_id == enrollment_id)
            .all()
        )

    def load(self, enrollment_id: int) -> GradeForest:
        """수강의 전체 트리 로드. 항목이 없으면 빈 forest (수강 자체가 없을 때만 NotFoundError)"""
        self._require_enrollment(enrollment_id)
        return GradeForest.from_rows(enrollment_id, self._rows(enrollment_id))

    def _load_for_node(self, node_id: int) -> GradeForest:
        row = self.db.query(GradeEntryModel).filter(GradeEntryModel.id == node_id).first()
        if row is None:
            raise NotFoundError("GradeEntry", node_id)
        return GradeForest.from_rows(row.enrollment_id, self._rows(row.enrollment_id))

    def _sync(self, forest: GradeForest, node_ids) -> None:
        """arena 상태(점수/계산 점수/이름/가중치)를 해당 row에 반영"""
        for node_id in dict.fromkeys(node_ids):
            node = forest.nodes.get(node_id)
            if node is None:
                continue
            row = self.db.get(GradeEntryModel, node_id)
            row.name = node.name
            row.weight = node.weight
            row.entry_type = node.entry_type
            row.score = node.score
            row.calculated_score = node.calculated_score
            row.recorded_by = node.recorded_by
            row.recorded_at = node.recorded_at
            row.notes = node.notes
        self.db.flush()

    def _insert(self, forest: GradeForest, parent_id: Optional[int], name: str, weight: float,
                entry_type: str, notes: Optional[str], recorded_by: Optional[str]) -> GradeNode:
        position = forest.next_position(parent_id)
        now = datetime.now()
        row = GradeEntryModel(
            enrollment_id=forest.enrollment_id,
            parent_id=parent_id,
            name=name,
            weight=weight,
            score=None,
            calculated_score=None,
            entry_type=entry_type,
            position=position,
            recorded_by=recorded_by,
            recorded_at=now,
            notes=notes,
        )
        self.db.add(row)
        self.db.flush()  # id 발급

        node = GradeNode(
            id=row.id,
            enrollment_id=forest.enrollment_id,
            name=name,
            weight=weight,
            parent_id=parent_id,
            entry_type=entry_type,
            position=position,
            recorded_by=recorded_by,
            recorded_at=now,
            notes=notes,
        )
        forest.attach(node)
        return node

    # ==========================================================
    # [조회]
    # ==========================================================
    def hierarchy(self, enrollment_id: int) -> List[dict]:
        return self.load(enrollment_id).to_payload()

    def get_node(self, node_id: int) -> GradeNode:
        return self._load_for_node(node_id).get(node_id)

    def children_of(self, node_id: int) -> List[GradeNode]:
        return self._load_for_node(node_id).children_of(node_id)

    def leaves(self, enrollment_id: int) -> List[GradeNode]:
        return self.load(enrollment_id).leaves()

    def calculated_score(self, node_id: int) -> Optional[float]:
        forest = self._load_for_node(node_id)
        return aggregator.compute_score(forest, node_id)

    def weighted_score(self, node_id: int) -> Optional[float]:
        """항목 점수 × 가중치 (점수가 없으면 None)"""
        forest = self._load_for_node(node_id)
        score = aggregator.compute_score(forest, node_id)
        return None if score is None else score * forest.get(node_id).weight

    def estimate_final_grade(self, enrollment_id: int) -> Optional[float]:
        return aggregator.estimate_final_grade(self.load(enrollment_id))

    def remaining_weight(self, enrollment_id: int, parent_id: Optional[int] = None) -> float:
        """같은 부모(또는 루트) 아래 남은 가중치. 권고값일 뿐 강제하지 않음"""
        forest = self.load(enrollment_id)
        return aggregator.remaining_weight(n.weight for n in forest.siblings(parent_id))

    def weights_balanced(self, enrollment_id: int, parent_id: Optional[int] = None,
                         tolerance: float = 0.001) -> bool:
        forest = self.load(enrollment_id)
        return aggregator.is_balanced((n.weight for n in forest.siblings(parent_id)), tolerance)

    def entries_by_type(self, enrollment_id: int, entry_type: str) -> List[GradeNode]:
        entry_type = validate_entry_type(entry_type)
        return [n for n in self.load(enrollment_id).walk() if n.entry_type == entry_type]

    def entries_by_student(self, student_id: int) -> List[GradeNode]:
        """학생의 모든 수강에 걸친 성적 항목 (수강 id 순, 수강 안에서는 계층 순서)"""
        enrollment_ids = (
            self.db.query(EnrollmentModel.id)
            .filter(EnrollmentModel.student_id == student_id)
            .order_by(EnrollmentModel.id)
            .all()
        )
        nodes = []
        for (enrollment_id,) in enrollment_ids:
            nodes.extend(self.load(enrollment_id).walk())
        return nodes

    def count_entries(self, enrollment_id: int) -> int:
        self._require_enrollment(enrollment_id)
        return (
            self.db.query(GradeEntryModel)
            .filter(GradeEntryModel.enrollment_id == enrollment_id)
            .count()
        )

    # ==========================================================
    # [변경] 루트 추가 / 자식 추가 / 점수 입력 / 수정 / 삭제
    # ==========================================================
    def add_root(self, enrollment_id: int, name: str, weight: float, entry_type: str = "COMPONENT",
                 notes: Optional[str] = None, recorded_by: Optional[str] = None) -> GradeNode:
        name = validate_name(name)
        weight = validate_weight(weight)
        entry_type = validate_entry_type(entry_type)

        forest = self.load(enrollment_id)
        with self._unit_of_work():
            node = self._insert(forest, None, name, weight, entry_type, notes, recorded_by)

        logger.info("grade entry created: id=%s enrollment_id=%s name=%r", node.id, enrollment_id, name)
        return node

    def add_child(self, parent_id: int, name: str, weight: float, entry_type: str = "COMPONENT",
                  notes: Optional[str] = None, recorded_by: Optional[str] = None) -> GradeNode:
        name = validate_name(name)
        weight = validate_weight(weight)
        entry_type = validate_entry_type(entry_type)

        forest = self._load_for_node(parent_id)
        with self._unit_of_work():
            node = self._insert(forest, parent_id, name, weight, entry_type, notes, recorded_by)
            touched = aggregator.recompute_ancestors(forest, parent_id)
            self._sync(forest, [parent_id] + touched)

        logger.info("grade entry created: id=%s parent_id=%s name=%r", node.id, parent_id, name)
        logger.debug("recomputed ancestors after add_child: %s", touched)
        return node

    def set_leaf_score(self, node_id: int, score: float, recorded_by: Optional[str] = None) -> GradeNode:
        score = validate_score(score)

        forest = self._load_for_node(node_id)
        node = forest.get(node_id)
        if not node.is_leaf:
            logger.warning("score rejected on internal grade entry: id=%s", node_id)
            raise InvalidOperationError(
                "Cannot set a score on a grade entry that has children",
                details={"id": node_id, "children": node.children},
            )

        with self._unit_of_work():
            node.body.score = score
            node.recorded_at = datetime.now()
            if recorded_by is not None:
                node.recorded_by = recorded_by
            touched = aggregator.recompute_ancestors(forest, node.parent_id)
            self._sync(forest, [node_id] + touched)

        logger.info("score updated: id=%s score=%s", node_id, score)
        logger.debug("recomputed ancestors after set_leaf_score: %s", touched)
        return node

    def update_node(self, node_id: int, name: Optional[str] = None, weight: Optional[float] = None,
                    notes: Optional[str] = None, entry_type: Optional[str] = None) -> GradeNode:
        """이름/가중치/비고 수정. 가중치가 바뀌면 조상 점수도 다시 계산"""
        name = validate_name(name) if name is not None else None
        weight = validate_weight(weight) if weight is not None else None
        entry_type = validate_entry_type(entry_type) if entry_type is not None else None

        forest = self._load_for_node(node_id)
        node = forest.get(node_id)
        with self._unit_of_work():
            if name is not None:
                node.name = name
            if weight is not None:
                node.weight = weight
            if notes is not None:
                node.notes = notes
            if entry_type is not None:
                node.entry_type = entry_type
            node.recorded_at = datetime.now()
            touched = aggregator.recompute_ancestors(forest, node.parent_id)
            self._sync(forest, [node_id] + touched)

        logger.info("grade entry updated: id=%s", node_id)
        return node

    def recalculate(self, enrollment_id: int) -> List[int]:
        """저장된 calculated_score 전체 재계산 (외부에서 직접 적재한 데이터 정리용)"""
        forest = self.load(enrollment_id)
        with self._unit_of_work():
            touched = aggregator.recompute_all(forest)
            # 내부 노드에 남아 있던 score 컬럼도 비운다
            self._sync(forest, touched)

        logger.info("grade tree recalculated: enrollment_id=%s nodes=%s", enrollment_id, len(touched))
        return touched

    def delete_node(self, node_id: int) -> List[int]:
        """하위 트리 전체 삭제. 삭제된 id 목록(자식 먼저) 반환"""
        forest = self._load_for_node(node_id)
        parent_id = forest.get(node_id).parent_id

        with self._unit_of_work():
            removed = forest.detach(node_id)
            for removed_id in removed:
                self.db.query(GradeEntryModel).filter(GradeEntryModel.id == removed_id).delete(
                    synchronize_session=False
                )
            touched = aggregator.recompute_ancestors(forest, parent_id)
            self._sync(forest, ([parent_id] if parent_id is not None else []) + touched)

        logger.info("subtree deleted: id=%s removed=%s", node_id, len(removed))
        return removed
