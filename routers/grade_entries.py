from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from schemas.common import SuccessEnvelope
from schemas.grade_entries import (
    EstimatedGrade,
    GradeEntry,
    GradeEntryChildCreate,
    GradeEntryCreate,
    GradeEntryTree,
    GradeEntryUpdate,
    ScoreUpdate,
)
from services import grading_scales
from services.exceptions import ValidationError
from services.grade_tree import GradeTree

router = APIRouter(prefix="/grade-entries", tags=["성적 항목"])


def get_tree(db: Session = Depends(get_db)) -> GradeTree:
    return GradeTree(db)


def _present(value: Optional[float]) -> Optional[float]:
    # 표시용 반올림 (내부 계산 값은 그대로)
    return None if value is None else round(value, settings.SCORE_DECIMALS)


# ==========================================================
# [1단계] 수강 단위 조회 (계층 / 예상 점수 / 가중치)
# ==========================================================

# ✅ [READ] 수강별 성적 항목 계층 구조
@router.get("/enrollment/{enrollment_id}/hierarchy", response_model=SuccessEnvelope[List[GradeEntryTree]])
def get_hierarchy(enrollment_id: int, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": tree.hierarchy(enrollment_id),
        "message": "성적 항목 계층 조회 성공",
    }


# ✅ [READ] 리프 항목 목록 (점수 입력 대상)
@router.get("/enrollment/{enrollment_id}/leaves", response_model=SuccessEnvelope[List[GradeEntry]])
def get_leaf_entries(enrollment_id: int, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": [n.to_dict() for n in tree.leaves(enrollment_id)],
        "message": "리프 항목 조회 성공",
    }


# ✅ [READ] 유형별 항목 목록 (COMPONENT / FINAL)
@router.get("/enrollment/{enrollment_id}/type/{entry_type}", response_model=SuccessEnvelope[List[GradeEntry]])
def get_entries_by_type(enrollment_id: int, entry_type: str, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": [n.to_dict() for n in tree.entries_by_type(enrollment_id, entry_type)],
        "message": "유형별 항목 조회 성공",
    }


# ✅ [READ] 수강별 항목 수
@router.get("/enrollment/{enrollment_id}/count")
def count_entries(enrollment_id: int, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": {"enrollment_id": enrollment_id, "count": tree.count_entries(enrollment_id)},
        "message": "항목 수 조회 성공",
    }


# ✅ [READ] 학생별 전체 항목 목록
@router.get("/student/{student_id}", response_model=SuccessEnvelope[List[GradeEntry]])
def get_entries_by_student(student_id: int, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": [n.to_dict() for n in tree.entries_by_student(student_id)],
        "message": "학생별 항목 조회 성공",
    }


# ✅ [CALC] 남은 가중치 (다음 항목 기본값 제안)
@router.get("/enrollment/{enrollment_id}/remaining-weight")
def get_remaining_weight(enrollment_id: int, parent_id: Optional[int] = None,
                         tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": {
            "enrollment_id": enrollment_id,
            "parent_id": parent_id,
            "remaining_weight": tree.remaining_weight(enrollment_id, parent_id),
        },
        "message": "남은 가중치 계산 성공",
    }


# ✅ [CALC] 형제 가중치 합이 1인지 확인 (참고용)
@router.get("/enrollment/{enrollment_id}/validate-weights")
def validate_weights(enrollment_id: int, parent_id: Optional[int] = None, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": {
            "enrollment_id": enrollment_id,
            "parent_id": parent_id,
            "balanced": tree.weights_balanced(enrollment_id, parent_id),
        },
        "message": "가중치 확인 완료",
    }


# ✅ [CALC] 예상 최종 점수 (공식 final_score 아님)
@router.get("/enrollment/{enrollment_id}/estimated-grade", response_model=SuccessEnvelope[EstimatedGrade])
def get_estimated_grade(enrollment_id: int, tree: GradeTree = Depends(get_tree)):
    # 등급/GPA는 화면에 보이는 반올림 점수 기준
    estimate = _present(tree.estimate_final_grade(enrollment_id))
    return {
        "success": True,
        "data": {
            "enrollment_id": enrollment_id,
            "estimated_score": estimate,
            "gpa_value": grading_scales.to_gpa_scale4(estimate),
            "letter_grade": grading_scales.to_letter_grade(estimate),
            "weights_balanced": tree.weights_balanced(enrollment_id),
        },
        "message": "예상 점수 계산 성공",
    }


# ✅ [CALC] 저장된 계산 점수 전체 재계산
@router.post("/enrollment/{enrollment_id}/recalculate", response_model=SuccessEnvelope[List[GradeEntryTree]])
def recalculate_tree(enrollment_id: int, tree: GradeTree = Depends(get_tree)):
    tree.recalculate(enrollment_id)
    return {
        "success": True,
        "data": tree.hierarchy(enrollment_id),
        "message": "계산 점수 재계산 완료",
    }


# ==========================================================
# [2단계] 항목 생성
# ==========================================================

# ✅ [CREATE] 루트 항목 추가
@router.post("/", response_model=SuccessEnvelope[GradeEntry])
def create_root_entry(entry: GradeEntryCreate, tree: GradeTree = Depends(get_tree)):
    node = tree.add_root(
        entry.enrollment_id, entry.name, entry.weight,
        entry_type=entry.entry_type, notes=entry.notes, recorded_by=entry.recorded_by,
    )
    return {"success": True, "data": node.to_dict(), "message": "성적 항목이 추가되었습니다"}


# ✅ [CREATE] 하위 항목 추가 (부모는 내부 노드로 전환)
@router.post("/{parent_id}/children", response_model=SuccessEnvelope[GradeEntry])
def create_child_entry(parent_id: int, entry: GradeEntryChildCreate, tree: GradeTree = Depends(get_tree)):
    node = tree.add_child(
        parent_id, entry.name, entry.weight,
        entry_type=entry.entry_type, notes=entry.notes, recorded_by=entry.recorded_by,
    )
    return {"success": True, "data": node.to_dict(), "message": "하위 성적 항목이 추가되었습니다"}


# ==========================================================
# [3단계] 항목 단위 조회 / 수정 / 삭제
# ==========================================================

# ✅ [READ] 특정 항목 조회
@router.get("/{entry_id}", response_model=SuccessEnvelope[GradeEntry])
def read_entry(entry_id: int, tree: GradeTree = Depends(get_tree)):
    return {"success": True, "data": tree.get_node(entry_id).to_dict(), "message": "성적 항목 조회 성공"}


# ✅ [READ] 하위 항목 목록
@router.get("/{entry_id}/children", response_model=SuccessEnvelope[List[GradeEntry]])
def read_children(entry_id: int, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": [n.to_dict() for n in tree.children_of(entry_id)],
        "message": "하위 항목 조회 성공",
    }


# ✅ [CALC] 항목 계산 점수 / 가중 점수
@router.get("/{entry_id}/calculated-score")
def read_calculated_score(entry_id: int, tree: GradeTree = Depends(get_tree)):
    return {
        "success": True,
        "data": {
            "id": entry_id,
            "calculated_score": _present(tree.calculated_score(entry_id)),
            "weighted_score": _present(tree.weighted_score(entry_id)),
        },
        "message": "계산 점수 조회 성공",
    }


# ✅ [UPDATE] 이름/가중치 수정
@router.put("/{entry_id}", response_model=SuccessEnvelope[GradeEntry])
def update_entry(entry_id: int, updated: GradeEntryUpdate, tree: GradeTree = Depends(get_tree)):
    node = tree.update_node(
        entry_id, name=updated.name, weight=updated.weight,
        notes=updated.notes, entry_type=updated.entry_type,
    )
    return {"success": True, "data": node.to_dict(), "message": "성적 항목이 수정되었습니다"}


# ✅ [UPDATE] 리프 점수 입력 (?score= 또는 JSON body)
@router.patch("/{entry_id}/score", response_model=SuccessEnvelope[GradeEntry])
def update_score(entry_id: int, score: Optional[float] = Query(None),
                 body: Optional[ScoreUpdate] = Body(None), tree: GradeTree = Depends(get_tree)):
    if body is not None:
        score = body.score
    if score is None:
        raise ValidationError("Score is required")

    recorded_by = body.recorded_by if body is not None else None
    node = tree.set_leaf_score(entry_id, score, recorded_by=recorded_by)
    return {"success": True, "data": node.to_dict(), "message": "점수가 저장되었습니다"}


# ✅ [DELETE] 항목 삭제 (하위 트리 포함)
@router.delete("/{entry_id}")
def delete_entry(entry_id: int, tree: GradeTree = Depends(get_tree)):
    removed = tree.delete_node(entry_id)
    return {
        "success": True,
        "data": {"grade_entry_id": entry_id, "removed_ids": removed},
        "message": "성적 항목이 삭제되었습니다",
    }
