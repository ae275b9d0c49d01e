"""
services/grade_aggregator.py

성적 트리 가중 합산 (순수 함수, I/O 없음)
- 미입력 점수는 0으로 취급한다 (제외하거나 비율 보정하지 않음).
- 형제 가중치 합을 1로 정규화하지 않는다. 합이 1보다 작으면 그만큼 낮아지고, 1보다 크면 10점을 넘을 수 있다.
- 자식이 모두 미입력이면 결과는 None ("아직 입력 없음", 0점과 구분).
"""

import math
from typing import Iterable, List, Optional, Tuple

from services.grade_nodes import GradeForest


def weighted_sum(pairs: Iterable[Tuple[Optional[float], float]]) -> Optional[float]:
    """(점수, 가중치) 목록의 가중합. 점수가 하나도 없으면 None"""
    total = 0.0
    defined = False
    for score, weight in pairs:
        if score is None:
            continue  # 0 × weight
        total += score * weight
        defined = True
    return total if defined else None


def compute_score(forest: GradeForest, node_id: int) -> Optional[float]:
    """리프는 입력 점수 그대로, 내부 노드는 자식 점수를 후위 순회로 재귀 합산"""
    node = forest.get(node_id)
    if node.is_leaf:
        return node.score
    return weighted_sum(
        (compute_score(forest, child.id), child.weight) for child in forest.children_of(node_id)
    )


def effective_score(forest: GradeForest, node_id: int) -> float:
    """상위 합산에 실제로 기여하는 값 (미입력 = 0)"""
    score = compute_score(forest, node_id)
    return 0.0 if score is None else score


def estimate_final_grade(forest: GradeForest) -> Optional[float]:
    """루트 항목 가중합 = 예상 최종 점수. 수강의 공식 final_score에는 절대 기록하지 않는다."""
    return weighted_sum((compute_score(forest, root.id), root.weight) for root in forest.root_nodes())


def recompute_ancestors(forest: GradeForest, node_id: Optional[int]) -> List[int]:
    """
    node_id(내부 노드라면 자신 포함)부터 루트까지 calculated_score를 아래에서 위로 다시 계산한다.
    - 자식의 저장값(current_value)은 이미 최신이라는 전제 (변경 지점 아래는 손대지 않음)
    - 반환값: 저장이 필요한 노드 id 목록
    """
    if node_id is None:
        return []

    node = forest.get(node_id)
    chain = [node] + forest.ancestors(node_id)
    touched = []
    for current in chain:
        if current.is_leaf:
            continue
        current.body.calculated_score = weighted_sum(
            (child.current_value, child.weight) for child in forest.children_of(current.id)
        )
        touched.append(current.id)
    return touched


def recompute_all(forest: GradeForest) -> List[int]:
    """전체 트리를 후위 순회로 다시 계산 (가져오기 스크립트 등 일괄 적재 후 사용)"""
    touched = []
    for root_id in forest.roots:
        for node_id in forest.subtree_ids(root_id):
            node = forest.nodes[node_id]
            if node.is_leaf:
                continue
            node.body.calculated_score = weighted_sum(
                (child.current_value, child.weight) for child in forest.children_of(node_id)
            )
            touched.append(node_id)
    return touched


# ==========================================================
# [가중치] 형제 가중치 합 관련 보조 계산 (권고용, 강제하지 않음)
# ==========================================================
def weights_sum(weights: Iterable[float]) -> float:
    return math.fsum(w for w in weights if w is not None)


def remaining_weight(weights: Iterable[float]) -> float:
    """다음 형제 항목 기본 가중치 제안값 = max(0, 1 - 합)"""
    return max(0.0, 1.0 - weights_sum(weights))


def is_balanced(weights: Iterable[float], tolerance: float = 0.001) -> bool:
    return abs(weights_sum(weights) - 1.0) < tolerance
