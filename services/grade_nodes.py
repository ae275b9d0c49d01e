"""
services/grade_nodes.py

수강(enrollment) 하나의 성적 항목 트리를 메모리에 올려두는 arena 구조.
- 노드는 id → GradeNode 딕셔너리로 보관하고, 부모/자식 관계는 id 목록으로만 표현한다.
- 리프/내부 노드 구분은 body 타입(Leaf / Internal)으로 표현한다.
  내부 노드는 자체 점수 필드를 갖지 않으므로 "자식이 있는데 직접 입력 점수도 있는" 상태가 만들어지지 않는다.
- I/O 없음. DB 저장은 services/grade_tree.py 가 담당.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Union

from services.exceptions import NotFoundError, ValidationError


@dataclass
class Leaf:
    score: Optional[float] = None            # 직접 입력한 점수 (미입력이면 None)


@dataclass
class Internal:
    children: List[int] = field(default_factory=list)   # 자식 id (입력 순서 유지)
    calculated_score: Optional[float] = None            # 자식 가중합 (재계산 결과)


NodeBody = Union[Leaf, Internal]


@dataclass
class GradeNode:
    id: int
    enrollment_id: int
    name: str
    weight: float
    parent_id: Optional[int] = None
    entry_type: str = "COMPONENT"
    body: NodeBody = field(default_factory=Leaf)
    position: int = 0
    recorded_by: Optional[str] = None
    recorded_at: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_leaf(self) -> bool:
        return isinstance(self.body, Leaf)

    @property
    def score(self) -> Optional[float]:
        return self.body.score if isinstance(self.body, Leaf) else None

    @property
    def calculated_score(self) -> Optional[float]:
        return self.body.calculated_score if isinstance(self.body, Internal) else None

    @property
    def children(self) -> List[int]:
        return list(self.body.children) if isinstance(self.body, Internal) else []

    @property
    def current_value(self) -> Optional[float]:
        """리프면 입력 점수, 내부 노드면 저장된 계산 점수"""
        return self.score if self.is_leaf else self.calculated_score

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "weight": self.weight,
            "score": self.score,
            "calculated_score": self.calculated_score,
            "entry_type": self.entry_type,
            "is_leaf": self.is_leaf,
            "recorded_by": self.recorded_by,
            "recorded_at": self.recorded_at,
            "notes": self.notes,
        }


class GradeForest:
    """한 수강의 루트 항목들(여러 개 가능)과 그 하위 트리 전체"""

    def __init__(self, enrollment_id: int):
        self.enrollment_id = enrollment_id
        self.nodes: Dict[int, GradeNode] = {}
        self.roots: List[int] = []

    # ==========================================================
    # [구성] DB row → arena
    # ==========================================================
    @classmethod
    def from_rows(cls, enrollment_id: int, rows: Iterable) -> "GradeForest":
        forest = cls(enrollment_id)
        ordered = sorted(rows, key=lambda r: (r.position or 0, r.id))
        stored_calculated = {}

        for row in ordered:
            forest.nodes[row.id] = GradeNode(
                id=row.id,
                enrollment_id=row.enrollment_id,
                name=row.name,
                weight=row.weight,
                parent_id=row.parent_id,
                entry_type=row.entry_type or "COMPONENT",
                body=Leaf(row.score),
                position=row.position or 0,
                recorded_by=row.recorded_by,
                recorded_at=row.recorded_at,
                notes=row.notes,
            )
            stored_calculated[row.id] = row.calculated_score

        for row in ordered:
            node = forest.nodes[row.id]
            if node.parent_id is None:
                forest.roots.append(node.id)
                continue
            parent = forest.nodes.get(node.parent_id)
            if parent is None:
                raise ValidationError(
                    f"Grade entry {node.id} references missing parent {node.parent_id}",
                    details={"id": node.id, "parent_id": node.parent_id},
                )
            if isinstance(parent.body, Leaf):
                # 자식이 있는 row의 score 컬럼은 무시
                parent.body = Internal(calculated_score=stored_calculated[parent.id])
            parent.body.children.append(node.id)

        return forest

    # ==========================================================
    # [조회]
    # ==========================================================
    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.nodes

    def get(self, node_id: int) -> GradeNode:
        node = self.nodes.get(node_id)
        if node is None:
            raise NotFoundError("GradeEntry", node_id)
        return node

    def root_nodes(self) -> List[GradeNode]:
        return [self.nodes[i] for i in self.roots]

    def children_of(self, node_id: int) -> List[GradeNode]:
        return [self.nodes[i] for i in self.get(node_id).children]

    def siblings(self, parent_id: Optional[int] = None) -> List[GradeNode]:
        """parent_id 아래의 자식들 (None이면 루트 항목들)"""
        if parent_id is None:
            return self.root_nodes()
        return self.children_of(parent_id)

    def ancestors(self, node_id: int) -> List[GradeNode]:
        """가까운 부모부터 루트까지"""
        result = []
        parent_id = self.get(node_id).parent_id
        while parent_id is not None:
            parent = self.get(parent_id)
            result.append(parent)
            parent_id = parent.parent_id
        return result

    def subtree_ids(self, node_id: int) -> List[int]:
        """후위 순회 순서 (자식 먼저, 자기 자신 마지막)"""
        result = []
        stack = [(node_id, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                result.append(current)
                continue
            stack.append((current, True))
            for child_id in reversed(self.get(current).children):
                stack.append((child_id, False))
        return result

    def walk(self) -> Iterator[GradeNode]:
        """전위 순회 (화면 표시 순서)"""
        stack = list(reversed(self.roots))
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> List[GradeNode]:
        return [n for n in self.walk() if n.is_leaf]

    def next_position(self, parent_id: Optional[int] = None) -> int:
        siblings = self.siblings(parent_id)
        return max((n.position for n in siblings), default=-1) + 1

    # ==========================================================
    # [구조 변경] 부착 / 분리
    # ==========================================================
    def attach(self, node: GradeNode) -> None:
        """새 노드를 부모(또는 루트 목록) 끝에 붙인다. 리프 부모는 내부 노드로 전환되며 기존 점수는 버려진다."""
        if node.parent_id is None:
            self.roots.append(node.id)
        else:
            parent = self.get(node.parent_id)
            if isinstance(parent.body, Leaf):
                parent.body = Internal()
            parent.body.children.append(node.id)
        self.nodes[node.id] = node

    def detach(self, node_id: int) -> List[int]:
        """하위 트리 전체 제거. 부모의 마지막 자식이었다면 부모는 점수 없는 리프로 되돌아간다."""
        node = self.get(node_id)
        removed = self.subtree_ids(node_id)

        if node.parent_id is None:
            self.roots.remove(node_id)
        else:
            parent = self.get(node.parent_id)
            parent.body.children.remove(node_id)
            if not parent.body.children:
                parent.body = Leaf(None)

        for removed_id in removed:
            del self.nodes[removed_id]
        return removed

    # ==========================================================
    # [직렬화] 중첩 children 구조 (계층 조회 응답)
    # ==========================================================
    def node_payload(self, node_id: int) -> dict:
        node = self.get(node_id)
        data = node.to_dict()
        data["children"] = [self.node_payload(child_id) for child_id in node.children]
        return data

    def to_payload(self) -> List[dict]:
        return [self.node_payload(root_id) for root_id in self.roots]
