"""
성적 항목 CSV → DB 마이그레이션

CSV 컬럼: enrollment_id, path, weight, score
- path는 "/"로 구분한 항목 경로 (예: "과정평가/Quiz 1")
- 중간 경로 항목이 없으면 해당 행의 weight로 먼저 만들 수 없으므로, 상위 항목 행이 먼저 나와야 한다
- 모든 변경은 GradeTree를 거치므로 calculated_score가 항상 일관되게 저장된다
- [1단계] 전체 파일 검증 후 [2단계] 저장. 저장 중 실패하면 이번 실행에서 만든 루트를 모두 삭제한다
"""

import csv
import logging
from sqlalchemy.orm import Session
from database.db import SessionLocal, init_db
from services.exceptions import ValidationError
from services.grade_tree import GradeTree, validate_name, validate_score, validate_weight

logger = logging.getLogger(__name__)

CSV_PATH = "data/grade_entries.csv"  # ✅ 파일 경로


def _number(value, label: str, line_no: int) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"line {line_no}: {label} must be a number", details={label: value})


# ==========================================================
# [1단계] 파일 전체 검증 (DB 변경 없음)
# ==========================================================
def _read_rows(csv_path: str, tree: GradeTree) -> list:
    rows = []
    seen_paths = set()
    checked_enrollments = set()

    with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for line_no, row in enumerate(reader, start=2):
            enrollment_id = int(_number(row["enrollment_id"], "enrollment_id", line_no))
            parts = [p.strip() for p in (row["path"] or "").split("/") if p.strip()]
            if not parts:
                raise ValidationError(f"line {line_no}: empty path")

            parent_path = "/".join(parts[:-1])
            path = "/".join(parts)
            if parent_path and (enrollment_id, parent_path) not in seen_paths:
                raise ValidationError(f"line {line_no}: parent '{parent_path}' must be listed first")
            if (enrollment_id, path) in seen_paths:
                raise ValidationError(f"line {line_no}: duplicate path '{path}'")

            if enrollment_id not in checked_enrollments:
                tree.load(enrollment_id)  # 수강이 없으면 NotFoundError
                checked_enrollments.add(enrollment_id)

            score = row.get("score")
            rows.append({
                "enrollment_id": enrollment_id,
                "path": path,
                "parent_path": parent_path,
                "name": validate_name(parts[-1]),
                "weight": validate_weight(_number(row["weight"], "weight", line_no)),
                "score": None if score in (None, "") else validate_score(_number(score, "score", line_no)),
            })
            seen_paths.add((enrollment_id, path))

    return rows


# ==========================================================
# [2단계] 저장 (실패 시 이번 실행에서 만든 루트 삭제)
# ==========================================================
def migrate_grade_entries(csv_path: str = CSV_PATH, db: Session = None) -> int:
    own_session = db is None
    db = db or SessionLocal()
    tree = GradeTree(db)
    ids_by_path = {}  # (enrollment_id, path) → 항목 id
    created_roots = []

    try:
        rows = _read_rows(csv_path, tree)
        try:
            for row in rows:
                if row["parent_path"]:
                    parent_id = ids_by_path[(row["enrollment_id"], row["parent_path"])]
                    node = tree.add_child(parent_id, row["name"], row["weight"])
                else:
                    node = tree.add_root(row["enrollment_id"], row["name"], row["weight"])
                    created_roots.append(node.id)
                ids_by_path[(row["enrollment_id"], row["path"])] = node.id

                if row["score"] is not None:
                    tree.set_leaf_score(node.id, row["score"])
        except Exception:
            logger.warning("grade entry import failed, removing %d imported roots", len(created_roots))
            for root_id in reversed(created_roots):
                tree.delete_node(root_id)
            raise
    finally:
        if own_session:
            db.close()

    return len(rows)


if __name__ == "__main__":
    init_db()
    imported = migrate_grade_entries()
    print(f"✅ 성적 항목 CSV → DB 마이그레이션 완료 ({imported}건)")
