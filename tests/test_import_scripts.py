# tests/test_import_scripts.py

import pytest

from models.enrollments import Enrollment as EnrollmentModel
from models.grade_entries import GradeEntry as GradeEntryModel
from scripts.import_enrollments import migrate_enrollments
from scripts.import_grade_entries import migrate_grade_entries
from services.exceptions import ValidationError
from services.grade_tree import GradeTree


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_import_enrollments_derives_grades(tmp_path, db):
    csv_path = _write(
        tmp_path / "enrollments.csv",
        "id,student_id,course_code,course_name,credits,final_score,status\n"
        "1,10,CS101,Intro,3,8.0,COMPLETED\n"
        "2,10,CS102,Data Structures,4,,\n",
    )

    assert migrate_enrollments(csv_path, db=db) == 2

    first, second = db.query(EnrollmentModel).order_by(EnrollmentModel.id).all()
    assert first.letter_grade == "B+"
    assert first.gpa_value == 3.5
    assert second.status == "IN_PROGRESS"
    assert second.final_score is None


def test_import_grade_entries_builds_consistent_tree(tmp_path, db, enrollment):
    csv_path = _write(
        tmp_path / "grade_entries.csv",
        "enrollment_id,path,weight,score\n"
        f"{enrollment.id},Process,0.4,\n"
        f"{enrollment.id},Process/Quiz1,0.5,9\n"
        f"{enrollment.id},Process/Quiz2,0.5,7\n"
        f"{enrollment.id},Final,0.6,6\n",
    )

    assert migrate_grade_entries(csv_path, db=db) == 4

    tree = GradeTree(db)
    payload = tree.hierarchy(enrollment.id)
    assert payload[0]["calculated_score"] == pytest.approx(8.0)
    assert tree.estimate_final_grade(enrollment.id) == pytest.approx(6.8)


def test_import_grade_entries_requires_parent_first(tmp_path, db, enrollment):
    csv_path = _write(
        tmp_path / "grade_entries.csv",
        "enrollment_id,path,weight,score\n"
        f"{enrollment.id},Process/Quiz1,0.5,9\n",
    )

    with pytest.raises(ValidationError):
        migrate_grade_entries(csv_path, db=db)


def _entry_count(db):
    db.expire_all()
    return db.query(GradeEntryModel).count()


def test_import_grade_entries_rejects_later_bad_row_without_writing(tmp_path, db, enrollment):
    csv_path = _write(
        tmp_path / "grade_entries.csv",
        "enrollment_id,path,weight,score\n"
        f"{enrollment.id},Process,0.4,\n"
        f"{enrollment.id},Process/Quiz1,0.5,9\n"
        f"{enrollment.id},Missing/Quiz2,0.5,7\n",
    )

    with pytest.raises(ValidationError):
        migrate_grade_entries(csv_path, db=db)

    assert _entry_count(db) == 0


def test_import_grade_entries_rejects_out_of_range_score_without_writing(tmp_path, db, enrollment):
    csv_path = _write(
        tmp_path / "grade_entries.csv",
        "enrollment_id,path,weight,score\n"
        f"{enrollment.id},Midterm,0.4,8\n"
        f"{enrollment.id},Final,0.6,11\n",
    )

    with pytest.raises(ValidationError):
        migrate_grade_entries(csv_path, db=db)

    assert _entry_count(db) == 0


def test_import_grade_entries_removes_created_roots_when_write_fails(tmp_path, db, enrollment, monkeypatch):
    existing = GradeTree(db).add_root(enrollment.id, "Attendance", 0.1)
    csv_path = _write(
        tmp_path / "grade_entries.csv",
        "enrollment_id,path,weight,score\n"
        f"{enrollment.id},Process,0.4,\n"
        f"{enrollment.id},Process/Quiz1,0.5,9\n"
        f"{enrollment.id},Final,0.5,6\n",
    )
    calls = []
    original = GradeTree.set_leaf_score

    def failing_set_leaf_score(self, node_id, score, recorded_by=None):
        calls.append(node_id)
        if len(calls) == 2:
            raise RuntimeError("database unavailable")
        return original(self, node_id, score, recorded_by=recorded_by)

    monkeypatch.setattr(GradeTree, "set_leaf_score", failing_set_leaf_score)

    with pytest.raises(RuntimeError):
        migrate_grade_entries(csv_path, db=db)

    assert _entry_count(db) == 1
    assert [n["id"] for n in GradeTree(db).hierarchy(enrollment.id)] == [existing.id]
