# tests/conftest.py

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base, enable_sqlite_foreign_keys, get_db
from main import app
from models.enrollments import Enrollment as EnrollmentModel
from models.grade_entries import GradeEntry as GradeEntryModel  # noqa: F401  테이블 등록용
from services.grade_nodes import GradeForest, GradeNode
from services.grade_tree import GradeTree


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def enrollment(db):
    record = EnrollmentModel(
        student_id=1, course_code="CS101", course_name="Intro to Programming",
        credits=3, status="IN_PROGRESS",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def tree(db):
    return GradeTree(db)


@pytest.fixture
def forest():
    return GradeForest(enrollment_id=1)


def add_node(forest, node_id, name, weight, parent_id=None, score=None):
    """arena에 직접 노드를 붙이는 테스트 헬퍼 (DB 없이)"""
    node = GradeNode(id=node_id, enrollment_id=forest.enrollment_id, name=name, weight=weight, parent_id=parent_id)
    forest.attach(node)
    if score is not None:
        node.body.score = score
    return node
