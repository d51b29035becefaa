import os

# point the app's own engine at a throwaway database before anything imports it
os.environ.setdefault("GRADEFLOW_DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from gradeflow.core.deps import get_db  # noqa: E402
from gradeflow.core.security import hash_password  # noqa: E402
from gradeflow.db.base import Base  # noqa: E402
from gradeflow.main import app  # noqa: E402
from gradeflow.models.assessment import Assessment, total_points_of  # noqa: E402
from gradeflow.models.course import Course  # noqa: E402
from gradeflow.models.enums import SubmissionStatus  # noqa: E402
from gradeflow.models.submission import Submission  # noqa: E402
from gradeflow.models.user import User  # noqa: E402

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "password123"
# bcrypt is slow on purpose; hash once for every seeded user
PASSWORD_HASH = hash_password(PASSWORD)

QUIZ_QUESTIONS = [
    {
        "question_text": "Pick B",
        "type": "multiple_choice",
        "options": ["A", "B", "C"],
        "correct_answer": "B",
        "points": 10,
    },
    {
        "question_text": "The sky is blue.",
        "type": "true_false",
        "options": ["true", "false"],
        "correct_answer": "true",
        "points": 10,
    },
    {
        "question_text": "Capital of France?",
        "type": "short_answer",
        "correct_answer": "Paris",
        "points": 10,
    },
    {
        "question_text": "Explain recursion.",
        "type": "essay",
        "points": 70,
    },
]


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def seed():
    """Fresh schema and a minimal dataset for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        student = User(email="student1@example.com", full_name="Student One", role="student", hashed_password=PASSWORD_HASH)
        student2 = User(email="student2@example.com", full_name="Student Two", role="student", hashed_password=PASSWORD_HASH)
        instructor = User(email="instructor1@example.com", full_name="Instructor One", role="instructor", hashed_password=PASSWORD_HASH)
        other_instructor = User(email="instructor2@example.com", full_name="Instructor Two", role="instructor", hashed_password=PASSWORD_HASH)
        admin = User(email="admin@example.com", full_name="Admin", role="admin", hashed_password=PASSWORD_HASH)
        db.add_all([student, student2, instructor, other_instructor, admin])
        db.commit()

        course = Course(title="CS5004", instructor_id=instructor.id)
        db.add(course)
        db.commit()

        now = datetime.now(timezone.utc)
        quiz = Assessment(
            course_id=course.id,
            title="Quiz 1",
            type="quiz",
            questions=QUIZ_QUESTIONS,
            total_points=total_points_of(QUIZ_QUESTIONS),
            passing_score=70,
            attempts=2,
            is_published=True,
            order=1,
            end_date=now + timedelta(days=1),
        )
        closed = Assessment(
            course_id=course.id,
            title="Closed project",
            type="project",
            questions=[{"question_text": "Build it", "type": "coding", "points": 100}],
            total_points=100,
            passing_score=70,
            is_published=True,
            order=2,
            end_date=now - timedelta(days=1),
        )
        draft_only = Assessment(
            course_id=course.id,
            title="Unpublished",
            type="assignment",
            questions=[],
            total_points=0,
            passing_score=50,
            is_published=False,
            order=3,
        )
        db.add_all([quiz, closed, draft_only])
        db.commit()

        yield SimpleNamespace(
            student_id=student.id,
            student2_id=student2.id,
            instructor_id=instructor.id,
            other_instructor_id=other_instructor.id,
            admin_id=admin.id,
            course_id=course.id,
            quiz_id=quiz.id,
            closed_id=closed.id,
            unpublished_id=draft_only.id,
        )
    finally:
        db.close()


@pytest.fixture()
def make_submission(db):
    """Insert a submission row directly, bypassing the workflow."""

    def _make(
        assessment_id,
        student_id,
        attempt_number=1,
        status=SubmissionStatus.SUBMITTED,
        submitted_at=None,
        answers=None,
        score=None,
    ):
        assessment = db.get(Assessment, assessment_id)
        if submitted_at is None and status != SubmissionStatus.DRAFT:
            submitted_at = datetime.now(timezone.utc)
        s = Submission(
            assessment_id=assessment_id,
            course_id=assessment.course_id,
            student_id=student_id,
            attempt_number=attempt_number,
            status=status,
            is_late=status == SubmissionStatus.LATE,
            submitted_at=submitted_at,
            answers=answers or [],
            attachments=[],
            score=score,
            graded_at=datetime.now(timezone.utc) if status == SubmissionStatus.GRADED else None,
        )
        db.add(s)
        db.commit()
        db.refresh(s)
        return s

    return _make


@pytest.fixture()
def client():
    """Test client that uses the test DB session via dependency override."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login(client, email: str, password: str = PASSWORD) -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def student_headers(client):
    return auth_header(login(client, "student1@example.com"))


@pytest.fixture()
def student2_headers(client):
    return auth_header(login(client, "student2@example.com"))


@pytest.fixture()
def instructor_headers(client):
    return auth_header(login(client, "instructor1@example.com"))


@pytest.fixture()
def other_instructor_headers(client):
    return auth_header(login(client, "instructor2@example.com"))
