import sys
import os
import tempfile
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="exam-portal-logs-"))

import uuid
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.database import Base
from app.core.constants import AcademyStatusEnum, ExamStatusEnum, RoleEnum
from app.core.security import create_access_token
from tests.helpers.builders import mc_question
from tests.helpers.database import enable_savepoints
from app.crud.academy import academy as crud_academy
from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.crud.user import user as crud_user
import app.models.academy  # noqa: F401
import app.models.attempt  # noqa: F401
import app.models.certificate  # noqa: F401
import app.models.certificate_template  # noqa: F401
import app.models.enrollment  # noqa: F401
import app.models.exam  # noqa: F401
import app.models.exam_purchase  # noqa: F401
import app.models.option  # noqa: F401
import app.models.question  # noqa: F401
import app.models.user  # noqa: F401
from app.schemas.user import UserContext
from app.utils import deps as deps_utils
import main


@pytest.fixture(scope="function")
def database_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_savepoints(engine)

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def user_factory(db_session):
    def _user_factory(role: RoleEnum = RoleEnum.STUDENT, username: str = None):
        username = username or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}"
        return crud_user.create(db_session, obj_in={
            "username": username,
            "email": f"{username}@test.com",
            "name": username.replace("-", " ").title(),
            "role": role,
        })
    return _user_factory


@pytest.fixture
def academy_factory(db_session, user_factory):
    def _academy_factory(name: str = None):
        owner = user_factory(RoleEnum.ACADEMY)
        return crud_academy.create(db_session, obj_in={
            "user_id": owner.id,
            "name": name or f"Academy {uuid.uuid4().hex[:6]}",
            "status": AcademyStatusEnum.ACTIVE,
        })
    return _academy_factory


@pytest.fixture
def exam_factory(db_session, academy_factory):
    def _exam_factory(academy=None, questions=None, status=ExamStatusEnum.PUBLISHED,
                      duration_minutes=30, passing_score=70, price=25.0, **fields):
        academy = academy or academy_factory()
        exam = crud_exam.create(db_session, obj_in={
            "academy_id": academy.id,
            "title": f"Exam {uuid.uuid4().hex[:6]}",
            "duration_minutes": duration_minutes,
            "passing_score": passing_score,
            "price": price,
            "status": status,
            **fields,
        })
        for i, q in enumerate(questions if questions is not None else [mc_question(), mc_question()]):
            crud_question.create_with_options(
                db_session,
                exam_id=exam.id,
                text=q.get("text", f"Question number {i + 1}?"),
                question_type=q["question_type"],
                points=q["points"],
                options=q.get("options", []),
            )
        return crud_exam.get(db_session, id=exam.id)
    return _exam_factory


@pytest.fixture
def context_for():
    def _context_for(user, academy=None):
        return UserContext(user=user, role=user.role, academy=academy)
    return _context_for


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
    return _auth_headers


@pytest.fixture
def started_enrollment(db_session):
    """Self-enroll ``student`` in ``exam`` and start the clock."""
    from app.services.enrollment import enrollment_service

    def _started_enrollment(student, exam):
        enrollment = enrollment_service.enroll(db_session, student_id=student.id, exam_id=exam.id)
        return enrollment_service.start(db_session, enrollment_id=enrollment.id, acting_student_id=student.id)
    return _started_enrollment
