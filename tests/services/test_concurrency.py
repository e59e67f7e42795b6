"""Races between two sessions on one file-backed database.

Each session loads its view of the data before the other one writes, so
the losing side works from stale rows and only the database-side guards
can stop it.
"""
from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.constants import EnrollmentStatusEnum, RoleEnum
from app.core.database import Base
from app.core.exceptions import InvalidStateTransition, NoRemainingQuantity, ValidationError
from app.crud.academy import academy as crud_academy
from app.crud.certificate import certificate as crud_certificate
from app.crud.enrollment import enrollment as crud_enrollment
from app.crud.exam_purchase import exam_purchase as crud_exam_purchase
from app.crud.user import user as crud_user
from app.schemas.attempt import AnswerIn
from app.schemas.user import UserContext
from app.services.enrollment import enrollment_service
from app.services.exam_purchase import exam_purchase_service
from app.services.grading import grading_service
from app.utils import deps as deps_utils
from tests.helpers.builders import correct_option_id
from tests.helpers.database import enable_savepoints


@pytest.fixture(scope="function")
def database_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'exam_portal.db'}",
        connect_args={"check_same_thread": False},
    )
    enable_savepoints(engine)

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def open_session(database_engine):
    """Independent sessions, each on its own connection. Loaded rows survive commit."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine,
                                expire_on_commit=False)
    sessions = []

    def _open_session():
        db = SessionLocal()
        sessions.append(db)
        return db
    yield _open_session
    for db in sessions:
        db.rollback()
        db.close()


@contextmanager
def _request(monkeypatch, db):
    """Run a block inside ``get_transactional_db`` the way FastAPI drives it."""
    monkeypatch.setattr(deps_utils, "SessionLocal", lambda: db)
    dependency = deps_utils.get_transactional_db()
    session = next(dependency)
    try:
        yield session
    except Exception as e:
        dependency.throw(e)
    else:
        next(dependency, None)


def _finish_setup(db_session):
    db_session.commit()
    db_session.close()


def _academy_context(db, academy_id):
    academy = crud_academy.get(db, id=academy_id)
    return UserContext(user=academy.user, role=RoleEnum.ACADEMY, academy=academy)


def test_request_session_commits_or_rolls_back(monkeypatch, open_session):
    with _request(monkeypatch, open_session()) as db:
        crud_user.create(db, obj_in={"username": "kept", "email": "kept@test.com", "name": "Kept",
                                     "role": RoleEnum.STUDENT})

    with pytest.raises(ValidationError):
        with _request(monkeypatch, open_session()) as db:
            crud_user.create(db, obj_in={"username": "dropped", "email": "dropped@test.com", "name": "Dropped",
                                         "role": RoleEnum.STUDENT})
            raise ValidationError("Rejected after the write.")

    check = open_session()
    assert crud_user.get_by_username(check, username="kept") is not None
    assert crud_user.get_by_username(check, username="dropped") is None


def test_last_license_is_incremented_once(db_session, open_session, academy_factory, exam_factory):
    buyer = academy_factory()
    exam = exam_factory(price=20)
    purchase_id = exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=exam.id, quantity=1).id
    _finish_setup(db_session)

    first, second = open_session(), open_session()
    for db in (first, second):
        assert crud_exam_purchase.get(db, id=purchase_id).remaining_quantity == 1
        db.commit()

    assert crud_exam_purchase.increment_used(first, purchase_id=purchase_id) is True
    first.commit()
    assert crud_exam_purchase.increment_used(second, purchase_id=purchase_id) is False
    second.rollback()

    purchase = crud_exam_purchase.get(open_session(), id=purchase_id)
    assert purchase.used_quantity == purchase.quantity == 1


def test_stale_assignment_leaves_no_enrollment_behind(monkeypatch, db_session, open_session, user_factory,
                                                       academy_factory, exam_factory):
    buyer = academy_factory()
    exam = exam_factory(price=20)
    exam_id, academy_id = exam.id, buyer.id
    purchase_id = exam_purchase_service.purchase(db_session, academy_id=academy_id, exam_id=exam_id, quantity=1).id
    first_student, second_student = user_factory().id, user_factory().id
    _finish_setup(db_session)

    first, second = open_session(), open_session()
    contexts = {}
    for db in (first, second):
        contexts[db] = _academy_context(db, academy_id)
        assert exam_purchase_service.can_assign(db, academy_id=academy_id, exam_id=exam_id).can_assign is True
        db.commit()

    with _request(monkeypatch, first) as db:
        enrollment_service.enroll(db, student_id=first_student, exam_id=exam_id, assigned_by=contexts[first])

    with pytest.raises(NoRemainingQuantity):
        with _request(monkeypatch, second) as db:
            enrollment_service.enroll(db, student_id=second_student, exam_id=exam_id, assigned_by=contexts[second])

    check = open_session()
    purchase = crud_exam_purchase.get(check, id=purchase_id)
    assert purchase.used_quantity == purchase.quantity == 1
    assert crud_enrollment.get_by_student_and_exam(check, student_id=first_student, exam_id=exam_id) is not None
    assert crud_enrollment.get_by_student_and_exam(check, student_id=second_student, exam_id=exam_id) is None


def test_double_submit_grades_once(monkeypatch, db_session, open_session, user_factory, exam_factory,
                                   started_enrollment):
    student = user_factory()
    exam = exam_factory(passing_score=50)
    enrollment_id = started_enrollment(student, exam).id
    answers = [AnswerIn(question_id=q.id, selected_option_id=correct_option_id(q)) for q in exam.questions]
    _finish_setup(db_session)

    first, second = open_session(), open_session()
    for db in (first, second):
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        assert enrollment.status == EnrollmentStatusEnum.STARTED
        for question in enrollment.exam.questions:
            list(question.options)
        db.commit()

    with _request(monkeypatch, first) as db:
        result = grading_service.submit(db, enrollment_id=enrollment_id, answers=answers)
    assert result.passed is True

    with pytest.raises(InvalidStateTransition):
        with _request(monkeypatch, second) as db:
            grading_service.submit(db, enrollment_id=enrollment_id, answers=answers)

    check = open_session()
    enrollment = crud_enrollment.get(check, id=enrollment_id)
    assert enrollment.status == EnrollmentStatusEnum.PASSED
    assert enrollment.score == 100
    certificates = crud_certificate.get_by_student(check, student_id=enrollment.student_id)
    assert [c.certificate_number for c in certificates] == [result.certificate.certificate_number]
