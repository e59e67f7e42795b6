import pytest

from app.core.constants import ExamStatusEnum, QuestionTypeEnum, RoleEnum
from app.core.exceptions import Forbidden, InvalidStateTransition, ValidationError
from app.schemas.exam import ExamCreate, ExamUpdate
from app.schemas.question import OptionCreate, QuestionCreate
from app.services.exam import exam_service


def _question(question_type, options):
    return QuestionCreate(
        text="Which answer is right?",
        question_type=question_type,
        points=2,
        options=[OptionCreate(text=text, is_correct=correct) for text, correct in options],
    )


@pytest.mark.parametrize("question_type,options", [
    (QuestionTypeEnum.MULTIPLE_CHOICE, [("Only", True)]),
    (QuestionTypeEnum.MULTIPLE_CHOICE, [("A", False), ("B", False)]),
    (QuestionTypeEnum.TRUE_FALSE, [("True", True), ("False", True)]),
    (QuestionTypeEnum.TRUE_FALSE, [("True", True), ("False", False), ("Maybe", False)]),
])
def test_invalid_answer_keys_are_rejected(question_type, options):
    with pytest.raises(ValidationError):
        exam_service.validate_question(_question(question_type, options))


def test_valid_answer_keys_pass():
    exam_service.validate_question(_question(QuestionTypeEnum.MULTIPLE_CHOICE, [("A", True), ("B", True), ("C", False)]))
    exam_service.validate_question(_question(QuestionTypeEnum.TRUE_FALSE, [("True", False), ("False", True)]))
    exam_service.validate_question(_question(QuestionTypeEnum.SHORT_ANSWER, []))


def test_academy_creates_draft_and_publishes(db_session, academy_factory, context_for):
    academy = academy_factory()
    ctx = context_for(academy.user, academy)
    exam = exam_service.create_exam(
        db_session,
        ExamCreate(title="Algebra I", duration_minutes=60, passing_score=70, price=20),
        ctx,
    )
    assert exam.status == ExamStatusEnum.DRAFT
    assert exam.academy_id == academy.id

    with pytest.raises(ValidationError):
        exam_service.publish_exam(db_session, exam.id, ctx)

    exam_service.add_question(
        db_session, exam.id, _question(QuestionTypeEnum.TRUE_FALSE, [("True", True), ("False", False)]), ctx
    )
    exam = exam_service.publish_exam(db_session, exam.id, ctx)

    assert exam.status == ExamStatusEnum.PUBLISHED
    assert exam.total_points == 2


def test_published_exam_is_frozen_for_academies(db_session, academy_factory, exam_factory, context_for):
    academy = academy_factory()
    exam = exam_factory(academy=academy)
    ctx = context_for(academy.user, academy)

    with pytest.raises(InvalidStateTransition):
        exam_service.update_exam(db_session, exam.id, ExamUpdate(title="Renamed"), ctx)
    with pytest.raises(InvalidStateTransition):
        exam_service.add_question(
            db_session, exam.id, _question(QuestionTypeEnum.SHORT_ANSWER, []), ctx
        )


def test_other_academies_cannot_edit(db_session, academy_factory, exam_factory, context_for):
    exam = exam_factory(status=ExamStatusEnum.DRAFT)
    other = academy_factory()

    with pytest.raises(Forbidden):
        exam_service.update_exam(db_session, exam.id, ExamUpdate(title="Mine now"), context_for(other.user, other))


def test_students_see_questions_only_after_starting(db_session, user_factory, exam_factory,
                                                    started_enrollment, context_for):
    exam = exam_factory()
    student = user_factory(RoleEnum.STUDENT)

    with pytest.raises(Forbidden):
        exam_service.get_exam_questions(db_session, exam.id, context_for(student))

    started_enrollment(student, exam)
    questions, include_answer_key = exam_service.get_exam_questions(db_session, exam.id, context_for(student))

    assert len(questions) == 2
    assert include_answer_key is False
