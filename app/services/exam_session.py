import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import EnrollmentStatusEnum, QuestionTypeEnum
from app.core.exceptions import InvalidStateTransition, NotFound, ValidationError
from app.crud.attempt import attempt as crud_attempt
from app.crud.enrollment import enrollment as crud_enrollment
from app.models.attempt import Attempt
from app.models.enrollment import Enrollment
from app.models.question import Question
from app.schemas.attempt import AnswerIn
from app.schemas.enrollment import SessionStatus
from app.schemas.user import UserContext
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class ExamSessionService:
    """Server-side clock and answer store for a running exam.

    The deadline is fixed when the enrollment starts. Clients may count
    down locally but remaining time is always recomputed here.
    """

    def deadline(self, enrollment: Enrollment) -> Optional[datetime]:
        return enrollment.deadline

    def remaining_seconds(self, enrollment: Enrollment, now: Optional[datetime] = None) -> int:
        deadline = self.deadline(enrollment)
        if deadline is None:
            return enrollment.exam.duration_minutes * 60
        now = now or datetime.utcnow()
        return max(0, math.ceil((deadline - now).total_seconds()))

    def is_expired(self, enrollment: Enrollment, now: Optional[datetime] = None) -> bool:
        deadline = self.deadline(enrollment)
        return deadline is not None and (now or datetime.utcnow()) >= deadline

    def is_past_grace(self, enrollment: Enrollment, now: Optional[datetime] = None) -> bool:
        deadline = self.deadline(enrollment)
        if deadline is None:
            return False
        cutoff = deadline + timedelta(seconds=settings.EXAM_SUBMISSION_GRACE_SECONDS)
        return (now or datetime.utcnow()) > cutoff

    def validate_answer(self, question: Question, answer: AnswerIn):
        if question.question_type == QuestionTypeEnum.SHORT_ANSWER:
            if answer.text_answer is None:
                raise ValidationError(f"Question {question.id} expects a text answer.")
            return
        if answer.selected_option_id is None:
            raise ValidationError(f"Question {question.id} expects a selected option.")
        if answer.selected_option_id not in {o.id for o in question.options}:
            raise ValidationError(f"Option {answer.selected_option_id} does not belong to question {question.id}.")

    def get_question_for_enrollment(self, enrollment: Enrollment, question_id: int) -> Question:
        for question in enrollment.exam.questions:
            if question.id == question_id:
                return question
        raise ValidationError("Question does not belong to this exam.")

    def _get_owned_enrollment(self, db: Session, enrollment_id: int, current_user_context: UserContext) -> Enrollment:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise NotFound("Enrollment not found.")
        permission_helper.require_enrollment_owner(current_user_context, enrollment)
        return enrollment

    def session_status(self, db: Session, enrollment_id: int, current_user_context: UserContext) -> SessionStatus:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise NotFound("Enrollment not found.")
        permission_helper.require_enrollment_view_permission(current_user_context, enrollment)

        now = datetime.utcnow()
        running = enrollment.status == EnrollmentStatusEnum.STARTED
        return SessionStatus(
            enrollment_id=enrollment.id,
            status=enrollment.status,
            started_at=enrollment.started_at,
            deadline=self.deadline(enrollment),
            remaining_seconds=self.remaining_seconds(enrollment, now) if running else 0,
            expired=self.is_expired(enrollment, now) if running else enrollment.status.is_terminal,
            answered_question_ids=[a.question_id for a in crud_attempt.get_all_by_enrollment(db, enrollment.id)],
        )

    def record_answer(self, db: Session, enrollment_id: int, answer_in: AnswerIn,
                      current_user_context: UserContext) -> Attempt:
        enrollment = self._get_owned_enrollment(db, enrollment_id, current_user_context)

        if enrollment.status != EnrollmentStatusEnum.STARTED:
            raise InvalidStateTransition("Answers can only be recorded while the exam is in progress.")
        if self.is_past_grace(enrollment):
            logger.warning(f"Rejected late answer for enrollment {enrollment.id}")
            raise InvalidStateTransition("Exam time has expired.")

        question = self.get_question_for_enrollment(enrollment, answer_in.question_id)
        self.validate_answer(question, answer_in)

        return crud_attempt.upsert(
            db,
            enrollment_id=enrollment.id,
            question_id=question.id,
            selected_option_id=answer_in.selected_option_id,
            text_answer=answer_in.text_answer,
        )


exam_session_service = ExamSessionService()
