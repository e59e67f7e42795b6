import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from app.core.constants import EnrollmentStatusEnum, QuestionTypeEnum
from app.core.exceptions import InvalidStateTransition, NotFound
from app.crud.attempt import attempt as crud_attempt
from app.crud.enrollment import enrollment as crud_enrollment
from app.models.enrollment import Enrollment
from app.models.question import Question
from app.schemas.attempt import AnswerIn
from app.schemas.certificate import Certificate
from app.schemas.enrollment import Enrollment as EnrollmentSchema, SubmissionResult
from app.schemas.user import UserContext
from app.services.certificate import certificate_service
from app.services.exam_session import exam_session_service
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


def score_percentage(earned_points: int, total_points: int) -> int:
    """100 * earned / total, rounded half up; 0 for an exam without points."""
    if total_points <= 0:
        return 0
    ratio = Decimal(100 * earned_points) / Decimal(total_points)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_answer_correct(question: Question, selected_option_id: Optional[int], text_answer: Optional[str]) -> bool:
    if question.question_type == QuestionTypeEnum.SHORT_ANSWER:
        # Short answers are not compared against a key; any submitted text counts.
        return text_answer is not None
    if selected_option_id is None:
        return False
    return any(o.id == selected_option_id and o.is_correct for o in question.options)


@dataclass
class GradeReport:
    earned_points: int = 0
    total_points: int = 0
    correct: Dict[int, bool] = field(default_factory=dict)

    @property
    def score(self) -> int:
        return score_percentage(self.earned_points, self.total_points)


class GradingService:

    def grade(self, questions: List[Question], answers: Dict[int, AnswerIn]) -> GradeReport:
        """Pure scoring: every question counts toward the total, unanswered ones earn nothing."""
        report = GradeReport()
        for question in questions:
            report.total_points += question.points
            answer = answers.get(question.id)
            if answer is None:
                continue
            correct = is_answer_correct(question, answer.selected_option_id, answer.text_answer)
            report.correct[question.id] = correct
            if correct:
                report.earned_points += question.points
        return report

    def _collect_answers(self, db: Session, enrollment: Enrollment, submitted: List[AnswerIn]) -> Dict[int, AnswerIn]:
        answers = {
            a.question_id: AnswerIn(
                question_id=a.question_id,
                selected_option_id=a.selected_option_id,
                text_answer=a.text_answer,
            )
            for a in crud_attempt.get_all_by_enrollment(db, enrollment.id)
            if (a.selected_option_id is None) != (a.text_answer is None)
        }
        for answer in submitted:
            question = exam_session_service.get_question_for_enrollment(enrollment, answer.question_id)
            exam_session_service.validate_answer(question, answer)
            answers[answer.question_id] = answer
        return answers

    def submit(self, db: Session, enrollment_id: int, answers: List[AnswerIn],
               current_user_context: Optional[UserContext] = None) -> SubmissionResult:
        """Grade a started enrollment and move it to PASSED or FAILED.

        ``current_user_context`` is None for system submissions (the expiry
        sweep). Answers sent after the deadline and grace period are dropped
        and only the saved attempts are graded. The status change is a
        compare-and-set on STARTED, so a duplicate submit loses the race and
        raises without grading twice.
        """
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise NotFound("Enrollment not found.")
        if current_user_context is not None:
            permission_helper.require_enrollment_owner(current_user_context, enrollment)
        if enrollment.status != EnrollmentStatusEnum.STARTED:
            raise InvalidStateTransition("Cannot submit an exam that is not in progress.")

        exam = enrollment.exam
        questions = list(exam.questions)
        if answers and exam_session_service.is_past_grace(enrollment):
            # past the cutoff only the answers saved in time are graded
            logger.warning(f"Ignored {len(answers)} late answers submitted for enrollment {enrollment.id}")
            answers = []
        collected = self._collect_answers(db, enrollment, answers)
        report = self.grade(questions, collected)

        for question_id, correct in report.correct.items():
            answer = collected[question_id]
            crud_attempt.upsert(
                db,
                enrollment_id=enrollment.id,
                question_id=question_id,
                selected_option_id=answer.selected_option_id,
                text_answer=answer.text_answer,
                is_correct=correct,
            )

        score = report.score
        passed = score >= exam.passing_score
        target = EnrollmentStatusEnum.PASSED if passed else EnrollmentStatusEnum.FAILED

        moved = crud_enrollment.transition(
            db,
            enrollment_id=enrollment.id,
            from_status=EnrollmentStatusEnum.STARTED,
            to_status=target,
            completed_at=datetime.utcnow(),
            score=score,
        )
        if not moved:
            raise InvalidStateTransition("This exam has already been submitted.")

        certificate = None
        if passed:
            certificate = certificate_service.issue(
                db,
                enrollment_id=enrollment.id,
                student_id=enrollment.student_id,
                exam_id=exam.id,
                academy_id=exam.academy_id,
            )
            crud_enrollment.conditional_update(
                db,
                id=enrollment.id,
                guards=[Enrollment.certificate_id.is_(None)],
                values={Enrollment.certificate_id: certificate.certificate_number},
            )

        enrollment = crud_enrollment.get(db, id=enrollment.id)
        logger.info(
            f"Enrollment {enrollment.id} graded: {report.earned_points}/{report.total_points} "
            f"points, score {score}, {target.value}"
        )

        return SubmissionResult(
            enrollment=EnrollmentSchema.model_validate(enrollment),
            score=score,
            passed=passed,
            earned_points=report.earned_points,
            total_points=report.total_points,
            certificate=Certificate.model_validate(certificate) if certificate else None,
        )


grading_service = GradingService()
