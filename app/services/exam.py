import logging
from typing import List
from sqlalchemy.orm import Session

from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.crud.enrollment import enrollment as crud_enrollment
from app.crud.certificate import certificate_template as crud_certificate_template
from app.models.exam import Exam
from app.models.question import Question
from app.schemas.exam import ExamCreate, ExamUpdate
from app.schemas.question import QuestionCreate
from app.schemas.user import UserContext
from app.utils.permission import PermissionHelper as permission_helper
from app.core.constants import (
    ExamStatusEnum,
    EnrollmentStatusEnum,
    QuestionTypeEnum,
    MIN_MULTIPLE_CHOICE_OPTIONS,
    TRUE_FALSE_OPTION_COUNT,
)
from app.core.exceptions import Forbidden, NotFound, InvalidStateTransition, ValidationError

logger = logging.getLogger(__name__)


class ExamService:

    def _get_exam_or_404(self, db: Session, exam_id: int) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")
        return exam

    def _require_editable(self, current_user_context: UserContext, exam: Exam):
        permission_helper.require_exam_management_permission(current_user_context, exam)
        if exam.status != ExamStatusEnum.DRAFT and not permission_helper.is_super_admin(current_user_context):
            raise InvalidStateTransition("Published exams can only be changed by an administrator.")

    def _validate_template(self, db: Session, template_id):
        if template_id is not None and not crud_certificate_template.get(db, id=template_id):
            raise NotFound("Certificate template not found.")

    def validate_question(self, question_in: QuestionCreate):
        """Answer-key rules per question type."""
        options = question_in.options
        correct = sum(1 for o in options if o.is_correct)

        if question_in.question_type == QuestionTypeEnum.MULTIPLE_CHOICE:
            if len(options) < MIN_MULTIPLE_CHOICE_OPTIONS:
                raise ValidationError("Multiple choice questions need at least 2 options.")
            if correct < 1:
                raise ValidationError("Multiple choice questions need at least one correct option.")
        elif question_in.question_type == QuestionTypeEnum.TRUE_FALSE:
            if len(options) != TRUE_FALSE_OPTION_COUNT:
                raise ValidationError("True/false questions must have exactly 2 options.")
            if correct != 1:
                raise ValidationError("True/false questions must have exactly one correct option.")
        elif options:
            raise ValidationError("Short answer questions cannot have options.")

    def create_exam(self, db: Session, exam_in: ExamCreate, current_user_context: UserContext) -> Exam:
        if permission_helper.is_super_admin(current_user_context):
            if exam_in.academy_id is None:
                raise ValidationError("academy_id is required when an administrator creates an exam.")
            academy_id = exam_in.academy_id
        elif permission_helper.is_academy(current_user_context):
            academy_id = current_user_context.academy_id
        else:
            raise Forbidden("Only academies and administrators can create exams.")

        self._validate_template(db, exam_in.certificate_template_id)

        data = exam_in.model_dump(exclude={"academy_id"})
        data.update(academy_id=academy_id, status=ExamStatusEnum.DRAFT)
        exam = crud_exam.create(db, obj_in=data)
        logger.info(f"Exam {exam.id} created as draft for academy {academy_id}")
        return exam

    def update_exam(self, db: Session, exam_id: int, exam_in: ExamUpdate, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        self._require_editable(current_user_context, exam)

        if exam_in.status is not None and exam_in.status != exam.status:
            if not permission_helper.is_super_admin(current_user_context):
                raise Forbidden("Use the publish action to change an exam's status.")
            if exam_in.status == ExamStatusEnum.DRAFT:
                raise InvalidStateTransition("A published exam cannot return to draft.")

        if "certificate_template_id" in exam_in.model_fields_set:
            self._validate_template(db, exam_in.certificate_template_id)

        return crud_exam.update(db, db_obj=exam, obj_in=exam_in)

    def publish_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management_permission(current_user_context, exam)

        if exam.status != ExamStatusEnum.DRAFT:
            raise InvalidStateTransition("Only draft exams can be published.")
        if not exam.questions:
            raise ValidationError("An exam needs at least one question before it can be published.")

        exam = crud_exam.update(db, db_obj=exam, obj_in={"status": ExamStatusEnum.PUBLISHED})
        logger.info(f"Exam {exam.id} published")
        return exam

    def get_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        if permission_helper.can_manage_exam(current_user_context, exam) or exam.is_published:
            return exam
        raise Forbidden("You do not have permission to view this exam.")

    def get_all_exams(self, db: Session, current_user_context: UserContext, skip: int = 0, limit: int = 100) -> List[Exam]:
        if permission_helper.is_super_admin(current_user_context):
            return crud_exam.get_multi(db, skip=skip, limit=limit)
        if permission_helper.is_academy(current_user_context):
            return crud_exam.get_visible_to_academy(
                db, academy_id=current_user_context.academy_id, skip=skip, limit=limit
            )
        return crud_exam.get_published(db, skip=skip, limit=limit)

    def add_question(self, db: Session, exam_id: int, question_in: QuestionCreate,
                     current_user_context: UserContext) -> Question:
        exam = self._get_exam_or_404(db, exam_id)
        self._require_editable(current_user_context, exam)
        self.validate_question(question_in)

        question = crud_question.create_with_options(
            db,
            exam_id=exam.id,
            text=question_in.text,
            question_type=question_in.question_type,
            points=question_in.points,
            options=[o.model_dump() for o in question_in.options],
        )
        logger.info(f"Question {question.id} added to exam {exam.id}")
        return question

    def get_exam_questions(self, db: Session, exam_id: int, current_user_context: UserContext):
        """Returns (questions, include_answer_key)."""
        exam = self._get_exam_or_404(db, exam_id)

        if permission_helper.can_manage_exam(current_user_context, exam):
            return crud_question.get_by_exam(db, exam_id=exam.id), True

        if permission_helper.is_student(current_user_context):
            enrollment = crud_enrollment.get_by_student_and_exam(
                db, student_id=current_user_context.user.id, exam_id=exam.id
            )
            if enrollment and enrollment.status != EnrollmentStatusEnum.PURCHASED:
                return crud_question.get_by_exam(db, exam_id=exam.id), False
            raise Forbidden("Start the exam to view its questions.")

        raise Forbidden("You do not have permission to view these questions.")


exam_service = ExamService()
