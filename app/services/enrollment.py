import logging
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud.exam import exam as crud_exam
from app.crud.user import user as crud_user
from app.crud.enrollment import enrollment as crud_enrollment
from app.models.enrollment import Enrollment
from app.models.exam import Exam
from app.schemas.enrollment import EnrollmentCreate
from app.schemas.user import UserContext
from app.services.exam_purchase import exam_purchase_service
from app.utils.permission import PermissionHelper as permission_helper
from app.core.constants import EnrollmentStatusEnum, RoleEnum
from app.core.exceptions import (
    AlreadyEnrolled,
    ExamNotPublished,
    Forbidden,
    InvalidStateTransition,
    NoRemainingQuantity,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


class EnrollmentService:

    def _get_enrollment_or_404(self, db: Session, enrollment_id: int) -> Enrollment:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise NotFound("Enrollment not found.")
        return enrollment

    def _get_exam_or_404(self, db: Session, exam_id: int) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")
        return exam

    def _insert(self, db: Session, student_id: int, exam_id: int, is_assigned: bool,
                assigned_by_academy_id: Optional[int]) -> Enrollment:
        if crud_enrollment.get_by_student_and_exam(db, student_id=student_id, exam_id=exam_id):
            raise AlreadyEnrolled()
        try:
            with db.begin_nested():
                return crud_enrollment.create(db, obj_in={
                    "student_id": student_id,
                    "exam_id": exam_id,
                    "status": EnrollmentStatusEnum.PURCHASED,
                    "is_assigned": is_assigned,
                    "assigned_by_academy_id": assigned_by_academy_id,
                })
        except IntegrityError:
            # the unique (student_id, exam_id) constraint caught a concurrent enroll
            raise AlreadyEnrolled()

    def enroll(self, db: Session, student_id: int, exam_id: int,
               assigned_by: Optional[UserContext] = None) -> Enrollment:
        """Create a PURCHASED enrollment.

        Self-enrollment needs a published exam. An academy assigning a
        marketplace exam it does not own spends one license in the same
        transaction; the owning academy and administrators assign freely.
        """
        exam = self._get_exam_or_404(db, exam_id)

        if assigned_by is None:
            if not exam.is_published:
                raise ExamNotPublished()
            enrollment = self._insert(db, student_id, exam_id, is_assigned=False, assigned_by_academy_id=None)
            logger.info(f"Student {student_id} enrolled in exam {exam_id}")
            return enrollment

        student = crud_user.get(db, id=student_id)
        if not student or student.role != RoleEnum.STUDENT:
            raise NotFound("Student not found.")

        if permission_helper.is_super_admin(assigned_by):
            enrollment = self._insert(db, student_id, exam_id, is_assigned=True, assigned_by_academy_id=None)
        elif permission_helper.is_academy(assigned_by):
            academy_id = assigned_by.academy_id
            if permission_helper.owns_exam(assigned_by, exam):
                enrollment = self._insert(db, student_id, exam_id, is_assigned=True,
                                          assigned_by_academy_id=academy_id)
            else:
                if not exam.is_published:
                    raise ExamNotPublished()
                check = exam_purchase_service.can_assign(db, academy_id=academy_id, exam_id=exam_id)
                if not check.can_assign:
                    logger.warning(f"Academy {academy_id} has no licenses left for exam {exam_id}")
                    raise NoRemainingQuantity()
                enrollment = self._insert(db, student_id, exam_id, is_assigned=True,
                                          assigned_by_academy_id=academy_id)
                exam_purchase_service.increment_used(db, purchase_id=check.purchase.id)
        else:
            raise Forbidden("Students cannot assign exams.")

        logger.info(f"Student {student_id} assigned to exam {exam_id} by {assigned_by.role.value} {assigned_by.user.id}")
        return enrollment

    def create_enrollment(self, db: Session, enrollment_in: EnrollmentCreate,
                          current_user_context: UserContext) -> Enrollment:
        if permission_helper.is_student(current_user_context):
            if enrollment_in.student_id not in (None, current_user_context.user.id):
                raise Forbidden("Students can only enroll themselves.")
            if enrollment_in.is_assigned:
                raise Forbidden("Students cannot assign exams.")
            return self.enroll(db, student_id=current_user_context.user.id, exam_id=enrollment_in.exam_id)

        if enrollment_in.student_id is None:
            raise ValidationError("student_id is required when assigning an exam.")
        return self.enroll(
            db,
            student_id=enrollment_in.student_id,
            exam_id=enrollment_in.exam_id,
            assigned_by=current_user_context,
        )

    def start(self, db: Session, enrollment_id: int, acting_student_id: int) -> Enrollment:
        enrollment = self._get_enrollment_or_404(db, enrollment_id)
        if enrollment.student_id != acting_student_id:
            raise Forbidden("You can only start your own exams.")
        if enrollment.status != EnrollmentStatusEnum.PURCHASED:
            raise InvalidStateTransition("Exam has already been started or completed.")

        started_at = datetime.utcnow()
        started = crud_enrollment.transition(
            db,
            enrollment_id=enrollment.id,
            from_status=EnrollmentStatusEnum.PURCHASED,
            to_status=EnrollmentStatusEnum.STARTED,
            started_at=started_at,
            deadline=started_at + timedelta(minutes=enrollment.exam.duration_minutes),
        )
        if not started:
            raise InvalidStateTransition("Exam has already been started or completed.")

        enrollment = self._get_enrollment_or_404(db, enrollment_id)
        logger.info(f"Enrollment {enrollment.id} started; deadline {enrollment.deadline.isoformat()}")
        return enrollment

    def remove(self, db: Session, enrollment_id: int, current_user_context: UserContext) -> Enrollment:
        enrollment = self._get_enrollment_or_404(db, enrollment_id)

        if permission_helper.is_student(current_user_context):
            permission_helper.require_enrollment_owner(current_user_context, enrollment)
        else:
            permission_helper.require_enrollment_view_permission(current_user_context, enrollment)

        if enrollment.status != EnrollmentStatusEnum.PURCHASED:
            raise InvalidStateTransition("Only enrollments that have not been started can be removed.")

        if not crud_enrollment.delete_if_status(db, enrollment_id=enrollment.id, status=EnrollmentStatusEnum.PURCHASED):
            raise InvalidStateTransition("Only enrollments that have not been started can be removed.")

        db.expunge(enrollment)
        logger.info(f"Enrollment {enrollment_id} removed")
        return enrollment

    def get_enrollment(self, db: Session, enrollment_id: int, current_user_context: UserContext) -> Enrollment:
        enrollment = self._get_enrollment_or_404(db, enrollment_id)
        permission_helper.require_enrollment_view_permission(current_user_context, enrollment)
        return enrollment

    def get_enrollments(self, db: Session, current_user_context: UserContext,
                        exam_id: Optional[int] = None) -> List[Enrollment]:
        if permission_helper.is_student(current_user_context):
            enrollments = crud_enrollment.get_by_student(db, student_id=current_user_context.user.id)
        elif permission_helper.is_academy(current_user_context):
            enrollments = crud_enrollment.get_for_academy(db, academy_id=current_user_context.academy_id)
        elif exam_id is not None:
            return crud_enrollment.get_by_exam(db, exam_id=exam_id)
        else:
            return crud_enrollment.get_multi(db)

        if exam_id is not None:
            enrollments = [e for e in enrollments if e.exam_id == exam_id]
        return enrollments


enrollment_service = EnrollmentService()
