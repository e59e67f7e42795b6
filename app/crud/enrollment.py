from datetime import datetime
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.core.constants import EnrollmentStatusEnum
from app.crud.base import CRUDBase
from app.models.enrollment import Enrollment
from app.models.exam import Exam


class CRUDEnrollment(CRUDBase[Enrollment, dict, dict]):

    def _query_with_relationships(self, db: Session):
        return db.query(Enrollment).options(
            selectinload(Enrollment.exam),
            selectinload(Enrollment.attempts),
        )

    def get(self, db: Session, id: int) -> Optional[Enrollment]:
        return self._query_with_relationships(db).filter(Enrollment.id == id).first()

    def get_by_student_and_exam(self, db: Session, student_id: int, exam_id: int) -> Optional[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.student_id == student_id)
            .filter(Enrollment.exam_id == exam_id)
            .first()
        )

    def get_by_student(self, db: Session, student_id: int, skip: int = 0, limit: int = 100) -> List[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.student_id == student_id)
            .order_by(Enrollment.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_exam(self, db: Session, exam_id: int, skip: int = 0, limit: int = 100) -> List[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.exam_id == exam_id)
            .order_by(Enrollment.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_for_academy(self, db: Session, academy_id: int, skip: int = 0, limit: int = 100) -> List[Enrollment]:
        """Enrollments in the academy's own exams plus those it assigned."""
        return (
            db.query(Enrollment)
            .join(Exam, Exam.id == Enrollment.exam_id)
            .filter(or_(Exam.academy_id == academy_id, Enrollment.assigned_by_academy_id == academy_id))
            .order_by(Enrollment.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_started(self, db: Session) -> List[Enrollment]:
        return (
            self._query_with_relationships(db)
            .filter(Enrollment.status == EnrollmentStatusEnum.STARTED)
            .order_by(Enrollment.started_at)
            .all()
        )

    def transition(self, db: Session, *, enrollment_id: int, from_status: EnrollmentStatusEnum,
                   to_status: EnrollmentStatusEnum, **values) -> bool:
        """Compare-and-set the status; False if another writer moved it first."""
        if not from_status.can_transition_to(to_status):
            return False
        return self.conditional_update(
            db,
            id=enrollment_id,
            guards=[Enrollment.status == from_status],
            values={Enrollment.status: to_status, Enrollment.updated_at: datetime.utcnow(),
                    **{getattr(Enrollment, k): v for k, v in values.items()}},
        )

    def delete_if_status(self, db: Session, *, enrollment_id: int, status: EnrollmentStatusEnum) -> bool:
        rows = (
            db.query(Enrollment)
            .filter(Enrollment.id == enrollment_id, Enrollment.status == status)
            .delete(synchronize_session=False)
        )
        db.flush()
        return rows == 1

enrollment = CRUDEnrollment(Enrollment)
