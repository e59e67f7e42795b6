from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.attempt import Attempt

class CRUDAttempt(CRUDBase[Attempt, dict, dict]):

    def get_by_enrollment_and_question(self, db: Session, enrollment_id: int,
                                       question_id: int) -> Optional[Attempt]:
        return (
            db.query(Attempt)
            .filter(Attempt.enrollment_id == enrollment_id)
            .filter(Attempt.question_id == question_id)
            .first()
        )

    def get_all_by_enrollment(self, db: Session, enrollment_id: int) -> List[Attempt]:
        return (
            db.query(Attempt)
            .filter(Attempt.enrollment_id == enrollment_id)
            .order_by(Attempt.question_id)
            .all()
        )

    def upsert(self, db: Session, *, enrollment_id: int, question_id: int,
               selected_option_id: Optional[int], text_answer: Optional[str],
               is_correct: Optional[bool] = None) -> Attempt:
        """Last write wins per (enrollment, question)."""
        existing = self.get_by_enrollment_and_question(db, enrollment_id, question_id)
        values = {
            "selected_option_id": selected_option_id,
            "text_answer": text_answer,
            "is_correct": is_correct,
        }
        if existing:
            return self.update(db, db_obj=existing, obj_in=values)
        return self.create(db, obj_in={"enrollment_id": enrollment_id, "question_id": question_id, **values})

attempt = CRUDAttempt(Attempt)
