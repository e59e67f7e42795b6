from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.exam import Exam
from app.models.question import Question
from app.models.option import Option

class CRUDQuestion(CRUDBase[Question, dict, dict]):
    def get(self, db: Session, id: int) -> Optional[Question]:
        return (
            db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.id == id)
            .first()
        )

    def get_by_exam(self, db: Session, *, exam_id: int) -> List[Question]:
        return (
            db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.exam_id == exam_id)
            .order_by(Question.id)
            .all()
        )

    def create_with_options(self, db: Session, *, exam_id: int, text: str, question_type, points: int,
                            options: List[dict]) -> Question:
        db_obj = Question(text=text, question_type=question_type, points=points)
        # attach through the relationship so a loaded exam.questions stays current
        db_obj.exam = db.get(Exam, exam_id)
        db_obj.options = [Option(text=o["text"], is_correct=o["is_correct"]) for o in options]
        db.add(db_obj)
        db.flush()
        db.refresh(db_obj)
        return db_obj

question = CRUDQuestion(Question)
