from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
from sqlalchemy import or_

from app.core.constants import ExamStatusEnum
from app.crud.base import CRUDBase
from app.models.exam import Exam
from app.models.question import Question
from app.schemas.exam import ExamCreate, ExamUpdate


class CRUDExam(CRUDBase[Exam, ExamCreate, ExamUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Exam).options(
            selectinload(Exam.questions).selectinload(Question.options)
        )

    def get(self, db: Session, id: int) -> Optional[Exam]:
        return self._query_with_relationships(db).filter(Exam.id == id).first()

    def get_multi(self, db: Session, skip: int = 0, limit: int = 100) -> List[Exam]:
        return db.query(Exam).order_by(Exam.id).offset(skip).limit(limit).all()

    def get_by_academy(self, db: Session, academy_id: int, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            db.query(Exam)
            .filter(Exam.academy_id == academy_id)
            .order_by(Exam.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_published(self, db: Session, academy_id: Optional[int] = None, skip: int = 0, limit: int = 100) -> List[Exam]:
        query = db.query(Exam).filter(Exam.status == ExamStatusEnum.PUBLISHED)
        if academy_id is not None:
            query = query.filter(Exam.academy_id == academy_id)
        return query.order_by(Exam.id).offset(skip).limit(limit).all()

    def get_visible_to_academy(self, db: Session, academy_id: int, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            db.query(Exam)
            .filter(or_(Exam.academy_id == academy_id, Exam.status == ExamStatusEnum.PUBLISHED))
            .order_by(Exam.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

exam = CRUDExam(Exam)
