from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.exam_purchase import ExamPurchase, ExamPurchasePayment


class CRUDExamPurchase(CRUDBase[ExamPurchase, dict, dict]):

    def get_by_academy(self, db: Session, *, academy_id: int) -> List[ExamPurchase]:
        return db.query(ExamPurchase).filter(ExamPurchase.academy_id == academy_id).order_by(ExamPurchase.id).all()

    def get_by_exam(self, db: Session, *, exam_id: int) -> List[ExamPurchase]:
        return db.query(ExamPurchase).filter(ExamPurchase.exam_id == exam_id).order_by(ExamPurchase.id).all()

    def get_by_academy_and_exam(self, db: Session, *, academy_id: int, exam_id: int) -> Optional[ExamPurchase]:
        return (
            db.query(ExamPurchase)
            .filter(ExamPurchase.academy_id == academy_id)
            .filter(ExamPurchase.exam_id == exam_id)
            .first()
        )

    def add_quantity(self, db: Session, *, purchase_id: int, quantity: int, amount: float,
                     payment_id: Optional[str] = None) -> bool:
        values = {
            ExamPurchase.quantity: ExamPurchase.quantity + quantity,
            ExamPurchase.total_price: ExamPurchase.total_price + amount,
        }
        if payment_id:
            values[ExamPurchase.payment_id] = payment_id
        return self.conditional_update(db, id=purchase_id, guards=[], values=values)

    def increment_used(self, db: Session, *, purchase_id: int) -> bool:
        return self.conditional_update(
            db,
            id=purchase_id,
            guards=[ExamPurchase.used_quantity < ExamPurchase.quantity],
            values={ExamPurchase.used_quantity: ExamPurchase.used_quantity + 1},
        )

    def get_payment(self, db: Session, *, payment_id: str) -> Optional[ExamPurchasePayment]:
        return db.query(ExamPurchasePayment).filter(ExamPurchasePayment.payment_id == payment_id).first()

    def record_payment(self, db: Session, *, purchase_id: int, payment_id: str, quantity: int,
                       amount: float) -> ExamPurchasePayment:
        payment = ExamPurchasePayment(purchase_id=purchase_id, payment_id=payment_id,
                                      quantity=quantity, amount=amount)
        db.add(payment)
        db.flush()
        return payment


exam_purchase = CRUDExamPurchase(ExamPurchase)
