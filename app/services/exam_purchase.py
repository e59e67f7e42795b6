import logging
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud.exam import exam as crud_exam
from app.crud.academy import academy as crud_academy
from app.crud.exam_purchase import exam_purchase as crud_exam_purchase
from app.models.exam_purchase import ExamPurchase
from app.schemas.exam_purchase import CanAssign, ExamPurchase as ExamPurchaseSchema, PaymentConfirmation
from app.schemas.user import UserContext
from app.utils.permission import PermissionHelper as permission_helper
from app.core.constants import ExamPurchaseStatusEnum
from app.core.exceptions import (
    ExamNotPurchasable,
    Forbidden,
    InvalidQuantity,
    NoRemainingQuantity,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ExamPurchaseService:
    """License bookkeeping for exams bought by academies.

    Every balance change is a single conditional UPDATE so the invariant
    ``0 <= used_quantity <= quantity`` holds under concurrent requests.
    """

    def resolve_academy_id(self, current_user_context: UserContext, academy_id: Optional[int]) -> int:
        if permission_helper.is_academy(current_user_context):
            return current_user_context.academy_id
        if permission_helper.is_super_admin(current_user_context):
            if academy_id is None:
                raise ValidationError("academy_id is required for administrators.")
            return academy_id
        raise Forbidden("Only academies can manage exam purchases.")

    def purchase(self, db: Session, academy_id: int, exam_id: int, quantity: int,
                 payment_id: Optional[str] = None) -> ExamPurchase:
        if quantity is None or quantity < 1:
            raise InvalidQuantity()

        if not crud_academy.get(db, id=academy_id):
            raise NotFound("Academy not found.")

        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")
        if not exam.is_published or not exam.price:
            raise ExamNotPurchasable()

        amount = quantity * exam.price

        existing = crud_exam_purchase.get_by_academy_and_exam(db, academy_id=academy_id, exam_id=exam_id)
        if existing is None:
            try:
                with db.begin_nested():
                    purchase = crud_exam_purchase.create(db, obj_in={
                        "academy_id": academy_id,
                        "exam_id": exam_id,
                        "quantity": quantity,
                        "used_quantity": 0,
                        "total_price": amount,
                        "status": ExamPurchaseStatusEnum.ACTIVE,
                        "payment_id": payment_id,
                    })
                logger.info(f"Academy {academy_id} purchased {quantity} licenses for exam {exam_id}")
                return purchase
            except IntegrityError:
                # A concurrent first purchase won the insert; fall through and accumulate.
                existing = crud_exam_purchase.get_by_academy_and_exam(db, academy_id=academy_id, exam_id=exam_id)
                if existing is None:
                    raise

        crud_exam_purchase.add_quantity(
            db, purchase_id=existing.id, quantity=quantity, amount=amount, payment_id=payment_id
        )
        logger.info(f"Academy {academy_id} added {quantity} licenses for exam {exam_id} (purchase {existing.id})")
        return crud_exam_purchase.get(db, id=existing.id)

    def can_assign(self, db: Session, academy_id: int, exam_id: int) -> CanAssign:
        purchase = crud_exam_purchase.get_by_academy_and_exam(db, academy_id=academy_id, exam_id=exam_id)
        if not purchase or purchase.status != ExamPurchaseStatusEnum.ACTIVE:
            return CanAssign(
                can_assign=False,
                remaining_quantity=0,
                purchase=ExamPurchaseSchema.model_validate(purchase) if purchase else None,
            )
        remaining = purchase.remaining_quantity
        return CanAssign(
            can_assign=remaining > 0,
            remaining_quantity=remaining,
            purchase=ExamPurchaseSchema.model_validate(purchase),
        )

    def increment_used(self, db: Session, purchase_id: int) -> ExamPurchase:
        purchase = crud_exam_purchase.get(db, id=purchase_id)
        if not purchase:
            raise NotFound("Exam purchase not found.")

        if not crud_exam_purchase.increment_used(db, purchase_id=purchase_id):
            logger.warning(f"Purchase {purchase_id} has no remaining licenses")
            raise NoRemainingQuantity()

        purchase = crud_exam_purchase.get(db, id=purchase_id)
        logger.info(f"Purchase {purchase_id} used {purchase.used_quantity}/{purchase.quantity}")
        return purchase

    def _get_owned_purchase(self, db: Session, purchase_id: int, current_user_context: UserContext) -> ExamPurchase:
        purchase = crud_exam_purchase.get(db, id=purchase_id)
        if not purchase:
            raise NotFound("Exam purchase not found.")
        if not permission_helper.is_super_admin(current_user_context) and purchase.academy_id != current_user_context.academy_id:
            raise Forbidden("This purchase belongs to another academy.")
        return purchase

    def get_purchase(self, db: Session, purchase_id: int, current_user_context: UserContext) -> ExamPurchase:
        return self._get_owned_purchase(db, purchase_id, current_user_context)

    def increment_used_for_actor(self, db: Session, purchase_id: int, current_user_context: UserContext) -> ExamPurchase:
        self._get_owned_purchase(db, purchase_id, current_user_context)
        return self.increment_used(db, purchase_id)

    def record_payment(self, db: Session, confirmation: PaymentConfirmation) -> ExamPurchase:
        """Apply a confirmed payment once, however often the processor redelivers it."""
        already_applied = crud_exam_purchase.get_payment(db, payment_id=confirmation.payment_id)
        if already_applied:
            logger.info(f"Payment {confirmation.payment_id} already applied; ignoring redelivery")
            return crud_exam_purchase.get(db, id=already_applied.purchase_id)

        purchase = self.purchase(
            db,
            academy_id=confirmation.academy_id,
            exam_id=confirmation.exam_id,
            quantity=confirmation.quantity,
            payment_id=confirmation.payment_id,
        )
        crud_exam_purchase.record_payment(
            db,
            purchase_id=purchase.id,
            payment_id=confirmation.payment_id,
            quantity=confirmation.quantity,
            amount=confirmation.quantity * purchase.exam.price,
        )
        return purchase

    def get_purchases(self, db: Session, current_user_context: UserContext,
                      exam_id: Optional[int] = None) -> List[ExamPurchase]:
        if permission_helper.is_super_admin(current_user_context):
            if exam_id is not None:
                return crud_exam_purchase.get_by_exam(db, exam_id=exam_id)
            return crud_exam_purchase.get_multi(db)
        if permission_helper.is_academy(current_user_context):
            purchases = crud_exam_purchase.get_by_academy(db, academy_id=current_user_context.academy_id)
            if exam_id is not None:
                purchases = [p for p in purchases if p.exam_id == exam_id]
            return purchases
        raise Forbidden("Only academies can view exam purchases.")


exam_purchase_service = ExamPurchaseService()
