from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import ExamPurchaseStatusEnum

class ExamPurchaseCreate(BaseModel):
    exam_id: int
    quantity: int = 1
    academy_id: Optional[int] = None  # super admins purchasing on behalf of an academy
    payment_id: Optional[str] = None

class ExamPurchase(BaseModel):
    id: int
    academy_id: int
    exam_id: int
    quantity: int
    used_quantity: int
    remaining_quantity: int
    total_price: float
    status: ExamPurchaseStatusEnum
    payment_id: Optional[str] = None
    expiry_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CanAssign(BaseModel):
    can_assign: bool
    remaining_quantity: int
    purchase: Optional[ExamPurchase] = None

class IncrementUsedRequest(BaseModel):
    purchase_id: int

class IncrementUsedResult(BaseModel):
    success: bool
    purchase: ExamPurchase

class PaymentConfirmation(BaseModel):
    """Payment processor event payload that extends an academy's licenses."""
    exam_id: int
    academy_id: int
    quantity: int
    payment_id: str
