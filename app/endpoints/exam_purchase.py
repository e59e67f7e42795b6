from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from app.schemas.response import APIResponse
from app.schemas.exam_purchase import (
    CanAssign,
    ExamPurchase,
    ExamPurchaseCreate,
    IncrementUsedRequest,
    IncrementUsedResult,
)
from app.schemas.user import UserContext
from app.services.exam_purchase import exam_purchase_service
from app.utils import deps

router = APIRouter()

@router.post("/", response_model=APIResponse[ExamPurchase], status_code=status.HTTP_201_CREATED)
async def purchase_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    purchase_in: ExamPurchaseCreate,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    academy_id = exam_purchase_service.resolve_academy_id(context, purchase_in.academy_id)
    purchase = exam_purchase_service.purchase(
        db,
        academy_id=academy_id,
        exam_id=purchase_in.exam_id,
        quantity=purchase_in.quantity,
        payment_id=purchase_in.payment_id,
    )
    return APIResponse(message="Exam purchased successfully", data=ExamPurchase.model_validate(purchase))


@router.get("/", response_model=APIResponse[List[ExamPurchase]])
async def get_purchases(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    exam_id: Optional[int] = Query(None)
):
    purchases = exam_purchase_service.get_purchases(db, current_user_context=context, exam_id=exam_id)
    return APIResponse(message="Exam purchases retrieved successfully", data=[ExamPurchase.model_validate(p) for p in purchases])


@router.get("/can-assign", response_model=APIResponse[CanAssign])
async def can_assign(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN)),
    exam_id: int = Query(...),
    academy_id: Optional[int] = Query(None)
):
    academy_id = exam_purchase_service.resolve_academy_id(context, academy_id)
    result = exam_purchase_service.can_assign(db, academy_id=academy_id, exam_id=exam_id)
    return APIResponse(message="Assignment availability retrieved successfully", data=result)


@router.post("/increment-used", response_model=APIResponse[IncrementUsedResult])
async def increment_used(
    *,
    db: Session = Depends(deps.get_transactional_db),
    request_in: IncrementUsedRequest,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    purchase = exam_purchase_service.increment_used_for_actor(
        db, purchase_id=request_in.purchase_id, current_user_context=context
    )
    return APIResponse(
        message="License usage recorded successfully",
        data=IncrementUsedResult(success=True, purchase=ExamPurchase.model_validate(purchase))
    )


@router.get("/{purchase_id}", response_model=APIResponse[ExamPurchase])
async def get_purchase(
    *,
    db: Session = Depends(deps.get_db),
    purchase_id: int,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    purchase = exam_purchase_service.get_purchase(db, purchase_id=purchase_id, current_user_context=context)
    return APIResponse(message="Exam purchase retrieved successfully", data=ExamPurchase.model_validate(purchase))
