from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from app.schemas.response import APIResponse
from app.schemas.attempt import AnswerIn, Attempt, ExamSubmission
from app.schemas.enrollment import Enrollment, EnrollmentCreate, SessionStatus, SubmissionResult
from app.schemas.user import UserContext
from app.services.enrollment import enrollment_service
from app.services.exam_session import exam_session_service
from app.services.grading import grading_service
from app.utils import deps

router = APIRouter()

@router.post("/", response_model=APIResponse[Enrollment], status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_in: EnrollmentCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = enrollment_service.create_enrollment(db, enrollment_in=enrollment_in, current_user_context=context)
    return APIResponse(message="Enrollment created successfully", data=Enrollment.model_validate(enrollment))


@router.get("/", response_model=APIResponse[List[Enrollment]])
async def get_enrollments(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    exam_id: Optional[int] = Query(None)
):
    enrollments = enrollment_service.get_enrollments(db, current_user_context=context, exam_id=exam_id)
    return APIResponse(message="Enrollments retrieved successfully", data=[Enrollment.model_validate(e) for e in enrollments])


@router.get("/{enrollment_id}", response_model=APIResponse[Enrollment])
async def get_enrollment(
    *,
    db: Session = Depends(deps.get_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = enrollment_service.get_enrollment(db, enrollment_id=enrollment_id, current_user_context=context)
    return APIResponse(message="Enrollment retrieved successfully", data=Enrollment.model_validate(enrollment))


@router.put("/{enrollment_id}/start", response_model=APIResponse[Enrollment])
async def start_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.require_role(RoleEnum.STUDENT))
):
    enrollment = enrollment_service.start(db, enrollment_id=enrollment_id, acting_student_id=context.user.id)
    return APIResponse(message="Exam started successfully", data=Enrollment.model_validate(enrollment))


@router.get("/{enrollment_id}/session", response_model=APIResponse[SessionStatus])
async def get_session_status(
    *,
    db: Session = Depends(deps.get_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    session_status = exam_session_service.session_status(db, enrollment_id=enrollment_id, current_user_context=context)
    return APIResponse(message="Session status retrieved successfully", data=session_status)


@router.put("/{enrollment_id}/answers", response_model=APIResponse[Attempt])
async def record_answer(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_id: int,
    answer_in: AnswerIn,
    context: UserContext = Depends(deps.require_role(RoleEnum.STUDENT))
):
    attempt = exam_session_service.record_answer(
        db, enrollment_id=enrollment_id, answer_in=answer_in, current_user_context=context
    )
    return APIResponse(message="Answer saved successfully", data=Attempt.model_validate(attempt))


@router.post("/{enrollment_id}/submit", response_model=APIResponse[SubmissionResult])
async def submit_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_id: int,
    submission: ExamSubmission,
    context: UserContext = Depends(deps.require_role(RoleEnum.STUDENT))
):
    result = grading_service.submit(
        db, enrollment_id=enrollment_id, answers=submission.answers, current_user_context=context
    )
    return APIResponse(message="Exam submitted successfully", data=result)


@router.delete("/{enrollment_id}", response_model=APIResponse[Enrollment])
async def remove_enrollment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = enrollment_service.remove(db, enrollment_id=enrollment_id, current_user_context=context)
    return APIResponse(message="Enrollment removed successfully", data=Enrollment.model_validate(enrollment))
