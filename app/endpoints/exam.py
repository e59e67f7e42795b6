from typing import List, Union
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from app.schemas.response import APIResponse
from app.schemas.exam import Exam, ExamCreate, ExamUpdate
from app.schemas.question import Question, QuestionCreate, StudentQuestion
from app.schemas.user import UserContext
from app.services.exam import exam_service
from app.utils import deps

router = APIRouter()

@router.post("/", response_model=APIResponse[Exam], status_code=status.HTTP_201_CREATED)
async def create_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamCreate,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    new_exam = exam_service.create_exam(db, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam created successfully", data=Exam.model_validate(new_exam))


@router.get("/", response_model=APIResponse[List[Exam]])
async def get_all_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    skip: int = 0,
    limit: int = 100
):
    exams = exam_service.get_all_exams(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Exams retrieved successfully", data=[Exam.model_validate(e) for e in exams])


@router.get("/{exam_id}", response_model=APIResponse[Exam])
async def get_exam(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    exam = exam_service.get_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam retrieved successfully", data=Exam.model_validate(exam))


@router.put("/{exam_id}", response_model=APIResponse[Exam])
async def update_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    exam_in: ExamUpdate,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    updated_exam = exam_service.update_exam(db, exam_id=exam_id, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam updated successfully", data=Exam.model_validate(updated_exam))


@router.post("/{exam_id}/publish", response_model=APIResponse[Exam])
async def publish_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    exam = exam_service.publish_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam published successfully", data=Exam.model_validate(exam))


@router.post("/{exam_id}/questions", response_model=APIResponse[Question], status_code=status.HTTP_201_CREATED)
async def add_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    question_in: QuestionCreate,
    context: UserContext = Depends(deps.require_role(RoleEnum.ACADEMY, RoleEnum.SUPER_ADMIN))
):
    question = exam_service.add_question(db, exam_id=exam_id, question_in=question_in, current_user_context=context)
    return APIResponse(message="Question added successfully", data=Question.model_validate(question))


@router.get("/{exam_id}/questions", response_model=APIResponse[Union[List[Question], List[StudentQuestion]]])
async def get_exam_questions(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    questions, include_answer_key = exam_service.get_exam_questions(db, exam_id=exam_id, current_user_context=context)
    schema = Question if include_answer_key else StudentQuestion
    return APIResponse(message="Questions retrieved successfully", data=[schema.model_validate(q) for q in questions])
