from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime

from app.core.constants import EnrollmentStatusEnum
from app.schemas.certificate import Certificate

class EnrollmentCreate(BaseModel):
    exam_id: int
    student_id: Optional[int] = None  # required when an academy or admin assigns
    is_assigned: Optional[bool] = None

class Enrollment(BaseModel):
    id: int
    student_id: int
    exam_id: int
    status: EnrollmentStatusEnum
    started_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    score: Optional[int] = None
    certificate_id: Optional[str] = None
    is_assigned: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SessionStatus(BaseModel):
    enrollment_id: int
    status: EnrollmentStatusEnum
    started_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    remaining_seconds: int
    expired: bool
    answered_question_ids: List[int] = []

class SubmissionResult(BaseModel):
    enrollment: Enrollment
    score: int
    passed: bool
    earned_points: int
    total_points: int
    certificate: Optional[Certificate] = None
