from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from app.core.constants import ExamStatusEnum, MIN_EXAM_DURATION_MINUTES

def _clean_title(v):
    if not v or not v.strip():
        raise ValueError("Title cannot be empty")
    return v.strip()

class ExamBase(BaseModel):
    title: str
    description: Optional[str] = None
    duration_minutes: int = Field(..., ge=MIN_EXAM_DURATION_MINUTES)
    passing_score: float = Field(..., ge=1, le=100)
    price: float = Field(default=0, ge=0)
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    certificate_template_id: Optional[int] = None
    manual_review: bool = False

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        return _clean_title(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Certified Data Analyst",
                "description": "Final certification exam",
                "duration_minutes": 60,
                "passing_score": 70,
                "price": 25.0,
                "exam_date": None,
                "exam_time": None,
                "certificate_template_id": None,
                "manual_review": False
            }
        }
    )

class ExamCreate(ExamBase):
    # only honoured for super admins; academies always create for themselves
    academy_id: Optional[int] = None

class ExamUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=MIN_EXAM_DURATION_MINUTES)
    passing_score: Optional[float] = Field(default=None, ge=1, le=100)
    price: Optional[float] = Field(default=None, ge=0)
    exam_date: Optional[datetime] = None
    exam_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    certificate_template_id: Optional[int] = None
    manual_review: Optional[bool] = None
    status: Optional[ExamStatusEnum] = None

    @field_validator("title", "duration_minutes", "passing_score", "price", "manual_review", "status")
    @classmethod
    def not_null(cls, v, info):
        # omit a field to leave it unchanged; null would clear a required column
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        return _clean_title(v)

class Exam(ExamBase):
    id: int
    academy_id: int
    status: ExamStatusEnum
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
