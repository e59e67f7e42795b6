from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List
from datetime import datetime

from app.core.constants import QuestionTypeEnum

class OptionCreate(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool = False

class StudentOption(BaseModel):
    """Option as shown while an exam is being taken: no answer key."""
    id: int
    question_id: int
    text: str

    model_config = ConfigDict(from_attributes=True)

class Option(StudentOption):
    is_correct: bool

class QuestionCreate(BaseModel):
    text: str = Field(..., min_length=5)
    question_type: QuestionTypeEnum = QuestionTypeEnum.MULTIPLE_CHOICE
    points: int = Field(default=1, ge=1)
    options: List[OptionCreate] = []

    @model_validator(mode="after")
    def options_match_type(self):
        # Shape checks only; the answer-key rules are enforced by the exam service.
        if self.question_type == QuestionTypeEnum.SHORT_ANSWER and self.options:
            raise ValueError("Short answer questions cannot have options")
        return self

class StudentQuestion(BaseModel):
    id: int
    exam_id: int
    text: str
    question_type: QuestionTypeEnum
    points: int
    options: List[StudentOption] = []

    model_config = ConfigDict(from_attributes=True)

class Question(StudentQuestion):
    created_at: Optional[datetime] = None
    options: List[Option] = []
