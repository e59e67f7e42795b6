from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

class AnswerIn(BaseModel):
    question_id: int
    selected_option_id: Optional[int] = None
    text_answer: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_answer(self):
        if (self.selected_option_id is None) == (self.text_answer is None):
            raise ValueError("Provide exactly one of selected_option_id or text_answer")
        return self

class ExamSubmission(BaseModel):
    answers: List[AnswerIn] = []

    @field_validator("answers")
    @classmethod
    def unique_questions(cls, v):
        question_ids = [a.question_id for a in v]
        if len(question_ids) != len(set(question_ids)):
            raise ValueError("Duplicate question_ids found in submission")
        return v

class Attempt(BaseModel):
    id: int
    enrollment_id: int
    question_id: int
    selected_option_id: Optional[int] = None
    text_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
