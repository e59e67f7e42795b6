from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

class CertificateTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    template: str = Field(..., min_length=1)
    is_default: bool = False

class CertificateTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    template: Optional[str] = Field(default=None, min_length=1)
    is_default: Optional[bool] = None

    @field_validator("name", "template", "is_default")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

class CertificateTemplate(CertificateTemplateCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Certificate(BaseModel):
    id: int
    certificate_number: str
    enrollment_id: int
    student_id: int
    exam_id: int
    academy_id: int
    template_id: Optional[int] = None
    issue_date: datetime
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
