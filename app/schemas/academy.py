from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import AcademyStatusEnum

class Academy(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    contact_email: Optional[str] = None
    status: AcademyStatusEnum
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
