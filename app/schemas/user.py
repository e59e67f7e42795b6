from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import RoleEnum
from app.schemas.academy import Academy

class User(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: RoleEnum
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UserContext(BaseModel):
    """The authenticated actor, as resolved from the bearer token."""
    user: User
    role: RoleEnum
    academy: Optional[Academy] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def academy_id(self) -> Optional[int]:
        return self.academy.id if self.academy else None
