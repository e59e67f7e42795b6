from pydantic import BaseModel
from typing import Optional

from app.core.constants import RoleEnum

class TokenPayload(BaseModel):
    user_id: int
    role: RoleEnum
    exp: Optional[int] = None
