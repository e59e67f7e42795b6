from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError
from pydantic import ValidationError

from app.core.config import settings
from app.core.constants import RoleEnum
from app.schemas.token import TokenPayload


class InvalidToken(Exception):
    pass


def create_access_token(user_id: int, role: RoleEnum, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a bearer token for an already authenticated actor."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(user_id),
        "user_id": user_id,
        "role": RoleEnum(role).value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise InvalidToken("Could not validate credentials")
    try:
        return TokenPayload(**payload)
    except ValidationError:
        raise InvalidToken("Invalid token payload")
