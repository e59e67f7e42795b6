from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.core.database import SessionLocal
from app.core.security import InvalidToken, decode_access_token
from app.crud.user import user as user_crud
from app.crud.academy import academy as academy_crud
from app.core.constants import RoleEnum
from app.schemas.user import UserContext

http_bearer = HTTPBearer()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    """One request, one unit of work: commit if the endpoint returns, roll back if it raises."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

def get_current_user_with_context(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer)
) -> UserContext:
    try:
        token_data = decode_access_token(credentials.credentials)
    except InvalidToken as e:
        raise _unauthorized(str(e))

    user = user_crud.get(db, id=token_data.user_id)
    if not user:
        raise _unauthorized("User not found")

    # The stored role wins over the token claim so a demoted user loses access immediately.
    if user.role != token_data.role:
        raise _unauthorized("Token role no longer matches the account")

    academy = None
    if user.role == RoleEnum.ACADEMY:
        academy = academy_crud.get_by_user_id(db, user_id=user.id)
        if not academy:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academy not found for this user")

    return UserContext(user=user, role=user.role, academy=academy)

def require_role(*roles: RoleEnum):
    """Dependency that rejects actors whose role is not in ``roles``."""
    def _verify_role(context: UserContext = Depends(get_current_user_with_context)) -> UserContext:
        if context.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action."
            )
        return context
    return _verify_role
