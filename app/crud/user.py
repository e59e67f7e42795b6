from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from app.crud.base import CRUDBase
from app.models.user import User

class CRUDUser(CRUDBase[User, dict, dict]):
    def get_by_username(self, db: Session, *, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    def get_by_role(self, db: Session, *, role: RoleEnum) -> List[User]:
        return db.query(User).filter(User.role == role).order_by(User.id).all()

user = CRUDUser(User)
