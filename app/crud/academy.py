from typing import Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.academy import Academy

class CRUDAcademy(CRUDBase[Academy, dict, dict]):
    def get_by_user_id(self, db: Session, *, user_id: int) -> Optional[Academy]:
        return db.query(Academy).filter(Academy.user_id == user_id).first()

academy = CRUDAcademy(Academy)
