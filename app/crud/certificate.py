from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.certificate import Certificate
from app.models.certificate_template import CertificateTemplate
from app.schemas.certificate import CertificateTemplateCreate


class CRUDCertificate(CRUDBase[Certificate, dict, dict]):
    def get_by_enrollment(self, db: Session, *, enrollment_id: int) -> Optional[Certificate]:
        return db.query(Certificate).filter(Certificate.enrollment_id == enrollment_id).first()

    def get_by_number(self, db: Session, *, certificate_number: str) -> Optional[Certificate]:
        return db.query(Certificate).filter(Certificate.certificate_number == certificate_number).first()

    def get_by_student(self, db: Session, *, student_id: int) -> List[Certificate]:
        return db.query(Certificate).filter(Certificate.student_id == student_id).order_by(Certificate.id).all()

    def get_by_academy(self, db: Session, *, academy_id: int) -> List[Certificate]:
        return db.query(Certificate).filter(Certificate.academy_id == academy_id).order_by(Certificate.id).all()


class CRUDCertificateTemplate(CRUDBase[CertificateTemplate, CertificateTemplateCreate, dict]):
    def get_default(self, db: Session) -> Optional[CertificateTemplate]:
        return (
            db.query(CertificateTemplate)
            .filter(CertificateTemplate.is_default == True)
            .order_by(CertificateTemplate.id)
            .first()
        )

    def clear_default(self, db: Session) -> None:
        db.query(CertificateTemplate).filter(CertificateTemplate.is_default == True).update(
            {CertificateTemplate.is_default: False}, synchronize_session="fetch"
        )
        db.flush()


certificate = CRUDCertificate(Certificate)
certificate_template = CRUDCertificateTemplate(CertificateTemplate)
