import logging
import secrets
import string
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import CERTIFICATE_SUFFIX_LENGTH
from app.core.exceptions import DuplicateCertificateNumber, Forbidden, NotFound
from app.crud.certificate import certificate as crud_certificate, certificate_template as crud_certificate_template
from app.crud.exam import exam as crud_exam
from app.models.certificate import Certificate
from app.models.certificate_template import CertificateTemplate
from app.schemas.certificate import CertificateTemplateCreate, CertificateTemplateUpdate
from app.schemas.user import UserContext
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(CERTIFICATE_SUFFIX_LENGTH))
    return f"{settings.CERTIFICATE_NUMBER_PREFIX}-{now.year}-{suffix}"


class CertificateService:

    def __init__(self, number_generator: Callable[[], str] = generate_certificate_number):
        self.number_generator = number_generator

    def _select_template_id(self, db: Session, exam_id: int) -> Optional[int]:
        exam = crud_exam.get(db, id=exam_id)
        if exam and exam.certificate_template_id:
            return exam.certificate_template_id
        default_template = crud_certificate_template.get_default(db)
        return default_template.id if default_template else None

    def _allocate(self, db: Session, **fields) -> Certificate:
        number = self.number_generator()
        if crud_certificate.get_by_number(db, certificate_number=number):
            raise DuplicateCertificateNumber()
        try:
            with db.begin_nested():
                return crud_certificate.create(db, obj_in={"certificate_number": number, **fields})
        except IntegrityError:
            raise DuplicateCertificateNumber()

    def issue(self, db: Session, enrollment_id: int, student_id: int, exam_id: int, academy_id: int) -> Certificate:
        """Issue the certificate for a passing enrollment, at most once.

        A repeated call returns the certificate already attached to the
        enrollment. Number collisions are regenerated up to the configured
        bound and never reach the caller otherwise.
        """
        existing = crud_certificate.get_by_enrollment(db, enrollment_id=enrollment_id)
        if existing:
            return existing

        template_id = self._select_template_id(db, exam_id)

        for attempt in range(1, settings.CERTIFICATE_NUMBER_MAX_RETRIES + 1):
            try:
                certificate = self._allocate(
                    db,
                    enrollment_id=enrollment_id,
                    student_id=student_id,
                    exam_id=exam_id,
                    academy_id=academy_id,
                    template_id=template_id,
                    issue_date=datetime.utcnow(),
                )
            except DuplicateCertificateNumber:
                existing = crud_certificate.get_by_enrollment(db, enrollment_id=enrollment_id)
                if existing:
                    return existing
                logger.warning(f"Certificate number collision for enrollment {enrollment_id} (attempt {attempt})")
                continue
            logger.info(f"Certificate {certificate.certificate_number} issued for enrollment {enrollment_id}")
            return certificate

        logger.error(f"Could not allocate a certificate number for enrollment {enrollment_id}")
        raise DuplicateCertificateNumber()

    def get_certificate(self, db: Session, certificate_id: int, current_user_context: UserContext) -> Certificate:
        certificate = crud_certificate.get(db, id=certificate_id)
        if not certificate:
            raise NotFound("Certificate not found.")
        if permission_helper.is_student(current_user_context) and certificate.student_id != current_user_context.user.id:
            raise Forbidden("You can only view your own certificates.")
        if permission_helper.is_academy(current_user_context) and certificate.academy_id != current_user_context.academy_id:
            raise Forbidden("This certificate belongs to another academy.")
        return certificate

    def get_certificates(self, db: Session, current_user_context: UserContext,
                         academy_id: Optional[int] = None) -> List[Certificate]:
        if permission_helper.is_student(current_user_context):
            return crud_certificate.get_by_student(db, student_id=current_user_context.user.id)
        if permission_helper.is_academy(current_user_context):
            return crud_certificate.get_by_academy(db, academy_id=current_user_context.academy_id)
        if academy_id is not None:
            return crud_certificate.get_by_academy(db, academy_id=academy_id)
        return crud_certificate.get_multi(db)

    def verify(self, db: Session, certificate_number: str) -> Certificate:
        certificate = crud_certificate.get_by_number(db, certificate_number=certificate_number)
        if not certificate:
            raise NotFound("Certificate not found.")
        return certificate

    def get_templates(self, db: Session, current_user_context: UserContext) -> List[CertificateTemplate]:
        if permission_helper.is_student(current_user_context):
            raise Forbidden("Students cannot access certificate templates.")
        return crud_certificate_template.get_multi(db)

    def get_default_template(self, db: Session, current_user_context: UserContext) -> CertificateTemplate:
        if permission_helper.is_student(current_user_context):
            raise Forbidden("Students cannot access certificate templates.")
        template = crud_certificate_template.get_default(db)
        if not template:
            raise NotFound("No default certificate template found.")
        return template

    def get_template(self, db: Session, template_id: int, current_user_context: UserContext) -> CertificateTemplate:
        if permission_helper.is_student(current_user_context):
            raise Forbidden("Students cannot access certificate templates.")
        template = crud_certificate_template.get(db, id=template_id)
        if not template:
            raise NotFound("Certificate template not found.")
        return template

    def create_template(self, db: Session, template_in: CertificateTemplateCreate,
                        current_user_context: UserContext) -> CertificateTemplate:
        if not permission_helper.is_super_admin(current_user_context):
            raise Forbidden("Only administrators can create certificate templates.")
        if template_in.is_default:
            crud_certificate_template.clear_default(db)
        return crud_certificate_template.create(db, obj_in=template_in)

    def update_template(self, db: Session, template_id: int, template_in: CertificateTemplateUpdate,
                        current_user_context: UserContext) -> CertificateTemplate:
        if not permission_helper.is_super_admin(current_user_context):
            raise Forbidden("Only administrators can update certificate templates.")
        template = crud_certificate_template.get(db, id=template_id)
        if not template:
            raise NotFound("Certificate template not found.")
        if template_in.is_default and not template.is_default:
            crud_certificate_template.clear_default(db)
        template = crud_certificate_template.update(db, db_obj=template, obj_in=template_in)
        logger.info(f"Certificate template {template.id} updated")
        return template


certificate_service = CertificateService()
