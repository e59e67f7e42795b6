from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from app.schemas.response import APIResponse
from app.schemas.certificate import Certificate, CertificateTemplate, CertificateTemplateCreate, CertificateTemplateUpdate
from app.schemas.user import UserContext
from app.services.certificate import certificate_service
from app.utils import deps

router = APIRouter()
template_router = APIRouter()

@router.get("/", response_model=APIResponse[List[Certificate]])
async def get_certificates(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    academy_id: Optional[int] = Query(None)
):
    certificates = certificate_service.get_certificates(db, current_user_context=context, academy_id=academy_id)
    return APIResponse(message="Certificates retrieved successfully", data=[Certificate.model_validate(c) for c in certificates])


@router.get("/verify/{certificate_number}", response_model=APIResponse[Certificate])
async def verify_certificate(
    *,
    db: Session = Depends(deps.get_db),
    certificate_number: str
):
    certificate = certificate_service.verify(db, certificate_number=certificate_number)
    return APIResponse(message="Certificate is valid", data=Certificate.model_validate(certificate))


@router.get("/{certificate_id}", response_model=APIResponse[Certificate])
async def get_certificate(
    *,
    db: Session = Depends(deps.get_db),
    certificate_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    certificate = certificate_service.get_certificate(db, certificate_id=certificate_id, current_user_context=context)
    return APIResponse(message="Certificate retrieved successfully", data=Certificate.model_validate(certificate))


@template_router.get("/", response_model=APIResponse[List[CertificateTemplate]])
async def get_templates(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    templates = certificate_service.get_templates(db, current_user_context=context)
    return APIResponse(message="Certificate templates retrieved successfully", data=[CertificateTemplate.model_validate(t) for t in templates])


@template_router.get("/default", response_model=APIResponse[CertificateTemplate])
async def get_default_template(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    template = certificate_service.get_default_template(db, current_user_context=context)
    return APIResponse(message="Default certificate template retrieved successfully", data=CertificateTemplate.model_validate(template))


@template_router.get("/{template_id}", response_model=APIResponse[CertificateTemplate])
async def get_template(
    *,
    db: Session = Depends(deps.get_db),
    template_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    template = certificate_service.get_template(db, template_id=template_id, current_user_context=context)
    return APIResponse(message="Certificate template retrieved successfully", data=CertificateTemplate.model_validate(template))

@template_router.post("/", response_model=APIResponse[CertificateTemplate], status_code=status.HTTP_201_CREATED)
async def create_template(
    *,
    db: Session = Depends(deps.get_transactional_db),
    template_in: CertificateTemplateCreate,
    context: UserContext = Depends(deps.require_role(RoleEnum.SUPER_ADMIN))
):
    template = certificate_service.create_template(db, template_in=template_in, current_user_context=context)
    return APIResponse(message="Certificate template created successfully", data=CertificateTemplate.model_validate(template))


@template_router.put("/{template_id}", response_model=APIResponse[CertificateTemplate])
async def update_template(
    *,
    db: Session = Depends(deps.get_transactional_db),
    template_id: int,
    template_in: CertificateTemplateUpdate,
    context: UserContext = Depends(deps.require_role(RoleEnum.SUPER_ADMIN))
):
    template = certificate_service.update_template(
        db, template_id=template_id, template_in=template_in, current_user_context=context
    )
    return APIResponse(message="Certificate template updated successfully", data=CertificateTemplate.model_validate(template))
