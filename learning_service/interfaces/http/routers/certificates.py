from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from ....application.use_cases.certificates import (
    GenerateCertificate, GetCertificate, ListUserCertificates, VerifyCertificate,
)
from ....application.use_cases.notifications import NotificationTrigger
from ....config import settings
from ....infrastructure.db import get_db
from ....infrastructure.repositories import (
    CatalogRepository, CertificateRepository, CourseAccessRepository, NotificationRepository,
)
from ..authz import get_user_email, get_user_id
from ..schemas import CertificateOut, CertificateVerifyOut

router = APIRouter(prefix="/api/certificates", tags=["certificates"])

@router.get("/verify/{verification_code}", response_model=CertificateVerifyOut)
def verify_certificate(verification_code: str, db: Session = Depends(get_db)):
    # public: no auth, and the payload carries only the anonymized holder label
    view = VerifyCertificate(CertificateRepository(db)).execute(verification_code)
    if view is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="certificate not found")
    return view

@router.post("/courses/{course_id}", response_model=CertificateOut)
def generate_certificate(
    course_id: int,
    user_id: str = Depends(get_user_id),
    email: str | None = Depends(get_user_email),
    db: Session = Depends(get_db),
):
    uc = GenerateCertificate(
        CatalogRepository(db),
        CourseAccessRepository(db),
        CertificateRepository(db),
        NotificationTrigger(NotificationRepository(db)),
        max_attempts=settings.CERTIFICATE_CODE_MAX_ATTEMPTS,
    )
    return uc.execute(user_id, user_id, course_id, email=email)

@router.get("", response_model=list[CertificateOut])
def my_certificates(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return ListUserCertificates(CertificateRepository(db)).execute(user_id, user_id)

@router.get("/{certificate_id}", response_model=CertificateOut)
def get_certificate(
    certificate_id: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return GetCertificate(CertificateRepository(db)).execute(user_id, certificate_id)
