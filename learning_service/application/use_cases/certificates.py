import secrets
from datetime import datetime
from typing import Callable

import structlog

from ...domain.entities import Certificate
from ...domain.errors import Conflict, NotCompleted, NotFound, StoreFailure, ensure_owner
from ...domain.rules import (
    anonymized_label,
    generate_certificate_number,
    generate_verification_code,
    utcnow,
)
from ...infrastructure.metrics import certificates_issued_total
from ..dto import CertificateView
from ..ports import ICatalogRepository, ICertificateRepository, ICourseAccessRepository
from .notifications import NotificationTrigger

logger = structlog.get_logger()


class GenerateCertificate:
    def __init__(self, catalog: ICatalogRepository, access: ICourseAccessRepository,
                 certificates: ICertificateRepository, notifier: NotificationTrigger,
                 max_attempts: int = 5, clock: Callable[[], datetime] = utcnow, rng=secrets):
        self.catalog = catalog
        self.access = access
        self.certificates = certificates
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.clock = clock
        self.rng = rng

    def execute(self, actor_id: str | None, user_id: str, course_id: int,
                email: str | None = None) -> Certificate:
        ensure_owner(actor_id, user_id)

        record = self.access.get(user_id, course_id)
        if record is None or record.completion_percentage < 100:
            raise NotCompleted("Course is not completed yet")

        existing = self.certificates.get_for(user_id, course_id)
        if existing:
            return existing

        course = self.catalog.get_course(course_id)
        if course is None:
            raise NotFound("Course not found")

        label = anonymized_label(user_id, email)
        for attempt in range(1, self.max_attempts + 1):
            try:
                cert = self.certificates.insert(
                    user_id=user_id,
                    course_id=course_id,
                    certificate_number=generate_certificate_number(rng=self.rng),
                    verification_code=generate_verification_code(rng=self.rng),
                    holder_label=label,
                    issued_at=self.clock(),
                )
            except Conflict:
                # lost the race for (user, course), or a code collided
                existing = self.certificates.get_for(user_id, course_id)
                if existing:
                    return existing
                logger.warning("certificate_code_collision", user_id=user_id,
                               course_id=course_id, attempt=attempt)
                continue

            certificates_issued_total.inc()
            logger.info("certificate_issued", user_id=user_id, course_id=course_id,
                        certificate_id=cert.id, certificate_number=cert.certificate_number)
            self.notifier.certificate_generated(user_id, course.title, cert.id)
            return cert

        raise StoreFailure("Could not allocate unique certificate codes")


class VerifyCertificate:
    def __init__(self, certificates: ICertificateRepository):
        self.certificates = certificates

    def execute(self, verification_code: str) -> CertificateView | None:
        code = (verification_code or "").strip().upper()
        if not code:
            return None
        cert = self.certificates.get_by_verification_code(code)
        if cert is None:
            return None
        return CertificateView(
            certificate_number=cert.certificate_number,
            verification_code=cert.verification_code,
            issued_at=cert.issued_at,
            holder_label=cert.holder_label,
            course_id=cert.course_id,
            course_title=cert.course_title or "",
            course_description=cert.course_description,
        )


class GetCertificate:
    def __init__(self, certificates: ICertificateRepository):
        self.certificates = certificates

    def execute(self, actor_id: str | None, certificate_id: int) -> Certificate:
        cert = self.certificates.get(certificate_id)
        if cert is None:
            raise NotFound("Certificate not found")
        ensure_owner(actor_id, cert.user_id)
        return cert


class ListUserCertificates:
    def __init__(self, certificates: ICertificateRepository):
        self.certificates = certificates

    def execute(self, actor_id: str | None, user_id: str) -> list[Certificate]:
        ensure_owner(actor_id, user_id)
        return self.certificates.list_for_user(user_id)
