import hashlib
import logging
import math
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from prismstudio.config import Settings, get_settings
import prismstudio.databases.postgres.model as models
from prismstudio.models.verification import (
    Issuer,
    VerificationDetails,
    VerificationResult,
    VerificationSuccessResponse,
    VerifiedCertificate,
)
from prismstudio.repository import certificate_repository, verification_log_repository
from prismstudio.services.rate_limiter import RateLimiter, as_utc, get_rate_limiter, utc_now
from prismstudio.utils.network import mask_ip_address
from prismstudio.utils.response import error_response, utc_timestamp
from prismstudio.utils.validator import (
    CERTIFICATE_ID_FORMAT_HINT,
    is_valid_certificate_id,
    normalize_certificate_id,
)

# Internal track keys stored on users.domain; unknown keys are shown as is
TRACK_NAMES = {
    "web_development": "Web Development",
    "ui_ux_design": "UI/UX Design",
    "data_science": "Data Science",
    "pcb_design": "PCB Design",
    "embedded_programming": "Embedded Programming",
    "fpga_verilog": "FPGA Verilog",
}

VERIFICATION_HASH_LENGTH = 16
SECONDS_PER_DAY = 24 * 60 * 60


def track_display_name(domain: Optional[str]) -> Optional[str]:
    if domain is None:
        return None
    return TRACK_NAMES.get(domain, domain)


def compute_verification_hash(cert_hash: str, certificate_id: str, now: datetime) -> str:
    """
    SHA-256 over the stored hash, the ID and today's date.

    Stable for a calendar day and different the next. Presentational only,
    never use it to authorize anything.
    """
    day = now.strftime("%a %b %d %Y")
    return hashlib.sha256(f"{cert_hash}{certificate_id}{day}".encode("utf-8")).hexdigest()


def expiry_status(valid_until: Optional[datetime], now: datetime):
    """Return (is_expired, days_until_expiry) for an optional expiry"""
    valid_until = as_utc(valid_until)
    if valid_until is None:
        return False, None

    remaining = (valid_until - now).total_seconds()
    return valid_until < now, math.ceil(remaining / SECONDS_PER_DAY)


class CertificateVerificationService:
    """
    Verification pipeline: rate check, format check, lookup, enrich, audit log
    """

    def __init__(
            self,
            db: Session,
            rate_limiter: RateLimiter,
            settings: Optional[Settings] = None,
            now: Callable[[], datetime] = utc_now
    ):
        self.db = db
        self.rate_limiter = rate_limiter
        self.settings = settings or get_settings()
        self._now = now

    async def verify(
            self,
            certificate_id: Optional[str],
            client_address: str,
            user_agent: Optional[str] = None,
            request_method: str = "POST"
    ) -> VerificationResult:
        allowed = await self.rate_limiter.check_and_record(client_address, self.settings.verify_endpoint)
        if not allowed:
            return VerificationResult(
                status_code=429,
                body=error_response(
                    "Rate limit exceeded. Please wait before trying again.",
                    retryAfter=self.rate_limiter.retry_after_seconds,
                ),
            )

        certificate_id = normalize_certificate_id(certificate_id)
        if certificate_id is None:
            return VerificationResult(
                status_code=400,
                body=error_response("Certificate ID is required", format_hint=CERTIFICATE_ID_FORMAT_HINT),
            )

        if not is_valid_certificate_id(certificate_id):
            self._log_attempt(certificate_id, client_address, user_agent, False, request_method)
            return VerificationResult(
                status_code=400,
                body=error_response(
                    "Invalid certificate ID format",
                    format_hint=CERTIFICATE_ID_FORMAT_HINT,
                    example=self.settings.certificate_id_example,
                ),
            )

        certificate = certificate_repository.find_active_by_certificate_id(self.db, certificate_id)

        if certificate is None:
            self._log_attempt(certificate_id, client_address, user_agent, False, request_method)
            return VerificationResult(
                status_code=404,
                body=error_response(
                    "Certificate not found or has been revoked",
                    certificateId=certificate_id,
                    timestamp=utc_timestamp(self._now()),
                    supportContact=self.settings.support_contact,
                ),
            )

        # Serialize before the log commit expires the loaded certificate
        body = self._build_response(certificate, client_address).model_dump(mode="json", by_alias=True)
        self._log_attempt(certificate_id, client_address, user_agent, True, request_method)

        logging.info(f"Certificate verified: {certificate_id}")
        return VerificationResult(status_code=200, body=body)

    def _build_response(self, certificate: models.Certificate, client_address: str) -> VerificationSuccessResponse:
        now = self._now()
        timestamp = utc_timestamp(now)
        is_expired, days_until_expiry = expiry_status(certificate.valid_until, now)
        verification_id = compute_verification_hash(
            certificate.cert_hash, certificate.certificate_id, now
        )[:VERIFICATION_HASH_LENGTH]
        holder = certificate.user

        return VerificationSuccessResponse(
            certificate=VerifiedCertificate(
                id=certificate.certificate_id,
                student_name=holder.display_name,
                student_email=holder.email,
                track=track_display_name(holder.domain),
                issue_date=as_utc(certificate.issued_at),
                completion_date=certificate.completion_date,
                valid_until=as_utc(certificate.valid_until),
                duration_months=certificate.duration_months or self.settings.default_duration_months,
                skills=certificate.skills or [],
                grade=certificate.grade,
                project_title=certificate.project_title,
                supervisor_name=certificate.supervisor_name or self.settings.default_supervisor_name,
                supervisor_email=certificate.supervisor_email,
                cert_type=certificate.cert_type,
                is_verified=bool(certificate.is_verified),
                is_expired=is_expired,
                days_until_expiry=days_until_expiry,
                pdf_url=certificate.pdf_url,
                verification_hash=verification_id,
                verified_at=timestamp,
                metadata=certificate.metadata_,
            ),
            verification_details=VerificationDetails(
                verification_id=verification_id,
                ip_address=mask_ip_address(client_address),
            ),
            issuer=Issuer(
                name=self.settings.issuer_name,
                website=self.settings.issuer_website,
                verification_url=f"{self.settings.verification_url}?cert={certificate.certificate_id}",
                contact_email=self.settings.support_contact,
            ),
            timestamp=timestamp,
        )

    def _log_attempt(
            self,
            certificate_id: str,
            client_address: str,
            user_agent: Optional[str],
            success: bool,
            request_method: str
    ) -> None:
        """Audit one attempt; a failed write never fails the verification"""
        try:
            verification_log_repository.create_log(
                self.db,
                certificate_id=certificate_id,
                ip_address=client_address,
                user_agent=user_agent,
                success=success,
                request_method=request_method,
                verified_at=self._now(),
            )
        except Exception as e:
            logging.error(f"Failed to log verification attempt for {certificate_id}: {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logging.error(f"Rollback after failed verification log also failed: {rollback_error}")


def get_verification_service(db: Session) -> CertificateVerificationService:
    settings = get_settings()
    return CertificateVerificationService(
        db=db,
        rate_limiter=get_rate_limiter(db, settings),
        settings=settings,
    )
