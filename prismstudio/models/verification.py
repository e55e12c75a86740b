from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VerifyCertificateRequest(BaseModel):
    """Verification request body"""
    certificate_id: Optional[str] = Field(None, description="Public certificate ID, e.g. PS2506DS148")


class CamelModel(BaseModel):
    """Serialized with camelCase keys for the public verification API"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerifiedCertificate(CamelModel):
    id: str
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    track: Optional[str] = None
    issue_date: Optional[datetime] = None
    completion_date: Optional[date] = None
    valid_until: Optional[datetime] = None
    duration_months: int
    skills: List[str] = []
    grade: Optional[str] = None
    project_title: Optional[str] = None
    supervisor_name: str
    supervisor_email: Optional[str] = None
    cert_type: Optional[str] = None
    is_verified: bool
    is_expired: bool
    days_until_expiry: Optional[int] = None
    pdf_url: Optional[str] = None
    verification_hash: str
    verified_at: str
    metadata: Optional[Dict[str, Any]] = None


class VerificationDetails(CamelModel):
    method: str = "Database verification with cryptographic hash"
    security_level: str = "Industry Standard"
    compliance: str = "Educational Institution Compatible"
    verification_id: str
    ip_address: str


class Issuer(CamelModel):
    name: str
    website: str
    verification_url: str
    contact_email: str


class VerificationSuccessResponse(CamelModel):
    success: bool = True
    certificate: VerifiedCertificate
    verification_details: VerificationDetails
    issuer: Issuer
    timestamp: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "certificate": {
                    "id": "PS2506DS148",
                    "studentName": "Asha Verma",
                    "track": "Data Science",
                    "isExpired": False,
                    "daysUntilExpiry": 120,
                    "verificationHash": "3f9a0c1d2b7e4a55",
                },
                "verificationDetails": {"verificationId": "3f9a0c1d2b7e4a55", "ipAddress": "203.0.113.***"},
                "issuer": {"name": "PrismStudio", "website": "https://www.prismstudio.co.in"},
                "timestamp": "2025-08-01T10:30:00.000Z"
            }
        },
    )


class VerificationResult(BaseModel):
    """Outcome of one pass through the verification pipeline"""
    status_code: int
    body: Dict[str, Any]
