from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging

from prismstudio.config import get_settings
from prismstudio.databases.postgres.database import get_db
from prismstudio.models.verification import VerifyCertificateRequest, VerificationSuccessResponse
from prismstudio.services.verification_service import CertificateVerificationService, get_verification_service
from prismstudio.utils.network import get_client_address
from prismstudio.utils.response import error_response, utc_timestamp
from prismstudio.utils.validator import normalize_certificate_id

settings = get_settings()
router = APIRouter()

def verification_service(db: Session = Depends(get_db)) -> CertificateVerificationService:
    return get_verification_service(db)

async def run_verification(
    service: CertificateVerificationService,
    request: Request,
    certificate_id: Optional[str],
    request_method: str
) -> JSONResponse:
    """Run the pipeline, turning anything unexpected into a generic 500"""
    try:
        result = await service.verify(
            certificate_id=certificate_id,
            client_address=get_client_address(request),
            user_agent=request.headers.get("user-agent", "Unknown"),
            request_method=request_method,
        )
        return JSONResponse(status_code=result.status_code, content=result.body)
    except Exception as e:
        logging.error(f"Certificate verification error: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_response(
                "Internal server error during verification",
                timestamp=utc_timestamp(),
                supportContact=settings.support_contact,
            ),
        )

async def read_certificate_id(request: Request) -> Optional[str]:
    """Certificate ID from the JSON body, None when the body is missing or malformed"""
    try:
        payload = await request.json()
        return VerifyCertificateRequest.model_validate(payload).certificate_id
    except ValueError as e:
        logging.info(f"Unreadable verification body: {e}")
        return None

@router.post(
    "/verify-certificate",
    response_model=VerificationSuccessResponse,
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": VerifyCertificateRequest.model_json_schema()}},
        }
    },
)
async def verify_certificate(
    request: Request,
    service: CertificateVerificationService = Depends(verification_service)
):
    """
    Verify a certificate by its public ID

    The body is parsed leniently so malformed requests still pass the rate check first
    """
    certificate_id = await read_certificate_id(request)
    return await run_verification(service, request, certificate_id, "POST")

@router.get("/verify-certificate", response_model=VerificationSuccessResponse)
async def verify_certificate_by_query(
    request: Request,
    cert: Optional[str] = Query(None, description="Certificate ID, e.g. PS2506DS148"),
    service: CertificateVerificationService = Depends(verification_service)
):
    """
    Verify a certificate passed as ?cert=
    """
    if normalize_certificate_id(cert) is None:
        return JSONResponse(
            status_code=400,
            content=error_response(
                "Certificate ID parameter is required",
                usage=f"GET /api/v1/verify-certificate?cert={settings.certificate_id_example}",
            ),
        )

    return await run_verification(service, request, cert, "GET")
