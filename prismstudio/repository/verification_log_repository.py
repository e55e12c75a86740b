import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

import prismstudio.databases.postgres.model as models

def create_log(
        db: Session,
        certificate_id: str,
        ip_address: str,
        user_agent: Optional[str],
        success: bool,
        request_method: str,
        verified_at: datetime
) -> models.VerificationLog:
    """Append one verification attempt"""
    entry = models.VerificationLog(
        certificate_id=certificate_id,
        ip_address=ip_address,
        user_agent=user_agent,
        success=success,
        request_method=request_method,
        verified_at=verified_at,
    )
    db.add(entry)
    db.commit()
    logging.debug(f"Logged verification attempt: cert={certificate_id}, success={success}")
    return entry

