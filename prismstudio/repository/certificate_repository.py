import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload

import prismstudio.databases.postgres.model as models

def find_active_by_certificate_id(db: Session, certificate_id: str) -> Optional[models.Certificate]:
    """Fetch an active certificate together with its holder"""
    result = (
        db.query(models.Certificate)
        .options(
            joinedload(models.Certificate.user)
        )
        .filter(models.Certificate.certificate_id == certificate_id)
        .filter(models.Certificate.is_active == True)
        .first()
    )
    logging.info(f"Certificate lookup {certificate_id}: {'found' if result else 'not found'}")
    return result
