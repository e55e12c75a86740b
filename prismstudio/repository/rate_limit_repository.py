import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

import prismstudio.databases.postgres.model as models

def find_by_ip_and_endpoint(db: Session, ip_address: str, endpoint: str) -> Optional[models.RateLimit]:
    return (
        db.query(models.RateLimit)
        .filter(models.RateLimit.ip_address == ip_address)
        .filter(models.RateLimit.endpoint == endpoint)
        .first()
    )

def create(db: Session, ip_address: str, endpoint: str, window_start: datetime) -> models.RateLimit:
    record = models.RateLimit(
        ip_address=ip_address,
        endpoint=endpoint,
        request_count=1,
        window_start=window_start,
    )
    db.add(record)
    db.commit()
    return record

def update(
        db: Session,
        ip_address: str,
        endpoint: str,
        request_count: int,
        window_start: datetime,
        blocked_until: Optional[datetime]
) -> int:
    """Overwrite the counter state, returns affected row count"""
    updated = (
        db.query(models.RateLimit)
        .filter(models.RateLimit.ip_address == ip_address)
        .filter(models.RateLimit.endpoint == endpoint)
        .update(
            {
                models.RateLimit.request_count: request_count,
                models.RateLimit.window_start: window_start,
                models.RateLimit.blocked_until: blocked_until,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated

def delete_expired(db: Session, window_cutoff: datetime, now: datetime) -> int:
    """
    Remove records whose window started before the cutoff and that are not blocked past now
    """
    deleted = (
        db.query(models.RateLimit)
        .filter(
            and_(
                models.RateLimit.window_start < window_cutoff,
                or_(
                    models.RateLimit.blocked_until.is_(None),
                    models.RateLimit.blocked_until <= now,
                ),
            )
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    logging.info(f"Purged {deleted} expired rate limit records")
    return deleted
