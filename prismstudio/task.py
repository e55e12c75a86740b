from datetime import timedelta
from typing import Optional

from celery import Celery
from sqlalchemy.orm import Session

from prismstudio.config import get_settings
from prismstudio.custom_logging import LOG_FORMAT_DEBUG
from prismstudio.databases.postgres.database import sessionLocal
from prismstudio.repository import rate_limit_repository
from prismstudio.services.rate_limiter import utc_now
import logging


settings = get_settings()

celery_app = Celery(
    'tasks',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend
)

celery_app.conf.update(
    task_serializer = 'json',
    accept_content = ['json'],
    result_serializer = 'json',
    timezone = 'UTC',
    enable_utc = True,
    task_acks_late = True,
    worker_prefetch_multiplier = 1,
    worker_log_format=LOG_FORMAT_DEBUG,
    worker_task_log_format=LOG_FORMAT_DEBUG,
    beat_schedule = {
        'purge-expired-rate-limits': {
            'task': 'prismstudio.task.purge_expired_rate_limits',
            'schedule': float(settings.rate_limit_purge_interval_seconds),
        },
    },
)


def purge_expired(db: Session, window_seconds: Optional[int] = None) -> int:
    """Delete rate limit rows whose window and block are both over"""
    window_seconds = window_seconds or settings.rate_limit_window_seconds
    now = utc_now()
    return rate_limit_repository.delete_expired(
        db,
        window_cutoff=now - timedelta(seconds=window_seconds),
        now=now,
    )


@celery_app.task(name='prismstudio.task.purge_expired_rate_limits')
def purge_expired_rate_limits() -> int:
    db: Session = sessionLocal()
    try:
        deleted = purge_expired(db)
        logging.info(f"Rate limit purge removed {deleted} rows")
        return deleted
    except Exception as e:
        logging.error(f"Rate limit purge failed: {str(e)}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
