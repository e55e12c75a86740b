"""
Fixed window rate limiting keyed by (client address, endpoint).

Counters live in an external store (Postgres table or Redis hash). The
limiter fails open: if the store cannot be read or written the request is
allowed. Concurrent requests from one client may race on the counter.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from prismstudio.config import Settings, get_settings
from prismstudio.databases.redis import get_redis_client, rate_limit_key
from prismstudio.models.rate_limit import RateLimitState
from prismstudio.repository import rate_limit_repository


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes coming back from the database"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RateLimitStore(Protocol):
    async def get(self, ip_address: str, endpoint: str) -> Optional[RateLimitState]: ...

    async def create(self, state: RateLimitState) -> None: ...

    async def save(self, state: RateLimitState) -> None: ...


class SqlRateLimitStore:
    """Counters in the rate_limits table"""

    def __init__(self, db: Session):
        self.db = db

    async def get(self, ip_address: str, endpoint: str) -> Optional[RateLimitState]:
        try:
            record = rate_limit_repository.find_by_ip_and_endpoint(self.db, ip_address, endpoint)
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if record is None:
            return None

        return RateLimitState(
            ip_address=record.ip_address,
            endpoint=record.endpoint,
            request_count=record.request_count,
            window_start=as_utc(record.window_start),
            blocked_until=as_utc(record.blocked_until),
        )

    async def create(self, state: RateLimitState) -> None:
        try:
            rate_limit_repository.create(self.db, state.ip_address, state.endpoint, state.window_start)
        except SQLAlchemyError:
            self.db.rollback()
            raise

    async def save(self, state: RateLimitState) -> None:
        try:
            rate_limit_repository.update(
                self.db,
                ip_address=state.ip_address,
                endpoint=state.endpoint,
                request_count=state.request_count,
                window_start=state.window_start,
                blocked_until=state.blocked_until,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise


class RedisRateLimitStore:
    """Counters in Redis hashes that expire with their window"""

    def __init__(self, client, window_seconds: int):
        self.client = client
        self.window_seconds = window_seconds

    async def get(self, ip_address: str, endpoint: str) -> Optional[RateLimitState]:
        data = await self.client.hgetall(rate_limit_key(ip_address, endpoint))
        if not data:
            return None

        blocked_until = data.get("blocked_until")
        return RateLimitState(
            ip_address=ip_address,
            endpoint=endpoint,
            request_count=int(data["request_count"]),
            window_start=datetime.fromisoformat(data["window_start"]),
            blocked_until=datetime.fromisoformat(blocked_until) if blocked_until else None,
        )

    async def create(self, state: RateLimitState) -> None:
        await self.save(state)

    async def save(self, state: RateLimitState) -> None:
        key = rate_limit_key(state.ip_address, state.endpoint)
        await self.client.hset(key, mapping={
            "request_count": state.request_count,
            "window_start": state.window_start.isoformat(),
            "blocked_until": state.blocked_until.isoformat() if state.blocked_until else "",
        })
        # Expire when the window, and any block inside it, ends
        expire_at = state.window_start + timedelta(seconds=self.window_seconds)
        await self.client.expireat(key, int(expire_at.timestamp()) + 1)


class RateLimiter:
    """
    Fixed window limiter: at most max_requests per window per client and endpoint
    """

    def __init__(
            self,
            store: RateLimitStore,
            window_seconds: int,
            max_requests: int,
            now: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.window = timedelta(seconds=window_seconds)
        self.max_requests = max_requests
        self._now = now

    @property
    def retry_after_seconds(self) -> int:
        return int(self.window.total_seconds())

    async def check_and_record(self, client_address: str, endpoint: str) -> bool:
        """Count this request and say whether it may proceed"""
        now = self._now()

        try:
            state = await self.store.get(client_address, endpoint)

            if state is None:
                await self.store.create(RateLimitState(
                    ip_address=client_address,
                    endpoint=endpoint,
                    request_count=1,
                    window_start=now,
                ))
                return True

            # New window: reset counter and any block
            if state.window_start < now - self.window:
                await self.store.save(state.model_copy(update={
                    "request_count": 1,
                    "window_start": now,
                    "blocked_until": None,
                }))
                return True

            if state.is_blocked(now):
                logging.info(f"Rate limit: {client_address} blocked on {endpoint} until {state.blocked_until}")
                return False

            request_count = state.request_count + 1

            if request_count > self.max_requests:
                blocked_until = state.window_start + self.window
                await self.store.save(state.model_copy(update={
                    "request_count": request_count,
                    "blocked_until": blocked_until,
                }))
                logging.warning(
                    f"Rate limit exceeded: {client_address} on {endpoint} "
                    f"({request_count}/{self.max_requests}), blocked until {blocked_until}"
                )
                return False

            await self.store.save(state.model_copy(update={"request_count": request_count}))
            return True

        except Exception as e:
            logging.error(f"Rate limit check error, allowing request: {e}")
            return True


def get_rate_limiter(db: Session, settings: Optional[Settings] = None) -> RateLimiter:
    """Build a limiter over the configured backend"""
    settings = settings or get_settings()

    if settings.rate_limit_backend == "redis":
        store = RedisRateLimitStore(get_redis_client(), settings.rate_limit_window_seconds)
    else:
        store = SqlRateLimitStore(db)

    return RateLimiter(
        store=store,
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
    )
