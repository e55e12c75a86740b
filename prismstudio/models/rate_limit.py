from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RateLimitState(BaseModel):
    """Counter state for one (client address, endpoint) pair"""
    ip_address: str
    endpoint: str
    request_count: int = Field(1, ge=0)
    window_start: datetime
    blocked_until: Optional[datetime] = None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and self.blocked_until > now
