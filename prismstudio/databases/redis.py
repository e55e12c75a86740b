from redis import asyncio as redis
from prismstudio.config import get_settings

settings = get_settings()

def get_redis_client() -> redis.Redis:
    """
    Create a new Redis Client instance
    """
    return redis.from_url(
        settings.redis_url, encoding="utf-8", decode_responses=True
    )

def rate_limit_key(ip_address: str, endpoint: str) -> str:
    return f"rate_limit:{endpoint}:{ip_address}"
