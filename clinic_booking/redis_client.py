import redis.asyncio as redis

from .config import REDIS_URL


def get_redis(url: str | None = REDIS_URL):
    if not url:
        return None
    return redis.from_url(url, decode_responses=True)
