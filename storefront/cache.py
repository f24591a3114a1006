# storefront/cache.py
import json
import logging
from redis import Redis
from .settings import settings

logger = logging.getLogger(__name__)

def redis_client() -> Redis:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)

def key(*parts) -> str:
    # namespaced keys, e.g., storefront:report:top-products:10
    return f"{settings.CACHE_PREFIX}:" + ":".join(str(p).strip(":") for p in parts if p is not None)

def get_json(r: Redis, k: str):
    v = r.get(k)
    if v:
        try:
            obj = json.loads(v)
            logger.debug("cache HIT key=%r", k)
            return obj
        except ValueError as e:
            logger.warning("cache ERROR decoding key=%r: %s", k, e)
            return None
    else:
        logger.debug("cache MISS key=%r", k)
        return None

def set_json(r: Redis, k: str, value, ttl: int | None = None):
    data = json.dumps(value, separators=(",", ":"), default=str)
    logger.debug("cache SET key=%r ttl=%s bytes=%d", k, ttl, len(data))
    if ttl:
        r.setex(k, ttl, data)
    else:
        r.set(k, data)

def delete_prefix(r: Redis, prefix: str) -> int:
    patt = prefix + "*"
    count = 0
    pipe = r.pipeline()
    for kk in r.scan_iter(match=patt, count=1000):
        pipe.delete(kk)
        count += 1
    pipe.execute()
    logger.info("cache cleared prefix=%r deleted=%d", prefix, count)
    return count
