"""
Shared Redis client — run registry, cancel flags and the RQ queue.

redis-py connects lazily on the first command, so importing this module is
safe even when Redis is down (tests, scripts/run_enrichment.py).
"""
import redis

from app.config import REDIS_URL

redis_client = redis.from_url(REDIS_URL, decode_responses=True)
