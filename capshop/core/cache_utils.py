"""
Caching utilities for dashboard aggregates

Cached entries are keyed by a generation number; bumping the generation
invalidates every dashboard entry at once on any cache backend
(Redis in production, local memory in development and tests).
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging
import time

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_CACHE_TTL = 300  # 5 minutes

DASHBOARD_GENERATION_KEY = 'dashboard:generation'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def get_dashboard_generation():
    generation = cache.get(DASHBOARD_GENERATION_KEY)
    if generation is None:
        generation = time.time_ns()
        cache.add(DASHBOARD_GENERATION_KEY, generation, None)
        generation = cache.get(DASHBOARD_GENERATION_KEY, generation)
    return generation


def invalidate_dashboard_cache():
    """Invalidate all dashboard aggregates"""
    try:
        cache.incr(DASHBOARD_GENERATION_KEY)
    except ValueError:
        # Generation key missing (evicted or never read): start a fresh one
        cache.set(DASHBOARD_GENERATION_KEY, time.time_ns(), None)
    logger.debug("Invalidated dashboard cache")


def cached_dashboard(key_prefix, cache_ttl=DASHBOARD_CACHE_TTL):
    """
    Decorator to cache a dashboard aggregate

    Usage:
        @cached_dashboard("dashboard_stats")
        def compute_stats(item_threshold, material_threshold):
            return {...}
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, get_dashboard_generation(), *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator
