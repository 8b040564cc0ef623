"""
Read-through caching helpers
Uses the default Django cache (Redis via django-redis in production)
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Key prefixes
KANBAN_KEY_PREFIX = 'kanban:'
SHIPPING_KANBAN_KEY_PREFIX = 'shipping_kanban:'
INQUIRY_LIST_KEY_PREFIX = 'inquiries:list:'
PUBLIC_INVOICE_KEY_PREFIX = 'invoice:public:'
PORTAL_CUSTOMER_KEY_PREFIX = 'portal:customer:'
STATS_KEY_PREFIX = 'stats:'

# Cache TTLs (in seconds)
KANBAN_CACHE_TTL = 60
INQUIRY_LIST_CACHE_TTL = 60
PUBLIC_INVOICE_CACHE_TTL = 300
PORTAL_CACHE_TTL = 120
STATS_CACHE_TTL = 600


def default_ttl():
    return getattr(settings, 'CACHE_DEFAULT_TTL', 300)


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}{key_hash}"


def get_cached(key, fetcher, ttl=None):
    """
    Return the cached value for ``key``; on a miss call ``fetcher()``,
    store its result and return it.

    A cache backend failure never breaks the request: the value is then
    computed directly.
    """
    try:
        cached_data = cache.get(key)
    except Exception as e:
        logger.warning(f"Cache read failed for {key}: {str(e)}")
        return fetcher()

    if cached_data is not None:
        logger.debug(f"Cache HIT: {key}")
        return cached_data

    logger.debug(f"Cache MISS: {key}")
    result = fetcher()
    try:
        cache.set(key, result, ttl if ttl is not None else default_ttl())
    except Exception as e:
        logger.warning(f"Cache write failed for {key}: {str(e)}")
    return result


def cached_query(cache_ttl=None, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=600, key_prefix="stats:inquiries:")
        def get_inquiry_stats(start, end):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)
            return get_cached(cache_key, lambda: func(*args, **kwargs), cache_ttl)
        return wrapper
    return decorator


def invalidate_cache(key):
    try:
        cache.delete(key)
        logger.debug(f"Invalidated cache key: {key}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache key {key}: {str(e)}")


def invalidate_cache_pattern(prefix):
    """
    Invalidate all cache keys starting with ``prefix``

    django-redis exposes ``delete_pattern`` (SCAN based). Backends without key
    scanning, such as the local-memory cache used in development and tests,
    are cleared entirely.
    """
    try:
        if hasattr(cache, 'delete_pattern'):
            deleted = cache.delete_pattern(f"{prefix}*")
            logger.info(f"Invalidated {deleted} cache keys matching pattern: {prefix}")
        else:
            cache.clear()
            logger.info(f"Cleared local cache for pattern: {prefix}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {prefix}: {str(e)}")


def invalidate_kanban_cache():
    invalidate_cache_pattern(KANBAN_KEY_PREFIX)


def invalidate_inquiry_caches():
    """Invalidate the inquiry list and the sales kanban"""
    invalidate_cache_pattern(INQUIRY_LIST_KEY_PREFIX)
    invalidate_cache_pattern(KANBAN_KEY_PREFIX)


def invalidate_shipping_kanban_cache():
    invalidate_cache_pattern(SHIPPING_KANBAN_KEY_PREFIX)


def get_public_invoice_cache_key(token):
    return f"{PUBLIC_INVOICE_KEY_PREFIX}{token}"


def get_portal_cache_key(token):
    return f"{PORTAL_CUSTOMER_KEY_PREFIX}{token}"
