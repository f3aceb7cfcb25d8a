"""
Cache utilities for the betting pool
Caches serialized query results and drops them when admin writes change them
"""

import functools

from flask import current_app

from betpool import cache

MATCHES_CACHE_KEY = "query_matches"


def cached_query(cache_key, timeout=300):
    """
    Decorator for caching the (JSON-ready) result of a query function

    Args:
        cache_key: Key the result is stored under
        timeout: Cache timeout in seconds
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Query cache hit: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Query cache set: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_match_cache():
    """Drop cached match listings after scores or odds change"""
    cache.delete(MATCHES_CACHE_KEY)
    current_app.logger.debug(f"Cache invalidated: {MATCHES_CACHE_KEY}")
