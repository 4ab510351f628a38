"""
Per-organisation caching of statistics aggregates.

Keys look like ``stats:<prefix>:<organisation id>`` so one organisation's
entry can be dropped directly and a whole family can be cleared with
django-redis ``delete_pattern``.
"""
import logging
from functools import wraps

from django.core.cache import cache

logger = logging.getLogger(__name__)

CONTACT_STATS_CACHE_TTL = 300
ORG_STATS_CACHE_TTL = 120

CONTACT_STATS_PREFIX = "contact_stats"
ORG_STATS_PREFIX = "org_stats"


def make_cache_key(prefix, organisation_id):
    return f"stats:{prefix}:{organisation_id}"


def cache_per_org(prefix, ttl):
    """
    Cache a function of ``organisation_id`` for ``ttl`` seconds.

        @cache_per_org(CONTACT_STATS_PREFIX, CONTACT_STATS_CACHE_TTL)
        def get_contact_statistics(organisation_id):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(organisation_id):
            key = make_cache_key(prefix, organisation_id)
            stats = cache.get(key)
            if stats is None:
                logger.debug(f"{prefix} miss for org {organisation_id}")
                stats = func(organisation_id)
                cache.set(key, stats, ttl)
            return stats
        return wrapper
    return decorator


def invalidate_cache_pattern(prefix):
    """Remove every organisation's entry for a prefix; returns the number removed"""
    if not hasattr(cache, 'delete_pattern'):
        logger.warning(f"Cache backend cannot delete by pattern, {prefix} entries left to expire")
        return 0
    removed = cache.delete_pattern(make_cache_key(prefix, '*'))
    logger.info(f"Cleared {removed} {prefix} entries")
    return removed


def invalidate_contact_stats(organisation_id):
    cache.delete(make_cache_key(CONTACT_STATS_PREFIX, organisation_id))


def invalidate_org_stats(organisation_id):
    cache.delete(make_cache_key(ORG_STATS_PREFIX, organisation_id))
