"""Audit logging, slugs and page parameters shared by the API views"""
import logging
import re

from django.db import DatabaseError

from .models import AuditLog

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 60


def get_client_ip(request):
    """First X-Forwarded-For hop, else REMOTE_ADDR"""
    meta = getattr(request, 'META', None)
    if not meta:
        return None
    forwarded = meta.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return meta.get('REMOTE_ADDR') or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, organisation_id=None, object_reference=None):
    """
    Record who did what to which object in which organisation.

    The acting user is ``user`` when given, else the request's user. A
    failed write is logged and returns None so the calling operation
    still succeeds.
    """
    if not (action and model_name and object_id):
        logger.warning(f"Skipping audit entry with missing fields: {action} {model_name} {object_id}")
        return None

    actor = user if user is not None else getattr(request, 'user', None)
    if actor is not None and not actor.is_authenticated:
        actor = None

    try:
        return AuditLog.objects.create(
            user=actor,
            organisation_id=organisation_id,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_reference=object_reference,
            changes=changes or {},
            ip_address=get_client_ip(request),
        )
    except DatabaseError as e:
        logger.error(f"Audit entry {action} on {model_name} {object_id} not written: {e}")
        return None


def to_slug(value):
    """'Acme & Sons Ltd' -> 'acme-and-sons-ltd'"""
    slug = re.sub(r'[^a-z0-9]+', '-', (value or '').strip().lower().replace('&', 'and'))
    return slug.strip('-')[:SLUG_MAX_LENGTH]


def _int_param(request, name, default):
    try:
        return int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        return default


def parse_page_params(request, default_limit=50, max_limit=200):
    """(page, limit) from the query string, clamped to sane bounds"""
    page = max(_int_param(request, 'page', 1), 1)
    limit = min(max(_int_param(request, 'limit', default_limit), 1), max_limit)
    return page, limit
