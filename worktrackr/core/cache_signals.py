"""
Drop cached contact and organisation statistics when the underlying rows change
"""
import threading
from contextlib import contextmanager

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from worktrackr.contacts.models import Contact
from worktrackr.organisations.models import Membership
from worktrackr.tickets.models import Ticket

from .cache_utils import invalidate_contact_stats, invalidate_org_stats

_state = threading.local()


@contextmanager
def suspend_cache_signals():
    """Skip per-row invalidation inside a bulk operation; the caller invalidates once afterwards"""
    depth = getattr(_state, 'depth', 0)
    _state.depth = depth + 1
    try:
        yield
    finally:
        _state.depth = depth


def _active():
    return not getattr(_state, 'depth', 0)


@receiver([post_save, post_delete], sender=Contact)
def contact_changed(sender, instance, **kwargs):
    if _active():
        invalidate_contact_stats(instance.organisation_id)


@receiver([post_save, post_delete], sender=Ticket)
@receiver([post_save, post_delete], sender=Membership)
def org_stats_source_changed(sender, instance, **kwargs):
    if _active():
        invalidate_org_stats(instance.organisation_id)
