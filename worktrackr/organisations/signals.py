"""
Seat tracking signals
Re-sync Stripe seat quantities when memberships or user status change
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete, pre_save
from django.dispatch import receiver

from worktrackr.core.models import User

from .models import Membership

logger = logging.getLogger(__name__)


def _schedule_seat_sync(organisation_id):
    from worktrackr.billing.stripe_seats import on_membership_state_changed
    transaction.on_commit(lambda: on_membership_state_changed(organisation_id))


@receiver(pre_save, sender=Membership)
def remember_membership_status(sender, instance, **kwargs):
    previous = None
    if instance.pk:
        previous = sender.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    instance._previous_status = previous


@receiver(post_save, sender=Membership)
def membership_saved(sender, instance, created, **kwargs):
    if created or getattr(instance, '_previous_status', None) != instance.status:
        _schedule_seat_sync(instance.organisation_id)


@receiver(post_delete, sender=Membership)
def membership_deleted(sender, instance, **kwargs):
    _schedule_seat_sync(instance.organisation_id)


@receiver(pre_save, sender=User)
def remember_user_status(sender, instance, **kwargs):
    previous = None
    if instance.pk:
        previous = sender.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    instance._previous_status = previous


@receiver(post_save, sender=User)
def user_status_changed(sender, instance, created, **kwargs):
    if created or getattr(instance, '_previous_status', None) == instance.status:
        return
    organisation_ids = Membership.objects.filter(user=instance).values_list('organisation_id', flat=True)
    for organisation_id in organisation_ids:
        logger.info(f"User {instance.id} status changed to {instance.status}, syncing org {organisation_id}")
        _schedule_seat_sync(organisation_id)
