"""
Seat tracking against the Stripe subscription.

Each plan includes a number of seats; active users above that number are
billed through a separate seat add-on subscription item whose quantity is
kept equal to the overage.
"""
import logging

import stripe
from django.conf import settings

from worktrackr.organisations.models import Membership, Organisation

from .plans import PLAN_INCLUDED

logger = logging.getLogger(__name__)


def configure_stripe():
    stripe.api_key = settings.STRIPE_SECRET_KEY
    return stripe


def count_active_users(organisation):
    """Active memberships whose user is not disabled"""
    return (
        Membership.objects
        .filter(organisation=organisation, status='active')
        .exclude(user__status='disabled')
        .count()
    )


def included_seats_for(organisation):
    return organisation.included_seats or PLAN_INCLUDED.get(organisation.plan) or 1


def sync_seats_for_org(organisation):
    """
    Recount active users and push the seat overage to Stripe.

    Returns {active_users, included, overage, synced}.
    """
    active_users = count_active_users(organisation)
    included = included_seats_for(organisation)
    overage = max(0, active_users - included)

    if not organisation.stripe_subscription_id or not organisation.stripe_seat_item_id:
        Organisation.objects.filter(pk=organisation.pk).update(active_user_count=active_users)
        organisation.active_user_count = active_users
        logger.info(f"Org {organisation.id} has no seat item, stored {active_users} active users")
        return {'active_users': active_users, 'included': included, 'overage': overage, 'synced': False}

    configure_stripe()
    stripe.SubscriptionItem.modify(
        organisation.stripe_seat_item_id,
        quantity=overage,
        proration_behavior='create_prorations',
    )

    Organisation.objects.filter(pk=organisation.pk).update(
        active_user_count=active_users,
        seat_overage_cached=overage,
    )
    organisation.active_user_count = active_users
    organisation.seat_overage_cached = overage
    logger.info(f"Synced seats for org {organisation.id}: {active_users} active, {included} included, {overage} overage")
    return {'active_users': active_users, 'included': included, 'overage': overage, 'synced': True}


def on_membership_state_changed(organisation_id):
    """Re-sync seats after a membership or user status change"""
    organisation = Organisation.objects.filter(pk=organisation_id).first()
    if organisation is None:
        return None
    try:
        return sync_seats_for_org(organisation)
    except stripe.StripeError as e:
        # Membership changes must not fail on a billing outage
        logger.error(f"Seat sync failed for org {organisation_id}: {str(e)}")
        return None


def ensure_seat_addon_item(organisation):
    """Find or create the seat add-on item on the org's subscription"""
    seat_price_id = settings.STRIPE_PRICES.get('seat_addon')
    if not seat_price_id:
        raise ValueError('PRICE_SEAT_ADDON is not configured')
    if not organisation.stripe_subscription_id:
        raise ValueError('Organisation has no subscription')

    configure_stripe()
    subscription = stripe.Subscription.retrieve(organisation.stripe_subscription_id)
    seat_item_id = None
    for item in subscription['items']['data']:
        if item['price']['id'] == seat_price_id:
            seat_item_id = item['id']
            break

    if seat_item_id is None:
        item = stripe.SubscriptionItem.create(
            subscription=organisation.stripe_subscription_id,
            price=seat_price_id,
            quantity=0,
        )
        seat_item_id = item['id']
        logger.info(f"Created seat add-on item {seat_item_id} for org {organisation.id}")

    if organisation.stripe_seat_item_id != seat_item_id:
        organisation.stripe_seat_item_id = seat_item_id
        organisation.save(update_fields=['stripe_seat_item_id', 'updated_at'])
    return seat_item_id


def initialize_seat_tracking(organisation):
    """Attach the seat add-on item to a new subscription and run the first sync"""
    if not settings.STRIPE_PRICES.get('seat_addon'):
        logger.warning(f"PRICE_SEAT_ADDON not set, seat tracking disabled for org {organisation.id}")
        return None
    ensure_seat_addon_item(organisation)
    return sync_seats_for_org(organisation)
