"""
Inbound webhooks: Stripe subscription events and Mailgun inbound email
"""
import logging
import re
from datetime import datetime, timezone as dt_timezone
from email.utils import parseaddr

import stripe
from django.conf import settings
from django.db import transaction
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from worktrackr.contacts.models import Contact
from worktrackr.core.org_context import OrgContextError, parse_org_id
from worktrackr.organisations.models import Organisation, OrganisationAddon
from worktrackr.organisations.utils import provision_from_checkout
from worktrackr.tickets.models import Queue, Ticket

from .models import CheckoutSession, StripeEvent
from .plans import CHECKOUT_PLANS
from .stripe_seats import initialize_seat_tracking

logger = logging.getLogger(__name__)


def _timestamp(value):
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _plan_price_ids():
    """Price id -> plan for every base and checkout price"""
    prices = settings.STRIPE_PRICES
    mapping = {}
    for plan in CHECKOUT_PLANS:
        if prices.get(plan):
            mapping[prices[plan]] = plan
    for plan in ('individual', 'starter', 'pro', 'enterprise'):
        price_id = prices.get(f'{plan}_base')
        if price_id:
            mapping[price_id] = plan
    return mapping


def addon_name_for_price(price_id):
    prices = settings.STRIPE_PRICES
    names = {
        prices.get('storage_100'): 'Storage Boost 100GB',
        prices.get('sms_250'): 'SMS Pack 250',
        prices.get('sms_1000'): 'SMS Pack 1000',
    }
    names.pop('', None)
    names.pop(None, None)
    return names.get(price_id, 'Unknown Add-on')


def _metadata_id(obj, key='orgId'):
    """A UUID from Stripe metadata; None when absent or malformed"""
    value = (obj.get('metadata') or {}).get(key)
    if not value or value == 'unknown':
        return None
    try:
        return parse_org_id(value)
    except OrgContextError:
        logger.warning(f"Ignoring malformed {key} {value!r} on {obj.get('id')}")
        return None


def handle_checkout_completed(session):
    customer_id = session.get('customer')
    subscription_id = session.get('subscription')

    org_id = _metadata_id(session)
    if org_id:
        updated = Organisation.objects.filter(pk=org_id).update(
            stripe_customer_id=customer_id,
            stripe_subscription_id=subscription_id,
        )
        if updated:
            logger.info(f"Checkout completed for org {org_id}")

    checkout = CheckoutSession.objects.filter(stripe_session_id=session.get('id')).first()
    checkout_id = _metadata_id(session, 'checkoutSessionId')
    if checkout is None and checkout_id:
        checkout = CheckoutSession.objects.filter(pk=checkout_id).first()
    if checkout is not None:
        user, organisation, membership = provision_from_checkout(
            checkout,
            stripe_customer_id=customer_id,
            stripe_subscription_id=subscription_id,
        )
        logger.info(f"Provisioned org {organisation.slug} for {user.email} from checkout {session.get('id')}")


def _find_subscription_org(subscription):
    org_id = _metadata_id(subscription)
    if org_id:
        organisation = Organisation.objects.filter(pk=org_id).first()
        if organisation:
            return organisation
    customer_id = subscription.get('customer')
    if customer_id:
        return Organisation.objects.filter(stripe_customer_id=customer_id).first()
    return None


def handle_subscription_updated(subscription, created=False):
    organisation = _find_subscription_org(subscription)
    if organisation is None:
        logger.warning(f"No organisation for subscription {subscription.get('id')}")
        return

    plan_prices = _plan_price_ids()
    seat_price_id = settings.STRIPE_PRICES.get('seat_addon')
    items = (subscription.get('items') or {}).get('data') or []

    main_item = None
    seat_item = None
    addon_items = []
    for item in items:
        price_id = item['price']['id']
        if price_id in plan_prices and main_item is None:
            main_item = item
        elif seat_price_id and price_id == seat_price_id:
            seat_item = item
        else:
            addon_items.append(item)

    organisation.stripe_subscription_id = subscription.get('id')
    if subscription.get('customer'):
        organisation.stripe_customer_id = subscription.get('customer')
    organisation.plan_price_id = main_item['price']['id'] if main_item else None
    if main_item:
        plan = plan_prices.get(main_item['price']['id'])
        if plan:
            organisation.plan = plan
    if seat_item:
        organisation.stripe_seat_item_id = seat_item['id']
    period_end = subscription.get('current_period_end') or (main_item or {}).get('current_period_end')
    organisation.current_period_end = _timestamp(period_end)
    organisation.trial_start = _timestamp(subscription.get('trial_start'))
    organisation.trial_end = _timestamp(subscription.get('trial_end'))
    organisation.save()

    OrganisationAddon.objects.filter(organisation=organisation).delete()
    OrganisationAddon.objects.bulk_create([
        OrganisationAddon(
            organisation=organisation,
            stripe_price_id=item['price']['id'],
            addon_name=addon_name_for_price(item['price']['id']),
            quantity=item.get('quantity') or 1,
        )
        for item in addon_items
    ])
    logger.info(f"Subscription {subscription.get('id')} updated for org {organisation.id} ({len(addon_items)} add-ons)")

    if created and not organisation.stripe_seat_item_id:
        try:
            initialize_seat_tracking(organisation)
        except (stripe.StripeError, ValueError) as e:
            logger.error(f"Could not initialise seat tracking for org {organisation.id}: {str(e)}")


def handle_subscription_deleted(subscription):
    organisation = Organisation.objects.filter(stripe_subscription_id=subscription.get('id')).first()
    if organisation is None:
        return
    organisation.stripe_subscription_id = None
    organisation.stripe_seat_item_id = None
    organisation.plan_price_id = None
    organisation.current_period_end = None
    organisation.trial_start = None
    organisation.trial_end = None
    organisation.save()
    OrganisationAddon.objects.filter(organisation=organisation).delete()
    logger.info(f"Subscription cancelled for org {organisation.id}")


def dispatch_event(event):
    event_type = event['type']
    obj = event['data']['object']
    if event_type == 'checkout.session.completed':
        handle_checkout_completed(obj)
    elif event_type == 'customer.subscription.created':
        handle_subscription_updated(obj, created=True)
    elif event_type == 'customer.subscription.updated':
        handle_subscription_updated(obj)
    elif event_type == 'customer.subscription.deleted':
        handle_subscription_deleted(obj)
    elif event_type == 'invoice.payment_succeeded':
        logger.info(f"Payment succeeded for subscription {obj.get('subscription')}")
    elif event_type == 'invoice.payment_failed':
        logger.warning(f"Payment failed for subscription {obj.get('subscription')}")
    else:
        logger.info(f"Unhandled event type: {event_type}")


@csrf_exempt
@require_POST
def stripe_webhook(request):
    payload = request.body
    signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')
    try:
        event = stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook signature verification failed: {str(e)}")
        return HttpResponse(f"Webhook Error: {str(e)}", status=400, content_type='text/plain')

    try:
        with transaction.atomic():
            _, created = StripeEvent.objects.get_or_create(
                event_id=event['id'],
                defaults={'event_type': event['type']},
            )
            if not created:
                logger.info(f"Skipping already processed event {event['id']}")
                return JsonResponse({'received': True, 'duplicate': True})
            dispatch_event(event)
    except Exception as e:
        logger.exception(f"Webhook processing error for {event['type']}: {str(e)}")
        return JsonResponse({'error': 'Webhook processing failed'}, status=500)

    return JsonResponse({'received': True})


def _inbound_recipient_pattern():
    return re.compile(rf"^(.+)@{re.escape(settings.INBOUND_EMAIL_DOMAIN)}$", re.IGNORECASE)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def mailgun_inbound(request):
    """Create a ticket from an email sent to <org-slug>@<inbound domain>"""
    recipient = (request.data.get('recipient') or '').strip()
    match = _inbound_recipient_pattern().match(recipient)
    if not match:
        logger.warning(f"Invalid recipient format: {recipient}")
        return Response({'error': 'Invalid recipient'}, status=status.HTTP_400_BAD_REQUEST)

    org_slug = re.split(r'[+.]', match.group(1))[0].lower()
    organisation = Organisation.objects.filter(slug=org_slug).first()
    if organisation is None:
        organisation = Organisation.objects.order_by('created_at').first()
    if organisation is None:
        return Response({'error': 'No organizations found'}, status=status.HTTP_404_NOT_FOUND)

    sender_email = parseaddr(request.data.get('sender') or request.data.get('from') or '')[1]
    contact = None
    if sender_email:
        contact = Contact.objects.filter(organisation=organisation, email__iexact=sender_email).first()

    ticket = Ticket.objects.create(
        organisation=organisation,
        queue=Queue.objects.filter(organisation=organisation, is_default=True).first(),
        title=(request.data.get('subject') or 'Email Ticket')[:500],
        description=request.data.get('body-plain') or '',
        status='open',
        priority='medium',
        contact=contact,
    )
    logger.info(f"Created ticket {ticket.id} from email to {recipient}")
    return Response({'ticketId': str(ticket.id)})
