"""Organisation provisioning helpers"""
import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from worktrackr.core.models import User
from worktrackr.core.utils import to_slug

from .models import Membership, Organisation, OrgBranding
from worktrackr.tickets.models import Queue

logger = logging.getLogger(__name__)


class SlugTakenError(Exception):
    """The requested organisation slug belongs to another organisation"""


def unique_slug(value):
    """Slugify a name, suffixing -2, -3... until it is free"""
    base = to_slug(value) or 'org'
    slug = base
    counter = 2
    while Organisation.objects.filter(slug=slug).exists():
        slug = f"{base[:55]}-{counter}"
        counter += 1
    return slug


@transaction.atomic
def provision_organisation(user, name, slug=None, plan='starter', trial_days=None,
                           stripe_customer_id=None, stripe_subscription_id=None, allow_rename=False):
    """
    Create a new organisation owned by ``user``.

    The organisation gets default branding and a default queue. A taken
    slug raises SlugTakenError, or is suffixed to a free one when
    ``allow_rename`` is set. Returns (organisation, membership).
    """
    slug = to_slug(slug or name)
    if not slug:
        slug = unique_slug(name)
    elif Organisation.objects.filter(slug=slug).exists():
        if not allow_rename:
            raise SlugTakenError(slug)
        slug = unique_slug(slug)

    now = timezone.now()
    organisation = Organisation.objects.create(
        name=name or slug,
        slug=slug,
        plan=plan,
        stripe_customer_id=stripe_customer_id,
        stripe_subscription_id=stripe_subscription_id,
        trial_start=now if trial_days else None,
        trial_end=now + timedelta(days=trial_days) if trial_days else None,
    )
    OrgBranding.objects.create(organisation=organisation)
    Queue.objects.create(organisation=organisation, name='General', is_default=True)
    membership = Membership.objects.create(organisation=organisation, user=user, role='owner', status='active')
    logger.info(f"Provisioned organisation {organisation.slug} ({organisation.id}) on plan {plan} for {user.email}")
    return organisation, membership


@transaction.atomic
def provision_from_checkout(checkout_session, stripe_customer_id=None, stripe_subscription_id=None):
    """
    Turn a completed signup checkout into a user, organisation and owner membership.

    A checkout provisions at most one organisation; later calls return it.
    If the slug was taken after signup started, a suffixed slug is used.
    Returns (user, organisation, membership).
    """
    user = User.objects.filter(email__iexact=checkout_session.email).first()
    if user is None:
        user = User(
            email=checkout_session.email.lower(),
            name=checkout_session.full_name,
            status='active',
        )
        # Stored already hashed at signup start
        user.password = checkout_session.password_hash
        user.save()
        logger.info(f"Created user {user.email} from checkout {checkout_session.stripe_session_id}")

    organisation = checkout_session.organisation
    if organisation is not None:
        membership = Membership.objects.filter(organisation=organisation, user=user).first()
        return user, organisation, membership

    organisation, membership = provision_organisation(
        user,
        checkout_session.org_name or checkout_session.org_slug,
        slug=checkout_session.org_slug,
        plan=checkout_session.plan or 'starter',
        stripe_customer_id=stripe_customer_id,
        stripe_subscription_id=stripe_subscription_id,
        allow_rename=True,
    )
    checkout_session.organisation = organisation
    checkout_session.status = 'completed'
    checkout_session.save(update_fields=['organisation', 'status', 'updated_at'])
    return user, organisation, membership
