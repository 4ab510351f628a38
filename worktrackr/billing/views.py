import logging
import math
import secrets
from datetime import timedelta

import stripe
from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.models import User
from worktrackr.core.org_context import OrgContextError, parse_org_id, require_org_context
from worktrackr.core.utils import create_audit_log
from worktrackr.organisations.models import Membership

from .plans import (
    PLAN_INCLUDED, SEAT_ADDON_PRICE, checkout_price_id, get_available_plans,
    get_plan_details, calculate_monthly_cost
)
from .serializers import CheckoutSerializer, AdminUpdatePlanSerializer, AdminSetTrialSerializer
from .stripe_seats import configure_stripe, count_active_users

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def checkout(request):
    """Open a Stripe checkout for a plan with a free trial"""
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    plan = (serializer.validated_data.get('plan') or '').lower()
    price_id = serializer.validated_data.get('priceId') or checkout_price_id(plan)
    if not price_id:
        return Response({'error': 'Missing or invalid plan/priceId'}, status=status.HTTP_400_BAD_REQUEST)

    org_id = str(request.organisation.id)
    configure_stripe()
    session = stripe.checkout.Session.create(
        mode='subscription',
        payment_method_collection='always',
        allow_promotion_codes=True,
        subscription_data={
            'trial_period_days': settings.TRIAL_PERIOD_DAYS,
            'metadata': {'orgId': org_id},
        },
        line_items=[{'price': price_id, 'quantity': 1}],
        customer=request.organisation.stripe_customer_id or None,
        success_url=f"{settings.APP_BASE_URL}/dashboard?checkout=success",
        cancel_url=f"{settings.APP_BASE_URL}/?checkout=cancel",
        metadata={'orgId': org_id},
    )
    logger.info(f"Created checkout session {session['id']} for org {org_id}")
    return Response({'url': session['url']})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def portal(request):
    """Stripe billing portal for the active organisation"""
    customer_id = request.organisation.stripe_customer_id
    if not customer_id:
        return Response({'error': 'No billing account found for this organization'},
                        status=status.HTTP_400_BAD_REQUEST)

    configure_stripe()
    session = stripe.billing_portal.Session.create(
        customer=customer_id,
        return_url=f"{settings.APP_BASE_URL}/dashboard",
    )
    return Response({'url': session['url']})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def trial_status(request):
    organisation = request.organisation
    if organisation.stripe_subscription_id:
        return Response({'status': 'active', 'hasSubscription': True, 'plan': organisation.plan})

    if not organisation.trial_end:
        return Response({'status': 'no_subscription', 'hasSubscription': False})

    now = timezone.now()
    if organisation.trial_end < now:
        return Response({
            'status': 'trial_expired',
            'hasSubscription': False,
            'trialEnd': organisation.trial_end,
            'message': 'Your free trial has ended. Add payment details to continue.',
        })

    days_remaining = math.ceil((organisation.trial_end - now).total_seconds() / 86400)
    total_days = settings.TRIAL_PERIOD_DAYS
    if organisation.trial_start:
        total_days = math.ceil((organisation.trial_end - organisation.trial_start).total_seconds() / 86400)
    return Response({
        'status': 'trialing',
        'hasSubscription': False,
        'trialEnd': organisation.trial_end,
        'daysRemaining': days_remaining,
        'totalTrialDays': total_days,
        'message': f"{days_remaining} day{'s' if days_remaining != 1 else ''} remaining in your free trial",
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def plans(request):
    """Plan catalogue; includes the current org's monthly cost when signed in"""
    data = {
        'plans': get_available_plans(),
        'seat_addon_price': SEAT_ADDON_PRICE,
        'currency': 'GBP',
    }
    try:
        organisation_id = parse_org_id(request.query_params.get('organisation_id'))
    except OrgContextError:
        return Response({'error': 'Invalid organisation_id'}, status=status.HTTP_400_BAD_REQUEST)
    if request.user and request.user.is_authenticated and organisation_id:
        membership = (
            Membership.objects
            .filter(user=request.user, organisation_id=organisation_id)
            .select_related('organisation')
            .first()
        )
        if membership:
            organisation = membership.organisation
            active_users = count_active_users(organisation)
            data['current'] = {
                'plan': organisation.plan,
                'active_users': active_users,
                'monthly_cost': calculate_monthly_cost(organisation.plan, active_users),
            }
    return Response(data)


def _has_admin_key(request):
    expected = settings.ADMIN_API_KEY
    if not expected:
        return False
    provided = request.META.get('HTTP_X_ADMIN_KEY') or request.data.get('adminKey')
    return secrets.compare_digest(str(provided or '').encode(), expected.encode())


def _find_user_organisation(email):
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        return None, None
    membership = (
        Membership.objects
        .filter(user=user)
        .select_related('organisation')
        .order_by('created_at')
        .first()
    )
    return user, membership.organisation if membership else None


@api_view(['POST'])
@permission_classes([AllowAny])
def admin_update_plan(request):
    """Switch an organisation's plan without Stripe (support tooling)"""
    if not _has_admin_key(request):
        logger.warning("Invalid admin key provided for update-plan")
        return Response({'error': 'Invalid admin key'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AdminUpdatePlanSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    email = serializer.validated_data['email'].lower()
    plan = serializer.validated_data['plan']

    user, organisation = _find_user_organisation(email)
    if user is None:
        return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)
    if organisation is None:
        return Response({'error': 'Organization not found for user'}, status=status.HTTP_404_NOT_FOUND)

    previous_plan = organisation.plan
    organisation.plan = plan
    organisation.included_seats = PLAN_INCLUDED[plan]
    organisation.save(update_fields=['plan', 'included_seats', 'updated_at'])

    create_audit_log(
        request=request,
        action='plan_change',
        model_name='Organisation',
        object_id=organisation.id,
        organisation_id=organisation.id,
        object_reference=email,
        changes={'plan': {'old': previous_plan, 'new': plan}},
    )
    logger.info(f"Admin updated {organisation.name} ({organisation.id}) to {plan}")
    return Response({
        'success': True,
        'message': f"Organization updated to {plan} plan",
        'organization': {
            'id': str(organisation.id),
            'name': organisation.name,
            'plan': plan,
            'includedSeats': organisation.included_seats,
            'details': get_plan_details(plan),
        },
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def admin_set_trial(request):
    """Start a trial of N days (default 14) for the organisation of a user"""
    is_master_admin = request.user.is_authenticated and request.user.is_master_admin
    if not is_master_admin and not _has_admin_key(request):
        return Response({'error': 'Invalid admin key'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AdminSetTrialSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    email = serializer.validated_data['email'].lower()
    days = serializer.validated_data['days']

    user, organisation = _find_user_organisation(email)
    if user is None or organisation is None:
        return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

    trial_start = timezone.now()
    trial_end = trial_start + timedelta(days=days)
    organisation.trial_start = trial_start
    organisation.trial_end = trial_end
    organisation.save(update_fields=['trial_start', 'trial_end', 'updated_at'])

    create_audit_log(
        request=request,
        action='trial_change',
        model_name='Organisation',
        object_id=organisation.id,
        organisation_id=organisation.id,
        object_reference=email,
        changes={'days': days, 'trial_end': trial_end.isoformat()},
    )
    logger.info(f"Admin set {days}-day trial for org {organisation.id}")
    return Response({
        'success': True,
        'message': f"Trial set for {email}",
        'organisationId': str(organisation.id),
        'trialStart': trial_start.isoformat(),
        'trialEnd': trial_end.isoformat(),
        'daysRemaining': days,
    })
