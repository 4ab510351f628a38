import logging

import stripe
from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.db import transaction
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from worktrackr.billing.models import CheckoutSession
from worktrackr.billing.plans import plan_from_price_id
from worktrackr.billing.stripe_seats import configure_stripe
from worktrackr.organisations.models import Organisation
from worktrackr.organisations.utils import SlugTakenError, provision_organisation, provision_from_checkout

from .authentication import set_auth_cookie, clear_auth_cookie
from .models import User, AuditLog
from .org_context import ORG_HEADER, OrgContextError, parse_org_id, require_org_context
from .serializers import (
    UserSerializer, UserProfileSerializer, LoginSerializer, RegisterSerializer,
    SignupStartSerializer, ChangePasswordSerializer, MFASerializer, AuditLogSerializer,
    membership_payload
)
from .utils import create_audit_log, to_slug, parse_page_params

logger = logging.getLogger(__name__)


def health(request):
    """Plain-text liveness check"""
    return HttpResponse('ok', content_type='text/plain')


@api_view(['GET'])
@permission_classes([AllowAny])
def version(request):
    return Response({
        'name': 'WorkTrackr Cloud',
        'version': settings.APP_VERSION or '1.0.0',
        'env': settings.APP_ENV,
    })


# Auth views
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Email/password login; sets the auth cookie"""
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    email = serializer.validated_data['email']
    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.is_active or not user.check_password(serializer.validated_data['password']):
        logger.info(f"Failed login for {email}")
        return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

    membership = membership_payload(user)
    create_audit_log(
        request=request,
        action='login',
        model_name='User',
        object_id=user.id,
        user=user,
        organisation_id=membership['organization_id'] if membership else None,
    )
    response = Response({'user': UserSerializer(user).data, 'membership': membership})
    return set_auth_cookie(response, user)


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Create a user together with a new organisation they own"""
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    if User.objects.filter(email__iexact=data['email']).exists():
        return Response({'error': 'User already exists'}, status=status.HTTP_409_CONFLICT)

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=data['email'],
                password=data['password'],
                name=data['full_name'],
            )
            organisation, membership = provision_organisation(
                user,
                data.get('org_name') or data['org_slug'],
                slug=data['org_slug'],
            )
    except SlugTakenError:
        return Response({'error': 'Organization slug already taken'}, status=status.HTTP_409_CONFLICT)

    create_audit_log(
        request=request,
        action='signup',
        model_name='User',
        object_id=user.id,
        user=user,
        organisation_id=organisation.id,
        changes={'organisation': organisation.slug, 'role': membership.role},
    )
    response = Response(
        {'user': UserSerializer(user).data, 'membership': membership_payload(user, organisation.id)},
        status=status.HTTP_201_CREATED
    )
    return set_auth_cookie(response, user)


@api_view(['POST'])
@permission_classes([AllowAny])
def signup_start(request):
    """Record a pending signup and open a Stripe checkout for it"""
    serializer = SignupStartSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    if User.objects.filter(email__iexact=data['email']).exists():
        return Response({'error': 'User already exists'}, status=status.HTTP_409_CONFLICT)
    org_slug = to_slug(data['org_slug'])
    if Organisation.objects.filter(slug=org_slug).exists():
        return Response({'error': 'Organization slug already taken'}, status=status.HTTP_409_CONFLICT)

    price_id = data.get('price_id') or settings.STRIPE_PRICES.get('starter')
    if not price_id:
        return Response({'error': 'Price ID not configured'}, status=status.HTTP_400_BAD_REQUEST)

    checkout = CheckoutSession.objects.create(
        email=data['email'].lower(),
        full_name=data['full_name'],
        org_name=data.get('org_name') or '',
        org_slug=org_slug,
        password_hash=make_password(data['password']),
        price_id=price_id,
        plan=plan_from_price_id(price_id) or 'starter',
    )

    configure_stripe()
    session = stripe.checkout.Session.create(
        mode='subscription',
        line_items=[{'price': price_id, 'quantity': 1}],
        customer_email=checkout.email,
        allow_promotion_codes=True,
        subscription_data={'trial_period_days': settings.TRIAL_PERIOD_DAYS},
        metadata={'checkoutSessionId': str(checkout.id)},
        success_url=f"{settings.APP_BASE_URL}/welcome?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{settings.APP_BASE_URL}/signup?canceled=1",
    )
    checkout.stripe_session_id = session['id']
    checkout.save(update_fields=['stripe_session_id', 'updated_at'])
    logger.info(f"Started signup checkout {session['id']} for {checkout.email}")
    return Response({'url': session['url']})


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def signup_complete(request):
    """Provision the organisation and owner once the signup checkout completes"""
    session_id = request.query_params.get('session_id') or request.data.get('session_id') or ''
    if len(session_id) < 10:
        return Response({'error': 'Invalid session_id'}, status=status.HTTP_400_BAD_REQUEST)

    configure_stripe()
    session = stripe.checkout.Session.retrieve(session_id)
    if session.get('status') != 'complete':
        return Response({'error': 'Checkout not completed'}, status=status.HTTP_400_BAD_REQUEST)

    checkout = CheckoutSession.objects.filter(stripe_session_id=session_id).first()
    if checkout is None:
        return Response({'error': 'Session not found'}, status=status.HTTP_400_BAD_REQUEST)

    user, organisation, membership = provision_from_checkout(
        checkout,
        stripe_customer_id=session.get('customer'),
        stripe_subscription_id=session.get('subscription'),
    )
    create_audit_log(
        request=request,
        action='signup',
        model_name='Organisation',
        object_id=organisation.id,
        user=user,
        organisation_id=organisation.id,
        object_reference=organisation.slug,
    )
    response = Response({
        'ok': True,
        'user': UserSerializer(user).data,
        'membership': membership_payload(user, organisation.id),
    })
    return set_auth_cookie(response, user)


@api_view(['GET'])
@permission_classes([AllowAny])
def session(request):
    """Current user and membership, or nulls without a session"""
    if not request.user or not request.user.is_authenticated:
        return Response({'user': None, 'membership': None})
    try:
        org_id = parse_org_id(request.META.get(ORG_HEADER))
    except OrgContextError:
        org_id = None
    return Response({
        'user': UserSerializer(request.user).data,
        'membership': membership_payload(request.user, org_id),
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    response = Response({'ok': True})
    return clear_auth_cookie(response)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def refresh(request):
    """Re-issue the auth cookie for the current user"""
    response = Response({'ok': True, 'user': UserSerializer(request.user).data})
    return set_auth_cookie(response, request.user)


# User views
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    user = request.user
    if request.method == 'GET':
        return Response({'user': UserSerializer(user).data})

    serializer = UserProfileSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response({'user': UserSerializer(user).data})
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = ChangePasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = request.user
    if not user.check_password(serializer.validated_data['current_password']):
        return Response({'error': 'Current password is incorrect'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                     changes={'password': 'changed'})
    return Response({'message': 'Password updated successfully'})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def user_mfa(request):
    """Read or toggle email MFA"""
    user = request.user
    if request.method == 'POST':
        serializer = MFASerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        enabled = serializer.validated_data['enabled']
        user.mfa_enabled = enabled
        user.mfa_method = 'email' if enabled else None
        user.save(update_fields=['mfa_enabled', 'mfa_method', 'updated_at'])
    return Response({'mfa_enabled': user.mfa_enabled, 'mfa_method': user.mfa_method})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def audit_log_list(request):
    """Audit trail of the active organisation (owners and admins)"""
    if request.org_context.role not in ('owner', 'admin', 'partner_admin'):
        return Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)

    logs = AuditLog.objects.filter(organisation_id=request.organisation.id).select_related('user')
    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)

    page, limit = parse_page_params(request)
    total = logs.count()
    offset = (page - 1) * limit
    return Response({
        'results': AuditLogSerializer(logs[offset:offset + limit], many=True).data,
        'count': total,
        'page': page,
        'page_size': limit,
        'total_pages': (total + limit - 1) // limit,
    })
