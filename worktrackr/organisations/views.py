import logging

from django.db import transaction
from django.db.models import Count, Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.cache_utils import cache_per_org, ORG_STATS_CACHE_TTL, ORG_STATS_PREFIX
from worktrackr.core.models import User
from worktrackr.core.org_context import OrgContextError, get_org_context, get_request_org_context, require_org_context
from worktrackr.core.utils import create_audit_log
from worktrackr.tickets.models import Ticket

from .models import Organisation, Membership, OrgBranding, OrganisationPricing
from .serializers import (
    OrganisationSerializer, PartnerOrganisationSerializer, OrgBrandingSerializer,
    OrgUserSerializer, InviteUserSerializer, OrganisationPricingSerializer
)

logger = logging.getLogger(__name__)

BRANDING_ROLES = ('owner', 'admin', 'manager')
USER_ADMIN_ROLES = ('owner', 'admin', 'manager')


def _resolve_org_access(request, org_id, roles=None):
    """
    Load an organisation the user may act on, or None.

    Partner admins may act on any organisation of their partner; members
    only on their own organisation and, when roles is given, with one of them.
    """
    try:
        context = get_org_context(request.user, org_id)
    except OrgContextError:
        return None, None
    if context.organisation is None:
        return None, None
    if not context.is_partner_admin and roles and context.role not in roles:
        return None, None
    return context.organisation, context


@cache_per_org(ORG_STATS_PREFIX, ORG_STATS_CACHE_TTL)
def get_org_stats(organisation_id):
    """User count and ticket counts by status for one organisation"""
    tickets = Ticket.objects.filter(organisation_id=organisation_id).aggregate(
        total=Count('id'),
        open=Count('id', filter=Q(status='open')),
        pending=Count('id', filter=Q(status='pending')),
        closed=Count('id', filter=Q(status='closed')),
    )
    return {
        'users': Membership.objects.filter(organisation_id=organisation_id).count(),
        'tickets': tickets,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def partner_organisation_list(request):
    """Organisations of the partner administered by the current user"""
    context = get_request_org_context(request)
    if not context.is_partner_admin:
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)

    organisations = (
        Organisation.objects
        .filter(partner_id=context.partner_id)
        .select_related('branding')
        .annotate(
            user_count=Count('memberships', distinct=True),
            ticket_count=Count('tickets', distinct=True),
        )
        .order_by('name')
    )
    return Response({'organizations': PartnerOrganisationSerializer(organisations, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def current_organisation(request):
    """The active organisation with user and ticket stats"""
    organisation = (
        Organisation.objects
        .select_related('partner')
        .get(pk=request.organisation.pk)
    )
    return Response({
        'organization': OrganisationSerializer(organisation).data,
        'stats': get_org_stats(str(organisation.id)),
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def organisation_branding(request, org_id):
    roles = BRANDING_ROLES if request.method == 'PUT' else None
    organisation, context = _resolve_org_access(request, org_id, roles=roles)
    if organisation is None:
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        branding = OrgBranding.objects.filter(organisation=organisation).first()
        if branding is None:
            return Response({'error': 'Branding not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response({'branding': OrgBrandingSerializer(branding).data})

    branding, _ = OrgBranding.objects.get_or_create(organisation=organisation)
    serializer = OrgBrandingSerializer(branding, data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    create_audit_log(
        request=request,
        action='update',
        model_name='OrgBranding',
        object_id=branding.id,
        organisation_id=organisation.id,
        changes=serializer.validated_data,
    )
    return Response({'branding': serializer.data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def organisation_users(request, org_id):
    organisation, context = _resolve_org_access(request, org_id, roles=USER_ADMIN_ROLES)
    if organisation is None:
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)

    memberships = (
        Membership.objects
        .filter(organisation=organisation)
        .select_related('user')
        .order_by('user__name')
    )
    return Response({'users': OrgUserSerializer(memberships, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invite_user(request, org_id):
    """Add a user to an organisation, enforcing the plan's seat limit"""
    organisation, context = _resolve_org_access(request, org_id, roles=USER_ADMIN_ROLES)
    if organisation is None:
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = InviteUserSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    max_users = organisation.seat_limit
    current_users = Membership.objects.filter(organisation=organisation).count()
    if current_users >= max_users:
        plan = organisation.plan or 'starter'
        return Response({
            'error': (
                f"User limit reached. Your {plan} plan allows up to {max_users} "
                f"user{'s' if max_users > 1 else ''}. Please upgrade your plan to add more users."
            ),
            'currentUsers': current_users,
            'maxUsers': max_users,
            'plan': plan,
        }, status=status.HTTP_403_FORBIDDEN)

    email = data['email'].lower()
    user = User.objects.filter(email__iexact=email).first()
    if user and Membership.objects.filter(user=user, organisation=organisation).exists():
        return Response({'error': 'User is already a member'}, status=status.HTTP_400_BAD_REQUEST)

    send_invitation = data['sendInvitation']
    password = data.get('password') or ''
    if user is None and not send_invitation and len(password) < 8:
        return Response({'error': 'Password must be at least 8 characters long'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        if user is None:
            user = User(email=email, name=data.get('name') or '')
            if send_invitation:
                # Password is chosen through the invitation link
                user.set_unusable_password()
                user.status = 'invited'
            else:
                user.set_password(password)
            user.save()
        membership = Membership.objects.create(
            organisation=organisation,
            user=user,
            role=data['role'],
            status='invited' if user.status == 'invited' else 'active',
        )

    create_audit_log(
        request=request,
        action='invite',
        model_name='Membership',
        object_id=membership.id,
        organisation_id=organisation.id,
        object_reference=email,
        changes={'role': membership.role, 'send_invitation': send_invitation},
    )
    logger.info(f"Invited {email} to org {organisation.id} as {membership.role}")
    return Response({'message': 'User invited successfully'})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
@require_org_context
def organisation_pricing(request):
    """Labour rates used for quote drafting; created with defaults on first read"""
    pricing, created = OrganisationPricing.objects.get_or_create(organisation=request.organisation)
    if created:
        logger.info(f"Created default pricing for org {request.organisation.id}")

    if request.method == 'GET':
        return Response(OrganisationPricingSerializer(pricing).data)

    serializer = OrganisationPricingSerializer(pricing, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
