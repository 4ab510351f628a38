"""
Master admin user management.

Suspending a user disables the account (login and seat count) without
touching their data; soft delete does the same and records why in the
admin notes. Hard delete removes the user, the tickets they created and
any organisation left without members.
"""
import logging
import uuid

import stripe
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.response import Response

from worktrackr.billing.stripe_seats import configure_stripe
from worktrackr.organisations.models import Membership, Organisation
from worktrackr.tickets.models import Ticket

from .models import User, AuditLog
from .serializers import AdminUserUpdateSerializer, AdminBulkSerializer, AuditLogSerializer
from .utils import create_audit_log

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


class IsMasterAdmin(BasePermission):
    message = 'Master admin access required'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_master_admin)


def _first_membership(user):
    return (
        Membership.objects
        .filter(user=user)
        .select_related('organisation')
        .order_by('created_at')
        .first()
    )


def _organisation_payload(organisation, include_customer=False):
    data = {
        'id': str(organisation.id),
        'name': organisation.name,
        'plan': organisation.plan,
        'stripe_subscription_id': organisation.stripe_subscription_id,
        'current_period_end': organisation.current_period_end,
        'included_seats': organisation.seat_limit,
        'active_user_count': organisation.active_user_count,
        'seat_overage_cached': organisation.seat_overage_cached,
    }
    if include_customer:
        data['stripe_customer_id'] = organisation.stripe_customer_id
    return data


def _user_item(user, membership):
    return {
        'id': str(user.id),
        'email': user.email,
        'name': user.name,
        'status': 'suspended' if user.status == 'disabled' else 'active',
        'is_suspended': user.status == 'disabled',
        'last_login': user.last_login,
        'admin_notes': user.admin_notes,
        'created_at': user.created_at,
        'membership': {'role': membership.role} if membership else None,
        'organisation': _organisation_payload(membership.organisation) if membership else None,
    }


def _set_suspended(user, suspended):
    user.status = 'disabled' if suspended else 'active'
    user.save(update_fields=['status', 'is_active', 'updated_at'])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_list(request):
    """Search users by email or id, filtered by role, plan and suspension"""
    params = request.query_params
    try:
        page = max(int(params.get('page', 1)), 1)
        page_size = min(max(int(params.get('pageSize', 20)), 1), MAX_PAGE_SIZE)
    except ValueError:
        return Response({'error': 'Invalid pagination parameters'}, status=status.HTTP_400_BAD_REQUEST)

    users = User.objects.all()
    search = (params.get('query') or '').strip()
    if search:
        condition = Q(email__icontains=search)
        try:
            condition |= Q(id=uuid.UUID(search))
        except ValueError:
            pass
        users = users.filter(condition)
    if params.get('role'):
        users = users.filter(memberships__role=params['role'])
    if params.get('plan'):
        users = users.filter(memberships__organisation__plan=params['plan'])
    if params.get('status') == 'suspended':
        users = users.filter(status='disabled')
    elif params.get('status') == 'active':
        users = users.exclude(status='disabled')
    users = users.distinct().order_by('-created_at')

    total = users.count()
    offset = (page - 1) * page_size
    items = [_user_item(user, _first_membership(user)) for user in users[offset:offset + page_size]]
    return Response({'items': items, 'total': total, 'page': page, 'pageSize': page_size})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_detail(request, pk):
    user = get_object_or_404(User, pk=pk)

    if request.method == 'PATCH':
        serializer = AdminUserUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        if not data:
            return Response({'error': 'No fields to update'}, status=status.HTTP_400_BAD_REQUEST)
        if 'email' in data and User.objects.filter(email__iexact=data['email']).exclude(pk=user.pk).exists():
            return Response({'error': 'Email already in use'}, status=status.HTTP_409_CONFLICT)

        for field in ('name', 'admin_notes'):
            if field in data:
                setattr(user, field, data[field])
        if 'email' in data:
            user.email = data['email'].lower()
        if 'password' in data:
            user.set_password(data['password'])
        user.save()
        create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                         object_reference=user.email,
                         changes={'fields': sorted(field for field in data if field != 'password')})
        return Response({'ok': True, 'message': 'User updated successfully'})

    membership = _first_membership(user)
    audit_logs = AuditLog.objects.filter(object_id=str(user.id)).select_related('user')[:20]
    return Response({
        'user': {
            'id': str(user.id),
            'email': user.email,
            'name': user.name,
            'is_suspended': user.status == 'disabled',
            'last_login': user.last_login,
            'admin_notes': user.admin_notes,
            'created_at': user.created_at,
            'updated_at': user.updated_at,
        },
        'membership': {
            'role': membership.role,
            'organisation_id': str(membership.organisation_id),
        } if membership else None,
        'organisation': _organisation_payload(membership.organisation, include_customer=True) if membership else None,
        'audit_logs': AuditLogSerializer(audit_logs, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_suspend(request, pk):
    user = get_object_or_404(User, pk=pk)
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot suspend your own account'}, status=status.HTTP_400_BAD_REQUEST)
    _set_suspended(user, True)
    create_audit_log(request=request, action='user_suspend', model_name='User', object_id=user.id,
                     object_reference=user.email)
    logger.info(f"Master admin {request.user.email} suspended {user.email}")
    return Response({'ok': True, 'message': 'User suspended successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_unsuspend(request, pk):
    user = get_object_or_404(User, pk=pk)
    _set_suspended(user, False)
    create_audit_log(request=request, action='user_unsuspend', model_name='User', object_id=user.id,
                     object_reference=user.email)
    return Response({'ok': True, 'message': 'User unsuspended successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_notes(request, pk):
    user = get_object_or_404(User, pk=pk)
    user.admin_notes = request.data.get('notes') or None
    user.save(update_fields=['admin_notes', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                     object_reference=user.email, changes={'admin_notes': user.admin_notes})
    return Response({'ok': True, 'message': 'Notes updated successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_bulk(request):
    serializer = AdminBulkSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid user IDs or action', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    ids = serializer.validated_data['ids']
    action = serializer.validated_data['action']

    # Saved one by one so seat counts follow the status change
    users = User.objects.filter(pk__in=ids).exclude(pk=request.user.pk)
    with transaction.atomic():
        for user in users:
            _set_suspended(user, action == 'suspend')
    create_audit_log(request=request, action='bulk_update', model_name='User', object_id='bulk',
                     changes={'action': action, 'ids': [str(pk) for pk in ids]})
    return Response({'ok': True, 'message': f"Bulk {action} completed for {len(ids)} user(s)"})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_soft_delete(request, pk):
    """Disable login and keep the user's data"""
    user = get_object_or_404(User, pk=pk)
    reason = request.data.get('reason') or 'No reason provided'
    entry = f"[SOFT DELETED] {timezone.now().isoformat()} - Reason: {reason}"
    user.admin_notes = f"{user.admin_notes}\n\n{entry}" if user.admin_notes else entry
    user.status = 'disabled'
    user.save(update_fields=['admin_notes', 'status', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='user_soft_delete', model_name='User', object_id=user.id,
                     object_reference=user.email, changes={'reason': reason})
    return Response({'success': True, 'message': 'User login disabled successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_hard_delete(request, pk):
    """Permanently delete a user; requires {"confirmation": "DELETE"}"""
    if request.data.get('confirmation') != 'DELETE':
        return Response({'error': 'Confirmation required'}, status=status.HTTP_400_BAD_REQUEST)
    user = get_object_or_404(User, pk=pk)
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)

    email = user.email
    with transaction.atomic():
        organisation_ids = list(Membership.objects.filter(user=user).values_list('organisation_id', flat=True))
        Ticket.objects.filter(created_by=user).delete()
        AuditLog.objects.filter(user=user).delete()
        user.delete()
        emptied = Organisation.objects.filter(pk__in=organisation_ids, memberships__isnull=True)
        removed_organisations = [str(pk) for pk in emptied.values_list('pk', flat=True)]
        Organisation.objects.filter(pk__in=removed_organisations).delete()

    create_audit_log(request=request, action='user_hard_delete', model_name='User', object_id=pk,
                     object_reference=email, changes={'organisations_deleted': removed_organisations})
    logger.warning(f"Master admin {request.user.email} permanently deleted {email}")
    return Response({'success': True, 'message': 'User and all associated data permanently deleted'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMasterAdmin])
def admin_user_portal(request, pk):
    """Stripe billing portal for the user's organisation"""
    user = get_object_or_404(User, pk=pk)
    membership = (
        Membership.objects
        .filter(user=user, organisation__stripe_customer_id__isnull=False)
        .exclude(organisation__stripe_customer_id='')
        .select_related('organisation')
        .first()
    )
    if membership is None:
        return Response({'error': 'No Stripe customer found for this user'}, status=status.HTTP_404_NOT_FOUND)

    configure_stripe()
    session = stripe.billing_portal.Session.create(
        customer=membership.organisation.stripe_customer_id,
        return_url=f"{settings.APP_BASE_URL}/app/dashboard",
    )
    return Response({'url': session['url']})
