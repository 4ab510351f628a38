import logging
from decimal import Decimal, InvalidOperation

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.cache_utils import cache_per_org, CONTACT_STATS_CACHE_TTL, CONTACT_STATS_PREFIX
from worktrackr.core.org_context import require_org_context
from worktrackr.core.utils import create_audit_log

from .models import Contact
from .serializers import ContactSerializer

logger = logging.getLogger(__name__)


def _number(value):
    try:
        return Decimal(str(value or 0))
    except (InvalidOperation, ValueError):
        return Decimal('0')


@cache_per_org(CONTACT_STATS_PREFIX, CONTACT_STATS_CACHE_TTL)
def get_contact_statistics(organisation_id):
    """Counts by CRM status and type plus summed CRM figures"""
    stats = {
        'total': 0,
        'active': 0,
        'prospects': 0,
        'at_risk': 0,
        'companies': 0,
        'individuals': 0,
        'total_profit': Decimal('0'),
        'total_renewals': Decimal('0'),
        'total_opportunities': Decimal('0'),
    }
    status_keys = {'active': 'active', 'prospect': 'prospects', 'at_risk': 'at_risk'}
    type_keys = {'company': 'companies', 'individual': 'individuals'}

    for contact_type, crm in Contact.objects.filter(organisation_id=organisation_id).values_list('type', 'crm'):
        crm = crm or {}
        stats['total'] += 1
        if crm.get('status') in status_keys:
            stats[status_keys[crm['status']]] += 1
        if contact_type in type_keys:
            stats[type_keys[contact_type]] += 1
        stats['total_profit'] += _number(crm.get('totalProfit'))
        stats['total_renewals'] += _number(crm.get('renewalsCount'))
        stats['total_opportunities'] += _number(crm.get('openOppsCount'))
    return stats


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def contact_list_create(request):
    """List contacts of the active organisation or create one"""
    if request.method == 'GET':
        contacts = Contact.objects.filter(organisation=request.organisation)
        search = request.query_params.get('search')
        if search:
            contacts = contacts.filter(
                Q(name__icontains=search) | Q(display_name__icontains=search) | Q(email__icontains=search)
            )
        contact_type = request.query_params.get('type')
        if contact_type:
            contacts = contacts.filter(type=contact_type)
        return Response(ContactSerializer(contacts, many=True).data)

    serializer = ContactSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    contact = serializer.save(organisation=request.organisation, created_by=request.user)
    create_audit_log(request=request, action='create', model_name='Contact', object_id=contact.id,
                     organisation_id=request.organisation.id, object_reference=contact.name)
    return Response(ContactSerializer(contact).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def contact_detail(request, pk):
    contact = get_object_or_404(Contact, pk=pk, organisation=request.organisation)

    if request.method == 'GET':
        return Response(ContactSerializer(contact).data)

    if request.method == 'PUT':
        serializer = ContactSerializer(contact, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response({'error': 'Invalid input', 'details': serializer.errors},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Contact', object_id=contact.id,
                         organisation_id=request.organisation.id, object_reference=contact.name,
                         changes={'fields': sorted(serializer.validated_data.keys())})
        return Response(serializer.data)

    contact_id = str(contact.id)
    contact.delete()
    create_audit_log(request=request, action='delete', model_name='Contact', object_id=contact_id,
                     organisation_id=request.organisation.id)
    return Response({'message': 'Contact deleted successfully', 'id': contact_id})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def contact_statistics(request):
    return Response(get_contact_statistics(str(request.organisation.id)))
