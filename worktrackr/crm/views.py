"""
CRM events against contacts, and the organisation's work calendar
"""
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.org_context import require_org_context
from worktrackr.core.utils import create_audit_log

from .filters import CRMEventFilter
from .models import CRMEvent, CalendarEvent
from .serializers import CRMEventSerializer, CalendarEventSerializer

logger = logging.getLogger(__name__)

CALENDAR_REQUIRED = ['title', 'eventDate', 'startTime', 'endTime']


def _crm_events(organisation):
    return CRMEvent.objects.filter(organisation=organisation).select_related('contact', 'assigned_user')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def crm_event_list_create(request):
    if request.method == 'GET':
        events = CRMEventFilter(request.query_params, queryset=_crm_events(request.organisation)).qs
        return Response({'events': CRMEventSerializer(events.order_by('start_at'), many=True).data})

    serializer = CRMEventSerializer(data=request.data, context={'organisation': request.organisation})
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    event = serializer.save(organisation=request.organisation, created_by=request.user)
    create_audit_log(request=request, action='create', model_name='CRMEvent', object_id=event.id,
                     organisation_id=request.organisation.id, object_reference=event.title)
    return Response(CRMEventSerializer(event, context={'organisation': request.organisation}).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def crm_event_detail(request, pk):
    event = get_object_or_404(_crm_events(request.organisation), pk=pk)

    if request.method == 'GET':
        return Response(CRMEventSerializer(event).data)

    if request.method == 'PUT':
        if not request.data:
            return Response({'error': 'No fields to update'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = CRMEventSerializer(event, data=request.data, partial=True,
                                        context={'organisation': request.organisation})
        if not serializer.is_valid():
            return Response({'error': 'Validation error', 'details': serializer.errors},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data)

    event.delete()
    create_audit_log(request=request, action='delete', model_name='CRMEvent', object_id=pk,
                     organisation_id=request.organisation.id, object_reference=event.title)
    return Response({'message': 'CRM event deleted successfully'})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def calendar_event_list_create(request):
    if request.method == 'GET':
        events = CalendarEvent.objects.filter(organisation=request.organisation).select_related('user')
        return Response({'events': CalendarEventSerializer(events, many=True).data})

    if any(not request.data.get(key) for key in CALENDAR_REQUIRED):
        return Response({'error': 'Missing required fields: title, eventDate, startTime, endTime'},
                        status=status.HTTP_400_BAD_REQUEST)
    serializer = CalendarEventSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    event = serializer.save(organisation=request.organisation, user=request.user)
    logger.info(f"Calendar event {event.id} created for org {request.organisation.id}")
    return Response({'event': CalendarEventSerializer(event).data}, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def calendar_event_detail(request, pk):
    event = get_object_or_404(CalendarEvent, pk=pk, organisation=request.organisation)

    if request.method == 'DELETE':
        event.delete()
        return Response({'success': True, 'deletedId': str(pk)})

    # Omitted or null fields keep their current value
    data = {key: value for key, value in request.data.items() if value is not None}
    serializer = CalendarEventSerializer(event, data=data, partial=True)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    return Response({'event': serializer.data})
