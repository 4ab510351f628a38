import logging
import uuid
from datetime import datetime, time

from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.cache_signals import suspend_cache_signals
from worktrackr.core.cache_utils import invalidate_org_stats
from worktrackr.core.org_context import require_org_context
from worktrackr.core.utils import create_audit_log, parse_page_params
from worktrackr.organisations.models import Membership

from .models import Ticket, Queue, TicketTemplate
from .serializers import (
    TicketSerializer, TicketWriteSerializer, BulkUpdateSerializer, CommentSerializer,
    AttachmentSerializer, QueueSerializer, TicketTemplateSerializer
)
from .templates import load_template, render_fields, validate_ticket_payload, default_template

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = [
    'title', 'description', 'status', 'priority', 'queue_id', 'assignee_id', 'contact_id', 'sector',
    'category', 'scheduled_date', 'scheduled_duration_mins', 'method_statement', 'risk_assessment',
    'custom_fields',
]


def get_default_queue(organisation):
    """The organisation's default queue, created when missing"""
    queue = Queue.objects.filter(organisation=organisation).order_by('-is_default', 'created_at').first()
    if queue is None:
        queue = Queue.objects.create(organisation=organisation, name='General', is_default=True)
    return queue


def get_org_template(organisation):
    stored = TicketTemplate.objects.filter(organisation=organisation).first()
    if stored is None:
        return default_template()
    return load_template(stored.as_dict())


def _ticket_queryset(organisation):
    return (
        Ticket.objects
        .filter(organisation=organisation)
        .select_related('created_by', 'assignee', 'queue', 'contact')
        .annotate(comment_count=Count('comments'))
    )


def _parse_boundary(value):
    parsed = parse_datetime(value)
    if parsed is None:
        day = parse_date(value)
        if day is None:
            return None
        parsed = datetime.combine(day, time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_list_create(request):
    """List, create, bulk update and bulk delete tickets"""
    if request.method == 'GET':
        tickets = _ticket_queryset(request.organisation)
        for param, field in (('status', 'status'), ('assignee', 'assignee_id'), ('priority', 'priority')):
            value = request.query_params.get(param)
            if value:
                tickets = tickets.filter(**{field: value})

        page, limit = parse_page_params(request)
        total = tickets.count()
        offset = (page - 1) * limit
        return Response({
            'tickets': TicketSerializer(tickets.order_by('-created_at')[offset:offset + limit], many=True).data,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': (total + limit - 1) // limit,
            },
        })

    if request.method == 'PUT':
        return _bulk_update(request)

    if request.method == 'DELETE':
        return _bulk_delete(request)

    serializer = TicketWriteSerializer(data=request.data, organisation=request.organisation)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    template_errors = validate_ticket_payload(get_org_template(request.organisation), request.data)
    if template_errors:
        return Response({'error': 'Invalid input', 'details': template_errors}, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    queue_id = data.pop('queue_id', None) or get_default_queue(request.organisation).id
    ticket = Ticket.objects.create(
        organisation=request.organisation,
        queue_id=queue_id,
        created_by=request.user,
        priority=data.pop('priority', 'medium'),
        status=data.pop('status', 'open'),
        **data
    )
    logger.info(f"Ticket {ticket.id} created in org {request.organisation.id}")
    create_audit_log(request=request, action='create', model_name='Ticket', object_id=ticket.id,
                     organisation_id=request.organisation.id, object_reference=ticket.title[:255])
    return Response({'ticket': TicketSerializer(_ticket_queryset(request.organisation).get(pk=ticket.pk)).data},
                    status=status.HTTP_201_CREATED)


def _bulk_ids(request):
    ids = request.data.get('ids')
    if not isinstance(ids, list) or not ids:
        return None
    try:
        return [uuid.UUID(str(i)) for i in ids]
    except ValueError:
        return None


def _bulk_update(request):
    ids = _bulk_ids(request)
    if ids is None:
        return Response({'error': 'ids array is required'}, status=status.HTTP_400_BAD_REQUEST)
    updates = request.data.get('updates')
    if not isinstance(updates, dict):
        return Response({'error': 'updates object is required'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = BulkUpdateSerializer(data=updates)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    if not serializer.validated_data:
        return Response({'error': 'No valid fields to update'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        updated = Ticket.objects.filter(organisation=request.organisation, id__in=ids).update(
            updated_at=timezone.now(), **serializer.validated_data
        )
    invalidate_org_stats(request.organisation.id)
    create_audit_log(request=request, action='bulk_update', model_name='Ticket', object_id=request.organisation.id,
                     organisation_id=request.organisation.id,
                     changes={'ids': [str(i) for i in ids], 'updates': serializer.validated_data})
    return Response({'updated': updated, 'success': True})


def _bulk_delete(request):
    ids = _bulk_ids(request)
    if ids is None:
        return Response({'error': 'ids array is required'}, status=status.HTTP_400_BAD_REQUEST)

    with suspend_cache_signals(), transaction.atomic():
        _, per_model = Ticket.objects.filter(organisation=request.organisation, id__in=ids).delete()
    deleted = per_model.get(Ticket._meta.label, 0)
    invalidate_org_stats(request.organisation.id)
    logger.info(f"Bulk deleted tickets in org {request.organisation.id}: {deleted} rows")
    create_audit_log(request=request, action='bulk_delete', model_name='Ticket', object_id=request.organisation.id,
                     organisation_id=request.organisation.id, changes={'ids': [str(i) for i in ids]})
    return Response({'deleted': deleted})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_detail(request, pk):
    if request.method == 'GET':
        ticket = get_object_or_404(_ticket_queryset(request.organisation), pk=pk)
        comments = ticket.comments.select_related('author')
        return Response({
            'ticket': TicketSerializer(ticket).data,
            'comments': CommentSerializer(comments, many=True).data,
            'attachments': AttachmentSerializer(ticket.attachments.all(), many=True).data,
        })

    ticket = Ticket.objects.filter(pk=pk, organisation=request.organisation).first()
    if ticket is None:
        return Response({'error': 'Ticket not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        ticket.delete()
        create_audit_log(request=request, action='delete', model_name='Ticket', object_id=pk,
                         organisation_id=request.organisation.id)
        return Response({'success': True})

    updates = {key: request.data[key] for key in UPDATABLE_FIELDS if key in request.data}
    if not updates:
        return Response({'error': 'No fields to update'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = TicketWriteSerializer(data=updates, partial=True, organisation=request.organisation)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    for field, value in serializer.validated_data.items():
        setattr(ticket, field, value)
    ticket.save()
    create_audit_log(request=request, action='update', model_name='Ticket', object_id=ticket.id,
                     organisation_id=request.organisation.id,
                     changes={'fields': sorted(serializer.validated_data.keys())})
    return Response({'ticket': TicketSerializer(_ticket_queryset(request.organisation).get(pk=ticket.pk)).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_comments(request, pk):
    ticket = get_object_or_404(Ticket, pk=pk, organisation=request.organisation)
    serializer = CommentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        comment = serializer.save(ticket=ticket, author=request.user)
        Ticket.objects.filter(pk=ticket.pk).update(updated_at=timezone.now())
    return Response({'comment': CommentSerializer(comment).data}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_queues(request):
    get_default_queue(request.organisation)
    queues = Queue.objects.filter(organisation=request.organisation)
    return Response({'queues': QueueSerializer(queues, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_users(request):
    """Members the ticket can be assigned to"""
    memberships = (
        Membership.objects
        .filter(organisation=request.organisation)
        .exclude(status='disabled')
        .select_related('user')
        .order_by('user__name')
    )
    users = [
        {'id': str(m.user.id), 'name': m.user.name, 'email': m.user.email, 'role': m.role}
        for m in memberships
    ]
    return Response({'users': users})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_calendar(request):
    """Scheduled tickets between start (inclusive) and end (exclusive)"""
    start_param = request.query_params.get('start')
    end_param = request.query_params.get('end')
    if not start_param or not end_param:
        return Response({'error': 'start and end required'}, status=status.HTTP_400_BAD_REQUEST)
    start = _parse_boundary(start_param)
    end = _parse_boundary(end_param)
    if start is None or end is None:
        return Response({'error': 'start and end must be ISO dates'}, status=status.HTTP_400_BAD_REQUEST)

    tickets = Ticket.objects.filter(
        organisation=request.organisation,
        scheduled_date__gte=start,
        scheduled_date__lt=end,
    ).order_by('scheduled_date')

    events = []
    for ticket in tickets:
        end_at = ticket.scheduled_end
        events.append({
            'id': str(ticket.id),
            'title': ticket.title,
            'start': ticket.scheduled_date.isoformat(),
            'end': (end_at or ticket.scheduled_date).isoformat(),
            'allDay': end_at is None,
        })
    return Response({'events': events})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_template(request):
    """Read or replace the organisation's ticket form template"""
    if request.method == 'GET':
        return Response({'template': get_org_template(request.organisation)})

    if request.org_context.role not in ('owner', 'admin', 'manager', 'partner_admin'):
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = TicketTemplateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    stored = serializer.apply(request.organisation)
    create_audit_log(request=request, action='update', model_name='TicketTemplate', object_id=stored.id,
                     organisation_id=request.organisation.id)
    return Response({'template': load_template(stored.as_dict())})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def ticket_template_fields(request):
    template = get_org_template(request.organisation)
    return Response({'version': template['version'], 'fields': render_fields(template)})
