"""
Quote templates: per-organisation starting points for new quotes.

Deleting a template only deactivates it; activate brings it back.
"""
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.org_context import require_org_context
from worktrackr.core.utils import create_audit_log

from .models import QuoteTemplate
from .serializers import QuoteTemplateSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_template_list_create(request):
    if request.method == 'GET':
        templates = (
            QuoteTemplate.objects
            .filter(organisation=request.organisation)
            .select_related('created_by')
            .order_by('name')
        )
        sector = request.query_params.get('sector')
        if sector:
            templates = templates.filter(sector=sector)
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            templates = templates.filter(is_active=is_active == 'true')
        data = QuoteTemplateSerializer(templates, many=True).data
        return Response({'templates': data, 'total': len(data)})

    serializer = QuoteTemplateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid request data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    template = serializer.save(organisation=request.organisation, created_by=request.user, is_active=True)
    create_audit_log(request=request, action='create', model_name='QuoteTemplate', object_id=template.id,
                     organisation_id=request.organisation.id, object_reference=template.name)
    logger.info(f"Created quote template {template.id} for org {request.organisation.id}")
    return Response({'success': True, 'template': QuoteTemplateSerializer(template).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_template_sectors(request):
    sectors = (
        QuoteTemplate.objects
        .filter(organisation=request.organisation, sector__isnull=False)
        .exclude(sector='')
        .values_list('sector', flat=True)
        .distinct()
        .order_by('sector')
    )
    return Response({'sectors': list(sectors)})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_template_detail(request, pk):
    template = get_object_or_404(QuoteTemplate, pk=pk, organisation=request.organisation)

    if request.method == 'GET':
        return Response(QuoteTemplateSerializer(template).data)

    if request.method == 'PUT':
        serializer = QuoteTemplateSerializer(template, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response({'error': 'Invalid request data', 'details': serializer.errors},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_audit_log(request=request, action='update', model_name='QuoteTemplate', object_id=template.id,
                         organisation_id=request.organisation.id, object_reference=template.name,
                         changes={'fields': sorted(serializer.validated_data)})
        return Response({'success': True, 'template': serializer.data})

    template.is_active = False
    template.save(update_fields=['is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='QuoteTemplate', object_id=template.id,
                     organisation_id=request.organisation.id, object_reference=template.name)
    logger.info(f"Deactivated quote template {template.id}")
    return Response({'success': True, 'message': 'Template deleted successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_template_activate(request, pk):
    template = get_object_or_404(QuoteTemplate, pk=pk, organisation=request.organisation)
    template.is_active = True
    template.save(update_fields=['is_active', 'updated_at'])
    return Response({'success': True, 'template': QuoteTemplateSerializer(template).data})
