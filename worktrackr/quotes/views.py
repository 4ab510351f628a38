import logging
import secrets
import uuid
from datetime import datetime, time, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.org_context import require_org_context
from worktrackr.core.utils import create_audit_log, get_client_ip, parse_page_params
from worktrackr.organisations.models import Membership
from worktrackr.tickets.models import Ticket, Comment

from .ai import context_preview, generate_quote_draft, QuoteDraftError, MAX_UPLOAD_FILES, MAX_UPLOAD_BYTES
from .calculations import apply_totals, calculate_line_total, DEFAULT_TAX_RATE
from .models import Quote, QuoteLine, QuoteAcceptance, Job, Invoice, InvoiceLine
from .numbering import next_quote_number, next_job_number, next_invoice_number, is_quote_number
from .pdf import render_quote_pdf
from .serializers import (
    QuoteSerializer, QuoteDetailSerializer, QuoteCreateSerializer, QuoteUpdateSerializer,
    LineItemsUpdateSerializer, AcceptQuoteSerializer, ConvertToJobSerializer, SendQuoteSerializer,
    ScheduleWorkSerializer, CreateInvoiceSerializer, AIGenerateSerializer, JobSerializer, InvoiceSerializer,
    QuoteAcceptanceSerializer, AIContextPreviewSerializer
)

logger = logging.getLogger(__name__)

INVOICE_DUE_DAYS = 30


def _quote_queryset(organisation):
    return (
        Quote.objects
        .filter(organisation=organisation)
        .select_related('contact', 'created_by', 'organisation')
    )


def get_quote(organisation, ref):
    """Look a quote up by id or by quote number (QT-YYYY-NNNN)"""
    queryset = _quote_queryset(organisation)
    if is_quote_number(ref):
        return get_object_or_404(queryset, quote_number=ref)
    try:
        quote_id = uuid.UUID(str(ref))
    except ValueError:
        raise Http404('Quote not found')
    return get_object_or_404(queryset, pk=quote_id)


def _detail(quote):
    return QuoteDetailSerializer(_quote_queryset(quote.organisation).prefetch_related('lines__product').get(pk=quote.pk)).data


def _build_line(quote, item, index):
    tax_rate = item.get('tax_rate')
    line = QuoteLine(
        quote=quote,
        product_id=item.get('product_id'),
        item_type=item.get('item_type'),
        description=item['description'],
        quantity=item['quantity'],
        unit_price=item['unit_price'],
        discount_percent=item.get('discount_percent') or 0,
        tax_rate=DEFAULT_TAX_RATE if tax_rate is None else tax_rate,
        sort_order=item['sort_order'] if item.get('sort_order') is not None else index,
    )
    line.line_total = calculate_line_total(line)
    return line


def _set_ticket_status(quote, ticket_status):
    if quote.ticket_id:
        Ticket.objects.filter(pk=quote.ticket_id).update(status=ticket_status, updated_at=timezone.now())


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_list_create(request):
    if request.method == 'GET':
        quotes = _quote_queryset(request.organisation).annotate(line_item_count=Count('lines'))
        quote_status = request.query_params.get('status')
        if quote_status:
            quotes = quotes.filter(status=quote_status)
        customer_id = request.query_params.get('customer_id')
        if customer_id:
            try:
                quotes = quotes.filter(contact_id=uuid.UUID(customer_id))
            except ValueError:
                return Response({'error': 'Invalid customer_id'}, status=status.HTTP_400_BAD_REQUEST)

        page, limit = parse_page_params(request)
        total = quotes.count()
        offset = (page - 1) * limit
        return Response({
            'quotes': QuoteSerializer(quotes.order_by('-created_at')[offset:offset + limit], many=True).data,
            'total': total,
            'page': page,
            'limit': limit,
            'totalPages': (total + limit - 1) // limit,
        })

    serializer = QuoteCreateSerializer(data=request.data, organisation=request.organisation)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    line_items = data.pop('line_items')

    with transaction.atomic():
        quote = Quote(
            organisation=request.organisation,
            contact_id=data.pop('customer_id'),
            ticket_id=data.pop('ticket_id', None),
            quote_number=next_quote_number(request.organisation),
            created_by=request.user,
            **data
        )
        lines = [_build_line(quote, item, index) for index, item in enumerate(line_items)]
        apply_totals(quote, lines)
        quote.save()
        QuoteLine.objects.bulk_create(lines)

    logger.info(f"Quote {quote.quote_number} created in org {request.organisation.id} with {len(lines)} lines")
    create_audit_log(request=request, action='create', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number)
    return Response(_detail(quote), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_stats(request):
    """Counts per status and value totals"""
    stats = Quote.objects.filter(organisation=request.organisation).aggregate(
        total_quotes=Count('id'),
        draft_count=Count('id', filter=Q(status='draft')),
        sent_count=Count('id', filter=Q(status='sent')),
        accepted_count=Count('id', filter=Q(status='accepted')),
        declined_count=Count('id', filter=Q(status='declined')),
        expired_count=Count('id', filter=Q(status='expired')),
        total_value=Sum('total_amount'),
        accepted_value=Sum('total_amount', filter=Q(status='accepted')),
        average_value=Avg('total_amount'),
    )
    for key in ('total_value', 'accepted_value', 'average_value'):
        stats[key] = round(float(stats[key] or 0), 2)
    return Response(stats)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_detail(request, ref):
    quote = get_quote(request.organisation, ref)

    if request.method == 'GET':
        return Response(_detail(quote))

    if request.method == 'DELETE':
        data = QuoteSerializer(quote).data
        quote.delete()
        create_audit_log(request=request, action='delete', model_name='Quote', object_id=data['id'],
                         organisation_id=request.organisation.id, object_reference=data['quote_number'])
        return Response({'message': 'Quote deleted successfully', 'quote': data})

    serializer = QuoteUpdateSerializer(data=request.data, organisation=request.organisation)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    if not data:
        return Response({'error': 'No fields to update'}, status=status.HTTP_400_BAD_REQUEST)

    if 'customer_id' in data:
        data['contact_id'] = data.pop('customer_id')
    with transaction.atomic():
        for field, value in data.items():
            setattr(quote, field, value)
        if 'discount_amount' in data or 'discount_percent' in data:
            apply_totals(quote)
        quote.save()
    create_audit_log(request=request, action='update', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number,
                     changes={'fields': sorted(data.keys())})
    return Response(_detail(quote))


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_line_items(request, pk):
    """Create, update or delete (_delete) lines, then recalculate totals"""
    quote = get_object_or_404(Quote, pk=pk, organisation=request.organisation)
    serializer = LineItemsUpdateSerializer(data=request.data, organisation=request.organisation)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        for index, item in enumerate(serializer.validated_data['line_items']):
            line_id = item.get('id')
            if item.get('_delete'):
                if line_id:
                    QuoteLine.objects.filter(pk=line_id, quote=quote).delete()
                continue
            line = _build_line(quote, item, index)
            if line_id:
                updated = QuoteLine.objects.filter(pk=line_id, quote=quote).update(
                    product_id=line.product_id, item_type=line.item_type, description=line.description,
                    quantity=line.quantity, unit_price=line.unit_price, discount_percent=line.discount_percent,
                    tax_rate=line.tax_rate, line_total=line.line_total, sort_order=line.sort_order,
                )
                if not updated:
                    raise Http404('Line item not found')
            else:
                line.save()
        apply_totals(quote)
        quote.save(update_fields=['subtotal', 'discount_amount', 'tax_amount', 'total_amount', 'updated_at'])

    return Response(_detail(quote))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_accept(request, pk):
    """Customer acceptance of a draft or sent quote"""
    serializer = AcceptQuoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    with transaction.atomic():
        quote = (
            Quote.objects.select_for_update()
            .filter(pk=pk, organisation=request.organisation, status__in=['sent', 'draft'])
            .first()
        )
        if quote is None:
            return Response({'error': 'Quote not found or cannot be accepted'}, status=status.HTTP_404_NOT_FOUND)
        quote.status = 'accepted'
        quote.accepted_at = timezone.now()
        quote.save(update_fields=['status', 'accepted_at', 'updated_at'])
        acceptance = QuoteAcceptance.objects.create(
            quote=quote,
            accepted_by_name=data.get('accepted_by_name') or None,
            accepted_by_email=data.get('accepted_by_email') or None,
            signature=data.get('signature') or None,
            ip_address=data.get('ip_address') or get_client_ip(request),
            accepted_by_user=request.user,
        )

    create_audit_log(request=request, action='quote_accept', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number)
    return Response({
        'message': 'Quote accepted successfully',
        'quote': QuoteSerializer(quote).data,
        'acceptance': QuoteAcceptanceSerializer(acceptance).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_decline(request, pk):
    updated = Quote.objects.filter(pk=pk, organisation=request.organisation, status__in=['sent', 'draft']).update(
        status='declined',
        declined_at=timezone.now(),
        decline_reason=request.data.get('reason') or None,
        updated_at=timezone.now(),
    )
    if not updated:
        return Response({'error': 'Quote not found or cannot be declined'}, status=status.HTTP_404_NOT_FOUND)
    quote = Quote.objects.get(pk=pk)
    create_audit_log(request=request, action='quote_decline', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number,
                     changes={'reason': quote.decline_reason})
    return Response({'message': 'Quote declined', 'quote': QuoteSerializer(quote).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_convert_to_job(request, pk):
    quote = Quote.objects.filter(pk=pk, organisation=request.organisation, status='accepted').first()
    if quote is None:
        return Response({'error': 'Quote not found or not accepted'}, status=status.HTTP_404_NOT_FOUND)
    serializer = ConvertToJobSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Validation error', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    assigned_to = data.get('assigned_to')
    if assigned_to and not Membership.objects.filter(organisation=request.organisation, user_id=assigned_to).exists():
        return Response({'error': 'Assigned user is not a member of this organization'},
                        status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        job = Job.objects.create(
            organisation=request.organisation,
            quote=quote,
            ticket_id=quote.ticket_id,
            contact_id=quote.contact_id,
            job_number=next_job_number(request.organisation),
            title=quote.title,
            description=quote.description,
            scheduled_start=data.get('scheduled_start'),
            scheduled_end=data.get('scheduled_end'),
            assigned_to_id=assigned_to,
            notes=data.get('notes') or None,
            created_by=request.user,
        )
    logger.info(f"Quote {quote.quote_number} converted to job {job.job_number}")
    create_audit_log(request=request, action='create', model_name='Job', object_id=job.id,
                     organisation_id=request.organisation.id, object_reference=job.job_number,
                     changes={'quote': quote.quote_number})
    return Response({'message': 'Quote converted to job successfully', 'job': JobSerializer(job).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_duplicate(request, pk):
    original = get_object_or_404(Quote, pk=pk, organisation=request.organisation)

    with transaction.atomic():
        copy = Quote.objects.create(
            organisation=request.organisation,
            contact_id=original.contact_id,
            ticket_id=original.ticket_id,
            quote_number=next_quote_number(request.organisation),
            title=f"{original.title} (Copy)"[:255],
            description=original.description,
            status='draft',
            valid_until=original.valid_until,
            subtotal=original.subtotal,
            discount_amount=original.discount_amount,
            discount_percent=original.discount_percent,
            tax_amount=original.tax_amount,
            total_amount=original.total_amount,
            terms_conditions=original.terms_conditions,
            notes=original.notes,
            internal_notes=original.internal_notes,
            created_by=request.user,
        )
        QuoteLine.objects.bulk_create([
            QuoteLine(
                quote=copy,
                product_id=line.product_id,
                item_type=line.item_type,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount_percent=line.discount_percent,
                tax_rate=line.tax_rate,
                line_total=line.line_total,
                sort_order=line.sort_order,
            )
            for line in original.lines.all()
        ])

    create_audit_log(request=request, action='create', model_name='Quote', object_id=copy.id,
                     organisation_id=request.organisation.id, object_reference=copy.quote_number,
                     changes={'duplicated_from': original.quote_number})
    return Response({'message': 'Quote duplicated successfully', 'quote': QuoteSerializer(copy).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_pdf(request, ref):
    quote = get_quote(request.organisation, ref)
    pdf_data = render_quote_pdf(quote)
    response = HttpResponse(pdf_data, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="quote-{quote.quote_number}.pdf"'
    return response


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_send(request, pk):
    """Mark a quote sent and return its customer-facing link"""
    serializer = SendQuoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid request data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    quote = get_object_or_404(Quote, pk=pk, organisation=request.organisation)

    with transaction.atomic():
        if not quote.share_token:
            quote.share_token = secrets.token_urlsafe(32)
        quote.status = 'sent'
        quote.sent_at = timezone.now()
        quote.save(update_fields=['share_token', 'status', 'sent_at', 'updated_at'])
        _set_ticket_status(quote, 'quote_sent')

    quote_url = f"{settings.APP_BASE_URL}/quotes/view/{quote.share_token}"
    recipient = serializer.validated_data['recipient_email']
    logger.info(f"Quote {quote.quote_number} marked sent to {recipient}")
    create_audit_log(request=request, action='quote_send', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number,
                     changes={'sent_to': recipient})
    return Response({
        'success': True,
        'message': 'Quote sent successfully',
        'quote_url': quote_url,
        'sent_to': recipient,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_schedule_work(request, pk):
    serializer = ScheduleWorkSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid request data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    quote = get_object_or_404(Quote, pk=pk, organisation=request.organisation)
    if quote.status != 'accepted':
        return Response({'error': 'Can only schedule work for accepted quotes'}, status=status.HTTP_400_BAD_REQUEST)
    if not Membership.objects.filter(organisation=request.organisation, user_id=data['assigned_user_id']).exists():
        return Response({'error': 'Assigned user is not a member of this organization'},
                        status=status.HTTP_400_BAD_REQUEST)

    scheduled = timezone.make_aware(datetime.combine(data['scheduled_date'], data.get('scheduled_time') or time.min))
    note = f"Work scheduled from quote {quote.quote_number}"
    if data.get('notes'):
        note = f"{note}: {data['notes']}"

    with transaction.atomic():
        if quote.ticket_id:
            Ticket.objects.filter(pk=quote.ticket_id).update(
                status='scheduled',
                assignee_id=data['assigned_user_id'],
                scheduled_date=scheduled,
                updated_at=timezone.now(),
            )
            Comment.objects.create(ticket_id=quote.ticket_id, author=request.user, body=note)

    return Response({
        'success': True,
        'message': 'Work scheduled successfully',
        'ticket_id': str(quote.ticket_id) if quote.ticket_id else None,
        'assigned_to': str(data['assigned_user_id']),
        'scheduled_date': data['scheduled_date'].isoformat(),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_create_invoice(request, pk):
    serializer = CreateInvoiceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid request data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    quote = get_object_or_404(Quote, pk=pk, organisation=request.organisation)
    today = timezone.localdate()

    with transaction.atomic():
        invoice = Invoice.objects.create(
            organisation=request.organisation,
            quote=quote,
            ticket_id=quote.ticket_id,
            contact_id=quote.contact_id,
            invoice_number=next_invoice_number(request.organisation),
            title=quote.title,
            description=quote.description,
            issue_date=today,
            due_date=data.get('due_date') or today + timedelta(days=INVOICE_DUE_DAYS),
            subtotal=quote.subtotal,
            discount_amount=quote.discount_amount,
            tax_amount=quote.tax_amount,
            total_amount=quote.total_amount,
            notes=data.get('notes') or quote.notes,
            created_by=request.user,
        )
        InvoiceLine.objects.bulk_create([
            InvoiceLine(
                invoice=invoice,
                product_id=line.product_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount_percent=line.discount_percent,
                tax_rate=line.tax_rate,
                line_total=line.line_total,
                sort_order=line.sort_order,
            )
            for line in quote.lines.all()
        ])
        _set_ticket_status(quote, 'invoiced')

    logger.info(f"Invoice {invoice.invoice_number} created from quote {quote.quote_number}")
    create_audit_log(request=request, action='invoice_create', model_name='Invoice', object_id=invoice.id,
                     organisation_id=request.organisation.id, object_reference=invoice.invoice_number,
                     changes={'quote': quote.quote_number})
    return Response({
        'success': True,
        'message': 'Invoice created successfully',
        'invoice_id': str(invoice.id),
        'invoice_number': invoice.invoice_number,
        'invoice': InvoiceSerializer(invoice).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_mark_accepted(request, pk):
    quote = get_object_or_404(Quote, pk=pk, organisation=request.organisation)
    with transaction.atomic():
        quote.status = 'accepted'
        quote.accepted_at = quote.accepted_at or timezone.now()
        quote.save(update_fields=['status', 'accepted_at', 'updated_at'])
        _set_ticket_status(quote, 'quote_accepted')
    create_audit_log(request=request, action='quote_accept', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number)
    return Response({'success': True, 'message': 'Quote marked as accepted'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_mark_declined(request, pk):
    quote = get_object_or_404(Quote, pk=pk, organisation=request.organisation)
    with transaction.atomic():
        quote.status = 'declined'
        quote.declined_at = timezone.now()
        quote.decline_reason = request.data.get('reason') or None
        quote.save(update_fields=['status', 'declined_at', 'decline_reason', 'updated_at'])
        _set_ticket_status(quote, 'quote_declined')
    create_audit_log(request=request, action='quote_decline', model_name='Quote', object_id=quote.id,
                     organisation_id=request.organisation.id, object_reference=quote.quote_number,
                     changes={'reason': quote.decline_reason})
    return Response({'success': True, 'message': 'Quote marked as declined'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([JSONParser, MultiPartParser, FormParser])
@require_org_context
def quote_ai_generate(request):
    """Draft a quote with the language model; the draft is not saved"""
    serializer = AIGenerateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    files = request.FILES.getlist('files')
    if len(files) > MAX_UPLOAD_FILES:
        return Response({'error': f'At most {MAX_UPLOAD_FILES} files can be uploaded'},
                        status=status.HTTP_400_BAD_REQUEST)
    if any(upload.size > MAX_UPLOAD_BYTES for upload in files):
        return Response({'error': 'File too large. Maximum size is 50MB.'}, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        draft = generate_quote_draft(
            request.organisation,
            data['prompt'],
            context_sources=data.get('context_sources') or {},
            ticket_id=data.get('ticket_id'),
            customer_id=data.get('customer_id'),
            files=files,
        )
    except QuoteDraftError as e:
        body = {'error': 'Failed to generate quote draft', 'message': str(e)}
        if e.raw_response is not None:
            body['raw_response'] = e.raw_response
        return Response(body, status=status.HTTP_502_BAD_GATEWAY)
    return Response(draft)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def quote_ai_context_preview(request):
    serializer = AIContextPreviewSerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response({'error': 'Invalid input', 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    return Response(context_preview(
        request.organisation,
        ticket_id=serializer.validated_data.get('ticket_id'),
        contact_id=serializer.validated_data.get('contact_id'),
    ))
