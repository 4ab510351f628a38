import logging

from django.db.models import Count, Sum, Avg
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.core.org_context import require_org_context
from worktrackr.core.utils import create_audit_log, parse_page_params

from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def product_list_create(request):
    if request.method == 'GET':
        queryset = Product.objects.filter(organisation=request.organisation).annotate(
            times_quoted=Count('quote_lines', distinct=True),
            times_invoiced=Count('invoice_lines', distinct=True),
        )
        products = ProductFilter(request.query_params, queryset=queryset).qs

        page, limit = parse_page_params(request)
        total = products.count()
        offset = (page - 1) * limit
        return Response({
            'products': ProductSerializer(products[offset:offset + limit], many=True).data,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': (total + limit - 1) // limit,
            },
        })

    serializer = ProductSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    product = serializer.save(organisation=request.organisation)
    create_audit_log(request=request, action='create', model_name='Product', object_id=product.id,
                     organisation_id=request.organisation.id, object_reference=product.name)
    return Response({'product': ProductSerializer(product).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@require_org_context
def product_detail(request, pk):
    product = get_object_or_404(Product, pk=pk, organisation=request.organisation)

    if request.method == 'GET':
        return Response({'product': ProductSerializer(product).data})

    if request.method == 'PUT':
        serializer = ProductSerializer(product, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response({'product': serializer.data})

    quote_count = product.quote_lines.count()
    invoice_count = product.invoice_lines.count()
    if quote_count or invoice_count:
        return Response({
            'error': 'Cannot delete product that is used in quotes or invoices',
            'details': {'quotes': quote_count, 'invoices': invoice_count},
        }, status=status.HTTP_400_BAD_REQUEST)

    # Products are deactivated rather than removed
    product.is_active = False
    product.save(update_fields=['is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='Product', object_id=product.id,
                     organisation_id=request.organisation.id, object_reference=product.name)
    return Response({'message': 'Product deleted successfully', 'product': ProductSerializer(product).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def product_types(request):
    """Distinct product types of active products with counts"""
    types = (
        Product.objects
        .filter(organisation=request.organisation, is_active=True, type__isnull=False)
        .exclude(type='')
        .values('type')
        .annotate(product_count=Count('id'))
        .order_by('type')
    )
    return Response({'types': list(types)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def product_stats(request, pk):
    product = get_object_or_404(Product, pk=pk, organisation=request.organisation)
    quoted = product.quote_lines.aggregate(count=Count('id'), quantity=Sum('quantity'))
    invoiced = product.invoice_lines.aggregate(
        count=Count('id'), quantity=Sum('quantity'), revenue=Sum('line_total'), average=Avg('unit_price')
    )
    return Response({
        'times_quoted': quoted['count'],
        'total_quoted_quantity': quoted['quantity'] or 0,
        'times_invoiced': invoiced['count'],
        'total_sold_quantity': invoiced['quantity'] or 0,
        'total_revenue': invoiced['revenue'] or 0,
        'average_sell_price': invoiced['average'] or 0,
    })
