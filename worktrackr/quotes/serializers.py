from decimal import Decimal

from rest_framework import serializers

from worktrackr.contacts.models import Contact
from worktrackr.products.models import Product
from worktrackr.tickets.models import Ticket

from .models import Quote, QuoteLine, QuoteAcceptance, QuoteTemplate, Job, Invoice, InvoiceLine


class QuoteLineSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)
    product_type = serializers.CharField(source='product.type', read_only=True, default=None)

    class Meta:
        model = QuoteLine
        fields = ['id', 'product_id', 'product_name', 'product_type', 'item_type', 'description', 'quantity',
                  'unit_price', 'discount_percent', 'tax_rate', 'line_total', 'sort_order', 'created_at']
        read_only_fields = fields


class QuoteSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(source='contact_id', read_only=True)
    customer_name = serializers.CharField(source='contact.name', read_only=True, default=None)
    customer_email = serializers.CharField(source='contact.email', read_only=True, default=None)
    customer_phone = serializers.CharField(source='contact.phone', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)
    line_item_count = serializers.IntegerField(read_only=True, default=None)

    class Meta:
        model = Quote
        fields = ['id', 'organisation_id', 'customer_id', 'customer_name', 'customer_email', 'customer_phone',
                  'ticket_id', 'quote_number', 'title', 'description', 'status', 'valid_until', 'subtotal',
                  'discount_amount', 'discount_percent', 'tax_amount', 'total_amount', 'terms_conditions',
                  'notes', 'internal_notes', 'sent_at', 'accepted_at', 'declined_at', 'decline_reason',
                  'created_via', 'ai_prompt', 'ai_context_used', 'created_by_id', 'created_by_name',
                  'line_item_count', 'created_at', 'updated_at']
        read_only_fields = fields


class QuoteDetailSerializer(QuoteSerializer):
    line_items = QuoteLineSerializer(source='lines', many=True, read_only=True)

    class Meta(QuoteSerializer.Meta):
        fields = QuoteSerializer.Meta.fields + ['line_items']
        read_only_fields = fields


class LineItemInputSerializer(serializers.Serializer):
    id = serializers.UUIDField(required=False)
    product_id = serializers.UUIDField(required=False, allow_null=True)
    item_type = serializers.ChoiceField(choices=QuoteLine.ITEM_TYPE_CHOICES, required=False, allow_null=True)
    description = serializers.CharField(min_length=1)
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                                max_value=Decimal('100'), required=False, allow_null=True)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                        max_value=Decimal('100'), required=False, allow_null=True)
    sort_order = serializers.IntegerField(required=False, allow_null=True)
    _delete = serializers.BooleanField(required=False, default=False)


class _OrgScopedSerializer(serializers.Serializer):
    def __init__(self, *args, organisation=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.organisation = organisation

    def _check_products(self, line_items):
        product_ids = {item['product_id'] for item in line_items if item.get('product_id')}
        if product_ids:
            found = Product.objects.filter(organisation=self.organisation, id__in=product_ids).count()
            if found != len(product_ids):
                raise serializers.ValidationError('Unknown product on a line item')
        return line_items

    def validate_customer_id(self, value):
        if value and not Contact.objects.filter(id=value, organisation=self.organisation).exists():
            raise serializers.ValidationError('Customer not found')
        return value

    def validate_ticket_id(self, value):
        if value and not Ticket.objects.filter(id=value, organisation=self.organisation).exists():
            raise serializers.ValidationError('Ticket not found')
        return value


class QuoteCreateSerializer(_OrgScopedSerializer):
    customer_id = serializers.UUIDField()
    ticket_id = serializers.UUIDField(required=False, allow_null=True)
    title = serializers.CharField(min_length=1, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    valid_until = serializers.DateField(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                                max_value=Decimal('100'), required=False)
    terms_conditions = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    created_via = serializers.ChoiceField(choices=Quote.CREATED_VIA_CHOICES, required=False)
    ai_prompt = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ai_context_used = serializers.JSONField(required=False, allow_null=True)
    line_items = LineItemInputSerializer(many=True, allow_empty=False)

    def validate_line_items(self, value):
        return self._check_products(value)


class QuoteUpdateSerializer(_OrgScopedSerializer):
    customer_id = serializers.UUIDField(required=False)
    ticket_id = serializers.UUIDField(required=False, allow_null=True)
    title = serializers.CharField(min_length=1, max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.ChoiceField(choices=Quote.STATUS_CHOICES, required=False)
    valid_until = serializers.DateField(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                                max_value=Decimal('100'), required=False)
    terms_conditions = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class LineItemsUpdateSerializer(_OrgScopedSerializer):
    line_items = LineItemInputSerializer(many=True, allow_empty=False)

    def validate_line_items(self, value):
        return self._check_products(value)


class AcceptQuoteSerializer(serializers.Serializer):
    accepted_by_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    accepted_by_email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    signature = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ip_address = serializers.IPAddressField(required=False, allow_blank=True, allow_null=True)


class ConvertToJobSerializer(serializers.Serializer):
    scheduled_start = serializers.DateTimeField(required=False, allow_null=True)
    scheduled_end = serializers.DateTimeField(required=False, allow_null=True)
    assigned_to = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SendQuoteSerializer(serializers.Serializer):
    recipient_email = serializers.EmailField()
    recipient_name = serializers.CharField(min_length=1)
    message = serializers.CharField(required=False, allow_blank=True)


class ScheduleWorkSerializer(serializers.Serializer):
    assigned_user_id = serializers.UUIDField()
    scheduled_date = serializers.DateField()
    scheduled_time = serializers.TimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class CreateInvoiceSerializer(serializers.Serializer):
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class AIContextPreviewSerializer(serializers.Serializer):
    ticket_id = serializers.UUIDField(required=False, allow_null=True)
    contact_id = serializers.UUIDField(required=False, allow_null=True)


class AIGenerateSerializer(serializers.Serializer):
    prompt = serializers.CharField(min_length=1)
    context_sources = serializers.JSONField(required=False, default=dict)
    ticket_id = serializers.UUIDField(required=False, allow_null=True)
    customer_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_context_sources(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Expected an object')
        return value


class QuoteAcceptanceSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuoteAcceptance
        fields = ['id', 'quote_id', 'accepted_by_name', 'accepted_by_email', 'ip_address',
                  'accepted_by_user_id', 'accepted_at']
        read_only_fields = fields


class JobSerializer(serializers.ModelSerializer):
    class Meta:
        model = Job
        fields = ['id', 'organisation_id', 'quote_id', 'ticket_id', 'contact_id', 'job_number', 'title',
                  'description', 'status', 'scheduled_start', 'scheduled_end', 'assigned_to_id', 'notes',
                  'created_by_id', 'created_at', 'updated_at']
        read_only_fields = fields


class InvoiceLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceLine
        fields = ['id', 'product_id', 'description', 'quantity', 'unit_price', 'discount_percent',
                  'tax_rate', 'line_total', 'sort_order']
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    line_items = InvoiceLineSerializer(source='lines', many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = ['id', 'organisation_id', 'quote_id', 'ticket_id', 'contact_id', 'invoice_number', 'title',
                  'description', 'status', 'issue_date', 'due_date', 'subtotal', 'discount_amount',
                  'tax_amount', 'total_amount', 'notes', 'line_items', 'created_at']
        read_only_fields = fields


class TemplateLineItemSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=['labour', 'parts', 'fixed_fee'])
    description = serializers.CharField(allow_blank=True)
    quantity = serializers.FloatField(min_value=0)
    unit = serializers.CharField(allow_blank=True)
    sell_price = serializers.FloatField(min_value=0)


class QuoteTemplateSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=255)
    sector = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    default_line_items = serializers.ListField(child=TemplateLineItemSerializer())
    exclusions = serializers.ListField(child=serializers.CharField(), required=False)
    created_by_email = serializers.CharField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = QuoteTemplate
        fields = ['id', 'organisation_id', 'name', 'sector', 'description', 'default_line_items', 'exclusions',
                  'terms_and_conditions', 'is_active', 'created_by_id', 'created_by_email', 'created_at',
                  'updated_at']
        read_only_fields = ['id', 'organisation_id', 'is_active', 'created_by_id', 'created_at', 'updated_at']

    def validate_sector(self, value):
        return value or None
