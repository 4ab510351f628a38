from django.contrib import admin
from .models import Quote, QuoteLine, QuoteAcceptance, QuoteTemplate, Job, Invoice, InvoiceLine


class QuoteLineInline(admin.TabularInline):
    model = QuoteLine
    extra = 0
    raw_id_fields = ['product']


class InvoiceLineInline(admin.TabularInline):
    model = InvoiceLine
    extra = 0
    raw_id_fields = ['product']


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ['quote_number', 'title', 'organisation', 'contact', 'status', 'total_amount', 'created_via', 'created_at']
    list_filter = ['status', 'created_via', 'organisation']
    search_fields = ['quote_number', 'title', 'contact__name']
    raw_id_fields = ['contact', 'ticket', 'created_by']
    readonly_fields = ['subtotal', 'tax_amount', 'total_amount', 'share_token', 'created_at', 'updated_at']
    inlines = [QuoteLineInline]
    ordering = ['-created_at']


@admin.register(QuoteAcceptance)
class QuoteAcceptanceAdmin(admin.ModelAdmin):
    list_display = ['quote', 'accepted_by_name', 'accepted_by_email', 'ip_address', 'accepted_at']
    search_fields = ['quote__quote_number', 'accepted_by_email']


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ['job_number', 'title', 'organisation', 'status', 'assigned_to', 'scheduled_start']
    list_filter = ['status', 'organisation']
    search_fields = ['job_number', 'title']
    raw_id_fields = ['quote', 'ticket', 'contact', 'assigned_to', 'created_by']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'organisation', 'contact', 'status', 'total_amount', 'issue_date', 'due_date']
    list_filter = ['status', 'organisation']
    search_fields = ['invoice_number', 'title']
    raw_id_fields = ['quote', 'ticket', 'contact', 'created_by']
    inlines = [InvoiceLineInline]


@admin.register(QuoteTemplate)
class QuoteTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'sector', 'organisation', 'is_active', 'updated_at']
    list_filter = ['sector', 'is_active', 'organisation']
    search_fields = ['name', 'description']
    raw_id_fields = ['created_by']
