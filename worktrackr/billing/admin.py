from django.contrib import admin
from .models import CheckoutSession, StripeEvent


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    list_display = ['email', 'org_slug', 'plan', 'status', 'stripe_session_id', 'created_at']
    list_filter = ['status', 'plan']
    search_fields = ['email', 'org_slug', 'stripe_session_id']
    exclude = ['password_hash']


@admin.register(StripeEvent)
class StripeEventAdmin(admin.ModelAdmin):
    list_display = ['event_id', 'event_type', 'processed_at']
    list_filter = ['event_type']
    search_fields = ['event_id']
    readonly_fields = ['event_id', 'event_type', 'processed_at']
