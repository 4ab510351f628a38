from django.contrib import admin
from .models import CRMEvent, CalendarEvent


@admin.register(CRMEvent)
class CRMEventAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'status', 'contact', 'assigned_user', 'start_at', 'organisation']
    list_filter = ['type', 'status', 'organisation']
    search_fields = ['title', 'contact__name']
    raw_id_fields = ['contact', 'assigned_user', 'created_by']


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    list_display = ['title', 'event_date', 'start_time', 'end_time', 'event_type', 'user', 'organisation']
    list_filter = ['event_type', 'organisation']
    search_fields = ['title']
    raw_id_fields = ['user']
