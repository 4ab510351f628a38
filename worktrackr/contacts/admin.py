from django.contrib import admin
from .models import Contact


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'email', 'phone', 'organisation', 'created_at']
    list_filter = ['type', 'organisation']
    search_fields = ['name', 'display_name', 'email', 'primary_contact']
    ordering = ['name']
