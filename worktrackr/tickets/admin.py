from django.contrib import admin
from .models import Queue, Ticket, Comment, Attachment, TicketTemplate


class CommentInline(admin.TabularInline):
    model = Comment
    extra = 0
    readonly_fields = ['author', 'created_at']


class AttachmentInline(admin.TabularInline):
    model = Attachment
    extra = 0


@admin.register(Queue)
class QueueAdmin(admin.ModelAdmin):
    list_display = ['name', 'organisation', 'is_default', 'created_at']
    list_filter = ['is_default', 'organisation']
    search_fields = ['name']


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['title', 'organisation', 'status', 'priority', 'assignee', 'scheduled_date', 'created_at']
    list_filter = ['status', 'priority', 'organisation']
    search_fields = ['title', 'description']
    raw_id_fields = ['created_by', 'assignee', 'contact']
    inlines = [CommentInline, AttachmentInline]
    ordering = ['-created_at']


@admin.register(TicketTemplate)
class TicketTemplateAdmin(admin.ModelAdmin):
    list_display = ['organisation', 'version', 'updated_at']
