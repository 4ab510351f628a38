from django.contrib import admin
from .models import Transcript, AIExtraction


@admin.register(Transcript)
class TranscriptAdmin(admin.ModelAdmin):
    list_display = ['filename', 'organisation', 'user', 'duration_seconds', 'language', 'created_at']
    list_filter = ['language', 'organisation']
    search_fields = ['filename', 'text']


@admin.register(AIExtraction)
class AIExtractionAdmin(admin.ModelAdmin):
    list_display = ['id', 'organisation', 'transcript', 'confidence_score', 'matched_contact', 'created_at']
    raw_id_fields = ['transcript', 'matched_contact', 'user']
