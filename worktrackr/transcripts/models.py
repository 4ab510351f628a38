import uuid

from django.db import models

from worktrackr.core.models import User
from worktrackr.contacts.models import Contact
from worktrackr.organisations.models import Organisation


class Transcript(models.Model):
    """Whisper transcription of an uploaded recording"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='transcripts')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='transcripts')
    filename = models.CharField(max_length=255)
    duration_seconds = models.FloatField(null=True, blank=True)
    text = models.TextField()
    segments = models.JSONField(default=list, blank=True)
    language = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.filename

    class Meta:
        db_table = 'transcripts'
        ordering = ['-created_at']


class AIExtraction(models.Model):
    """Structured ticket data extracted from a transcript"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='ai_extractions')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='ai_extractions')
    transcript = models.ForeignKey(Transcript, on_delete=models.SET_NULL, null=True, blank=True, related_name='extractions')
    extracted_data = models.JSONField(default=dict)
    confidence_score = models.FloatField(null=True, blank=True)
    matched_contact = models.ForeignKey(Contact, on_delete=models.SET_NULL, null=True, blank=True, related_name='ai_extractions')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ai_extractions'
        ordering = ['-created_at']
