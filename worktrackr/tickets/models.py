import uuid
from datetime import timedelta

from django.db import models

from worktrackr.core.models import User
from worktrackr.contacts.models import Contact
from worktrackr.organisations.models import Organisation


class Queue(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='queues')
    name = models.CharField(max_length=255)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'queues'
        ordering = ['name']


class Ticket(models.Model):
    """Support ticket / work request"""
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]
    STATUS_CHOICES = [
        ('open', 'Open'),
        ('pending', 'Pending'),
        ('closed', 'Closed'),
        ('resolved', 'Resolved'),
        ('quote_sent', 'Quote Sent'),
        ('quote_accepted', 'Quote Accepted'),
        ('quote_declined', 'Quote Declined'),
        ('scheduled', 'Scheduled'),
        ('invoiced', 'Invoiced'),
    ]
    # Statuses a user may set directly; the rest are driven by the quote workflow
    EDITABLE_STATUSES = ['open', 'pending', 'closed', 'resolved']

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='tickets')
    queue = models.ForeignKey(Queue, on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets')
    title = models.CharField(max_length=500)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets_created')
    assignee = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets_assigned')
    contact = models.ForeignKey(Contact, on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets')
    sector = models.CharField(max_length=255, blank=True, null=True)
    category = models.CharField(max_length=100, blank=True, null=True)
    scheduled_date = models.DateTimeField(null=True, blank=True)
    scheduled_duration_mins = models.PositiveIntegerField(null=True, blank=True)
    method_statement = models.JSONField(null=True, blank=True)
    risk_assessment = models.JSONField(null=True, blank=True)
    custom_fields = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    @property
    def scheduled_end(self):
        if self.scheduled_date and self.scheduled_duration_mins:
            return self.scheduled_date + timedelta(minutes=self.scheduled_duration_mins)
        return None

    class Meta:
        db_table = 'tickets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organisation', 'status'], name='tickets_org_status_idx'),
            models.Index(fields=['organisation', 'scheduled_date'], name='tickets_org_sched_idx'),
        ]


class Comment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='ticket_comments')
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'comments'
        ordering = ['created_at']


class Attachment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='attachments')
    filename = models.CharField(max_length=255)
    url = models.URLField(max_length=1000)
    mime_type = models.CharField(max_length=100, blank=True)
    size_bytes = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='ticket_attachments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'attachments'
        ordering = ['created_at']


class TicketTemplate(models.Model):
    """Per-organisation ticket form layout"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.OneToOneField(Organisation, on_delete=models.CASCADE, related_name='ticket_template')
    version = models.PositiveIntegerField(default=0)
    template = models.JSONField(default=dict, blank=True)
    order = models.JSONField(default=list, blank=True)
    configurations = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def as_dict(self):
        return {
            'version': self.version,
            'template': self.template,
            'order': self.order,
            'configurations': self.configurations,
        }

    class Meta:
        db_table = 'ticket_templates'
