import uuid

from django.db import models

from worktrackr.core.models import User
from worktrackr.organisations.models import Organisation


def default_accounting():
    return {'currency': 'GBP', 'creditLimit': 0, 'discountRate': 0}


def default_crm():
    return {'status': 'prospect', 'renewalsCount': 0, 'openOppsCount': 0, 'totalProfit': 0}


class Contact(models.Model):
    """CRM contact (company or individual)"""
    TYPE_CHOICES = [
        ('company', 'Company'),
        ('individual', 'Individual'),
    ]
    CRM_STATUS_CHOICES = ['active', 'inactive', 'at_risk', 'prospect', 'archived']

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='contacts')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='company')
    name = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255, blank=True)
    primary_contact = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    website = models.URLField(blank=True)
    addresses = models.JSONField(default=list, blank=True)
    accounting = models.JSONField(default=default_accounting, blank=True)
    crm = models.JSONField(default=default_crm, blank=True)
    contact_persons = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    custom_fields = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='contacts_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.display_name:
            self.display_name = self.name
        super().save(*args, **kwargs)

    def __str__(self):
        return self.display_name or self.name

    @property
    def crm_status(self):
        return (self.crm or {}).get('status', 'prospect')

    class Meta:
        db_table = 'contacts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organisation', 'name'], name='contacts_org_name_idx'),
        ]
