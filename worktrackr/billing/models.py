import uuid

from django.db import models


class CheckoutSession(models.Model):
    """Pending public signup waiting on Stripe checkout"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField()
    full_name = models.CharField(max_length=255)
    org_name = models.CharField(max_length=255, blank=True)
    org_slug = models.CharField(max_length=80)
    password_hash = models.CharField(max_length=255)
    price_id = models.CharField(max_length=255)
    plan = models.CharField(max_length=20, blank=True)
    stripe_session_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    organisation = models.ForeignKey('organisations.Organisation', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='signup_checkouts')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.email} ({self.status})"

    class Meta:
        db_table = 'checkout_sessions'


class StripeEvent(models.Model):
    """Processed Stripe webhook events, used to skip redeliveries"""
    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    processed_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.event_type} {self.event_id}"

    class Meta:
        db_table = 'stripe_events'
        ordering = ['-processed_at']
