import uuid

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class UserManager(BaseUserManager):
    """Manager for email-identified users"""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_master_admin', True)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Application user, identified by email"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('invited', 'Invited'),
        ('disabled', 'Disabled'),
    ]
    MFA_METHOD_CHOICES = [
        ('email', 'Email'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    is_master_admin = models.BooleanField(default=False)
    mfa_enabled = models.BooleanField(default=False)
    mfa_method = models.CharField(max_length=20, choices=MFA_METHOD_CHOICES, blank=True, null=True)
    admin_notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    def save(self, *args, **kwargs):
        # Disabled users cannot authenticate
        self.is_active = self.status != 'disabled'
        super().save(*args, **kwargs)

    def __str__(self):
        return self.email

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('login', 'Login'),
        ('signup', 'Signup'),
        ('invite', 'User Invited'),
        ('plan_change', 'Plan Changed'),
        ('trial_change', 'Trial Changed'),
        ('seat_sync', 'Seat Sync'),
        ('quote_send', 'Quote Sent'),
        ('quote_accept', 'Quote Accepted'),
        ('quote_decline', 'Quote Declined'),
        ('invoice_create', 'Invoice Created'),
        ('bulk_update', 'Bulk Update'),
        ('bulk_delete', 'Bulk Delete'),
        ('user_suspend', 'User Suspended'),
        ('user_unsuspend', 'User Unsuspended'),
        ('user_soft_delete', 'User Login Disabled'),
        ('user_hard_delete', 'User Deleted'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    organisation_id = models.UUIDField(null=True, blank=True)
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., quote number, invoice number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_a1b2c3_idx'),
            models.Index(fields=['action'], name='audit_logs_action_d4e5f6_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_a7b8c9_idx'),
            models.Index(fields=['organisation_id'], name='audit_logs_organis_d0e1f2_idx'),
        ]
