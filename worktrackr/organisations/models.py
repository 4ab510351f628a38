import uuid
from decimal import Decimal

from django.db import models

from worktrackr.core.models import User


PLAN_CHOICES = [
    ('individual', 'Individual'),
    ('starter', 'Starter'),
    ('pro', 'Pro'),
    ('enterprise', 'Enterprise'),
]


class Partner(models.Model):
    """Reseller administering several organisations"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    support_email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'partners'


class PartnerMembership(models.Model):
    ROLE_CHOICES = [
        ('partner_admin', 'Partner Admin'),
        ('partner_member', 'Partner Member'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    partner = models.ForeignKey(Partner, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='partner_memberships')
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default='partner_member')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} @ {self.partner} ({self.role})"

    class Meta:
        db_table = 'partner_memberships'
        unique_together = [('partner', 'user')]


class Organisation(models.Model):
    """Tenant owning tickets, contacts and quotes"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=80, unique=True)
    partner = models.ForeignKey(Partner, on_delete=models.SET_NULL, null=True, blank=True, related_name='organisations')
    plan = models.CharField(max_length=20, choices=PLAN_CHOICES, default='starter')
    included_seats = models.PositiveIntegerField(null=True, blank=True)
    active_user_count = models.PositiveIntegerField(default=0)
    seat_overage_cached = models.PositiveIntegerField(default=0)
    stripe_customer_id = models.CharField(max_length=255, blank=True, null=True)
    stripe_subscription_id = models.CharField(max_length=255, blank=True, null=True)
    stripe_seat_item_id = models.CharField(max_length=255, blank=True, null=True)
    plan_price_id = models.CharField(max_length=255, blank=True, null=True)
    current_period_end = models.DateTimeField(null=True, blank=True)
    trial_start = models.DateTimeField(null=True, blank=True)
    trial_end = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def seat_limit(self):
        from worktrackr.billing.plans import PLAN_INCLUDED
        return self.included_seats or PLAN_INCLUDED.get(self.plan) or 1

    class Meta:
        db_table = 'organisations'
        ordering = ['name']


class Membership(models.Model):
    """Links a user to an organisation with a role"""
    ROLE_CHOICES = [
        ('owner', 'Owner'),
        ('admin', 'Admin'),
        ('manager', 'Manager'),
        ('member', 'Member'),
        ('staff', 'Staff'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('invited', 'Invited'),
        ('disabled', 'Disabled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='member')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user} @ {self.organisation} ({self.role})"

    class Meta:
        db_table = 'memberships'
        unique_together = [('organisation', 'user')]
        ordering = ['created_at']


class OrgBranding(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.OneToOneField(Organisation, on_delete=models.CASCADE, related_name='branding')
    product_name = models.CharField(max_length=255, default='WorkTrackr Cloud')
    logo_url = models.URLField(max_length=500, blank=True, null=True)
    primary_color = models.CharField(max_length=7, blank=True, null=True)
    accent_color = models.CharField(max_length=7, blank=True, null=True)
    email_from_name = models.CharField(max_length=255, blank=True)
    hide_worktrackr_branding = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Branding for {self.organisation}"

    class Meta:
        db_table = 'org_branding'


class OrganisationPricing(models.Model):
    """Labour rates and margins used when drafting quotes"""
    DEFAULTS = {
        'standard_day_rate': Decimal('680.00'),
        'senior_day_rate': Decimal('850.00'),
        'junior_day_rate': Decimal('510.00'),
        'standard_hourly_rate': Decimal('85.00'),
        'senior_hourly_rate': Decimal('106.25'),
        'junior_hourly_rate': Decimal('63.75'),
        'default_markup_percent': Decimal('30.00'),
        'default_margin_percent': Decimal('25.00'),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.OneToOneField(Organisation, on_delete=models.CASCADE, related_name='pricing')
    standard_day_rate = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULTS['standard_day_rate'])
    senior_day_rate = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULTS['senior_day_rate'])
    junior_day_rate = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULTS['junior_day_rate'])
    standard_hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULTS['standard_hourly_rate'])
    senior_hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULTS['senior_hourly_rate'])
    junior_hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULTS['junior_hourly_rate'])
    default_markup_percent = models.DecimalField(max_digits=5, decimal_places=2, default=DEFAULTS['default_markup_percent'])
    default_margin_percent = models.DecimalField(max_digits=5, decimal_places=2, default=DEFAULTS['default_margin_percent'])
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('20.00'))
    currency = models.CharField(max_length=3, default='GBP')
    common_services = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Pricing for {self.organisation}"

    class Meta:
        db_table = 'organisation_pricing'


class OrganisationAddon(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='addons')
    stripe_price_id = models.CharField(max_length=255)
    addon_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.addon_name} x{self.quantity}"

    class Meta:
        db_table = 'organisation_addons'
