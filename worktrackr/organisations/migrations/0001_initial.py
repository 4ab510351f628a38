# Generated manually
import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Partner',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('support_email', models.EmailField(blank=True, max_length=254)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'partners',
            },
        ),
        migrations.CreateModel(
            name='Organisation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('slug', models.SlugField(max_length=80, unique=True)),
                ('plan', models.CharField(choices=[('individual', 'Individual'), ('starter', 'Starter'), ('pro', 'Pro'), ('enterprise', 'Enterprise')], default='starter', max_length=20)),
                ('included_seats', models.PositiveIntegerField(blank=True, null=True)),
                ('active_user_count', models.PositiveIntegerField(default=0)),
                ('seat_overage_cached', models.PositiveIntegerField(default=0)),
                ('stripe_customer_id', models.CharField(blank=True, max_length=255, null=True)),
                ('stripe_subscription_id', models.CharField(blank=True, max_length=255, null=True)),
                ('stripe_seat_item_id', models.CharField(blank=True, max_length=255, null=True)),
                ('plan_price_id', models.CharField(blank=True, max_length=255, null=True)),
                ('current_period_end', models.DateTimeField(blank=True, null=True)),
                ('trial_start', models.DateTimeField(blank=True, null=True)),
                ('trial_end', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('partner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='organisations', to='organisations.partner')),
            ],
            options={
                'db_table': 'organisations',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='PartnerMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('partner_admin', 'Partner Admin'), ('partner_member', 'Partner Member')], default='partner_member', max_length=30)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('partner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='organisations.partner')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='partner_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'partner_memberships',
                'unique_together': {('partner', 'user')},
            },
        ),
        migrations.CreateModel(
            name='Membership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('owner', 'Owner'), ('admin', 'Admin'), ('manager', 'Manager'), ('member', 'Member'), ('staff', 'Staff')], default='member', max_length=20)),
                ('status', models.CharField(choices=[('active', 'Active'), ('invited', 'Invited'), ('disabled', 'Disabled')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organisation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='organisations.organisation')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'memberships',
                'ordering': ['created_at'],
                'unique_together': {('organisation', 'user')},
            },
        ),
        migrations.CreateModel(
            name='OrgBranding',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_name', models.CharField(default='WorkTrackr Cloud', max_length=255)),
                ('logo_url', models.URLField(blank=True, max_length=500, null=True)),
                ('primary_color', models.CharField(blank=True, max_length=7, null=True)),
                ('accent_color', models.CharField(blank=True, max_length=7, null=True)),
                ('email_from_name', models.CharField(blank=True, max_length=255)),
                ('hide_worktrackr_branding', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organisation', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='branding', to='organisations.organisation')),
            ],
            options={
                'db_table': 'org_branding',
            },
        ),
        migrations.CreateModel(
            name='OrganisationPricing',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('standard_day_rate', models.DecimalField(decimal_places=2, default=Decimal('680.00'), max_digits=10)),
                ('senior_day_rate', models.DecimalField(decimal_places=2, default=Decimal('850.00'), max_digits=10)),
                ('junior_day_rate', models.DecimalField(decimal_places=2, default=Decimal('510.00'), max_digits=10)),
                ('standard_hourly_rate', models.DecimalField(decimal_places=2, default=Decimal('85.00'), max_digits=10)),
                ('senior_hourly_rate', models.DecimalField(decimal_places=2, default=Decimal('106.25'), max_digits=10)),
                ('junior_hourly_rate', models.DecimalField(decimal_places=2, default=Decimal('63.75'), max_digits=10)),
                ('default_markup_percent', models.DecimalField(decimal_places=2, default=Decimal('30.00'), max_digits=5)),
                ('default_margin_percent', models.DecimalField(decimal_places=2, default=Decimal('25.00'), max_digits=5)),
                ('vat_rate', models.DecimalField(decimal_places=2, default=Decimal('20.00'), max_digits=5)),
                ('currency', models.CharField(default='GBP', max_length=3)),
                ('common_services', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organisation', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='pricing', to='organisations.organisation')),
            ],
            options={
                'db_table': 'organisation_pricing',
            },
        ),
        migrations.CreateModel(
            name='OrganisationAddon',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('stripe_price_id', models.CharField(max_length=255)),
                ('addon_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('organisation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='addons', to='organisations.organisation')),
            ],
            options={
                'db_table': 'organisation_addons',
            },
        ),
    ]
