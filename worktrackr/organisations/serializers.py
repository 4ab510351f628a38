from django.core.validators import RegexValidator
from rest_framework import serializers

from .models import Organisation, Membership, OrgBranding, OrganisationPricing

hex_color = RegexValidator(r'^#[0-9A-Fa-f]{6}$', 'Must be a hex colour like #1A2B3C')


class OrganisationSerializer(serializers.ModelSerializer):
    partner_name = serializers.CharField(source='partner.name', read_only=True, default=None)
    partner_support_email = serializers.CharField(source='partner.support_email', read_only=True, default=None)
    seat_limit = serializers.IntegerField(read_only=True)
    branding = serializers.SerializerMethodField()

    class Meta:
        model = Organisation
        fields = ['id', 'name', 'slug', 'plan', 'included_seats', 'seat_limit', 'active_user_count',
                  'seat_overage_cached', 'stripe_customer_id', 'stripe_subscription_id', 'current_period_end',
                  'trial_start', 'trial_end', 'partner_name', 'partner_support_email', 'branding',
                  'created_at', 'updated_at']

    def get_branding(self, obj):
        try:
            return OrgBrandingSerializer(obj.branding).data
        except OrgBranding.DoesNotExist:
            return None


class PartnerOrganisationSerializer(serializers.ModelSerializer):
    user_count = serializers.IntegerField(read_only=True)
    ticket_count = serializers.IntegerField(read_only=True)
    product_name = serializers.CharField(source='branding.product_name', read_only=True, default=None)
    primary_color = serializers.CharField(source='branding.primary_color', read_only=True, default=None)
    accent_color = serializers.CharField(source='branding.accent_color', read_only=True, default=None)

    class Meta:
        model = Organisation
        fields = ['id', 'name', 'plan', 'created_at', 'user_count', 'ticket_count',
                  'product_name', 'primary_color', 'accent_color']


class OrgBrandingSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(min_length=1, max_length=255)
    email_from_name = serializers.CharField(min_length=1, max_length=255)
    primary_color = serializers.CharField(validators=[hex_color], required=False, allow_null=True)
    accent_color = serializers.CharField(validators=[hex_color], required=False, allow_null=True)

    class Meta:
        model = OrgBranding
        fields = ['organisation_id', 'product_name', 'logo_url', 'primary_color', 'accent_color',
                  'email_from_name', 'hide_worktrackr_branding', 'updated_at']
        read_only_fields = ['organisation_id', 'updated_at']


class OrgUserSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='user.id', read_only=True)
    name = serializers.CharField(source='user.name', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    user_status = serializers.CharField(source='user.status', read_only=True)
    created_at = serializers.DateTimeField(source='user.created_at', read_only=True)

    class Meta:
        model = Membership
        fields = ['id', 'name', 'email', 'role', 'status', 'user_status', 'created_at']


class InviteUserSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=[choice[0] for choice in Membership.ROLE_CHOICES], default='staff')
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    sendInvitation = serializers.BooleanField(default=True)


class OrganisationPricingSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrganisationPricing
        fields = ['organisation_id', 'standard_day_rate', 'senior_day_rate', 'junior_day_rate',
                  'standard_hourly_rate', 'senior_hourly_rate', 'junior_hourly_rate',
                  'default_markup_percent', 'default_margin_percent', 'vat_rate', 'currency',
                  'common_services', 'created_at', 'updated_at']
        read_only_fields = ['organisation_id', 'created_at', 'updated_at']
