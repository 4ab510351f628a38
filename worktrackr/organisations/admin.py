from django.contrib import admin
from .models import (
    Partner, PartnerMembership, Organisation, Membership,
    OrgBranding, OrganisationPricing, OrganisationAddon
)


class MembershipInline(admin.TabularInline):
    model = Membership
    extra = 0
    raw_id_fields = ['user']


class OrganisationAddonInline(admin.TabularInline):
    model = OrganisationAddon
    extra = 0


@admin.register(Organisation)
class OrganisationAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'plan', 'active_user_count', 'seat_overage_cached', 'trial_end', 'created_at']
    list_filter = ['plan', 'created_at']
    search_fields = ['name', 'slug', 'stripe_customer_id', 'stripe_subscription_id']
    ordering = ['name']
    readonly_fields = ['active_user_count', 'seat_overage_cached', 'created_at', 'updated_at']
    inlines = [MembershipInline, OrganisationAddonInline]


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ['user', 'organisation', 'role', 'status', 'created_at']
    list_filter = ['role', 'status']
    search_fields = ['user__email', 'organisation__name']
    raw_id_fields = ['user', 'organisation']


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    list_display = ['name', 'support_email', 'created_at']
    search_fields = ['name']


@admin.register(PartnerMembership)
class PartnerMembershipAdmin(admin.ModelAdmin):
    list_display = ['user', 'partner', 'role', 'created_at']
    list_filter = ['role']
    raw_id_fields = ['user', 'partner']


@admin.register(OrgBranding)
class OrgBrandingAdmin(admin.ModelAdmin):
    list_display = ['organisation', 'product_name', 'primary_color', 'accent_color', 'hide_worktrackr_branding']


@admin.register(OrganisationPricing)
class OrganisationPricingAdmin(admin.ModelAdmin):
    list_display = ['organisation', 'standard_day_rate', 'standard_hourly_rate', 'vat_rate', 'currency']
