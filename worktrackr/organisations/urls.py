from django.urls import path
from .views import (
    partner_organisation_list, current_organisation, organisation_branding,
    organisation_users, invite_user, organisation_pricing
)

urlpatterns = [
    path('organizations', partner_organisation_list, name='organization-list'),
    path('organizations/current', current_organisation, name='organization-current'),
    path('organizations/<uuid:org_id>/branding', organisation_branding, name='organization-branding'),
    path('organizations/<uuid:org_id>/users', organisation_users, name='organization-users'),
    path('organizations/<uuid:org_id>/users/invite', invite_user, name='organization-invite'),
    path('pricing', organisation_pricing, name='organization-pricing'),
]
