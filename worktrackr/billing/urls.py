from django.urls import path
from .views import checkout, portal, trial_status, plans, admin_update_plan, admin_set_trial

urlpatterns = [
    path('billing/checkout', checkout, name='billing-checkout'),
    path('billing/portal', portal, name='billing-portal'),
    path('billing/trial-status', trial_status, name='billing-trial-status'),
    path('billing/plans', plans, name='billing-plans'),

    # Master admin endpoints
    path('admin/update-plan', admin_update_plan, name='admin-update-plan'),
    path('admin/set-trial', admin_set_trial, name='admin-set-trial'),
]
