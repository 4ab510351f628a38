"""
URL configuration for WorkTrackr Cloud.

API routes live under /api/ (no trailing slashes), provider callbacks under
/webhooks/, and the liveness check at /health.
"""
from django.contrib import admin
from django.urls import path, include

from worktrackr.core.views import health

admin.site.site_header = "WorkTrackr Cloud Admin"
admin.site.site_title = "WorkTrackr Cloud Admin Portal"
admin.site.index_title = "WorkTrackr Cloud administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health', health, name='health'),
    path('webhooks/', include('worktrackr.billing.webhook_urls')),
    path('api/', include('worktrackr.core.urls')),
    path('api/', include('worktrackr.organisations.urls')),
    path('api/', include('worktrackr.billing.urls')),
    path('api/', include('worktrackr.contacts.urls')),
    path('api/', include('worktrackr.tickets.urls')),
    path('api/', include('worktrackr.products.urls')),
    path('api/', include('worktrackr.quotes.urls')),
    path('api/', include('worktrackr.transcripts.urls')),
    path('api/', include('worktrackr.crm.urls')),
]
