from django.urls import path
from .webhooks import stripe_webhook, mailgun_inbound

urlpatterns = [
    path('stripe', stripe_webhook, name='webhook-stripe'),
    path('mailgun/inbound', mailgun_inbound, name='webhook-mailgun-inbound'),
]
