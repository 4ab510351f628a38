from django.urls import path
from .views import (
    ticket_list_create, ticket_detail, ticket_comments, ticket_queues, ticket_users,
    ticket_calendar, ticket_template, ticket_template_fields
)

urlpatterns = [
    path('tickets', ticket_list_create, name='ticket-list-create'),
    path('tickets/bulk', ticket_list_create, name='ticket-bulk'),
    path('tickets/queues', ticket_queues, name='ticket-queues'),
    path('tickets/users', ticket_users, name='ticket-users'),
    path('tickets/calendar', ticket_calendar, name='ticket-calendar'),
    path('tickets/template', ticket_template, name='ticket-template'),
    path('tickets/template/fields', ticket_template_fields, name='ticket-template-fields'),
    path('tickets/<uuid:pk>', ticket_detail, name='ticket-detail'),
    path('tickets/<uuid:pk>/comments', ticket_comments, name='ticket-comments'),
]
