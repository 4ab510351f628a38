from django.urls import path
from .views import crm_event_list_create, crm_event_detail, calendar_event_list_create, calendar_event_detail

urlpatterns = [
    path('crm-events', crm_event_list_create, name='crm-event-list-create'),
    path('crm-events/<uuid:pk>', crm_event_detail, name='crm-event-detail'),
    path('calendar/events', calendar_event_list_create, name='calendar-event-list-create'),
    path('calendar/events/<uuid:pk>', calendar_event_detail, name='calendar-event-detail'),
]
