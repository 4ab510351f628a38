from django.urls import path
from .views import contact_list_create, contact_detail, contact_statistics

urlpatterns = [
    path('contacts', contact_list_create, name='contact-list-create'),
    path('contacts/statistics', contact_statistics, name='contact-statistics'),
    path('contacts/<uuid:pk>', contact_detail, name='contact-detail'),
]
