import django_filters

from .models import CRMEvent


class CRMEventFilter(django_filters.FilterSet):
    """Date window, status and contact filters for CRM events"""

    start_date = django_filters.IsoDateTimeFilter(field_name='start_at', lookup_expr='gte')
    end_date = django_filters.IsoDateTimeFilter(field_name='end_at', lookup_expr='lte')
    status = django_filters.ChoiceFilter(choices=CRMEvent.STATUS_CHOICES)
    contact_id = django_filters.UUIDFilter(field_name='contact_id')

    class Meta:
        model = CRMEvent
        fields = ['start_date', 'end_date', 'status', 'contact_id']
