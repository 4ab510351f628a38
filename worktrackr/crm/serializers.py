from rest_framework import serializers

from worktrackr.contacts.models import Contact
from worktrackr.organisations.models import Membership

from .models import CRMEvent, CalendarEvent


class CRMEventSerializer(serializers.ModelSerializer):
    contact_id = serializers.UUIDField(required=False, allow_null=True)
    assigned_user_id = serializers.UUIDField(required=False, allow_null=True)
    contact_name = serializers.CharField(source='contact.name', read_only=True, default=None)
    assigned_user_name = serializers.CharField(source='assigned_user.name', read_only=True, default=None)

    class Meta:
        model = CRMEvent
        fields = ['id', 'organisation_id', 'contact_id', 'contact_name', 'title', 'type', 'description',
                  'start_at', 'end_at', 'all_day', 'assigned_user_id', 'assigned_user_name', 'status', 'notes',
                  'created_by_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'organisation_id', 'created_by_id', 'created_at', 'updated_at']

    @property
    def organisation(self):
        return self.context['organisation']

    def validate_contact_id(self, value):
        if value and not Contact.objects.filter(id=value, organisation=self.organisation).exists():
            raise serializers.ValidationError('Contact not found')
        return value

    def validate_assigned_user_id(self, value):
        if value and not Membership.objects.filter(user_id=value, organisation=self.organisation).exists():
            raise serializers.ValidationError('Assigned user is not a member of this organisation')
        return value

    def validate(self, attrs):
        start_at = attrs.get('start_at', getattr(self.instance, 'start_at', None))
        end_at = attrs.get('end_at', getattr(self.instance, 'end_at', None))
        if start_at and end_at and end_at < start_at:
            raise serializers.ValidationError({'end_at': 'End must not be before start'})
        return attrs


class CalendarEventSerializer(serializers.ModelSerializer):
    """Calendar entries use camelCase keys"""
    organisationId = serializers.UUIDField(source='organisation_id', read_only=True)
    userId = serializers.UUIDField(source='user_id', read_only=True)
    userName = serializers.CharField(source='user.name', read_only=True, default=None)
    eventDate = serializers.DateField(source='event_date')
    startTime = serializers.TimeField(source='start_time')
    endTime = serializers.TimeField(source='end_time')
    eventType = serializers.CharField(source='event_type', max_length=50, required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CalendarEvent
        fields = ['id', 'organisationId', 'userId', 'userName', 'title', 'description', 'eventDate', 'startTime',
                  'endTime', 'notes', 'eventType', 'createdAt', 'updatedAt']
        read_only_fields = ['id']
        extra_kwargs = {
            'description': {'required': False, 'allow_null': True, 'allow_blank': True},
            'notes': {'required': False, 'allow_null': True, 'allow_blank': True},
        }
