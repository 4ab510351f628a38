from rest_framework import serializers

from worktrackr.contacts.models import Contact
from worktrackr.core.models import User

from .models import Ticket, Comment, Attachment, Queue, TicketTemplate
from .templates import TEMPLATE_VERSION


class QueueSerializer(serializers.ModelSerializer):
    class Meta:
        model = Queue
        fields = ['id', 'name', 'is_default', 'created_at']


class TicketSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)
    created_by_email = serializers.CharField(source='created_by.email', read_only=True, default=None)
    assignee_name = serializers.CharField(source='assignee.name', read_only=True, default=None)
    assignee_email = serializers.CharField(source='assignee.email', read_only=True, default=None)
    queue_name = serializers.CharField(source='queue.name', read_only=True, default=None)
    contact_name = serializers.CharField(source='contact.name', read_only=True, default=None)
    comment_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Ticket
        fields = ['id', 'organisation_id', 'queue_id', 'queue_name', 'title', 'description', 'status',
                  'priority', 'created_by_id', 'created_by_name', 'created_by_email', 'assignee_id',
                  'assignee_name', 'assignee_email', 'contact_id', 'contact_name', 'sector', 'category',
                  'scheduled_date', 'scheduled_duration_mins', 'method_statement', 'risk_assessment',
                  'custom_fields', 'comment_count', 'created_at', 'updated_at']
        read_only_fields = fields


class TicketWriteSerializer(serializers.Serializer):
    """Input for ticket create (all fields) and update (partial)"""
    title = serializers.CharField(min_length=1, max_length=500)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.ChoiceField(choices=Ticket.EDITABLE_STATUSES, required=False)
    priority = serializers.ChoiceField(choices=Ticket.PRIORITY_CHOICES, required=False)
    queue_id = serializers.UUIDField(required=False, allow_null=True)
    assignee_id = serializers.UUIDField(required=False, allow_null=True)
    contact_id = serializers.UUIDField(required=False, allow_null=True)
    sector = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)
    scheduled_duration_mins = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    method_statement = serializers.JSONField(required=False, allow_null=True)
    risk_assessment = serializers.JSONField(required=False, allow_null=True)
    custom_fields = serializers.DictField(required=False)

    def __init__(self, *args, organisation=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.organisation = organisation

    def validate_queue_id(self, value):
        if value and not Queue.objects.filter(id=value, organisation=self.organisation).exists():
            raise serializers.ValidationError('Queue not found')
        return value

    def validate_assignee_id(self, value):
        if value and not User.objects.filter(id=value, memberships__organisation=self.organisation).exists():
            raise serializers.ValidationError('Assignee is not a member of this organization')
        return value

    def validate_contact_id(self, value):
        if value and not Contact.objects.filter(id=value, organisation=self.organisation).exists():
            raise serializers.ValidationError('Contact not found')
        return value


class BulkUpdateSerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=Ticket.PRIORITY_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Ticket.EDITABLE_STATUSES, required=False)


class CommentSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source='author.name', read_only=True, default=None)
    author_email = serializers.CharField(source='author.email', read_only=True, default=None)
    body = serializers.CharField(min_length=1)

    class Meta:
        model = Comment
        fields = ['id', 'ticket_id', 'author_id', 'author_name', 'author_email', 'body', 'created_at']
        read_only_fields = ['id', 'ticket_id', 'author_id', 'created_at']


class AttachmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Attachment
        fields = ['id', 'ticket_id', 'filename', 'url', 'mime_type', 'size_bytes', 'uploaded_by_id', 'created_at']
        read_only_fields = fields


class TicketTemplateSerializer(serializers.Serializer):
    template = serializers.DictField(child=serializers.BooleanField())
    order = serializers.ListField(child=serializers.CharField(max_length=50))
    configurations = serializers.DictField(child=serializers.ListField(child=serializers.CharField(allow_blank=True)),
                                           required=False, default=dict)

    def apply(self, organisation):
        ticket_template, _ = TicketTemplate.objects.get_or_create(organisation=organisation)
        ticket_template.version = TEMPLATE_VERSION
        ticket_template.template = self.validated_data['template']
        ticket_template.order = self.validated_data['order']
        ticket_template.configurations = self.validated_data['configurations']
        ticket_template.save()
        return ticket_template
