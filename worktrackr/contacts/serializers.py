from rest_framework import serializers

from .models import Contact, default_accounting, default_crm


class ContactSerializer(serializers.ModelSerializer):
    type = serializers.ChoiceField(choices=Contact.TYPE_CHOICES, default='company')
    accounting = serializers.JSONField(required=False)
    crm = serializers.JSONField(required=False)

    class Meta:
        model = Contact
        fields = ['id', 'organisation_id', 'type', 'name', 'display_name', 'primary_contact', 'email',
                  'phone', 'website', 'addresses', 'accounting', 'crm', 'contact_persons', 'tags',
                  'notes', 'custom_fields', 'created_by_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'organisation_id', 'created_by_id', 'created_at', 'updated_at']

    def validate_accounting(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Expected an object')
        base = dict(self.instance.accounting) if self.instance and self.instance.accounting else default_accounting()
        base.update(value)
        return base

    def validate_crm(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Expected an object')
        base = dict(self.instance.crm) if self.instance and self.instance.crm else default_crm()
        base.update(value)
        if base.get('status') not in Contact.CRM_STATUS_CHOICES:
            raise serializers.ValidationError({'status': f"Must be one of {', '.join(Contact.CRM_STATUS_CHOICES)}"})
        return base

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError('Tags must be a list of strings')
        return value
