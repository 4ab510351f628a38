from rest_framework import serializers

from .models import User, AuditLog


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'phone', 'status', 'is_master_admin',
                  'mfa_enabled', 'mfa_method', 'created_at', 'updated_at']
        read_only_fields = ['id', 'email', 'status', 'is_master_admin', 'mfa_enabled',
                            'mfa_method', 'created_at', 'updated_at']


class UserProfileSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=255, required=False)

    class Meta:
        model = User
        fields = ['name', 'phone']


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    full_name = serializers.CharField(min_length=2, max_length=255)
    password = serializers.CharField(min_length=8, trim_whitespace=False)
    org_slug = serializers.CharField(min_length=2, max_length=80)
    org_name = serializers.CharField(max_length=255, required=False, allow_blank=True)


class SignupStartSerializer(serializers.Serializer):
    full_name = serializers.CharField(min_length=2, max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, trim_whitespace=False)
    org_slug = serializers.CharField(min_length=2, max_length=80)
    org_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    price_id = serializers.CharField(required=False, allow_blank=True)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(trim_whitespace=False)
    new_password = serializers.CharField(min_length=8, trim_whitespace=False)


class MFASerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
    method = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_method(self, value):
        if value and value != 'email':
            raise serializers.ValidationError('Only email MFA is supported')
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user_email', 'organisation_id', 'action', 'model_name', 'object_id',
                  'object_reference', 'changes', 'ip_address', 'created_at']


def membership_payload(user, organisation_id=None):
    """The {organization_id, role, organization} block returned with auth responses"""
    from worktrackr.organisations.models import Membership

    memberships = Membership.objects.filter(user=user).exclude(status='disabled').select_related('organisation')
    if organisation_id:
        memberships = memberships.filter(organisation_id=organisation_id)
    membership = memberships.order_by('created_at').first()
    if membership is None:
        return None
    organisation = membership.organisation
    return {
        'organization_id': str(organisation.id),
        'role': membership.role,
        'organization': {
            'id': str(organisation.id),
            'name': organisation.name,
            'slug': organisation.slug,
            'plan': organisation.plan,
        },
    }


class AdminUserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(required=False)
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    password = serializers.CharField(min_length=8, required=False, trim_whitespace=False)


class AdminBulkSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    action = serializers.ChoiceField(choices=['suspend', 'unsuspend'])
