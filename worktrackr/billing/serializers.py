from rest_framework import serializers

from .plans import CHECKOUT_PLANS


class CheckoutSerializer(serializers.Serializer):
    plan = serializers.CharField(required=False, allow_blank=True)
    priceId = serializers.CharField(required=False, allow_blank=True)


class AdminUpdatePlanSerializer(serializers.Serializer):
    email = serializers.EmailField()
    plan = serializers.ChoiceField(
        choices=CHECKOUT_PLANS,
        error_messages={'invalid_choice': 'Invalid plan. Must be starter, pro, or enterprise'},
    )


class AdminSetTrialSerializer(serializers.Serializer):
    email = serializers.EmailField()
    days = serializers.IntegerField(min_value=0, max_value=365, default=14)
