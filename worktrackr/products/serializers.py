from decimal import Decimal

from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    our_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                        required=False, allow_null=True)
    client_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                        max_value=Decimal('100'), default=Decimal('20.00'))
    default_quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'),
                                                default=Decimal('1.00'))
    margin = serializers.SerializerMethodField()
    margin_percentage = serializers.SerializerMethodField()
    times_quoted = serializers.SerializerMethodField()
    times_invoiced = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'sku', 'type', 'unit', 'our_cost', 'client_price', 'tax_rate',
                  'default_quantity', 'is_active', 'margin', 'margin_percentage', 'times_quoted',
                  'times_invoiced', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_margin(self, obj):
        return str(obj.get_margin())

    def get_margin_percentage(self, obj):
        return str(obj.get_margin_percentage())

    def get_times_quoted(self, obj):
        return getattr(obj, 'times_quoted', None)

    def get_times_invoiced(self, obj):
        return getattr(obj, 'times_invoiced', None)
