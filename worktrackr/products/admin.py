from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'type', 'unit', 'our_cost', 'client_price', 'tax_rate', 'is_active']
    list_filter = ['type', 'is_active', 'organisation']
    search_fields = ['name', 'sku', 'description']
