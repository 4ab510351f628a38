import uuid
from decimal import Decimal

from django.db import models

from worktrackr.organisations.models import Organisation


class Product(models.Model):
    """Priced product or service offered on quotes"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organisation = models.ForeignKey(Organisation, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    sku = models.CharField(max_length=100, blank=True, null=True)
    type = models.CharField(max_length=50, blank=True, null=True)
    unit = models.CharField(max_length=50, default='service')
    our_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    client_price = models.DecimalField(max_digits=12, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('20.00'))
    default_quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def get_margin(self):
        return self.client_price - (self.our_cost or Decimal('0.00'))

    def get_margin_percentage(self):
        if self.our_cost and self.our_cost > 0:
            return ((self.client_price - self.our_cost) / self.our_cost * 100).quantize(Decimal('0.01'))
        return Decimal('0.00')

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
