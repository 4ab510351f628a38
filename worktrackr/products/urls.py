from django.urls import path
from .views import product_list_create, product_detail, product_types, product_stats

urlpatterns = [
    path('products', product_list_create, name='product-list-create'),
    path('products/meta/types', product_types, name='product-types'),
    path('products/<uuid:pk>', product_detail, name='product-detail'),
    path('products/<uuid:pk>/stats', product_stats, name='product-stats'),
]
