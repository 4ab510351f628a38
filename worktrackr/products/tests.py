"""
Tests for the product catalogue
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.products.models import Product


class ProductModelTests(TestCase):

    def setUp(self):
        self.organisation = TestDataFactory.create_organisation()

    def test_margin(self):
        product = Product(organisation=self.organisation, name='Boiler', our_cost=Decimal('80.00'),
                          client_price=Decimal('100.00'))
        self.assertEqual(product.get_margin(), Decimal('20.00'))
        self.assertEqual(product.get_margin_percentage(), Decimal('25.00'))

    def test_margin_without_cost(self):
        product = Product(organisation=self.organisation, name='Callout', client_price=Decimal('60.00'))
        self.assertEqual(product.get_margin(), Decimal('60.00'))
        self.assertEqual(product.get_margin_percentage(), Decimal('0.00'))


class ProductAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_create_product(self):
        response = self.client.post('/api/products', {
            'name': 'Combi boiler',
            'type': 'parts',
            'our_cost': '800.00',
            'client_price': '1000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['product']['margin'], '200.00')
        self.assertEqual(response.data['product']['tax_rate'], '20.00')

    def test_negative_price_rejected(self):
        response = self.client.post('/api/products', {'name': 'Bad', 'client_price': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search_and_pagination(self):
        TestDataFactory.create_product(self.organisation, name='Radiator valve')
        TestDataFactory.create_product(self.organisation, name='Thermostat')
        response = self.client.get('/api/products', {'search': 'valve'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['products']], ['Radiator valve'])
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['products'][0]['times_quoted'], 0)

    def test_delete_deactivates(self):
        product = TestDataFactory.create_product(self.organisation)
        response = self.client.delete(f'/api/products/{product.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertFalse(product.is_active)

    def test_delete_blocked_when_quoted(self):
        product = TestDataFactory.create_product(self.organisation)
        quote = TestDataFactory.create_quote(self.organisation)
        quote.lines.update(product=product)
        response = self.client.delete(f'/api/products/{product.id}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['details']['quotes'], 1)

    def test_types_and_stats(self):
        product = Product.objects.create(organisation=self.organisation, name='Install', type='labour',
                                         client_price=Decimal('50.00'))
        Product.objects.create(organisation=self.organisation, name='Service', type='labour',
                               client_price=Decimal('70.00'))
        response = self.client.get('/api/products/meta/types')
        self.assertEqual(response.data['types'], [{'type': 'labour', 'product_count': 2}])

        response = self.client.get(f'/api/products/{product.id}/stats')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['times_quoted'], 0)
