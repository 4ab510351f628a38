"""
Tests for contact CRUD, CRM defaults and cached statistics
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from worktrackr.contacts.models import Contact
from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ContactAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_create_contact_fills_defaults(self):
        response = self.client.post('/api/contacts', {'name': 'Acme Ltd', 'email': 'ops@acme.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['type'], 'company')
        self.assertEqual(response.data['crm']['status'], 'prospect')
        self.assertEqual(response.data['accounting']['currency'], 'GBP')
        self.assertEqual(response.data['created_by_id'], self.user.id)

    def test_create_contact_requires_name(self):
        response = self.client.post('/api/contacts', {'email': 'ops@acme.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['details'])

    def test_invalid_crm_status(self):
        response = self.client.post('/api/contacts', {'name': 'Acme', 'crm': {'status': 'vip'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tags_must_be_strings(self):
        response = self.client.post('/api/contacts', {'name': 'Acme', 'tags': ['ok', 3]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_scoped_and_searchable(self):
        TestDataFactory.create_contact(self.organisation, name='Northwind Traders')
        TestDataFactory.create_contact(self.organisation, name='Contoso')
        TestDataFactory.create_contact(TestDataFactory.create_organisation(), name='Northwind Elsewhere')
        response = self.client.get('/api/contacts', {'search': 'northwind'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([contact['name'] for contact in response.data], ['Northwind Traders'])

    def test_partial_update_merges_crm(self):
        contact = TestDataFactory.create_contact(self.organisation)
        response = self.client.put(f'/api/contacts/{contact.id}', {'crm': {'status': 'active'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['crm']['status'], 'active')
        self.assertEqual(response.data['crm']['renewalsCount'], 0)

    def test_other_org_contact_is_404(self):
        foreign = TestDataFactory.create_contact(TestDataFactory.create_organisation())
        response = self.client.get(f'/api/contacts/{foreign.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_contact(self):
        contact = TestDataFactory.create_contact(self.organisation)
        response = self.client.delete(f'/api/contacts/{contact.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], str(contact.id))
        self.assertFalse(Contact.objects.filter(pk=contact.pk).exists())


class ContactStatisticsTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_statistics(self):
        TestDataFactory.create_contact(self.organisation, crm={'status': 'active', 'totalProfit': 150.5})
        TestDataFactory.create_contact(self.organisation, type='individual',
                                       crm={'status': 'at_risk', 'renewalsCount': 2})
        response = self.client.get('/api/contacts/statistics')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['active'], 1)
        self.assertEqual(response.data['at_risk'], 1)
        self.assertEqual(response.data['individuals'], 1)
        self.assertEqual(Decimal(str(response.data['total_profit'])), Decimal('150.5'))

    def test_statistics_refresh_after_create(self):
        self.client.get('/api/contacts/statistics')
        self.client.post('/api/contacts', {'name': 'Fresh Co'}, format='json')
        response = self.client.get('/api/contacts/statistics')
        self.assertEqual(response.data['total'], 1)
