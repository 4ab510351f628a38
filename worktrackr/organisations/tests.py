"""
Tests for organisation, branding, user invitation and pricing endpoints
"""
from django.contrib.auth.hashers import make_password
from django.test import TestCase
from rest_framework import status

from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.billing.models import CheckoutSession
from worktrackr.organisations.models import Membership, Organisation, OrgBranding
from worktrackr.organisations.utils import SlugTakenError, provision_organisation, provision_from_checkout


class ProvisioningTests(TestCase):

    def test_new_slug_creates_branding_and_queue(self):
        user = TestDataFactory.create_user()
        organisation, membership = provision_organisation(user, 'Acme Heating', slug='Acme Heating')
        self.assertEqual(organisation.slug, 'acme-heating')
        self.assertEqual(membership.role, 'owner')
        self.assertTrue(OrgBranding.objects.filter(organisation=organisation).exists())
        self.assertTrue(organisation.queues.filter(is_default=True).exists())

    def test_taken_slug_is_rejected(self):
        owner = TestDataFactory.create_user()
        organisation, _ = provision_organisation(owner, 'Acme', slug='acme')
        other = TestDataFactory.create_user()
        with self.assertRaises(SlugTakenError):
            provision_organisation(other, 'Acme', slug='acme')
        self.assertFalse(Membership.objects.filter(organisation=organisation, user=other).exists())

    def test_taken_slug_is_suffixed_when_renaming_allowed(self):
        owner = TestDataFactory.create_user()
        provision_organisation(owner, 'Acme', slug='acme')
        other = TestDataFactory.create_user()
        organisation, membership = provision_organisation(other, 'Acme', slug='acme', allow_rename=True)
        self.assertEqual(organisation.slug, 'acme-2')
        self.assertEqual(membership.user, other)
        self.assertEqual(membership.role, 'owner')

    def test_checkout_provisions_once(self):
        checkout = CheckoutSession.objects.create(
            email='buyer@example.com',
            full_name='Buyer',
            org_name='Acme',
            org_slug='acme',
            password_hash=make_password('secret123'),
            price_id='price_pro',
            stripe_session_id='cs_test_123456',
            plan='pro',
        )
        TestDataFactory.create_organisation(name='Acme', slug='acme')
        user, organisation, _ = provision_from_checkout(checkout, stripe_customer_id='cus_9')
        self.assertEqual(organisation.slug, 'acme-2')
        self.assertEqual(organisation.plan, 'pro')
        self.assertTrue(user.check_password('secret123'))

        checkout.refresh_from_db()
        again_user, again_org, membership = provision_from_checkout(checkout)
        self.assertEqual(again_org.pk, organisation.pk)
        self.assertEqual(again_user.pk, user.pk)
        self.assertEqual(membership.role, 'owner')
        self.assertEqual(Organisation.objects.filter(slug__startswith='acme').count(), 2)


class CurrentOrganisationTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_current_organisation_with_stats(self):
        TestDataFactory.create_ticket(self.organisation, status='open')
        TestDataFactory.create_ticket(self.organisation, status='closed')
        response = self.client.get('/api/organizations/current')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['organization']['id'], str(self.organisation.id))
        self.assertEqual(response.data['stats']['users'], 1)
        self.assertEqual(response.data['stats']['tickets']['total'], 2)

    def test_partner_list_denied_for_members(self):
        response = self.client.get('/api/organizations')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_partner_admin_lists_partner_organisations(self):
        admin = TestDataFactory.create_user()
        partner = TestDataFactory.create_partner(admin=admin)
        TestDataFactory.create_organisation(name='Managed', partner=partner)
        client = AuthenticatedAPIClient().authenticate_user(admin)
        response = client.get('/api/organizations')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([org['name'] for org in response.data['organizations']], ['Managed'])


class BrandingTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        OrgBranding.objects.create(organisation=self.organisation)

    def test_owner_updates_branding(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        response = client.put(f'/api/organizations/{self.organisation.id}/branding', {
            'product_name': 'Acme Desk',
            'primary_color': '#112233',
            'email_from_name': 'Acme Support',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['branding']['product_name'], 'Acme Desk')

    def test_staff_cannot_update_branding(self):
        staff = TestDataFactory.create_user()
        TestDataFactory.create_membership(staff, self.organisation, role='staff')
        client = AuthenticatedAPIClient().authenticate_user(staff, self.organisation)
        response = client.put(f'/api/organizations/{self.organisation.id}/branding', {'product_name': 'X'},
                              format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_can_read_branding(self):
        staff = TestDataFactory.create_user()
        TestDataFactory.create_membership(staff, self.organisation, role='staff')
        client = AuthenticatedAPIClient().authenticate_user(staff, self.organisation)
        response = client.get(f'/api/organizations/{self.organisation.id}/branding')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class InviteUserTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner', plan='pro')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.url = f'/api/organizations/{self.organisation.id}/users/invite'

    def test_invite_new_user(self):
        response = self.client.post(self.url, {'email': 'New.Tech@Example.com', 'role': 'staff'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        membership = Membership.objects.get(organisation=self.organisation, user__email='new.tech@example.com')
        self.assertEqual(membership.status, 'invited')
        self.assertFalse(membership.user.has_usable_password())

    def test_invite_with_short_password(self):
        response = self.client.post(self.url, {
            'email': 'direct@example.com',
            'sendInvitation': False,
            'password': 'short',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invite_existing_member(self):
        response = self.client.post(self.url, {'email': self.user.email}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User is already a member')

    def test_seat_limit(self):
        self.organisation.plan = 'starter'
        self.organisation.save()
        response = self.client.post(self.url, {'email': 'second@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['maxUsers'], 1)
        self.assertIn('User limit reached', response.data['error'])

    def test_users_list(self):
        response = self.client.get(f'/api/organizations/{self.organisation.id}/users')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['users']), 1)


class PricingTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_defaults_created_on_first_read(self):
        response = self.client.get('/api/pricing')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['currency'], 'GBP')
        self.assertEqual(response.data['vat_rate'], '20.00')

    def test_partial_update(self):
        response = self.client.put('/api/pricing', {'standard_hourly_rate': '90.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['standard_hourly_rate'], '90.00')
