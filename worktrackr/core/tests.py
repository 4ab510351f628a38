"""
Tests for authentication, organisation context and the trial gate
"""
from datetime import timedelta
from unittest import mock

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from worktrackr.billing.models import CheckoutSession
from worktrackr.core.models import AuditLog, User
from worktrackr.core.org_context import get_org_context, OrgContextError
from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.organisations.models import Membership, Organisation
from worktrackr.tickets.models import Queue, Ticket


class AuthAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')

    def test_health_is_plain_ok(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.content, b'ok')

    def test_version(self):
        response = self.client.get('/api/version')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'WorkTrackr Cloud')

    def test_login_with_bad_password(self):
        response = self.client.post('/api/auth/login', {'email': self.user.email, 'password': 'wrong-password'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid credentials')

    def test_login_sets_cookie_and_returns_membership(self):
        response = self.client.post('/api/auth/login', {'email': self.user.email.upper(), 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('auth_token', response.cookies)
        self.assertEqual(response.data['membership']['organization_id'], str(self.organisation.id))
        self.assertTrue(AuditLog.objects.filter(action='login', object_id=str(self.user.id)).exists())

    def test_disabled_user_cannot_login(self):
        self.user.status = 'disabled'
        self.user.save()
        response = self.client.post('/api/auth/login', {'email': self.user.email, 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_cookie_session(self):
        self.client.post('/api/auth/login', {'email': self.user.email, 'password': 'testpass123'}, format='json')
        response = self.client.get('/api/auth/session')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], self.user.email)

    def test_session_without_cookie(self):
        response = self.client.get('/api/auth/session')
        self.assertIsNone(response.data['user'])

    def test_protected_endpoint_requires_auth(self):
        response = self.client.get('/api/tickets')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_duplicate_email(self):
        response = self.client.post('/api/auth/register', {
            'email': self.user.email,
            'password': 'anotherpass123',
            'full_name': 'Someone Else',
            'org_slug': 'someone-else',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_register_creates_organisation_with_default_queue(self):
        response = self.client.post('/api/auth/register', {
            'email': 'new.owner@example.com',
            'password': 'anotherpass123',
            'full_name': 'New Owner',
            'org_slug': 'acme-heating',
            'org_name': 'Acme Heating',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        membership = response.data['membership']
        self.assertEqual(membership['role'], 'owner')
        self.assertEqual(membership['organization']['slug'], 'acme-heating')
        self.assertTrue(Queue.objects.filter(organisation_id=membership['organization_id'], is_default=True).exists())

    def test_register_with_taken_slug_does_not_join(self):
        response = self.client.post('/api/auth/register', {
            'email': 'intruder@example.com',
            'password': 'anotherpass123',
            'full_name': 'Intruder',
            'org_slug': self.organisation.slug,
            'role': 'owner',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Organization slug already taken')
        self.assertFalse(User.objects.filter(email='intruder@example.com').exists())
        self.assertEqual(Membership.objects.filter(organisation=self.organisation).count(), 1)

    def test_register_ignores_requested_role(self):
        response = self.client.post('/api/auth/register', {
            'email': 'new.owner@example.com',
            'password': 'anotherpass123',
            'full_name': 'New Owner',
            'org_slug': 'fresh-org',
            'role': 'staff',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['membership']['role'], 'owner')

    def test_session_with_malformed_org_header(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/auth/session', HTTP_X_ORG_ID='not-a-uuid')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['membership']['organization_id'], str(self.organisation.id))

    def test_logout_clears_cookie(self):
        self.client.post('/api/auth/login', {'email': self.user.email, 'password': 'testpass123'}, format='json')
        response = self.client.post('/api/auth/logout')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies['auth_token'].value, '')
        self.assertEqual(response.cookies['auth_token']['max-age'], 0)
        self.assertIsNone(self.client.get('/api/auth/session').data['user'])

    def test_toggle_mfa(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/user/mfa', {'enabled': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'mfa_enabled': True, 'mfa_method': 'email'})

        response = self.client.post('/api/user/mfa', {'enabled': False}, format='json')
        self.assertEqual(response.data, {'mfa_enabled': False, 'mfa_method': None})
        self.user.refresh_from_db()
        self.assertFalse(self.user.mfa_enabled)

    def test_mfa_rejects_unknown_method(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/user/mfa', {'enabled': True, 'method': 'sms'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_password(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/user/change-password', {
            'current_password': 'testpass123',
            'new_password': 'brandnewpass456',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('brandnewpass456'))

    def test_change_password_wrong_current(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/user/change-password', {
            'current_password': 'not-it',
            'new_password': 'brandnewpass456',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(STRIPE_PRICES={'starter': 'price_starter', 'pro': 'price_pro'})
class SignupCheckoutTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.payload = {
            'full_name': 'Pat Buyer',
            'email': 'Pat@Example.com',
            'password': 'buyerpass123',
            'org_slug': 'Pat Plumbing',
            'org_name': 'Pat Plumbing Ltd',
        }

    def start(self, **overrides):
        session = {'id': 'cs_test_signup1', 'url': 'https://checkout.stripe.com/c/cs_test_signup1'}
        with mock.patch('stripe.checkout.Session.create', return_value=session) as create:
            response = self.client.post('/api/auth/signup/start', dict(self.payload, **overrides), format='json')
        return response, create

    def test_start_records_pending_checkout(self):
        response, create = self.start(price_id='price_pro')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['url'], 'https://checkout.stripe.com/c/cs_test_signup1')
        checkout = CheckoutSession.objects.get(stripe_session_id='cs_test_signup1')
        self.assertEqual(checkout.email, 'pat@example.com')
        self.assertEqual(checkout.org_slug, 'pat-plumbing')
        self.assertEqual(checkout.status, 'pending')
        self.assertNotEqual(checkout.password_hash, 'buyerpass123')
        self.assertEqual(create.call_args.kwargs['metadata'], {'checkoutSessionId': str(checkout.id)})

    def test_start_rejects_taken_slug(self):
        TestDataFactory.create_organisation(slug='pat-plumbing')
        response, create = self.start()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        create.assert_not_called()

    def test_complete_provisions_owner_and_sets_cookie(self):
        self.start()
        completed = {'status': 'complete', 'customer': 'cus_pat', 'subscription': 'sub_pat'}
        with mock.patch('stripe.checkout.Session.retrieve', return_value=completed):
            response = self.client.get('/api/auth/signup/complete', {'session_id': 'cs_test_signup1'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['ok'])
        self.assertIn('auth_token', response.cookies)
        self.assertEqual(response.data['membership']['role'], 'owner')
        organisation = Organisation.objects.get(slug='pat-plumbing')
        self.assertEqual(organisation.name, 'Pat Plumbing Ltd')
        self.assertEqual(organisation.stripe_customer_id, 'cus_pat')
        self.assertEqual(CheckoutSession.objects.get(stripe_session_id='cs_test_signup1').status, 'completed')

    def test_complete_requires_paid_checkout(self):
        self.start()
        with mock.patch('stripe.checkout.Session.retrieve', return_value={'status': 'open'}):
            response = self.client.post('/api/auth/signup/complete', {'session_id': 'cs_test_signup1'},
                                        format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Organisation.objects.filter(slug='pat-plumbing').exists())

    def test_complete_rejects_short_session_id(self):
        response = self.client.get('/api/auth/signup/complete', {'session_id': 'cs_1'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class OrgContextTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='admin')

    def test_member_gets_first_membership(self):
        context = get_org_context(self.user)
        self.assertEqual(context.type, 'org_member')
        self.assertEqual(context.organisation, self.organisation)
        self.assertEqual(context.role, 'admin')

    def test_member_selects_org_by_id(self):
        other = TestDataFactory.create_organisation()
        TestDataFactory.create_membership(self.user, other, role='staff')
        context = get_org_context(self.user, str(other.id))
        self.assertEqual(context.organisation, other)
        self.assertEqual(context.role, 'staff')

    def test_foreign_org_is_rejected(self):
        other = TestDataFactory.create_organisation()
        with self.assertRaises(OrgContextError):
            get_org_context(self.user, str(other.id))

    def test_invalid_org_id(self):
        with self.assertRaises(OrgContextError):
            get_org_context(self.user, 'not-a-uuid')

    def test_user_without_membership(self):
        loner = TestDataFactory.create_user()
        with self.assertRaises(OrgContextError):
            get_org_context(loner)

    def test_disabled_membership_is_ignored(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_membership(user, self.organisation, status='disabled')
        with self.assertRaises(OrgContextError):
            get_org_context(user)

    def test_partner_admin_without_org_lists_organisations(self):
        admin = TestDataFactory.create_user()
        partner = TestDataFactory.create_partner(admin=admin)
        TestDataFactory.create_organisation(name='Alpha', partner=partner)
        TestDataFactory.create_organisation(name='Beta', partner=partner)
        context = get_org_context(admin)
        self.assertEqual(context.type, 'partner_admin')
        self.assertIsNone(context.organisation)
        self.assertEqual([org['name'] for org in context.organizations], ['Alpha', 'Beta'])

    def test_partner_admin_acts_on_partner_org(self):
        admin = TestDataFactory.create_user()
        partner = TestDataFactory.create_partner(admin=admin)
        managed = TestDataFactory.create_organisation(partner=partner)
        context = get_org_context(admin, str(managed.id))
        self.assertEqual(context.organisation, managed)
        self.assertEqual(context.role, 'partner_admin')
        with self.assertRaises(OrgContextError):
            get_org_context(admin, str(self.organisation.id))

    def test_view_without_org_returns_403(self):
        loner = TestDataFactory.create_user()
        client = AuthenticatedAPIClient().authenticate_user(loner)
        response = client.get('/api/contacts')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TrialGateTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_expired_trial_blocks_api(self):
        self.organisation.trial_end = timezone.now() - timedelta(days=1)
        self.organisation.save()
        response = self.client.get('/api/tickets')
        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.json()['redirectTo'], '/billing')

    def test_billing_routes_are_exempt(self):
        self.organisation.trial_end = timezone.now() - timedelta(days=1)
        self.organisation.save()
        response = self.client.get('/api/billing/trial-status')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'trial_expired')

    def test_subscription_bypasses_expired_trial(self):
        self.organisation.trial_end = timezone.now() - timedelta(days=1)
        self.organisation.stripe_subscription_id = 'sub_123'
        self.organisation.save()
        response = self.client.get('/api/tickets')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_active_trial_passes(self):
        self.organisation.trial_end = timezone.now() + timedelta(days=3)
        self.organisation.save()
        response = self.client.get('/api/tickets')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class AdminUserManagementTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user(email='ops@worktrackr.cloud', is_master_admin=True)
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner', plan='pro')

    def test_non_admin_is_forbidden(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        response = client.get('/api/admin/users')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_includes_membership_and_organisation(self):
        response = self.client.get('/api/admin/users', {'query': self.user.email})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        item = response.data['items'][0]
        self.assertEqual(item['membership']['role'], 'owner')
        self.assertEqual(item['organisation']['plan'], 'pro')
        self.assertEqual(item['status'], 'active')

    def test_list_filters_by_plan_and_status(self):
        other, _ = TestDataFactory.create_org_user(plan='starter')
        other.status = 'disabled'
        other.save()

        response = self.client.get('/api/admin/users', {'plan': 'pro'})
        self.assertEqual([item['id'] for item in response.data['items']], [str(self.user.id)])

        response = self.client.get('/api/admin/users', {'status': 'suspended'})
        self.assertEqual([item['id'] for item in response.data['items']], [str(other.id)])

    def test_list_finds_user_by_id(self):
        response = self.client.get('/api/admin/users', {'query': str(self.user.id)})
        self.assertEqual([item['id'] for item in response.data['items']], [str(self.user.id)])

    def test_page_size_is_capped(self):
        response = self.client.get('/api/admin/users', {'pageSize': 500})
        self.assertEqual(response.data['pageSize'], 50)

    def test_detail(self):
        response = self.client.get(f'/api/admin/users/{self.user.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], self.user.email)
        self.assertEqual(response.data['membership']['organisation_id'], str(self.organisation.id))

    def test_suspend_blocks_login_and_unsuspend_restores_it(self):
        response = self.client.post(f'/api/admin/users/{self.user.id}/suspend')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'User suspended successfully')
        self.user.refresh_from_db()
        self.assertEqual(self.user.status, 'disabled')
        self.assertFalse(self.user.is_active)
        self.assertTrue(AuditLog.objects.filter(action='user_suspend', object_id=str(self.user.id)).exists())

        login = AuthenticatedAPIClient().post(
            '/api/auth/login', {'email': self.user.email, 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(login.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.post(f'/api/admin/users/{self.user.id}/unsuspend')
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_active)

    def test_cannot_suspend_self(self):
        response = self.client.post(f'/api/admin/users/{self.admin.id}/suspend')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_notes(self):
        response = self.client.post(f'/api/admin/users/{self.user.id}/notes', {'notes': 'VIP customer'}, format='json')
        self.assertEqual(response.data['message'], 'Notes updated successfully')
        self.user.refresh_from_db()
        self.assertEqual(self.user.admin_notes, 'VIP customer')

    def test_bulk_rejects_unknown_action(self):
        response = self.client.post('/api/admin/users/bulk', {'ids': [str(self.user.id)], 'action': 'delete'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_suspend(self):
        other, _ = TestDataFactory.create_org_user()
        response = self.client.post('/api/admin/users/bulk',
                                    {'ids': [str(self.user.id), str(other.id)], 'action': 'suspend'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(User.objects.filter(status='disabled').count(), 2)

    def test_update_requires_fields(self):
        response = self.client.patch(f'/api/admin/users/{self.user.id}', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No fields to update')

    def test_update_sets_password(self):
        response = self.client.patch(f'/api/admin/users/{self.user.id}', {'password': 'new-password-1'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('new-password-1'))

    def test_soft_delete_disables_login_and_records_reason(self):
        self.user.admin_notes = 'Existing note'
        self.user.save()
        response = self.client.post(f'/api/admin/users/{self.user.id}/soft-delete', {'reason': 'Chargeback'},
                                    format='json')
        self.assertEqual(response.data['message'], 'User login disabled successfully')
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)
        self.assertTrue(self.user.admin_notes.startswith('Existing note\n\n[SOFT DELETED] '))
        self.assertTrue(self.user.admin_notes.endswith('Reason: Chargeback'))

    def test_hard_delete_requires_confirmation(self):
        response = self.client.post(f'/api/admin/users/{self.user.id}/hard-delete', {'confirmation': 'yes'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Confirmation required')
        self.assertTrue(User.objects.filter(pk=self.user.pk).exists())

    def test_hard_delete_removes_user_tickets_and_empty_organisation(self):
        ticket = TestDataFactory.create_ticket(self.organisation, self.user)
        response = self.client.post(f'/api/admin/users/{self.user.id}/hard-delete', {'confirmation': 'DELETE'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())
        self.assertFalse(Ticket.objects.filter(pk=ticket.pk).exists())
        self.assertFalse(Organisation.objects.filter(pk=self.organisation.pk).exists())

    def test_hard_delete_keeps_organisation_with_other_members(self):
        colleague = TestDataFactory.create_user()
        TestDataFactory.create_membership(colleague, self.organisation, role='admin')
        assigned = TestDataFactory.create_ticket(self.organisation, colleague, assignee=self.user)

        self.client.post(f'/api/admin/users/{self.user.id}/hard-delete', {'confirmation': 'DELETE'}, format='json')

        self.assertTrue(Organisation.objects.filter(pk=self.organisation.pk).exists())
        assigned.refresh_from_db()
        self.assertIsNone(assigned.assignee)

    def test_hard_delete_unknown_user(self):
        response = self.client.post('/api/admin/users/00000000-0000-0000-0000-000000000000/hard-delete',
                                    {'confirmation': 'DELETE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @mock.patch('stripe.billing_portal.Session.create')
    def test_portal_uses_organisation_customer(self, mock_create):
        mock_create.return_value = {'url': 'https://billing.stripe.com/p/session'}
        self.organisation.stripe_customer_id = 'cus_123'
        self.organisation.save()

        response = self.client.post(f'/api/admin/users/{self.user.id}/portal')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['url'], 'https://billing.stripe.com/p/session')
        self.assertEqual(mock_create.call_args.kwargs['customer'], 'cus_123')

    def test_portal_without_customer(self):
        response = self.client.post(f'/api/admin/users/{self.user.id}/portal')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
