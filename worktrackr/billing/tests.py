"""
Tests for plans, seat tracking and the Stripe / inbound email webhooks
"""
from decimal import Decimal
from unittest import mock

import stripe
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from worktrackr.billing.models import StripeEvent
from worktrackr.billing.plans import calculate_monthly_cost, plan_from_price_id, get_plan_details
from worktrackr.billing.stripe_seats import (
    count_active_users, ensure_seat_addon_item, initialize_seat_tracking, sync_seats_for_org
)
from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.organisations.models import Organisation, OrganisationAddon
from worktrackr.tickets.models import Ticket

TEST_PRICES = {
    'starter': 'price_starter',
    'pro': 'price_pro',
    'enterprise': 'price_enterprise',
    'individual_base': 'price_individual_base',
    'starter_base': 'price_starter_base',
    'pro_base': 'price_pro_base',
    'enterprise_base': 'price_enterprise_base',
    'seat_addon': 'price_seat',
    'storage_100': 'price_storage',
    'sms_250': 'price_sms250',
    'sms_1000': 'price_sms1000',
}


class PlanMathTests(TestCase):

    def test_monthly_cost_within_included_seats(self):
        self.assertEqual(calculate_monthly_cost('pro', 10), Decimal('99'))

    def test_monthly_cost_with_overage(self):
        # starter includes 1 seat, 3 extra at £9
        self.assertEqual(calculate_monthly_cost('starter', 4), Decimal('76'))

    def test_unknown_plan(self):
        self.assertIsNone(get_plan_details('platinum'))
        with self.assertRaises(ValueError):
            calculate_monthly_cost('platinum', 1)

    @override_settings(STRIPE_PRICES=TEST_PRICES)
    def test_plan_from_price_id(self):
        self.assertEqual(plan_from_price_id('price_pro_base'), 'pro')
        self.assertIsNone(plan_from_price_id('price_unknown'))
        self.assertIsNone(plan_from_price_id(None))


class PlansAPITests(TestCase):

    def test_plans_anonymous(self):
        response = APIClient().get('/api/billing/plans')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([plan['plan'] for plan in response.data['plans']],
                         ['individual', 'starter', 'pro', 'enterprise'])
        self.assertNotIn('current', response.data)

    def test_plans_with_current_org_cost(self):
        user, organisation = TestDataFactory.create_org_user(plan='starter')
        TestDataFactory.create_membership(TestDataFactory.create_user(), organisation)
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/billing/plans', {'organisation_id': str(organisation.id)})
        self.assertEqual(response.data['current']['active_users'], 2)
        self.assertEqual(response.data['current']['monthly_cost'], Decimal('58'))

    def test_plans_with_malformed_organisation_id(self):
        user, _ = TestDataFactory.create_org_user()
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/billing/plans', {'organisation_id': 'bad'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid organisation_id')


class SeatSyncTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(plan='starter')

    def test_count_skips_disabled_users_and_memberships(self):
        disabled_user = TestDataFactory.create_user(status='disabled')
        TestDataFactory.create_membership(disabled_user, self.organisation)
        TestDataFactory.create_membership(TestDataFactory.create_user(), self.organisation, status='invited')
        TestDataFactory.create_membership(TestDataFactory.create_user(), self.organisation)
        self.assertEqual(count_active_users(self.organisation), 2)

    def test_sync_without_subscription_only_stores_count(self):
        with mock.patch('stripe.SubscriptionItem.modify') as modify:
            result = sync_seats_for_org(self.organisation)
        modify.assert_not_called()
        self.assertFalse(result['synced'])
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.active_user_count, 1)

    def test_sync_pushes_overage(self):
        for _ in range(3):
            TestDataFactory.create_membership(TestDataFactory.create_user(), self.organisation)
        self.organisation.stripe_subscription_id = 'sub_1'
        self.organisation.stripe_seat_item_id = 'si_seat'
        self.organisation.save()

        with mock.patch('stripe.SubscriptionItem.modify') as modify:
            result = sync_seats_for_org(self.organisation)

        modify.assert_called_once_with('si_seat', quantity=3, proration_behavior='create_prorations')
        self.assertEqual(result, {'active_users': 4, 'included': 1, 'overage': 3, 'synced': True})
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.seat_overage_cached, 3)


@override_settings(STRIPE_PRICES=TEST_PRICES, STRIPE_WEBHOOK_SECRET='whsec_test')
class StripeWebhookTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.organisation = TestDataFactory.create_organisation(plan='starter')
        self.organisation.stripe_customer_id = 'cus_1'
        self.organisation.save()

    def post_event(self, event):
        with mock.patch('stripe.Webhook.construct_event', return_value=event):
            return self.client.post('/webhooks/stripe', data=b'{}', content_type='application/json',
                                    HTTP_STRIPE_SIGNATURE='t=1,v1=abc')

    def subscription_event(self, event_id, event_type='customer.subscription.updated', items=None):
        return {
            'id': event_id,
            'type': event_type,
            'data': {'object': {
                'id': 'sub_1',
                'customer': 'cus_1',
                'metadata': {'orgId': str(self.organisation.id)},
                'current_period_end': 1767225600,
                'trial_start': None,
                'trial_end': None,
                'items': {'data': items or [
                    {'id': 'si_main', 'price': {'id': 'price_pro_base'}, 'quantity': 1},
                    {'id': 'si_seat', 'price': {'id': 'price_seat'}, 'quantity': 2},
                    {'id': 'si_sms', 'price': {'id': 'price_sms250'}, 'quantity': 1},
                ]},
            }},
        }

    def test_bad_signature(self):
        error = stripe.SignatureVerificationError('bad signature', 'sig')
        with mock.patch('stripe.Webhook.construct_event', side_effect=error):
            response = self.client.post('/webhooks/stripe', data=b'{}', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_subscription_updated_sets_plan_and_addons(self):
        response = self.post_event(self.subscription_event('evt_1'))
        self.assertEqual(response.status_code, 200)
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.plan, 'pro')
        self.assertEqual(self.organisation.stripe_subscription_id, 'sub_1')
        self.assertEqual(self.organisation.stripe_seat_item_id, 'si_seat')
        self.assertEqual(self.organisation.plan_price_id, 'price_pro_base')
        self.assertIsNotNone(self.organisation.current_period_end)
        addons = list(OrganisationAddon.objects.filter(organisation=self.organisation))
        self.assertEqual([addon.addon_name for addon in addons], ['SMS Pack 250'])

    def test_duplicate_event_is_skipped(self):
        self.post_event(self.subscription_event('evt_dup'))
        response = self.post_event(self.subscription_event('evt_dup'))
        self.assertEqual(response.json(), {'received': True, 'duplicate': True})
        self.assertEqual(StripeEvent.objects.filter(event_id='evt_dup').count(), 1)

    def test_subscription_deleted_clears_billing(self):
        self.post_event(self.subscription_event('evt_a'))
        response = self.post_event({
            'id': 'evt_b',
            'type': 'customer.subscription.deleted',
            'data': {'object': {'id': 'sub_1'}},
        })
        self.assertEqual(response.status_code, 200)
        self.organisation.refresh_from_db()
        self.assertIsNone(self.organisation.stripe_subscription_id)
        self.assertIsNone(self.organisation.stripe_seat_item_id)
        self.assertFalse(OrganisationAddon.objects.filter(organisation=self.organisation).exists())

    def test_checkout_completed_links_customer(self):
        response = self.post_event({
            'id': 'evt_c',
            'type': 'checkout.session.completed',
            'data': {'object': {
                'id': 'cs_1',
                'customer': 'cus_new',
                'subscription': 'sub_new',
                'metadata': {'orgId': str(self.organisation.id)},
            }},
        })
        self.assertEqual(response.status_code, 200)
        organisation = Organisation.objects.get(pk=self.organisation.pk)
        self.assertEqual(organisation.stripe_customer_id, 'cus_new')
        self.assertEqual(organisation.stripe_subscription_id, 'sub_new')

    def test_malformed_org_metadata_falls_back_to_customer(self):
        event = self.subscription_event('evt_m')
        event['data']['object']['metadata'] = {'orgId': 'bad'}
        response = self.post_event(event)
        self.assertEqual(response.status_code, 200)
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.plan, 'pro')
        self.assertEqual(self.organisation.stripe_subscription_id, 'sub_1')

    def test_unhandled_event_is_acknowledged(self):
        response = self.post_event({'id': 'evt_x', 'type': 'charge.refunded', 'data': {'object': {}}})
        self.assertEqual(response.json(), {'received': True})


@override_settings(INBOUND_EMAIL_DOMAIN='inbound.worktrackr.cloud')
class InboundEmailTests(TestCase):

    def setUp(self):
        self.organisation = TestDataFactory.create_organisation(slug='acme')
        self.queue = TestDataFactory.create_queue(self.organisation)
        self.contact = TestDataFactory.create_contact(self.organisation, email='jane@customer.com')

    def test_creates_ticket_for_org_slug(self):
        response = APIClient().post('/webhooks/mailgun/inbound', {
            'recipient': 'acme+support@inbound.worktrackr.cloud',
            'sender': 'Jane <jane@customer.com>',
            'subject': 'Leaking radiator',
            'body-plain': 'Kitchen radiator is leaking',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ticket = Ticket.objects.get(pk=response.data['ticketId'])
        self.assertEqual(ticket.organisation, self.organisation)
        self.assertEqual(ticket.queue, self.queue)
        self.assertEqual(ticket.contact, self.contact)
        self.assertEqual(ticket.title, 'Leaking radiator')

    def test_rejects_foreign_domain(self):
        response = APIClient().post('/webhooks/mailgun/inbound', {'recipient': 'acme@elsewhere.com'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(STRIPE_PRICES=TEST_PRICES)
class CheckoutAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_checkout_rejects_unknown_plan(self):
        with mock.patch('stripe.checkout.Session.create') as create:
            response = self.client.post('/api/billing/checkout', {'plan': 'platinum'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Missing or invalid plan/priceId')
        create.assert_not_called()

    def test_checkout_returns_session_url(self):
        session = {'id': 'cs_1', 'url': 'https://checkout.stripe.com/c/cs_1'}
        with mock.patch('stripe.checkout.Session.create', return_value=session) as create:
            response = self.client.post('/api/billing/checkout', {'plan': 'Pro'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['url'], session['url'])
        kwargs = create.call_args.kwargs
        self.assertEqual(kwargs['line_items'], [{'price': 'price_pro', 'quantity': 1}])
        self.assertEqual(kwargs['metadata'], {'orgId': str(self.organisation.id)})
        self.assertIsNone(kwargs['customer'])

    def test_portal_requires_customer(self):
        response = self.client.post('/api/billing/portal')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_portal_returns_session_url(self):
        self.organisation.stripe_customer_id = 'cus_1'
        self.organisation.save()
        session = {'id': 'bps_1', 'url': 'https://billing.stripe.com/p/session/bps_1'}
        with mock.patch('stripe.billing_portal.Session.create', return_value=session) as create:
            response = self.client.post('/api/billing/portal')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['url'], session['url'])
        self.assertEqual(create.call_args.kwargs['customer'], 'cus_1')


@override_settings(ADMIN_API_KEY='admin-secret')
class AdminBillingTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(plan='starter')
        self.client = APIClient()

    def test_update_plan_with_admin_key(self):
        response = self.client.post('/api/admin/update-plan', {'email': self.user.email.upper(), 'plan': 'pro'},
                                    format='json', HTTP_X_ADMIN_KEY='admin-secret')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['organization']['includedSeats'], 10)
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.plan, 'pro')

    def test_update_plan_with_wrong_key(self):
        response = self.client.post('/api/admin/update-plan', {'email': self.user.email, 'plan': 'pro'},
                                    format='json', HTTP_X_ADMIN_KEY='admin-secreT')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.plan, 'starter')

    def test_update_plan_without_key(self):
        response = self.client.post('/api/admin/update-plan', {'email': self.user.email, 'plan': 'pro'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @override_settings(ADMIN_API_KEY='')
    def test_update_plan_disabled_without_configured_key(self):
        response = self.client.post('/api/admin/update-plan', {'email': self.user.email, 'plan': 'pro'},
                                    format='json', HTTP_X_ADMIN_KEY='')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_master_admin_sets_trial(self):
        admin = TestDataFactory.create_user(is_master_admin=True)
        client = AuthenticatedAPIClient().authenticate_user(admin)
        response = client.post('/api/admin/set-trial', {'email': self.user.email, 'days': 30}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['organisationId'], str(self.organisation.id))
        self.organisation.refresh_from_db()
        self.assertEqual((self.organisation.trial_end - self.organisation.trial_start).days, 30)

    def test_non_admin_cannot_set_trial(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.post('/api/admin/set-trial', {'email': self.user.email}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.organisation.refresh_from_db()
        self.assertIsNone(self.organisation.trial_end)


class SeatSignalTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()

    def test_new_membership_syncs_after_commit(self):
        member = TestDataFactory.create_user()
        with mock.patch('worktrackr.billing.stripe_seats.on_membership_state_changed') as sync:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                TestDataFactory.create_membership(member, self.organisation)
                sync.assert_not_called()
        self.assertEqual(len(callbacks), 1)
        sync.assert_called_once_with(self.organisation.id)

    def test_unchanged_membership_status_does_not_sync(self):
        membership = self.organisation.memberships.get(user=self.user)
        with mock.patch('worktrackr.billing.stripe_seats.on_membership_state_changed') as sync:
            with self.captureOnCommitCallbacks(execute=True):
                membership.role = 'admin'
                membership.save()
        sync.assert_not_called()

    def test_disabling_user_syncs_each_organisation(self):
        other = TestDataFactory.create_organisation()
        TestDataFactory.create_membership(self.user, other)
        with mock.patch('worktrackr.billing.stripe_seats.on_membership_state_changed') as sync:
            with self.captureOnCommitCallbacks(execute=True):
                self.user.status = 'disabled'
                self.user.save()
        self.assertEqual({call.args[0] for call in sync.call_args_list}, {self.organisation.id, other.id})

    def test_stripe_outage_does_not_break_membership_changes(self):
        self.organisation.stripe_subscription_id = 'sub_1'
        self.organisation.stripe_seat_item_id = 'si_seat'
        self.organisation.save()
        error = stripe.APIConnectionError('network down')
        with mock.patch('stripe.SubscriptionItem.modify', side_effect=error):
            with self.captureOnCommitCallbacks(execute=True):
                TestDataFactory.create_membership(TestDataFactory.create_user(), self.organisation)
        self.assertEqual(count_active_users(self.organisation), 2)


@override_settings(STRIPE_PRICES=TEST_PRICES)
class SeatAddonTests(TestCase):

    def setUp(self):
        self.organisation = TestDataFactory.create_organisation(plan='starter')
        self.organisation.stripe_subscription_id = 'sub_1'
        self.organisation.save()

    def subscription(self, *price_ids):
        return {'items': {'data': [
            {'id': f'si_{index}', 'price': {'id': price_id}} for index, price_id in enumerate(price_ids)
        ]}}

    def test_creates_missing_seat_item(self):
        with mock.patch('stripe.Subscription.retrieve', return_value=self.subscription('price_starter_base')), \
                mock.patch('stripe.SubscriptionItem.create', return_value={'id': 'si_new'}) as create:
            seat_item_id = ensure_seat_addon_item(self.organisation)
        self.assertEqual(seat_item_id, 'si_new')
        create.assert_called_once_with(subscription='sub_1', price='price_seat', quantity=0)
        self.organisation.refresh_from_db()
        self.assertEqual(self.organisation.stripe_seat_item_id, 'si_new')

    def test_reuses_existing_seat_item(self):
        subscription = self.subscription('price_starter_base', 'price_seat')
        with mock.patch('stripe.Subscription.retrieve', return_value=subscription), \
                mock.patch('stripe.SubscriptionItem.create') as create:
            seat_item_id = ensure_seat_addon_item(self.organisation)
        self.assertEqual(seat_item_id, 'si_1')
        create.assert_not_called()

    def test_requires_subscription(self):
        self.organisation.stripe_subscription_id = None
        with self.assertRaises(ValueError):
            ensure_seat_addon_item(self.organisation)

    def test_initialize_attaches_item_and_syncs(self):
        with mock.patch('stripe.Subscription.retrieve', return_value=self.subscription('price_seat')), \
                mock.patch('stripe.SubscriptionItem.modify') as modify:
            result = initialize_seat_tracking(self.organisation)
        modify.assert_called_once_with('si_0', quantity=0, proration_behavior='create_prorations')
        self.assertTrue(result['synced'])

    @override_settings(STRIPE_PRICES={'starter': 'price_starter'})
    def test_initialize_without_seat_price_is_skipped(self):
        with mock.patch('stripe.Subscription.retrieve') as retrieve:
            self.assertIsNone(initialize_seat_tracking(self.organisation))
        retrieve.assert_not_called()
