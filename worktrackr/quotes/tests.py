"""
Tests for quote money math, numbering, the quote API and its workflow
"""
import json
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.quotes.ai import QuoteDraftError, generate_quote_draft
from worktrackr.quotes.calculations import calculate_line_total, calculate_totals, money
from worktrackr.quotes.models import Quote, QuoteAcceptance, QuoteTemplate, Job, Invoice
from worktrackr.quotes.numbering import next_quote_number, next_invoice_number, is_quote_number
from worktrackr.tickets.models import Comment


class CalculationTests(TestCase):

    def test_money_rounds_half_up(self):
        self.assertEqual(money('2.345'), Decimal('2.35'))
        self.assertEqual(money(None), Decimal('0.00'))

    def test_line_total_includes_tax(self):
        item = {'quantity': 2, 'unit_price': '50.00', 'tax_rate': 20}
        self.assertEqual(calculate_line_total(item), Decimal('120.00'))

    def test_missing_tax_rate_defaults_to_twenty(self):
        self.assertEqual(calculate_line_total({'quantity': 1, 'unit_price': 100}), Decimal('120.00'))
        self.assertEqual(calculate_line_total({'quantity': 1, 'unit_price': 100, 'tax_rate': None}),
                         Decimal('120.00'))

    def test_zero_tax_rate_is_kept(self):
        self.assertEqual(calculate_line_total({'quantity': 1, 'unit_price': 100, 'tax_rate': 0}), Decimal('100.00'))

    def test_line_discount(self):
        item = {'quantity': 1, 'unit_price': 200, 'discount_percent': 10, 'tax_rate': 0}
        self.assertEqual(calculate_line_total(item), Decimal('180.00'))

    def test_totals_with_amount_discount(self):
        items = [
            {'quantity': 2, 'unit_price': 100, 'tax_rate': 20},
            {'quantity': 1, 'unit_price': 50, 'tax_rate': 0},
        ]
        totals = calculate_totals(items, discount_amount=Decimal('25'))
        self.assertEqual(totals, {
            'subtotal': Decimal('250.00'),
            'discount_amount': Decimal('25.00'),
            'tax_amount': Decimal('40.00'),
            'total_amount': Decimal('265.00'),
        })

    def test_percent_discount_wins(self):
        items = [{'quantity': 1, 'unit_price': 100, 'tax_rate': 0}]
        totals = calculate_totals(items, discount_amount=Decimal('50'), discount_percent=Decimal('10'))
        self.assertEqual(totals['discount_amount'], Decimal('10.00'))
        self.assertEqual(totals['total_amount'], Decimal('90.00'))

    def test_empty_lines(self):
        self.assertEqual(calculate_totals([])['total_amount'], Decimal('0.00'))


class NumberingTests(TestCase):

    def setUp(self):
        self.organisation = TestDataFactory.create_organisation()

    def test_quote_numbers_are_sequential_per_org(self):
        year = timezone.now().year
        first = TestDataFactory.create_quote(self.organisation)
        self.assertEqual(first.quote_number, f'QT-{year}-0001')
        self.assertEqual(next_quote_number(self.organisation), f'QT-{year}-0002')
        other = TestDataFactory.create_organisation()
        self.assertEqual(next_quote_number(other), f'QT-{year}-0001')

    def test_invoice_number_format(self):
        self.assertEqual(next_invoice_number(self.organisation), 'INV-000001')

    def test_quote_numbers_grow_past_four_digits(self):
        year = timezone.now().year
        TestDataFactory.create_quote(self.organisation, quote_number=f'QT-{year}-9999')
        number = next_quote_number(self.organisation)
        self.assertEqual(number, f'QT-{year}-10000')
        self.assertTrue(is_quote_number(number))

    def test_invoice_numbers_continue_from_highest(self):
        today = timezone.now().date()
        for number in ('INV-000007', 'INV-000041', 'draft-1'):
            Invoice.objects.create(organisation=self.organisation, invoice_number=number,
                                   issue_date=today, due_date=today)
        self.assertEqual(next_invoice_number(self.organisation), 'INV-000042')

    def test_numbering_locks_the_organisation(self):
        with mock.patch('worktrackr.quotes.numbering._lock_organisation') as lock:
            next_quote_number(self.organisation)
            next_invoice_number(self.organisation)
        self.assertEqual(lock.call_count, 2)
        lock.assert_called_with(self.organisation)

    def test_is_quote_number(self):
        self.assertTrue(is_quote_number('QT-2025-0042'))
        self.assertFalse(is_quote_number('INV-000001'))


class QuoteAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.contact = TestDataFactory.create_contact(self.organisation, name='Acme Ltd')

    def test_create_quote_calculates_totals(self):
        response = self.client.post('/api/quotes', {
            'customer_id': str(self.contact.id),
            'title': 'Boiler replacement',
            'discount_amount': '10.00',
            'line_items': [
                {'description': 'Combi boiler', 'quantity': '1', 'unit_price': '1000.00'},
                {'description': 'Labour', 'quantity': '8', 'unit_price': '50.00', 'tax_rate': '0'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal'], '1400.00')
        self.assertEqual(response.data['tax_amount'], '200.00')
        self.assertEqual(response.data['total_amount'], '1590.00')
        self.assertEqual(response.data['customer_name'], 'Acme Ltd')
        self.assertEqual(len(response.data['line_items']), 2)
        self.assertEqual(response.data['line_items'][1]['tax_rate'], '0.00')
        self.assertTrue(response.data['quote_number'].startswith('QT-'))

    def test_create_requires_lines(self):
        response = self.client.post('/api/quotes', {
            'customer_id': str(self.contact.id),
            'title': 'Empty',
            'line_items': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Validation error')

    def test_create_rejects_foreign_customer(self):
        foreign = TestDataFactory.create_contact(TestDataFactory.create_organisation())
        response = self.client.post('/api/quotes', {
            'customer_id': str(foreign.id),
            'title': 'Sneaky',
            'line_items': [{'description': 'x', 'quantity': '1', 'unit_price': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_id', response.data['details'])

    def test_list_and_filter(self):
        TestDataFactory.create_quote(self.organisation, contact=self.contact)
        TestDataFactory.create_quote(self.organisation, status='sent')
        response = self.client.get('/api/quotes', {'customer_id': str(self.contact.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['quotes'][0]['line_item_count'], 1)
        response = self.client.get('/api/quotes', {'customer_id': 'nope'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_by_number_or_id(self):
        quote = TestDataFactory.create_quote(self.organisation)
        by_id = self.client.get(f'/api/quotes/{quote.id}')
        by_number = self.client.get(f'/api/quotes/{quote.quote_number}')
        self.assertEqual(by_id.status_code, status.HTTP_200_OK)
        self.assertEqual(by_number.data['id'], by_id.data['id'])
        self.assertEqual(self.client.get('/api/quotes/QT-1999-0001').status_code, status.HTTP_404_NOT_FOUND)

    def test_update_discount_recalculates(self):
        quote = TestDataFactory.create_quote(self.organisation, lines=[('Labour', 1, 100)])
        response = self.client.put(f'/api/quotes/{quote.id}', {'discount_percent': '50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount_amount'], '50.00')
        self.assertEqual(response.data['total_amount'], '70.00')

    def test_update_without_fields(self):
        quote = TestDataFactory.create_quote(self.organisation)
        response = self.client.put(f'/api/quotes/{quote.id}', {}, format='json')
        self.assertEqual(response.data['error'], 'No fields to update')

    def test_line_items_add_update_delete(self):
        quote = TestDataFactory.create_quote(self.organisation, lines=[('Labour', 1, 100), ('Parts', 1, 50)])
        labour, parts = list(quote.lines.all())
        response = self.client.put(f'/api/quotes/{quote.id}/line-items', {'line_items': [
            {'id': str(labour.id), 'description': 'Labour', 'quantity': '2', 'unit_price': '100'},
            {'id': str(parts.id), 'description': 'Parts', 'quantity': '1', 'unit_price': '50', '_delete': True},
            {'description': 'Callout', 'quantity': '1', 'unit_price': '30', 'tax_rate': '0'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(sorted(line['description'] for line in response.data['line_items']), ['Callout', 'Labour'])
        self.assertEqual(response.data['subtotal'], '230.00')
        self.assertEqual(response.data['tax_amount'], '40.00')

    def test_stats(self):
        TestDataFactory.create_quote(self.organisation, lines=[('A', 1, 100)], status='accepted')
        TestDataFactory.create_quote(self.organisation, lines=[('B', 1, 50)])
        response = self.client.get('/api/quotes/stats')
        self.assertEqual(response.data['total_quotes'], 2)
        self.assertEqual(response.data['accepted_count'], 1)
        self.assertEqual(response.data['accepted_value'], 120.0)
        self.assertEqual(response.data['total_value'], 180.0)

    def test_delete(self):
        quote = TestDataFactory.create_quote(self.organisation)
        response = self.client.delete(f'/api/quotes/{quote.id}')
        self.assertEqual(response.data['message'], 'Quote deleted successfully')
        self.assertFalse(Quote.objects.filter(pk=quote.pk).exists())

    def test_pdf(self):
        quote = TestDataFactory.create_quote(self.organisation, terms_conditions='Payment within 30 days & more')
        response = self.client.get(f'/api/quotes/{quote.quote_number}/pdf')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn(f'quote-{quote.quote_number}.pdf', response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))


class QuoteWorkflowTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.ticket = TestDataFactory.create_ticket(self.organisation, user=self.user)
        self.quote = TestDataFactory.create_quote(self.organisation, user=self.user, ticket=self.ticket)

    def test_accept_records_acceptance(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/accept', {
            'accepted_by_name': 'Jane Customer',
            'accepted_by_email': 'jane@customer.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quote']['status'], 'accepted')
        acceptance = QuoteAcceptance.objects.get(quote=self.quote)
        self.assertEqual(acceptance.accepted_by_name, 'Jane Customer')
        self.assertEqual(acceptance.ip_address, '127.0.0.1')
        self.assertEqual(response.data['acceptance']['id'], str(acceptance.id))
        self.assertEqual(response.data['acceptance']['accepted_by_email'], 'jane@customer.com')

    def test_accept_twice_fails(self):
        self.client.post(f'/api/quotes/{self.quote.id}/accept', {}, format='json')
        response = self.client.post(f'/api/quotes/{self.quote.id}/accept', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_decline(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/decline', {'reason': 'Too expensive'},
                                    format='json')
        self.assertEqual(response.data['quote']['decline_reason'], 'Too expensive')
        response = self.client.post(f'/api/quotes/{self.quote.id}/decline', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_convert_requires_acceptance(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/convert-to-job', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_convert_to_job(self):
        self.quote.status = 'accepted'
        self.quote.save()
        response = self.client.post(f'/api/quotes/{self.quote.id}/convert-to-job', {
            'assigned_to': str(self.user.id),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        job = Job.objects.get(quote=self.quote)
        self.assertEqual(job.job_number, f'JOB-{timezone.now().year}-0001')
        self.assertEqual(job.ticket, self.ticket)

    def test_duplicate(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/duplicate')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        copy = Quote.objects.get(pk=response.data['quote']['id'])
        self.assertEqual(copy.title, 'Boiler replacement (Copy)')
        self.assertEqual(copy.status, 'draft')
        self.assertEqual(copy.lines.count(), 1)
        self.assertNotEqual(copy.quote_number, self.quote.quote_number)

    def test_send_marks_sent_and_updates_ticket(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/send', {
            'recipient_email': 'jane@customer.com',
            'recipient_name': 'Jane',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.quote.refresh_from_db()
        self.ticket.refresh_from_db()
        self.assertEqual(self.quote.status, 'sent')
        self.assertTrue(response.data['quote_url'].endswith(f'/quotes/view/{self.quote.share_token}'))
        self.assertEqual(self.ticket.status, 'quote_sent')

    def test_schedule_work(self):
        self.quote.status = 'accepted'
        self.quote.save()
        response = self.client.post(f'/api/quotes/{self.quote.id}/schedule-work', {
            'assigned_user_id': str(self.user.id),
            'scheduled_date': '2025-06-02',
            'scheduled_time': '09:30',
            'notes': 'Bring ladder',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, 'scheduled')
        self.assertEqual(self.ticket.assignee, self.user)
        self.assertEqual(timezone.localtime(self.ticket.scheduled_date).hour, 9)
        self.assertTrue(Comment.objects.filter(ticket=self.ticket, body__contains='Bring ladder').exists())

    def test_schedule_work_requires_accepted_quote(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/schedule-work', {
            'assigned_user_id': str(self.user.id),
            'scheduled_date': '2025-06-02',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_invoice(self):
        response = self.client.post(f'/api/quotes/{self.quote.id}/create-invoice', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invoice = Invoice.objects.get(pk=response.data['invoice_id'])
        self.assertEqual(invoice.invoice_number, 'INV-000001')
        self.assertEqual(invoice.total_amount, self.quote.total_amount)
        self.assertEqual(invoice.due_date, timezone.localdate() + timedelta(days=30))
        self.assertEqual(invoice.lines.count(), 1)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, 'invoiced')

    def test_mark_accepted_and_declined_update_ticket(self):
        self.client.post(f'/api/quotes/{self.quote.id}/mark-accepted')
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, 'quote_accepted')
        self.client.post(f'/api/quotes/{self.quote.id}/mark-declined', {'reason': 'Changed mind'}, format='json')
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, 'quote_declined')


class QuoteDraftTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.contact = TestDataFactory.create_contact(self.organisation, name='Acme Ltd')
        TestDataFactory.create_quote(self.organisation, contact=self.contact, status='accepted', title='Old job')

    def test_draft_includes_context_flags(self):
        client = mock.Mock()
        client.run_chat.return_value = '```json\n' + json.dumps({
            'title': 'New boiler',
            'line_items': [{'description': 'Boiler', 'quantity': 1, 'unit_price': 900}],
        }) + '\n```'
        draft = generate_quote_draft(
            self.organisation,
            'Replace boiler',
            context_sources={'customer_info': True, 'similar_quotes': True},
            customer_id=self.contact.id,
            client=client,
        )
        self.assertEqual(draft['title'], 'New boiler')
        self.assertEqual(draft['created_via'], 'ai')
        self.assertEqual(draft['ai_context_used'], {
            'ticket': False, 'customer': True, 'similar_quotes': 1, 'files_uploaded': 0,
        })
        messages = client.run_chat.call_args[0][0]
        self.assertIn('Acme Ltd', messages[1]['content'])
        self.assertIn('Old job', messages[1]['content'])

    def test_invalid_json_raises(self):
        client = mock.Mock()
        client.run_chat.return_value = 'Sorry, I cannot help with that.'
        with self.assertRaises(QuoteDraftError) as raised:
            generate_quote_draft(self.organisation, 'Replace boiler', client=client)
        self.assertEqual(raised.exception.raw_response, 'Sorry, I cannot help with that.')

    def test_endpoint_maps_bad_reply_to_502(self):
        api = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        with mock.patch('worktrackr.quotes.ai.LLMClient') as llm:
            llm.return_value.run_chat.return_value = 'not json'
            response = api.post('/api/quotes/ai-generate', {'prompt': 'Replace boiler'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['message'], 'AI generated invalid response format')
        self.assertEqual(response.data['raw_response'], 'not json')

    def test_endpoint_returns_draft(self):
        api = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        with mock.patch('worktrackr.quotes.ai.LLMClient') as llm:
            llm.return_value.run_chat.return_value = json.dumps({'title': 'Service', 'line_items': []})
            response = api.post('/api/quotes/ai-generate', {'prompt': 'Annual service'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ai_prompt'], 'Annual service')

    def test_endpoint_requires_configured_ai(self):
        api = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        with self.settings(OPENAI_API_KEY=''):
            response = api.post('/api/quotes/ai-generate', {'prompt': 'Annual service'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


class AIContextPreviewTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.contact = TestDataFactory.create_contact(self.organisation, name='Acme Ltd',
                                                      custom_fields={'sector': 'Plumbing'})

    def test_ticket_supplies_customer(self):
        ticket = TestDataFactory.create_ticket(self.organisation, title='No heat', contact=self.contact)
        Comment.objects.create(ticket=ticket, author=self.user, body='Checked the pump')
        response = self.client.get('/api/quotes/ai-context-preview', {'ticket_id': str(ticket.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'ticket_description': 'No heat: Boiler not heating',
            'ticket_updates_count': 1,
            'customer_name': 'Acme Ltd',
            'customer_sector': 'Plumbing',
            'similar_quotes_count': 0,
        })

    def test_counts_non_draft_quotes_for_contact(self):
        TestDataFactory.create_quote(self.organisation, self.contact, status='sent')
        TestDataFactory.create_quote(self.organisation, self.contact, status='accepted')
        TestDataFactory.create_quote(self.organisation, self.contact)
        response = self.client.get('/api/quotes/ai-context-preview', {'contact_id': str(self.contact.id)})
        self.assertEqual(response.data['similar_quotes_count'], 2)
        self.assertIsNone(response.data['ticket_description'])

    def test_foreign_contact_is_ignored(self):
        foreign = TestDataFactory.create_contact(TestDataFactory.create_organisation())
        response = self.client.get('/api/quotes/ai-context-preview', {'contact_id': str(foreign.id)})
        self.assertIsNone(response.data['customer_name'])

    def test_malformed_id(self):
        response = self.client.get('/api/quotes/ai-context-preview', {'ticket_id': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class QuoteTemplateAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.payload = {
            'name': 'Boiler service',
            'sector': 'Heating',
            'default_line_items': [
                {'type': 'labour', 'description': 'Annual service', 'quantity': 1, 'unit': 'hour', 'sell_price': 85},
                {'type': 'parts', 'description': 'Filter', 'quantity': 2, 'unit': 'each', 'sell_price': 12.5},
            ],
            'exclusions': ['Parts not listed'],
        }

    def create(self, **overrides):
        response = self.client.post('/api/quote-templates', dict(self.payload, **overrides), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data['template']

    def test_create(self):
        template = self.create()
        self.assertTrue(template['is_active'])
        self.assertEqual(template['created_by_email'], self.user.email)
        self.assertEqual(template['default_line_items'][1]['sell_price'], 12.5)
        stored = QuoteTemplate.objects.get(pk=template['id'])
        self.assertEqual(stored.organisation, self.organisation)
        self.assertEqual(stored.exclusions, ['Parts not listed'])

    def test_create_rejects_bad_line_type(self):
        items = [{'type': 'travel', 'description': 'Mileage', 'quantity': 1, 'unit': 'mile', 'sell_price': 1}]
        response = self.client.post('/api/quote-templates', dict(self.payload, default_line_items=items),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid request data')

    def test_list_filters_and_sectors(self):
        self.create()
        self.create(name='Bathroom refit', sector='Plumbing')
        self.create(name='Callout', sector='')
        response = self.client.get('/api/quote-templates', {'sector': 'Heating'})
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['templates'][0]['name'], 'Boiler service')

        response = self.client.get('/api/quote-templates')
        self.assertEqual([t['name'] for t in response.data['templates']],
                         ['Bathroom refit', 'Boiler service', 'Callout'])

        response = self.client.get('/api/quote-templates/sectors')
        self.assertEqual(response.data['sectors'], ['Heating', 'Plumbing'])

    def test_partial_update(self):
        template = self.create()
        response = self.client.put(f"/api/quote-templates/{template['id']}",
                                   {'terms_and_conditions': 'Payment on completion'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['template']['terms_and_conditions'], 'Payment on completion')
        self.assertEqual(len(response.data['template']['default_line_items']), 2)

    def test_delete_deactivates_and_activate_restores(self):
        template = self.create()
        response = self.client.delete(f"/api/quote-templates/{template['id']}")
        self.assertEqual(response.data['message'], 'Template deleted successfully')
        self.assertFalse(QuoteTemplate.objects.get(pk=template['id']).is_active)
        response = self.client.get('/api/quote-templates', {'is_active': 'false'})
        self.assertEqual(response.data['total'], 1)

        response = self.client.post(f"/api/quote-templates/{template['id']}/activate")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['template']['is_active'])

    def test_other_organisation_cannot_see_template(self):
        template = self.create()
        other_user, other_org = TestDataFactory.create_org_user()
        client = AuthenticatedAPIClient().authenticate_user(other_user, other_org)
        response = client.get(f"/api/quote-templates/{template['id']}")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(client.get('/api/quote-templates').data['total'], 0)
