"""
Tests for tickets: CRUD, bulk operations, calendar and form templates
"""
from datetime import datetime, timezone as dt_timezone

from django.test import TestCase
from rest_framework import status

from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.tickets.models import Ticket, Comment, TicketTemplate
from worktrackr.tickets.templates import (
    TEMPLATE_VERSION, default_template, load_template, needs_migration, render_fields, validate_ticket_payload
)


class TemplateTests(TestCase):

    def test_stale_version_is_migrated(self):
        stale = {'version': 3, 'template': {'title': True}, 'order': ['title'], 'configurations': {}}
        self.assertTrue(needs_migration(stale))
        self.assertEqual(load_template(stale), default_template())

    def test_malformed_template_is_migrated(self):
        self.assertTrue(needs_migration(None))
        self.assertTrue(needs_migration({'version': TEMPLATE_VERSION, 'template': [], 'order': []}))

    def test_current_template_is_kept(self):
        current = {'version': TEMPLATE_VERSION, 'template': {'title': True}, 'order': ['title']}
        loaded = load_template(current)
        self.assertEqual(loaded['order'], ['title'])
        self.assertEqual(loaded['configurations'], {})

    def test_default_template_renders_in_order(self):
        keys = [field['key'] for field in render_fields(default_template())]
        self.assertEqual(keys, ['title', 'description', 'contact', 'priority', 'status', 'category',
                                'assignedUser', 'scheduled_date'])

    def test_disabled_unknown_and_duplicate_keys_are_skipped(self):
        template = {
            'version': TEMPLATE_VERSION,
            'template': {'title': True, 'description': False, 'mystery': True, 'work_type': True},
            'order': ['title', 'description', 'mystery', 'title', 'work_type'],
            'configurations': {'work_type': ['Repair', '  ', None]},
        }
        fields = render_fields(template)
        self.assertEqual([field['key'] for field in fields], ['title', 'work_type'])
        self.assertEqual(fields[1]['options'], ['Repair'])

    def test_validate_payload(self):
        template = default_template()
        self.assertEqual(validate_ticket_payload(template, {'title': 'Leak', 'description': 'Under sink'}), {})
        errors = validate_ticket_payload(template, {'title': '  ', 'category': 'Plumbing'})
        self.assertEqual(set(errors), {'title', 'description', 'category'})


class TicketAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_create_ticket_uses_default_queue(self):
        response = self.client.post('/api/tickets', {
            'title': 'Boiler fault',
            'description': 'No hot water since Monday',
            'priority': 'high',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        ticket = Ticket.objects.get(pk=response.data['ticket']['id'])
        self.assertEqual(ticket.queue.name, 'General')
        self.assertEqual(ticket.status, 'open')
        self.assertEqual(ticket.created_by, self.user)
        self.assertEqual(response.data['ticket']['comment_count'], 0)

    def test_create_ticket_requires_description(self):
        response = self.client.post('/api/tickets', {'title': 'No details'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('description', response.data['details'])

    def test_create_ticket_rejects_foreign_assignee(self):
        outsider = TestDataFactory.create_user()
        response = self.client.post('/api/tickets', {
            'title': 'Boiler fault',
            'description': 'Noisy',
            'assignee_id': str(outsider.id),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_ticket_follows_stored_template(self):
        TicketTemplate.objects.create(
            organisation=self.organisation,
            version=TEMPLATE_VERSION,
            template={'title': True, 'description': False},
            order=['title', 'description'],
        )
        response = self.client.post('/api/tickets', {'title': 'Title only'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_filters_and_paginates(self):
        TestDataFactory.create_ticket(self.organisation, priority='urgent')
        TestDataFactory.create_ticket(self.organisation, priority='low')
        TestDataFactory.create_ticket(TestDataFactory.create_organisation(), priority='urgent')
        response = self.client.get('/api/tickets', {'priority': 'urgent'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['tickets']), 1)
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_detail_includes_comments(self):
        ticket = TestDataFactory.create_ticket(self.organisation)
        Comment.objects.create(ticket=ticket, author=self.user, body='On my way')
        response = self.client.get(f'/api/tickets/{ticket.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ticket']['comment_count'], 1)
        self.assertEqual(response.data['comments'][0]['body'], 'On my way')
        self.assertEqual(response.data['attachments'], [])

    def test_update_ticket(self):
        ticket = TestDataFactory.create_ticket(self.organisation)
        response = self.client.put(f'/api/tickets/{ticket.id}', {'status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ticket']['status'], 'pending')

    def test_update_without_fields(self):
        ticket = TestDataFactory.create_ticket(self.organisation)
        response = self.client.put(f'/api/tickets/{ticket.id}', {'unknown': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No fields to update')

    def test_workflow_status_cannot_be_set_directly(self):
        ticket = TestDataFactory.create_ticket(self.organisation)
        response = self.client.put(f'/api/tickets/{ticket.id}', {'status': 'invoiced'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_missing_ticket(self):
        foreign = TestDataFactory.create_ticket(TestDataFactory.create_organisation())
        response = self.client.delete(f'/api/tickets/{foreign.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Ticket.objects.filter(pk=foreign.pk).exists())

    def test_add_comment(self):
        ticket = TestDataFactory.create_ticket(self.organisation)
        response = self.client.post(f'/api/tickets/{ticket.id}/comments', {'body': 'Parts ordered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['comment']['author_email'], self.user.email)

    def test_empty_comment_rejected(self):
        ticket = TestDataFactory.create_ticket(self.organisation)
        response = self.client.post(f'/api/tickets/{ticket.id}/comments', {'body': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_queues_and_users(self):
        response = self.client.get('/api/tickets/queues')
        self.assertEqual([queue['name'] for queue in response.data['queues']], ['General'])
        response = self.client.get('/api/tickets/users')
        self.assertEqual(response.data['users'][0]['email'], self.user.email)


class TicketBulkTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.tickets = [TestDataFactory.create_ticket(self.organisation) for _ in range(3)]
        self.foreign = TestDataFactory.create_ticket(TestDataFactory.create_organisation())

    def test_bulk_update(self):
        ids = [str(t.id) for t in self.tickets[:2]] + [str(self.foreign.id)]
        response = self.client.put('/api/tickets/bulk', {'ids': ids, 'updates': {'priority': 'urgent'}},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'updated': 2, 'success': True})
        self.foreign.refresh_from_db()
        self.assertEqual(self.foreign.priority, 'medium')

    def test_bulk_update_requires_ids(self):
        response = self.client.put('/api/tickets/bulk', {'ids': [], 'updates': {'priority': 'low'}}, format='json')
        self.assertEqual(response.data['error'], 'ids array is required')

    def test_bulk_update_ignores_unknown_fields(self):
        response = self.client.put('/api/tickets/bulk', {
            'ids': [str(self.tickets[0].id)],
            'updates': {'title': 'Renamed'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No valid fields to update')

    def test_bulk_delete_counts_only_tickets(self):
        Comment.objects.create(ticket=self.tickets[0], author=self.user, body='note')
        ids = [str(t.id) for t in self.tickets[:2]] + [str(self.foreign.id)]
        response = self.client.delete('/api/tickets/bulk', {'ids': ids}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'deleted': 2})
        self.assertTrue(Ticket.objects.filter(pk=self.foreign.pk).exists())


class TicketCalendarTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_requires_range(self):
        response = self.client.get('/api/tickets/calendar', {'start': '2025-03-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'start and end required')

    def test_range_is_start_inclusive_end_exclusive(self):
        inside = TestDataFactory.create_ticket(
            self.organisation, title='Service visit',
            scheduled_date=datetime(2025, 3, 1, 0, 0, tzinfo=dt_timezone.utc), scheduled_duration_mins=90,
        )
        TestDataFactory.create_ticket(self.organisation, scheduled_date=datetime(2025, 3, 8, tzinfo=dt_timezone.utc))
        TestDataFactory.create_ticket(self.organisation)
        response = self.client.get('/api/tickets/calendar', {'start': '2025-03-01', 'end': '2025-03-08'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        events = response.data['events']
        self.assertEqual([event['id'] for event in events], [str(inside.id)])
        self.assertFalse(events[0]['allDay'])
        self.assertTrue(events[0]['end'].startswith('2025-03-01T01:30'))

    def test_ticket_without_duration_is_all_day(self):
        ticket = TestDataFactory.create_ticket(
            self.organisation, scheduled_date=datetime(2025, 3, 2, 9, 0, tzinfo=dt_timezone.utc),
        )
        self.assertIsNone(ticket.scheduled_end)
        response = self.client.get('/api/tickets/calendar', {'start': '2025-03-01', 'end': '2025-03-08'})
        event = response.data['events'][0]
        self.assertTrue(event['allDay'])
        self.assertEqual(event['end'], event['start'])


class TicketTemplateAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_default_template_served(self):
        response = self.client.get('/api/tickets/template')
        self.assertEqual(response.data['template']['version'], TEMPLATE_VERSION)

    def test_save_and_render_fields(self):
        response = self.client.put('/api/tickets/template', {
            'template': {'title': True, 'category': True},
            'order': ['category', 'title'],
            'configurations': {'category': ['Gas', 'Electric']},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/tickets/template/fields')
        self.assertEqual([field['key'] for field in response.data['fields']], ['category', 'title'])
        self.assertEqual(response.data['fields'][0]['options'], ['Gas', 'Electric'])

    def test_staff_cannot_change_template(self):
        staff = TestDataFactory.create_user()
        TestDataFactory.create_membership(staff, self.organisation, role='staff')
        client = AuthenticatedAPIClient().authenticate_user(staff, self.organisation)
        response = client.put('/api/tickets/template', {'template': {'title': True}, 'order': ['title']},
                              format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
