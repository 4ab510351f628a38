"""
Tests for CRM events and the work calendar
"""
from datetime import date, time, timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.crm.models import CRMEvent, CalendarEvent


class CRMEventAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.contact = TestDataFactory.create_contact(self.organisation, name='Acme Ltd')
        self.start = timezone.now().replace(microsecond=0) + timedelta(days=1)

    def create_event(self, organisation=None, **extra):
        return CRMEvent.objects.create(
            organisation=organisation or self.organisation,
            title=extra.pop('title', 'Renewal call'),
            type=extra.pop('type', 'call'),
            start_at=extra.pop('start_at', self.start),
            end_at=extra.pop('end_at', self.start + timedelta(hours=1)),
            **extra
        )

    def test_create_event(self):
        payload = {
            'title': 'Site survey',
            'type': 'meeting',
            'contact_id': str(self.contact.id),
            'assigned_user_id': str(self.user.id),
            'start_at': self.start.isoformat(),
            'end_at': (self.start + timedelta(hours=2)).isoformat(),
        }
        response = self.client.post('/api/crm-events', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['contact_name'], 'Acme Ltd')
        self.assertEqual(response.data['status'], 'planned')
        event = CRMEvent.objects.get(pk=response.data['id'])
        self.assertEqual(event.created_by, self.user)

    def test_contact_from_another_organisation_is_rejected(self):
        _, other_org = TestDataFactory.create_org_user()
        foreign = TestDataFactory.create_contact(other_org)
        payload = {
            'title': 'Call', 'type': 'call', 'contact_id': str(foreign.id),
            'start_at': self.start.isoformat(), 'end_at': self.start.isoformat(),
        }
        response = self.client.post('/api/crm-events', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('contact_id', response.data['details'])

    def test_end_before_start_is_rejected(self):
        payload = {
            'title': 'Call', 'type': 'call',
            'start_at': self.start.isoformat(), 'end_at': (self.start - timedelta(hours=1)).isoformat(),
        }
        response = self.client.post('/api/crm-events', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_at', response.data['details'])

    def test_list_filters_by_status_and_window(self):
        self.create_event(title='Planned')
        self.create_event(title='Done', status='done')
        self.create_event(title='Later', start_at=self.start + timedelta(days=30),
                          end_at=self.start + timedelta(days=30, hours=1))
        self.create_event(organisation=TestDataFactory.create_organisation(), title='Elsewhere')

        response = self.client.get('/api/crm-events', {'status': 'planned'})
        self.assertEqual([event['title'] for event in response.data['events']], ['Planned', 'Later'])

        response = self.client.get('/api/crm-events', {'end_date': (self.start + timedelta(days=2)).isoformat()})
        self.assertEqual({event['title'] for event in response.data['events']}, {'Planned', 'Done'})

    def test_list_filters_by_contact(self):
        self.create_event(title='With contact', contact=self.contact)
        self.create_event(title='Without contact')
        response = self.client.get('/api/crm-events', {'contact_id': str(self.contact.id)})
        self.assertEqual([event['title'] for event in response.data['events']], ['With contact'])

    def test_update_event(self):
        event = self.create_event()
        response = self.client.put(f'/api/crm-events/{event.id}', {'status': 'done', 'notes': 'Renewed'},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        event.refresh_from_db()
        self.assertEqual(event.status, 'done')
        self.assertEqual(event.title, 'Renewal call')

    def test_update_without_fields(self):
        event = self.create_event()
        response = self.client.put(f'/api/crm-events/{event.id}', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No fields to update')

    def test_delete_event(self):
        event = self.create_event()
        response = self.client.delete(f'/api/crm-events/{event.id}')
        self.assertEqual(response.data['message'], 'CRM event deleted successfully')
        self.assertFalse(CRMEvent.objects.filter(pk=event.pk).exists())

    def test_event_in_another_organisation_is_not_found(self):
        event = self.create_event(organisation=TestDataFactory.create_organisation())
        response = self.client.get(f'/api/crm-events/{event.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CalendarEventAPITests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def create_entry(self, organisation=None, **extra):
        return CalendarEvent.objects.create(
            organisation=organisation or self.organisation,
            user=self.user,
            title=extra.pop('title', 'Boiler service'),
            event_date=extra.pop('event_date', date(2025, 3, 10)),
            start_time=extra.pop('start_time', time(9, 0)),
            end_time=extra.pop('end_time', time(11, 0)),
            **extra
        )

    def test_create_requires_fields(self):
        response = self.client.post('/api/calendar/events', {'title': 'Boiler service'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Missing required fields: title, eventDate, startTime, endTime')

    def test_create_uses_camel_case(self):
        payload = {'title': 'Boiler service', 'eventDate': '2025-03-10', 'startTime': '09:00', 'endTime': '11:30'}
        response = self.client.post('/api/calendar/events', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        event = response.data['event']
        self.assertEqual(event['eventDate'], '2025-03-10')
        self.assertEqual(event['startTime'], '09:00:00')
        self.assertEqual(event['eventType'], 'work')
        self.assertEqual(event['userId'], str(self.user.id))

    def test_list_is_scoped(self):
        self.create_entry()
        self.create_entry(organisation=TestDataFactory.create_organisation(), title='Elsewhere')
        response = self.client.get('/api/calendar/events')
        self.assertEqual([event['title'] for event in response.data['events']], ['Boiler service'])

    def test_update_keeps_omitted_and_null_fields(self):
        entry = self.create_entry(notes='Bring ladder')
        response = self.client.put(f'/api/calendar/events/{entry.id}', {'title': 'Annual service', 'notes': None},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry.refresh_from_db()
        self.assertEqual(entry.title, 'Annual service')
        self.assertEqual(entry.notes, 'Bring ladder')
        self.assertEqual(entry.start_time, time(9, 0))

    def test_delete_returns_id(self):
        entry = self.create_entry()
        response = self.client.delete(f'/api/calendar/events/{entry.id}')
        self.assertEqual(response.data, {'success': True, 'deletedId': str(entry.id)})
        self.assertFalse(CalendarEvent.objects.filter(pk=entry.pk).exists())

    def test_entry_in_another_organisation_is_not_found(self):
        entry = self.create_entry(organisation=TestDataFactory.create_organisation())
        response = self.client.delete(f'/api/calendar/events/{entry.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
