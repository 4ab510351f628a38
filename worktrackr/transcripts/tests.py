"""
Tests for audio transcription and ticket extraction
"""
import json
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework import status

from worktrackr.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from worktrackr.transcripts.models import Transcript, AIExtraction
from worktrackr.transcripts.views import match_contact

EXTRACTED = {
    'title': 'Boiler not firing',
    'description': 'Customer reports the boiler shows fault F28',
    'priority': 'high',
    'customer_name': 'Acme',
    'contact_email': None,
    'confidence_score': 0.9,
}


class MatchContactTests(TestCase):

    def setUp(self):
        self.organisation = TestDataFactory.create_organisation()
        self.contact = TestDataFactory.create_contact(self.organisation, name='Acme Heating Ltd',
                                                      email='office@acme.com')

    def test_matches_by_name_or_email(self):
        self.assertEqual(match_contact(self.organisation, customer_name='acme heating'), self.contact)
        self.assertEqual(match_contact(self.organisation, contact_email='OFFICE@acme.com'), self.contact)

    def test_nothing_extracted_matches_nothing(self):
        self.assertIsNone(match_contact(self.organisation))
        self.assertIsNone(match_contact(self.organisation, customer_name='', contact_email=None))

    def test_other_organisation_is_ignored(self):
        other = TestDataFactory.create_organisation()
        self.assertIsNone(match_contact(other, customer_name='Acme'))


@mock.patch('worktrackr.transcripts.views.LLMClient')
class TranscribeAudioTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)

    def test_upload_creates_transcript(self, llm):
        llm.return_value.transcribe.return_value = {
            'text': 'Hello, my boiler is broken',
            'language': None,
            'duration': 12.5,
            'segments': [{'start': 0.0, 'end': 12.5, 'text': 'Hello, my boiler is broken'}],
        }
        audio = SimpleUploadedFile('call.mp3', b'ID3fakeaudio', content_type='audio/mpeg')
        response = self.client.post('/api/transcribe/audio', {'audio': audio}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        transcript = Transcript.objects.get(pk=response.data['transcript_id'])
        self.assertEqual(transcript.filename, 'call.mp3')
        self.assertEqual(transcript.language, 'en')
        self.assertEqual(response.data['duration'], 12.5)
        llm.return_value.transcribe.assert_called_once_with('call.mp3', b'ID3fakeaudio')

    def test_missing_file(self, llm):
        response = self.client.post('/api/transcribe/audio', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No audio file provided')
        llm.assert_not_called()

    def test_rejects_unsupported_type(self, llm):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        response = self.client.post('/api/transcribe/audio', {'audio': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        llm.assert_not_called()


@mock.patch('worktrackr.transcripts.views.LLMClient')
class ExtractTicketTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        self.contact = TestDataFactory.create_contact(self.organisation, name='Acme Heating Ltd')
        self.transcript = Transcript.objects.create(
            organisation=self.organisation,
            user=self.user,
            filename='call.mp3',
            text='Hi, this is Acme. Our boiler shows F28 and will not fire.',
        )

    def test_extracts_and_matches_contact(self, llm):
        llm.return_value.run_chat.return_value = json.dumps(EXTRACTED)
        response = self.client.post('/api/transcribe/extract-ticket',
                                    {'transcript_id': str(self.transcript.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['ready_for_review'])
        self.assertEqual(response.data['extracted_data']['title'], 'Boiler not firing')
        self.assertEqual(response.data['matched_contact_id'], str(self.contact.id))
        self.assertEqual(response.data['transcript_id'], str(self.transcript.id))

        extraction = AIExtraction.objects.get()
        self.assertEqual(extraction.matched_contact, self.contact)
        self.assertEqual(extraction.confidence_score, 0.9)
        kwargs = llm.return_value.run_chat.call_args[1]
        self.assertEqual(kwargs['response_format'], {'type': 'json_object'})

    def test_extract_from_raw_text_without_match(self, llm):
        llm.return_value.run_chat.return_value = json.dumps(dict(EXTRACTED, customer_name=None))
        response = self.client.post('/api/transcribe/extract-ticket', {
            'transcript_text': 'Please come and service the air conditioning next week.',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['matched_contact'])
        self.assertIsNone(response.data['transcript_id'])

    def test_unknown_transcript(self, llm):
        other = Transcript.objects.create(organisation=TestDataFactory.create_organisation(),
                                          filename='x.mp3', text='Somebody else entirely')
        response = self.client.post('/api/transcribe/extract-ticket', {'transcript_id': str(other.id)},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        llm.return_value.run_chat.assert_not_called()

    def test_short_text_is_rejected(self, llm):
        response = self.client.post('/api/transcribe/extract-ticket', {'transcript_text': 'hi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_model_reply(self, llm):
        llm.return_value.run_chat.return_value = 'I could not find a ticket here'
        response = self.client.post('/api/transcribe/extract-ticket',
                                    {'transcript_id': str(self.transcript.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['raw_response'], 'I could not find a ticket here')
        self.assertFalse(AIExtraction.objects.exists())


class TranscriptListTests(TestCase):

    def setUp(self):
        self.user, self.organisation = TestDataFactory.create_org_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user, self.organisation)
        for index in range(3):
            Transcript.objects.create(organisation=self.organisation, user=self.user,
                                      filename=f'call-{index}.mp3', text='Some call text')
        Transcript.objects.create(organisation=TestDataFactory.create_organisation(),
                                  filename='other.mp3', text='Other org')

    def test_list_is_scoped_and_paginated(self):
        response = self.client.get('/api/transcribe/transcripts', {'limit': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(len(response.data['transcripts']), 2)
        self.assertEqual(response.data['limit'], 2)

    def test_detail(self):
        transcript = Transcript.objects.filter(organisation=self.organisation).first()
        response = self.client.get(f'/api/transcribe/transcripts/{transcript.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['filename'], transcript.filename)

    def test_detail_of_other_org(self):
        other = Transcript.objects.get(filename='other.mp3')
        response = self.client.get(f'/api/transcribe/transcripts/{other.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
