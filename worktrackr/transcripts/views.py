import json
import logging
import os

from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from worktrackr.contacts.models import Contact
from worktrackr.core.llm_client import LLMClient
from worktrackr.core.org_context import require_org_context

from .models import Transcript, AIExtraction
from .serializers import TranscriptSerializer, ExtractTicketSerializer

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 25 * 1024 * 1024
AUDIO_EXTENSIONS = ('.mp3', '.wav', '.m4a', '.webm', '.ogg', '.mp4')

EXTRACTION_SYSTEM_PROMPT = (
    'You are a ticket extraction assistant. Always respond with valid JSON only, no markdown or explanations.'
)

EXTRACTION_PROMPT = """You are analyzing a customer service call or meeting transcript.

TRANSCRIPT:
{transcript}

TASK:
Extract structured ticket information from this conversation.

Return ONLY valid JSON in this exact format:
{{
  "title": "Brief descriptive title (max 100 chars)",
  "description": "Detailed description of the issue or request",
  "category": "One of: IT Support, Maintenance, Installation, Consultation, Emergency, Other",
  "priority": "One of: low, medium, high, urgent",
  "customer_name": "Customer or company name if mentioned, else null",
  "contact_email": "Email address if mentioned, else null",
  "contact_phone": "Phone number if mentioned, else null",
  "scheduled_date": "ISO date (YYYY-MM-DD) if specific date mentioned, else null",
  "estimated_duration": "Duration in minutes if discussed, else null",
  "key_requirements": ["requirement 1"],
  "parts_needed": ["part 1"],
  "budget_mentioned": "Amount in GBP if discussed (e.g., 500.00), else null",
  "urgency_indicators": ["reason 1"],
  "follow_up_actions": ["action 1"],
  "confidence_score": 0.85
}}

IMPORTANT:
- Be conservative - if information isn't clearly stated, use null or empty array
- confidence_score should be 0.0-1.0 based on how clear the information is
- Extract only what is explicitly mentioned"""


def match_contact(organisation, customer_name=None, contact_email=None):
    """First contact whose name or email matches the extracted details"""
    conditions = Q()
    if customer_name:
        conditions |= Q(name__icontains=customer_name) | Q(display_name__icontains=customer_name)
    if contact_email:
        conditions |= Q(email__iexact=contact_email)
    if not conditions:
        return None
    return Contact.objects.filter(organisation=organisation).filter(conditions).order_by('created_at').first()


def _confidence(value):
    try:
        return min(max(float(value), 0.0), 1.0)
    except (TypeError, ValueError):
        return 0.5


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
@require_org_context
def transcribe_audio(request):
    """Transcribe an uploaded recording with Whisper and store the transcript"""
    audio = request.FILES.get('audio')
    if audio is None:
        return Response({'error': 'No audio file provided'}, status=status.HTTP_400_BAD_REQUEST)
    if audio.size > MAX_AUDIO_BYTES:
        return Response({'error': 'File too large. Maximum size is 25MB.'}, status=status.HTTP_400_BAD_REQUEST)
    if os.path.splitext(audio.name)[1].lower() not in AUDIO_EXTENSIONS:
        return Response({'error': 'Invalid file type. Supported: MP3, WAV, M4A, WEBM, OGG, MP4'},
                        status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Transcribing {audio.name} ({audio.size} bytes) for org {request.organisation.id}")
    result = LLMClient().transcribe(audio.name, audio.read())

    transcript = Transcript.objects.create(
        organisation=request.organisation,
        user=request.user,
        filename=audio.name,
        duration_seconds=result['duration'],
        text=result['text'],
        segments=result['segments'],
        language=result['language'] or 'en',
    )
    return Response({
        'success': True,
        'transcript_id': str(transcript.id),
        'text': transcript.text,
        'duration': transcript.duration_seconds,
        'segments': transcript.segments,
        'language': transcript.language,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@require_org_context
def extract_ticket(request):
    """Extract structured ticket fields from a transcript for review"""
    serializer = ExtractTicketSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid request data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)

    transcript = None
    transcript_id = serializer.validated_data.get('transcript_id')
    text = serializer.validated_data.get('transcript_text')
    if transcript_id:
        transcript = Transcript.objects.filter(id=transcript_id, organisation=request.organisation).first()
        if transcript is None:
            return Response({'error': 'Transcript not found'}, status=status.HTTP_404_NOT_FOUND)
        text = transcript.text

    messages = [
        {'role': 'system', 'content': EXTRACTION_SYSTEM_PROMPT},
        {'role': 'user', 'content': EXTRACTION_PROMPT.format(transcript=text)},
    ]
    reply = LLMClient().run_chat(
        messages,
        model=settings.OPENAI_EXTRACTION_MODEL,
        temperature=0.3,
        max_tokens=1500,
        response_format={'type': 'json_object'},
    )
    try:
        extracted = json.loads(reply)
    except json.JSONDecodeError:
        logger.error(f"Ticket extraction returned invalid JSON for org {request.organisation.id}")
        return Response({'error': 'Failed to parse AI response', 'raw_response': reply},
                        status=status.HTTP_502_BAD_GATEWAY)
    if not isinstance(extracted, dict):
        return Response({'error': 'Failed to parse AI response', 'raw_response': reply},
                        status=status.HTTP_502_BAD_GATEWAY)

    contact = match_contact(request.organisation, extracted.get('customer_name'), extracted.get('contact_email'))
    AIExtraction.objects.create(
        organisation=request.organisation,
        user=request.user,
        transcript=transcript,
        extracted_data=extracted,
        confidence_score=_confidence(extracted.get('confidence_score', 0.5)),
        matched_contact=contact,
    )

    matched = None
    if contact is not None:
        matched = {'id': str(contact.id), 'name': contact.name, 'email': contact.email, 'phone': contact.phone}
        logger.info(f"Extraction matched contact {contact.id}")

    return Response({
        'success': True,
        'extracted_data': extracted,
        'matched_contact_id': matched['id'] if matched else None,
        'matched_contact': matched,
        'transcript_id': str(transcript.id) if transcript else None,
        'ready_for_review': True,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def transcript_list(request):
    try:
        limit = min(max(int(request.query_params.get('limit', 50)), 1), 200)
        offset = max(int(request.query_params.get('offset', 0)), 0)
    except ValueError:
        return Response({'error': 'limit and offset must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    transcripts = Transcript.objects.filter(organisation=request.organisation).select_related('user')
    return Response({
        'transcripts': TranscriptSerializer(transcripts[offset:offset + limit], many=True).data,
        'total': transcripts.count(),
        'limit': limit,
        'offset': offset,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@require_org_context
def transcript_detail(request, pk):
    transcript = get_object_or_404(Transcript.objects.select_related('user'), pk=pk, organisation=request.organisation)
    return Response(TranscriptSerializer(transcript).data)
