"""
AI quote drafting.

Builds a prompt from the organisation's pricing, the linked ticket, the
customer and recent accepted quotes, plus any uploaded PDFs (read with
pypdf) or recordings (transcribed with Whisper), and asks the chat model
for a JSON quote draft. Nothing is saved; the caller reviews the draft.
"""
import json
import logging
from io import BytesIO

from django.conf import settings
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from worktrackr.contacts.models import Contact
from worktrackr.core.llm_client import LLMClient, strip_code_fences
from worktrackr.organisations.models import OrganisationPricing
from worktrackr.tickets.models import Ticket

from .models import Quote

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = ('.mp3', '.wav', '.mp4', '.m4a')
PDF_EXTENSIONS = ('.pdf',)
MAX_UPLOAD_FILES = 5
MAX_UPLOAD_BYTES = 50 * 1024 * 1024

SYSTEM_PROMPT = """You are an expert quote generator for an IT services company. Your task is to analyze the provided information and generate a detailed, accurate quote with line items.

PRICING CONFIGURATION:
- Standard Day Rate: £{standard_day_rate} (Hourly: £{standard_hourly_rate})
- Senior Day Rate: £{senior_day_rate} (Hourly: £{senior_hourly_rate})
- Junior Day Rate: £{junior_day_rate} (Hourly: £{junior_hourly_rate})
- Default Markup on Parts: {default_markup_percent}%
- Target Margin: {default_margin_percent}%

LINE ITEM TYPES:
1. labour - Time-based work (use hours and hourly_rate)
2. parts - Products and equipment (apply markup)
3. fixed_fee - Flat-rate services
4. recurring - Ongoing monthly or annual costs

OUTPUT FORMAT (JSON only, no markdown):
{{
  "title": "Quote title",
  "description": "Brief description of the work",
  "line_items": [
    {{
      "description": "Item description",
      "quantity": 1,
      "unit_price": 100.00,
      "item_type": "labour|parts|fixed_fee|recurring",
      "hours": 8,
      "hourly_rate": 85.00,
      "recurrence": "monthly|annual",
      "tax_rate": 20
    }}
  ],
  "terms_conditions": "Standard terms",
  "notes": "Any additional notes for the customer"
}}

INSTRUCTIONS:
- Use the pricing configuration above for all calculations
- For labour items, specify hours and hourly_rate
- For parts, apply the markup percentage to cost prices
- Include all necessary items to complete the work
- Use realistic quantities and prices"""


class QuoteDraftError(Exception):
    """The model reply could not be turned into a quote draft"""

    def __init__(self, message, raw_response=None):
        super().__init__(message)
        self.raw_response = raw_response


def pricing_for(organisation):
    pricing = OrganisationPricing.objects.filter(organisation=organisation).first()
    if pricing is None:
        return {key: str(value) for key, value in OrganisationPricing.DEFAULTS.items()}
    return {key: str(getattr(pricing, key)) for key in OrganisationPricing.DEFAULTS}


def fetch_context(organisation, context_sources, ticket_id=None, customer_id=None):
    """Ticket, customer and up to three accepted quotes for the same customer"""
    context = {'ticket': None, 'customer': None, 'similar_quotes': []}

    if context_sources.get('ticket_description') and ticket_id:
        ticket = Ticket.objects.filter(id=ticket_id, organisation=organisation).first()
        if ticket:
            context['ticket'] = {
                'title': ticket.title,
                'description': ticket.description or '',
                'priority': ticket.priority,
                'updates': list(ticket.comments.order_by('-created_at').values_list('body', flat=True)[:3]),
            }

    if context_sources.get('customer_info') and customer_id:
        contact = Contact.objects.filter(id=customer_id, organisation=organisation).first()
        if contact:
            context['customer'] = {
                'name': contact.name,
                'sector': (contact.custom_fields or {}).get('sector'),
                'email': contact.email,
            }

    if context_sources.get('similar_quotes') and customer_id:
        quotes = (
            Quote.objects
            .filter(organisation=organisation, contact_id=customer_id, status='accepted')
            .prefetch_related('lines')
            .order_by('-created_at')[:3]
        )
        context['similar_quotes'] = [
            {
                'title': quote.title,
                'total_amount': str(quote.total_amount),
                'line_items': [
                    {'description': line.description, 'item_type': line.item_type}
                    for line in list(quote.lines.all())[:3]
                ],
            }
            for quote in quotes
        ]
    return context


def context_preview(organisation, ticket_id=None, contact_id=None):
    """Summary of the ticket and customer context an AI draft would draw on"""
    preview = {
        'ticket_description': None,
        'ticket_updates_count': 0,
        'customer_name': None,
        'customer_sector': None,
        'similar_quotes_count': 0,
    }

    customer_id = contact_id
    if ticket_id:
        ticket = Ticket.objects.filter(id=ticket_id, organisation=organisation).first()
        if ticket:
            preview['ticket_description'] = f"{ticket.title}: {ticket.description or 'No description'}"
            preview['ticket_updates_count'] = ticket.comments.count()
            if customer_id is None:
                customer_id = ticket.contact_id

    if customer_id:
        contact = Contact.objects.filter(id=customer_id, organisation=organisation).first()
        if contact:
            preview['customer_name'] = contact.name
            preview['customer_sector'] = (contact.custom_fields or {}).get('sector')

    if contact_id:
        preview['similar_quotes_count'] = (
            Quote.objects
            .filter(organisation=organisation, contact_id=contact_id)
            .exclude(status='draft')
            .count()
        )
    return preview


def build_messages(prompt, file_contents, context, pricing):
    parts = [f"USER REQUEST:\n{prompt}\n"]
    if file_contents:
        parts.append("UPLOADED FILES CONTENT:\n" + "\n\n---\n\n".join(file_contents) + "\n")

    ticket = context.get('ticket')
    if ticket:
        parts.append(
            f"TICKET INFORMATION:\nTitle: {ticket['title']}\nDescription: {ticket['description']}\n"
            f"Priority: {ticket['priority']}\n"
        )
        if ticket['updates']:
            parts.append("Recent Updates:\n" + "\n".join(f"- {body}" for body in ticket['updates']) + "\n")

    customer = context.get('customer')
    if customer:
        parts.append(f"CUSTOMER INFORMATION:\nName: {customer['name']}\nSector: {customer['sector'] or 'Not specified'}\n")

    if context.get('similar_quotes'):
        lines = ["SIMILAR PAST QUOTES:"]
        for i, quote in enumerate(context['similar_quotes'], start=1):
            lines.append(f"{i}. {quote['title']} (£{quote['total_amount']})")
            lines.extend(f"   - {item['description']} ({item['item_type']})" for item in quote['line_items'])
        parts.append("\n".join(lines) + "\n")

    parts.append("Generate a detailed quote based on the above information. Return ONLY valid JSON, no markdown formatting.")
    return [
        {'role': 'system', 'content': SYSTEM_PROMPT.format(**pricing)},
        {'role': 'user', 'content': "\n".join(parts)},
    ]


def extract_pdf_text(content):
    try:
        reader = PdfReader(BytesIO(content))
        return "\n".join(page.extract_text() or '' for page in reader.pages).strip()
    except PdfReadError as e:
        raise QuoteDraftError(f"Failed to extract text from PDF: {str(e)}")


def read_uploads(files, client):
    """Turn uploaded PDFs and recordings into prompt text"""
    contents = []
    for upload in files:
        name = upload.name.lower()
        if name.endswith(PDF_EXTENSIONS) or upload.content_type == 'application/pdf':
            contents.append(f"PDF Content:\n{extract_pdf_text(upload.read())}")
        elif name.endswith(AUDIO_EXTENSIONS) or (upload.content_type or '').startswith('audio/'):
            transcription = client.transcribe(upload.name, upload.read())
            contents.append(f"Audio Transcription:\n{transcription['text']}")
        else:
            logger.warning(f"Skipping unsupported upload {upload.name} ({upload.content_type})")
    return contents


def generate_quote_draft(organisation, prompt, context_sources=None, ticket_id=None, customer_id=None,
                         files=None, client=None):
    """Ask the model for a quote draft and tag it with the context used"""
    client = client or LLMClient()
    files = files or []
    context = fetch_context(organisation, context_sources or {}, ticket_id, customer_id)
    file_contents = read_uploads(files, client)
    messages = build_messages(prompt, file_contents, context, pricing_for(organisation))

    logger.info(f"Requesting AI quote draft for org {organisation.id}")
    reply = client.run_chat(messages, model=settings.OPENAI_QUOTE_MODEL, temperature=0.7, max_tokens=2000)
    try:
        draft = json.loads(strip_code_fences(reply))
    except json.JSONDecodeError:
        logger.error(f"AI quote draft was not valid JSON for org {organisation.id}")
        raise QuoteDraftError('AI generated invalid response format', raw_response=reply)
    if not isinstance(draft, dict):
        raise QuoteDraftError('AI generated invalid response format', raw_response=reply)

    draft['ai_prompt'] = prompt
    draft['ai_context_used'] = {
        'ticket': context['ticket'] is not None,
        'customer': context['customer'] is not None,
        'similar_quotes': len(context['similar_quotes']),
        'files_uploaded': len(files),
    }
    draft['created_via'] = 'ai'
    return draft
