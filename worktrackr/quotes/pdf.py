"""
Quote PDF rendering with ReportLab.

Produces a single A4 quotation: brand header (or the organisation logo),
customer block, quote meta, line table, totals, terms and footer.
"""
import logging
from decimal import Decimal
from io import BytesIO
from xml.sax.saxutils import escape

import requests
from django.utils import timezone
from PIL import Image as PILImage, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, Image

from worktrackr.organisations.models import OrgBranding

logger = logging.getLogger(__name__)

BRAND_NAME = 'WorkTrackr Cloud'
BRAND_TAGLINE = 'Custom Workflows. Zero Hassle.'
DATE_FORMAT = '%d %b %Y'
LOGO_MAX_HEIGHT = 0.75 * inch
LOGO_MAX_WIDTH = 2.5 * inch
LOGO_TIMEOUT = 5


def format_date(value):
    if not value:
        return 'N/A'
    return value.strftime(DATE_FORMAT)


def format_money(value):
    return f"£{Decimal(value or 0):,.2f}"


def fetch_logo(url):
    """Download a logo and return a sized flowable, or None when unusable"""
    try:
        response = requests.get(url, timeout=LOGO_TIMEOUT)
        response.raise_for_status()
        content = response.content
        with PILImage.open(BytesIO(content)) as img:
            width, height = img.size
    except requests.exceptions.RequestException as e:
        logger.warning(f"Could not fetch logo {url}: {str(e)}")
        return None
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Logo at {url} is not a readable image: {str(e)}")
        return None

    if not width or not height:
        return None
    scale = min(LOGO_MAX_HEIGHT / height, LOGO_MAX_WIDTH / width)
    logo = Image(BytesIO(content), width=width * scale, height=height * scale)
    logo.hAlign = 'LEFT'
    return logo


def _branding(organisation):
    try:
        return organisation.branding
    except OrgBranding.DoesNotExist:
        return None


def _bill_to_lines(contact):
    if contact is None:
        return ['N/A']
    lines = [contact.name]
    if contact.primary_contact:
        lines.append(contact.primary_contact)
    if contact.email:
        lines.append(contact.email)
    if contact.phone:
        lines.append(contact.phone)
    addresses = contact.addresses or []
    if addresses and isinstance(addresses[0], dict):
        address = addresses[0].get('fullAddress') or ', '.join(
            str(addresses[0][key]) for key in ('line1', 'line2', 'city', 'postcode') if addresses[0].get(key)
        )
        if address:
            lines.append(address)
    return lines


def render_quote_pdf(quote):
    """Render a quote with its lines to PDF bytes"""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=50, leftMargin=50, topMargin=50, bottomMargin=40)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('QuoteTitle', parent=styles['Heading1'], fontSize=20, alignment=TA_CENTER)
    small = ParagraphStyle('Small', parent=styles['Normal'], fontSize=8, alignment=TA_CENTER, textColor=colors.grey)
    cell = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9)
    elements = []

    branding = _branding(quote.organisation)
    logo = fetch_logo(branding.logo_url) if branding and branding.logo_url else None
    if logo is not None:
        elements.append(logo)
    else:
        elements.append(Paragraph(BRAND_NAME, styles['Title']))
        elements.append(Paragraph(BRAND_TAGLINE, styles['Normal']))
    elements.append(Spacer(1, 18))

    elements.append(Paragraph('QUOTATION', title_style))
    elements.append(Spacer(1, 12))

    bill_to = "<br/>".join(escape(line) for line in _bill_to_lines(quote.contact))
    meta = Table([
        ['Quote Number:', quote.quote_number],
        ['Quote Date:', format_date(quote.created_at)],
        ['Valid Until:', format_date(quote.valid_until)],
        ['Status:', quote.status.capitalize()],
    ], colWidths=[1.1 * inch, 1.6 * inch])
    meta.setStyle(TableStyle([('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'), ('FONTSIZE', (0, 0), (-1, -1), 9)]))
    header = Table([[Paragraph(f"<b>Bill To:</b><br/>{bill_to}", cell), meta]], colWidths=[3.8 * inch, 2.8 * inch])
    header.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
    elements.append(header)
    elements.append(Spacer(1, 18))

    if quote.title:
        elements.append(Paragraph(escape(quote.title), styles['Heading3']))
    if quote.description:
        elements.append(Paragraph(escape(quote.description), styles['Normal']))
    elements.append(Spacer(1, 12))

    rows = [['Item', 'Description', 'Qty', 'Price', 'Total']]
    for index, line in enumerate(quote.lines.all(), start=1):
        rows.append([
            str(index),
            Paragraph(escape(line.description), cell),
            f"{line.quantity:.2f}",
            format_money(line.unit_price),
            format_money(line.quantity * line.unit_price),
        ])
    lines_table = Table(rows, colWidths=[0.5 * inch, 3.3 * inch, 0.7 * inch, 1 * inch, 1.1 * inch], repeatRows=1)
    lines_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f4f6')),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (2, 0), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LINEBELOW', (0, 0), (-1, 0), 1, colors.black),
        ('LINEBELOW', (0, 1), (-1, -1), 0.25, colors.lightgrey),
    ]))
    elements.append(lines_table)
    elements.append(Spacer(1, 12))

    totals = [['Subtotal:', format_money(quote.subtotal)]]
    if quote.discount_amount:
        totals.append(['Discount:', f"-{format_money(quote.discount_amount)}"])
    totals.append(['Tax (VAT):', format_money(quote.tax_amount)])
    totals.append(['Total:', format_money(quote.total_amount)])
    totals_table = Table(totals, colWidths=[1.2 * inch, 1.2 * inch], hAlign='RIGHT')
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 12),
        ('LINEABOVE', (0, -1), (-1, -1), 1, colors.black),
    ]))
    elements.append(totals_table)

    if quote.terms_conditions:
        elements.append(Spacer(1, 24))
        elements.append(Paragraph('Terms &amp; Conditions', styles['Heading4']))
        elements.append(Paragraph(escape(quote.terms_conditions).replace("\n", "<br/>"), cell))

    elements.append(Spacer(1, 36))
    elements.append(Paragraph(f"Generated on {format_date(timezone.now())} | {BRAND_NAME}", small))

    doc.build(elements)
    pdf_data = buffer.getvalue()
    buffer.close()
    return pdf_data
