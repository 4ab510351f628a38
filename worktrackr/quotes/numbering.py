"""
Per-organisation document numbers (QT-2025-0001, JOB-2025-0001, INV-000001).

Each ``next_*`` call locks the organisation row until the surrounding
transaction ends, so concurrent creates in one organisation are numbered
one after the other. Call them inside ``transaction.atomic()`` and save the
document in the same block.
"""
import re

from django.utils import timezone

from worktrackr.organisations.models import Organisation

from .models import Quote, Job, Invoice

QUOTE_NUMBER_RE = re.compile(r'^QT-\d{4}-\d{4,}$')
INVOICE_NUMBER_RE = re.compile(r'^INV-(\d+)$')


def _lock_organisation(organisation):
    Organisation.objects.select_for_update().filter(pk=organisation.pk).first()


def _next_sequence(numbers, pattern):
    highest = 0
    for number in numbers:
        match = pattern.match(number or '')
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def _yearly_number(model, organisation, field, prefix):
    _lock_organisation(organisation)
    year = timezone.now().year
    stem = f"{prefix}-{year}-"
    existing = model.objects.filter(organisation=organisation, **{f'{field}__startswith': stem}).values_list(field, flat=True)
    sequence = _next_sequence(existing, re.compile(rf'^{prefix}-{year}-(\d+)$'))
    return f"{stem}{sequence:04d}"


def next_quote_number(organisation):
    return _yearly_number(Quote, organisation, 'quote_number', 'QT')


def next_job_number(organisation):
    return _yearly_number(Job, organisation, 'job_number', 'JOB')


def next_invoice_number(organisation):
    _lock_organisation(organisation)
    existing = Invoice.objects.filter(organisation=organisation, invoice_number__startswith='INV-').values_list('invoice_number', flat=True)
    sequence = _next_sequence(existing, INVOICE_NUMBER_RE)
    return f"INV-{sequence:06d}"


def is_quote_number(value):
    return bool(QUOTE_NUMBER_RE.match(str(value)))
