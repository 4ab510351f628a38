"""
Per-organisation ticket form templates.

A template enables fields, orders them and carries select options
(configurations). Stored templates older than TEMPLATE_VERSION, or with a
broken shape, are replaced by DEFAULT_TEMPLATE when loaded.
"""
import copy
import logging

from .models import Ticket

logger = logging.getLogger(__name__)

TEMPLATE_VERSION = 8

DEFAULT_TEMPLATE = {
    'version': TEMPLATE_VERSION,
    'template': {
        'title': True,
        'description': True,
        'contact': True,
        'priority': True,
        'status': True,
        'category': True,
        'assignedUser': True,
        'scheduled_date': True,
        'photos': False,
        'attachments': False,
    },
    'order': ['title', 'description', 'contact', 'priority', 'status', 'category', 'assignedUser', 'scheduled_date'],
    'configurations': {
        'category': ['General', 'Technical', 'Maintenance', 'Support'],
    },
}

RENDERABLE_FIELDS = frozenset([
    'title',
    'description',
    'contact',
    'priority',
    'status',
    'category',
    'assignedUser',
    'equipment_id',
    'work_type',
    'service_category',
    'scheduled_date',
    'photos',
    'attachments',
])

DEFAULT_OPTIONS = {
    'category': ['General', 'Technical', 'Maintenance', 'Support'],
    'equipment_id': ['EQ-001', 'EQ-002', 'EQ-003'],
    'work_type': ['Maintenance', 'Repair', 'Installation', 'Inspection'],
    'service_category': ['Standard', 'Premium', 'Emergency', 'Scheduled'],
}

# Request payload key for template fields whose API name differs
PAYLOAD_KEYS = {
    'contact': 'contact_id',
    'assignedUser': 'assignee_id',
}


def default_template():
    return copy.deepcopy(DEFAULT_TEMPLATE)


def needs_migration(raw):
    if not isinstance(raw, dict):
        return True
    version = raw.get('version')
    if not isinstance(version, int) or version < TEMPLATE_VERSION:
        return True
    return not isinstance(raw.get('order'), list) or not isinstance(raw.get('template'), dict)


def load_template(raw):
    """Return a usable template, migrating stale or malformed data to the default"""
    if needs_migration(raw):
        version = raw.get('version') if isinstance(raw, dict) else None
        logger.info(f"Migrating ticket template from version {version or 'unknown'} to {TEMPLATE_VERSION}")
        return default_template()
    data = copy.deepcopy(raw)
    if not isinstance(data.get('configurations'), dict):
        data['configurations'] = {}
    return data


def _options(key, configurations):
    configured = configurations.get(key)
    if isinstance(configured, list):
        options = [str(o).strip() for o in configured if o is not None and str(o).strip()]
    else:
        options = DEFAULT_OPTIONS.get(key, [])
    return list(options)


def _descriptor(key, label, widget, required=False, options=None):
    return {
        'key': key,
        'label': label,
        'widget': widget,
        'required': required,
        'options': options,
    }


def render_field(key, configurations):
    """Form descriptor for one field key, or None when the key is unknown"""
    if key == 'title':
        return _descriptor(key, 'Title', 'text', required=True)
    if key == 'description':
        return _descriptor(key, 'Description', 'textarea', required=True)
    if key == 'contact':
        return _descriptor(key, 'Contact', 'contact_picker')
    if key == 'priority':
        return _descriptor(key, 'Priority', 'select', options=[c[0] for c in Ticket.PRIORITY_CHOICES])
    if key == 'status':
        return _descriptor(key, 'Status', 'select', options=list(Ticket.EDITABLE_STATUSES))
    if key == 'category':
        return _descriptor(key, 'Category', 'select', options=_options(key, configurations))
    if key == 'assignedUser':
        return _descriptor(key, 'Assigned User', 'user_picker')
    if key == 'equipment_id':
        return _descriptor(key, 'Equipment ID', 'select', options=_options(key, configurations))
    if key == 'work_type':
        return _descriptor(key, 'Work Type', 'select', options=_options(key, configurations))
    if key == 'service_category':
        return _descriptor(key, 'Service Category', 'select', options=_options(key, configurations))
    if key == 'scheduled_date':
        return _descriptor(key, 'Scheduled Date', 'datetime')
    if key == 'photos':
        return _descriptor(key, 'Photos', 'file')
    if key == 'attachments':
        return _descriptor(key, 'Attachments', 'file')
    return None


def render_fields(template):
    """Descriptors for every enabled, renderable field in template order"""
    template = load_template(template)
    enabled = template['template']
    configurations = template['configurations']
    fields = []
    seen = set()
    for key in template['order']:
        if key in seen or not enabled.get(key) or key not in RENDERABLE_FIELDS:
            continue
        seen.add(key)
        descriptor = render_field(key, configurations)
        if descriptor is not None:
            fields.append(descriptor)
    return fields


def validate_ticket_payload(template, data):
    """
    Check a ticket payload against the rendered form.

    Returns a dict of field key -> message; empty when the payload is valid.
    """
    errors = {}
    for field in render_fields(template):
        key = field['key']
        value = data.get(PAYLOAD_KEYS.get(key, key))
        if isinstance(value, str):
            value = value.strip()
        if field['required'] and not value:
            errors[key] = f"{field['label']} is required"
            continue
        if value and field['widget'] == 'select' and field['options'] and value not in field['options']:
            errors[key] = f"Invalid {field['label'].lower()}: {value}"
    return errors
