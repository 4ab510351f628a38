"""
Organisation scoping for authenticated requests.

A user either administers a partner (and may act on any organisation the
partner owns) or belongs to organisations through memberships. The active
organisation is selected with the X-Org-Id request header.
"""
import logging
import uuid
from functools import wraps

from rest_framework import status
from rest_framework.response import Response

from worktrackr.organisations.models import Membership, Organisation, PartnerMembership

logger = logging.getLogger(__name__)

ORG_HEADER = 'HTTP_X_ORG_ID'


class OrgContextError(Exception):
    """Raised when a user cannot act on the requested organisation"""


class OrgContext:
    def __init__(self, type, organisation=None, role=None, partner_id=None, organizations=None):
        self.type = type
        self.organisation = organisation
        self.role = role
        self.partner_id = partner_id
        self.organizations = organizations

    @property
    def organisation_id(self):
        return self.organisation.id if self.organisation else None

    @property
    def is_partner_admin(self):
        return self.type == 'partner_admin'

    def to_dict(self):
        data = {'type': self.type}
        if self.partner_id:
            data['partner_id'] = str(self.partner_id)
        if self.organizations is not None:
            data['organizations'] = self.organizations
        if self.organisation:
            data['organization_id'] = str(self.organisation.id)
            data['organization'] = {'id': str(self.organisation.id), 'name': self.organisation.name}
        if self.role:
            data['role'] = self.role
        return data


def parse_org_id(active_org_id):
    """UUID of a caller-supplied organisation id, None when empty; raises OrgContextError when malformed"""
    if not active_org_id:
        return None
    try:
        return uuid.UUID(str(active_org_id))
    except ValueError:
        raise OrgContextError('Invalid organization id')


def get_org_context(user, active_org_id=None):
    """Resolve the organisation a user is acting on"""
    active_org_id = parse_org_id(active_org_id)

    partner_membership = (
        PartnerMembership.objects
        .filter(user=user, role='partner_admin')
        .select_related('partner')
        .first()
    )
    if partner_membership:
        partner = partner_membership.partner
        if not active_org_id:
            organizations = [
                {'id': str(org['id']), 'name': org['name']}
                for org in Organisation.objects.filter(partner=partner).order_by('name').values('id', 'name')
            ]
            return OrgContext('partner_admin', partner_id=partner.id, organizations=organizations)

        organisation = Organisation.objects.filter(id=active_org_id, partner=partner).first()
        if organisation is None:
            raise OrgContextError('Organization not accessible by this partner')
        return OrgContext('partner_admin', organisation=organisation, role='partner_admin', partner_id=partner.id)

    memberships = (
        Membership.objects
        .filter(user=user)
        .exclude(status='disabled')
        .select_related('organisation')
        .order_by('created_at')
    )
    if active_org_id:
        memberships = memberships.filter(organisation_id=active_org_id)
    membership = memberships.first()
    if membership is None:
        raise OrgContextError('User has no organization membership')

    return OrgContext('org_member', organisation=membership.organisation, role=membership.role)


def get_request_org_context(request):
    return get_org_context(request.user, request.META.get(ORG_HEADER))


def require_org_context(view_func):
    """
    Resolve the org context before running a view.

    Sets request.org_context and request.organisation; answers 403 when the
    user has no organisation to act on.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            context = get_request_org_context(request)
        except OrgContextError as e:
            logger.warning(f"Org context denied for {request.user}: {e}")
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        if context.organisation is None:
            return Response({'error': 'Select an organization first'}, status=status.HTTP_403_FORBIDDEN)
        request.org_context = context
        request.organisation = context.organisation
        return view_func(request, *args, **kwargs)
    return wrapper
