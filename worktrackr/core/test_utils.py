"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from worktrackr.contacts.models import Contact
from worktrackr.organisations.models import Organisation, Membership, Partner, PartnerMembership
from worktrackr.products.models import Product
from worktrackr.quotes.calculations import apply_totals, calculate_line_total
from worktrackr.quotes.models import Quote, QuoteLine
from worktrackr.quotes.numbering import next_quote_number
from worktrackr.tickets.models import Queue, Ticket

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='testpass123', name=None, status='active', is_master_admin=False):
        """Create a test user"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6)}@test.com'
        return User.objects.create_user(
            email=email,
            password=password,
            name=name or 'Test User',
            status=status,
            is_master_admin=is_master_admin,
        )

    @staticmethod
    def create_organisation(name=None, plan='starter', partner=None, **extra):
        """Create a test organisation"""
        if not name:
            name = f'Org {TestDataFactory.random_string(6)}'
        slug = extra.pop('slug', None) or f'org-{TestDataFactory.random_string(10)}'
        return Organisation.objects.create(name=name, slug=slug, plan=plan, partner=partner, **extra)

    @staticmethod
    def create_membership(user, organisation, role='member', status='active'):
        return Membership.objects.create(user=user, organisation=organisation, role=role, status=status)

    @staticmethod
    def create_partner(name=None, admin=None):
        """Create a partner, optionally with a partner admin"""
        partner = Partner.objects.create(name=name or f'Partner {TestDataFactory.random_string(6)}')
        if admin is not None:
            PartnerMembership.objects.create(partner=partner, user=admin, role='partner_admin')
        return partner

    @staticmethod
    def create_org_user(role='owner', plan='starter'):
        """A user with an active membership in a fresh organisation"""
        user = TestDataFactory.create_user()
        organisation = TestDataFactory.create_organisation(plan=plan)
        TestDataFactory.create_membership(user, organisation, role=role)
        return user, organisation

    @staticmethod
    def create_contact(organisation, name=None, email=None, **extra):
        if not name:
            name = f'Contact {TestDataFactory.random_string(6)}'
        return Contact.objects.create(
            organisation=organisation,
            name=name,
            email=email or f'{TestDataFactory.random_string(6)}@customer.com',
            **extra
        )

    @staticmethod
    def create_queue(organisation, name='General', is_default=True):
        return Queue.objects.create(organisation=organisation, name=name, is_default=is_default)

    @staticmethod
    def create_ticket(organisation, user=None, title=None, **extra):
        """Create a test ticket"""
        return Ticket.objects.create(
            organisation=organisation,
            created_by=user,
            title=title or f'Ticket {TestDataFactory.random_string(6)}',
            description=extra.pop('description', 'Boiler not heating'),
            **extra
        )

    @staticmethod
    def create_product(organisation, name=None, client_price=None, tax_rate=None):
        return Product.objects.create(
            organisation=organisation,
            name=name or f'Product {TestDataFactory.random_string(6)}',
            client_price=client_price if client_price is not None else Decimal('100.00'),
            tax_rate=tax_rate if tax_rate is not None else Decimal('20.00'),
        )

    @staticmethod
    def create_quote(organisation, contact=None, user=None, lines=None, status='draft', **extra):
        """
        Create a quote with lines and stored totals.

        lines is a list of (description, quantity, unit_price) tuples; one
        £100 line is used when omitted.
        """
        if contact is None:
            contact = TestDataFactory.create_contact(organisation)
        quote = Quote.objects.create(
            organisation=organisation,
            contact=contact,
            created_by=user,
            quote_number=extra.pop('quote_number', None) or next_quote_number(organisation),
            title=extra.pop('title', 'Boiler replacement'),
            status=status,
            **extra
        )
        for index, (description, quantity, unit_price) in enumerate(lines or [('Labour', 1, 100)]):
            line = QuoteLine(
                quote=quote,
                description=description,
                quantity=Decimal(str(quantity)),
                unit_price=Decimal(str(unit_price)),
                sort_order=index,
            )
            line.line_total = calculate_line_total(line)
            line.save()
        apply_totals(quote)
        quote.save()
        return quote


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, organisation=None):
        """Authenticate the client with a user, optionally selecting an organisation"""
        refresh = RefreshToken.for_user(user)
        credentials = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if organisation is not None:
            credentials['HTTP_X_ORG_ID'] = str(organisation.id)
        self.credentials(**credentials)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
