"""
Recount active users and push seat overage to Stripe
Usage: python manage.py sync_seats [--org <uuid>]
"""
import stripe
from django.core.management.base import BaseCommand, CommandError

from worktrackr.billing.stripe_seats import sync_seats_for_org
from worktrackr.organisations.models import Organisation


class Command(BaseCommand):
    help = 'Re-sync seat counts (and Stripe seat quantities) for one or all organisations'

    def add_arguments(self, parser):
        parser.add_argument('--org', dest='org_id', help='Only sync this organisation id')

    def handle(self, *args, **options):
        organisations = Organisation.objects.all()
        if options['org_id']:
            organisations = organisations.filter(pk=options['org_id'])
            if not organisations.exists():
                raise CommandError(f"Organisation {options['org_id']} not found")

        failed = 0
        for organisation in organisations:
            try:
                result = sync_seats_for_org(organisation)
            except stripe.StripeError as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f'{organisation.name}: {str(e)}'))
                continue
            self.stdout.write(
                f"{organisation.name}: {result['active_users']} active, {result['included']} included, "
                f"{result['overage']} overage{' (synced)' if result['synced'] else ''}"
            )

        if failed:
            self.stdout.write(self.style.WARNING(f'{failed} organisation(s) failed to sync'))
        else:
            self.stdout.write(self.style.SUCCESS('Seat sync complete'))
