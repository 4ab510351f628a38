"""
Drop cached contact and organisation statistics
Usage: python manage.py clear_stats_cache
"""
from django.core.management.base import BaseCommand

from worktrackr.core.cache_utils import invalidate_cache_pattern, CONTACT_STATS_PREFIX, ORG_STATS_PREFIX


class Command(BaseCommand):
    help = 'Clear cached statistics from Redis'

    def handle(self, *args, **options):
        total = 0
        for prefix in (CONTACT_STATS_PREFIX, ORG_STATS_PREFIX):
            removed = invalidate_cache_pattern(prefix)
            self.stdout.write(f'  - {prefix}: {removed} keys')
            total += removed
        self.stdout.write(self.style.SUCCESS(f'Cleared {total} cached entries'))
