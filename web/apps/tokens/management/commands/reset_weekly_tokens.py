"""Reset every student's token balance to the weekly quota.

Meant to be scheduled once a week (cron, k8s CronJob...):

    python manage.py reset_weekly_tokens [--quota 3] [--run-key 2026-W42]
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.tokens.providers import get_weekly_reset_job


class Command(BaseCommand):
    help = "Reset every student's token balance to the weekly quota."

    def add_arguments(self, parser):
        parser.add_argument("--quota", type=int, default=getattr(settings, "TOKEN_WEEKLY_QUOTA", 3))
        parser.add_argument("--run-key", default=None, help="Dedup key for the reset notice (default: ISO week).")

    def handle(self, *args, **options):
        quota = options["quota"]
        if quota < 0:
            raise CommandError("--quota must be >= 0")
        count = get_weekly_reset_job().reset_all(quota=quota, run_key=options["run_key"])
        self.stdout.write(self.style.SUCCESS(f"Reset {count} token account(s) to {quota}."))
