from django.core.management.base import BaseCommand, CommandError

from apps.daily_reset.services import DailyQueueResetService


class Command(BaseCommand):
    help = "Run the daily queue reset now"

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help="Run even if today's reset already succeeded",
        )

    def handle(self, *args, **options):
        force = options['force']
        try:
            reset_log = DailyQueueResetService().perform_daily_reset(force=force)
        except Exception as exc:
            DailyQueueResetService.record_failure(exc, force=force)
            raise CommandError(f"Daily reset failed: {exc}")

        if reset_log is None:
            self.stdout.write(self.style.WARNING("Today's reset already ran; use --force to run it again"))
            return

        self.stdout.write(self.style.SUCCESS(
            f"Reset for {reset_log.reset_date}: {reset_log.customers_processed} processed, "
            f"{reset_log.customers_carried_forward} carried forward"
        ))
