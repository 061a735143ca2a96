from django.core.management.base import BaseCommand, CommandError

from milk_ledger.exceptions import ValidationError
from milk_ledger.services import get_services
from milk_ledger.utils import local_today, month_of


class Command(BaseCommand):
    help = (
        "Send payment reminders to every customer with a pending or partial "
        "payment for the given month (defaults to the current month)."
    )

    def add_arguments(self, parser):
        parser.add_argument('--month', help='Billing month as YYYY-MM')

    def handle(self, *args, **options):
        month = options.get('month') or month_of(local_today())
        try:
            report = get_services().payments.send_reminders(month)
        except ValidationError as e:
            raise CommandError(e.message)

        for failure in report.failed:
            self.stderr.write(f"Failed: {failure['name']} ({failure['customer_id']}): {failure['error']}")

        self.stdout.write(self.style.SUCCESS(
            f"Reminders for {report.month}: {report.sent_count} sent, {report.failed_count} failed "
            f"(due {report.due_date})"
        ))
