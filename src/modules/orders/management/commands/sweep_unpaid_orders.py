from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from modules.orders.services import build_order_service


class Command(BaseCommand):
    help = "Cancel PENDING orders older than the unpaid-order timeout and restore their stock."

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help=(
                "Age threshold in hours "
                f"(default: ORDER_UNPAID_TIMEOUT_HOURS={settings.ORDER_UNPAID_TIMEOUT_HOURS})."
            ),
        )

    def handle(self, *args, **options):
        try:
            cancelled = build_order_service().sweep_unpaid_orders(options["hours"])
        except ValueError as exc:
            raise CommandError(f"--hours: {exc}") from exc
        self.stdout.write(self.style.SUCCESS(f"Cancelled {cancelled} unpaid order(s)."))
