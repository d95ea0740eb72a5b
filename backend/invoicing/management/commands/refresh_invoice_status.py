from django.core.management.base import BaseCommand

from backend.invoicing.services import refresh_open_invoices


class Command(BaseCommand):
    help = 'Re-derive payment status of open invoices so overdue ones are flagged'

    def handle(self, *args, **options):
        changed = refresh_open_invoices()
        self.stdout.write(self.style.SUCCESS(f'Updated payment status of {changed} invoice(s)'))
