# milk_ledger/apps.py
from django.apps import AppConfig


class MilkLedgerConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'milk_ledger'
    verbose_name = 'Milk delivery ledger'

    services = None

    def ready(self):
        from .services import build_services

        self.services = build_services()
