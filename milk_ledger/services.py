# milk_ledger/services.py
from dataclasses import dataclass

from django.apps import apps

from .aggregation import MonthlyAggregator
from .deliveries import DeliveryLedger
from .directory import CustomerDirectory
from .notifications import NotificationDispatcher, build_dispatcher
from .payments import PaymentLedger


@dataclass
class LedgerServices:
    dispatcher: NotificationDispatcher
    directory: CustomerDirectory
    deliveries: DeliveryLedger
    aggregator: MonthlyAggregator
    payments: PaymentLedger


def build_services(dispatcher=None, admin_handle=None, pacing_seconds=None):
    """Wire the ledger services around one dispatcher."""
    dispatcher = dispatcher or build_dispatcher()
    directory = CustomerDirectory(dispatcher)
    aggregator = MonthlyAggregator()
    return LedgerServices(
        dispatcher=dispatcher,
        directory=directory,
        deliveries=DeliveryLedger(directory, dispatcher, admin_handle=admin_handle),
        aggregator=aggregator,
        payments=PaymentLedger(directory, aggregator, dispatcher, pacing_seconds=pacing_seconds),
    )


def get_services():
    """Services built by the app config at startup."""
    return apps.get_app_config('milk_ledger').services
