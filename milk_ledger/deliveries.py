# milk_ledger/deliveries.py
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from .directory import QTY_INTEGER_DIGITS
from .exceptions import LedgerError, NotFoundError, ValidationError, describe_customer
from .models import Customer, DeliveryRecord
from .notifications import EventKind
from .utils import check_digits, money, parse_date, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    record: DeliveryRecord
    created: bool
    # None when the customer has no messaging handle
    customer_notified: bool | None = None
    admin_notified: bool | None = None

    @property
    def notification_failed(self):
        return self.customer_notified is False


@dataclass
class DailyEntry:
    """Effective state of one customer on one day."""
    customer: Customer
    date: object
    status: str
    qty: Decimal
    rate: int
    amount: Decimal
    record: DeliveryRecord | None = None


@dataclass
class BulkResult:
    succeeded: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def success_count(self):
        return len(self.succeeded)

    @property
    def failure_count(self):
        return len(self.failed)


@dataclass
class DaySummary:
    date: object
    delivered: int
    skipped: int
    pending: int
    total_milk: Decimal
    total_revenue: Decimal


class DeliveryLedger:
    """Per-day delivery decisions, one record per customer and date."""

    def __init__(self, directory, dispatcher, admin_handle=None):
        self.directory = directory
        self.dispatcher = dispatcher
        self.admin_handle = admin_handle if admin_handle is not None else settings.TELEGRAM_ADMIN_CHAT_ID

    def record_delivered(self, customer_id, day, quantity=None):
        customer = self.directory.get(customer_id)
        day = parse_date(day)
        if quantity is None or quantity == '':
            qty = customer.daily_qty
        else:
            qty = to_decimal(quantity, 'quantity')
        if qty <= 0:
            raise ValidationError(
                f'Delivered quantity for {customer.name} must be greater than 0',
                entity=describe_customer(customer),
            )
        check_digits(qty, 'quantity', QTY_INTEGER_DIGITS, 2)
        return self._save(customer, day, qty, DeliveryRecord.STATUS_DELIVERED)

    def record_skipped(self, customer_id, day):
        customer = self.directory.get(customer_id)
        return self._save(customer, parse_date(day), Decimal('0'), DeliveryRecord.STATUS_SKIPPED)

    def _save(self, customer, day, qty, status):
        # Rate is snapshotted now and never re-read from the customer later
        rate = customer.rate
        with transaction.atomic():
            record, created = DeliveryRecord.objects.update_or_create(
                customer=customer,
                date=day,
                defaults={
                    'qty': qty,
                    'rate': rate,
                    'amount': money(qty * rate),
                    'status': status,
                },
            )
        logger.info(
            f"{'Created' if created else 'Updated'} {status} delivery for "
            f"{describe_customer(customer)} on {day}: {qty}L"
        )

        result = DeliveryResult(record=record, created=created)
        self._notify(customer, record, result)
        return result

    def _notify(self, customer, record, result):
        # Customer first, then admin regardless of how the customer send went
        if customer.has_handle:
            if record.status == DeliveryRecord.STATUS_DELIVERED:
                event_kind = EventKind.DELIVERY_CONFIRMED
                payload = {
                    'name': customer.name,
                    'date': record.date,
                    'qty': record.qty,
                    'rate': record.rate,
                    'amount': record.amount,
                }
            else:
                event_kind = EventKind.DELIVERY_SKIPPED
                payload = {'name': customer.name, 'date': record.date}
            result.customer_notified = self.dispatcher.notify(customer.tg_chat_id, event_kind, payload)
            if not result.customer_notified:
                logger.warning(f"Delivery saved but failed to notify {describe_customer(customer)}")

        if self.admin_handle:
            result.admin_notified = self.dispatcher.notify(
                self.admin_handle,
                EventKind.ADMIN_DELIVERY_SUMMARY,
                {
                    'name': customer.name,
                    'phone': customer.phone,
                    'date': record.date,
                    'status': record.status,
                    'qty': record.qty,
                    'rate': record.rate,
                    'amount': record.amount,
                    'customer_notified': result.customer_notified,
                },
            )

    def reset(self, customer_id, day, confirmed=False):
        """Remove the decision for a day, returning it to pending.

        Destructive, so callers have to pass ``confirmed=True``.
        """
        customer = self.directory.get(customer_id)
        day = parse_date(day)
        if not confirmed:
            raise ValidationError(
                f'Resetting the {day} delivery of {customer.name} requires confirmation',
                entity=describe_customer(customer),
            )
        deleted, _ = DeliveryRecord.objects.filter(customer=customer, date=day).delete()
        if not deleted:
            raise NotFoundError(
                f'No delivery recorded for {customer.name} on {day}',
                entity=describe_customer(customer),
            )
        logger.info(f"Reset delivery for {describe_customer(customer)} on {day}")

    def mark_all_pending(self, day, customer_ids=None, quantities=None):
        """Mark every customer still pending on ``day`` as delivered.

        ``quantities`` optionally maps customer id to an overridden quantity.
        Each customer is handled on its own; failures are collected.
        """
        day = parse_date(day)
        quantities = {str(k): v for k, v in (quantities or {}).items()}

        result = BulkResult()
        if customer_ids is None:
            customers = self.directory.active_customers()
        else:
            customers = []
            for customer_id in customer_ids:
                try:
                    customers.append(self.directory.get(customer_id))
                except NotFoundError as e:
                    result.failed.append({'customer_id': str(customer_id), 'name': None, 'error': e.message})
        return self._mark_customers(day, customers, quantities, result)

    def _mark_customers(self, day, customers, quantities, result):
        recorded = set(
            DeliveryRecord.objects.filter(date=day, customer__in=customers).values_list('customer_id', flat=True)
        )
        for customer in customers:
            if customer.id in recorded:
                continue
            entry = {'customer_id': str(customer.id), 'name': customer.name}
            try:
                outcome = self.record_delivered(customer.id, day, quantities.get(str(customer.id)))
            except LedgerError as e:
                logger.error(f"Failed to mark {describe_customer(customer)} delivered on {day}: {e.message}")
                result.failed.append({**entry, 'error': e.message})
                continue
            if outcome.notification_failed:
                result.failed.append({**entry, 'error': 'Delivery saved but notification failed'})
            else:
                result.succeeded.append(entry)

        logger.info(
            f"Marked pending deliveries on {day}: {result.success_count} succeeded, "
            f"{result.failure_count} failed"
        )
        return result

    def for_date(self, day):
        day = parse_date(day)
        customers = self.directory.active_customers()
        records = {
            record.customer_id: record
            for record in DeliveryRecord.objects.filter(date=day, customer__in=customers)
        }

        entries = []
        for customer in customers:
            record = records.get(customer.id)
            if record:
                entries.append(DailyEntry(
                    customer=customer,
                    date=day,
                    status=record.status,
                    qty=record.qty,
                    rate=record.rate,
                    amount=record.amount,
                    record=record,
                ))
            else:
                entries.append(DailyEntry(
                    customer=customer,
                    date=day,
                    status=DeliveryRecord.STATUS_PENDING,
                    qty=customer.daily_qty,
                    rate=customer.rate,
                    amount=money(customer.daily_qty * customer.rate),
                ))
        return entries

    def day_summary(self, day):
        day = parse_date(day)
        active_ids = {c.id for c in self.directory.active_customers()}
        records = list(DeliveryRecord.objects.filter(date=day))

        delivered = [r for r in records if r.status == DeliveryRecord.STATUS_DELIVERED]
        skipped = [r for r in records if r.status == DeliveryRecord.STATUS_SKIPPED]
        decided_ids = {r.customer_id for r in records}

        return DaySummary(
            date=day,
            delivered=len(delivered),
            skipped=len(skipped),
            pending=len(active_ids - decided_ids),
            total_milk=sum((r.qty for r in delivered), Decimal('0')),
            total_revenue=sum((r.amount for r in delivered), Decimal('0')),
        )
