# milk_ledger/aggregation.py
"""Monthly totals derived from delivery records.

Nothing here is persisted: every aggregate is recomputed from the delivery
rows, so resets and edits are reflected without a reconciliation pass.
"""
from dataclasses import dataclass
from decimal import Decimal

from django.db.models import Q

from .models import Customer, DeliveryRecord
from .utils import days_between, get_business_timezone, local_today, month_bounds, parse_month


@dataclass
class MonthlyAggregate:
    customer: Customer
    month: str
    total_milk: Decimal = Decimal('0')
    total_amount: Decimal = Decimal('0')
    days_delivered: int = 0
    days_skipped: int = 0
    days_pending: int = 0


def visibility_window(customer, month, as_of=None):
    """Days of ``month`` the customer could have had a delivery on."""
    first, last = month_bounds(month)
    start = first
    if customer.created_at:
        start = max(first, customer.created_at.astimezone(get_business_timezone()).date())
    end = min(last, as_of) if as_of else last
    return start, end


def aggregate_month(customers, records, month, as_of=None):
    """Fold delivery records into one MonthlyAggregate per customer.

    Only delivered records add to milk and amount. Records outside ``month``
    or for customers not in ``customers`` are ignored.
    """
    month = parse_month(month)
    first, last = month_bounds(month)
    aggregates = {c.id: MonthlyAggregate(customer=c, month=month) for c in customers}

    for record in records:
        aggregate = aggregates.get(record.customer_id)
        if aggregate is None or not first <= record.date <= last:
            continue
        if record.status == DeliveryRecord.STATUS_DELIVERED:
            aggregate.total_milk += record.qty
            aggregate.total_amount += record.amount
            aggregate.days_delivered += 1
        elif record.status == DeliveryRecord.STATUS_SKIPPED:
            aggregate.days_skipped += 1

    for aggregate in aggregates.values():
        start, end = visibility_window(aggregate.customer, month, as_of)
        decided = aggregate.days_delivered + aggregate.days_skipped
        aggregate.days_pending = max(days_between(start, end) - decided, 0)

    return aggregates


class MonthlyAggregator:
    """Loads a month's records and folds them with ``aggregate_month``."""

    def billing_customers(self, month):
        """Active customers plus anyone with deliveries or payments in ``month``."""
        first, last = month_bounds(month)
        return list(
            Customer.objects.filter(
                Q(status=Customer.STATUS_ACTIVE)
                | Q(deliveries__date__range=[first, last])
                | Q(payments__month=parse_month(month))
            ).distinct().order_by('name')
        )

    def records_for(self, month, customers=None):
        first, last = month_bounds(month)
        records = DeliveryRecord.objects.filter(date__range=[first, last])
        if customers is not None:
            records = records.filter(customer__in=customers)
        return list(records)

    def _as_of(self, month):
        _, last = month_bounds(month)
        return min(local_today(), last)

    def for_month(self, month, customers=None):
        month = parse_month(month)
        if customers is None:
            customers = self.billing_customers(month)
        return aggregate_month(customers, self.records_for(month, customers), month, as_of=self._as_of(month))

    def for_customer(self, customer, month):
        return self.for_month(month, customers=[customer])[customer.id]
