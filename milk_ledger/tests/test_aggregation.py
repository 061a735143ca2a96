from datetime import date, datetime
from decimal import Decimal

import pytest
import pytz

from milk_ledger.aggregation import aggregate_month
from milk_ledger.models import Customer, DeliveryRecord

MONTH = '2025-03'


def _customer(name='Ramesh', created=datetime(2024, 1, 1)):
    return Customer(name=name, phone='1', daily_qty=Decimal('2'), rate=50,
                    created_at=pytz.utc.localize(created))


def _record(customer, day, status, qty):
    qty = Decimal(qty)
    return DeliveryRecord(
        customer=customer, date=day, status=status, qty=qty, rate=50, amount=qty * 50,
    )


def test_aggregate_sums_delivered_and_counts_skipped():
    customer = _customer()
    records = [
        _record(customer, date(2025, 3, 1), DeliveryRecord.STATUS_DELIVERED, '2'),
        _record(customer, date(2025, 3, 2), DeliveryRecord.STATUS_DELIVERED, '3'),
        _record(customer, date(2025, 3, 3), DeliveryRecord.STATUS_SKIPPED, '0'),
    ]

    aggregate = aggregate_month([customer], records, MONTH)[customer.id]

    assert aggregate.total_milk == Decimal('5')
    assert aggregate.total_amount == Decimal('250')
    assert aggregate.days_delivered == 2
    assert aggregate.days_skipped == 1
    assert aggregate.days_pending == 28


def test_customers_without_records_have_zero_totals():
    customer = _customer()

    aggregate = aggregate_month([customer], [], MONTH)[customer.id]

    assert aggregate.total_milk == 0
    assert aggregate.total_amount == 0
    assert aggregate.days_delivered == 0
    assert aggregate.days_skipped == 0


def test_records_outside_month_or_customer_set_are_ignored():
    customer = _customer()
    stranger = _customer(name='Stranger')
    records = [
        _record(customer, date(2025, 2, 28), DeliveryRecord.STATUS_DELIVERED, '2'),
        _record(customer, date(2025, 4, 1), DeliveryRecord.STATUS_DELIVERED, '2'),
        _record(stranger, date(2025, 3, 5), DeliveryRecord.STATUS_DELIVERED, '2'),
    ]

    aggregates = aggregate_month([customer], records, MONTH)

    assert list(aggregates) == [customer.id]
    assert aggregates[customer.id].days_delivered == 0


def test_pending_days_follow_visibility_window():
    joined_mid_month = _customer(created=datetime(2025, 3, 20, 6, 0))
    records = [_record(joined_mid_month, date(2025, 3, 21), DeliveryRecord.STATUS_DELIVERED, '1')]

    aggregate = aggregate_month(
        [joined_mid_month], records, MONTH, as_of=date(2025, 3, 25),
    )[joined_mid_month.id]

    # 20th..25th is six days, one of them decided
    assert aggregate.days_pending == 5


@pytest.mark.django_db
def test_aggregator_rederives_after_reset(services, make_customer):
    customer = make_customer(rate=50)
    services.deliveries.record_delivered(customer.id, date(2025, 3, 1), '2')
    services.deliveries.record_delivered(customer.id, date(2025, 3, 2), '3')

    assert services.aggregator.for_customer(customer, MONTH).total_amount == Decimal('250')

    services.deliveries.reset(customer.id, date(2025, 3, 2), confirmed=True)

    aggregate = services.aggregator.for_customer(customer, MONTH)
    assert aggregate.total_amount == Decimal('100')
    assert aggregate.days_delivered == 1


@pytest.mark.django_db
def test_billing_customers_include_inactive_with_activity(services, make_customer):
    active = make_customer(name='Active')
    make_customer(name='Idle', status=Customer.STATUS_INACTIVE)
    left = make_customer(name='Left', status=Customer.STATUS_INACTIVE)
    services.deliveries.record_delivered(left.id, date(2025, 3, 4))

    customers = services.aggregator.billing_customers(MONTH)

    assert [c.name for c in customers] == ['Active', 'Left']
    assert services.aggregator.for_month(MONTH)[active.id].total_amount == 0
