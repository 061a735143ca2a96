from datetime import date
from decimal import Decimal

import pytest

from milk_ledger.exceptions import NotFoundError, ValidationError
from milk_ledger.models import Customer, DeliveryRecord
from milk_ledger.notifications import EventKind

from .conftest import ADMIN_CHAT

DAY = date(2025, 3, 10)


@pytest.mark.django_db
def test_pending_when_no_record(services, make_customer):
    customer = make_customer(daily_qty='1.5', rate=60)

    [entry] = services.deliveries.for_date(DAY)

    assert entry.customer == customer
    assert entry.status == 'pending'
    assert entry.qty == Decimal('1.5')
    assert entry.amount == Decimal('90.00')
    assert entry.record is None


@pytest.mark.django_db
def test_for_date_only_lists_active_customers(services, make_customer):
    make_customer(name='Active')
    make_customer(name='Gone', status=Customer.STATUS_INACTIVE)

    assert [e.customer.name for e in services.deliveries.for_date(DAY)] == ['Active']


@pytest.mark.django_db
def test_record_delivered_defaults_to_standing_quantity(services, make_customer):
    customer = make_customer(daily_qty='2', rate=50)

    result = services.deliveries.record_delivered(customer.id, DAY)

    assert result.created is True
    assert result.record.qty == Decimal('2')
    assert result.record.rate == 50
    assert result.record.amount == Decimal('100.00')
    assert result.record.status == DeliveryRecord.STATUS_DELIVERED


@pytest.mark.django_db
def test_record_delivered_is_an_upsert(services, make_customer):
    customer = make_customer(rate=50)

    services.deliveries.record_delivered(customer.id, DAY, '2')
    result = services.deliveries.record_delivered(customer.id, DAY, '3.5')

    assert result.created is False
    records = DeliveryRecord.objects.filter(customer=customer, date=DAY)
    assert records.count() == 1
    assert records.get().qty == Decimal('3.5')
    assert records.get().amount == Decimal('175.00')


@pytest.mark.django_db
def test_rate_is_snapshotted_at_write_time(services, make_customer):
    customer = make_customer(rate=50)
    services.deliveries.record_delivered(customer.id, DAY, '2')

    services.directory.update(customer.id, {'rate': 70})

    record = DeliveryRecord.objects.get(customer=customer, date=DAY)
    assert record.rate == 50
    assert record.amount == Decimal('100.00')
    [entry] = services.deliveries.for_date(DAY)
    assert entry.amount == Decimal('100.00')


@pytest.mark.django_db
@pytest.mark.parametrize('quantity', ['0', '-1', 0, '12345', '1.234'])
def test_record_delivered_rejects_invalid_quantity(services, make_customer, quantity):
    customer = make_customer()

    with pytest.raises(ValidationError):
        services.deliveries.record_delivered(customer.id, DAY, quantity)
    assert DeliveryRecord.objects.count() == 0


@pytest.mark.django_db
def test_record_skipped_then_delivered_switches_status(services, make_customer):
    customer = make_customer()

    skipped = services.deliveries.record_skipped(customer.id, DAY)
    assert skipped.record.qty == 0
    assert skipped.record.amount == 0
    assert skipped.record.status == DeliveryRecord.STATUS_SKIPPED

    services.deliveries.record_delivered(customer.id, DAY)
    assert DeliveryRecord.objects.get(customer=customer, date=DAY).status == DeliveryRecord.STATUS_DELIVERED


@pytest.mark.django_db
def test_reset_restores_implicit_pending(services, make_customer):
    customer = make_customer(daily_qty='2', rate=50)
    services.deliveries.record_delivered(customer.id, DAY, '5')

    services.deliveries.reset(customer.id, DAY, confirmed=True)

    [entry] = services.deliveries.for_date(DAY)
    assert entry.status == 'pending'
    assert entry.qty == Decimal('2')
    assert not DeliveryRecord.objects.exists()


@pytest.mark.django_db
def test_reset_requires_confirmation(services, make_customer):
    customer = make_customer()
    services.deliveries.record_delivered(customer.id, DAY)

    with pytest.raises(ValidationError):
        services.deliveries.reset(customer.id, DAY)
    assert DeliveryRecord.objects.count() == 1


@pytest.mark.django_db
def test_reset_without_record_is_not_found(services, make_customer):
    customer = make_customer()

    with pytest.raises(NotFoundError):
        services.deliveries.reset(customer.id, DAY, confirmed=True)


@pytest.mark.django_db
def test_delivery_notifies_customer_then_admin(services, dispatcher, make_customer):
    customer = make_customer(tg_chat_id='555')

    result = services.deliveries.record_delivered(customer.id, DAY)

    assert [(h, k) for h, k, _ in dispatcher.sent] == [
        ('555', EventKind.DELIVERY_CONFIRMED),
        (ADMIN_CHAT, EventKind.ADMIN_DELIVERY_SUMMARY),
    ]
    assert dispatcher.sent[0][2]['amount'] == Decimal('100.00')
    assert result.customer_notified is True
    assert result.admin_notified is True


@pytest.mark.django_db
def test_admin_is_notified_even_when_customer_send_fails(services, dispatcher, make_customer):
    customer = make_customer(tg_chat_id='555')
    dispatcher.failing.add('555')

    result = services.deliveries.record_skipped(customer.id, DAY)

    assert DeliveryRecord.objects.filter(customer=customer, date=DAY).exists()
    assert result.customer_notified is False
    assert dispatcher.kinds(ADMIN_CHAT) == [EventKind.ADMIN_DELIVERY_SUMMARY]
    assert dispatcher.sent[0][2]['customer_notified'] is False


@pytest.mark.django_db
def test_admin_is_notified_for_customers_without_handle(services, dispatcher, make_customer):
    customer = make_customer()

    result = services.deliveries.record_delivered(customer.id, DAY)

    assert result.customer_notified is None
    assert dispatcher.kinds() == [EventKind.ADMIN_DELIVERY_SUMMARY]


@pytest.mark.django_db
def test_mark_all_pending_skips_decided_customers(services, make_customer):
    a = make_customer(name='A', daily_qty='1')
    b = make_customer(name='B', daily_qty='2')
    c = make_customer(name='C', daily_qty='3')
    make_customer(name='Inactive', status=Customer.STATUS_INACTIVE)
    services.deliveries.record_skipped(b.id, DAY)

    result = services.deliveries.mark_all_pending(DAY, quantities={str(c.id): '4'})

    assert result.success_count == 2
    assert result.failure_count == 0
    assert DeliveryRecord.objects.get(customer=a, date=DAY).qty == Decimal('1')
    assert DeliveryRecord.objects.get(customer=b, date=DAY).status == DeliveryRecord.STATUS_SKIPPED
    assert DeliveryRecord.objects.get(customer=c, date=DAY).qty == Decimal('4')
    assert DeliveryRecord.objects.filter(date=DAY).count() == 3


@pytest.mark.django_db
def test_mark_all_pending_isolates_failures(services, dispatcher, make_customer):
    a = make_customer(name='A', tg_chat_id='bad')
    b = make_customer(name='B')
    c = make_customer(name='C')
    dispatcher.failing.add('bad')

    result = services.deliveries.mark_all_pending(DAY, quantities={str(b.id): '0'})

    assert result.success_count == 1
    assert {f['name'] for f in result.failed} == {'A', 'B'}
    assert [s['customer_id'] for s in result.succeeded] == [str(c.id)]
    # notification failure still leaves the record in place
    assert DeliveryRecord.objects.filter(customer=a, date=DAY).exists()
    assert not DeliveryRecord.objects.filter(customer=b, date=DAY).exists()


@pytest.mark.django_db
def test_mark_all_pending_with_explicit_ids(services, make_customer):
    a = make_customer(name='A')
    make_customer(name='B')

    result = services.deliveries.mark_all_pending(
        DAY, customer_ids=[a.id, '00000000-0000-0000-0000-000000000000'],
    )

    assert result.success_count == 1
    assert result.failure_count == 1
    assert DeliveryRecord.objects.filter(date=DAY).count() == 1


@pytest.mark.django_db
def test_day_summary_counts_pending_by_customer(services, make_customer):
    a = make_customer(name='A', daily_qty='2', rate=50)
    b = make_customer(name='B')
    make_customer(name='C')
    make_customer(name='D')
    services.deliveries.record_delivered(a.id, DAY)
    services.deliveries.record_skipped(b.id, DAY)

    summary = services.deliveries.day_summary(DAY)

    assert summary.delivered == 1
    assert summary.skipped == 1
    assert summary.pending == 2
    assert summary.total_milk == Decimal('2')
    assert summary.total_revenue == Decimal('100.00')
