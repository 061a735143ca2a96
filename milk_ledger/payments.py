# milk_ledger/payments.py
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from .exceptions import NotificationError, ValidationError, describe_customer
from .models import PaymentRecord
from .notifications import EventKind
from .utils import check_digits, local_today, money, parse_month, payment_due_date, to_decimal

logger = logging.getLogger(__name__)

PENDING = 'pending'
PARTIAL = 'partial'
PAID = 'paid'
PAYMENT_STATUSES = (PENDING, PARTIAL, PAID)

# paid_amount is DecimalField(10, 2)
AMOUNT_INTEGER_DIGITS = 8


def derive_payment_status(total_amount, paid_amount):
    """pending / partial / paid for a month.

    A month with nothing due is pending, never paid.
    """
    if paid_amount <= 0 or total_amount <= 0:
        return PENDING
    if paid_amount >= total_amount:
        return PAID
    return PARTIAL


@dataclass
class PaymentResult:
    record: PaymentRecord
    status: str
    completed: bool
    recorded_notified: bool | None = None
    completed_notified: bool | None = None


@dataclass
class PaymentSummary:
    customer: object
    month: str
    total_milk: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    days_delivered: int
    days_skipped: int
    status: str
    payment_date: object = None
    payment: PaymentRecord | None = None


@dataclass
class MonthSummary:
    month: str
    total_revenue: Decimal
    total_paid: Decimal
    total_milk: Decimal
    paid_customers: int
    pending_customers: int


@dataclass
class ReminderReport:
    month: str
    due_date: object
    sent: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def sent_count(self):
        return len(self.sent)

    @property
    def failed_count(self):
        return len(self.failed)


class PaymentLedger:
    """Monthly settlement of delivered milk against recorded payments."""

    def __init__(self, directory, aggregator, dispatcher, pacing_seconds=None, sleep=time.sleep):
        self.directory = directory
        self.aggregator = aggregator
        self.dispatcher = dispatcher
        self.pacing_seconds = pacing_seconds
        self._sleep = sleep

    def record_payment(self, customer_id, month, amount):
        # Rounded to cents before the check so nothing rounds down to zero
        increment = money(check_digits(to_decimal(amount, 'amount'), 'amount', AMOUNT_INTEGER_DIGITS))
        if increment <= 0:
            raise ValidationError('Please enter a valid payment amount', entity='amount')
        month = parse_month(month)
        customer = self.directory.get(customer_id)

        total = money(self.aggregator.for_customer(customer, month).total_amount)

        with transaction.atomic():
            record, created = PaymentRecord.objects.select_for_update().get_or_create(
                customer=customer,
                month=month,
            )
            previous_paid = record.paid_amount
            record.paid_amount = previous_paid + increment
            # Refresh the cached total, it may have gone stale since the last payment
            record.total_amount = total
            record.last_payment_amount = increment
            record.payment_date = local_today()
            record.save()

        status = derive_payment_status(total, record.paid_amount)
        completed = status == PAID and derive_payment_status(total, previous_paid) != PAID
        logger.info(
            f"Recorded payment of {increment} for {describe_customer(customer)} ({month}): "
            f"paid {record.paid_amount} of {total}, {status}"
        )

        result = PaymentResult(record=record, status=status, completed=completed)
        if customer.has_handle:
            result.recorded_notified = self.dispatcher.notify(
                customer.tg_chat_id,
                EventKind.PAYMENT_RECORDED,
                {
                    'name': customer.name,
                    'month': month,
                    'received': increment,
                    'total_paid': record.paid_amount,
                    'total_amount': total,
                    'balance': total - record.paid_amount,
                },
            )
            if completed:
                result.completed_notified = self.dispatcher.notify(
                    customer.tg_chat_id,
                    EventKind.PAYMENT_COMPLETED,
                    {'name': customer.name, 'month': month, 'total_amount': total},
                )
        return result

    def ledger(self, month, status=None):
        """One PaymentSummary per billing customer, optionally filtered by status."""
        month = parse_month(month)
        if status and status not in PAYMENT_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(PAYMENT_STATUSES)}", entity='status')

        aggregates = self.aggregator.for_month(month)
        payments = {
            p.customer_id: p
            for p in PaymentRecord.objects.filter(month=month, customer_id__in=list(aggregates))
        }

        rows = []
        for customer_id, aggregate in aggregates.items():
            payment = payments.get(customer_id)
            paid = payment.paid_amount if payment else Decimal('0')
            row = PaymentSummary(
                customer=aggregate.customer,
                month=month,
                total_milk=aggregate.total_milk,
                total_amount=aggregate.total_amount,
                paid_amount=paid,
                balance=aggregate.total_amount - paid,
                days_delivered=aggregate.days_delivered,
                days_skipped=aggregate.days_skipped,
                status=derive_payment_status(aggregate.total_amount, paid),
                payment_date=payment.payment_date if payment else None,
                payment=payment,
            )
            if not status or row.status == status:
                rows.append(row)
        return rows

    def month_summary(self, month):
        rows = self.ledger(month)
        return MonthSummary(
            month=parse_month(month),
            total_revenue=sum((r.total_amount for r in rows), Decimal('0')),
            total_paid=sum((r.paid_amount for r in rows), Decimal('0')),
            total_milk=sum((r.total_milk for r in rows), Decimal('0')),
            paid_customers=sum(1 for r in rows if r.status == PAID),
            pending_customers=sum(1 for r in rows if r.status == PENDING),
        )

    def send_reminders(self, month, now=None):
        """Remind every pending or partial customer that has a messaging handle.

        Sends run one at a time with a pause between them; a failed send is
        recorded and the loop moves on.
        """
        month = parse_month(month)
        due_date = payment_due_date(now)
        pacing = self.pacing_seconds if self.pacing_seconds is not None else settings.REMINDER_PACING_SECONDS

        eligible = [
            row for row in self.ledger(month)
            if row.status in (PENDING, PARTIAL) and row.customer.has_handle
        ]
        report = ReminderReport(month=month, due_date=due_date)

        for index, row in enumerate(eligible):
            customer = row.customer
            entry = {'customer_id': str(customer.id), 'name': customer.name}
            try:
                self.dispatcher.send(
                    customer.tg_chat_id,
                    EventKind.PAYMENT_REMINDER,
                    {
                        'name': customer.name,
                        'month': month,
                        'status': row.status,
                        'total_amount': row.total_amount,
                        'paid_amount': row.paid_amount,
                        'balance': row.balance,
                        'days_delivered': row.days_delivered,
                        'total_milk': row.total_milk,
                        'rate': customer.rate,
                        'due_date': due_date,
                    },
                )
            except NotificationError as e:
                logger.error(f"Failed to send reminder to {describe_customer(customer)}: {e.message}")
                report.failed.append({**entry, 'error': e.message})
            else:
                logger.info(f"Payment reminder sent to {describe_customer(customer)}")
                report.sent.append(entry)

            if pacing and index < len(eligible) - 1:
                self._sleep(pacing)

        logger.info(f"Reminders for {month}: {report.sent_count} sent, {report.failed_count} failed")
        return report
