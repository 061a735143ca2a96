# milk_ledger/directory.py
import logging
from datetime import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .exceptions import (
    CascadeIncompleteError,
    NotFoundError,
    ValidationError,
    describe_customer,
)
from .models import Customer, DeliveryRecord, PaymentRecord
from .notifications import EventKind
from .utils import check_digits, get_business_timezone, parse_date, to_decimal

logger = logging.getLogger(__name__)

# Column sizes: qty is DecimalField(6, 2), amount is DecimalField(10, 2)
QTY_INTEGER_DIGITS = 4
RATE_DIGITS = 4

EDITABLE_FIELDS = ('name', 'phone', 'daily_qty', 'rate', 'status', 'address', 'tg_chat_id', 'created_at')
REQUIRED_FIELDS = ('name', 'phone', 'daily_qty', 'rate')
STATUSES = {choice for choice, _ in Customer.STATUS_CHOICES}


def _clean_text(value):
    return str(value).strip() if value is not None else ''


def _clean_rate(value):
    if isinstance(value, bool):
        raise ValidationError('rate must be a whole number', entity='rate')
    rate = to_decimal(value, 'rate')
    if rate != rate.to_integral_value():
        raise ValidationError('rate must be a whole number', entity='rate')
    return int(rate)


def clean_customer_fields(data, partial=False):
    """Validate customer fields, returning normalized values.

    With ``partial`` only the supplied fields are checked, otherwise every
    required field has to be present.
    """
    unknown = set(data) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown customer fields: {', '.join(sorted(unknown))}")

    if not partial:
        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, '')]
        if missing:
            raise ValidationError(
                f"Please fill in all required fields: {', '.join(missing)}",
                entity=missing[0],
            )

    cleaned = {}
    for field in ('name', 'phone'):
        if field in data:
            value = _clean_text(data[field])
            if not value:
                raise ValidationError(f'{field} is required', entity=field)
            cleaned[field] = value
    if 'daily_qty' in data:
        qty = to_decimal(data['daily_qty'], 'daily_qty')
        if qty <= 0:
            raise ValidationError('Quantity must be a positive number', entity='daily_qty')
        cleaned['daily_qty'] = check_digits(qty, 'daily_qty', QTY_INTEGER_DIGITS, 2)
    if 'rate' in data:
        rate = _clean_rate(data['rate'])
        if rate <= 0:
            raise ValidationError('Rate must be a positive number', entity='rate')
        # qty * rate has to fit a delivery amount
        check_digits(Decimal(rate), 'rate', RATE_DIGITS)
        cleaned['rate'] = rate
    if 'status' in data:
        status = _clean_text(data['status']) or Customer.STATUS_ACTIVE
        if status not in STATUSES:
            raise ValidationError(f"status must be one of {', '.join(sorted(STATUSES))}", entity='status')
        cleaned['status'] = status
    for field in ('address', 'tg_chat_id'):
        if field in data:
            cleaned[field] = _clean_text(data[field])
    if data.get('created_at'):
        cleaned['created_at'] = _parse_added_on(data['created_at'])
    return cleaned


def _parse_added_on(value):
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return value
        return get_business_timezone().localize(value)
    added = parse_date(value, field='created_at')
    return get_business_timezone().localize(datetime.combine(added, datetime.min.time()))


def profile_payload(customer, when):
    return {
        'name': customer.name,
        'phone': customer.phone,
        'daily_qty': customer.daily_qty,
        'rate': customer.rate,
        'address': customer.address,
        'status': customer.status,
        'date': when.date(),
    }


class CustomerDirectory:
    """Standing orders of every customer."""

    def __init__(self, dispatcher):
        self.dispatcher = dispatcher

    def get(self, customer_id):
        try:
            return Customer.objects.get(id=customer_id)
        except (Customer.DoesNotExist, DjangoValidationError, ValueError):
            # DjangoValidationError: not a valid UUID
            raise NotFoundError(f'Customer {customer_id} not found', entity=str(customer_id))

    def create(self, data):
        cleaned = clean_customer_fields(data)
        cleaned.setdefault('status', Customer.STATUS_ACTIVE)
        customer = Customer.objects.create(**cleaned)
        logger.info(f"Created customer {describe_customer(customer)}")

        if customer.has_handle:
            self.dispatcher.notify(
                customer.tg_chat_id,
                EventKind.REGISTRATION,
                profile_payload(customer, customer.created_at),
            )
        return customer

    def update(self, customer_id, fields):
        customer = self.get(customer_id)
        cleaned = clean_customer_fields(fields, partial=True)
        for field, value in cleaned.items():
            setattr(customer, field, value)
        customer.save()
        logger.info(f"Updated customer {describe_customer(customer)}: {', '.join(sorted(cleaned))}")

        if customer.has_handle:
            self.dispatcher.notify(
                customer.tg_chat_id,
                EventKind.PROFILE_UPDATED,
                profile_payload(customer, customer.updated_at),
            )
        return customer

    def delete(self, customer_id):
        """Delete a customer with all of its deliveries and payments.

        Both collections are purged as independent units. The customer row is
        removed only when both succeeded.
        """
        customer = self.get(customer_id)
        label = describe_customer(customer)

        removed = {}
        failed = []
        # Sequential, not concurrent: a Django connection belongs to one thread.
        # Both purges are still always attempted.
        for collection, purge in (
            ('deliveries', self._purge_deliveries),
            ('payments', self._purge_payments),
        ):
            try:
                with transaction.atomic():
                    removed[collection] = purge(customer)
            except Exception as e:
                logger.error(f"Cascade delete of {collection} for {label} failed: {e}")
                failed.append(collection)

        if failed:
            raise CascadeIncompleteError(
                f"Could not delete {', '.join(failed)} for {customer.name}; customer was kept",
                entity=label,
                failed_collections=failed,
            )

        customer.delete()
        logger.info(
            f"Deleted customer {label} with {removed['deliveries']} deliveries "
            f"and {removed['payments']} payments"
        )
        return removed

    def _purge_deliveries(self, customer):
        deleted, _ = DeliveryRecord.objects.filter(customer=customer).delete()
        return deleted

    def _purge_payments(self, customer):
        deleted, _ = PaymentRecord.objects.filter(customer=customer).delete()
        return deleted

    def list(self, search='', status=None):
        customers = Customer.objects.all()
        term = (search or '').strip()
        if term:
            customers = customers.filter(Q(name__icontains=term) | Q(phone__icontains=term))
        if status:
            customers = customers.filter(status=status)
        return list(customers.order_by('name'))

    def active_customers(self):
        return list(Customer.objects.filter(status=Customer.STATUS_ACTIVE).order_by('name'))
