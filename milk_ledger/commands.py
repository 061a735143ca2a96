# milk_ledger/commands.py
"""Action table mapping UI actions to ledger operations.

Each action names an input serializer and a handler taking the services and
the validated data. Handlers return plain response data; ledger errors are
left to the caller.
"""
from .exceptions import ValidationError
from .serializers import (
    CustomerFilterSerializer,
    CustomerInputSerializer,
    CustomerSerializer,
    CustomerUpdateSerializer,
    DailyEntrySerializer,
    DateSerializer,
    DaySummarySerializer,
    DeliveryActionSerializer,
    DeliveryRecordSerializer,
    MarkAllPendingSerializer,
    MonthlyAggregateSerializer,
    MonthSerializer,
    MonthSummarySerializer,
    PaymentRecordSerializer,
    PaymentSummarySerializer,
    RecordPaymentSerializer,
    ResetDeliverySerializer,
)


def _customer_id(data):
    customer_id = data.get('customer_id') or data.get('id')
    if not customer_id:
        raise ValidationError('customer_id is required', entity='customer_id')
    return customer_id


def _customer_fields(data):
    return {k: v for k, v in data.items() if k not in ('customer_id', 'id')}


def _delivery_result(result):
    return {
        'delivery': DeliveryRecordSerializer(result.record).data,
        'created': result.created,
        'customer_notified': result.customer_notified,
        'admin_notified': result.admin_notified,
    }


def _bulk_result(result):
    return {
        'success_count': result.success_count,
        'failure_count': result.failure_count,
        'succeeded': result.succeeded,
        'failed': result.failed,
    }


def create_customer(services, data):
    return CustomerSerializer(services.directory.create(dict(data))).data


def update_customer(services, data):
    customer = services.directory.update(_customer_id(data), _customer_fields(data))
    return CustomerSerializer(customer).data


def delete_customer(services, data):
    removed = services.directory.delete(_customer_id(data))
    return {'message': 'Customer deleted successfully', 'removed': removed}


def list_customers(services, data):
    customers = services.directory.list(search=data.get('search', ''), status=data.get('status') or None)
    return CustomerSerializer(customers, many=True).data


def mark_delivered(services, data):
    result = services.deliveries.record_delivered(data['customer_id'], data['date'], data.get('quantity'))
    return _delivery_result(result)


def mark_skipped(services, data):
    result = services.deliveries.record_skipped(data['customer_id'], data['date'])
    return _delivery_result(result)


def reset_delivery(services, data):
    services.deliveries.reset(data['customer_id'], data['date'], confirmed=data['confirm'])
    return {'message': 'Delivery reset successfully'}


def mark_all_pending(services, data):
    result = services.deliveries.mark_all_pending(
        data['date'],
        customer_ids=data.get('customer_ids'),
        quantities=data.get('quantities'),
    )
    return _bulk_result(result)


def deliveries_for_date(services, data):
    entries = services.deliveries.for_date(data['date'])
    return {
        'date': data['date'],
        'summary': DaySummarySerializer(services.deliveries.day_summary(data['date'])).data,
        'entries': DailyEntrySerializer(entries, many=True).data,
    }


def monthly_totals(services, data):
    aggregates = services.aggregator.for_month(data['month'])
    return MonthlyAggregateSerializer(list(aggregates.values()), many=True).data


def record_payment(services, data):
    result = services.payments.record_payment(data['customer_id'], data['month'], data['amount'])
    return {
        'payment': PaymentRecordSerializer(result.record).data,
        'status': result.status,
        'completed': result.completed,
        'notified': result.recorded_notified,
    }


def payment_ledger(services, data):
    rows = services.payments.ledger(data['month'], status=data.get('status') or None)
    return {
        'month': data['month'],
        'summary': MonthSummarySerializer(services.payments.month_summary(data['month'])).data,
        'customers': PaymentSummarySerializer(rows, many=True).data,
    }


def send_reminders(services, data):
    report = services.payments.send_reminders(data['month'])
    return {
        'month': report.month,
        'due_date': report.due_date,
        'sent_count': report.sent_count,
        'failed_count': report.failed_count,
        'sent': report.sent,
        'failed': report.failed,
    }


ACTIONS = {
    'customer.create': (CustomerInputSerializer, create_customer),
    'customer.update': (CustomerUpdateSerializer, update_customer),
    'customer.delete': (None, delete_customer),
    'customer.list': (CustomerFilterSerializer, list_customers),
    'delivery.mark_delivered': (DeliveryActionSerializer, mark_delivered),
    'delivery.mark_skipped': (DeliveryActionSerializer, mark_skipped),
    'delivery.reset': (ResetDeliverySerializer, reset_delivery),
    'delivery.mark_all_pending': (MarkAllPendingSerializer, mark_all_pending),
    'delivery.for_date': (DateSerializer, deliveries_for_date),
    'billing.monthly_totals': (MonthSerializer, monthly_totals),
    'payment.record': (RecordPaymentSerializer, record_payment),
    'payment.ledger': (MonthSerializer, payment_ledger),
    'payment.send_reminders': (MonthSerializer, send_reminders),
}


def dispatch(services, action, data):
    """Validate ``data`` for ``action`` and run it.

    Raises KeyError for an unknown action and DRF's ValidationError when the
    input does not match the action's serializer.
    """
    input_serializer, handler = ACTIONS[action]
    if input_serializer is not None:
        serializer = input_serializer(data=data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
    return handler(services, data)

