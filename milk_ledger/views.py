# milk_ledger/views.py
import logging

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .commands import ACTIONS, dispatch
from .exceptions import CascadeIncompleteError, LedgerError, NotFoundError
from .services import get_services

logger = logging.getLogger(__name__)


def _payload(request, **extra):
    data = request.data
    data = data.dict() if hasattr(data, 'dict') else dict(data)
    data.update(extra)
    return data


def _query(request, *names):
    return {name: request.GET.get(name) for name in names if request.GET.get(name) is not None}


def _error_status(error):
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, CascadeIncompleteError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def run_action(action, data, success_status=status.HTTP_200_OK):
    """Run a ledger action and translate ledger errors into responses."""
    try:
        result = dispatch(get_services(), action, data)
    except LedgerError as e:
        logger.warning(f"{action} failed: {e.message}")
        return Response(e.as_dict(), status=_error_status(e))
    return Response(result, status=success_status)


# Customers
@api_view(['GET', 'POST'])
def customers(request):
    if request.method == 'GET':
        return run_action('customer.list', _query(request, 'search', 'status'))
    return run_action('customer.create', _payload(request), success_status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
def customer_detail(request, customer_id):
    if request.method == 'DELETE':
        return run_action('customer.delete', {'customer_id': str(customer_id)})
    return run_action('customer.update', _payload(request, customer_id=str(customer_id)))


# Deliveries
@api_view(['GET'])
def deliveries_for_date(request):
    """Effective delivery state of every active customer for ?date=YYYY-MM-DD"""
    if not request.GET.get('date'):
        return Response({'error': 'Date parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
    return run_action('delivery.for_date', _query(request, 'date'))


@api_view(['POST'])
def mark_delivered(request):
    return run_action('delivery.mark_delivered', _payload(request))


@api_view(['POST'])
def mark_skipped(request):
    return run_action('delivery.mark_skipped', _payload(request))


@api_view(['POST'])
def reset_delivery(request):
    return run_action('delivery.reset', _payload(request))


@api_view(['POST'])
def mark_all_pending(request):
    return run_action('delivery.mark_all_pending', _payload(request))


# Billing
@api_view(['GET'])
def monthly_totals(request):
    if not request.GET.get('month'):
        return Response({'error': 'Month parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
    return run_action('billing.monthly_totals', _query(request, 'month'))


@api_view(['GET'])
def payment_ledger(request):
    if not request.GET.get('month'):
        return Response({'error': 'Month parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
    return run_action('payment.ledger', _query(request, 'month', 'status'))


@api_view(['POST'])
def record_payment(request):
    return run_action('payment.record', _payload(request), success_status=status.HTTP_201_CREATED)


@api_view(['POST'])
def send_reminders(request):
    return run_action('payment.send_reminders', _payload(request))


# Generic action endpoint for UI clients
@api_view(['POST'])
def action(request):
    name = request.data.get('action')
    if name not in ACTIONS:
        return Response(
            {'error': f'Unknown action: {name}', 'actions': sorted(ACTIONS)},
            status=status.HTTP_400_BAD_REQUEST,
        )
    params = request.data.get('params') or {}
    if not isinstance(params, dict):
        return Response({'error': 'params must be an object'}, status=status.HTTP_400_BAD_REQUEST)
    return run_action(name, params)
