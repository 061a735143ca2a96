from datetime import date

import pytest

from milk_ledger.models import Customer, DeliveryRecord, PaymentRecord


@pytest.mark.django_db
def test_customer_crud(api_client):
    response = api_client.post('/api/customers/', {
        'name': 'Sita', 'phone': '9000000001', 'daily_qty': '1.5', 'rate': 60,
    }, format='json')
    assert response.status_code == 201
    customer_id = response.data['id']
    assert response.data['status'] == 'active'

    response = api_client.get('/api/customers/?search=sit')
    assert [c['name'] for c in response.data] == ['Sita']

    response = api_client.patch(f'/api/customers/{customer_id}/', {'rate': 65}, format='json')
    assert response.status_code == 200
    assert response.data['rate'] == 65

    response = api_client.delete(f'/api/customers/{customer_id}/')
    assert response.status_code == 200
    assert not Customer.objects.exists()


@pytest.mark.django_db
def test_customer_validation_error(api_client):
    response = api_client.post('/api/customers/', {'name': 'Sita', 'phone': '1', 'daily_qty': 0, 'rate': 60},
                               format='json')

    assert response.status_code == 400
    assert 'error' in response.data
    assert not Customer.objects.exists()


@pytest.mark.django_db
def test_unknown_customer_is_404(api_client):
    response = api_client.delete('/api/customers/00000000-0000-0000-0000-000000000000/')

    assert response.status_code == 404


@pytest.mark.django_db
def test_delete_with_failed_cascade_is_409(api_client, services, make_customer, monkeypatch):
    customer = make_customer()

    def broken(_customer):
        raise RuntimeError('boom')

    monkeypatch.setattr(services.directory, '_purge_deliveries', broken)

    response = api_client.delete(f'/api/customers/{customer.id}/')

    assert response.status_code == 409
    assert response.data['failed_collections'] == ['deliveries']
    assert Customer.objects.filter(id=customer.id).exists()


@pytest.mark.django_db
def test_delivery_flow(api_client, make_customer):
    customer = make_customer(daily_qty='2', rate=50)

    response = api_client.post('/api/deliveries/delivered/', {
        'customer_id': str(customer.id), 'date': '2025-03-10', 'quantity': '3',
    }, format='json')
    assert response.status_code == 200
    assert response.data['delivery']['amount'] == '150.00'

    response = api_client.get('/api/deliveries/?date=2025-03-10')
    assert response.data['summary']['delivered'] == 1
    assert response.data['entries'][0]['status'] == 'delivered'

    response = api_client.post('/api/deliveries/reset/', {
        'customer_id': str(customer.id), 'date': '2025-03-10',
    }, format='json')
    assert response.status_code == 400
    assert DeliveryRecord.objects.count() == 1

    response = api_client.post('/api/deliveries/reset/', {
        'customer_id': str(customer.id), 'date': '2025-03-10', 'confirm': True,
    }, format='json')
    assert response.status_code == 200

    response = api_client.get('/api/deliveries/?date=2025-03-10')
    entry = response.data['entries'][0]
    assert entry['status'] == 'pending'
    assert entry['qty'] == '2.00'
    assert entry['delivery_id'] is None


@pytest.mark.django_db
def test_deliveries_require_valid_date(api_client):
    assert api_client.get('/api/deliveries/').status_code == 400
    assert api_client.get('/api/deliveries/?date=10-03-2025').status_code == 400


@pytest.mark.django_db
def test_mark_all_and_payment_flow(api_client, make_customer):
    a = make_customer(name='A', daily_qty='2', rate=50)
    make_customer(name='B', daily_qty='1', rate=50)

    response = api_client.post('/api/deliveries/mark-all/', {'date': '2025-03-01'}, format='json')
    assert response.data['success_count'] == 2

    response = api_client.post('/api/payments/record/', {
        'customer_id': str(a.id), 'month': '2025-03', 'amount': '100',
    }, format='json')
    assert response.status_code == 201
    assert response.data['status'] == 'paid'
    assert response.data['completed'] is True

    response = api_client.get('/api/payments/?month=2025-03&status=pending')
    assert [row['customer']['name'] for row in response.data['customers']] == ['B']
    assert response.data['summary']['paid_customers'] == 1

    response = api_client.get('/api/billing/monthly/?month=2025-03')
    totals = {row['customer_name']: row['total_amount'] for row in response.data}
    assert totals == {'A': '100.00', 'B': '50.00'}


@pytest.mark.django_db
def test_payment_rejects_non_positive_amount(api_client, make_customer):
    customer = make_customer()

    response = api_client.post('/api/payments/record/', {
        'customer_id': str(customer.id), 'month': '2025-03', 'amount': '0',
    }, format='json')

    assert response.status_code == 400
    assert not PaymentRecord.objects.exists()


@pytest.mark.django_db
def test_payment_rejects_bad_month(api_client, make_customer):
    customer = make_customer()

    response = api_client.post('/api/payments/record/', {
        'customer_id': str(customer.id), 'month': '2025-13', 'amount': '10',
    }, format='json')

    assert response.status_code == 400


@pytest.mark.django_db
def test_send_reminders_endpoint(api_client, dispatcher, make_customer):
    make_customer(name='A', tg_chat_id='a')

    response = api_client.post('/api/payments/reminders/', {'month': '2025-03'}, format='json')

    assert response.status_code == 200
    assert response.data['sent_count'] == 1
    assert dispatcher.kinds('a') == ['payment-reminder']


@pytest.mark.django_db
def test_action_endpoint_dispatches_named_actions(api_client, make_customer):
    customer = make_customer()

    response = api_client.post('/api/actions/', {
        'action': 'delivery.mark_skipped',
        'params': {'customer_id': str(customer.id), 'date': '2025-03-10'},
    }, format='json')

    assert response.status_code == 200
    assert response.data['delivery']['status'] == 'skipped'
    assert DeliveryRecord.objects.get(customer=customer).date == date(2025, 3, 10)


@pytest.mark.django_db
def test_action_endpoint_rejects_unknown_action(api_client):
    response = api_client.post('/api/actions/', {'action': 'customer.explode'}, format='json')

    assert response.status_code == 400
    assert 'customer.create' in response.data['actions']


@pytest.mark.django_db
@pytest.mark.parametrize('daily_qty', ['123456789', '1.234'])
def test_create_customer_rejects_oversized_quantity_before_writing(api_client, daily_qty):
    response = api_client.post('/api/customers/', {
        'name': 'A', 'phone': '1', 'daily_qty': daily_qty, 'rate': 50,
    }, format='json')

    assert response.status_code == 400
    assert 'daily_qty' in response.data
    assert not Customer.objects.exists()


@pytest.mark.django_db
def test_update_customer_rejects_oversized_quantity(api_client, make_customer):
    customer = make_customer(daily_qty='2')

    response = api_client.patch(f'/api/customers/{customer.id}/', {'daily_qty': '99999'}, format='json')

    assert response.status_code == 400
    customer.refresh_from_db()
    assert customer.daily_qty == 2
