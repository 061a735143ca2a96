# milk_ledger/urls.py
from django.urls import path
from . import views

urlpatterns = [
    # Customer directory
    path('customers/', views.customers, name='customers'),
    path('customers/<uuid:customer_id>/', views.customer_detail, name='customer_detail'),

    # Delivery ledger
    path('deliveries/', views.deliveries_for_date, name='deliveries_for_date'),
    path('deliveries/delivered/', views.mark_delivered, name='mark_delivered'),
    path('deliveries/skipped/', views.mark_skipped, name='mark_skipped'),
    path('deliveries/reset/', views.reset_delivery, name='reset_delivery'),
    path('deliveries/mark-all/', views.mark_all_pending, name='mark_all_pending'),

    # Billing and payments
    path('billing/monthly/', views.monthly_totals, name='monthly_totals'),
    path('payments/', views.payment_ledger, name='payment_ledger'),
    path('payments/record/', views.record_payment, name='record_payment'),
    path('payments/reminders/', views.send_reminders, name='send_reminders'),

    # UI action dispatch
    path('actions/', views.action, name='action'),
]
