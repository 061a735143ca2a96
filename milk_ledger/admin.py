# milk_ledger/admin.py
from django.contrib import admin
from .models import Customer, DeliveryRecord, PaymentRecord

@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'daily_qty', 'rate', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'phone']
    readonly_fields = ['id', 'updated_at']

@admin.register(DeliveryRecord)
class DeliveryRecordAdmin(admin.ModelAdmin):
    list_display = ['customer', 'date', 'qty', 'rate', 'amount', 'status']
    list_filter = ['status', 'date']
    search_fields = ['customer__name', 'customer__phone']
    readonly_fields = ['id', 'rate', 'amount', 'created_at', 'updated_at']

@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ['customer', 'month', 'paid_amount', 'total_amount', 'payment_date']
    list_filter = ['month']
    search_fields = ['customer__name', 'customer__phone']
    readonly_fields = ['id', 'paid_amount', 'last_payment_amount', 'created_at', 'updated_at']
