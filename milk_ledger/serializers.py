# milk_ledger/serializers.py
from rest_framework import serializers

from .models import Customer, DeliveryRecord, PaymentRecord
from .payments import PAYMENT_STATUSES


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'phone', 'daily_qty', 'rate', 'status', 'address',
                  'tg_chat_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class DeliveryRecordSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True)

    class Meta:
        model = DeliveryRecord
        fields = ['id', 'customer_id', 'customer_name', 'date', 'qty', 'rate', 'amount',
                  'status', 'created_at', 'updated_at']
        read_only_fields = fields


class PaymentRecordSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True)

    class Meta:
        model = PaymentRecord
        fields = ['id', 'customer_id', 'customer_name', 'month', 'paid_amount', 'total_amount',
                  'last_payment_amount', 'payment_date', 'created_at', 'updated_at']
        read_only_fields = fields


class DailyEntrySerializer(serializers.Serializer):
    customer = CustomerSerializer()
    date = serializers.DateField()
    status = serializers.CharField()
    qty = serializers.DecimalField(max_digits=6, decimal_places=2)
    rate = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    delivery_id = serializers.UUIDField(source='record.id', default=None)


class DaySummarySerializer(serializers.Serializer):
    date = serializers.DateField()
    delivered = serializers.IntegerField()
    skipped = serializers.IntegerField()
    pending = serializers.IntegerField()
    total_milk = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)


class MonthlyAggregateSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField(source='customer.id')
    customer_name = serializers.CharField(source='customer.name')
    month = serializers.CharField()
    total_milk = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    days_delivered = serializers.IntegerField()
    days_skipped = serializers.IntegerField()
    days_pending = serializers.IntegerField()


class PaymentSummarySerializer(serializers.Serializer):
    customer = CustomerSerializer()
    month = serializers.CharField()
    total_milk = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    days_delivered = serializers.IntegerField()
    days_skipped = serializers.IntegerField()
    status = serializers.CharField()
    payment_date = serializers.DateField(allow_null=True)


class MonthSummarySerializer(serializers.Serializer):
    month = serializers.CharField()
    total_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_milk = serializers.DecimalField(max_digits=10, decimal_places=2)
    paid_customers = serializers.IntegerField()
    pending_customers = serializers.IntegerField()


# Action inputs

class CustomerInputSerializer(serializers.Serializer):
    """Shape and column-size checks; business rules stay in the directory."""
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=20)
    daily_qty = serializers.DecimalField(max_digits=6, decimal_places=2)
    rate = serializers.IntegerField(max_value=9999)
    status = serializers.ChoiceField(choices=Customer.STATUS_CHOICES, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    tg_chat_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    created_at = serializers.DateField(required=False)


class CustomerUpdateSerializer(CustomerInputSerializer):
    customer_id = serializers.UUIDField()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name, field in self.fields.items():
            if name != 'customer_id':
                field.required = False


class DeliveryActionSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    date = serializers.DateField()
    quantity = serializers.DecimalField(max_digits=6, decimal_places=2, required=False, allow_null=True)


class ResetDeliverySerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    date = serializers.DateField()
    confirm = serializers.BooleanField(default=False)


class MarkAllPendingSerializer(serializers.Serializer):
    date = serializers.DateField()
    customer_ids = serializers.ListField(child=serializers.UUIDField(), required=False, allow_null=True)
    quantities = serializers.DictField(
        child=serializers.DecimalField(max_digits=6, decimal_places=2),
        required=False,
    )


class RecordPaymentSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    month = serializers.RegexField(r'^\d{4}-\d{2}$')
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)


class MonthSerializer(serializers.Serializer):
    month = serializers.RegexField(r'^\d{4}-\d{2}$')
    status = serializers.ChoiceField(choices=PAYMENT_STATUSES, required=False, allow_blank=True)


class DateSerializer(serializers.Serializer):
    date = serializers.DateField()


class CustomerFilterSerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.ChoiceField(choices=Customer.STATUS_CHOICES, required=False, allow_blank=True)
