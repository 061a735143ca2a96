# milk_ledger/models.py
import uuid
from django.db import models
from django.utils import timezone


class Customer(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20)
    daily_qty = models.DecimalField(max_digits=6, decimal_places=2)
    rate = models.PositiveIntegerField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    address = models.TextField(blank=True, default='')
    tg_chat_id = models.CharField(max_length=64, blank=True, default='')
    # Editable so the "added on" date can be back-filled
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.phone})"

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def has_handle(self):
        return bool(self.tg_chat_id and self.tg_chat_id.strip())

    class Meta:
        db_table = 'customers'
        ordering = ['name']


class DeliveryRecord(models.Model):
    """One explicit decision for a customer's day. No row means pending."""
    STATUS_DELIVERED = 'delivered'
    STATUS_SKIPPED = 'skipped'
    STATUS_PENDING = 'pending'  # never stored
    STATUS_CHOICES = [
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_SKIPPED, 'Skipped'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='deliveries')
    date = models.DateField()
    qty = models.DecimalField(max_digits=6, decimal_places=2)
    rate = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['customer', 'date']
        db_table = 'deliveries'

    def __str__(self):
        return f"{self.customer.name} - {self.date} - {self.status} {self.qty}L"


class PaymentRecord(models.Model):
    """Cumulative payments of one customer for one billing month."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='payments')
    month = models.CharField(max_length=7)  # YYYY-MM
    paid_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    # Snapshot of the monthly total at the last payment, can go stale
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    last_payment_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    payment_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['customer', 'month']
        db_table = 'payments'

    def __str__(self):
        return f"{self.customer.name} - {self.month} - paid {self.paid_amount}"
