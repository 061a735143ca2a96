from datetime import datetime
from decimal import Decimal

import pytest
import pytz
from django.apps import apps
from rest_framework.test import APIClient

from milk_ledger.exceptions import NotificationError
from milk_ledger.models import Customer
from milk_ledger.notifications import NotificationDispatcher
from milk_ledger.services import build_services

ADMIN_CHAT = 'admin-chat'


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every send; handles in ``failing`` raise NotificationError."""

    def __init__(self):
        self.sent = []
        self.failing = set()

    def send(self, handle, event_kind, payload):
        if handle in self.failing:
            raise NotificationError(f'{handle} unreachable', entity=handle)
        self.sent.append((handle, event_kind, payload))

    def kinds(self, handle=None):
        return [kind for h, kind, _ in self.sent if handle is None or h == handle]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def services(dispatcher):
    return build_services(dispatcher=dispatcher, admin_handle=ADMIN_CHAT, pacing_seconds=0)


@pytest.fixture
def make_customer(db):
    def _make(name='Ramesh', phone='9876543210', daily_qty='2', rate=50, **extra):
        extra.setdefault('created_at', pytz.utc.localize(datetime(2024, 1, 1)))
        return Customer.objects.create(
            name=name,
            phone=phone,
            daily_qty=Decimal(daily_qty),
            rate=rate,
            **extra,
        )
    return _make


@pytest.fixture
def api_client(services, monkeypatch):
    monkeypatch.setattr(apps.get_app_config('milk_ledger'), 'services', services)
    return APIClient()
