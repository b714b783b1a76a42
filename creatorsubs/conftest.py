# creatorsubs/conftest.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from creatorsubs.core.config import BillingPolicy
from creatorsubs.core.store import InMemoryRecordStore
from creatorsubs.features.container import ServiceContainer

START = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock standing in for the store's server timestamp."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryRecordStore(clock=clock)


@pytest.fixture
def services(store):
    return ServiceContainer.build(store, BillingPolicy())


@pytest.fixture
def make_plan(services):
    """Factory: make_plan(creator_id, price="9.99", **fields) -> Plan."""

    def _make(creator_id: str = "creator-1", price="9.99", **fields):
        data = {
            "name": fields.pop("name", "Supporter"),
            "price": Decimal(str(price)),
            "billing_interval": fields.pop("billing_interval", "month"),
            "interval_count": fields.pop("interval_count", 1),
            **fields,
        }
        return services.plans.create_plan(creator_id, data)

    return _make


@pytest.fixture
def client(store):
    from creatorsubs.main import create_app

    return TestClient(create_app(store=store, policy=BillingPolicy()))
