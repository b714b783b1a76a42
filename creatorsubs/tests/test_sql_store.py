"""
SQL record store tests on a throwaway SQLite file.

Covers the same contract as the in-memory store: conditional create,
version-checked writes, filtered queries, and aware UTC timestamps.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from creatorsubs.core.config import BillingPolicy
from creatorsubs.core.database import build_engine, create_all_tables, drop_all_tables
from creatorsubs.core.errors import AlreadySubscribedError
from creatorsubs.core.sql_store import SqlRecordStore
from creatorsubs.core.store import PLANS, PROMO_CODES, RecordConflictError, RecordNotFoundError, Where
from creatorsubs.features.container import ServiceContainer

UTC = timezone.utc


@pytest.fixture
def sql_store(tmp_path, clock):
    engine = build_engine(f"sqlite:///{tmp_path / 'records.db'}")
    create_all_tables(engine)
    yield SqlRecordStore(engine=engine, clock=clock)
    drop_all_tables(engine)
    engine.dispose()


def _plan_row(now, **fields):
    return {
        "creator_id": "creator-1",
        "name": "Gold",
        "price": Decimal("9.99"),
        "currency": "USD",
        "is_active": True,
        "created_at": now,
        "updated_at": now,
        **fields,
    }


class TestSqlPrimitives:
    def test_create_and_get(self, sql_store, clock):
        created = sql_store.create(PLANS, _plan_row(clock.current), record_id="p1")
        assert created["version"] == 1
        fetched = sql_store.get(PLANS, "p1")
        assert fetched["price"] == Decimal("9.99")
        assert fetched["created_at"] == clock.current
        assert fetched["created_at"].tzinfo is not None

    def test_create_duplicate_id(self, sql_store, clock):
        sql_store.create(PLANS, _plan_row(clock.current), record_id="p1")
        with pytest.raises(RecordConflictError):
            sql_store.create(PLANS, _plan_row(clock.current), record_id="p1")

    def test_versioned_update(self, sql_store, clock):
        sql_store.create(PLANS, _plan_row(clock.current), record_id="p1")
        updated = sql_store.update(PLANS, "p1", {"name": "Platinum"}, expected_version=1)
        assert updated["version"] == 2
        assert updated["name"] == "Platinum"
        with pytest.raises(RecordConflictError):
            sql_store.update(PLANS, "p1", {"name": "Stale"}, expected_version=1)

    def test_update_missing(self, sql_store):
        with pytest.raises(RecordNotFoundError):
            sql_store.update(PLANS, "missing", {"name": "x"})

    def test_unknown_field_rejected(self, sql_store, clock):
        with pytest.raises(ValueError):
            sql_store.create(PLANS, _plan_row(clock.current, colour="red"))

    def test_query_with_contains_and_limit(self, sql_store, clock):
        now = clock.current
        for rid, plans in [("a", ["p1"]), ("b", ["p1", "p2"]), ("c", ["p3"])]:
            sql_store.create(
                PROMO_CODES,
                {
                    "creator_id": "creator-1",
                    "code": "X",
                    "discount_percent": Decimal("10"),
                    "applicable_plan_ids": plans,
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                },
                record_id=rid,
            )
        rows = sql_store.query(PROMO_CODES, [Where("applicable_plan_ids", "contains", "p1")], order_by="id")
        assert [r["id"] for r in rows] == ["a", "b"]
        rows = sql_store.query(
            PROMO_CODES,
            [Where("code", "==", "X"), Where("applicable_plan_ids", "contains", "p1")],
            order_by="id",
            limit=1,
        )
        assert [r["id"] for r in rows] == ["a"]

    def test_delete(self, sql_store, clock):
        sql_store.create(PLANS, _plan_row(clock.current), record_id="p1")
        assert sql_store.delete(PLANS, "p1") is True
        assert sql_store.delete(PLANS, "p1") is False


def test_subscription_lifecycle_on_sql(sql_store, clock):
    services = ServiceContainer.build(sql_store, BillingPolicy())
    plan = services.plans.create_plan(
        "creator-1", {"name": "Gold", "price": "20.00", "billing_interval": "month", "interval_count": 1}
    )
    services.promos.create_promo_code(
        "creator-1", {"code": "SAVE25", "discount_percent": "25", "applicable_plan_ids": [plan.id]}
    )

    sub = services.subscriptions.create_subscription("fan-1", "creator-1", plan.id, promo_code="SAVE25")
    assert sub.final_price == Decimal("15.00")
    assert sub.end_date == datetime(2024, 2, 29, 12, 0, tzinfo=UTC)

    with pytest.raises(AlreadySubscribedError):
        services.subscriptions.create_subscription("fan-1", "creator-1", plan.id)

    clock.advance(days=1)
    cancelled = services.subscriptions.cancel_subscription(sub.id, "fan-1")
    assert cancelled.status == "cancelled"
    assert cancelled.next_billing_date is None
    assert [s.id for s in services.subscriptions.get_subscribers_for_creator("creator-1")] == [sub.id]

    clock.advance(days=60)
    assert services.subscriptions.get_subscribers_for_creator("creator-1") == []

    again = services.subscriptions.create_subscription("fan-1", "creator-1", plan.id)
    assert again.version == 3
    assert again.promo_code is None
    assert again.start_date == datetime(2024, 4, 1, 12, 0, tzinfo=UTC)
    assert again.end_date == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class TestMoneyPrecisionOnSql:
    @pytest.fixture
    def services(self, sql_store):
        return ServiceContainer.build(sql_store, BillingPolicy())

    def test_sub_cent_price_rejected_before_write(self, services, sql_store):
        with pytest.raises(ValueError):
            services.plans.create_plan("creator-1", {"name": "Gold", "price": "50.004"})
        assert sql_store.query(PLANS) == []

    def test_sub_cent_discount_rejected_before_write(self, services, sql_store):
        plan = services.plans.create_plan("creator-1", {"name": "Gold", "price": "20.00"})
        with pytest.raises(ValueError):
            services.promos.create_promo_code(
                "creator-1", {"code": "X", "discount_percent": "12.345", "applicable_plan_ids": [plan.id]}
            )
        assert sql_store.query(PROMO_CODES) == []

    def test_price_round_trips_exactly(self, services):
        plan = services.plans.create_plan(
            "creator-1", {"name": "Gold", "price": "50.00", "billing_interval": "month", "interval_count": 1}
        )
        assert services.plans.get_plan(plan.id).price == Decimal("50.00")
        sub = services.subscriptions.create_subscription("fan-1", "creator-1", plan.id)
        assert sub.status == "active"
