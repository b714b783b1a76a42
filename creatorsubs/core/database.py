"""
SQL schema and engine for SqlRecordStore.

One table per record-store collection. Every table carries the store's
integer `version` column; timestamps are stored as UTC.
"""
import os
from datetime import timezone
from typing import Optional

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Numeric, Index, true, false
from sqlalchemy.engine import Engine
from sqlalchemy.types import TypeDecorator

from creatorsubs.core.config import settings

metadata = MetaData()

# Pool sizing for server databases (ignored for SQLite)
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600

_engine: Optional[Engine] = None


class UTCDateTime(TypeDecorator):
    """DateTime that is always written and read back as aware UTC.

    SQLite keeps no offset, so naive values coming back are tagged UTC.
    """
    impl = DateTime
    cache_ok = True

    def __init__(self):
        super().__init__(timezone=True)

    @staticmethod
    def _as_utc(value):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_bind_param(self, value, dialect):
        return self._as_utc(value)

    def process_result_value(self, value, dialect):
        return self._as_utc(value)


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins over DATABASE_URL so test runs never touch real data."""
    return os.getenv("TEST_DATABASE_URL") or settings.TEST_DATABASE_URL or settings.DATABASE_URL


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # Shared across request threads and the concurrency tests
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
    )


def get_engine() -> Engine:
    """Process-wide engine, built on first use from the configured URL."""
    global _engine
    if _engine is None:
        url = get_database_url()
        if not url:
            raise ValueError("RECORD_STORE=sql needs DATABASE_URL (or TEST_DATABASE_URL) to be set.")
        _engine = build_engine(url)
    return _engine


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create missing tables; existing ones are left as they are."""
    metadata.create_all(bind=engine or get_engine())


def drop_all_tables(engine: Optional[Engine] = None) -> None:
    """Drop every table. Tests only."""
    metadata.drop_all(bind=engine or get_engine())


# Creator plans
plans = Table(
    'plans',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('creator_id', String(100), nullable=False, index=True),
    Column('name', Text, nullable=False),
    Column('description', Text, nullable=True),
    Column('price', Numeric(10, 2), nullable=False),
    Column('currency', String(10), nullable=False, server_default='USD'),
    Column('billing_interval', String(10), nullable=True),  # day, week, month, year
    Column('interval_count', Integer, nullable=True),
    Column('features', JSON, nullable=True),
    Column('is_active', Boolean, nullable=False, server_default=true()),
    Column('created_at', UTCDateTime(), nullable=False),
    Column('updated_at', UTCDateTime(), nullable=False),
    Index('idx_plans_creator_active', 'creator_id', 'is_active'),
)

# Promo codes (creator-scoped, plan-scoped)
promo_codes = Table(
    'promo_codes',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('creator_id', String(100), nullable=False, index=True),
    Column('code', String(100), nullable=False),
    Column('discount_percent', Numeric(5, 2), nullable=False),
    Column('applicable_plan_ids', JSON, nullable=False),
    Column('is_active', Boolean, nullable=False, server_default=true()),
    Column('expires_at', UTCDateTime(), nullable=True),
    Column('created_at', UTCDateTime(), nullable=False),
    Column('updated_at', UTCDateTime(), nullable=False),
    # Lookup pattern at subscription time: (code, is_active)
    Index('idx_promo_codes_code_active', 'code', 'is_active'),
    Index('idx_promo_codes_creator_created', 'creator_id', 'created_at'),
)

# Subscriber <-> creator binding, keyed "<subscriber_id>_<creator_id>"
user_subscriptions = Table(
    'user_subscriptions',
    metadata,
    Column('id', String(210), primary_key=True),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('subscriber_id', String(100), nullable=False, index=True),
    Column('creator_id', String(100), nullable=False, index=True),
    Column('plan_id', String(100), nullable=False, index=True),
    Column('status', String(50), nullable=False, index=True),
    Column('start_date', UTCDateTime(), nullable=False),
    Column('end_date', UTCDateTime(), nullable=True),
    Column('next_billing_date', UTCDateTime(), nullable=True),
    Column('is_recurring', Boolean, nullable=False, server_default=true()),
    Column('is_bundle', Boolean, nullable=False, server_default=false()),
    Column('will_renew', Boolean, nullable=False, server_default=true()),
    Column('promo_code', String(100), nullable=True),
    Column('promo_discount_percent', Numeric(5, 2), nullable=True),
    Column('promo_id', String(100), nullable=True),
    Column('final_price', Numeric(10, 2), nullable=True),
    Column('end_date_source', String(20), nullable=True),
    Column('created_at', UTCDateTime(), nullable=False),
    Column('updated_at', UTCDateTime(), nullable=False),
    # Active-subscription check: (subscriber_id, creator_id, status)
    Index('idx_user_subscriptions_pair_status', 'subscriber_id', 'creator_id', 'status'),
    # Subscriber listing for a creator, newest first
    Index('idx_user_subscriptions_creator_created', 'creator_id', 'created_at'),
)

# Creator/user profile fields owned by this service
app_users = Table(
    'app_users',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('display_name', Text, nullable=True),
    Column('default_subscription_plan_id', String(100), nullable=True),
    Column('default_subscription_type', String(10), nullable=True),  # free | paid
    Column('created_at', UTCDateTime(), nullable=False),
    Column('updated_at', UTCDateTime(), nullable=False),
)


# Record store collection -> table
COLLECTION_TABLES = {
    "plans": plans,
    "promo_codes": promo_codes,
    "user_subscriptions": user_subscriptions,
    "users": app_users,
}
