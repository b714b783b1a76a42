"""
creatorsubs/features/subscriptions/billing.py

Billing-window arithmetic.

Month and year steps are calendar-aware: adding one month to Jan 31 lands
on the last day of February rather than spilling into March. Day and week
steps add fixed day counts.
"""

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from creatorsubs.models.plan import BillingInterval, Plan


def add_interval(start: datetime, interval: str, count: int) -> datetime:
    """Return start advanced by count billing intervals."""
    if count < 1:
        raise ValueError(f"interval count must be positive, got {count}")
    step = BillingInterval(interval)
    if step == BillingInterval.DAY:
        return start + timedelta(days=count)
    if step == BillingInterval.WEEK:
        return start + timedelta(weeks=count)
    if step == BillingInterval.MONTH:
        return start + relativedelta(months=count)
    return start + relativedelta(years=count)


def plan_period_end(plan: Optional[Plan], start: datetime) -> Optional[datetime]:
    """End of one billing period of plan starting at start, or None if the
    plan is missing or carries no interval data."""
    if plan is None or not plan.has_billing_interval:
        return None
    return add_interval(start, plan.billing_interval, plan.interval_count)
