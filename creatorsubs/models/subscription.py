"""
creatorsubs/models/subscription.py

UserSubscription binds one subscriber to one creator's plan.

Identity is deterministic: "<subscriber_id>_<creator_id>", so each
relationship has exactly one record slot.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PENDING_PAYMENT = "pending_payment"  # reserved for payment flows
    FREE_TRIAL = "free_trial"  # reserved for payment flows


# States from which a subscriber may cancel
CANCELLABLE_STATUSES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.FREE_TRIAL.value)


class EndDateSource(str, Enum):
    """Where end_date came from."""
    PLAN_INTERVAL = "plan_interval"
    BUNDLE_INPUT = "bundle_input"
    FALLBACK = "fallback"


def subscription_id_for(subscriber_id: str, creator_id: str) -> str:
    return f"{subscriber_id}_{creator_id}"


class UserSubscription(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    version: int = 1
    subscriber_id: str
    creator_id: str
    plan_id: str
    status: SubscriptionStatus

    # Billing window; end_date None means indefinite (free)
    start_date: datetime
    end_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    is_recurring: bool = True
    is_bundle: bool = False
    will_renew: bool = True
    end_date_source: Optional[EndDateSource] = None

    # Pricing snapshot, present only when a promo was applied
    promo_code: Optional[str] = None
    promo_discount_percent: Optional[Decimal] = None
    promo_id: Optional[str] = None
    final_price: Optional[Decimal] = None

    created_at: datetime
    updated_at: datetime

    def is_entitled(self, now: datetime) -> bool:
        """Active, or cancelled but still inside the paid window."""
        if self.status == SubscriptionStatus.ACTIVE:
            return True
        return (
            self.status == SubscriptionStatus.CANCELLED
            and self.end_date is not None
            and self.end_date > now
        )


class SubscriptionCreateRequest(BaseModel):
    creator_id: str = Field(min_length=1)
    plan_id: str = Field(min_length=1)
    promo_code: Optional[str] = None
    is_bundle: bool = False
    bundle_end_date: Optional[datetime] = Field(
        default=None,
        description="End of a one-time bundle; required when is_bundle is true",
    )
