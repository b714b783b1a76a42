"""
creatorsubs/models/plan.py

Plan: a priced offer a creator makes to subscribers.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BillingInterval(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class Plan(BaseModel):
    """
    Plan owned by a creator.

    price == 0 means free. A paid plan needs billing_interval and
    interval_count to be subscribable as a recurring plan; without them it
    can still be consumed as a one-time bundle.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    version: int = 1
    creator_id: str
    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    currency: str = "USD"
    billing_interval: Optional[BillingInterval] = None
    interval_count: Optional[int] = Field(default=None, ge=1)
    features: Optional[List[str]] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @property
    def has_billing_interval(self) -> bool:
        return bool(self.billing_interval and self.interval_count)


class PlanCreateRequest(BaseModel):
    """Fields a creator supplies when defining a plan."""
    model_config = ConfigDict(use_enum_values=True)

    creator_id: Optional[str] = Field(default=None, description="Must match the caller when given")
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=10)
    billing_interval: Optional[BillingInterval] = None
    interval_count: Optional[int] = Field(default=None, ge=1)
    features: Optional[List[str]] = None
    is_active: bool = True


class PlanUpdateRequest(BaseModel):
    """Partial plan update; only fields explicitly set are merged."""
    model_config = ConfigDict(use_enum_values=True)

    creator_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=10)
    billing_interval: Optional[BillingInterval] = None
    interval_count: Optional[int] = Field(default=None, ge=1)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None
