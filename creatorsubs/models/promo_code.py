"""
creatorsubs/models/promo_code.py

Promo codes: creator-scoped, plan-scoped discounts consumed at subscribe time.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Offset-less timestamps are read as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PromoCode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    version: int = 1
    creator_id: str
    code: str  # compared case-sensitively as stored
    discount_percent: Decimal = Field(ge=0, le=100)
    applicable_plan_ids: List[str] = Field(default_factory=list)
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    expires_at_as_utc = field_validator("expires_at")(_assume_utc)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now


class AppliedPromo(BaseModel):
    """Snapshot of a promo application stored on the subscription."""
    model_config = ConfigDict(frozen=True)

    code: str
    discount_percent: Decimal
    promo_id: str


class PriceQuote(BaseModel):
    """Result of pricing a plan with an optional promo code."""
    model_config = ConfigDict(frozen=True)

    final_price: Decimal
    applied_promo: Optional[AppliedPromo] = None


class PromoCodeCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=100)
    discount_percent: Decimal = Field(ge=0, le=100, decimal_places=2)
    applicable_plan_ids: List[str] = Field(default_factory=list)
    is_active: bool = True
    expires_at: Optional[datetime] = None

    expires_at_as_utc = field_validator("expires_at")(_assume_utc)


class PromoCodeUpdateRequest(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=100)
    discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    applicable_plan_ids: Optional[List[str]] = None
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None

    expires_at_as_utc = field_validator("expires_at")(_assume_utc)
