"""
creatorsubs/models/user.py

Creator profile fields owned by the subscription engine.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SubscriptionType(str, Enum):
    FREE = "free"
    PAID = "paid"


class CreatorProfile(BaseModel):
    """
    Default-plan selection for a creator.

    Advisory metadata for clients; the engine never enforces it. A creator
    with no selection has default_subscription_type == None, not "free".
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    version: int = 1
    display_name: Optional[str] = None
    default_subscription_plan_id: Optional[str] = None
    default_subscription_type: Optional[SubscriptionType] = None
    created_at: datetime
    updated_at: datetime


class SetDefaultPlanRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    plan_id: Optional[str] = None
    subscription_type: SubscriptionType
