"""
creatorsubs/features/defaults/service.py

Default-plan selection for creators.

The selection is advisory metadata stored on the creator's user record;
nothing else in the engine reads it.
"""

from typing import Optional, Union

from creatorsubs.core.errors import InvalidPlanError, TypeMismatchError, ValidationError
from creatorsubs.core.logging import log_event
from creatorsubs.core.store import USERS, RecordConflictError, RecordStore
from creatorsubs.features.plans.service import PlanRegistry
from creatorsubs.models.user import CreatorProfile, SubscriptionType


class DefaultPlanSelector:
    def __init__(self, store: RecordStore, plans: PlanRegistry):
        self._store = store
        self._plans = plans

    def set_default_plan_for_creator(
        self,
        creator_id: str,
        plan_id: Optional[str],
        subscription_type: Union[SubscriptionType, str],
    ) -> CreatorProfile:
        """
        Record creator_id's default plan (or clear it with plan_id=None).

        Raises:
            ValidationError: subscription_type is not "free" or "paid"
            InvalidPlanError: plan missing or owned by someone else
            TypeMismatchError: free default with a priced plan, or paid default with a free plan
        """
        try:
            kind = SubscriptionType(subscription_type)
        except ValueError:
            raise ValidationError("Invalid subscription type. Must be 'free' or 'paid'.")

        if plan_id:
            plan = self._plans.get_plan(plan_id)
            if plan is None or plan.creator_id != creator_id:
                raise InvalidPlanError("Invalid planId or plan does not belong to the creator.")
            if kind == SubscriptionType.FREE and plan.price != 0:
                raise TypeMismatchError("Cannot set a paid plan as default for type 'free'.")
            if kind == SubscriptionType.PAID and plan.price == 0:
                raise TypeMismatchError("Cannot set a free plan as default for type 'paid'.")

        now = self._store.now()
        changes = {
            "default_subscription_plan_id": plan_id or None,
            "default_subscription_type": kind.value,
            "updated_at": now,
        }
        record = self._upsert(creator_id, changes, now)

        log_event(
            "info",
            "creator.default_plan_set",
            user_id=creator_id,
            event_type="creator.default_plan_set",
            extra={"plan_id": plan_id, "subscription_type": kind.value},
        )
        return CreatorProfile.model_validate(record)

    def get_creator_profile(self, creator_id: str) -> Optional[CreatorProfile]:
        record = self._store.get(USERS, creator_id)
        return CreatorProfile.model_validate(record) if record else None

    def _upsert(self, creator_id: str, changes: dict, now):
        if self._store.get(USERS, creator_id) is None:
            try:
                return self._store.create(USERS, {**changes, "created_at": now}, record_id=creator_id)
            except RecordConflictError:
                pass  # created concurrently; fall through to update
        return self._store.update(USERS, creator_id, changes)
