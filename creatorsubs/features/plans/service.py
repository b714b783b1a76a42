"""
creatorsubs/features/plans/service.py

Plan registry: the catalog of subscription plans per creator.

Handles:
- Plan creation (id + timestamps assigned here)
- Lookup by id and by creator
- Owner-only update and delete

Price bounds are NOT checked here; they are enforced when a subscriber
subscribes, so a creator can draft a plan before pricing it.
"""

from typing import Any, Dict, List, Optional, Union

from creatorsubs.core.errors import ConflictError, ForbiddenError, PlanNotFoundError, ValidationError
from creatorsubs.core.logging import log_event
from creatorsubs.core.store import PLANS, RecordConflictError, RecordNotFoundError, RecordStore, Where
from creatorsubs.models.plan import Plan, PlanCreateRequest, PlanUpdateRequest

# Fields callers may never overwrite through an update
_IMMUTABLE_FIELDS = ("id", "version", "creator_id", "created_at", "updated_at")

# Fields an update may clear with an explicit null
_NULLABLE_FIELDS = frozenset({"description", "billing_interval", "interval_count", "features"})


class PlanRegistry:
    def __init__(self, store: RecordStore):
        self._store = store

    def create_plan(self, creator_id: str, plan_data: Union[PlanCreateRequest, Dict[str, Any]]) -> Plan:
        """
        Create a plan owned by creator_id.

        Args:
            creator_id: Verified caller identity; becomes the owner
            plan_data: Plan fields (creator_id inside the payload is ignored)

        Returns:
            The persisted Plan
        """
        request = plan_data if isinstance(plan_data, PlanCreateRequest) else PlanCreateRequest.model_validate(plan_data)
        now = self._store.now()
        fields = request.model_dump(exclude={"creator_id"})
        record = self._store.create(
            PLANS,
            {**fields, "creator_id": creator_id, "created_at": now, "updated_at": now},
        )
        plan = Plan.model_validate(record)
        log_event(
            "info",
            "plan.created",
            user_id=creator_id,
            event_type="plan.created",
            extra={"plan_id": plan.id, "price": plan.price},
        )
        return plan

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        """Get plan by ID."""
        record = self._store.get(PLANS, plan_id)
        return Plan.model_validate(record) if record else None

    def get_plans_by_creator(self, creator_id: str) -> List[Plan]:
        records = self._store.query(PLANS, [Where("creator_id", "==", creator_id)], order_by="created_at")
        return [Plan.model_validate(r) for r in records]

    def update_plan(
        self,
        plan_id: str,
        creator_id: str,
        partial_data: Union[PlanUpdateRequest, Dict[str, Any]],
    ) -> Plan:
        """
        Merge partial fields into a plan owned by creator_id.

        Raises:
            PlanNotFoundError: If the plan does not exist
            ForbiddenError: If creator_id does not own the plan
            ValidationError: If the update tries to move the plan to another creator
                or sets a required field to null
        """
        request = partial_data if isinstance(partial_data, PlanUpdateRequest) else PlanUpdateRequest.model_validate(partial_data)
        current = self._owned_plan(plan_id, creator_id)

        changes = request.model_dump(exclude_unset=True)
        new_owner = changes.get("creator_id")
        if new_owner is not None and new_owner != creator_id:
            raise ValidationError("Cannot change creator_id of a plan.")
        changes = {k: v for k, v in changes.items() if k not in _IMMUTABLE_FIELDS}
        reject_null_fields(changes, _NULLABLE_FIELDS)
        changes["updated_at"] = self._store.now()

        try:
            record = self._store.update(PLANS, plan_id, changes, expected_version=current.version)
        except RecordNotFoundError:
            raise PlanNotFoundError("Plan not found.")
        except RecordConflictError:
            raise ConflictError("Plan was modified concurrently; retry the update.")

        plan = Plan.model_validate(record)
        log_event(
            "info",
            "plan.updated",
            user_id=creator_id,
            event_type="plan.updated",
            extra={"plan_id": plan_id, "fields": sorted(k for k in changes if k != "updated_at")},
        )
        return plan

    def delete_plan(self, plan_id: str, creator_id: str) -> None:
        """
        Hard-delete a plan owned by creator_id.

        Subscriptions referencing the plan are left untouched; cancelling one
        later falls back to the fixed-length window because the plan's
        interval can no longer be read.
        """
        self._owned_plan(plan_id, creator_id)
        self._store.delete(PLANS, plan_id)
        log_event("info", "plan.deleted", user_id=creator_id, event_type="plan.deleted", extra={"plan_id": plan_id})

    def _owned_plan(self, plan_id: str, creator_id: str) -> Plan:
        plan = self.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError("Plan not found.")
        if plan.creator_id != creator_id:
            raise ForbiddenError("User is not authorized to modify this plan.")
        return plan


def reject_null_fields(changes: Dict[str, Any], nullable: frozenset) -> None:
    """Raise before any write if a required field is being set to null."""
    nulled = sorted(k for k, v in changes.items() if v is None and k not in nullable)
    if nulled:
        raise ValidationError(f"Fields cannot be null: {', '.join(nulled)}.")
