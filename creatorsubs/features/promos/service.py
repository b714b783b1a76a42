"""
creatorsubs/features/promos/service.py

Promo code registry: creators manage discount codes scoped to their own
plans; subscription creation looks codes up read-only.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from creatorsubs.core.errors import ConflictError, ForbiddenError, InvalidPlanError, PromoCodeNotFoundError
from creatorsubs.core.logging import log_event
from creatorsubs.core.store import PROMO_CODES, RecordConflictError, RecordNotFoundError, RecordStore, Where
from creatorsubs.features.plans.service import PlanRegistry, reject_null_fields
from creatorsubs.models.promo_code import PromoCode, PromoCodeCreateRequest, PromoCodeUpdateRequest

# applicable_plan_ids: null is read as an empty list
_NULLABLE_FIELDS = frozenset({"applicable_plan_ids", "expires_at"})


class PromoCodeRegistry:
    def __init__(self, store: RecordStore, plans: PlanRegistry):
        self._store = store
        self._plans = plans

    def create_promo_code(self, creator_id: str, data: Union[PromoCodeCreateRequest, Dict[str, Any]]) -> PromoCode:
        request = data if isinstance(data, PromoCodeCreateRequest) else PromoCodeCreateRequest.model_validate(data)
        self._check_plans_owned(creator_id, request.applicable_plan_ids)

        now = self._store.now()
        record = self._store.create(
            PROMO_CODES,
            {**request.model_dump(), "creator_id": creator_id, "created_at": now, "updated_at": now},
        )
        promo = PromoCode.model_validate(record)
        log_event(
            "info",
            "promo.created",
            user_id=creator_id,
            event_type="promo.created",
            extra={"promo_id": promo.id, "discount_percent": promo.discount_percent},
        )
        return promo

    def get_promo_code(self, promo_id: str) -> Optional[PromoCode]:
        record = self._store.get(PROMO_CODES, promo_id)
        return PromoCode.model_validate(record) if record else None

    def get_promo_codes_by_creator(self, creator_id: str) -> List[PromoCode]:
        records = self._store.query(
            PROMO_CODES,
            [Where("creator_id", "==", creator_id)],
            order_by="created_at",
            descending=True,
        )
        return [PromoCode.model_validate(r) for r in records]

    def update_promo_code(
        self,
        promo_id: str,
        creator_id: str,
        partial_data: Union[PromoCodeUpdateRequest, Dict[str, Any]],
    ) -> PromoCode:
        request = partial_data if isinstance(partial_data, PromoCodeUpdateRequest) else PromoCodeUpdateRequest.model_validate(partial_data)
        current = self._owned_promo(promo_id, creator_id)

        changes = request.model_dump(exclude_unset=True)
        reject_null_fields(changes, _NULLABLE_FIELDS)
        if "applicable_plan_ids" in changes:
            self._check_plans_owned(creator_id, changes["applicable_plan_ids"] or [])
            changes["applicable_plan_ids"] = changes["applicable_plan_ids"] or []
        changes["updated_at"] = self._store.now()

        try:
            record = self._store.update(PROMO_CODES, promo_id, changes, expected_version=current.version)
        except RecordNotFoundError:
            raise PromoCodeNotFoundError("Promo code not found.")
        except RecordConflictError:
            raise ConflictError("Promo code was modified concurrently; retry the update.")

        log_event("info", "promo.updated", user_id=creator_id, event_type="promo.updated", extra={"promo_id": promo_id})
        return PromoCode.model_validate(record)

    def set_promo_code_active(self, promo_id: str, creator_id: str, is_active: bool) -> PromoCode:
        return self.update_promo_code(promo_id, creator_id, {"is_active": is_active})

    def delete_promo_code(self, promo_id: str, creator_id: str) -> None:
        self._owned_promo(promo_id, creator_id)
        self._store.delete(PROMO_CODES, promo_id)
        log_event("info", "promo.deleted", user_id=creator_id, event_type="promo.deleted", extra={"promo_id": promo_id})

    def find_applicable_promo(self, code: str, plan_id: str) -> Optional[PromoCode]:
        """Active promo with this exact code that lists plan_id, if any."""
        records = self._store.query(
            PROMO_CODES,
            [
                Where("code", "==", code),
                Where("is_active", "==", True),
                Where("applicable_plan_ids", "contains", plan_id),
            ],
            limit=1,
        )
        return PromoCode.model_validate(records[0]) if records else None

    def _owned_promo(self, promo_id: str, creator_id: str) -> PromoCode:
        promo = self.get_promo_code(promo_id)
        if promo is None:
            raise PromoCodeNotFoundError("Promo code not found.")
        if promo.creator_id != creator_id:
            raise ForbiddenError("User is not authorized to modify this promo code.")
        return promo

    def _check_plans_owned(self, creator_id: str, plan_ids: Iterable[str]) -> None:
        for plan_id in plan_ids:
            plan = self._plans.get_plan(plan_id)
            if plan is None or plan.creator_id != creator_id:
                raise InvalidPlanError(f"Plan {plan_id} does not exist or does not belong to the creator.")
