"""
creatorsubs/api/plans.py
Plan API: creator-owned plan catalog and default-plan selection.
"""

from fastapi import APIRouter, Depends

from creatorsubs.api.deps import get_services
from creatorsubs.core.auth import get_current_user_id
from creatorsubs.core.errors import ForbiddenError, PlanNotFoundError, ValidationError
from creatorsubs.features.container import ServiceContainer
from creatorsubs.models.plan import PlanCreateRequest, PlanUpdateRequest
from creatorsubs.models.user import SetDefaultPlanRequest, SubscriptionType

router = APIRouter(prefix="/v1/plans", tags=["plans"])


@router.post("", status_code=201)
def create_plan_endpoint(
    request: PlanCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Create a plan owned by the caller."""
    if request.creator_id and request.creator_id != user_id:
        raise ForbiddenError("Forbidden: You can only create plans for yourself.")
    plan = services.plans.create_plan(user_id, request)
    return {"data": plan.model_dump(mode="json")}


@router.get("/creator/{creator_id}")
def list_creator_plans_endpoint(
    creator_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    plans = services.plans.get_plans_by_creator(creator_id)
    return {"data": [p.model_dump(mode="json") for p in plans], "count": len(plans)}


@router.get("/creator/{creator_id}/default")
def get_creator_default_endpoint(
    creator_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    profile = services.defaults.get_creator_profile(creator_id)
    return {"data": profile.model_dump(mode="json") if profile else None}


@router.post("/creator/set-default")
def set_default_plan_endpoint(
    request: SetDefaultPlanRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Set (or clear) the caller's default free/paid plan."""
    if request.subscription_type == SubscriptionType.PAID.value and not request.plan_id:
        raise ValidationError("Plan ID is required for paid default subscription type.", code="plan_required")
    profile = services.defaults.set_default_plan_for_creator(user_id, request.plan_id, request.subscription_type)
    return {"data": profile.model_dump(mode="json")}


@router.get("/{plan_id}")
def get_plan_endpoint(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    plan = services.plans.get_plan(plan_id)
    if plan is None:
        raise PlanNotFoundError("Plan not found.")
    return {"data": plan.model_dump(mode="json")}


@router.put("/{plan_id}")
def update_plan_endpoint(
    plan_id: str,
    request: PlanUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    plan = services.plans.update_plan(plan_id, user_id, request)
    return {"data": plan.model_dump(mode="json")}


@router.delete("/{plan_id}")
def delete_plan_endpoint(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    services.plans.delete_plan(plan_id, user_id)
    return {"data": {"plan_id": plan_id, "deleted": True}}
