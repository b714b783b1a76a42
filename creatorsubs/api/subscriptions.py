"""
creatorsubs/api/subscriptions.py
Subscription API: subscribe, cancel, and subscriber/creator views.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from creatorsubs.api.deps import get_services
from creatorsubs.core.auth import get_current_user_id
from creatorsubs.core.errors import ForbiddenError, NotAuthorizedError, SubscriptionNotFoundError
from creatorsubs.features.container import ServiceContainer
from creatorsubs.models.subscription import SubscriptionCreateRequest, SubscriptionStatus

router = APIRouter(prefix="/v1/subscriptions", tags=["subscriptions"])


@router.post("", status_code=201)
def create_subscription_endpoint(
    request: SubscriptionCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Subscribe the caller to a creator's plan."""
    subscription = services.subscriptions.create_subscription(
        subscriber_id=user_id,
        creator_id=request.creator_id,
        plan_id=request.plan_id,
        promo_code=request.promo_code,
        is_bundle=request.is_bundle,
        bundle_end_date=request.bundle_end_date,
    )
    return {"data": subscription.model_dump(mode="json")}


@router.get("/me")
def list_my_subscriptions_endpoint(
    status: Optional[SubscriptionStatus] = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    subscriptions = services.subscriptions.get_subscriptions_by_subscriber(
        user_id, status.value if status else None
    )
    return {"data": [s.model_dump(mode="json") for s in subscriptions], "count": len(subscriptions)}


@router.get("/to/{creator_id}/latest")
def latest_subscription_endpoint(
    creator_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Latest subscription (any status) of the caller to creator_id."""
    subscription = services.subscriptions.get_latest_subscription_to_creator(user_id, creator_id)
    if subscription is None:
        raise SubscriptionNotFoundError("No subscription found.")
    return {"data": subscription.model_dump(mode="json")}


@router.get("/to/{creator_id}/active")
def active_subscription_endpoint(
    creator_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    subscription = services.subscriptions.get_active_subscription_to_creator(user_id, creator_id)
    if subscription is None:
        raise SubscriptionNotFoundError("No active subscription found.")
    return {"data": subscription.model_dump(mode="json")}


@router.get("/by-creator/{creator_id}")
def list_creator_subscribers_endpoint(
    creator_id: str,
    plan_id: Optional[str] = Query(None),
    status: Optional[SubscriptionStatus] = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Currently entitled subscribers; only the creator may list them."""
    if creator_id != user_id:
        raise ForbiddenError("Unauthorized to view subscribers for this creator.")
    subscribers = services.subscriptions.get_subscribers_for_creator(
        creator_id, plan_id=plan_id, status=status.value if status else None
    )
    return {"data": [s.model_dump(mode="json") for s in subscribers], "count": len(subscribers)}


@router.get("/{subscription_id}")
def get_subscription_endpoint(
    subscription_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    subscription = services.subscriptions.get_subscription(subscription_id)
    if subscription is None:
        raise SubscriptionNotFoundError("Subscription not found.")
    if user_id not in (subscription.subscriber_id, subscription.creator_id):
        raise NotAuthorizedError("User not authorized to view this subscription.")
    return {"data": subscription.model_dump(mode="json")}


@router.put("/{subscription_id}/cancel")
def cancel_subscription_endpoint(
    subscription_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    subscription = services.subscriptions.cancel_subscription(subscription_id, user_id)
    return {"data": subscription.model_dump(mode="json")}
