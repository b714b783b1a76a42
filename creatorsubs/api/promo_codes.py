"""
creatorsubs/api/promo_codes.py
Promo code API: the caller manages their own codes.
"""

from fastapi import APIRouter, Depends

from creatorsubs.api.deps import get_services
from creatorsubs.core.auth import get_current_user_id
from creatorsubs.core.errors import ForbiddenError, PromoCodeNotFoundError
from creatorsubs.features.container import ServiceContainer
from creatorsubs.models.promo_code import PromoCodeCreateRequest, PromoCodeUpdateRequest

router = APIRouter(prefix="/v1/promo-codes", tags=["promo-codes"])


@router.post("", status_code=201)
def create_promo_code_endpoint(
    request: PromoCodeCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    promo = services.promos.create_promo_code(user_id, request)
    return {"data": promo.model_dump(mode="json")}


@router.get("")
def list_promo_codes_endpoint(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    promos = services.promos.get_promo_codes_by_creator(user_id)
    return {"data": [p.model_dump(mode="json") for p in promos], "count": len(promos)}


@router.get("/{promo_id}")
def get_promo_code_endpoint(
    promo_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    promo = services.promos.get_promo_code(promo_id)
    if promo is None:
        raise PromoCodeNotFoundError("Promo code not found.")
    if promo.creator_id != user_id:
        raise ForbiddenError("Forbidden: You do not own this promo code.")
    return {"data": promo.model_dump(mode="json")}


@router.put("/{promo_id}")
def update_promo_code_endpoint(
    promo_id: str,
    request: PromoCodeUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    promo = services.promos.update_promo_code(promo_id, user_id, request)
    return {"data": promo.model_dump(mode="json")}


@router.delete("/{promo_id}")
def delete_promo_code_endpoint(
    promo_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    services.promos.delete_promo_code(promo_id, user_id)
    return {"data": {"promo_id": promo_id, "deleted": True}}
