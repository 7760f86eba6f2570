"""
Safety Plan Endpoints

PRIVACY: Safety plans contain personal crisis information. Plan
contents are never logged.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field

from crisisline.api.dependencies import get_container, ok
from crisisline.domain.exceptions import NotFoundError, ValidationError
from crisisline.services.container import ServiceContainer

router = APIRouter()


class CreatePlanRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Plan owner")


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a safety plan")
async def create_plan(
    request: CreatePlanRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    plan = await container.safety_plans.create_plan(request.user_id)
    return ok(plan.to_dict())


@router.get("", summary="Active safety plan for a user")
async def get_plan_for_user(
    user_id: Optional[str] = Query(None),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    if not user_id:
        raise ValidationError("user_id is required")
    plan = await container.safety_plans.get_plan(user_id)
    if plan is None:
        raise NotFoundError("SafetyPlan", user_id)
    return ok(plan.to_dict())


@router.get("/{plan_id}", summary="Get a safety plan")
async def get_plan(
    plan_id: str,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    plan = await container.safety_plans.get_plan_by_id(plan_id)
    return ok(plan.to_dict())


@router.patch("/{plan_id}", summary="Update safety plan sections")
async def update_plan(
    plan_id: str,
    partial_update: dict[str, Any] = Body(...),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """
    Apply a partial update.

    Only the sections present in the body change; completion is
    recomputed.
    """
    plan = await container.safety_plans.update_plan(plan_id, partial_update)
    return ok(plan.to_dict())


@router.post("/users/{user_id}/supersede", summary="Replace a user's plan with a new one")
async def supersede_plan(
    user_id: str,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    plan = await container.safety_plans.supersede_plan(user_id)
    return ok(plan.to_dict())
