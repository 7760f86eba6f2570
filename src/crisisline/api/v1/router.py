"""
API v1 Router

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter

from crisisline.api.v1.endpoints.assessments import router as assessments_router
from crisisline.api.v1.endpoints.escalations import router as escalations_router
from crisisline.api.v1.endpoints.health import router as health_router
from crisisline.api.v1.endpoints.resources import router as resources_router
from crisisline.api.v1.endpoints.safety_plans import router as safety_plans_router
from crisisline.api.v1.endpoints.sms import router as sms_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["Health"])
api_router.include_router(sms_router, prefix="/sms", tags=["SMS"])
api_router.include_router(assessments_router, prefix="/assessments", tags=["Assessments"])
api_router.include_router(escalations_router, prefix="/escalations", tags=["Escalations"])
api_router.include_router(resources_router, prefix="/resources", tags=["Resources"])
api_router.include_router(safety_plans_router, prefix="/safety-plans", tags=["Safety Plans"])
