"""Safety plan storage."""

from crisisline.services.safety_plan.safety_plan_store import SafetyPlanStore

__all__ = ["SafetyPlanStore"]
