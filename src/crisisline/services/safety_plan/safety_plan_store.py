"""
Safety Plan Store

Session-scoped storage for user safety plans.

PRIVACY: Safety plans contain warning signs and personal contacts.
Never log plan content, only identifiers and completion.
"""

from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from crisisline.domain.exceptions import ConflictError, NotFoundError, ValidationError
from crisisline.domain.models.safety_plan import (
    CopingStrategy,
    EmergencyPlan,
    ProfessionalContact,
    REVIEW_FREQUENCIES,
    ReviewSchedule,
    SafetyPlan,
    SupportContact,
)
from crisisline.infrastructure.concurrency import KeyedLock
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


def _build(cls: type, value: Any) -> Any:
    if isinstance(value, cls):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError(f"Expected an object for {cls.__name__}")
    try:
        return cls(**value)
    except TypeError as e:
        raise ValidationError(f"Invalid {cls.__name__}: {e}") from None


def _coping_strategies(value: Any, plan: SafetyPlan) -> list[CopingStrategy]:
    return [
        CopingStrategy(description=item) if isinstance(item, str) else _build(CopingStrategy, item)
        for item in _as_list(value, "coping_strategies")
    ]


def _support_contacts(value: Any, plan: SafetyPlan) -> list[SupportContact]:
    return [_build(SupportContact, item) for item in _as_list(value, "support_contacts")]


def _professional_contacts(value: Any, plan: SafetyPlan) -> list[ProfessionalContact]:
    return [_build(ProfessionalContact, item) for item in _as_list(value, "professional_contacts")]


def _warning_signs(value: Any, plan: SafetyPlan) -> list[str]:
    return [str(item) for item in _as_list(value, "warning_signs")]


def _emergency_plan(value: Any, plan: SafetyPlan) -> EmergencyPlan:
    if isinstance(value, EmergencyPlan):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError("Expected an object for emergency_plan")
    known = {f.name for f in fields(EmergencyPlan)}
    unknown = set(value) - known
    if unknown:
        raise ValidationError(f"Unknown emergency_plan fields: {', '.join(sorted(unknown))}")
    return replace(plan.emergency_plan, **{
        name: [str(item) for item in _as_list(items, f"emergency_plan.{name}")]
        for name, items in value.items()
    })


def _review_schedule(value: Any, plan: SafetyPlan) -> ReviewSchedule:
    if isinstance(value, ReviewSchedule):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError("Expected an object for review_schedule")
    changes = dict(value)

    if "frequency" in changes and changes["frequency"] not in REVIEW_FREQUENCIES:
        raise ValidationError(
            f"review_schedule.frequency must be one of: {', '.join(REVIEW_FREQUENCIES)}"
        )

    if "next_review_date" in changes:
        next_review = changes["next_review_date"]
        if isinstance(next_review, str):
            try:
                next_review = datetime.fromisoformat(next_review)
            except ValueError:
                raise ValidationError(f"Invalid next_review_date: {next_review!r}") from None
        elif not isinstance(next_review, datetime):
            raise ValidationError("review_schedule.next_review_date must be an ISO 8601 string")
        if next_review.tzinfo is None:
            next_review = next_review.replace(tzinfo=timezone.utc)
        changes["next_review_date"] = next_review

    if "review_reminders" in changes and not isinstance(changes["review_reminders"], bool):
        raise ValidationError("review_schedule.review_reminders must be a boolean")

    try:
        return replace(plan.review_schedule, **changes)
    except TypeError as e:
        raise ValidationError(f"Invalid review_schedule: {e}") from None



def _commitment_statement(value: Any, plan: SafetyPlan) -> str:
    if not isinstance(value, str):
        raise ValidationError("commitment_statement must be a string")
    return value


def _as_list(value: Any, name: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{name} must be a list")
    return list(value)


# Updatable field -> converter from the request value
_UPDATERS: dict[str, Callable[[Any, SafetyPlan], Any]] = {
    "warning_signs": _warning_signs,
    "coping_strategies": _coping_strategies,
    "support_contacts": _support_contacts,
    "professional_contacts": _professional_contacts,
    "emergency_plan": _emergency_plan,
    "commitment_statement": _commitment_statement,
    "review_schedule": _review_schedule,
}


class SafetyPlanStore:
    """
    One active safety plan per user.

    Plans are never deleted. Superseding a plan stamps superseded_at
    on the old plan and starts a fresh one; superseded plans are
    read-only. Writes for the same user run one at a time.

    Usage:
        store = SafetyPlanStore()
        plan = await store.create_plan("user-1")
        plan = await store.update_plan(plan.id, {"warning_signs": ["..."]})
    """

    def __init__(self) -> None:
        self._plans: dict[str, SafetyPlan] = {}
        self._active_by_user: dict[str, str] = {}
        self._locks = KeyedLock()

    async def create_plan(self, user_id: str) -> SafetyPlan:
        """
        Create an empty plan for a user.

        Raises:
            ValidationError: If user_id is empty
            ConflictError: If the user already has an active plan
        """
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required")

        async with self._locks.hold(user_id):
            if user_id in self._active_by_user:
                raise ConflictError(f"Safety plan already exists for user {user_id}")
            return self._new_plan(user_id)

    async def get_plan(self, user_id: str) -> Optional[SafetyPlan]:
        """Active plan for a user, or None."""
        plan_id = self._active_by_user.get(user_id)
        return self._plans.get(plan_id) if plan_id else None

    async def get_plan_by_id(self, plan_id: str) -> SafetyPlan:
        """
        Raises:
            NotFoundError: If the plan does not exist
        """
        plan = self._plans.get(plan_id)
        if plan is None:
            raise NotFoundError("SafetyPlan", plan_id)
        return plan

    async def update_plan(
        self,
        plan_id: str,
        partial_update: Mapping[str, Any],
    ) -> SafetyPlan:
        """
        Merge a partial update into a plan.

        Only the fields present in partial_update change. Completion
        and updated_at are recomputed.

        Raises:
            NotFoundError: If the plan does not exist
            ValidationError: On unknown fields or malformed values
            ConflictError: If the plan has been superseded
        """
        plan = await self.get_plan_by_id(plan_id)

        unknown = set(partial_update) - set(_UPDATERS)
        if unknown:
            raise ValidationError(
                f"Unknown or read-only safety plan fields: {', '.join(sorted(unknown))}"
            )

        async with self._locks.hold(plan.user_id):
            if not plan.is_active:
                raise ConflictError(f"Safety plan {plan_id} has been superseded")

            changes = {
                name: _UPDATERS[name](value, plan)
                for name, value in partial_update.items()
            }
            for name, value in changes.items():
                setattr(plan, name, value)

            plan.updated_at = datetime.now(timezone.utc)
            plan.completion_percentage = plan.compute_completion()

        logger.info(
            "Safety plan updated",
            plan_id=plan.id,
            fields=sorted(changes),
            completion_percentage=plan.completion_percentage,
        )
        return plan

    async def supersede_plan(self, user_id: str) -> SafetyPlan:
        """
        Retire the user's active plan and start a new empty one.

        Raises:
            NotFoundError: If the user has no active plan
        """
        async with self._locks.hold(user_id):
            plan_id = self._active_by_user.get(user_id)
            if plan_id is None:
                raise NotFoundError("SafetyPlan", user_id)

            old = self._plans[plan_id]
            old.superseded_at = datetime.now(timezone.utc)
            del self._active_by_user[user_id]

            logger.info("Safety plan superseded", plan_id=old.id)
            return self._new_plan(user_id)

    def _new_plan(self, user_id: str) -> SafetyPlan:
        plan = SafetyPlan(user_id=user_id)
        plan.completion_percentage = plan.compute_completion()
        self._plans[plan.id] = plan
        self._active_by_user[user_id] = plan.id

        logger.info("Safety plan created", plan_id=plan.id)
        return plan
