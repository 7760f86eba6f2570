"""
Safety Plan Models

A user-owned document of warning signs, coping strategies and
emergency contacts, mutated incrementally through partial updates.

PRIVACY: Safety plans contain sensitive personal information and
must only be returned to their owner.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CopingStrategy:
    description: str
    category: str = "emotional"  # physical, emotional, cognitive, social, spiritual, creative
    effectiveness_rating: Optional[int] = None
    estimated_time_minutes: Optional[int] = None
    id: str = field(default_factory=lambda: uuid4().hex[:12])


@dataclass
class SupportContact:
    name: str
    phone: str
    relationship: str = ""
    best_contact_method: str = "phone"  # phone, text, email, in_person
    is_emergency_contact: bool = False
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex[:12])


@dataclass
class ProfessionalContact:
    name: str
    phone: str
    title: str = ""
    organization: str = ""
    crisis_line: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex[:12])


@dataclass
class EmergencyPlan:
    immediate_actions: list[str] = field(default_factory=list)
    crisis_hotlines: list[str] = field(default_factory=list)
    emergency_contacts: list[str] = field(default_factory=list)
    safe_spaces: list[str] = field(default_factory=list)

    @property
    def is_filled(self) -> bool:
        return bool(self.immediate_actions or self.crisis_hotlines or self.emergency_contacts)


REVIEW_FREQUENCIES = ("daily", "weekly", "monthly", "as_needed")


@dataclass
class ReviewSchedule:
    frequency: str = "weekly"  # one of REVIEW_FREQUENCIES
    next_review_date: datetime = field(default_factory=lambda: _now() + timedelta(days=7))
    review_reminders: bool = True


@dataclass
class SafetyPlan:
    """
    A user's safety plan.

    One active plan per user. Plans are never deleted; a superseded
    plan keeps its content and gets superseded_at set.

    Attributes:
        user_id: Owner
        completion_percentage: Share of filled sections (0-100),
            recomputed on every write
    """

    user_id: str
    warning_signs: list[str] = field(default_factory=list)
    coping_strategies: list[CopingStrategy] = field(default_factory=list)
    support_contacts: list[SupportContact] = field(default_factory=list)
    professional_contacts: list[ProfessionalContact] = field(default_factory=list)
    emergency_plan: EmergencyPlan = field(default_factory=EmergencyPlan)
    commitment_statement: str = ""
    review_schedule: ReviewSchedule = field(default_factory=ReviewSchedule)
    completion_percentage: int = 0
    id: str = field(default_factory=lambda: f"plan_{uuid4().hex[:16]}")
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    superseded_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.superseded_at is None

    def compute_completion(self) -> int:
        sections = [
            bool(self.warning_signs),
            bool(self.coping_strategies),
            bool(self.support_contacts),
            bool(self.professional_contacts),
            self.emergency_plan.is_filled,
            bool(self.commitment_statement.strip()),
        ]
        return round(100 * sum(sections) / len(sections))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "warning_signs": list(self.warning_signs),
            "coping_strategies": [vars(c).copy() for c in self.coping_strategies],
            "support_contacts": [vars(c).copy() for c in self.support_contacts],
            "professional_contacts": [vars(c).copy() for c in self.professional_contacts],
            "emergency_plan": vars(self.emergency_plan).copy(),
            "commitment_statement": self.commitment_statement,
            "review_schedule": {
                "frequency": self.review_schedule.frequency,
                "next_review_date": self.review_schedule.next_review_date.isoformat(),
                "review_reminders": self.review_schedule.review_reminders,
            },
            "completion_percentage": self.completion_percentage,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "superseded_at": self.superseded_at.isoformat() if self.superseded_at else None,
        }
