"""Domain models for collaborative planning sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class SessionStatus(StrEnum):
    """Lifecycle states of a planning session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.EXPIRED})


class PlanningMode(StrEnum):
    """How the session is being planned."""

    SOLO = "solo"
    COLLABORATIVE = "collaborative"


class Role(StrEnum):
    """Role of a participant within a session."""

    INITIATOR = "initiator"
    PARTNER = "partner"

    @property
    def other(self) -> "Role":
        """Return the opposite role."""
        return Role.PARTNER if self is Role.INITIATOR else Role.INITIATOR


@dataclass(frozen=True)
class DatePreferences:
    """Preferences submitted by one participant."""

    cuisines: list[str] = field(default_factory=list)
    price_range: list[str] = field(default_factory=list)
    times: list[str] = field(default_factory=list)
    vibes: list[str] = field(default_factory=list)
    max_distance: float | None = None
    dietary_restrictions: list[str] = field(default_factory=list)

    def to_json(self) -> dict[str, object]:
        """Serialize using the stored column keys."""
        return {
            "preferred_cuisines": list(self.cuisines),
            "preferred_price_range": list(self.price_range),
            "preferred_times": list(self.times),
            "preferred_vibes": list(self.vibes),
            "max_distance": self.max_distance,
            "dietary_restrictions": list(self.dietary_restrictions),
        }

    @classmethod
    def from_json(cls, payload: dict[str, object]) -> "DatePreferences":
        """Build preferences from a stored JSON object."""
        max_distance = payload.get("max_distance")
        return cls(
            cuisines=_string_list(payload.get("preferred_cuisines")),
            price_range=_string_list(payload.get("preferred_price_range")),
            times=_string_list(payload.get("preferred_times")),
            vibes=_string_list(payload.get("preferred_vibes")),
            max_distance=(
                float(max_distance) if isinstance(max_distance, int | float) else None
            ),
            dietary_restrictions=_string_list(payload.get("dietary_restrictions")),
        )


@dataclass(frozen=True)
class PlanningSession:
    """Represents a persisted planning session between two participants."""

    id: UUID
    initiator_id: UUID
    partner_id: UUID
    session_status: SessionStatus
    planning_mode: PlanningMode
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    initiator_preferences: DatePreferences | None = None
    partner_preferences: DatePreferences | None = None
    initiator_preferences_complete: bool = False
    partner_preferences_complete: bool = False
    both_preferences_complete: bool = False
    ai_compatibility_score: float | None = None
    venue_recommendations: list[dict[str, object]] = field(default_factory=list)
    selected_venue_id: str | None = None
    participant_ids: list[UUID] = field(default_factory=list)

    def is_expired_at(self, now: datetime) -> bool:
        """Return True once the session is past its expiry time."""
        return now > self.expires_at

    def preferences_for(self, role: Role) -> DatePreferences | None:
        """Return the preferences stored for a role."""
        if role is Role.INITIATOR:
            return self.initiator_preferences
        return self.partner_preferences

    def is_complete_for(self, role: Role) -> bool:
        """Return the stored completion flag for a role."""
        if role is Role.INITIATOR:
            return self.initiator_preferences_complete
        return self.partner_preferences_complete

    def participant_for(self, role: Role) -> UUID:
        """Return the participant id holding a role."""
        if role is Role.INITIATOR:
            return self.initiator_id
        return self.partner_id


def _string_list(value: object) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    return []
