"""Pydantic request models for the session API."""

from uuid import UUID

from pydantic import BaseModel, Field

from date_planner.domain.sessions import DatePreferences, PlanningMode


class CreateSessionRequest(BaseModel):
    """Request body for creating or reusing a session."""

    partner_id: UUID
    participant_ids: list[UUID] | None = None
    planning_mode: PlanningMode = PlanningMode.SOLO
    force_new: bool = False


class PreferencesPayload(BaseModel):
    """Preference record submitted by a participant."""

    preferred_cuisines: list[str] = Field(default_factory=list)
    preferred_price_range: list[str] = Field(default_factory=list)
    preferred_times: list[str] = Field(default_factory=list)
    preferred_vibes: list[str] = Field(default_factory=list)
    max_distance: float | None = Field(default=None, ge=0)
    dietary_restrictions: list[str] = Field(default_factory=list)

    def to_domain(self) -> DatePreferences:
        """Convert to domain preferences."""
        return DatePreferences(
            cuisines=self.preferred_cuisines,
            price_range=self.preferred_price_range,
            times=self.preferred_times,
            vibes=self.preferred_vibes,
            max_distance=self.max_distance,
            dietary_restrictions=self.dietary_restrictions,
        )


class CompleteSessionRequest(BaseModel):
    """Request body for completing a session."""

    venue_id: str = Field(min_length=1)
