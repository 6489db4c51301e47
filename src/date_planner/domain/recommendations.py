"""Models exchanged with the recommendation engine."""

from pydantic import BaseModel, Field


class Location(BaseModel):
    """Geographic point used to search for venues."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    address: str | None = None


class Recommendation(BaseModel):
    """Compatibility score and venue candidates for a session."""

    compatibility_score: float = Field(ge=0.0, le=100.0)
    venues: list[dict[str, object]] = Field(default_factory=list)


class CompatibilityFactors(BaseModel):
    """Shared preferences reported by the compatibility analysis."""

    shared_cuisines: list[str]
    shared_vibes: list[str]
    shared_price_ranges: list[str]
    shared_times: list[str]
    reasoning: str


class CompatibilityBreakdown(BaseModel):
    """Per-dimension compatibility scores in the 0-1 range."""

    overall_score: float = Field(ge=0.0, le=1.0)
    cuisine_score: float = Field(ge=0.0, le=1.0)
    vibe_score: float = Field(ge=0.0, le=1.0)
    price_score: float = Field(ge=0.0, le=1.0)
    timing_score: float = Field(ge=0.0, le=1.0)
    compatibility_factors: CompatibilityFactors
