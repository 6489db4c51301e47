"""HTTP client for the compatibility and venue recommendation function."""

from dataclasses import dataclass
from uuid import UUID

import httpx

from date_planner.domain.errors import AnalysisError
from date_planner.domain.recommendations import Location, Recommendation
from date_planner.domain.sessions import DatePreferences
from date_planner.services.analysis import RecommendationEngine


@dataclass
class HttpxRecommendationClient(RecommendationEngine):
    """HTTPX-backed client for the recommendation edge function."""

    function_url: str
    api_key: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 60

    @classmethod
    def create(cls, function_url: str, api_key: str) -> "HttpxRecommendationClient":
        """Create a recommendation client with a managed httpx session."""
        return cls(
            function_url=function_url,
            api_key=api_key,
            http_client=httpx.AsyncClient(),
        )

    async def recommend(  # noqa: PLR0913
        self,
        *,
        session_id: UUID,
        partner_id: UUID,
        preferences: DatePreferences,
        partner_preferences: DatePreferences,
        location: Location,
    ) -> Recommendation:
        """Request a compatibility score and venues for a session."""
        response = await self.http_client.post(
            self.function_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "apikey": self.api_key,
            },
            json={
                "sessionId": str(session_id),
                "partnerId": str(partner_id),
                "preferences": preferences.to_json(),
                "partnerPreferences": partner_preferences.to_json(),
                "userLocation": location.model_dump(exclude_none=True),
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return parse_recommendation(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def parse_recommendation(payload: dict[str, object]) -> Recommendation:
    """Normalize the function response into a recommendation."""
    raw_score = payload.get("compatibilityScore")
    if isinstance(raw_score, dict):
        raw_score = raw_score.get("overall_score")
    if not isinstance(raw_score, int | float) or isinstance(raw_score, bool):
        raise AnalysisError("Recommendation response did not include a score")
    venues = payload.get("venueRecommendations")
    if not isinstance(venues, list):
        venues = []
    return Recommendation(
        compatibility_score=_as_percentage(float(raw_score)),
        venues=[venue for venue in venues if isinstance(venue, dict)],
    )


def _as_percentage(score: float) -> float:
    """Scale 0-1 scores to 0-100; larger values are already percentages."""
    if 0.0 <= score <= 1.0:
        return round(score * 100, 1)
    return score
