"""OpenAI Responses API client for compatibility scoring."""

import json
from dataclasses import dataclass
from uuid import UUID

from openai import AsyncOpenAI

from date_planner.domain.recommendations import (
    CompatibilityBreakdown,
    Location,
    Recommendation,
)
from date_planner.domain.sessions import DatePreferences
from date_planner.services.analysis import RecommendationEngine

_SCORE = {"type": "number", "minimum": 0.0, "maximum": 1.0}
_STRINGS = {"type": "array", "items": {"type": "string"}}

COMPATIBILITY_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "overall_score": _SCORE,
        "cuisine_score": _SCORE,
        "vibe_score": _SCORE,
        "price_score": _SCORE,
        "timing_score": _SCORE,
        "compatibility_factors": {
            "type": "object",
            "properties": {
                "shared_cuisines": _STRINGS,
                "shared_vibes": _STRINGS,
                "shared_price_ranges": _STRINGS,
                "shared_times": _STRINGS,
                "reasoning": {"type": "string"},
            },
            "required": [
                "shared_cuisines",
                "shared_vibes",
                "shared_price_ranges",
                "shared_times",
                "reasoning",
            ],
            "additionalProperties": False,
        },
    },
    "required": [
        "overall_score",
        "cuisine_score",
        "vibe_score",
        "price_score",
        "timing_score",
        "compatibility_factors",
    ],
    "additionalProperties": False,
}

_INSTRUCTIONS = (
    "You are a dating compatibility analyzer. Compare two people's date "
    "preferences across cuisine, vibe, price range, timing and dietary "
    "restrictions. Score each dimension between 0 (no compatibility) and 1 "
    "(perfect compatibility), considering overlaps, complementary choices and "
    "conflicts."
)


@dataclass
class OpenAICompatibilityClient(RecommendationEngine):
    """Scores compatibility with an LLM; returns no venue candidates."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(
        cls, api_key: str, model: str, reasoning_effort: str | None = None
    ) -> "OpenAICompatibilityClient":
        """Create an OpenAI compatibility client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            reasoning_effort=reasoning_effort,
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
        """Ask the model for a structured compatibility breakdown."""
        breakdown = await self.analyze(preferences, partner_preferences)
        return Recommendation(
            compatibility_score=round(breakdown.overall_score * 100, 1),
            venues=[],
        )

    async def analyze(
        self, preferences: DatePreferences, partner_preferences: DatePreferences
    ) -> CompatibilityBreakdown:
        """Return per-dimension compatibility scores."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "instructions": _INSTRUCTIONS,
            "input": _build_prompt(preferences, partner_preferences),
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "compatibility_analysis",
                    "strict": True,
                    "schema": COMPATIBILITY_SCHEMA,
                }
            },
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return CompatibilityBreakdown.model_validate(json.loads(output_text))


def _build_prompt(first: DatePreferences, second: DatePreferences) -> str:
    return (
        "Analyze compatibility between these two people.\n\n"
        f"Person 1 preferences:\n{_describe(first)}\n\n"
        f"Person 2 preferences:\n{_describe(second)}"
    )


def _describe(preferences: DatePreferences) -> str:
    return "\n".join(
        [
            f"- Cuisines: {json.dumps(preferences.cuisines)}",
            f"- Vibes: {json.dumps(preferences.vibes)}",
            f"- Price range: {json.dumps(preferences.price_range)}",
            f"- Times: {json.dumps(preferences.times)}",
            f"- Dietary restrictions: {json.dumps(preferences.dietary_restrictions)}",
            f"- Max distance: {preferences.max_distance}",
        ]
    )
