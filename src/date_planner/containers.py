"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from supabase import create_client

from date_planner.adapters.openai_compatibility_client import (
    OpenAICompatibilityClient,
)
from date_planner.adapters.recommendation_client import HttpxRecommendationClient
from date_planner.adapters.supabase_change_feed import SupabaseChangeFeed
from date_planner.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from date_planner.config import Settings
from date_planner.domain.recommendations import Location
from date_planner.services.analysis import AnalysisTriggerGate, RecommendationEngine
from date_planner.services.realtime import ChangeFeed, SessionPropagator
from date_planner.services.sessions import SessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    recommendation_engine: RecommendationEngine
    analysis_gate: AnalysisTriggerGate
    change_feed: ChangeFeed
    close_resources: Callable[[], Awaitable[None]]

    def session_propagator(
        self, user_id: UUID, location: Location | None = None
    ) -> SessionPropagator:
        """Create a propagator for one participant sharing the process gate."""
        return SessionPropagator(
            session_service=self.session_service,
            change_feed=self.change_feed,
            gate=self.analysis_gate,
            user_id=user_id,
            location=location,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_service = SessionService(
        repository=SupabaseSessionRepository(supabase_client),
        session_ttl=timedelta(hours=resolved_settings.session_ttl_hours),
    )
    change_feed = SupabaseChangeFeed(
        supabase_url=resolved_settings.supabase_url,
        supabase_key=resolved_settings.supabase_service_key,
    )

    http_client: HttpxRecommendationClient | None = None
    recommendation_engine: RecommendationEngine
    if resolved_settings.recommendation_backend == "openai":
        if not resolved_settings.openai_api_key:
            raise ValueError("openai_api_key is required for the openai backend")
        recommendation_engine = OpenAICompatibilityClient.create(
            api_key=resolved_settings.openai_api_key,
            model=resolved_settings.openai_model,
            reasoning_effort=resolved_settings.openai_reasoning_effort,
        )
    else:
        http_client = HttpxRecommendationClient.create(
            function_url=resolved_settings.resolved_recommendation_url,
            api_key=resolved_settings.supabase_service_key,
        )
        recommendation_engine = http_client

    analysis_gate = AnalysisTriggerGate(
        session_service=session_service,
        engine=recommendation_engine,
        default_location=resolved_settings.default_location,
    )

    async def close_resources() -> None:
        await change_feed.close()
        if http_client is not None:
            await http_client.close()

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        recommendation_engine=recommendation_engine,
        analysis_gate=analysis_gate,
        change_feed=change_feed,
        close_resources=close_resources,
    )
