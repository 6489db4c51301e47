"""One-shot trigger for the compatibility and venue recommendation step."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol
from uuid import UUID

from date_planner.domain.errors import AnalysisError
from date_planner.domain.recommendations import Location, Recommendation
from date_planner.domain.sessions import (
    DatePreferences,
    PlanningSession,
    SessionStatus,
)
from date_planner.services.consistency import is_jointly_complete
from date_planner.services.session_state import resolve_role
from date_planner.services.sessions import SessionService

_logger = logging.getLogger(__name__)


class RecommendationEngine(Protocol):
    """Interface for the downstream compatibility and venue engine."""

    async def recommend(  # noqa: PLR0913
        self,
        *,
        session_id: UUID,
        partner_id: UUID,
        preferences: DatePreferences,
        partner_preferences: DatePreferences,
        location: Location,
    ) -> Recommendation:
        """Return a compatibility score and venue candidates."""


class GateState(StrEnum):
    """Trigger progress for one session within this process."""

    IDLE = "idle"
    TRIGGERING = "triggering"
    TRIGGERED = "triggered"


@dataclass
class AnalysisTriggerGate:
    """Invokes the recommendation engine at most once per session activation.

    The local state is claimed before the first await, so a second
    observation of the same completed session in this process is a no-op.
    Only a failed engine call releases an in-flight claim. A triggered session
    re-arms once it is observed back in its reset shape.
    Processes do not coordinate: two participants observing joint completion
    at the same moment can both call the engine. The stored score is checked
    again before writing, which narrows but does not close that window.
    """

    session_service: SessionService
    engine: RecommendationEngine
    default_location: Location
    _states: dict[UUID, GateState] = field(default_factory=dict, init=False)

    def state_for(self, session_id: UUID) -> GateState:
        """Return the gate state for a session."""
        return self._states.get(session_id, GateState.IDLE)

    def should_trigger(self, session: PlanningSession) -> bool:
        """Return True when the session qualifies for analysis."""
        return (
            session.session_status is SessionStatus.ACTIVE
            and session.both_preferences_complete
            and is_jointly_complete(session)
            and session.ai_compatibility_score is None
            and self.state_for(session.id) is GateState.IDLE
        )

    async def evaluate(
        self,
        session: PlanningSession,
        user_id: UUID,
        location: Location | None = None,
    ) -> PlanningSession | None:
        """Run the analysis if the session qualifies; return the stored result."""
        if self.state_for(session.id) is GateState.TRIGGERED and _is_reset(session):
            # A reset session starts a new activation.
            self._states.pop(session.id, None)
        if not self.should_trigger(session):
            return None

        self._states[session.id] = GateState.TRIGGERING
        _logger.info("Triggering analysis for session %s", session.id)
        try:
            fresh = self.session_service.get_session(session.id, user_id)
            if fresh.ai_compatibility_score is not None:
                self._states[session.id] = GateState.TRIGGERED
                return fresh
            role = resolve_role(fresh, user_id)
            preferences = fresh.preferences_for(role)
            partner_preferences = fresh.preferences_for(role.other)
            if preferences is None or partner_preferences is None:
                self._states.pop(session.id, None)
                return None
            recommendation = await self.engine.recommend(
                session_id=fresh.id,
                partner_id=fresh.participant_for(role.other),
                preferences=preferences,
                partner_preferences=partner_preferences,
                location=location or self.default_location,
            )
            stored = self.session_service.record_recommendation(
                fresh.id, recommendation
            )
        except Exception as exc:
            self._states.pop(session.id, None)
            _logger.exception("Analysis failed for session %s", session.id)
            raise AnalysisError(f"Analysis failed for session {session.id}") from exc

        self._states[session.id] = GateState.TRIGGERED
        _logger.info(
            "Stored compatibility score %s for session %s",
            stored.ai_compatibility_score,
            session.id,
        )
        return stored

    async def trigger_manually(
        self,
        session: PlanningSession,
        user_id: UUID,
        location: Location | None = None,
    ) -> PlanningSession | None:
        """Clear the local one-shot flag and re-evaluate the session."""
        self._states.pop(session.id, None)
        return await self.evaluate(session, user_id, location)


def _is_reset(session: PlanningSession) -> bool:
    """Return True for a session back in its initial, unanalyzed shape.

    Stale snapshots from the first phase of a preference write keep at least
    one role flag set, so they never match.
    """
    return (
        session.ai_compatibility_score is None
        and not session.initiator_preferences_complete
        and not session.partner_preferences_complete
        and not session.both_preferences_complete
    )
