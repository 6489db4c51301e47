"""Store access and pairing policy for planning sessions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from date_planner.domain.errors import (
    SessionClosedError,
    SessionExpiredError,
    SessionNotFoundError,
)
from date_planner.domain.recommendations import Recommendation
from date_planner.domain.sessions import (
    TERMINAL_STATUSES,
    DatePreferences,
    PlanningMode,
    PlanningSession,
    SessionStatus,
)
from date_planner.services.consistency import (
    SessionDiagnosis,
    compute_repair,
    diagnose,
    is_jointly_complete,
)
from date_planner.services.session_state import (
    completion_field,
    preference_field,
    resolve_role,
)

_logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for planning sessions."""

    def create_session(  # noqa: PLR0913
        self,
        initiator_id: UUID,
        partner_id: UUID,
        participant_ids: list[UUID],
        planning_mode: PlanningMode,
        expires_at: datetime,
    ) -> PlanningSession:
        """Insert an active session with empty preferences and return it."""

    def get_session(self, session_id: UUID) -> PlanningSession | None:
        """Return a session by id, if present."""

    def find_active_session(
        self, user_id: UUID, partner_id: UUID
    ) -> PlanningSession | None:
        """Return the most recent active session for an unordered pair."""

    def update_session(
        self, session_id: UUID, changes: dict[str, object]
    ) -> PlanningSession:
        """Apply column changes to a session and return the stored row."""

    def expire_pair_sessions(
        self, user_id: UUID, partner_id: UUID, now: datetime
    ) -> int:
        """Mark active sessions for an unordered pair expired as of ``now``."""

    def expire_user_sessions(self, user_id: UUID, now: datetime) -> int:
        """Mark every active session involving a user expired as of ``now``."""

    def expire_sessions_before(self, now: datetime) -> int:
        """Mark active sessions whose expiry precedes ``now`` expired."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionService:
    """Creates, reads and updates planning sessions.

    Every read goes through :meth:`_repair`, so callers never observe
    completion flags that disagree with the stored preference data.
    """

    repository: SessionRepository
    session_ttl: timedelta = timedelta(hours=24)
    clock: Callable[[], datetime] = field(default=_utcnow)

    def create_session(  # noqa: PLR0913
        self,
        initiator_id: UUID,
        partner_id: UUID,
        participant_ids: list[UUID] | None = None,
        planning_mode: PlanningMode = PlanningMode.SOLO,
        *,
        force_new: bool = False,
    ) -> PlanningSession:
        """Return the pair's active session or create a new one."""
        if force_new:
            expired = self.repository.expire_pair_sessions(
                initiator_id, partner_id, self.clock()
            )
            if expired:
                _logger.info(
                    "Expired %s active session(s) for pair %s/%s",
                    expired,
                    initiator_id,
                    partner_id,
                )
        else:
            existing = self.get_active_session(initiator_id, partner_id)
            if existing is not None:
                _logger.info("Reusing active session %s", existing.id)
                return existing

        session = self.repository.create_session(
            initiator_id=initiator_id,
            partner_id=partner_id,
            participant_ids=participant_ids or [initiator_id, partner_id],
            planning_mode=planning_mode,
            expires_at=self.clock() + self.session_ttl,
        )
        _logger.info(
            "Created %s session %s for %s/%s",
            planning_mode,
            session.id,
            initiator_id,
            partner_id,
        )
        return session

    def get_active_session(
        self, user_id: UUID, partner_id: UUID
    ) -> PlanningSession | None:
        """Return the pair's most recent active, unexpired session."""
        session = self.repository.find_active_session(user_id, partner_id)
        if session is None:
            return None
        if session.is_expired_at(self.clock()):
            self._expire(session)
            return None
        return self._repair(session)

    def get_session(self, session_id: UUID, user_id: UUID) -> PlanningSession:
        """Return a repaired session the caller participates in."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        resolve_role(session, user_id)
        if session.session_status is SessionStatus.ACTIVE and session.is_expired_at(
            self.clock()
        ):
            self._expire(session)
            raise SessionExpiredError(session_id)
        return self._repair(session)

    def update_preferences(
        self, session_id: UUID, user_id: UUID, preferences: DatePreferences
    ) -> PlanningSession:
        """Store the caller's preferences and recompute joint completion."""
        session = self.get_session(session_id, user_id)
        _ensure_open(session)
        role = resolve_role(session, user_id)

        self.repository.update_session(
            session_id,
            {
                preference_field(role): preferences,
                completion_field(role): True,
                "updated_at": self.clock(),
            },
        )

        # The partner may have written since the first read.
        fresh = self.repository.get_session(session_id)
        if fresh is None:
            raise SessionNotFoundError(session_id)
        both_complete = is_jointly_complete(fresh)
        if both_complete != fresh.both_preferences_complete:
            fresh = self.repository.update_session(
                session_id,
                {
                    "both_preferences_complete": both_complete,
                    "updated_at": self.clock(),
                },
            )
        _logger.info(
            "Stored %s preferences for session %s (both complete: %s)",
            role,
            session_id,
            fresh.both_preferences_complete,
        )
        return fresh

    def complete_session(
        self, session_id: UUID, user_id: UUID, venue_id: str
    ) -> PlanningSession:
        """Mark a session completed with the selected venue."""
        session = self.get_session(session_id, user_id)
        _ensure_open(session)
        completed = self.repository.update_session(
            session_id,
            {
                "session_status": SessionStatus.COMPLETED,
                "selected_venue_id": venue_id,
                "updated_at": self.clock(),
            },
        )
        _logger.info("Completed session %s with venue %s", session_id, venue_id)
        return completed

    def reset_session(self, session_id: UUID) -> PlanningSession:
        """Clear preferences, flags and analysis results of a session."""
        if self.repository.get_session(session_id) is None:
            raise SessionNotFoundError(session_id)
        reset = self.repository.update_session(
            session_id,
            {
                "initiator_preferences": None,
                "partner_preferences": None,
                "initiator_preferences_complete": False,
                "partner_preferences_complete": False,
                "both_preferences_complete": False,
                "ai_compatibility_score": None,
                "venue_recommendations": [],
                "updated_at": self.clock(),
            },
        )
        _logger.warning("Reset session %s to a clean state", session_id)
        return reset

    def diagnose_session(self, session_id: UUID) -> SessionDiagnosis:
        """Report inconsistencies in the stored row before any repair."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        diagnosis = diagnose(session)
        if not diagnosis.is_valid:
            _logger.warning(
                "Session %s has %s issue(s): %s",
                session_id,
                len(diagnosis.issues),
                "; ".join(diagnosis.issues),
            )
        return diagnosis

    def record_recommendation(
        self, session_id: UUID, recommendation: Recommendation
    ) -> PlanningSession:
        """Persist analysis results unless another process already did."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.ai_compatibility_score is not None:
            _logger.info(
                "Session %s already has a compatibility score; keeping it",
                session_id,
            )
            return session
        return self.repository.update_session(
            session_id,
            {
                "ai_compatibility_score": recommendation.compatibility_score,
                "venue_recommendations": recommendation.venues,
                "updated_at": self.clock(),
            },
        )

    def expire_user_sessions(self, user_id: UUID) -> int:
        """Expire every active session involving a user."""
        count = self.repository.expire_user_sessions(user_id, self.clock())
        _logger.info("Expired %s active session(s) for user %s", count, user_id)
        return count

    def expire_stale_sessions(self) -> int:
        """Expire active sessions that are past their expiry time."""
        count = self.repository.expire_sessions_before(self.clock())
        if count:
            _logger.info("Expired %s stale session(s)", count)
        return count

    def _expire(self, session: PlanningSession) -> None:
        _logger.warning("Session %s expired at %s", session.id, session.expires_at)
        self.repository.update_session(
            session.id,
            {"session_status": SessionStatus.EXPIRED, "updated_at": self.clock()},
        )

    def _repair(self, session: PlanningSession) -> PlanningSession:
        repair = compute_repair(session)
        if not repair.differs_from(session):
            return session
        _logger.warning(
            "Repairing completion flags for session %s: %s",
            session.id,
            repair,
        )
        return self.repository.update_session(
            session.id, {**repair.as_changes(), "updated_at": self.clock()}
        )


def _ensure_open(session: PlanningSession) -> None:
    if session.session_status in TERMINAL_STATUSES:
        raise SessionClosedError(session.id, session.session_status)
