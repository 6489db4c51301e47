"""Supabase-backed planning session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

import httpx
from supabase import Client, PostgrestAPIError

from date_planner.domain.errors import SessionStoreError
from date_planner.domain.sessions import (
    DatePreferences,
    PlanningMode,
    PlanningSession,
    SessionStatus,
)
from date_planner.services.sessions import SessionRepository

SESSIONS_TABLE = "date_planning_sessions"

_COLUMNS = (
    "id, initiator_id, partner_id, participant_ids, session_status, planning_mode, "
    "initiator_preferences, partner_preferences, initiator_preferences_complete, "
    "partner_preferences_complete, both_preferences_complete, "
    "ai_compatibility_score, venue_recommendations, selected_venue_id, "
    "created_at, updated_at, expires_at"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for planning sessions."""

    client: Client

    def create_session(  # noqa: PLR0913
        self,
        initiator_id: UUID,
        partner_id: UUID,
        participant_ids: list[UUID],
        planning_mode: PlanningMode,
        expires_at: datetime,
    ) -> PlanningSession:
        """Insert an active session row and return it."""
        query = self.client.table(SESSIONS_TABLE).insert(
            {
                "initiator_id": str(initiator_id),
                "partner_id": str(partner_id),
                "participant_ids": [str(item) for item in participant_ids],
                "session_status": SessionStatus.ACTIVE.value,
                "planning_mode": planning_mode.value,
                "initiator_preferences": None,
                "partner_preferences": None,
                "initiator_preferences_complete": False,
                "partner_preferences_complete": False,
                "both_preferences_complete": False,
                "expires_at": expires_at.isoformat(),
            }
        )
        rows = _execute(query, "create session")
        if not rows:
            raise SessionStoreError("Failed to create session")
        return session_from_row(rows[0])

    def get_session(self, session_id: UUID) -> PlanningSession | None:
        """Return a session by id, if present."""
        query = (
            self.client.table(SESSIONS_TABLE)
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
        )
        rows = _execute(query, "get session")
        if not rows:
            return None
        return session_from_row(rows[0])

    def find_active_session(
        self, user_id: UUID, partner_id: UUID
    ) -> PlanningSession | None:
        """Return the most recent active session for an unordered pair."""
        query = (
            self.client.table(SESSIONS_TABLE)
            .select(_COLUMNS)
            .or_(_pair_filter(user_id, partner_id))
            .eq("session_status", SessionStatus.ACTIVE.value)
            .order("created_at", desc=True)
            .limit(1)
        )
        rows = _execute(query, "find active session")
        if not rows:
            return None
        return session_from_row(rows[0])

    def update_session(
        self, session_id: UUID, changes: dict[str, object]
    ) -> PlanningSession:
        """Apply column changes and return the updated row."""
        query = (
            self.client.table(SESSIONS_TABLE)
            .update({column: _to_column(value) for column, value in changes.items()})
            .eq("id", str(session_id))
        )
        rows = _execute(query, "update session")
        if not rows:
            raise SessionStoreError(f"Failed to update session {session_id}")
        return session_from_row(rows[0])

    def expire_pair_sessions(
        self, user_id: UUID, partner_id: UUID, now: datetime
    ) -> int:
        """Expire active sessions for an unordered pair."""
        query = (
            self.client.table(SESSIONS_TABLE)
            .update(_expired_payload(now))
            .or_(_pair_filter(user_id, partner_id))
            .eq("session_status", SessionStatus.ACTIVE.value)
        )
        return len(_execute(query, "expire pair sessions"))

    def expire_user_sessions(self, user_id: UUID, now: datetime) -> int:
        """Expire active sessions in which the user participates."""
        query = (
            self.client.table(SESSIONS_TABLE)
            .update(_expired_payload(now))
            .or_(f"initiator_id.eq.{user_id},partner_id.eq.{user_id}")
            .eq("session_status", SessionStatus.ACTIVE.value)
        )
        return len(_execute(query, "expire user sessions"))

    def expire_sessions_before(self, now: datetime) -> int:
        """Expire active sessions whose expiry precedes ``now``."""
        query = (
            self.client.table(SESSIONS_TABLE)
            .update(_expired_payload(now))
            .eq("session_status", SessionStatus.ACTIVE.value)
            .lt("expires_at", now.isoformat())
        )
        return len(_execute(query, "expire stale sessions"))


def session_from_row(row: dict[str, object]) -> PlanningSession:
    """Map a ``date_planning_sessions`` row to a session."""
    score = row.get("ai_compatibility_score")
    venues = row.get("venue_recommendations")
    participants = row.get("participant_ids")
    return PlanningSession(
        id=UUID(str(row["id"])),
        initiator_id=UUID(str(row["initiator_id"])),
        partner_id=UUID(str(row["partner_id"])),
        session_status=SessionStatus(row["session_status"]),
        planning_mode=PlanningMode(row.get("planning_mode") or PlanningMode.SOLO),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row.get("updated_at") or row["created_at"]),
        expires_at=_parse_timestamp(row["expires_at"]),
        initiator_preferences=_parse_preferences(row.get("initiator_preferences")),
        partner_preferences=_parse_preferences(row.get("partner_preferences")),
        initiator_preferences_complete=bool(
            row.get("initiator_preferences_complete")
        ),
        partner_preferences_complete=bool(row.get("partner_preferences_complete")),
        both_preferences_complete=bool(row.get("both_preferences_complete")),
        ai_compatibility_score=float(score) if score is not None else None,
        venue_recommendations=list(venues) if isinstance(venues, list) else [],
        selected_venue_id=(
            str(row["selected_venue_id"]) if row.get("selected_venue_id") else None
        ),
        participant_ids=(
            [UUID(str(item)) for item in participants]
            if isinstance(participants, list)
            else []
        ),
    )


def _execute(query, action: str) -> list[dict[str, object]]:  # type: ignore[no-untyped-def]
    """Run a query builder and surface store failures as typed errors."""
    try:
        response = query.execute()
    except (PostgrestAPIError, httpx.HTTPError) as exc:
        raise SessionStoreError(f"Failed to {action}: {exc}") from exc
    return list(response.data or [])


def _pair_filter(user_id: UUID, partner_id: UUID) -> str:
    return (
        f"and(initiator_id.eq.{user_id},partner_id.eq.{partner_id}),"
        f"and(initiator_id.eq.{partner_id},partner_id.eq.{user_id})"
    )


def _expired_payload(now: datetime) -> dict[str, object]:
    return {
        "session_status": SessionStatus.EXPIRED.value,
        "updated_at": now.isoformat(),
    }


def _to_column(value: object) -> object:
    if isinstance(value, DatePreferences):
        return value.to_json()
    if isinstance(value, StrEnum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _parse_preferences(value: object) -> DatePreferences | None:
    if isinstance(value, dict):
        return DatePreferences.from_json(value)
    return None


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
