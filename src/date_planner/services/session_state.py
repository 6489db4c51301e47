"""Role resolution and participant-facing session state."""

from dataclasses import dataclass
from uuid import UUID

from date_planner.domain.errors import NotParticipantError
from date_planner.domain.sessions import PlanningMode, PlanningSession, Role

_PREFERENCE_FIELDS = {
    Role.INITIATOR: ("initiator_preferences", "initiator_preferences_complete"),
    Role.PARTNER: ("partner_preferences", "partner_preferences_complete"),
}


def resolve_role(session: PlanningSession, user_id: UUID) -> Role:
    """Return the caller's role, raising if they are not a participant."""
    if session.initiator_id == user_id:
        return Role.INITIATOR
    if session.partner_id == user_id:
        return Role.PARTNER
    raise NotParticipantError(session.id, user_id)


def preference_field(role: Role) -> str:
    """Return the column holding a role's preferences."""
    return _PREFERENCE_FIELDS[role][0]


def completion_field(role: Role) -> str:
    """Return the column holding a role's completion flag."""
    return _PREFERENCE_FIELDS[role][1]


def counterpart_id(session: PlanningSession, user_id: UUID) -> UUID:
    """Return the other participant's id."""
    return session.participant_for(resolve_role(session, user_id).other)


@dataclass(frozen=True)
class ParticipantView:
    """Derived, read-only state of a session for one participant."""

    role: Role
    has_user_set_preferences: bool
    has_partner_set_preferences: bool
    can_show_results: bool
    is_waiting_for_partner: bool
    compatibility_score: float | None


def participant_view(session: PlanningSession, user_id: UUID) -> ParticipantView:
    """Build the presentation flags for a participant."""
    role = resolve_role(session, user_id)
    user_done = session.is_complete_for(role)
    partner_done = session.is_complete_for(role.other)
    can_show_results = session.both_preferences_complete
    return ParticipantView(
        role=role,
        has_user_set_preferences=user_done,
        has_partner_set_preferences=partner_done,
        can_show_results=can_show_results,
        is_waiting_for_partner=(
            session.planning_mode is PlanningMode.COLLABORATIVE
            and not can_show_results
            and user_done
            and not partner_done
        ),
        compatibility_score=session.ai_compatibility_score,
    )
