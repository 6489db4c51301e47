"""Repair-on-read for session completion flags.

Preference writes land in two phases (the caller's role flag, then the
recomputed joint flag) and the two participants write concurrently without
a lock. Drift between the completion flags and the stored preference data is
therefore expected, and every read path applies :func:`compute_repair`
before a session is handed to a caller.
"""

from dataclasses import dataclass

from date_planner.domain.sessions import DatePreferences, PlanningSession


@dataclass(frozen=True)
class FlagRepair:
    """Completion flags as they should be stored for a session."""

    initiator_preferences_complete: bool
    partner_preferences_complete: bool
    both_preferences_complete: bool

    def differs_from(self, session: PlanningSession) -> bool:
        """Return True when the stored flags disagree with this repair."""
        return (
            self.initiator_preferences_complete
            != session.initiator_preferences_complete
            or self.partner_preferences_complete != session.partner_preferences_complete
            or self.both_preferences_complete != session.both_preferences_complete
        )

    def as_changes(self) -> dict[str, object]:
        """Return the flags as a column update."""
        return {
            "initiator_preferences_complete": self.initiator_preferences_complete,
            "partner_preferences_complete": self.partner_preferences_complete,
            "both_preferences_complete": self.both_preferences_complete,
        }


def is_jointly_complete(session: PlanningSession) -> bool:
    """Return the joint completion value implied by flags and data."""
    return (
        session.initiator_preferences_complete
        and session.partner_preferences_complete
        and session.initiator_preferences is not None
        and session.partner_preferences is not None
    )


def compute_repair(session: PlanningSession) -> FlagRepair:
    """Compute corrected completion flags without touching preference data."""
    initiator_complete = (
        session.initiator_preferences_complete
        and session.initiator_preferences is not None
    )
    partner_complete = (
        session.partner_preferences_complete and session.partner_preferences is not None
    )
    return FlagRepair(
        initiator_preferences_complete=initiator_complete,
        partner_preferences_complete=partner_complete,
        both_preferences_complete=(
            initiator_complete
            and partner_complete
            and session.initiator_preferences is not None
            and session.partner_preferences is not None
        ),
    )


@dataclass(frozen=True)
class SessionDiagnosis:
    """Read-only findings for a stored session."""

    issues: tuple[str, ...]
    should_reset: bool

    @property
    def is_valid(self) -> bool:
        """Return True when no issue was found."""
        return not self.issues


def diagnose(session: PlanningSession) -> SessionDiagnosis:
    """Inspect stored flags and preferences without changing anything.

    Identical preference records on both sides flag the session for reset.
    A drifted joint flag is only reported; the next read repairs it.
    """
    issues: list[str] = []
    should_reset = False
    initiator = session.initiator_preferences
    partner = session.partner_preferences

    if (
        initiator is not None
        and partner is not None
        and _normalized(initiator) == _normalized(partner)
    ):
        issues.append("Identical preferences detected between participants")
        should_reset = True
    if session.initiator_preferences_complete and initiator is None:
        issues.append("Initiator marked complete but has no preference data")
        should_reset = True
    if session.partner_preferences_complete and partner is None:
        issues.append("Partner marked complete but has no preference data")
        should_reset = True
    if (
        session.both_preferences_complete
        != compute_repair(session).both_preferences_complete
    ):
        issues.append("Joint completion flag disagrees with participant state")

    return SessionDiagnosis(issues=tuple(issues), should_reset=should_reset)


def _normalized(preferences: DatePreferences) -> dict[str, object]:
    return {
        key: sorted(value) if isinstance(value, list) else value
        for key, value in preferences.to_json().items()
    }
