"""Tests for completion flag repair."""

from dataclasses import replace
from datetime import UTC, datetime

from date_planner.domain.sessions import DatePreferences
from date_planner.services.consistency import (
    compute_repair,
    diagnose,
    is_jointly_complete,
)
from tests.conftest import italian_preferences, make_session, thai_preferences

NOW = datetime(2026, 5, 1, 18, 0, tzinfo=UTC)


def test_fresh_session_needs_no_repair() -> None:
    session = make_session(NOW)

    repair = compute_repair(session)

    assert not repair.differs_from(session)
    assert not is_jointly_complete(session)


def test_flag_without_data_is_cleared() -> None:
    session = make_session(
        NOW,
        partner_preferences_complete=True,
        both_preferences_complete=True,
        initiator_preferences=italian_preferences(),
        initiator_preferences_complete=True,
    )

    repair = compute_repair(session)

    assert repair.differs_from(session)
    assert repair.as_changes() == {
        "initiator_preferences_complete": True,
        "partner_preferences_complete": False,
        "both_preferences_complete": False,
    }


def test_data_without_flag_is_left_alone() -> None:
    session = make_session(NOW, initiator_preferences=italian_preferences())

    repair = compute_repair(session)

    assert not repair.differs_from(session)
    assert repair.initiator_preferences_complete is False


def test_joint_flag_follows_both_sides() -> None:
    complete = make_session(
        NOW,
        initiator_preferences=italian_preferences(),
        partner_preferences=thai_preferences(),
        initiator_preferences_complete=True,
        partner_preferences_complete=True,
    )

    assert is_jointly_complete(complete)
    assert compute_repair(complete).both_preferences_complete is True
    assert compute_repair(complete).differs_from(complete)
    repaired = replace(complete, both_preferences_complete=True)
    assert not compute_repair(repaired).differs_from(repaired)


def test_joint_completion_requires_data() -> None:
    session = make_session(
        NOW,
        initiator_preferences=italian_preferences(),
        initiator_preferences_complete=True,
        partner_preferences_complete=True,
    )

    assert not is_jointly_complete(session)


def test_diagnose_clean_session() -> None:
    session = make_session(
        NOW,
        initiator_preferences=italian_preferences(),
        partner_preferences=thai_preferences(),
        initiator_preferences_complete=True,
        partner_preferences_complete=True,
        both_preferences_complete=True,
    )

    diagnosis = diagnose(session)

    assert diagnosis.is_valid
    assert diagnosis.issues == ()
    assert diagnosis.should_reset is False


def test_diagnose_identical_preferences_ignores_order() -> None:
    mirrored = DatePreferences(
        cuisines=["japanese", "italian"],
        price_range=["$$"],
        times=["evening"],
        vibes=["romantic"],
        max_distance=10,
    )
    session = make_session(
        NOW,
        initiator_preferences=italian_preferences(),
        partner_preferences=mirrored,
        initiator_preferences_complete=True,
        partner_preferences_complete=True,
        both_preferences_complete=True,
    )

    diagnosis = diagnose(session)

    assert not diagnosis.is_valid
    assert diagnosis.should_reset is True
    assert len(diagnosis.issues) == 1
    assert "Identical preferences" in diagnosis.issues[0]


def test_diagnose_reports_flags_without_data() -> None:
    session = make_session(
        NOW,
        partner_preferences_complete=True,
        both_preferences_complete=True,
    )

    diagnosis = diagnose(session)

    assert diagnosis.should_reset is True
    assert diagnosis.issues == (
        "Partner marked complete but has no preference data",
        "Joint completion flag disagrees with participant state",
    )


def test_diagnose_joint_drift_does_not_require_reset() -> None:
    session = make_session(
        NOW,
        initiator_preferences=italian_preferences(),
        partner_preferences=thai_preferences(),
        initiator_preferences_complete=True,
        partner_preferences_complete=True,
    )

    diagnosis = diagnose(session)

    assert diagnosis.issues == (
        "Joint completion flag disagrees with participant state",
    )
    assert diagnosis.should_reset is False
