"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from date_planner.config import Settings
from date_planner.containers import AppContainer
from date_planner.domain.errors import SessionStoreError
from date_planner.domain.recommendations import Location, Recommendation
from date_planner.domain.sessions import (
    DatePreferences,
    PlanningMode,
    PlanningSession,
    SessionStatus,
)
from date_planner.services.analysis import AnalysisTriggerGate, RecommendationEngine
from date_planner.services.realtime import ChangeFeed, SessionCallback, Subscription
from date_planner.services.sessions import SessionRepository, SessionService

DEFAULT_LOCATION = Location(
    latitude=37.7749, longitude=-122.4194, address="San Francisco, CA"
)


@dataclass
class FakeClock:
    """Settable clock for expiry tests."""

    now: datetime = field(
        default_factory=lambda: datetime(2026, 5, 1, 18, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    clock: FakeClock = field(default_factory=FakeClock)
    sessions: dict[UUID, PlanningSession] = field(default_factory=dict)
    updates: list[tuple[UUID, dict[str, object]]] = field(default_factory=list)
    fail_updates: bool = False

    def create_session(  # noqa: PLR0913
        self,
        initiator_id: UUID,
        partner_id: UUID,
        participant_ids: list[UUID],
        planning_mode: PlanningMode,
        expires_at: datetime,
    ) -> PlanningSession:
        now = self.clock()
        session = PlanningSession(
            id=uuid4(),
            initiator_id=initiator_id,
            partner_id=partner_id,
            session_status=SessionStatus.ACTIVE,
            planning_mode=planning_mode,
            created_at=now,
            updated_at=now,
            expires_at=expires_at,
            participant_ids=list(participant_ids),
        )
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> PlanningSession | None:
        return self.sessions.get(session_id)

    def find_active_session(
        self, user_id: UUID, partner_id: UUID
    ) -> PlanningSession | None:
        matches = [
            session
            for session in self.sessions.values()
            if session.session_status is SessionStatus.ACTIVE
            and {session.initiator_id, session.partner_id} == {user_id, partner_id}
        ]
        if not matches:
            return None
        return max(matches, key=lambda session: session.created_at)

    def update_session(
        self, session_id: UUID, changes: dict[str, object]
    ) -> PlanningSession:
        if self.fail_updates:
            raise SessionStoreError("store unavailable")
        self.updates.append((session_id, dict(changes)))
        updated = replace(self.sessions[session_id], **changes)
        self.sessions[session_id] = updated
        return updated

    def expire_pair_sessions(
        self, user_id: UUID, partner_id: UUID, now: datetime
    ) -> int:
        return self._expire_where(
            now,
            lambda session: {session.initiator_id, session.partner_id}
            == {user_id, partner_id},
        )

    def expire_user_sessions(self, user_id: UUID, now: datetime) -> int:
        return self._expire_where(
            now, lambda session: user_id in {session.initiator_id, session.partner_id}
        )

    def expire_sessions_before(self, now: datetime) -> int:
        return self._expire_where(now, lambda session: session.expires_at < now)

    def insert(self, session: PlanningSession) -> PlanningSession:
        self.sessions[session.id] = session
        return session

    def _expire_where(self, now: datetime, predicate) -> int:  # type: ignore[no-untyped-def]
        count = 0
        for session_id, session in list(self.sessions.items()):
            if session.session_status is SessionStatus.ACTIVE and predicate(session):
                self.sessions[session_id] = replace(
                    session, session_status=SessionStatus.EXPIRED, updated_at=now
                )
                count += 1
        return count


@dataclass
class FakeSubscription(Subscription):
    """Subscription handle recording teardown."""

    feed: "FakeChangeFeed"
    session_id: UUID
    active: bool = True

    async def unsubscribe(self) -> None:
        self.active = False
        self.feed.callbacks.pop(self.session_id, None)


@dataclass
class FakeChangeFeed(ChangeFeed):
    """Change feed that delivers pushed snapshots to subscribers."""

    callbacks: dict[UUID, SessionCallback] = field(default_factory=dict)
    subscriptions: list[FakeSubscription] = field(default_factory=list)

    async def subscribe(
        self, session_id: UUID, callback: SessionCallback
    ) -> Subscription:
        self.callbacks[session_id] = callback
        subscription = FakeSubscription(feed=self, session_id=session_id)
        self.subscriptions.append(subscription)
        return subscription

    async def push(self, session: PlanningSession) -> None:
        callback = self.callbacks.get(session.id)
        if callback is not None:
            await callback(session)


@dataclass
class FakeRecommendationEngine(RecommendationEngine):
    """Recommendation engine recording calls."""

    score: float = 82.0
    venues: list[dict[str, object]] = field(
        default_factory=lambda: [{"venue_id": "venue_1", "venue_name": "Nopa"}]
    )
    error: Exception | None = None
    release: asyncio.Event | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def recommend(  # noqa: PLR0913
        self,
        *,
        session_id: UUID,
        partner_id: UUID,
        preferences: DatePreferences,
        partner_preferences: DatePreferences,
        location: Location,
    ) -> Recommendation:
        self.calls.append(
            {
                "session_id": session_id,
                "partner_id": partner_id,
                "preferences": preferences,
                "partner_preferences": partner_preferences,
                "location": location,
            }
        )
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return Recommendation(compatibility_score=self.score, venues=self.venues)


def make_session(now: datetime, **overrides: object) -> PlanningSession:
    session = PlanningSession(
        id=uuid4(),
        initiator_id=uuid4(),
        partner_id=uuid4(),
        session_status=SessionStatus.ACTIVE,
        planning_mode=PlanningMode.COLLABORATIVE,
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(hours=24),
    )
    return replace(session, **overrides)


def session_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "initiator_id": str(uuid4()),
        "partner_id": str(uuid4()),
        "participant_ids": None,
        "session_status": "active",
        "planning_mode": "collaborative",
        "initiator_preferences": None,
        "partner_preferences": None,
        "initiator_preferences_complete": False,
        "partner_preferences_complete": False,
        "both_preferences_complete": False,
        "ai_compatibility_score": None,
        "venue_recommendations": None,
        "selected_venue_id": None,
        "created_at": "2026-05-01T18:00:00Z",
        "updated_at": "2026-05-01T18:00:00+00:00",
        "expires_at": "2026-05-02T18:00:00",
    }
    row.update(overrides)
    return row


def italian_preferences() -> DatePreferences:
    return DatePreferences(
        cuisines=["italian", "japanese"],
        price_range=["$$"],
        times=["evening"],
        vibes=["romantic"],
        max_distance=10,
        dietary_restrictions=[],
    )


def thai_preferences() -> DatePreferences:
    return DatePreferences(
        cuisines=["thai", "italian"],
        price_range=["$$", "$$$"],
        times=["evening", "late_night"],
        vibes=["casual"],
        max_distance=5,
        dietary_restrictions=["vegetarian"],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository(clock: FakeClock) -> InMemorySessionRepository:
    return InMemorySessionRepository(clock=clock)


@pytest.fixture
def session_service(
    repository: InMemorySessionRepository, clock: FakeClock
) -> SessionService:
    return SessionService(repository=repository, clock=clock)


@pytest.fixture
def engine() -> FakeRecommendationEngine:
    return FakeRecommendationEngine()


@pytest.fixture
def gate(
    session_service: SessionService, engine: FakeRecommendationEngine
) -> AnalysisTriggerGate:
    return AnalysisTriggerGate(
        session_service=session_service,
        engine=engine,
        default_location=DEFAULT_LOCATION,
    )


@pytest.fixture
def change_feed() -> FakeChangeFeed:
    return FakeChangeFeed()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
    )


@pytest.fixture
def container(
    settings: Settings,
    session_service: SessionService,
    engine: FakeRecommendationEngine,
    gate: AnalysisTriggerGate,
    change_feed: FakeChangeFeed,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_service=session_service,
        recommendation_engine=engine,
        analysis_gate=gate,
        change_feed=change_feed,
        close_resources=close_resources,
    )
