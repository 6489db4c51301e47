"""Keeps a local session copy in sync with the store's change feed."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from date_planner.domain.errors import SessionError
from date_planner.domain.recommendations import Location
from date_planner.domain.sessions import PlanningSession
from date_planner.services.analysis import AnalysisTriggerGate
from date_planner.services.sessions import SessionService

_logger = logging.getLogger(__name__)

SessionCallback = Callable[[PlanningSession], Awaitable[None]]


class Subscription(Protocol):
    """Handle for an active change-feed subscription."""

    async def unsubscribe(self) -> None:
        """Stop delivering events for this subscription."""


class ChangeFeed(Protocol):
    """Push notifications of full-row session snapshots."""

    async def subscribe(
        self, session_id: UUID, callback: SessionCallback
    ) -> Subscription:
        """Deliver every update of a session to the callback."""


@dataclass
class SessionPropagator:
    """Mirrors one session for one participant and re-checks the trigger gate.

    Remote snapshots replace the local copy outright. Only one session is
    watched at a time; watching another session tears down the previous
    subscription.
    """

    session_service: SessionService
    change_feed: ChangeFeed
    gate: AnalysisTriggerGate
    user_id: UUID
    location: Location | None = None
    session: PlanningSession | None = field(default=None, init=False)
    _subscription: Subscription | None = field(default=None, init=False)
    _listeners: list[SessionCallback] = field(default_factory=list, init=False)

    @property
    def is_watching(self) -> bool:
        """Return True while a subscription is open."""
        return self._subscription is not None

    def add_listener(self, listener: SessionCallback) -> None:
        """Register a callback invoked after each local copy replacement."""
        self._listeners.append(listener)

    async def watch(self, session_id: UUID) -> PlanningSession:
        """Load a session, subscribe to its changes and check the gate."""
        if (
            self._subscription is not None
            and self.session is not None
            and self.session.id == session_id
        ):
            return self.session
        await self.stop()

        session = self.session_service.get_session(session_id, self.user_id)
        self.session = session
        self._subscription = await self.change_feed.subscribe(
            session_id, self._on_remote_update
        )
        _logger.info("Watching session %s for user %s", session_id, self.user_id)
        await self._check_gate(session)
        return self.session

    async def refresh(self) -> PlanningSession | None:
        """Re-read the watched session through the repair path."""
        if self.session is None:
            return None
        await self._replace(
            self.session_service.get_session(self.session.id, self.user_id)
        )
        return self.session

    async def apply_local(self, session: PlanningSession) -> None:
        """Adopt a session returned by one of this process's own writes."""
        if self.session is None or session.id != self.session.id:
            return
        await self._replace(session)

    async def stop(self) -> None:
        """Tear down the subscription and forget the local copy."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.unsubscribe()
            _logger.info("Stopped watching session %s", self._watched_id())
        self.session = None

    async def _on_remote_update(self, session: PlanningSession) -> None:
        if self.session is None or session.id != self.session.id:
            _logger.debug("Ignoring update for unwatched session %s", session.id)
            return
        await self._replace(session)

    async def _replace(self, session: PlanningSession) -> None:
        self.session = session
        for listener in self._listeners:
            await listener(session)
        await self._check_gate(session)

    async def _check_gate(self, session: PlanningSession) -> None:
        try:
            stored = await self.gate.evaluate(session, self.user_id, self.location)
        except SessionError:
            _logger.warning("Analysis will retry on the next qualifying update")
            return
        if stored is not None and self._watched_id() == stored.id:
            self.session = stored

    def _watched_id(self) -> UUID | None:
        return self.session.id if self.session else None
