"""Supabase Realtime change feed for planning sessions."""

import asyncio
import logging
from dataclasses import dataclass, field
from uuid import UUID

from supabase import AsyncClient, acreate_client

from date_planner.adapters.supabase_session_repository import (
    SESSIONS_TABLE,
    session_from_row,
)
from date_planner.domain.sessions import PlanningSession
from date_planner.services.realtime import ChangeFeed, SessionCallback, Subscription

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseSubscription(Subscription):
    """A Realtime channel bound to one session."""

    client: AsyncClient
    channel: object
    session_id: UUID

    async def unsubscribe(self) -> None:
        """Remove the Realtime channel."""
        await self.client.remove_channel(self.channel)
        _logger.info("Removed realtime channel for session %s", self.session_id)


@dataclass
class SupabaseChangeFeed(ChangeFeed):
    """Delivers ``postgres_changes`` UPDATE events as session snapshots."""

    supabase_url: str
    supabase_key: str
    client: AsyncClient | None = None
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    async def subscribe(
        self, session_id: UUID, callback: SessionCallback
    ) -> Subscription:
        """Open a channel filtered to a single session id."""
        client = await self._client()
        loop = asyncio.get_running_loop()

        def handle(payload: dict[str, object]) -> None:
            row = _extract_record(payload)
            if row is None:
                return
            try:
                session = session_from_row(row)
            except (KeyError, ValueError):
                _logger.exception("Dropping malformed realtime row for %s", session_id)
                return
            task = loop.create_task(_deliver(callback, session))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        channel = client.channel(f"planning-session-{session_id}")
        channel.on_postgres_changes(
            "UPDATE",
            callback=handle,
            table=SESSIONS_TABLE,
            schema="public",
            filter=f"id=eq.{session_id}",
        )
        await channel.subscribe()
        _logger.info("Subscribed to realtime updates for session %s", session_id)
        return SupabaseSubscription(client=client, channel=channel, session_id=session_id)

    async def close(self) -> None:
        """Cancel pending deliveries and remove every open channel."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        if self.client is not None:
            await self.client.remove_all_channels()

    async def _client(self) -> AsyncClient:
        if self.client is None:
            self.client = await acreate_client(self.supabase_url, self.supabase_key)
        return self.client


async def _deliver(callback: SessionCallback, session: PlanningSession) -> None:
    try:
        await callback(session)
    except Exception:
        _logger.exception("Realtime callback failed for session update")


def _extract_record(payload: dict[str, object]) -> dict[str, object] | None:
    data = payload.get("data")
    if isinstance(data, dict):
        record = data.get("record")
        if isinstance(record, dict):
            return record
    record = payload.get("new")
    return record if isinstance(record, dict) else None
