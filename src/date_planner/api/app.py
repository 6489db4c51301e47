"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse

from date_planner.api.admin import router as admin_router
from date_planner.api.models import (
    CompleteSessionRequest,
    CreateSessionRequest,
    PreferencesPayload,
)
from date_planner.app_logging import configure_logging
from date_planner.containers import AppContainer
from date_planner.domain.errors import (
    AnalysisError,
    NotParticipantError,
    SessionClosedError,
    SessionError,
    SessionExpiredError,
    SessionNotFoundError,
    SessionStoreError,
)
from date_planner.domain.recommendations import Location
from date_planner.domain.sessions import PlanningSession
from date_planner.services.session_state import participant_view

_ERROR_STATUS: list[tuple[type[SessionError], int]] = [
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (NotParticipantError, status.HTTP_403_FORBIDDEN),
    (SessionExpiredError, status.HTTP_410_GONE),
    (SessionClosedError, status.HTTP_409_CONFLICT),
    (SessionStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (AnalysisError, status.HTTP_502_BAD_GATEWAY),
]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(SessionError)
    async def session_error_handler(
        request: Request, exc: SessionError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Session request failed: %s", exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions")
    async def create_session(
        body: CreateSessionRequest, request: Request, x_user_id: UUID = Header()
    ) -> dict[str, object]:
        """Return the pair's active session or create a new one."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.create_session(
            initiator_id=x_user_id,
            partner_id=body.partner_id,
            participant_ids=body.participant_ids,
            planning_mode=body.planning_mode,
            force_new=body.force_new,
        )
        return _session_payload(session, x_user_id)

    @app.get("/sessions/active")
    async def active_session(
        partner_id: UUID, request: Request, x_user_id: UUID = Header()
    ) -> dict[str, object]:
        """Return the caller's active session with a partner, if any."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.get_active_session(
            x_user_id, partner_id
        )
        if session is None:
            return {"session": None, "view": None}
        return _session_payload(session, x_user_id)

    @app.get("/sessions/{session_id}")
    async def get_session(
        session_id: UUID, request: Request, x_user_id: UUID = Header()
    ) -> dict[str, object]:
        """Return a session the caller participates in."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.get_session(session_id, x_user_id)
        return _session_payload(session, x_user_id)

    @app.put("/sessions/{session_id}/preferences")
    async def submit_preferences(  # noqa: PLR0913
        session_id: UUID,
        body: PreferencesPayload,
        request: Request,
        x_user_id: UUID = Header(),
        latitude: float | None = Query(default=None, ge=-90, le=90),
        longitude: float | None = Query(default=None, ge=-180, le=180),
        address: str | None = None,
    ) -> dict[str, object]:
        """Store the caller's preferences and trigger analysis when both are in."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.update_preferences(
            session_id, x_user_id, body.to_domain()
        )
        location = None
        if latitude is not None and longitude is not None:
            location = Location(latitude=latitude, longitude=longitude, address=address)
        try:
            analyzed = await state_container.analysis_gate.evaluate(
                session, x_user_id, location
            )
        except AnalysisError as exc:
            payload = _session_payload(session, x_user_id)
            payload["analysis_error"] = str(exc)
            return payload
        return _session_payload(analyzed or session, x_user_id)

    @app.post("/sessions/{session_id}/complete")
    async def complete_session(
        session_id: UUID,
        body: CompleteSessionRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Mark a session completed with the selected venue."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.complete_session(
            session_id, x_user_id, body.venue_id
        )
        return _session_payload(session, x_user_id)

    return app


def _session_payload(session: PlanningSession, user_id: UUID) -> dict[str, object]:
    return {"session": session, "view": participant_view(session, user_id)}


def _status_for(exc: SessionError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST
