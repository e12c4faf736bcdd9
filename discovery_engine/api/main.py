"""FastAPI service exposing discovery sessions."""

from __future__ import annotations

import logging
import os
import uuid

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from discovery_engine.adapters.memory import get_trip_store
from discovery_engine.adapters.tool_factory import get_suggestion_source, get_validation_provider
from discovery_engine.api.schemas import (
    ActionResponse,
    HealthResponse,
    ItineraryResponse,
    SavedItemsResponse,
    ScheduleConfirmRequest,
    ScheduleErrorResponse,
    ScheduleOpenResponse,
    StartSessionRequest,
)
from discovery_engine.config.settings import load_settings, resolve_provider_snapshot
from discovery_engine.domain.enums import Intent, ItemType
from discovery_engine.domain.exceptions import ActionNotAllowed, GenerationFailed, NegotiationClosed
from discovery_engine.domain.models import TripBounds
from discovery_engine.engine.session import DiscoveryAdapters, DiscoverySession, SessionSnapshot, negotiation_view
from discovery_engine.infrastructure.cache import enrichment_cache
from discovery_engine.infrastructure.logging import StructuredLogger
from discovery_engine.infrastructure.session_store import get_session_store
from discovery_engine.security.key_manager import get_key_manager
from discovery_engine.shared.exceptions import ToolError

_api_logger = logging.getLogger("trip-discovery.api")

load_dotenv()

app = FastAPI(
    title="trip-discovery",
    version="1.0.0",
    docs_url="/docs" if os.getenv("ENABLE_DOCS", "false").lower() == "true" else None,
    redoc_url=None,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


app.add_middleware(SecurityHeadersMiddleware)

store = get_session_store()
trips = get_trip_store()


@app.exception_handler(ActionNotAllowed)
async def _action_not_allowed(_request: Request, exc: ActionNotAllowed):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NegotiationClosed)
async def _negotiation_closed(_request: Request, exc: NegotiationClosed):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ToolError)
async def _tool_error(_request: Request, exc: ToolError):
    _safe_log_exception(f"{exc.tool} failed", exc)
    return JSONResponse(status_code=502, content={"detail": f"{exc.tool} is unavailable, try again"})


def _session_or_404(session_id: str) -> DiscoverySession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="discovery session not found")
    return session


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@app.get("/diagnostics")
def diagnostics():
    return {
        "providers": resolve_provider_snapshot().model_dump(),
        "enrichment_cache": enrichment_cache.stats,
        "sessions": {"backend": store.backend, "active": store.active_count},
    }


@app.post("/discovery/sessions", response_model=SessionSnapshot, status_code=201)
def start_session(req: StartSessionRequest):
    settings = load_settings()
    bounds = TripBounds(start=req.trip_start, end=req.trip_end)
    adapters = DiscoveryAdapters(
        suggestion_source=get_suggestion_source(),
        validation_provider=get_validation_provider(settings),
        repository=trips.repository(req.trip_id, req.item_type),
        itinerary=trips.itinerary(req.trip_id, bounds if bounds.start or bounds.end else None),
    )
    session_id = uuid.uuid4().hex[:12]
    session = DiscoverySession(
        req.city,
        adapters,
        region=req.region,
        item_type=req.item_type,
        settings=settings,
        bounds=bounds,
        session_id=session_id,
        logger=StructuredLogger(trace_id=session_id),
    )
    store.save(session)
    try:
        return session.start()
    except GenerationFailed:
        return session.snapshot()


@app.get("/discovery/sessions/{session_id}", response_model=SessionSnapshot)
def get_session(session_id: str):
    return _session_or_404(session_id).snapshot()


@app.post("/discovery/sessions/{session_id}/actions/{intent}", response_model=ActionResponse)
def run_action(session_id: str, intent: Intent):
    session = _session_or_404(session_id)
    if intent == Intent.SCHEDULE:
        raise HTTPException(status_code=400, detail="use the schedule endpoint to open a negotiation")
    if intent == Intent.SKIP:
        session.skip()
        outcome = "skipped"
    else:
        outcome = session.save().value
    return ActionResponse(intent=intent.value, outcome=outcome, session=session.snapshot())


@app.post("/discovery/sessions/{session_id}/schedule", response_model=ScheduleOpenResponse)
def open_schedule(session_id: str):
    session = _session_or_404(session_id)
    negotiation = session.open_schedule()
    return ScheduleOpenResponse(negotiation=negotiation_view(negotiation), session=session.snapshot())


@app.post("/discovery/sessions/{session_id}/schedule/confirm", response_model=SessionSnapshot)
def confirm_schedule(session_id: str, req: ScheduleConfirmRequest):
    session = _session_or_404(session_id)
    negotiation = session.negotiation
    if negotiation is None:
        raise HTTPException(status_code=409, detail="no schedule negotiation is open")
    result = negotiation.confirm(req.date, req.time, req.notes)
    if not result.ok:
        body = ScheduleErrorResponse(errors=result.errors, session=session.snapshot())
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))
    return session.snapshot()


@app.post("/discovery/sessions/{session_id}/schedule/cancel", response_model=SessionSnapshot)
def cancel_schedule(session_id: str):
    session = _session_or_404(session_id)
    negotiation = session.negotiation
    if negotiation is None:
        raise HTTPException(status_code=409, detail="no schedule negotiation is open")
    negotiation.cancel()
    return session.snapshot()


@app.post("/discovery/sessions/{session_id}/retry", response_model=SessionSnapshot)
def retry_session(session_id: str):
    session = _session_or_404(session_id)
    try:
        return session.retry()
    except GenerationFailed:
        return session.snapshot()


@app.delete("/discovery/sessions/{session_id}", status_code=204)
def exit_session(session_id: str):
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="discovery session not found")


@app.get("/trips/{trip_id}/saved", response_model=SavedItemsResponse)
def saved_items(trip_id: str, item_type: ItemType = ItemType.ATTRACTION):
    repo = trips.repository(trip_id, item_type)
    return SavedItemsResponse(trip_id=trip_id, item_type=item_type, items=repo.records())


@app.get("/trips/{trip_id}/itinerary", response_model=ItineraryResponse)
def itinerary(trip_id: str):
    return ItineraryResponse(trip_id=trip_id, entries=trips.itinerary(trip_id).entries())


def _safe_log_exception(context: str, exc: Exception) -> None:
    try:
        safe_msg = get_key_manager().scrub_text(str(exc))
        _api_logger.error(f"{context}: {safe_msg}")
    except Exception:
        _api_logger.error(f"{context}: [exception details redacted]")
