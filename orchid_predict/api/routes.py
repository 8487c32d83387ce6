"""
FastAPI routes for the orchid prediction service.

Endpoints:
- POST   /sessions                   — open a prediction session
- GET    /sessions/{id}              — form, prediction, validation and progress
- PATCH  /sessions/{id}/fields       — set one top-level form field
- PATCH  /sessions/{id}/condiciones  — set one climate sub-field
- POST   /sessions/{id}/predict      — predict now and wait for the outcome
- POST   /sessions/{id}/clear        — reset the form
- DELETE /sessions/{id}              — close the session
- GET    /health                     — health check
"""

import logging
import os
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from orchid_predict.core.orchestrator import OrchestratorOptions
from orchid_predict.core.profiles import get_profile
from orchid_predict.core.schema import DispatchOutcome
from orchid_predict.core.session import Session

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected by the app factory
_session_store = None
_predictor_factory = None


def configure_routes(session_store, predictor_factory):
    """Inject the session store and predictor factory into the routes module.

    `predictor_factory` takes a PredictionProfile and returns the
    Predictor sessions of that profile should use.
    """
    global _session_store, _predictor_factory
    _session_store = session_store
    _predictor_factory = predictor_factory


# --- Request / Response Models ---


class CreateSessionRequest(BaseModel):
    """Request body for POST /sessions."""

    profile: str | None = None
    debounce_delay_ms: float | None = Field(default=None, ge=0)
    auto_update: bool = True


class FieldUpdateRequest(BaseModel):
    field: str
    value: Any = None


class CondicionUpdateRequest(BaseModel):
    key: str
    value: Any = None


class SessionView(BaseModel):
    """Everything the presentation layer renders for one session."""

    session_id: str
    profile: str
    form_data: dict[str, Any]
    prediccion: Any = None
    error: str | None = None
    loading: bool
    has_changes: bool
    last_update: str | None = None
    is_auto_updating: bool
    validation: dict[str, Any]
    progress: dict[str, Any]


class PredictResponse(BaseModel):
    outcome: DispatchOutcome
    session: SessionView


# --- Helpers ---


def _require_store():
    if _session_store is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")
    return _session_store


def _get_session_or_404(session_id: str) -> Session:
    session = _require_store().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return session


def _view(session_id: str, session: Session) -> SessionView:
    orchestrator = session.orchestrator
    snapshot = orchestrator.snapshot()
    prediccion = snapshot.prediccion
    if isinstance(prediccion, BaseModel):
        prediccion = prediccion.model_dump(mode="json")
    return SessionView(
        session_id=session_id,
        profile=session.profile.name,
        form_data=snapshot.form_data,
        prediccion=prediccion,
        error=snapshot.error,
        loading=snapshot.loading,
        has_changes=snapshot.has_changes,
        last_update=snapshot.last_update.isoformat() if snapshot.last_update else None,
        is_auto_updating=orchestrator.is_auto_updating,
        validation=orchestrator.get_validation_state().model_dump(),
        progress=orchestrator.get_form_progress().model_dump(),
    )


# --- Endpoints ---


@router.post("/sessions", response_model=SessionView)
async def create_session(request: CreateSessionRequest):
    """Open a session with an empty form and no prediction."""
    store = _require_store()
    if _predictor_factory is None:
        raise HTTPException(
            status_code=500,
            detail="Prediction backend not configured. Set PREDICTION_API_BASE_URL.",
        )

    profile_name = request.profile or os.getenv("DEFAULT_PREDICTION_PROFILE", "progresiva")
    try:
        profile = get_profile(profile_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    options = OrchestratorOptions(
        debounce_delay_ms=request.debounce_delay_ms,
        auto_update=request.auto_update,
    )
    session_id, session = store.create_session(
        predictor=_predictor_factory(profile),
        profile=profile,
        options=options,
    )
    logger.info("Session %s opened with profile %s", session_id, profile.name)
    return _view(session_id, session)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(session_id: str):
    return _view(session_id, _get_session_or_404(session_id))


@router.patch("/sessions/{session_id}/fields", response_model=SessionView)
async def update_field(session_id: str, request: FieldUpdateRequest):
    """Set one form field. With auto_update this re-arms the debounce timer."""
    session = _get_session_or_404(session_id)
    try:
        session.orchestrator.update_field(request.field, request.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _view(session_id, session)


@router.patch("/sessions/{session_id}/condiciones", response_model=SessionView)
async def update_condiciones(session_id: str, request: CondicionUpdateRequest):
    session = _get_session_or_404(session_id)
    try:
        session.orchestrator.update_condiciones_climaticas(request.key, request.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _view(session_id, session)


@router.post("/sessions/{session_id}/predict", response_model=PredictResponse)
async def predict(session_id: str):
    """Bypass the debounce delay and wait for the attempt's outcome."""
    session = _get_session_or_404(session_id)
    outcome = await session.orchestrator.force_update()
    if isinstance(outcome.prediccion, BaseModel):
        outcome = outcome.model_copy(
            update={"prediccion": outcome.prediccion.model_dump(mode="json")}
        )
    return PredictResponse(outcome=outcome, session=_view(session_id, session))


@router.post("/sessions/{session_id}/clear", response_model=SessionView)
async def clear_session(session_id: str):
    session = _get_session_or_404(session_id)
    session.orchestrator.clear_form()
    return _view(session_id, session)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Close a session; its pending timer and running calls are cancelled."""
    deleted = _require_store().delete_session(session_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return {"success": True, "message": "Session closed"}


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    session_count = _session_store.count() if _session_store else 0
    return {
        "status": "healthy",
        "active_sessions": session_count,
        "predictor_configured": _predictor_factory is not None,
    }
