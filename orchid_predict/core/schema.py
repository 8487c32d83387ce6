"""
Data models for the prediction orchestrator.

The form being edited is kept as a plain dict (see form_state.py) so
that raw user input can be validated without being coerced. These
Pydantic models describe everything that crosses a boundary: the
prediction returned by the remote service, the verdicts handed to the
presentation layer, and the public state snapshot.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# --- Enums ---


class Estacion(str, Enum):
    """The four seasons accepted in condiciones_climaticas.estacion."""

    PRIMAVERA = "primavera"
    VERANO = "verano"
    OTONO = "otoño"
    INVIERNO = "invierno"


class TipoPrediccion(str, Enum):
    """Which remote operation produced a prediction."""

    INICIAL = "inicial"
    REFINADA = "refinada"


class PredictionOperation(str, Enum):
    """The two remote operations the dispatcher can choose between."""

    INITIAL = "predict_initial"
    REFINE = "predict_refine"


class DispatchStatus(str, Enum):
    """Terminal status of a single dispatch attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BLOCKED = "blocked"
    SKIPPED = "skipped"
    STALE = "stale"


# --- Form field layout ---

BASIC_FIELDS: tuple[str, ...] = ("especie", "genero", "clima", "ubicacion")
ADVANCED_FIELDS: tuple[str, ...] = (
    "fecha_polinizacion",
    "tipo_polinizacion",
    "condiciones_climaticas",
)
# Fields always counted by the progress reporter.
PROGRESS_BASIC_FIELDS: tuple[str, ...] = ("especie", "clima", "ubicacion")

CLIMATE_KEYS: tuple[str, ...] = ("temperatura", "humedad", "precipitacion", "estacion")
TEMPERATURE_KEYS: tuple[str, ...] = ("promedio", "minima", "maxima")


def empty_form() -> dict[str, Any]:
    """Return a fresh, empty form snapshot."""
    return {
        "especie": "",
        "genero": "",
        "clima": "",
        "ubicacion": "",
        "fecha_polinizacion": "",
        "tipo_polinizacion": "",
        "condiciones_climaticas": None,
    }


# --- Remote result ---


class PredictionResult(BaseModel):
    """A prediction returned by the remote service.

    Only the first four fields are interpreted; everything else the
    backend sends is carried verbatim in `detalle`.
    """

    dias_estimados: float = Field(
        ...,
        description="Estimated number of days until maturation/germination",
    )
    confianza: float = Field(
        ...,
        ge=0,
        le=100,
        description="Confidence of the estimate, 0-100",
    )
    fecha_estimada: str | None = Field(
        default=None,
        description="Estimated date (YYYY-MM-DD)",
    )
    tipo_prediccion: TipoPrediccion = Field(
        default=TipoPrediccion.INICIAL,
        description="Whether this is an initial or refined estimate",
    )
    detalle: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form backend details, passed through unmodified",
    )


# --- Derived views ---


class ValidationVerdict(BaseModel):
    """Result of validating one field or a whole snapshot."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationVerdict":
        return cls(is_valid=not errors, errors=list(errors))


class ValidationState(BaseModel):
    """Validation view exposed by the orchestrator."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    can_predict: bool


class FormProgress(BaseModel):
    """Completion view exposed by the orchestrator."""

    percentage: float
    filled_fields: int
    total_fields: int


class DispatchOutcome(BaseModel):
    """What a single dispatch attempt did.

    Returned from every attempt in addition to the configured callbacks
    so callers can await a confirmation instead of watching side effects.
    """

    status: DispatchStatus
    attempt: int = Field(default=0, description="Attempt counter value, 0 when no call was issued")
    operation: PredictionOperation | None = None
    prediccion: Any = None
    error: str | None = None


class OrchestratorSnapshot(BaseModel):
    """Read-only copy of the externally observable orchestrator state."""

    form_data: dict[str, Any]
    prediccion: Any = None
    error: str | None = None
    loading: bool = False
    has_changes: bool = False
    last_update: datetime | None = None
