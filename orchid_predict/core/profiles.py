"""
Call-site presets for the prediction orchestrator.

Each screen that predicts from the polinización form differs only in
configuration: how long to wait after the last edit, which pollination
types it accepts, which fields must be present before a remote call,
and whether the backend exposes one operation or an initial/refine pair.
"""

from dataclasses import dataclass

from orchid_predict.core.errors import ESPECIE_REQUIRED_MESSAGE
from orchid_predict.core.validation import DEFAULT_TIPOS_POLINIZACION


@dataclass(frozen=True)
class PredictionProfile:
    """Configuration of one prediction call site."""

    name: str
    debounce_delay_ms: int
    tipos_polinizacion: tuple[str, ...]
    # (field_id, guard message), checked in order before any remote call
    required_fields: tuple[tuple[str, str], ...]
    single_operation: bool = False


PROGRESIVA = PredictionProfile(
    name="progresiva",
    debounce_delay_ms=1000,
    tipos_polinizacion=DEFAULT_TIPOS_POLINIZACION,
    required_fields=(("especie", ESPECIE_REQUIRED_MESSAGE),),
)

ML_POLINIZACION = PredictionProfile(
    name="ml_polinizacion",
    debounce_delay_ms=800,
    tipos_polinizacion=("self", "sibling", "hibrida"),
    required_fields=(
        ("fecha_polinizacion", "Fecha de polinización es requerida"),
        ("genero", "Género de la madre es requerido"),
        ("especie", "Especie de la madre es requerida"),
    ),
    single_operation=True,
)

PROFILES: dict[str, PredictionProfile] = {
    p.name: p for p in (PROGRESIVA, ML_POLINIZACION)
}


def get_profile(name: str) -> PredictionProfile:
    """Look up a preset by name.

    Raises:
        ValueError: If no preset has that name.
    """
    profile = PROFILES.get(name)
    if profile is None:
        raise ValueError(
            f"Unknown prediction profile '{name}'. Choose from: {sorted(PROFILES)}"
        )
    return profile
