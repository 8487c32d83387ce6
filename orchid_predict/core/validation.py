"""
Deterministic validation engine for prediction form snapshots.

All rules are evaluated in code, never remotely. Every rule collects
its errors without short-circuiting, so a snapshot with three problems
reports three messages. Validation is pure: it reads a snapshot and
returns a ValidationVerdict, it never mutates state or raises.
"""

import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from typing import Any

from dateutil.relativedelta import relativedelta

from orchid_predict.core.errors import ESPECIE_REQUIRED_MESSAGE
from orchid_predict.core.schema import Estacion, ValidationVerdict
from orchid_predict.core.utils import ISO_DATE_PATTERN, is_blank, is_number, parse_iso_date

ESPECIE_PATTERN = re.compile(r"^[A-Za-z0-9 \-]+$")
ESPECIE_MIN_LENGTH = 3
MAX_YEARS_IN_PAST = 2

DEFAULT_TIPOS_POLINIZACION: tuple[str, ...] = (
    "artificial",
    "manual",
    "natural",
    "cruzada",
    "autopolinizacion",
)

# (key, low, high, message)
TEMPERATURE_RANGES: tuple[tuple[str, float, float, str], ...] = (
    ("promedio", 0, 50, "La temperatura promedio debe estar entre 0°C y 50°C"),
    ("minima", -10, 40, "La temperatura mínima debe estar entre -10°C y 40°C"),
    ("maxima", 10, 60, "La temperatura máxima debe estar entre 10°C y 60°C"),
)
MAX_PRECIPITACION_MM = 500

ESTACIONES_VALIDAS = tuple(e.value for e in Estacion)


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def validar_especie(especie: Any) -> ValidationVerdict:
    """Validate the species name. Required when validated on its own."""
    if not isinstance(especie, str) or not especie.strip():
        return ValidationVerdict.from_errors([ESPECIE_REQUIRED_MESSAGE])
    return ValidationVerdict.from_errors(_especie_format_errors(especie))


def _especie_format_errors(especie: str) -> list[str]:
    errors = []
    if len(especie.strip()) < ESPECIE_MIN_LENGTH:
        errors.append("La especie debe tener al menos 3 caracteres")
    if not ESPECIE_PATTERN.match(especie):
        errors.append("La especie solo puede contener letras, números y guiones")
    return errors


def validar_fecha_polinizacion(
    fecha: Any,
    today: Callable[[], date] = date.today,
) -> ValidationVerdict:
    """Validate the optional pollination date.

    Must be YYYY-MM-DD, a real calendar day, not after today and not
    more than two years before today.
    """
    if fecha is None or fecha == "":
        return ValidationVerdict.from_errors([])

    if not isinstance(fecha, str) or not ISO_DATE_PATTERN.match(fecha):
        return ValidationVerdict.from_errors(["Formato de fecha inválido. Use YYYY-MM-DD"])

    parsed = parse_iso_date(fecha)
    if parsed is None:
        return ValidationVerdict.from_errors(["Fecha inválida"])

    errors = []
    current = today()
    if parsed > current:
        errors.append("La fecha de polinización no puede ser futura")
    if parsed < current - relativedelta(years=MAX_YEARS_IN_PAST):
        errors.append("La fecha de polinización no puede ser anterior a 2 años")
    return ValidationVerdict.from_errors(errors)


def validar_tipo_polinizacion(
    tipo: Any,
    tipos_validos: Iterable[str] = DEFAULT_TIPOS_POLINIZACION,
) -> ValidationVerdict:
    """Validate the optional pollination type against an enumeration."""
    if tipo is None or tipo == "":
        return ValidationVerdict.from_errors([])
    if tipo not in tuple(tipos_validos):
        return ValidationVerdict.from_errors(["Tipo de polinización no válido"])
    return ValidationVerdict.from_errors([])


def validar_condiciones_climaticas(condiciones: Any) -> ValidationVerdict:
    """Validate the optional, recursively optional climate detail."""
    if condiciones is None:
        return ValidationVerdict.from_errors([])
    if not isinstance(condiciones, Mapping):
        return ValidationVerdict.from_errors(["Las condiciones climáticas deben ser un objeto"])

    errors: list[str] = []
    errors.extend(_temperature_errors(condiciones.get("temperatura")))

    humedad = condiciones.get("humedad")
    if humedad is not None:
        if not is_number(humedad):
            errors.append("La humedad debe ser un número")
        elif not 0 <= humedad <= 100:
            errors.append("La humedad debe estar entre 0% y 100%")

    precipitacion = condiciones.get("precipitacion")
    if precipitacion is not None:
        if not is_number(precipitacion):
            errors.append("La precipitación debe ser un número")
        elif precipitacion < 0:
            errors.append("La precipitación no puede ser negativa")
        elif precipitacion > MAX_PRECIPITACION_MM:
            errors.append("La precipitación parece excesivamente alta (máximo 500mm)")

    estacion = condiciones.get("estacion")
    if estacion is not None and estacion not in ESTACIONES_VALIDAS:
        errors.append("La estación debe ser: primavera, verano, otoño o invierno")

    return ValidationVerdict.from_errors(errors)


def _temperature_errors(temperatura: Any) -> list[str]:
    if temperatura is None:
        return []
    if not isinstance(temperatura, Mapping):
        return ["La temperatura debe ser un objeto con promedio, mínima o máxima"]

    present = {k: v for k, v in temperatura.items() if v is not None}
    numeric = {k: v for k, v in present.items() if is_number(v)}

    errors = []
    # Reported once, however many sub-fields are not numbers
    if len(numeric) < len(present):
        errors.append("La temperatura debe ser un número")

    for key, low, high, message in TEMPERATURE_RANGES:
        value = numeric.get(key)
        if value is not None and not low <= value <= high:
            errors.append(message)

    promedio = numeric.get("promedio")
    minima = numeric.get("minima")
    maxima = numeric.get("maxima")
    if promedio is not None and minima is not None and minima > promedio:
        errors.append("La temperatura mínima no puede ser mayor que el promedio")
    if promedio is not None and maxima is not None and maxima < promedio:
        errors.append("La temperatura máxima no puede ser menor que el promedio")
    return errors


# ---------------------------------------------------------------------------
# Aggregate engine
# ---------------------------------------------------------------------------


class ValidationEngine:
    """Validates whole form snapshots.

    The pollination-type enumeration and the clock are configuration,
    not part of the algorithm: each call site supplies its own list.

    Args:
        tipos_polinizacion: Accepted values for tipo_polinizacion.
        today: Callable returning the current date (injectable for tests).
    """

    def __init__(
        self,
        tipos_polinizacion: Iterable[str] = DEFAULT_TIPOS_POLINIZACION,
        today: Callable[[], date] = date.today,
    ):
        self.tipos_polinizacion = tuple(tipos_polinizacion)
        self.today = today

    def validate(self, form: Mapping[str, Any] | None) -> ValidationVerdict:
        """Validate a snapshot. An empty especie is "not yet filled", not an error."""
        if form is None:
            return ValidationVerdict.from_errors(["Los datos de predicción son requeridos"])

        errors: list[str] = []

        especie = form.get("especie")
        if not is_blank(especie):
            errors.extend(validar_especie(especie).errors)

        errors.extend(
            validar_fecha_polinizacion(form.get("fecha_polinizacion"), today=self.today).errors
        )
        errors.extend(
            validar_tipo_polinizacion(form.get("tipo_polinizacion"), self.tipos_polinizacion).errors
        )
        errors.extend(validar_condiciones_climaticas(form.get("condiciones_climaticas")).errors)

        return ValidationVerdict.from_errors(errors)

    def can_predict(self, form: Mapping[str, Any] | None) -> bool:
        """Valid and with a non-empty especie."""
        if form is None or is_blank(form.get("especie")):
            return False
        return self.validate(form).is_valid


def validar_datos_prediccion(
    datos: Mapping[str, Any] | None,
    tipos_polinizacion: Iterable[str] = DEFAULT_TIPOS_POLINIZACION,
    today: Callable[[], date] = date.today,
) -> ValidationVerdict:
    """Validate a complete prediction request, where especie is required."""
    if datos is None:
        return ValidationVerdict.from_errors(["Los datos de predicción son requeridos"])

    verdict = ValidationEngine(tipos_polinizacion, today).validate(datos)
    if is_blank(datos.get("especie")):
        return ValidationVerdict.from_errors([ESPECIE_REQUIRED_MESSAGE, *verdict.errors])
    return verdict
