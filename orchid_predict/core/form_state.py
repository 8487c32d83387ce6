"""
Form state for a single prediction editing session.

Holds the record being edited:
- Flat fields (especie, genero, clima, ubicacion, fecha_polinizacion,
  tipo_polinizacion)
- The nested condiciones_climaticas sub-record, whose temperatura
  sub-object is merged rather than replaced
- A has_changes flag raised by every mutation
"""

import copy
from typing import Any

from orchid_predict.core.schema import (
    ADVANCED_FIELDS,
    BASIC_FIELDS,
    CLIMATE_KEYS,
    empty_form,
)
from orchid_predict.core.utils import is_blank


class FormState:
    """Addressable, mutable record of field values.

    Values are stored exactly as given; checking them is the
    ValidationEngine's job, so bad input stays visible to it.
    """

    def __init__(self):
        self.data: dict[str, Any] = empty_form()
        self.has_changes: bool = False

    # -----------------------------------------------------------------
    # Mutation
    # -----------------------------------------------------------------

    def update_field(self, field_id: str, value: Any) -> None:
        """Set one top-level field.

        Raises:
            ValueError: If field_id is not part of the form.
        """
        if field_id not in self.data:
            raise ValueError(f"Field '{field_id}' does not exist in the form")
        self.data[field_id] = value
        self.has_changes = True

    def update_condiciones_climaticas(self, key: str, value: Any) -> None:
        """Set one climate sub-field, creating condiciones_climaticas if absent.

        'temperatura' is shallow-merged into the existing temperature
        object so previously set promedio/minima/maxima are kept.

        Raises:
            ValueError: If key is not a known climate sub-field, or if a
                temperatura update is not a dict.
        """
        if key not in CLIMATE_KEYS:
            raise ValueError(f"Unknown climate key '{key}'")

        condiciones = dict(self.data.get("condiciones_climaticas") or {})

        if key == "temperatura":
            if not isinstance(value, dict):
                raise ValueError("temperatura updates must be a dict")
            temperatura = dict(condiciones.get("temperatura") or {})
            temperatura.update(value)
            condiciones["temperatura"] = temperatura
        else:
            condiciones[key] = value

        self.data["condiciones_climaticas"] = condiciones
        self.has_changes = True

    def reset(self) -> None:
        """Clear every field back to the empty default."""
        self.data = empty_form()
        self.has_changes = False

    def mark_saved(self) -> None:
        self.has_changes = False

    # -----------------------------------------------------------------
    # Reading
    # -----------------------------------------------------------------

    def get(self, field_id: str) -> Any:
        return self.data.get(field_id)

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy that later mutations cannot reach."""
        return copy.deepcopy(self.data)

    def has_advanced_fields(self) -> bool:
        """True once any advanced field holds a non-empty value."""
        return any(not is_blank(self.data.get(f)) for f in ADVANCED_FIELDS)

    def basic_payload(self) -> dict[str, Any]:
        """Payload for the initial-prediction operation.

        especie, clima and ubicacion are always sent; genero only when
        it has a value.
        """
        payload = {
            "especie": self.data.get("especie") or "",
            "clima": self.data.get("clima") or "",
            "ubicacion": self.data.get("ubicacion") or "",
        }
        genero = self.data.get("genero")
        if not is_blank(genero):
            payload["genero"] = genero
        return payload

    def full_payload(self) -> dict[str, Any]:
        """Payload for the refine operation: the whole snapshot.

        Empty advanced fields are omitted so the backend does not
        receive blank strings it would have to reject.
        """
        payload = {f: self.data.get(f) or "" for f in BASIC_FIELDS}
        for field_id in ADVANCED_FIELDS:
            value = self.data.get(field_id)
            if not is_blank(value):
                payload[field_id] = copy.deepcopy(value)
        return payload
