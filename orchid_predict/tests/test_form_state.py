"""
Unit tests for FormState and form progress.

Tests cover:
- Field updates and the has_changes flag
- Climate detail creation and temperature merge semantics
- Snapshot isolation
- Payload construction for the initial and refine operations
- Progress with the dynamic advanced-field denominator
"""

import pytest

from orchid_predict.core.form_state import FormState
from orchid_predict.core.progress import get_form_progress
from orchid_predict.core.schema import empty_form


class TestFieldUpdates:
    def test_starts_empty(self):
        form = FormState()
        assert form.data == empty_form()
        assert form.has_changes is False

    def test_update_sets_value_and_flag(self):
        form = FormState()
        form.update_field("especie", "cattleya")
        assert form.get("especie") == "cattleya"
        assert form.has_changes is True

    def test_unknown_field_rejected(self):
        form = FormState()
        with pytest.raises(ValueError, match="does not exist"):
            form.update_field("color", "rojo")

    def test_reset_and_mark_saved(self):
        form = FormState()
        form.update_field("especie", "cattleya")
        form.mark_saved()
        assert form.has_changes is False
        form.reset()
        assert form.data == empty_form()


class TestCondicionesClimaticas:
    def test_creates_sub_record(self):
        form = FormState()
        form.update_condiciones_climaticas("humedad", 70)
        assert form.get("condiciones_climaticas") == {"humedad": 70}

    def test_temperature_merge(self):
        form = FormState()
        form.update_condiciones_climaticas("temperatura", {"promedio": 25})
        form.update_condiciones_climaticas("temperatura", {"minima": 18})
        assert form.get("condiciones_climaticas")["temperatura"] == {"promedio": 25, "minima": 18}

    def test_temperature_overwrite_one_key(self):
        form = FormState()
        form.update_condiciones_climaticas("temperatura", {"promedio": 25, "minima": 18})
        form.update_condiciones_climaticas("temperatura", {"promedio": 22})
        assert form.get("condiciones_climaticas")["temperatura"] == {"promedio": 22, "minima": 18}

    def test_other_keys_kept(self):
        form = FormState()
        form.update_condiciones_climaticas("estacion", "verano")
        form.update_condiciones_climaticas("temperatura", {"promedio": 25})
        assert form.get("condiciones_climaticas")["estacion"] == "verano"

    def test_unknown_key_rejected(self):
        form = FormState()
        with pytest.raises(ValueError):
            form.update_condiciones_climaticas("viento", 10)

    def test_temperature_must_be_dict(self):
        form = FormState()
        with pytest.raises(ValueError):
            form.update_condiciones_climaticas("temperatura", 25)


class TestSnapshotsAndPayloads:
    def test_snapshot_is_isolated(self):
        form = FormState()
        form.update_condiciones_climaticas("temperatura", {"promedio": 25})
        snapshot = form.snapshot()
        snapshot["condiciones_climaticas"]["temperatura"]["promedio"] = 99
        assert form.get("condiciones_climaticas")["temperatura"]["promedio"] == 25

    def test_basic_payload(self):
        form = FormState()
        form.update_field("especie", "cattleya")
        assert form.basic_payload() == {"especie": "cattleya", "clima": "", "ubicacion": ""}

    def test_basic_payload_includes_genero_when_set(self):
        form = FormState()
        form.update_field("especie", "trianae")
        form.update_field("genero", "Cattleya")
        assert form.basic_payload()["genero"] == "Cattleya"

    def test_full_payload_omits_blank_advanced_fields(self):
        form = FormState()
        form.update_field("especie", "cattleya")
        form.update_field("fecha_polinizacion", "2024-02-15")
        assert form.full_payload() == {
            "especie": "cattleya",
            "genero": "",
            "clima": "",
            "ubicacion": "",
            "fecha_polinizacion": "2024-02-15",
        }

    def test_empty_temperature_is_not_advanced(self):
        form = FormState()
        form.update_condiciones_climaticas("temperatura", {})
        assert form.has_advanced_fields() is False


class TestFormProgress:
    def test_empty_form(self):
        progress = get_form_progress(empty_form())
        assert progress.percentage == 0
        assert progress.filled_fields == 0
        assert progress.total_fields == 3

    def test_basic_fields_only(self):
        form = {**empty_form(), "especie": "cattleya", "clima": "templado"}
        progress = get_form_progress(form)
        assert progress.filled_fields == 2
        assert progress.total_fields == 3
        assert progress.percentage == 66.67

    def test_all_basic_fields_reach_100(self):
        form = {**empty_form(), "especie": "cattleya", "clima": "templado", "ubicacion": "vivero"}
        assert get_form_progress(form).percentage == 100

    def test_advanced_field_expands_denominator(self):
        form = {**empty_form(), "especie": "cattleya", "fecha_polinizacion": "2024-02-15"}
        progress = get_form_progress(form)
        assert progress.filled_fields == 2
        assert progress.total_fields == 6

    def test_genero_does_not_count(self):
        form = {**empty_form(), "genero": "Cattleya"}
        assert get_form_progress(form).filled_fields == 0
