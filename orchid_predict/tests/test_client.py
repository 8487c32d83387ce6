"""
Tests for the HTTP prediction client, using httpx.MockTransport.

Tests cover:
- Endpoint routing and request bodies for the three operations
- Response normalization into PredictionResult
- Transport, timeout and HTTP error mapping
- Curl logging with redacted credentials
- Environment-driven construction and per-profile predictor selection
"""

import json

import httpx
import pytest

from orchid_predict.client.predictor import (
    ML_CANTIDAD,
    ML_RESPONSABLE,
    PredictionServiceClient,
    _build_safe_curl,
    build_ml_request,
    build_predictor,
    get_prediction_client,
    normalize_result,
)
from orchid_predict.core.dispatcher import SingleOperationPredictor
from orchid_predict.core.errors import (
    NETWORK_ERROR_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
    PredictionRemoteError,
    PredictionTimeoutError,
    PredictionTransportError,
)
from orchid_predict.core.profiles import ML_POLINIZACION, PROGRESIVA
from orchid_predict.core.schema import TipoPrediccion

BASE_URL = "https://orquideas.test/api/"


def _client(handler) -> tuple[PredictionServiceClient, list[httpx.Request]]:
    """Build a client whose requests go to `handler` and are recorded."""
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(recording),
    )
    return PredictionServiceClient(BASE_URL, http_client=http_client), seen


class TestOperations:
    @pytest.mark.asyncio
    async def test_predict_initial(self):
        client, seen = _client(lambda r: httpx.Response(
            200, json={"dias_estimados": 120, "confianza": 70, "fecha_estimada": "2024-10-01"},
        ))
        result = await client.predict_initial({"especie": "cattleya", "clima": "", "ubicacion": ""})

        assert seen[0].url.path == "/api/predicciones/polinizacion/"
        assert json.loads(seen[0].content) == {"especie": "cattleya", "clima": "", "ubicacion": ""}
        assert result.dias_estimados == 120
        assert result.fecha_estimada == "2024-10-01"
        assert result.tipo_prediccion == TipoPrediccion.INICIAL
        await client.aclose()

    @pytest.mark.asyncio
    async def test_predict_refine_unwraps_envelope(self):
        client, seen = _client(lambda r: httpx.Response(200, json={
            "success": True,
            "prediccion": {"dias_estimados": 110, "confianza": 85, "tipo_prediccion": "refinada"},
        }))
        result = await client.predict_refine({"especie": "cattleya"})

        assert seen[0].url.path == "/api/predicciones/polinizacion/refinar/"
        assert result.tipo_prediccion == TipoPrediccion.REFINADA
        assert result.confianza == 85
        await client.aclose()

    @pytest.mark.asyncio
    async def test_refine_unsuccessful_envelope(self):
        client, _ = _client(lambda r: httpx.Response(
            200, json={"success": False, "error": "Datos insuficientes"},
        ))
        with pytest.raises(PredictionRemoteError, match="Datos insuficientes"):
            await client.predict_refine({"especie": "cattleya"})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_predict_polinizacion_ml(self):
        client, seen = _client(lambda r: httpx.Response(
            200, json={"dias_estimados": 95, "confianza": 80, "fecha_estimada_semillas": "2024-09-04"},
        ))
        result = await client.predict_polinizacion_ml({
            "especie": "trianae",
            "genero": "Cattleya",
            "fecha_polinizacion": "2024-02-15",
            "tipo_polinizacion": "sibling",
        })

        assert seen[0].url.path == "/api/predicciones/polinizacion/ml/"
        body = json.loads(seen[0].content)
        assert body["fechapol"] == "2024-02-15"
        assert body["Tipo"] == "SIBLING"
        assert result.fecha_estimada == "2024-09-04"
        await client.aclose()


class TestNormalization:
    def test_extra_keys_kept_in_detalle(self):
        result = normalize_result(
            {"dias_estimados": 100, "confianza": 60, "modelo": "rf-v2"},
            TipoPrediccion.INICIAL,
        )
        assert result.detalle == {"modelo": "rf-v2"}

    def test_missing_confianza_defaults(self):
        result = normalize_result({"dias_estimados": 100}, TipoPrediccion.INICIAL)
        assert result.confianza == 50

    def test_missing_dias_is_remote_error(self):
        with pytest.raises(PredictionRemoteError):
            normalize_result({"confianza": 60}, TipoPrediccion.INICIAL)

    def test_ml_request_defaults(self):
        body = build_ml_request({"especie": "trianae", "genero": "Cattleya"})
        assert body["ubicacion"] == "No especificada"
        assert body["responsable"] == "Usuario"
        assert body["Tipo"] == "SELF"
        assert body["cantidad"] == 1
        assert body["disponible"] == 1

    def test_ml_request_fixed_fields(self):
        body = build_ml_request({
            "especie": "trianae",
            "genero": "Cattleya",
            "fecha_polinizacion": "2024-02-15",
            "ubicacion": "Vivero norte",
        })
        assert body["ubicacion"] == "Vivero norte"
        assert body["responsable"] == ML_RESPONSABLE
        assert body["cantidad"] == ML_CANTIDAD
        assert set(body) == {
            "fechapol", "genero", "especie", "ubicacion",
            "responsable", "Tipo", "cantidad", "disponible",
        }


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = _client(handler)
        with pytest.raises(PredictionTransportError) as exc_info:
            await client.predict_initial({"especie": "cattleya"})
        assert exc_info.value.message == NETWORK_ERROR_MESSAGE
        await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client, _ = _client(handler)
        with pytest.raises(PredictionTimeoutError) as exc_info:
            await client.predict_initial({"especie": "cattleya"})
        assert exc_info.value.message == TIMEOUT_ERROR_MESSAGE
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_body_message(self):
        client, _ = _client(lambda r: httpx.Response(
            400, json={"error": "Especie no soportada", "error_code": "ESPECIE"},
        ))
        with pytest.raises(PredictionRemoteError) as exc_info:
            await client.predict_initial({"especie": "cattleya"})
        assert exc_info.value.message == "Especie no soportada"
        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "ESPECIE"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_status_fallback_message(self):
        client, _ = _client(lambda r: httpx.Response(503, text="unavailable"))
        with pytest.raises(PredictionRemoteError) as exc_info:
            await client.predict_initial({"especie": "cattleya"})
        assert exc_info.value.message == "El modelo de predicción no está disponible temporalmente"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_success_body(self):
        client, _ = _client(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(PredictionRemoteError):
            await client.predict_initial({"especie": "cattleya"})
        await client.aclose()


class TestCurlLogging:
    def test_authorization_redacted(self):
        request = httpx.Request(
            "POST",
            BASE_URL + "predicciones/polinizacion/",
            headers={"Authorization": "Bearer secret"},
            json={"especie": "cattleya"},
        )
        curl = _build_safe_curl(request)
        assert "secret" not in curl
        assert "[REDACTED]" in curl
        assert "cattleya" in curl

    def test_long_body_truncated(self):
        request = httpx.Request("POST", BASE_URL, content=b"x" * 3000)
        assert "[TRUNCATED]" in _build_safe_curl(request)


class TestFactory:
    def test_missing_base_url(self, monkeypatch):
        monkeypatch.delenv("PREDICTION_API_BASE_URL", raising=False)
        with pytest.raises(ValueError, match="PREDICTION_API_BASE_URL"):
            get_prediction_client()

    @pytest.mark.asyncio
    async def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("PREDICTION_API_BASE_URL", "https://orquideas.test/api")
        monkeypatch.setenv("PREDICTION_API_TOKEN", "tok")
        client = get_prediction_client()
        assert isinstance(client, PredictionServiceClient)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_build_predictor_per_profile(self):
        client = PredictionServiceClient(BASE_URL)
        assert build_predictor(PROGRESIVA, client) is client
        assert isinstance(build_predictor(ML_POLINIZACION, client), SingleOperationPredictor)
        await client.aclose()
