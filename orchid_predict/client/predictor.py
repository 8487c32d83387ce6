"""
HTTP client for the remote prediction backend.

Implements the Predictor protocol on top of httpx.AsyncClient. Every
failure leaves this module as one of the PredictionError subclasses, so
the dispatcher only ever needs the exception's message.

Configuration comes from environment variables (see get_prediction_client).
"""

import logging
import os
from typing import Any

import httpx
from dotenv import load_dotenv
from pydantic import ValidationError

from orchid_predict.core.dispatcher import SingleOperationPredictor
from orchid_predict.core.errors import (
    NETWORK_ERROR_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
    PredictionRemoteError,
    PredictionTimeoutError,
    PredictionTransportError,
)
from orchid_predict.core.profiles import PredictionProfile
from orchid_predict.core.schema import PredictionResult, TipoPrediccion
from orchid_predict.core.utils import is_blank, is_truthy

load_dotenv()

logger = logging.getLogger(__name__)

INITIAL_ENDPOINT = "predicciones/polinizacion/"
REFINE_ENDPOINT = "predicciones/polinizacion/refinar/"
ML_ENDPOINT = "predicciones/polinizacion/ml/"

INITIAL_TIMEOUT_SECONDS = 30.0
REFINE_TIMEOUT_SECONDS = 25.0

# Fallback messages by HTTP status when the body carries none
STATUS_MESSAGES = {
    400: "Datos de entrada inválidos",
    401: "Sesión expirada. Por favor inicia sesión nuevamente.",
    403: "No tienes permisos para realizar predicciones",
    503: "El modelo de predicción no está disponible temporalmente",
}
SERVER_ERROR_MESSAGE = "Error del servidor al procesar la predicción"

# The form has no owner or capsule-count fields; the ML endpoint still requires them
ML_RESPONSABLE = "Usuario"
ML_CANTIDAD = 1

FECHA_KEYS = ("fecha_estimada", "fecha_estimada_semillas", "fecha_estimada_maduracion")


def _build_safe_curl(request: httpx.Request) -> str:
    """Build a debug curl command with sensitive headers redacted."""
    curl = f"curl -X {request.method} '{request.url}'"
    for key, value in request.headers.items():
        header_value = value
        if key.lower() in {"authorization", "x-api-key", "api-key"}:
            header_value = "[REDACTED]"
        curl += f" -H '{key}: {header_value}'"

    if request.content:
        body = request.content.decode(errors="ignore")
        max_body_chars = 2000
        if len(body) > max_body_chars:
            body = body[:max_body_chars] + "... [TRUNCATED]"
        curl += f" -d '{body}'"
    return curl


class CurlLoggingAsyncClient(httpx.AsyncClient):
    async def send(self, request, *args, **kwargs):
        if is_truthy(os.getenv("LOG_PREDICTION_CURL"), default=False):
            logger.debug("Outbound prediction request: %s", _build_safe_curl(request))
        return await super().send(request, *args, **kwargs)


def normalize_result(data: dict[str, Any], default_tipo: TipoPrediccion) -> PredictionResult:
    """Turn a backend response body into a PredictionResult.

    Unknown keys are kept in `detalle`; a missing or unrecognized
    tipo_prediccion falls back to `default_tipo`.

    Raises:
        PredictionRemoteError: If the body lacks dias_estimados or holds
            out-of-range values.
    """
    if not isinstance(data, dict) or data.get("dias_estimados") is None:
        raise PredictionRemoteError("Respuesta de predicción incompleta")

    fecha = next((data[k] for k in FECHA_KEYS if data.get(k)), None)
    try:
        tipo = TipoPrediccion(data.get("tipo_prediccion"))
    except ValueError:
        tipo = default_tipo

    detalle = {
        k: v
        for k, v in data.items()
        if k not in {"dias_estimados", "confianza", "tipo_prediccion", *FECHA_KEYS}
    }
    confianza = data.get("confianza")
    try:
        return PredictionResult(
            dias_estimados=data["dias_estimados"],
            confianza=50 if confianza is None else confianza,
            fecha_estimada=fecha,
            tipo_prediccion=tipo,
            detalle=detalle,
        )
    except ValidationError as e:
        raise PredictionRemoteError("Respuesta de predicción inválida") from e


def build_ml_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Map a polinización form payload onto the ML endpoint's request shape."""
    tipo = payload.get("tipo_polinizacion")
    return {
        "fechapol": payload.get("fecha_polinizacion", ""),
        "genero": payload.get("genero", ""),
        "especie": payload.get("especie", ""),
        "ubicacion": payload.get("ubicacion") or "No especificada",
        "responsable": ML_RESPONSABLE,
        "Tipo": tipo.upper() if not is_blank(tipo) else "SELF",
        "cantidad": ML_CANTIDAD,
        "disponible": 1,
    }


class PredictionServiceClient:
    """Async client for the polinización prediction endpoints.

    Args:
        base_url: Backend base URL, e.g. "https://host/api/".
        token: Optional bearer token.
        timeout: Default request timeout in seconds.
        verify_ssl: Whether to verify TLS certificates.
        http_client: Pre-built httpx.AsyncClient (tests use MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = INITIAL_TIMEOUT_SECONDS,
        verify_ssl: bool = True,
        http_client: httpx.AsyncClient | None = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        base = base_url if base_url.endswith("/") else base_url + "/"
        self._client = http_client or CurlLoggingAsyncClient(
            base_url=base,
            headers=headers,
            timeout=timeout,
            verify=verify_ssl,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -----------------------------------------------------------------
    # Remote operations
    # -----------------------------------------------------------------

    async def predict_initial(self, payload: dict[str, Any]) -> PredictionResult:
        """Initial estimate from the basic fields."""
        data = await self._post(INITIAL_ENDPOINT, payload, INITIAL_TIMEOUT_SECONDS)
        return normalize_result(data, TipoPrediccion.INICIAL)

    async def predict_refine(self, payload: dict[str, Any]) -> PredictionResult:
        """Refined estimate from the full snapshot.

        The backend wraps the result as {"success": true, "prediccion": {...}}.
        """
        data = await self._post(REFINE_ENDPOINT, payload, REFINE_TIMEOUT_SECONDS)
        if not data.get("success"):
            raise PredictionRemoteError(
                data.get("error") or "Error desconocido en refinamiento",
                error_code=data.get("error_code"),
            )
        return normalize_result(data.get("prediccion") or {}, TipoPrediccion.REFINADA)

    async def predict_polinizacion_ml(self, payload: dict[str, Any]) -> PredictionResult:
        """Single-operation ML estimate used by the quick prediction widget."""
        data = await self._post(ML_ENDPOINT, build_ml_request(payload), INITIAL_TIMEOUT_SECONDS)
        return normalize_result(data, TipoPrediccion.INICIAL)

    # -----------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------

    async def _post(self, endpoint: str, payload: dict[str, Any], timeout: float) -> dict:
        logger.info("POST %s", endpoint)
        try:
            response = await self._client.post(endpoint, json=payload, timeout=timeout)
        except httpx.TimeoutException as e:
            raise PredictionTimeoutError(TIMEOUT_ERROR_MESSAGE) from e
        except httpx.TransportError as e:
            raise PredictionTransportError(NETWORK_ERROR_MESSAGE) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            raise self._remote_error(response.status_code, data)
        if not isinstance(data, dict):
            raise PredictionRemoteError(
                "Respuesta inválida del servidor de predicción",
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _remote_error(status_code: int, data: Any) -> PredictionRemoteError:
        body = data if isinstance(data, dict) else {}
        message = body.get("error") or body.get("detail")
        if not isinstance(message, str) or not message.strip():
            message = STATUS_MESSAGES.get(status_code, SERVER_ERROR_MESSAGE)
        error_code = body.get("error_code") or body.get("codigo")
        logger.warning("Prediction backend returned %d: %s", status_code, message)
        return PredictionRemoteError(message, status_code=status_code, error_code=error_code)


def build_predictor(profile: PredictionProfile, client: PredictionServiceClient):
    """Return the Predictor a call site should use with this client."""
    if profile.single_operation:
        return SingleOperationPredictor(client.predict_polinizacion_ml)
    return client


def get_prediction_client(**kwargs) -> PredictionServiceClient:
    """Create a PredictionServiceClient from environment variables.

    Keyword arguments override environment defaults.

    Environment variables:
        PREDICTION_API_BASE_URL: Backend base URL (required).
        PREDICTION_API_TOKEN: Bearer token (optional).
        PREDICTION_API_TIMEOUT: Default timeout in seconds (default 30).
        PREDICTION_SSL_VERIFY: Verify TLS certificates (default true).

    Raises:
        ValueError: If no base URL is configured.
    """
    base_url = kwargs.pop("base_url", os.getenv("PREDICTION_API_BASE_URL"))
    if not base_url:
        raise ValueError(
            "PREDICTION_API_BASE_URL env var (or base_url kwarg) is required. "
            "Set it to the prediction backend's base URL."
        )

    defaults = {
        "token": os.getenv("PREDICTION_API_TOKEN"),
        "timeout": float(os.getenv("PREDICTION_API_TIMEOUT", str(INITIAL_TIMEOUT_SECONDS))),
        "verify_ssl": is_truthy(os.getenv("PREDICTION_SSL_VERIFY"), default=True),
    }
    return PredictionServiceClient(base_url=base_url, **{**defaults, **kwargs})
