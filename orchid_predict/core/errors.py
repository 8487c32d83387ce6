"""
Error types raised by predictors and the helpers that turn any failure
into the single human-readable message the orchestrator publishes.
"""

NETWORK_ERROR_MESSAGE = "Error de conexión. Verifica tu conexión a internet."
TIMEOUT_ERROR_MESSAGE = "La predicción tardó demasiado tiempo en procesarse"
REMOTE_ERROR_MESSAGE = "Error en la predicción"
UNKNOWN_ERROR_MESSAGE = "Error inesperado al generar la predicción"
ESPECIE_REQUIRED_MESSAGE = "La especie es requerida"


class PredictionError(Exception):
    """Base class for every failure a predictor may raise."""

    default_message = UNKNOWN_ERROR_MESSAGE

    def __init__(self, message: str | None = None):
        self.message = message or ""
        super().__init__(self.message or self.default_message)


class PredictionTransportError(PredictionError):
    """The remote service could not be reached."""

    default_message = NETWORK_ERROR_MESSAGE


class PredictionTimeoutError(PredictionTransportError):
    """The remote service did not answer in time."""

    default_message = TIMEOUT_ERROR_MESSAGE


class PredictionRemoteError(PredictionError):
    """The remote service answered but declined to predict."""

    default_message = REMOTE_ERROR_MESSAGE

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class MissingRequiredFieldError(PredictionError):
    """A field the remote operation needs is empty."""

    def __init__(self, field_id: str, message: str):
        self.field_id = field_id
        super().__init__(message)


def describe_failure(exc: BaseException) -> str:
    """Build the message published for a failed remote call.

    Priority: pre-flight guard > transport > remote application error >
    anything else carrying a message > generic fallback. Never blank.
    """
    if isinstance(exc, MissingRequiredFieldError):
        return exc.message or ESPECIE_REQUIRED_MESSAGE
    if isinstance(exc, PredictionTransportError):
        return exc.message or exc.default_message
    if isinstance(exc, PredictionRemoteError):
        return exc.message or REMOTE_ERROR_MESSAGE
    if isinstance(exc, PredictionError):
        return exc.message or UNKNOWN_ERROR_MESSAGE

    message = getattr(exc, "message", None)
    if isinstance(message, str) and message.strip():
        return message
    text = str(exc)
    return text if text.strip() else UNKNOWN_ERROR_MESSAGE
