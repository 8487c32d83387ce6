"""
Prediction dispatcher: decides whether, where and with what payload to
call the remote predictor, and reconciles the outcome into ResultState.

Flow per attempt:
1. Validate the current snapshot; on errors publish the first one, no call
2. Check the call site's required fields; if one is empty publish its
   guard message, no call
3. Choose the operation: initial when every advanced field is empty,
   refine otherwise (re-evaluated on every attempt)
4. Build the RequestSignature of the exact payload; drop the attempt if
   it equals the previously dispatched one
5. Call the predictor under a fresh attempt number
6. Reconcile: results from attempts older than the last reconciled one
   (or issued before a clear) are discarded
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from orchid_predict.core.errors import describe_failure
from orchid_predict.core.form_state import FormState
from orchid_predict.core.profiles import PredictionProfile
from orchid_predict.core.results import ResultState
from orchid_predict.core.schema import DispatchOutcome, DispatchStatus, PredictionOperation
from orchid_predict.core.signature import RequestSignature
from orchid_predict.core.utils import is_blank
from orchid_predict.core.validation import ValidationEngine

logger = logging.getLogger(__name__)


class Predictor(Protocol):
    """The remote operations the dispatcher needs.

    Both coroutines must raise an exception carrying a human-readable
    message on failure.
    """

    async def predict_initial(self, payload: dict[str, Any]) -> Any: ...

    async def predict_refine(self, payload: dict[str, Any]) -> Any: ...


class SingleOperationPredictor:
    """Adapts a call site with one remote operation to the Predictor protocol."""

    def __init__(self, operation: Callable[[dict[str, Any]], Awaitable[Any]]):
        self._operation = operation

    async def predict_initial(self, payload: dict[str, Any]) -> Any:
        return await self._operation(payload)

    async def predict_refine(self, payload: dict[str, Any]) -> Any:
        return await self._operation(payload)


class PredictionDispatcher:
    """Validation-gated, idempotent dispatch of prediction requests.

    Args:
        form: The orchestrator's form state (read only here, except for
            clearing has_changes after a successful reconciliation).
        results: Shared result state to reconcile into.
        predictor: Object implementing predict_initial / predict_refine.
        engine: Validation engine for the call site.
        profile: Call-site preset (required fields).
        on_prediccion_update: Called with the raw result on success.
        on_error: Called with the published message on failure or block.
    """

    def __init__(
        self,
        form: FormState,
        results: ResultState,
        predictor: Predictor,
        engine: ValidationEngine,
        profile: PredictionProfile,
        on_prediccion_update: Callable[[Any], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self._form = form
        self._results = results
        self._predictor = predictor
        self._engine = engine
        self._profile = profile
        self._on_prediccion_update = on_prediccion_update
        self._on_error = on_error

        self._generation = 0
        self._attempt_seq = 0
        self._last_reconciled = 0
        self._last_signature: RequestSignature | None = None
        self._closed = False

    # -----------------------------------------------------------------
    # Gate and selection
    # -----------------------------------------------------------------

    def missing_required_message(self) -> str | None:
        """Guard message of the first empty required field, or None."""
        for field_id, message in self._profile.required_fields:
            if is_blank(self._form.get(field_id)):
                return message
        return None

    def can_predict(self) -> bool:
        if self.missing_required_message() is not None:
            return False
        return self._engine.validate(self._form.data).is_valid

    def select_operation(self) -> tuple[PredictionOperation, dict[str, Any]]:
        """Pick the remote operation and build its exact payload."""
        if self._form.has_advanced_fields():
            return PredictionOperation.REFINE, self._form.full_payload()
        return PredictionOperation.INITIAL, self._form.basic_payload()

    # -----------------------------------------------------------------
    # Attempt
    # -----------------------------------------------------------------

    def attempt(self) -> Awaitable[DispatchOutcome]:
        """Create one dispatch attempt bound to the current generation.

        The returned coroutine does nothing if invalidate() or close()
        is called before it starts running.
        """
        return self._run_attempt(self._generation)

    async def _run_attempt(self, generation: int) -> DispatchOutcome:
        if self._closed or generation != self._generation:
            logger.debug("Dropping attempt queued before the form was cleared")
            return DispatchOutcome(status=DispatchStatus.STALE)

        verdict = self._engine.validate(self._form.data)
        if not verdict.is_valid:
            return self._block(verdict.errors[0])

        missing = self.missing_required_message()
        if missing is not None:
            return self._block(missing)

        operation, payload = self.select_operation()
        signature = RequestSignature.from_payload(operation, payload)
        if signature == self._last_signature:
            logger.debug("Skipping %s: payload unchanged since last dispatch", operation.value)
            return DispatchOutcome(status=DispatchStatus.SKIPPED, operation=operation)

        self._last_signature = signature
        self._attempt_seq += 1
        attempt = self._attempt_seq
        self._results.begin(attempt)
        logger.info("Dispatching attempt %d to %s", attempt, operation.value)

        call = (
            self._predictor.predict_refine
            if operation is PredictionOperation.REFINE
            else self._predictor.predict_initial
        )

        try:
            prediccion = await call(payload)
        except asyncio.CancelledError:
            self._results.finish(attempt)
            raise
        except Exception as exc:
            return self._reconcile_failure(attempt, operation, signature, exc)

        return self._reconcile_success(attempt, operation, prediccion)

    def invalidate(self) -> None:
        """Discard every queued or in-flight attempt and forget the last signature."""
        self._generation += 1
        self._last_reconciled = self._attempt_seq
        self._last_signature = None

    def close(self) -> None:
        self.invalidate()
        self._closed = True

    # -----------------------------------------------------------------
    # Reconciliation
    # -----------------------------------------------------------------

    def _is_stale(self, attempt: int) -> bool:
        return self._closed or attempt <= self._last_reconciled

    def _reconcile_success(
        self,
        attempt: int,
        operation: PredictionOperation,
        prediccion: Any,
    ) -> DispatchOutcome:
        if self._is_stale(attempt):
            self._results.finish(attempt)
            logger.debug("Discarding stale result of attempt %d", attempt)
            return DispatchOutcome(status=DispatchStatus.STALE, attempt=attempt, operation=operation)

        self._last_reconciled = attempt
        self._results.succeed(attempt, prediccion)
        self._form.mark_saved()
        logger.info("Attempt %d succeeded (%s)", attempt, operation.value)
        self._notify(self._on_prediccion_update, prediccion)
        return DispatchOutcome(
            status=DispatchStatus.SUCCEEDED,
            attempt=attempt,
            operation=operation,
            prediccion=prediccion,
        )

    def _reconcile_failure(
        self,
        attempt: int,
        operation: PredictionOperation,
        signature: RequestSignature,
        exc: Exception,
    ) -> DispatchOutcome:
        message = describe_failure(exc)
        if self._is_stale(attempt):
            self._results.finish(attempt)
            logger.debug("Discarding stale failure of attempt %d: %s", attempt, message)
            return DispatchOutcome(status=DispatchStatus.STALE, attempt=attempt, operation=operation)

        self._last_reconciled = attempt
        # Let an explicit retry of the same payload through.
        if self._last_signature == signature:
            self._last_signature = None
        self._results.fail(attempt, message)
        logger.warning("Attempt %d failed (%s): %s", attempt, operation.value, message)
        self._notify(self._on_error, message)
        return DispatchOutcome(
            status=DispatchStatus.FAILED,
            attempt=attempt,
            operation=operation,
            error=message,
        )

    def _block(self, message: str) -> DispatchOutcome:
        logger.debug("Attempt blocked before dispatch: %s", message)
        self._results.error = message
        self._notify(self._on_error, message)
        return DispatchOutcome(status=DispatchStatus.BLOCKED, error=message)

    @staticmethod
    def _notify(callback: Callable[[Any], None] | None, value: Any) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            logger.exception("Prediction callback raised")
