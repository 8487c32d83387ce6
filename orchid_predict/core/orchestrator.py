"""
Debounced prediction orchestrator.

Owns one form, one debounce timer and one result state. Mutators return
immediately; the remote call happens later on the event loop, either
when the debounce delay elapses after the last edit or right away on
force_update().

Lifecycle:
- Created with an empty form and no prediction
- update_field / update_condiciones_climaticas edit the form, clear the
  error and (with auto_update) re-arm the debounce timer
- clear_form returns to the initial state and discards in-flight results
- close tears everything down: the timer is cancelled, running calls
  are cancelled, and no later mutation of state can be observed
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from orchid_predict.core.dispatcher import PredictionDispatcher, Predictor
from orchid_predict.core.form_state import FormState
from orchid_predict.core.profiles import PROGRESIVA, PredictionProfile
from orchid_predict.core.progress import get_form_progress
from orchid_predict.core.results import ResultState
from orchid_predict.core.scheduler import DebounceScheduler
from orchid_predict.core.schema import (
    DispatchOutcome,
    FormProgress,
    OrchestratorSnapshot,
    ValidationState,
)
from orchid_predict.core.validation import ValidationEngine

logger = logging.getLogger(__name__)


class OrchestratorOptions(BaseModel):
    """Per-instance configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    debounce_delay_ms: float | None = Field(
        default=None,
        ge=0,
        description="Quiet period before an automatic attempt (profile default if None)",
    )
    auto_update: bool = Field(
        default=True,
        description="If False, only force_update() triggers a remote call",
    )
    on_prediccion_update: Callable[[Any], None] | None = Field(
        default=None,
        description="Called with the raw result after each successful reconciliation",
    )
    on_error: Callable[[str], None] | None = Field(
        default=None,
        description="Called with the message after each failed or blocked attempt",
    )


class PredictionOrchestrator:
    """State container + validation gate + debounce + dispatch.

    Args:
        predictor: Object implementing predict_initial / predict_refine.
        options: Per-instance options (defaults if None).
        profile: Call-site preset.
        today: Clock used by the validation engine.
        loop: Event loop for timers and tasks (running loop if None).
    """

    def __init__(
        self,
        predictor: Predictor,
        options: OrchestratorOptions | None = None,
        profile: PredictionProfile = PROGRESIVA,
        today: Callable[[], date] = date.today,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.options = options or OrchestratorOptions()
        self.profile = profile
        self.debounce_delay_ms: float = (
            self.options.debounce_delay_ms
            if self.options.debounce_delay_ms is not None
            else profile.debounce_delay_ms
        )

        self._form = FormState()
        self._results = ResultState()
        self._engine = ValidationEngine(profile.tipos_polinizacion, today=today)
        self._scheduler = DebounceScheduler(loop)
        self._dispatcher = PredictionDispatcher(
            form=self._form,
            results=self._results,
            predictor=predictor,
            engine=self._engine,
            profile=profile,
            on_prediccion_update=self.options.on_prediccion_update,
            on_error=self.options.on_error,
        )
        self._closed = False

    # -----------------------------------------------------------------
    # Observable state
    # -----------------------------------------------------------------

    @property
    def form_data(self) -> dict[str, Any]:
        return self._form.snapshot()

    @property
    def prediccion(self) -> Any:
        return self._results.prediccion

    @property
    def error(self) -> str | None:
        return self._results.error

    @property
    def loading(self) -> bool:
        return self._results.loading

    @property
    def has_changes(self) -> bool:
        return self._form.has_changes

    @property
    def last_update(self) -> datetime | None:
        return self._results.last_update

    @property
    def is_auto_updating(self) -> bool:
        """True while an automatic attempt is scheduled or running."""
        return self.options.auto_update and (self._scheduler.pending or self.loading)

    @property
    def can_predict(self) -> bool:
        return self._dispatcher.can_predict()

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> OrchestratorSnapshot:
        return OrchestratorSnapshot(
            form_data=self.form_data,
            prediccion=self.prediccion,
            error=self.error,
            loading=self.loading,
            has_changes=self.has_changes,
            last_update=self.last_update,
        )

    def get_validation_state(self) -> ValidationState:
        """Validate the current form. Computed fresh on every call."""
        verdict = self._engine.validate(self._form.data)
        return ValidationState(
            is_valid=verdict.is_valid,
            errors=verdict.errors,
            can_predict=verdict.is_valid and self._dispatcher.missing_required_message() is None,
        )

    def get_form_progress(self) -> FormProgress:
        return get_form_progress(self._form.data)

    # -----------------------------------------------------------------
    # Mutators
    # -----------------------------------------------------------------

    def update_field(self, name: str, value: Any) -> None:
        """Set one top-level field and re-arm the debounce timer.

        Raises:
            ValueError: If the field does not exist.
            RuntimeError: If the orchestrator has been closed.
        """
        self._ensure_open()
        self._form.update_field(name, value)
        self._after_mutation()

    def update_condiciones_climaticas(self, key: str, value: Any) -> None:
        """Set one climate sub-field ('temperatura' is merged) and re-arm the timer.

        Raises:
            ValueError: If the key is unknown.
            RuntimeError: If the orchestrator has been closed.
        """
        self._ensure_open()
        self._form.update_condiciones_climaticas(key, value)
        self._after_mutation()

    def force_update(self) -> asyncio.Task:
        """Cancel the pending timer and attempt a prediction right away.

        Returns the task running the attempt; awaiting it yields the
        DispatchOutcome. Must be called with an event loop running.
        """
        self._ensure_open()
        self._scheduler.cancel()
        return self._scheduler.run(self._dispatcher.attempt)

    def clear_form(self) -> None:
        """Return to the initial state.

        The pending timer is cancelled before this returns, and results
        of calls already in flight are discarded when they arrive.
        """
        self._ensure_open()
        self._scheduler.cancel()
        self._dispatcher.invalidate()
        self._form.reset()
        self._results.reset()
        logger.debug("Prediction form cleared")

    def close(self) -> None:
        """Tear down: cancel the timer and running calls. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._dispatcher.close()
        self._scheduler.shutdown()
        logger.debug("Prediction orchestrator closed")

    async def __aenter__(self) -> "PredictionOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    async def wait_idle(self) -> list[DispatchOutcome]:
        """Await every attempt currently running and return their outcomes."""
        tasks = self._scheduler.tasks
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _after_mutation(self) -> None:
        self._results.clear_error()
        if self.options.auto_update:
            self._scheduler.schedule(self.debounce_delay_ms, self._dispatcher.attempt)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Prediction orchestrator has been closed")

