"""
Core of the prediction orchestrator: form state, validation, debounce
scheduling, dispatch and result reconciliation.
"""

from orchid_predict.core.dispatcher import PredictionDispatcher, Predictor, SingleOperationPredictor
from orchid_predict.core.orchestrator import OrchestratorOptions, PredictionOrchestrator
from orchid_predict.core.profiles import ML_POLINIZACION, PROGRESIVA, PredictionProfile, get_profile
from orchid_predict.core.scheduler import DebounceScheduler
from orchid_predict.core.validation import ValidationEngine

__all__ = [
    "PredictionOrchestrator",
    "OrchestratorOptions",
    "PredictionDispatcher",
    "Predictor",
    "SingleOperationPredictor",
    "DebounceScheduler",
    "ValidationEngine",
    "PredictionProfile",
    "PROGRESIVA",
    "ML_POLINIZACION",
    "get_profile",
]
