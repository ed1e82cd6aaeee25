"""Kriging: ordinary kriging prediction and cross-validation."""

from pygeokrig.kriging.ordinary import (
    GridPrediction,
    KrigingPredictor,
    KrigingResult,
    PredictionFault,
    PredictionResult,
    ordinary_kriging,
)
from pygeokrig.kriging.validation import CrossValidationResult, cross_validate

__all__ = [
    "GridPrediction",
    "KrigingPredictor",
    "KrigingResult",
    "PredictionFault",
    "PredictionResult",
    "ordinary_kriging",
    "CrossValidationResult",
    "cross_validate",
]
