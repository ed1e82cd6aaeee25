"""Variogram: empirical estimation, theoretical models and fitting.

Workflow::

    bins = EmpiricalVariogramEstimator(lag_width=500.0).estimate(samples)
    fit = VariogramModelFitter(kinds=["spherical", "exponential"]).select(bins)
    fit.model(1000.0)   # semivariance at 1 km
"""

from pygeokrig.variogram.empirical import (
    EmpiricalVariogramEstimator,
    VariogramBin,
    empirical_variogram,
)
from pygeokrig.variogram.models import (
    ModelKind,
    VariogramModel,
    evaluate,
)
from pygeokrig.variogram.fitting import (
    CandidateFit,
    FitResult,
    VariogramModelFitter,
    fit_variogram,
)

__all__ = [
    "EmpiricalVariogramEstimator",
    "VariogramBin",
    "empirical_variogram",
    "ModelKind",
    "VariogramModel",
    "evaluate",
    "CandidateFit",
    "FitResult",
    "VariogramModelFitter",
    "fit_variogram",
]
