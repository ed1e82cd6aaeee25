"""Leave-one-out cross-validation of a fitted variogram.

Each sample is predicted from all the others.  A well-specified model
gives errors centred on zero and standardized squared errors averaging
about one.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pygeokrig.data.samples import SampleSet
from pygeokrig.errors import InsufficientSamplesError
from pygeokrig.kriging.ordinary import MIN_SAMPLES, KrigingPredictor
from pygeokrig.variogram.models import VariogramModel


@dataclass
class CrossValidationResult:
    """Leave-one-out diagnostics.

    Attributes:
        observed: Sample values.
        predicted: Leave-one-out predictions.
        variances: Leave-one-out kriging variances.
    """

    observed: np.ndarray
    predicted: np.ndarray
    variances: np.ndarray

    @property
    def errors(self) -> np.ndarray:
        """Prediction minus observation."""
        return self.predicted - self.observed

    @property
    def standardized_errors(self) -> np.ndarray:
        """Errors divided by the kriging standard deviation (NaN where it is 0)."""
        std = np.sqrt(self.variances)
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(std > 0, self.errors / std, np.nan)

    @property
    def mean_error(self) -> float:
        return float(np.nanmean(self.errors))

    @property
    def rmse(self) -> float:
        return float(np.sqrt(np.nanmean(self.errors ** 2)))

    @property
    def mean_standardized_squared_error(self) -> float:
        z = self.standardized_errors
        if not np.any(np.isfinite(z)):
            return float("nan")
        return float(np.nanmean(z ** 2))


def cross_validate(
    samples: SampleSet, model: VariogramModel, **predictor_kwargs
) -> CrossValidationResult:
    """Leave-one-out cross-validation.

    Args:
        samples: Sample set (at least 4 samples, so that every reduced
            set can still be kriged).
        model: Variogram model to validate.
        **predictor_kwargs: Passed to :class:`KrigingPredictor`.

    Raises:
        InsufficientSamplesError: Fewer than 4 samples.
    """
    n = len(samples)
    if n < MIN_SAMPLES + 1:
        raise InsufficientSamplesError(n, MIN_SAMPLES + 1, "Cross-validation")

    predicted = np.empty(n)
    variances = np.empty(n)
    points = samples.points
    for i in range(n):
        rest = SampleSet(points[:i] + points[i + 1:], crs=samples.crs)
        result = KrigingPredictor(rest, model, **predictor_kwargs).predict_point(
            points[i].x, points[i].y
        )
        predicted[i] = result.value
        variances[i] = result.variance

    return CrossValidationResult(
        observed=np.array(samples.values, copy=True),
        predicted=predicted,
        variances=variances,
    )
