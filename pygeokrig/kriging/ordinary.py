"""Ordinary kriging.

Solves the ``(n + 1) × (n + 1)`` ordinary kriging system

.. code-block:: text

    | Γ   1 | | w |   | γ(s, q) |
    | 1ᵀ  0 | | μ | = |    1    |

where ``Γ[i, j] = γ(|s_i - s_j|)`` (diagonal = nugget) and the last
row enforces ``Σ w = 1``.  The prediction is ``Σ w_i z_i`` and the
kriging variance ``Σ w_i γ(s_i, q) + μ``.

The Γ block is divided by the sill before factorisation, so the
condition number does not depend on the units of the values.  The
matrix is LU-factorised once per predictor and reused for every query.
Batches are split into chunks solved by a thread pool that shares the
read-only factorisation.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike
from scipy.linalg import lu_factor, lu_solve
from scipy.spatial.distance import cdist

from pygeokrig.data.samples import SampleSet
from pygeokrig.errors import (
    InsufficientSamplesError,
    SingularKrigingSystemError,
    check_crs,
)
from pygeokrig.geometry.grid import Grid
from pygeokrig.raster.base import Raster
from pygeokrig.variogram.models import VariogramModel, evaluate

logger = logging.getLogger(__name__)

MIN_SAMPLES = 3


@dataclass(frozen=True)
class PredictionResult:
    """Kriging estimate at one query point.

    Attributes:
        x, y: Query location.
        value: Predicted value (NaN if *fault* is set).
        variance: Kriging variance, >= 0 (NaN if *fault* is set).
        weights: Kriging weights, one per sample; they sum to 1.
        multiplier: Lagrange multiplier of the unbiasedness constraint.
        fault: ``None``, ``"negative_variance"`` or ``"non_finite"``.
    """

    x: float
    y: float
    value: float
    variance: float
    weights: np.ndarray
    multiplier: float
    fault: str | None = None


@dataclass(frozen=True)
class PredictionFault:
    """A query point whose prediction could not be trusted."""

    index: int
    x: float
    y: float
    reason: str


@dataclass
class KrigingResult:
    """Batch predictions.

    Attributes:
        points: Query locations, shape ``(m, 2)``.
        values: Predictions, NaN at faulty points.
        variances: Kriging variances, NaN at faulty points.
        faults: One entry per faulty or cancelled point.
    """

    points: np.ndarray
    values: np.ndarray
    variances: np.ndarray
    faults: list[PredictionFault] = field(default_factory=list)

    @property
    def fault_count(self) -> int:
        return len(self.faults)

    @property
    def std(self) -> np.ndarray:
        """Kriging standard deviation."""
        return np.sqrt(self.variances)

    def fault_summary(self) -> dict[str, int]:
        """Number of faults per reason."""
        summary: dict[str, int] = {}
        for f in self.faults:
            summary[f.reason] = summary.get(f.reason, 0) + 1
        return summary


@dataclass
class GridPrediction:
    """Prediction and variance rasters for a grid.

    The two rasters share the grid but not their value arrays.
    """

    prediction: Raster
    variance: Raster
    faults: list[PredictionFault] = field(default_factory=list)

    @property
    def fault_count(self) -> int:
        return len(self.faults)


class KrigingPredictor:
    """Ordinary kriging predictor for one sample set and variogram.

    Args:
        samples: Sample locations and values (at least 3).
        model: Fitted variogram model.
        regularization: Epsilon for diagonal inflation.  When the system
            is ill-conditioned, ``regularization * nugget`` is added to
            the sample block diagonal.
        max_condition: Largest acceptable condition number.
        variance_tolerance: Negative variances smaller in magnitude than
            ``variance_tolerance * sill`` are round-off and reported as
            0; larger ones are faults.
        chunk_size: Query points per solve in batch prediction.
        max_workers: Threads used for batch prediction.  ``1`` solves
            sequentially; ``None`` lets the executor decide.

    Raises:
        InsufficientSamplesError: Fewer than 3 samples.
        SingularKrigingSystemError: Ill-conditioned system that
            regularisation cannot stabilise (e.g. duplicate locations
            with zero nugget).
    """

    def __init__(
        self,
        samples: SampleSet,
        model: VariogramModel,
        regularization: float = 1e-6,
        max_condition: float = 1e12,
        variance_tolerance: float = 1e-9,
        chunk_size: int = 1024,
        max_workers: int | None = 1,
    ) -> None:
        n = len(samples)
        if n < MIN_SAMPLES:
            raise InsufficientSamplesError(n, MIN_SAMPLES, "Ordinary kriging")
        if regularization < 0:
            raise ValueError(f"regularization must be >= 0, got {regularization}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

        self.samples = samples
        self.model = model
        self.regularization = float(regularization)
        self.max_condition = float(max_condition)
        self.variance_tolerance = float(variance_tolerance)
        self.chunk_size = int(chunk_size)
        self.max_workers = max_workers

        self._xy = samples.coords
        self._z = samples.values
        # Semivariances are solved in units of the sill
        self._scale = model.sill if model.sill > 0.0 else 1.0
        self.regularized = False
        self.diagonal_inflation = 0.0
        self._lu = self._factorize()

    # ------------------------------------------------------------------
    # System assembly
    # ------------------------------------------------------------------

    def _factorize(self) -> tuple[np.ndarray, np.ndarray]:
        n = len(self._z)
        A = np.zeros((n + 1, n + 1))
        A[:n, :n] = evaluate(self.model, cdist(self._xy, self._xy)) / self._scale
        A[n, :n] = 1.0
        A[:n, n] = 1.0

        cond = _condition(A)
        if cond > self.max_condition:
            delta = self.regularization * self.model.nugget
            if delta <= 0.0:
                raise SingularKrigingSystemError(
                    f"Kriging matrix is singular or ill-conditioned "
                    f"(condition {cond:.3g}) and the {self.model.kind.value} "
                    f"model has no nugget to regularise with.",
                    condition=cond,
                )
            A[np.arange(n), np.arange(n)] += delta / self._scale
            new_cond = _condition(A)
            if new_cond > self.max_condition:
                raise SingularKrigingSystemError(
                    f"Kriging matrix remains ill-conditioned after adding "
                    f"{delta:.3g} to its diagonal (condition {new_cond:.3g}).",
                    condition=new_cond,
                )
            logger.warning(
                "Kriging matrix ill-conditioned (condition %.3g); inflated the "
                "diagonal by %.3g (condition now %.3g). Predictions deviate "
                "from the fitted model.",
                cond, delta, new_cond,
            )
            self.regularized = True
            self.diagonal_inflation = delta
            cond = new_cond

        self.condition = cond
        logger.debug("Factorising %dx%d kriging system (condition %.3g)",
                     n + 1, n + 1, cond)
        return lu_factor(A, check_finite=False)

    def _rhs(self, points: np.ndarray) -> np.ndarray:
        n = len(self._z)
        B = np.ones((n + 1, len(points)))
        B[:n, :] = evaluate(self.model, cdist(self._xy, points))
        return B

    def _lu_solve(self, B: np.ndarray) -> np.ndarray:
        """Solve for right-hand sides *B* in data units.

        Returns ``[w; μ]`` with μ in data units.
        """
        Bs = B.copy()
        Bs[:-1] /= self._scale
        sol = lu_solve(self._lu, Bs, check_finite=False)
        sol[-1] *= self._scale
        return sol

    # ------------------------------------------------------------------
    # Single point
    # ------------------------------------------------------------------

    def weights(self, x: float, y: float) -> tuple[np.ndarray, float]:
        """Kriging weights and Lagrange multiplier for query ``(x, y)``."""
        sol = self._lu_solve(self._rhs(np.array([[x, y]], dtype=float)))
        return sol[:-1, 0], float(sol[-1, 0])

    def predict_point(self, x: float, y: float) -> PredictionResult:
        """Predict at a single location.

        A negative variance beyond round-off is reported through
        ``fault``, with value and variance set to NaN.
        """
        B = self._rhs(np.array([[x, y]], dtype=float))
        sol = self._lu_solve(B)
        w = sol[:-1, 0]
        mu = float(sol[-1, 0])
        value = float(w @ self._z)
        variance = float(w @ B[:-1, 0] + mu)
        fault = self._classify(value, variance)
        if fault is not None:
            value = variance = float("nan")
        elif variance < 0.0:
            variance = 0.0
        return PredictionResult(float(x), float(y), value, variance, w, mu, fault)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def predict(
        self,
        points: ArrayLike,
        cancel: threading.Event | None = None,
    ) -> KrigingResult:
        """Predict at many locations.

        Points are processed in chunks of ``chunk_size``.  Chunks not yet
        started when *cancel* is set are skipped and their points reported
        as ``"cancelled"`` faults.

        Args:
            points: Query locations, shape ``(m, 2)``.
            cancel: Optional event for cooperative cancellation.
        """
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        if pts.size == 0:
            pts = pts.reshape(0, 2)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError(f"points must have shape (m, 2), got {pts.shape}")
        m = len(pts)
        values = np.full(m, np.nan)
        variances = np.full(m, np.nan)
        done = np.zeros(m, dtype=bool)

        chunks = [(s, min(s + self.chunk_size, m)) for s in range(0, m, self.chunk_size)]

        def solve_chunk(start: int, stop: int):
            if cancel is not None and cancel.is_set():
                return start, stop, None
            return start, stop, self._solve(pts[start:stop])

        if self.max_workers == 1 or len(chunks) <= 1:
            outputs = [solve_chunk(s, e) for s, e in chunks]
        else:
            outputs = []
            with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
                futures = [ex.submit(solve_chunk, s, e) for s, e in chunks]
                for fut in as_completed(futures):
                    outputs.append(fut.result())

        for start, stop, out in outputs:
            if out is None:
                continue
            values[start:stop], variances[start:stop] = out
            done[start:stop] = True

        faults: list[PredictionFault] = []
        for i in np.flatnonzero(~done):
            faults.append(PredictionFault(int(i), pts[i, 0], pts[i, 1], "cancelled"))
        for i in np.flatnonzero(done):
            reason = self._classify(values[i], variances[i])
            if reason is not None:
                faults.append(PredictionFault(int(i), pts[i, 0], pts[i, 1], reason))
                values[i] = variances[i] = np.nan
        faults.sort(key=lambda f: f.index)

        ok = done & np.isfinite(variances)
        variances[ok] = np.maximum(variances[ok], 0.0)

        result = KrigingResult(points=pts, values=values, variances=variances, faults=faults)
        if faults:
            logger.warning(
                "Kriging faults at %d of %d query points: %s",
                len(faults), m, result.fault_summary(),
            )
        return result

    def predict_grid(
        self, grid: Grid, cancel: threading.Event | None = None
    ) -> GridPrediction:
        """Predict at every cell centre of *grid*.

        Raises:
            CRSMismatchError: If grid and samples name different CRSs.
        """
        check_crs(self.samples.crs, grid.crs, "KrigingPredictor.predict_grid")
        logger.debug("Kriging %d grid cells (%dx%d)", grid.size, *grid.shape)
        result = self.predict(grid.cell_centers(), cancel=cancel)
        return GridPrediction(
            prediction=Raster(grid, result.values.reshape(grid.shape)),
            variance=Raster(grid, result.variances.reshape(grid.shape)),
            faults=result.faults,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _solve(self, pts: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        B = self._rhs(pts)
        sol = self._lu_solve(B)
        w = sol[:-1, :]
        mu = sol[-1, :]
        values = w.T @ self._z
        variances = np.sum(w * B[:-1, :], axis=0) + mu
        return values, variances

    def _classify(self, value: float, variance: float) -> str | None:
        if not (np.isfinite(value) and np.isfinite(variance)):
            return "non_finite"
        tol = self.variance_tolerance * (self.model.sill if self.model.sill > 0 else 1.0)
        if variance < -tol:
            return "negative_variance"
        return None

    def __repr__(self) -> str:
        return (
            f"KrigingPredictor(n_samples={len(self._z)}, model={self.model!r}, "
            f"regularized={self.regularized})"
        )


def _condition(A: np.ndarray) -> float:
    """2-norm condition number; ``inf`` for singular matrices."""
    with np.errstate(divide="ignore", invalid="ignore"):
        cond = float(np.linalg.cond(A))
    return cond if np.isfinite(cond) else float("inf")


def ordinary_kriging(
    samples: SampleSet,
    model: VariogramModel,
    points: ArrayLike,
    **kwargs,
) -> KrigingResult:
    """Shortcut: build a :class:`KrigingPredictor` and predict at *points*."""
    return KrigingPredictor(samples, model, **kwargs).predict(points)
