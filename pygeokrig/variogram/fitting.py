"""Weighted least-squares fitting of theoretical variograms.

Each model family is fitted independently with
``scipy.optimize.least_squares`` (trust-region reflective, box bounds
``nugget >= 0``, ``partial_sill >= 0``, ``range > 0``).  The lags and
semivariances are scaled to unit magnitude before optimisation, which
keeps the problem well conditioned whatever the coordinate units.

Selection across candidate families keeps the smallest weighted sum of
squared residuals; ties go to the simpler family
(nugget < spherical < exponential < gaussian).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np
from scipy.optimize import least_squares

from pygeokrig.errors import EmptyVariogramError, FitNonConvergenceError
from pygeokrig.variogram.empirical import VariogramBin, bins_to_arrays
from pygeokrig.variogram.models import (
    SIMPLICITY_ORDER,
    ModelKind,
    VariogramModel,
    semivariance,
)

logger = logging.getLogger(__name__)

# Bounds in scaled units (lags / max lag, semivariance / max semivariance)
_MIN_RANGE = 1e-6
_MAX_RANGE = 10.0
_MAX_PARTIAL_SILL = 100.0
# Parameters within this relative distance of an upper bound are reported
_BOUND_RTOL = 1e-3

# Range-parameter divisor turning a plateau distance into ``a``.
# Exponential and gaussian reach 95 % of the sill at 3a and sqrt(3)a.
_PRACTICAL_RANGE_FACTOR: dict[ModelKind, float] = {
    ModelKind.NUGGET: 1.0,
    ModelKind.SPHERICAL: 1.0,
    ModelKind.EXPONENTIAL: 3.0,
    ModelKind.GAUSSIAN: float(np.sqrt(3.0)),
}

WEIGHTINGS = ("pairs", "uniform")


@dataclass
class CandidateFit:
    """Outcome of fitting one model family.

    Attributes:
        kind: Model family.
        model: Best model found (``None`` only if fitting raised before
            producing parameters).
        sse: Weighted sum of squared residuals of *model*.
        converged: Whether the optimiser met its tolerance.
        n_evaluations: Objective evaluations used.
        message: Optimiser status message.
    """

    kind: ModelKind
    model: VariogramModel | None
    sse: float
    converged: bool
    n_evaluations: int = 0
    message: str = ""


@dataclass
class FitResult:
    """Selected variogram model with fit diagnostics.

    Attributes:
        model: The selected model.
        sse: Its weighted sum of squared residuals.
        converged: Always ``True`` for a returned result; non-converged
            fits raise :class:`~pygeokrig.errors.FitNonConvergenceError`.
        n_evaluations: Objective evaluations used for *model*.
        candidates: Every candidate tried, keyed by family.
    """

    model: VariogramModel
    sse: float
    converged: bool = True
    n_evaluations: int = 0
    candidates: dict[ModelKind, CandidateFit] = field(default_factory=dict)


class VariogramModelFitter:
    """Fit and select parametric variogram models.

    Args:
        kinds: Candidate model families for :meth:`select`.
        weighting: ``"pairs"`` for ``w = pair_count / lag²`` (default;
            down-weights distant, noisy bins) or ``"uniform"``.
        max_iterations: Upper bound on objective evaluations per family.
        tolerance: Convergence tolerance (``ftol``, ``xtol``, ``gtol``).
        cutoff: Distance used as the range guess when the empirical
            variogram shows no plateau.
        max_workers: Threads used to fit candidate families
            concurrently.  ``None`` or ``1`` fits them sequentially.
    """

    def __init__(
        self,
        kinds: Iterable[ModelKind | str] = (
            ModelKind.SPHERICAL,
            ModelKind.EXPONENTIAL,
            ModelKind.GAUSSIAN,
        ),
        weighting: str = "pairs",
        max_iterations: int = 2000,
        tolerance: float = 1e-8,
        cutoff: float | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.kinds = tuple(ModelKind.parse(k) for k in kinds)
        if not self.kinds:
            raise ValueError("At least one candidate model kind is required.")
        if weighting not in WEIGHTINGS:
            raise ValueError(
                f"Unknown weighting {weighting!r}. Choose from {list(WEIGHTINGS)}"
            )
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.weighting = weighting
        self.max_iterations = int(max_iterations)
        self.tolerance = float(tolerance)
        self.cutoff = cutoff
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def weights(self, bins: Sequence[VariogramBin]) -> np.ndarray:
        """Least-squares weight of every bin."""
        lags, _, counts = bins_to_arrays(list(bins))
        if self.weighting == "uniform":
            return np.ones_like(lags)
        return counts / lags ** 2

    def sse(self, model: VariogramModel, bins: Sequence[VariogramBin]) -> float:
        """Weighted sum of squared residuals of *model* over *bins*."""
        lags, gamma, _ = bins_to_arrays(list(bins))
        resid = gamma - model(lags)
        return float(np.sum(self.weights(bins) * resid ** 2))

    def fit(
        self, bins: Sequence[VariogramBin], kind: ModelKind | str
    ) -> FitResult:
        """Fit a single model family.

        Raises:
            EmptyVariogramError: If *bins* is empty.
            FitNonConvergenceError: If the optimiser does not converge
                within ``max_iterations`` evaluations.
        """
        candidate = self._fit_candidate(list(bins), ModelKind.parse(kind))
        if not candidate.converged:
            raise FitNonConvergenceError(
                f"{candidate.kind.value} variogram fit did not converge: "
                f"{candidate.message}",
                model=candidate.model,
                sse=candidate.sse,
                n_evaluations=candidate.n_evaluations,
            )
        return FitResult(
            model=candidate.model,
            sse=candidate.sse,
            n_evaluations=candidate.n_evaluations,
            candidates={candidate.kind: candidate},
        )

    def select(self, bins: Sequence[VariogramBin]) -> FitResult:
        """Fit every candidate family and keep the best one.

        Candidates that fail to converge are logged and skipped.

        Raises:
            EmptyVariogramError: If *bins* is empty.
            FitNonConvergenceError: If no candidate converges.
        """
        bins = list(bins)
        if not bins:
            raise EmptyVariogramError("Cannot fit a variogram to zero bins.")

        candidates: dict[ModelKind, CandidateFit] = {}
        if self.max_workers is not None and self.max_workers > 1 and len(self.kinds) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
                futures = {
                    ex.submit(self._fit_candidate, bins, kind): kind
                    for kind in self.kinds
                }
                for fut in as_completed(futures):
                    candidates[futures[fut]] = fut.result()
        else:
            for kind in self.kinds:
                candidates[kind] = self._fit_candidate(bins, kind)

        converged = [c for c in candidates.values() if c.converged]
        for c in candidates.values():
            if not c.converged:
                logger.warning(
                    "Skipping %s variogram: fit did not converge (%s)",
                    c.kind.value, c.message,
                )
        if not converged:
            first = candidates[self.kinds[0]]
            raise FitNonConvergenceError(
                "No candidate variogram model converged.",
                model=first.model,
                sse=first.sse,
                n_evaluations=first.n_evaluations,
            )

        converged.sort(key=lambda c: SIMPLICITY_ORDER.index(c.kind))
        best = converged[0]
        for c in converged[1:]:
            if c.sse < best.sse and not np.isclose(
                c.sse, best.sse, rtol=1e-9, atol=1e-12
            ):
                best = c

        logger.debug(
            "Selected %s variogram (sse=%.6g) among %s",
            best.kind.value,
            best.sse,
            {k.value: round(c.sse, 6) for k, c in candidates.items()},
        )
        return FitResult(
            model=best.model,
            sse=best.sse,
            n_evaluations=best.n_evaluations,
            candidates=candidates,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fit_candidate(
        self, bins: list[VariogramBin], kind: ModelKind
    ) -> CandidateFit:
        if not bins:
            raise EmptyVariogramError("Cannot fit a variogram to zero bins.")

        lags, gamma, _ = bins_to_arrays(bins)
        weights = self.weights(bins)
        h_scale = float(lags.max())
        g_scale = float(gamma.max())

        # Flat variogram: no spatial structure to fit
        if g_scale <= 0.0:
            range_ = self.cutoff if self.cutoff else h_scale
            model = VariogramModel(kind, 0.0, 0.0, range_)
            return CandidateFit(kind, model, 0.0, True, 0, "flat variogram")

        h = lags / h_scale
        g = gamma / g_scale
        w = weights / weights.sum()

        if kind is ModelKind.NUGGET:
            # Weighted mean is the exact least-squares nugget level
            level = float(np.sum(w * g) / np.sum(w))
            model = VariogramModel(kind, level * g_scale, 0.0, h_scale)
            return CandidateFit(
                kind, model, self.sse(model, bins), True, 1, "closed form"
            )

        sqrt_w = np.sqrt(w)

        def residuals(p: np.ndarray) -> np.ndarray:
            return sqrt_w * (g - semivariance(kind, h, p[0], p[1], p[2]))

        x0 = self._initial_guess(kind, h, g, h_scale)
        lower = np.array([0.0, 0.0, _MIN_RANGE])
        upper = np.array([np.inf, _MAX_PARTIAL_SILL, _MAX_RANGE])
        x0 = np.clip(x0, lower, upper)

        res = least_squares(
            residuals,
            x0,
            bounds=(lower, upper),
            method="trf",
            max_nfev=self.max_iterations,
            ftol=self.tolerance,
            xtol=self.tolerance,
            gtol=self.tolerance,
        )

        p = np.clip(res.x, lower, upper)
        if not np.all(np.isfinite(p)):
            p = x0
        at_bound = [
            name for name, value, bound in (
                ("partial sill", p[1], _MAX_PARTIAL_SILL),
                ("range", p[2], _MAX_RANGE),
            )
            if value >= bound * (1.0 - _BOUND_RTOL)
        ]
        if at_bound:
            logger.warning(
                "%s variogram fit stopped at the upper bound of its %s; "
                "the empirical variogram may not level off within the cutoff.",
                kind.value, " and ".join(at_bound),
            )
        model = VariogramModel(
            kind,
            nugget=float(p[0]) * g_scale,
            partial_sill=float(p[1]) * g_scale,
            range_=float(p[2]) * h_scale,
        )
        converged = bool(res.success) and res.status > 0
        return CandidateFit(
            kind,
            model,
            self.sse(model, bins),
            converged,
            int(res.nfev),
            str(res.message),
        )

    def _initial_guess(
        self, kind: ModelKind, h: np.ndarray, g: np.ndarray, h_scale: float
    ) -> np.ndarray:
        """Starting ``(nugget, partial_sill, range)`` in scaled units."""
        if len(h) >= 2 and h[1] > h[0]:
            slope = (g[1] - g[0]) / (h[1] - h[0])
            nugget = float(np.clip(g[0] - slope * h[0], 0.0, g[0]))
        else:
            nugget = 0.0

        psill = g[-1] - nugget
        if psill <= 0.0:
            psill = g.max() - nugget
        psill = max(float(psill), 0.0)

        # First lag reaching 95 % of the maximum, unless that is the last
        # bin (still rising, no plateau observed)
        reached = np.flatnonzero(g >= 0.95 * g.max())
        if len(h) > 1 and reached[0] < len(h) - 1:
            plateau = float(h[reached[0]])
        elif self.cutoff:
            plateau = float(self.cutoff) / h_scale
        else:
            plateau = float(h[-1])
        range_ = plateau / _PRACTICAL_RANGE_FACTOR[kind]

        return np.array([nugget, psill, range_])

    def __repr__(self) -> str:
        return (
            f"VariogramModelFitter(kinds={[k.value for k in self.kinds]}, "
            f"weighting={self.weighting!r}, max_iterations={self.max_iterations})"
        )


def fit_variogram(
    bins: Sequence[VariogramBin],
    kinds: ModelKind | str | Iterable[ModelKind | str] = (
        ModelKind.SPHERICAL,
        ModelKind.EXPONENTIAL,
        ModelKind.GAUSSIAN,
    ),
    **kwargs,
) -> FitResult:
    """Fit one family (``kinds`` a single kind) or select among several.

    Extra keyword arguments go to :class:`VariogramModelFitter`.
    """
    if isinstance(kinds, (str, ModelKind)):
        kind = ModelKind.parse(kinds)
        return VariogramModelFitter(kinds=(kind,), **kwargs).fit(bins, kind)
    return VariogramModelFitter(kinds=kinds, **kwargs).select(bins)
