"""Empirical (experimental) semivariogram.

Pairs every two distinct samples, bins the pairs by separation distance
and averages half the squared value differences per bin (Matheron's
estimator).  Runs in O(n²) time and memory, which suits the few hundred
monitoring stations typical of pollutant surveys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.spatial.distance import pdist

from pygeokrig.data.samples import SampleSet
from pygeokrig.errors import EmptyVariogramError, InsufficientSamplesError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariogramBin:
    """One lag class of the empirical variogram.

    Attributes:
        lag: Midpoint of the distance interval (> 0).
        semivariance: Mean of half the squared differences (>= 0).
        pair_count: Number of pairs in the interval (> 0).
    """

    lag: float
    semivariance: float
    pair_count: int


class EmpiricalVariogramEstimator:
    """Matheron estimator over regular lag classes.

    Pair ``(i, j)`` at distance ``d`` falls in bin ``floor(d / lag_width)``
    whose lag is the interval midpoint.  Pairs farther apart than the
    cutoff are ignored; no class starts at or beyond the cutoff, so a
    pair exactly at a cutoff that is a multiple of the lag width falls
    in the last class.

    Args:
        lag_width: Width of each lag class.  Defaults to
            ``cutoff / n_lags``.
        cutoff: Maximum pair distance.  Defaults to one third of the
            largest pairwise distance.
        min_pairs: Bins with fewer pairs are dropped with a warning.
        n_lags: Number of lag classes used when *lag_width* is not given.
    """

    def __init__(
        self,
        lag_width: float | None = None,
        cutoff: float | None = None,
        min_pairs: int = 1,
        n_lags: int = 10,
    ) -> None:
        if lag_width is not None and lag_width <= 0:
            raise ValueError(f"lag_width must be > 0, got {lag_width}")
        if cutoff is not None and cutoff <= 0:
            raise ValueError(f"cutoff must be > 0, got {cutoff}")
        if min_pairs < 1:
            raise ValueError(f"min_pairs must be >= 1, got {min_pairs}")
        if n_lags < 1:
            raise ValueError(f"n_lags must be >= 1, got {n_lags}")
        self.lag_width = lag_width
        self.cutoff = cutoff
        self.min_pairs = int(min_pairs)
        self.n_lags = int(n_lags)

    def estimate(self, samples: SampleSet) -> list[VariogramBin]:
        """Compute the empirical variogram of *samples*.

        Returns:
            Bins in ascending lag order.

        Raises:
            InsufficientSamplesError: Fewer than two samples.
            EmptyVariogramError: No bin meets ``min_pairs``, or every
                pair lies beyond the cutoff.
        """
        n = len(samples)
        if n < 2:
            raise InsufficientSamplesError(n, 2, "Variogram estimation")

        # Condensed pair vectors, same ordering for both
        dist = pdist(samples.coords)
        sq_diff = pdist(samples.values.reshape(-1, 1), metric="sqeuclidean")

        cutoff, lag_width = self.resolve_lags(float(dist.max()))

        within = dist <= cutoff
        dist = dist[within]
        sq_diff = sq_diff[within]
        if dist.size == 0:
            raise EmptyVariogramError(
                f"No sample pairs lie within the cutoff {cutoff:g}.",
                min_pairs=self.min_pairs,
            )

        # A pair exactly at the cutoff joins the last class inside it
        n_classes = max(1, int(np.ceil(round(cutoff / lag_width, 9))))
        idx = np.minimum(np.floor(dist / lag_width).astype(int), n_classes - 1)
        counts = np.bincount(idx)
        sums = np.bincount(idx, weights=sq_diff)

        bins: list[VariogramBin] = []
        dropped: list[tuple[float, int]] = []
        for k in np.flatnonzero(counts):
            lag = (k + 0.5) * lag_width
            count = int(counts[k])
            if count < self.min_pairs:
                dropped.append((float(lag), count))
                continue
            bins.append(VariogramBin(
                lag=float(lag),
                semivariance=float(sums[k] / (2.0 * count)),
                pair_count=count,
            ))

        if dropped:
            logger.warning(
                "Dropped %d variogram bin(s) with fewer than %d pairs: %s",
                len(dropped),
                self.min_pairs,
                ", ".join(f"lag={lag:g} (n={c})" for lag, c in dropped),
            )
        if not bins:
            raise EmptyVariogramError(
                f"No variogram bin has at least {self.min_pairs} pairs.",
                dropped=dropped,
                min_pairs=self.min_pairs,
            )

        logger.debug(
            "Empirical variogram: %d bins, lag width %g, cutoff %g",
            len(bins), lag_width, cutoff,
        )
        return bins

    def resolve_lags(self, max_distance: float) -> tuple[float, float]:
        """Return the effective ``(cutoff, lag_width)``.

        Raises:
            EmptyVariogramError: If all samples share one location and no
                explicit lags were configured.
        """
        cutoff = self.cutoff
        if cutoff is None:
            cutoff = max_distance / 3.0
        lag_width = self.lag_width
        if lag_width is None:
            lag_width = cutoff / self.n_lags
        if cutoff <= 0.0 or lag_width <= 0.0:
            raise EmptyVariogramError(
                "All samples share one location; the variogram is undefined."
            )
        return cutoff, lag_width

    def __repr__(self) -> str:
        return (
            f"EmpiricalVariogramEstimator(lag_width={self.lag_width}, "
            f"cutoff={self.cutoff}, min_pairs={self.min_pairs})"
        )


def empirical_variogram(
    samples: SampleSet,
    lag_width: float | None = None,
    cutoff: float | None = None,
    min_pairs: int = 1,
    n_lags: int = 10,
) -> list[VariogramBin]:
    """Shortcut for :meth:`EmpiricalVariogramEstimator.estimate`."""
    estimator = EmpiricalVariogramEstimator(
        lag_width=lag_width, cutoff=cutoff, min_pairs=min_pairs, n_lags=n_lags
    )
    return estimator.estimate(samples)


def bins_to_arrays(
    bins: list[VariogramBin],
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split bins into ``(lags, semivariances, pair_counts)`` arrays."""
    lags = np.array([b.lag for b in bins], dtype=float)
    gamma = np.array([b.semivariance for b in bins], dtype=float)
    counts = np.array([b.pair_count for b in bins], dtype=float)
    return lags, gamma, counts
