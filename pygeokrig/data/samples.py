"""Point observation containers.

Provides :class:`SamplePoint` and :class:`SampleSet`, the read-only
input of every statistical component.  Coordinates are planar and share
one projected coordinate system, optionally named by ``crs``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

import numpy as np
from numpy.typing import ArrayLike

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplePoint:
    """A single located observation.

    Args:
        x: Easting / x-coordinate in projected units.
        y: Northing / y-coordinate in projected units.
        value: Observed scalar (e.g. a pollutant concentration).
    """

    x: float
    y: float
    value: float


class SampleSet:
    """Immutable, ordered collection of sample points.

    Order never changes results but is kept stable so that every
    computation is reproducible.  Duplicate locations are accepted;
    they are reported once because they degrade the conditioning of the
    kriging system.

    Args:
        points: Sample points, in a fixed order.
        crs: Optional coordinate reference identifier (e.g.
            ``"EPSG:3310"``), carried to every derived raster.

    Raises:
        ValueError: If a coordinate or value is not finite.
    """

    def __init__(self, points: Iterable[SamplePoint], crs: str | None = None) -> None:
        self._points = tuple(points)
        self.crs = crs

        if self._points:
            data = np.array(
                [(p.x, p.y, p.value) for p in self._points], dtype=float
            )
        else:
            data = np.empty((0, 3))
        if not np.all(np.isfinite(data)):
            raise ValueError("Sample coordinates and values must be finite.")

        self._coords = data[:, :2].copy()
        self._values = data[:, 2].copy()
        self._coords.flags.writeable = False
        self._values.flags.writeable = False

        n_unique = len(np.unique(self._coords, axis=0)) if len(data) else 0
        if n_unique < len(data):
            logger.warning(
                "SampleSet contains %d duplicate location(s); the kriging "
                "system may be ill-conditioned.",
                len(data) - n_unique,
            )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_arrays(
        cls,
        x: ArrayLike,
        y: ArrayLike,
        values: ArrayLike,
        crs: str | None = None,
    ) -> SampleSet:
        """Build a sample set from parallel coordinate and value arrays.

        Raises:
            ValueError: If the arrays differ in length.
        """
        x = np.asarray(x, dtype=float).ravel()
        y = np.asarray(y, dtype=float).ravel()
        values = np.asarray(values, dtype=float).ravel()
        if not (len(x) == len(y) == len(values)):
            raise ValueError(
                f"x, y and values must have the same length, got "
                f"{len(x)}, {len(y)} and {len(values)}."
            )
        points = [
            SamplePoint(float(xi), float(yi), float(vi))
            for xi, yi, vi in zip(x, y, values)
        ]
        return cls(points, crs=crs)

    @classmethod
    def from_records(
        cls,
        rows: Iterable[Sequence[float]],
        crs: str | None = None,
    ) -> SampleSet:
        """Build a sample set from ``(x, y, value)`` rows.

        This is the shape produced by an external table loader after
        reprojection.
        """
        points = []
        for row in rows:
            if len(row) != 3:
                raise ValueError(f"Expected (x, y, value) rows, got {row!r}")
            points.append(SamplePoint(float(row[0]), float(row[1]), float(row[2])))
        return cls(points, crs=crs)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def coords(self) -> np.ndarray:
        """Read-only sample coordinates, shape ``(n, 2)``."""
        return self._coords

    @property
    def values(self) -> np.ndarray:
        """Read-only sample values, shape ``(n,)``."""
        return self._values

    @property
    def points(self) -> tuple[SamplePoint, ...]:
        return self._points

    def bounds(self) -> tuple[float, float, float, float]:
        """Return ``(x_min, x_max, y_min, y_max)`` of the sample locations.

        Raises:
            ValueError: If the set is empty.
        """
        if not self._points:
            raise ValueError("An empty SampleSet has no bounds.")
        lo = self._coords.min(axis=0)
        hi = self._coords.max(axis=0)
        return float(lo[0]), float(hi[0]), float(lo[1]), float(hi[1])

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[SamplePoint]:
        return iter(self._points)

    def __getitem__(self, idx: int) -> SamplePoint:
        return self._points[idx]

    def __repr__(self) -> str:
        return f"SampleSet(n_samples={len(self)}, crs={self.crs!r})"
