"""Planar study-area boundaries.

Classes
-------
Boundary
    Abstract base class: a region with a vectorised membership test.
Rectangle, Polygon, Circle
    Simple built-in boundaries.
PredicateBoundary
    Adapter turning an external ``contains(x, y) -> bool`` callable
    (e.g. a prepared shapely geometry) into a :class:`Boundary`.

Boundaries are only used to mask rasters and to size the prediction
grid; no topology (union, clipping) is provided.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

import numpy as np
from numpy.typing import ArrayLike


class Boundary(ABC):
    """Abstract base class for study-area boundaries.

    A boundary is also callable as ``boundary(x, y) -> bool``.
    """

    @abstractmethod
    def contains(self, points: ArrayLike) -> np.ndarray:
        """Test whether each point lies inside the boundary.

        Args:
            points: Array of shape ``(N, 2)``.

        Returns:
            Boolean array of shape ``(N,)``.
        """

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        """Axis-aligned bounding box ``(min_corner, max_corner)``.

        Raises:
            NotImplementedError: For boundaries with unknown extent.
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not know its bounding box."
        )

    def __call__(self, x: float, y: float) -> bool:
        return bool(self.contains(np.array([[x, y]], dtype=float))[0])


# ======================================================================
# Built-in boundaries
# ======================================================================


class Rectangle(Boundary):
    """Axis-aligned rectangle, edges included.

    Args:
        x_min, y_min: Lower-left corner.
        x_max, y_max: Upper-right corner.
    """

    def __init__(self, x_min: float, y_min: float, x_max: float, y_max: float) -> None:
        if x_max < x_min or y_max < y_min:
            raise ValueError(
                f"Inverted rectangle: ({x_min}, {y_min}) -> ({x_max}, {y_max})"
            )
        self.x_min = float(x_min)
        self.y_min = float(y_min)
        self.x_max = float(x_max)
        self.y_max = float(y_max)

    def contains(self, points: ArrayLike) -> np.ndarray:
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        x, y = pts[:, 0], pts[:, 1]
        return (
            (x >= self.x_min) & (x <= self.x_max)
            & (y >= self.y_min) & (y <= self.y_max)
        )

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return (
            np.array([self.x_min, self.y_min]),
            np.array([self.x_max, self.y_max]),
        )

    def __repr__(self) -> str:
        return (
            f"Rectangle(({self.x_min}, {self.y_min}), "
            f"({self.x_max}, {self.y_max}))"
        )


class Polygon(Boundary):
    """Simple 2-D polygon defined by its vertices.

    Args:
        vertices: Sequence of ``(x, y)`` coordinate pairs.  The polygon
            is automatically closed (do not repeat the first vertex).
    """

    def __init__(self, vertices: Sequence[tuple[float, float]]) -> None:
        self.vertices = np.asarray(vertices, dtype=float)
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 2:
            raise ValueError("vertices must have shape (N, 2).")
        if len(self.vertices) >= 2 and np.array_equal(
            self.vertices[0], self.vertices[-1]
        ):
            self.vertices = self.vertices[:-1]
        if len(self.vertices) < 3:
            raise ValueError("A polygon requires at least 3 vertices.")

    def contains(self, points: ArrayLike) -> np.ndarray:
        """Ray-casting algorithm for point-in-polygon test."""
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        n = len(self.vertices)
        inside = np.zeros(len(pts), dtype=bool)
        vx = self.vertices[:, 0]
        vy = self.vertices[:, 1]
        for i in range(n):
            j = (i + 1) % n
            yi, yj = vy[i], vy[j]
            xi, xj = vx[i], vx[j]
            cond = ((yi > pts[:, 1]) != (yj > pts[:, 1])) & (
                pts[:, 0] < (xj - xi) * (pts[:, 1] - yi) / (yj - yi + 1e-300) + xi
            )
            inside ^= cond
        return inside

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    def __repr__(self) -> str:
        return f"Polygon(n_vertices={len(self.vertices)})"


class Circle(Boundary):
    """Disc in 2-D, circumference included.

    Args:
        center: ``(x, y)`` coordinates of the centre.
        radius: Radius of the circle.
    """

    def __init__(
        self,
        center: tuple[float, float] = (0.0, 0.0),
        radius: float = 1.0,
    ) -> None:
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")
        self.center = np.asarray(center, dtype=float)
        self.radius = float(radius)

    def contains(self, points: ArrayLike) -> np.ndarray:
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        dist = np.linalg.norm(pts - self.center, axis=1)
        return dist <= self.radius

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        r = np.array([self.radius, self.radius])
        return self.center - r, self.center + r

    def __repr__(self) -> str:
        return f"Circle(center={tuple(self.center)}, radius={self.radius})"


# ======================================================================
# External predicates
# ======================================================================


class PredicateBoundary(Boundary):
    """Wrap a scalar ``contains(x, y) -> bool`` callable.

    Args:
        predicate: Membership test supplied by an external geometry
            library.
        bounds: Optional ``(x_min, x_max, y_min, y_max)`` of the region.
    """

    def __init__(
        self,
        predicate: Callable[[float, float], Any],
        bounds: tuple[float, float, float, float] | None = None,
    ) -> None:
        if not callable(predicate):
            raise TypeError("predicate must be callable as predicate(x, y).")
        self.predicate = predicate
        self.bounds = bounds

    def contains(self, points: ArrayLike) -> np.ndarray:
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        return np.fromiter(
            (bool(self.predicate(float(x), float(y))) for x, y in pts),
            dtype=bool,
            count=len(pts),
        )

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        if self.bounds is None:
            return super().bounding_box()
        x_min, x_max, y_min, y_max = self.bounds
        return np.array([x_min, y_min]), np.array([x_max, y_max])

    def __repr__(self) -> str:
        return f"PredicateBoundary({self.predicate!r})"


def as_boundary(boundary: Boundary | Callable[[float, float], Any]) -> Boundary:
    """Normalise a boundary or a plain predicate to a :class:`Boundary`."""
    if isinstance(boundary, Boundary):
        return boundary
    return PredicateBoundary(boundary)
