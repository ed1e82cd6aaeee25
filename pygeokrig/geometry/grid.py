"""Regular prediction grids.

Classes
-------
Extent
    Axis-aligned bounding extent.
Grid
    North-up regular grid: upper-left origin, square cells, row-major
    cell centres with row 0 at the top.
GridBuilder
    Builds a :class:`Grid` covering an extent at a given cell size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike


@dataclass(frozen=True)
class Extent:
    """Axis-aligned extent ``[x_min, x_max] × [y_min, y_max]``.

    Raises:
        ValueError: If the extent is inverted or not finite.
    """

    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self) -> None:
        vals = (self.x_min, self.x_max, self.y_min, self.y_max)
        if not all(np.isfinite(v) for v in vals):
            raise ValueError(f"Extent bounds must be finite, got {vals}")
        if self.x_max < self.x_min or self.y_max < self.y_min:
            raise ValueError(f"Inverted extent: {vals}")

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @classmethod
    def from_points(cls, points: ArrayLike | Any) -> Extent:
        """Extent of a point array ``(N, 2)`` or of a ``SampleSet``."""
        coords = getattr(points, "coords", points)
        pts = np.atleast_2d(np.asarray(coords, dtype=float))
        if pts.size == 0:
            raise ValueError("Cannot compute the extent of zero points.")
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        return cls(float(lo[0]), float(hi[0]), float(lo[1]), float(hi[1]))

    @classmethod
    def from_boundary(cls, boundary: Any) -> Extent:
        """Extent of a boundary's bounding box."""
        lo, hi = boundary.bounding_box()
        return cls(float(lo[0]), float(hi[0]), float(lo[1]), float(hi[1]))

    def as_tuple(self) -> tuple[float, float, float, float]:
        return self.x_min, self.x_max, self.y_min, self.y_max


@dataclass(frozen=True)
class Grid:
    """Regular north-up grid.

    Attributes:
        x_origin: Left edge (x of the upper-left corner).
        y_origin: Top edge (y of the upper-left corner).
        cell_size: Cell side length.
        n_rows: Number of rows (row 0 is the northernmost).
        n_cols: Number of columns.
        crs: Optional coordinate reference identifier.
    """

    x_origin: float
    y_origin: float
    cell_size: float
    n_rows: int
    n_cols: int
    crs: str | None = None

    def __post_init__(self) -> None:
        if not self.cell_size > 0:
            raise ValueError(f"cell_size must be > 0, got {self.cell_size}")
        if self.n_rows < 1 or self.n_cols < 1:
            raise ValueError(
                f"Grid needs at least one row and column, "
                f"got {self.n_rows}x{self.n_cols}"
            )

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, int]:
        return self.n_rows, self.n_cols

    @property
    def size(self) -> int:
        return self.n_rows * self.n_cols

    @property
    def extent(self) -> Extent:
        return Extent(
            self.x_origin,
            self.x_origin + self.n_cols * self.cell_size,
            self.y_origin - self.n_rows * self.cell_size,
            self.y_origin,
        )

    @property
    def transform(self) -> tuple[float, float, float, float, float, float]:
        """GDAL-style affine geotransform for raster writers."""
        return (
            self.x_origin, self.cell_size, 0.0,
            self.y_origin, 0.0, -self.cell_size,
        )

    @property
    def x_centers(self) -> np.ndarray:
        """Column centre x-coordinates, west to east."""
        return self.x_origin + (np.arange(self.n_cols) + 0.5) * self.cell_size

    @property
    def y_centers(self) -> np.ndarray:
        """Row centre y-coordinates, north to south."""
        return self.y_origin - (np.arange(self.n_rows) + 0.5) * self.cell_size

    def cell_center(self, row: int, col: int) -> tuple[float, float]:
        """Centre of cell ``(row, col)``."""
        if not (0 <= row < self.n_rows and 0 <= col < self.n_cols):
            raise IndexError(f"Cell ({row}, {col}) outside {self.shape} grid")
        return (
            float(self.x_origin + (col + 0.5) * self.cell_size),
            float(self.y_origin - (row + 0.5) * self.cell_size),
        )

    def cell_centers(self) -> np.ndarray:
        """All cell centres in row-major order.

        Returns:
            Array of shape ``(n_rows * n_cols, 2)``.
        """
        xx, yy = np.meshgrid(self.x_centers, self.y_centers)
        return np.column_stack([xx.ravel(), yy.ravel()])

    def __repr__(self) -> str:
        return (
            f"Grid({self.n_rows}x{self.n_cols}, cell_size={self.cell_size:g}, "
            f"origin=({self.x_origin:g}, {self.y_origin:g}), crs={self.crs!r})"
        )


class GridBuilder:
    """Build grids covering an extent.

    The number of columns is ``ceil(width / cell_size)`` (at least one),
    likewise for rows, so the grid grows from the extent's lower-left
    corner towards east and north by less than one cell.

    Args:
        cell_size: Cell side length, in coordinate units.
    """

    def __init__(self, cell_size: float) -> None:
        if not cell_size > 0:
            raise ValueError(f"cell_size must be > 0, got {cell_size}")
        self.cell_size = float(cell_size)

    def build(self, extent: Extent | tuple, crs: str | None = None) -> Grid:
        """Build the grid for *extent*.

        Args:
            extent: :class:`Extent` or ``(x_min, x_max, y_min, y_max)``.
            crs: Coordinate reference identifier carried by the grid.
        """
        if not isinstance(extent, Extent):
            extent = Extent(*extent)
        cs = self.cell_size
        # Round off float noise so an exact multiple of cs gets no extra cell
        n_cols = max(1, int(np.ceil(round(extent.width / cs, 9))))
        n_rows = max(1, int(np.ceil(round(extent.height / cs, 9))))
        return Grid(
            x_origin=extent.x_min,
            y_origin=extent.y_min + n_rows * cs,
            cell_size=cs,
            n_rows=n_rows,
            n_cols=n_cols,
            crs=crs,
        )

    def __repr__(self) -> str:
        return f"GridBuilder(cell_size={self.cell_size:g})"


def build_grid(
    extent: Extent | tuple, cell_size: float, crs: str | None = None
) -> Grid:
    """Shortcut for ``GridBuilder(cell_size).build(extent, crs)``."""
    return GridBuilder(cell_size).build(extent, crs=crs)
