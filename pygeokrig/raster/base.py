"""Raster: a grid with one value per cell.

Rasters are values, not buffers: the constructor copies the data and
marks it read-only, and every transformation returns a new raster.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike

from pygeokrig.geometry.grid import Extent, Grid


class Raster:
    """Grid-aligned array of cell values.

    Args:
        grid: The grid the values belong to.
        values: Array of shape ``grid.shape`` (or flat, row-major).
        nodata: No-data marker.  ``NaN`` (default) for continuous
            rasters, an integer for classified rasters.

    Raises:
        ValueError: If *values* does not match the grid.
    """

    def __init__(self, grid: Grid, values: ArrayLike, nodata: Any = np.nan) -> None:
        arr = np.array(values, copy=True)
        if arr.size != grid.size:
            raise ValueError(
                f"Raster values have {arr.size} cells, grid {grid.shape} "
                f"has {grid.size}."
            )
        arr = arr.reshape(grid.shape)
        arr.flags.writeable = False
        self.grid = grid
        self.nodata = nodata
        self._values = arr

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def values(self) -> np.ndarray:
        """Read-only cell values, shape ``(n_rows, n_cols)``."""
        return self._values

    @property
    def shape(self) -> tuple[int, int]:
        return self.grid.shape

    @property
    def crs(self) -> str | None:
        return self.grid.crs

    @property
    def extent(self) -> Extent:
        return self.grid.extent

    @property
    def cell_size(self) -> float:
        return self.grid.cell_size

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def valid_mask(self) -> np.ndarray:
        """Boolean array, ``True`` where the cell holds data."""
        if isinstance(self.nodata, float) and np.isnan(self.nodata):
            return ~np.isnan(self._values)
        valid = self._values != self.nodata
        if np.issubdtype(self._values.dtype, np.floating):
            valid &= ~np.isnan(self._values)
        return valid

    def statistics(self) -> dict[str, float]:
        """Summary of valid cells: ``count``, ``min``, ``max``, ``mean``, ``std``."""
        data = self._values[self.valid_mask()].astype(float)
        if data.size == 0:
            nan = float("nan")
            return {"count": 0, "min": nan, "max": nan, "mean": nan, "std": nan}
        return {
            "count": int(data.size),
            "min": float(data.min()),
            "max": float(data.max()),
            "mean": float(data.mean()),
            "std": float(data.std()),
        }

    def to_xyz(self) -> np.ndarray:
        """Cells as ``(x, y, value)`` rows, row-major.

        No-data cells keep the no-data marker.  This is the shape handed
        to an external raster writer.
        """
        centers = self.grid.cell_centers()
        return np.column_stack([centers, self._values.ravel().astype(float)])

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_values(self, values: ArrayLike, nodata: Any = None) -> Raster:
        """New raster on the same grid with other values."""
        return Raster(
            self.grid, values, self.nodata if nodata is None else nodata
        )

    def __repr__(self) -> str:
        return (
            f"Raster(shape={self.shape}, dtype={self._values.dtype}, "
            f"nodata={self.nodata!r}, crs={self.crs!r})"
        )
