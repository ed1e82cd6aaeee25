"""Exception types raised by pygeokrig.

Every exception derives from :class:`GeoKrigError` and from the built-in
exception a caller would otherwise expect (``ValueError``,
``RuntimeError`` or :class:`numpy.linalg.LinAlgError`), so existing
``except ValueError`` handlers keep working.

Estimation and fitting errors abort an analysis run.  Kriging and
reclassification problems are reported per point / per cell and only
become exceptions when a caller asks for it.
"""

from __future__ import annotations

from typing import Any

import numpy as np


class GeoKrigError(Exception):
    """Base class for all pygeokrig errors."""


class InsufficientSamplesError(GeoKrigError, ValueError):
    """Too few samples for variogram estimation or a kriging system.

    Attributes:
        n_samples: Number of samples supplied.
        required: Minimum number of samples needed.
    """

    def __init__(self, n_samples: int, required: int, what: str) -> None:
        self.n_samples = n_samples
        self.required = required
        super().__init__(
            f"{what} requires at least {required} samples, got {n_samples}."
        )


class EmptyVariogramError(GeoKrigError, ValueError):
    """No variogram bin meets the minimum pair-count threshold.

    Attributes:
        dropped: Bins that were discarded, as ``(lag, pair_count)`` tuples.
        min_pairs: Threshold that was applied.
    """

    def __init__(
        self,
        message: str,
        dropped: list[tuple[float, int]] | None = None,
        min_pairs: int | None = None,
    ) -> None:
        self.dropped = list(dropped or [])
        self.min_pairs = min_pairs
        super().__init__(message)


class FitNonConvergenceError(GeoKrigError, RuntimeError):
    """The variogram optimiser stopped without converging.

    Attributes:
        model: Best :class:`~pygeokrig.variogram.models.VariogramModel`
            found before stopping.  Parameters always satisfy the bounds.
        sse: Weighted sum of squared residuals of *model*.
        n_evaluations: Number of objective evaluations performed.
    """

    def __init__(
        self, message: str, model: Any, sse: float, n_evaluations: int = 0
    ) -> None:
        self.model = model
        self.sse = sse
        self.n_evaluations = n_evaluations
        super().__init__(message)


class SingularKrigingSystemError(GeoKrigError, np.linalg.LinAlgError):
    """The kriging matrix is singular beyond what regularisation can fix.

    Attributes:
        condition: Condition number of the (possibly regularised) matrix.
    """

    def __init__(self, message: str, condition: float) -> None:
        self.condition = condition
        super().__init__(message)


class OutOfRangeValueError(GeoKrigError, ValueError):
    """Raster values fell outside every reclassification interval.

    Attributes:
        count: Number of affected cells.
        cells: ``(row, col, x, y, value)`` tuples of the affected cells.
    """

    def __init__(self, count: int, cells: list[tuple]) -> None:
        self.count = count
        self.cells = list(cells)
        super().__init__(
            f"{count} raster cell(s) have no matching reclassification interval."
        )


class CRSMismatchError(GeoKrigError, ValueError):
    """Two inputs carry different coordinate reference systems."""

    def __init__(self, left: str | None, right: str | None, where: str) -> None:
        self.left = left
        self.right = right
        super().__init__(
            f"Coordinate reference mismatch in {where}: {left!r} != {right!r}."
        )


def check_crs(left: str | None, right: str | None, where: str) -> str | None:
    """Return the shared CRS of two inputs.

    ``None`` means "unspecified" and is compatible with anything.

    Raises:
        CRSMismatchError: If both are set and differ.
    """
    if left is not None and right is not None and left != right:
        raise CRSMismatchError(left, right, where)
    return left if left is not None else right
