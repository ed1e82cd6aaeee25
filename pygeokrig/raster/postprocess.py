"""Raster post-processing: boundary masking and reclassification.

Functions
---------
mask_raster
    Replace cells outside a boundary with the no-data marker.
reclassify_raster
    Map continuous values to ordered integer class bands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

import numpy as np

from pygeokrig.errors import OutOfRangeValueError
from pygeokrig.geometry.primitives import Boundary, as_boundary
from pygeokrig.raster.base import Raster

logger = logging.getLogger(__name__)

CLASS_NODATA = -9999
OUT_OF_RANGE = -1


@dataclass(frozen=True)
class ClassInterval:
    """Half-open interval ``[lower, upper)`` mapped to *class_id*."""

    lower: float
    upper: float
    class_id: int


class ReclassificationScheme:
    """Ordered, contiguous, non-overlapping class intervals.

    Args:
        intervals: ``(lower, upper, class_id)`` triples or
            :class:`ClassInterval` objects, in ascending order.

    Raises:
        ValueError: If the scheme is empty, an interval is empty or
            inverted, or consecutive intervals leave a gap or overlap.
    """

    def __init__(self, intervals: Iterable[ClassInterval | Sequence[float]]) -> None:
        parsed: list[ClassInterval] = []
        for item in intervals:
            if isinstance(item, ClassInterval):
                parsed.append(item)
                continue
            if len(item) != 3:
                raise ValueError(
                    f"Expected (lower, upper, class_id) triples, got {item!r}"
                )
            lower, upper, class_id = item
            if int(class_id) != class_id:
                raise ValueError(f"class_id must be an integer, got {class_id!r}")
            parsed.append(ClassInterval(float(lower), float(upper), int(class_id)))

        if not parsed:
            raise ValueError("A reclassification scheme needs at least one interval.")
        for iv in parsed:
            if not iv.lower < iv.upper:
                raise ValueError(
                    f"Interval [{iv.lower}, {iv.upper}) is empty or inverted."
                )
        for prev, nxt in zip(parsed[:-1], parsed[1:]):
            if nxt.lower < prev.upper:
                raise ValueError(
                    f"Intervals [{prev.lower}, {prev.upper}) and "
                    f"[{nxt.lower}, {nxt.upper}) overlap or are out of order."
                )
            if nxt.lower > prev.upper:
                raise ValueError(
                    f"Gap between {prev.upper} and {nxt.lower}: intervals "
                    "must be contiguous."
                )
        self.intervals: tuple[ClassInterval, ...] = tuple(parsed)

    @classmethod
    def from_breaks(
        cls, breaks: Sequence[float], class_ids: Sequence[int] | None = None
    ) -> ReclassificationScheme:
        """Build a scheme from ``n + 1`` ascending break values.

        Args:
            breaks: Interval edges.
            class_ids: One id per interval; defaults to ``0 .. n - 1``.
        """
        breaks = [float(b) for b in breaks]
        if len(breaks) < 2:
            raise ValueError("At least two breaks are required.")
        if class_ids is None:
            class_ids = range(len(breaks) - 1)
        class_ids = list(class_ids)
        if len(class_ids) != len(breaks) - 1:
            raise ValueError(
                f"{len(breaks)} breaks define {len(breaks) - 1} intervals "
                f"but {len(class_ids)} class ids were given."
            )
        return cls(
            (lo, hi, cid) for lo, hi, cid in zip(breaks[:-1], breaks[1:], class_ids)
        )

    @property
    def lower(self) -> float:
        return self.intervals[0].lower

    @property
    def upper(self) -> float:
        return self.intervals[-1].upper

    @property
    def class_ids(self) -> list[int]:
        return [iv.class_id for iv in self.intervals]

    def classify(self, values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Classify an array of values.

        Returns:
            ``(class_ids, in_range)``: integer array with the class id of
            each in-range value (undefined elsewhere) and a boolean mask
            of values that fall in some interval.  NaN is never in range.
        """
        values = np.asarray(values, dtype=float)
        edges = np.array([iv.lower for iv in self.intervals] + [self.upper])
        ids = np.array(self.class_ids, dtype=int)

        idx = np.searchsorted(edges, values, side="right") - 1
        in_range = (values >= self.lower) & (values < self.upper)
        safe_idx = np.clip(idx, 0, len(ids) - 1)
        return ids[safe_idx], in_range

    def __len__(self) -> int:
        return len(self.intervals)

    def __repr__(self) -> str:
        body = ", ".join(
            f"[{iv.lower:g}, {iv.upper:g})->{iv.class_id}" for iv in self.intervals
        )
        return f"ReclassificationScheme({body})"


@dataclass
class ReclassificationResult:
    """Classified raster plus the cells that matched no interval.

    Attributes:
        raster: Integer raster of class ids.  No-data cells hold the
            raster's no-data marker, out-of-range cells hold
            *out_of_range_marker*.
        out_of_range_cells: ``(row, col, x, y, value)`` of each
            out-of-range cell.
        out_of_range_marker: Value written to out-of-range cells.
    """

    raster: Raster
    out_of_range_cells: list[tuple[int, int, float, float, float]] = field(
        default_factory=list
    )
    out_of_range_marker: int = OUT_OF_RANGE

    @property
    def out_of_range_count(self) -> int:
        return len(self.out_of_range_cells)

    def out_of_range_mask(self) -> np.ndarray:
        """Boolean array, ``True`` for out-of-range cells."""
        mask = np.zeros(self.raster.shape, dtype=bool)
        for row, col, *_ in self.out_of_range_cells:
            mask[row, col] = True
        return mask

    def raise_for_out_of_range(self) -> None:
        """Raise if any cell was out of range.

        Raises:
            OutOfRangeValueError: Carrying the count and cells.
        """
        if self.out_of_range_cells:
            raise OutOfRangeValueError(self.out_of_range_count, self.out_of_range_cells)


class RasterPostProcessor:
    """Masking and reclassification of continuous rasters.

    Args:
        class_nodata: No-data marker of classified rasters.
        out_of_range: Marker written to cells matching no interval.
    """

    def __init__(
        self, class_nodata: int = CLASS_NODATA, out_of_range: int = OUT_OF_RANGE
    ) -> None:
        if class_nodata == out_of_range:
            raise ValueError("class_nodata and out_of_range markers must differ.")
        self.class_nodata = int(class_nodata)
        self.out_of_range = int(out_of_range)

    def mask(
        self,
        raster: Raster,
        boundary: Boundary | Callable[[float, float], Any],
    ) -> Raster:
        """Set every cell whose centre lies outside *boundary* to no-data.

        Cells are never removed; the returned raster has the same grid.

        Args:
            raster: Input raster (unchanged).
            boundary: A :class:`~pygeokrig.geometry.primitives.Boundary` or
                a ``contains(x, y) -> bool`` predicate.
        """
        inside = as_boundary(boundary).contains(raster.grid.cell_centers())
        inside = inside.reshape(raster.shape)

        values = np.array(raster.values, copy=True)
        if np.issubdtype(values.dtype, np.integer) and not (
            isinstance(raster.nodata, (int, np.integer))
        ):
            values = values.astype(float)
        values[~inside] = raster.nodata
        logger.debug(
            "Masked %d of %d cells outside the boundary",
            int((~inside).sum()), inside.size,
        )
        return raster.with_values(values)

    def reclassify(
        self, raster: Raster, scheme: ReclassificationScheme
    ) -> ReclassificationResult:
        """Map every valid cell to the class id of its interval.

        Values in no interval are flagged, counted and logged, never
        assigned a class.

        Raises:
            ValueError: If a marker collides with a class id.
        """
        ids = set(scheme.class_ids)
        for name, marker in (
            ("class_nodata", self.class_nodata),
            ("out_of_range", self.out_of_range),
        ):
            if marker in ids:
                raise ValueError(
                    f"{name} marker {marker} collides with a class id of the scheme."
                )

        valid = raster.valid_mask()
        data = raster.values.astype(float)
        classes, in_range = scheme.classify(np.where(valid, data, np.nan))

        out = np.full(raster.shape, self.class_nodata, dtype=int)
        ok = valid & in_range
        out[ok] = classes[ok]
        bad = valid & ~in_range
        out[bad] = self.out_of_range

        cells = []
        if bad.any():
            grid = raster.grid
            for row, col in zip(*np.nonzero(bad)):
                x, y = grid.cell_center(int(row), int(col))
                cells.append((int(row), int(col), x, y, float(data[row, col])))
            logger.warning(
                "%d raster cell(s) outside the reclassification domain [%g, %g)",
                len(cells), scheme.lower, scheme.upper,
            )

        return ReclassificationResult(
            raster=Raster(raster.grid, out, nodata=self.class_nodata),
            out_of_range_cells=cells,
            out_of_range_marker=self.out_of_range,
        )


def mask_raster(
    raster: Raster, boundary: Boundary | Callable[[float, float], Any]
) -> Raster:
    """Shortcut for :meth:`RasterPostProcessor.mask`."""
    return RasterPostProcessor().mask(raster, boundary)


def reclassify_raster(
    raster: Raster, scheme: ReclassificationScheme | Iterable[Sequence[float]]
) -> ReclassificationResult:
    """Shortcut for :meth:`RasterPostProcessor.reclassify`."""
    if not isinstance(scheme, ReclassificationScheme):
        scheme = ReclassificationScheme(scheme)
    return RasterPostProcessor().reclassify(raster, scheme)
