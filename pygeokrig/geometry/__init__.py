"""Geometry: study-area boundaries and prediction grids."""

from pygeokrig.geometry.primitives import (
    Boundary,
    Rectangle,
    Polygon,
    Circle,
    PredicateBoundary,
    as_boundary,
)
from pygeokrig.geometry.grid import Extent, Grid, GridBuilder, build_grid

__all__ = [
    "Boundary",
    "Rectangle",
    "Polygon",
    "Circle",
    "PredicateBoundary",
    "as_boundary",
    "Extent",
    "Grid",
    "GridBuilder",
    "build_grid",
]
