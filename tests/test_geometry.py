"""Tests for boundaries and prediction grids."""

from __future__ import annotations

import numpy as np
import pytest

from pygeokrig.data.samples import SampleSet
from pygeokrig.geometry.grid import Extent, Grid, GridBuilder, build_grid
from pygeokrig.geometry.primitives import (
    Circle,
    Polygon,
    PredicateBoundary,
    Rectangle,
    as_boundary,
)


# ======================================================================
# Boundaries
# ======================================================================

class TestBoundaries:
    def test_rectangle(self):
        r = Rectangle(0, 0, 10, 5)
        inside = r.contains([[5, 2], [11, 2], [10, 5]])
        np.testing.assert_array_equal(inside, [True, False, True])
        lo, hi = r.bounding_box()
        np.testing.assert_array_equal(lo, [0, 0])
        np.testing.assert_array_equal(hi, [10, 5])

    def test_polygon(self):
        tri = Polygon([(0, 0), (10, 0), (0, 10)])
        assert tri(1.0, 1.0)
        assert not tri(8.0, 8.0)

    def test_polygon_needs_three_vertices(self):
        with pytest.raises(ValueError):
            Polygon([(0, 0), (1, 1)])

    def test_circle(self):
        c = Circle(center=(0.0, 0.0), radius=2.0)
        np.testing.assert_array_equal(c.contains([[1, 1], [2, 2]]), [True, False])

    def test_predicate(self):
        b = as_boundary(lambda x, y: x > y)
        assert isinstance(b, PredicateBoundary)
        np.testing.assert_array_equal(b.contains([[2, 1], [1, 2]]), [True, False])

    def test_predicate_bounds(self):
        b = PredicateBoundary(lambda x, y: True, bounds=(0, 4, 1, 3))
        assert Extent.from_boundary(b) == Extent(0, 4, 1, 3)

    def test_predicate_must_be_callable(self):
        with pytest.raises(TypeError):
            PredicateBoundary(42)


# ======================================================================
# Extent
# ======================================================================

class TestExtent:
    def test_from_samples(self):
        samples = SampleSet.from_records([(1, 2, 0), (4, -1, 0), (3, 5, 0)])
        ext = Extent.from_points(samples)
        assert ext.as_tuple() == (1.0, 4.0, -1.0, 5.0)
        assert ext.width == 3.0
        assert ext.height == 6.0

    def test_inverted(self):
        with pytest.raises(ValueError):
            Extent(10, 0, 0, 10)

    def test_non_finite(self):
        with pytest.raises(ValueError):
            Extent(0, np.inf, 0, 1)


# ======================================================================
# Grid construction
# ======================================================================

class TestGridBuilder:
    def test_exact_multiple(self):
        grid = build_grid((0, 10, 0, 10), 2.5)
        assert grid.shape == (4, 4)
        assert (grid.x_origin, grid.y_origin) == (0.0, 10.0)
        assert grid.extent == Extent(0.0, 10.0, 0.0, 10.0)

    def test_float_noise_adds_no_cell(self):
        grid = build_grid((0, 0.3, 0, 0.3), 0.1)
        assert grid.shape == (3, 3)

    def test_partial_cells_round_up(self):
        grid = build_grid((0, 10, 0, 5), 3.0)
        assert grid.shape == (2, 4)
        ext = grid.extent
        assert ext.x_min == 0.0 and ext.y_min == 0.0
        assert 10.0 <= ext.x_max < 13.0
        assert 5.0 <= ext.y_max < 8.0

    def test_degenerate_extent(self):
        grid = build_grid((5, 5, 0, 10), 2.0)
        assert grid.shape == (5, 1)

    def test_deterministic(self):
        a = GridBuilder(1.5).build((0, 7, 2, 9), crs="EPSG:3310")
        b = GridBuilder(1.5).build(Extent(0, 7, 2, 9), crs="EPSG:3310")
        assert a == b
        np.testing.assert_array_equal(a.cell_centers(), b.cell_centers())

    @pytest.mark.parametrize("cs", [0.0, -1.0])
    def test_invalid_cell_size(self, cs):
        with pytest.raises(ValueError):
            GridBuilder(cs)


class TestGrid:
    def test_cell_centers_row_major_north_up(self):
        grid = build_grid((0, 10, 0, 10), 2.5)
        centers = grid.cell_centers()
        assert centers.shape == (16, 2)
        np.testing.assert_allclose(centers[0], [1.25, 8.75])
        np.testing.assert_allclose(centers[1], [3.75, 8.75])
        np.testing.assert_allclose(centers[4], [1.25, 6.25])
        np.testing.assert_allclose(centers[-1], [8.75, 1.25])
        assert grid.cell_center(1, 0) == (1.25, 6.25)

    def test_centres_inside_extent(self):
        grid = build_grid((-3, 7, 2, 5), 0.7)
        c = grid.cell_centers()
        ext = grid.extent
        assert np.all((c[:, 0] > ext.x_min) & (c[:, 0] < ext.x_max))
        assert np.all((c[:, 1] > ext.y_min) & (c[:, 1] < ext.y_max))

    def test_transform(self):
        grid = build_grid((100, 200, 50, 150), 10.0)
        assert grid.transform == (100.0, 10.0, 0.0, 150.0, 0.0, -10.0)

    def test_cell_out_of_bounds(self):
        grid = build_grid((0, 10, 0, 10), 5.0)
        with pytest.raises(IndexError):
            grid.cell_center(2, 0)

    def test_needs_one_cell(self):
        with pytest.raises(ValueError):
            Grid(0.0, 0.0, 1.0, 0, 3)
