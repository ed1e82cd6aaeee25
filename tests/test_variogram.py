"""Tests for variogram models and the empirical variogram."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from pygeokrig.data.samples import SamplePoint, SampleSet
from pygeokrig.errors import EmptyVariogramError, InsufficientSamplesError
from pygeokrig.variogram.empirical import (
    EmpiricalVariogramEstimator,
    empirical_variogram,
)
from pygeokrig.variogram.models import ModelKind, VariogramModel, evaluate


ALL_KINDS = list(ModelKind)


def _square_samples():
    return SampleSet.from_records([
        (0, 0, 10), (10, 0, 20), (0, 10, 15), (10, 10, 25),
    ])


# ======================================================================
# Theoretical models
# ======================================================================

class TestVariogramModel:
    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_value_at_zero_is_nugget(self, kind):
        model = VariogramModel(kind, nugget=0.7, partial_sill=2.0, range_=30.0)
        assert evaluate(model, 0.0) == 0.7
        assert model(np.zeros(3)).tolist() == [0.7, 0.7, 0.7]

    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_non_decreasing(self, kind):
        model = VariogramModel(kind, nugget=0.2, partial_sill=1.5, range_=10.0)
        h = np.linspace(0.0, 100.0, 2001)
        gamma = model(h)
        assert np.all(np.diff(gamma) >= 0.0)

    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_bounded_by_sill(self, kind):
        model = VariogramModel(kind, nugget=0.2, partial_sill=1.5, range_=10.0)
        gamma = model(np.linspace(0.0, 1e4, 500))
        assert gamma.max() <= model.sill + 1e-12

    def test_exponential_formula(self):
        model = VariogramModel("exponential", nugget=1.0, partial_sill=4.0, range_=5.0)
        assert model(5.0) == pytest.approx(1.0 + 4.0 * (1.0 - np.exp(-1.0)))

    def test_gaussian_formula(self):
        model = VariogramModel("gaussian", nugget=0.0, partial_sill=2.0, range_=4.0)
        assert model(2.0) == pytest.approx(2.0 * (1.0 - np.exp(-0.25)))

    def test_spherical_reaches_sill_at_range(self):
        model = VariogramModel("spherical", nugget=0.5, partial_sill=2.0, range_=8.0)
        assert model(8.0) == pytest.approx(2.5)
        assert model(20.0) == pytest.approx(2.5)
        assert model(4.0) == pytest.approx(0.5 + 2.0 * (0.75 - 0.0625))

    def test_nugget_model_is_flat_beyond_zero(self):
        model = VariogramModel("nugget", nugget=1.0, partial_sill=0.5, range_=1.0)
        np.testing.assert_allclose(model([0.0, 1e-9, 3.0]), [1.0, 1.5, 1.5])

    def test_sill(self):
        model = VariogramModel("spherical", nugget=0.3, partial_sill=1.2, range_=1.0)
        assert model.sill == pytest.approx(1.5)

    @pytest.mark.parametrize("kwargs", [
        {"nugget": -0.1, "partial_sill": 1.0, "range_": 1.0},
        {"nugget": 0.0, "partial_sill": -1.0, "range_": 1.0},
        {"nugget": 0.0, "partial_sill": 1.0, "range_": 0.0},
        {"nugget": np.nan, "partial_sill": 1.0, "range_": 1.0},
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            VariogramModel("exponential", **kwargs)

    def test_parse_kind(self):
        assert ModelKind.parse("Spherical") is ModelKind.SPHERICAL
        with pytest.raises(ValueError, match="Unknown variogram model"):
            ModelKind.parse("cubic")


# ======================================================================
# Empirical variogram
# ======================================================================

class TestEmpiricalVariogram:
    def test_manual_bins(self):
        samples = SampleSet.from_records([(0, 0, 1), (1, 0, 3), (3, 0, 4)])
        bins = empirical_variogram(samples, lag_width=1.0, cutoff=10.0)
        assert [b.lag for b in bins] == [1.5, 2.5, 3.5]
        assert [b.semivariance for b in bins] == pytest.approx([2.0, 0.5, 4.5])
        assert [b.pair_count for b in bins] == [1, 1, 1]

    def test_four_point_square(self):
        bins = empirical_variogram(_square_samples(), lag_width=5.0, cutoff=15.0)
        # Edge (10) and diagonal (14.1) pairs share the [10, 15) class
        assert len(bins) == 1
        assert bins[0].lag == pytest.approx(12.5)
        assert bins[0].pair_count == 6
        assert bins[0].semivariance == pytest.approx(500.0 / 12.0)

    def test_collinear_constant_values(self):
        samples = SampleSet.from_records([(0, 0, 5.0), (1, 0, 5.0), (2, 0, 5.0)])
        bins = empirical_variogram(samples, lag_width=1.0, cutoff=3.0)
        assert len(bins) == 2
        assert all(b.semivariance == 0.0 for b in bins)

    def test_cutoff_excludes_far_pairs(self):
        samples = SampleSet.from_records([(0, 0, 1), (1, 0, 3), (3, 0, 4)])
        bins = empirical_variogram(samples, lag_width=1.0, cutoff=2.5)
        assert [b.lag for b in bins] == [1.5, 2.5]

    def test_pair_at_cutoff_joins_last_class(self):
        samples = SampleSet.from_records([(0, 0, 1.0), (10, 0, 3.0), (3, 0, 2.0)])
        bins = empirical_variogram(samples, lag_width=5.0, cutoff=10.0)
        assert [b.lag for b in bins] == [2.5, 7.5]
        assert [b.pair_count for b in bins] == [1, 2]
        # d=7 (squared difference 1) and d=10 (4) share the [5, 10] class
        assert bins[1].semivariance == pytest.approx((1.0 + 4.0) / 4.0)
        assert all(b.lag < 10.0 for b in bins)

    def test_default_cutoff_is_third_of_max_distance(self):
        x = np.arange(10.0)
        samples = SampleSet.from_arrays(x, np.zeros(10), np.sin(x))
        est = EmpiricalVariogramEstimator()
        cutoff, lag_width = est.resolve_lags(9.0)
        assert cutoff == pytest.approx(3.0)
        assert lag_width == pytest.approx(0.3)
        bins = est.estimate(samples)
        lags = [b.lag for b in bins]
        assert lags == sorted(lags)
        assert max(lags) < cutoff

    def test_min_pairs_drops_with_warning(self, caplog):
        samples = SampleSet.from_records([(0, 0, 1), (1, 0, 2), (2, 0, 4)])
        with caplog.at_level(logging.WARNING, logger="pygeokrig"):
            bins = empirical_variogram(samples, lag_width=1.0, cutoff=3.0, min_pairs=2)
        assert [b.lag for b in bins] == [1.5]
        assert bins[0].pair_count == 2
        assert "Dropped 1 variogram bin" in caplog.text

    def test_no_bin_meets_threshold(self):
        samples = SampleSet.from_records([(0, 0, 1), (1, 0, 2), (2, 0, 4)])
        with pytest.raises(EmptyVariogramError) as excinfo:
            empirical_variogram(samples, lag_width=1.0, cutoff=3.0, min_pairs=5)
        assert excinfo.value.min_pairs == 5
        assert len(excinfo.value.dropped) == 2

    def test_too_few_samples(self):
        samples = SampleSet([SamplePoint(0.0, 0.0, 1.0)])
        with pytest.raises(InsufficientSamplesError):
            empirical_variogram(samples)

    def test_coincident_samples(self):
        samples = SampleSet.from_records([(1, 1, 1), (1, 1, 2)])
        with pytest.raises(EmptyVariogramError):
            empirical_variogram(samples)

    def test_order_does_not_matter(self):
        rows = [(0, 0, 1.0), (3, 1, 2.0), (5, 5, 0.5), (2, 7, 4.0), (8, 2, 3.0)]
        a = empirical_variogram(SampleSet.from_records(rows), lag_width=2.0, cutoff=9.0)
        b = empirical_variogram(
            SampleSet.from_records(rows[::-1]), lag_width=2.0, cutoff=9.0
        )
        assert [x.lag for x in a] == [x.lag for x in b]
        assert [x.pair_count for x in a] == [x.pair_count for x in b]
        np.testing.assert_allclose(
            [x.semivariance for x in a], [x.semivariance for x in b]
        )

    @pytest.mark.parametrize("kwargs", [
        {"lag_width": 0.0},
        {"cutoff": -1.0},
        {"min_pairs": 0},
    ])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            EmpiricalVariogramEstimator(**kwargs)


class TestSampleSet:
    def test_read_only_arrays(self):
        samples = _square_samples()
        assert samples.coords.shape == (4, 2)
        with pytest.raises(ValueError):
            samples.values[0] = 0.0

    def test_bounds(self):
        assert _square_samples().bounds() == (0.0, 10.0, 0.0, 10.0)

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError):
            SampleSet.from_records([(0, 0, np.nan)])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            SampleSet.from_arrays([0, 1], [0], [1, 2])

    def test_duplicates_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pygeokrig"):
            SampleSet.from_records([(0, 0, 1), (0, 0, 2), (1, 1, 3)])
        assert "duplicate" in caplog.text
