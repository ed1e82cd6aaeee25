"""Tests for weighted variogram fitting and model selection."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from pygeokrig.data.samples import SampleSet
from pygeokrig.errors import EmptyVariogramError, FitNonConvergenceError
from pygeokrig.variogram.empirical import VariogramBin, empirical_variogram
from pygeokrig.variogram.fitting import VariogramModelFitter, fit_variogram
from pygeokrig.variogram.models import ModelKind, VariogramModel


def _bins_from(model, lags=None, pairs=10):
    """Noise-free empirical variogram sampled from *model*."""
    if lags is None:
        lags = np.arange(1.0, 11.0)
    return [
        VariogramBin(float(h), float(model(h)), pairs) for h in lags
    ]


# ======================================================================
# Single-family fits
# ======================================================================

class TestFit:
    def test_recovers_exponential(self):
        truth = VariogramModel("exponential", nugget=0.5, partial_sill=2.0, range_=3.0)
        result = fit_variogram(_bins_from(truth), "exponential")
        assert result.converged
        assert result.model.kind is ModelKind.EXPONENTIAL
        assert result.model.nugget == pytest.approx(0.5, rel=1e-3)
        assert result.model.partial_sill == pytest.approx(2.0, rel=1e-3)
        assert result.model.range_ == pytest.approx(3.0, rel=1e-3)
        assert result.sse == pytest.approx(0.0, abs=1e-8)

    def test_recovers_spherical(self):
        truth = VariogramModel("spherical", nugget=0.5, partial_sill=2.0, range_=5.0)
        result = fit_variogram(_bins_from(truth), "spherical")
        assert result.model.nugget == pytest.approx(0.5, rel=1e-3)
        assert result.model.partial_sill == pytest.approx(2.0, rel=1e-3)
        assert result.model.range_ == pytest.approx(5.0, rel=1e-3)

    def test_parameters_non_negative(self):
        # Decreasing variogram: best fit pushes parameters to their bounds
        bins = [VariogramBin(float(h), 10.0 - h, 5) for h in range(1, 9)]
        try:
            m = fit_variogram(bins, "spherical").model
        except FitNonConvergenceError as err:
            m = err.model
        assert m.nugget >= 0.0
        assert m.partial_sill >= 0.0
        assert m.range_ > 0.0

    def test_range_at_upper_bound_is_logged(self, caplog):
        # A variogram that keeps rising drives the range to its bound
        bins = [VariogramBin(float(h), float(h), 10) for h in range(1, 11)]
        with caplog.at_level(logging.WARNING, logger="pygeokrig"):
            try:
                m = fit_variogram(bins, "exponential").model
            except FitNonConvergenceError as err:
                m = err.model
        assert m.range_ == pytest.approx(10.0 * 10.0, rel=1e-3)
        assert "upper bound" in caplog.text
        assert "range" in caplog.text

    def test_no_bound_warning_for_recovered_model(self, caplog):
        truth = VariogramModel("exponential", nugget=0.5, partial_sill=2.0, range_=3.0)
        with caplog.at_level(logging.WARNING, logger="pygeokrig"):
            fit_variogram(_bins_from(truth), "exponential")
        assert "upper bound" not in caplog.text

    def test_flat_variogram(self):
        samples = SampleSet.from_records([(0, 0, 5.0), (1, 0, 5.0), (2, 0, 5.0)])
        bins = empirical_variogram(samples, lag_width=1.0, cutoff=2.0)
        result = fit_variogram(bins, "exponential")
        assert result.model.nugget == 0.0
        assert result.model.partial_sill == 0.0
        assert result.sse == 0.0

    def test_single_bin(self):
        samples = SampleSet.from_records([
            (0, 0, 10), (10, 0, 20), (0, 10, 15), (10, 10, 25),
        ])
        bins = empirical_variogram(samples, lag_width=5.0, cutoff=15.0)
        result = fit_variogram(bins, "exponential", cutoff=15.0)
        assert result.model.partial_sill > 0.0
        assert result.model(12.5) == pytest.approx(500.0 / 12.0, rel=1e-3)

    def test_nugget_model_is_weighted_mean(self):
        bins = [VariogramBin(1.0, 2.0, 1), VariogramBin(2.0, 4.0, 4)]
        result = VariogramModelFitter(kinds=["nugget"]).fit(bins, "nugget")
        # pairs / lag**2 weights are equal here
        assert result.model.nugget == pytest.approx(3.0)
        assert result.model.partial_sill == 0.0

    def test_non_convergence(self):
        truth = VariogramModel("exponential", nugget=0.5, partial_sill=2.0, range_=3.0)
        bins = _bins_from(truth)
        rng = np.random.default_rng(0)
        noisy = [
            VariogramBin(b.lag, b.semivariance * (1 + 0.2 * rng.standard_normal()), 10)
            for b in bins
        ]
        fitter = VariogramModelFitter(kinds=["gaussian"], max_iterations=1)
        with pytest.raises(FitNonConvergenceError) as excinfo:
            fitter.fit(noisy, "gaussian")
        err = excinfo.value
        assert isinstance(err.model, VariogramModel)
        assert np.isfinite(err.sse)

    def test_empty_bins(self):
        with pytest.raises(EmptyVariogramError):
            VariogramModelFitter().fit([], "spherical")
        with pytest.raises(EmptyVariogramError):
            VariogramModelFitter().select([])


# ======================================================================
# Weighting
# ======================================================================

class TestWeights:
    def test_pairs_over_squared_lag(self):
        bins = [VariogramBin(1.0, 1.0, 4), VariogramBin(2.0, 1.0, 8)]
        np.testing.assert_allclose(VariogramModelFitter().weights(bins), [4.0, 2.0])

    def test_uniform(self):
        bins = [VariogramBin(1.0, 1.0, 4), VariogramBin(2.0, 1.0, 8)]
        fitter = VariogramModelFitter(weighting="uniform")
        np.testing.assert_allclose(fitter.weights(bins), [1.0, 1.0])

    def test_unknown_weighting(self):
        with pytest.raises(ValueError, match="Unknown weighting"):
            VariogramModelFitter(weighting="cressie")

    def test_sse(self):
        model = VariogramModel("nugget", nugget=1.0, partial_sill=0.0, range_=1.0)
        bins = [VariogramBin(1.0, 2.0, 1), VariogramBin(2.0, 1.0, 4)]
        assert VariogramModelFitter().sse(model, bins) == pytest.approx(1.0)


# ======================================================================
# Selection
# ======================================================================

class TestSelect:
    def test_picks_generating_family(self):
        truth = VariogramModel("spherical", nugget=0.5, partial_sill=2.0, range_=5.0)
        result = VariogramModelFitter().select(_bins_from(truth))
        assert result.model.kind is ModelKind.SPHERICAL
        assert set(result.candidates) == {
            ModelKind.SPHERICAL, ModelKind.EXPONENTIAL, ModelKind.GAUSSIAN,
        }
        for c in result.candidates.values():
            assert result.sse <= c.sse + 1e-12

    def test_tie_goes_to_simplest(self):
        bins = [VariogramBin(1.5, 0.0, 2), VariogramBin(2.5, 0.0, 1)]
        fitter = VariogramModelFitter(kinds=["gaussian", "exponential", "spherical"])
        assert fitter.select(bins).model.kind is ModelKind.SPHERICAL
        fitter = VariogramModelFitter(kinds=["gaussian", "nugget", "spherical"])
        assert fitter.select(bins).model.kind is ModelKind.NUGGET

    def test_threaded_matches_sequential(self):
        truth = VariogramModel("gaussian", nugget=0.1, partial_sill=3.0, range_=4.0)
        bins = _bins_from(truth)
        seq = VariogramModelFitter(max_workers=1).select(bins)
        par = VariogramModelFitter(max_workers=3).select(bins)
        assert par.model.kind is seq.model.kind
        assert par.model.nugget == pytest.approx(seq.model.nugget)
        assert par.model.partial_sill == pytest.approx(seq.model.partial_sill)
        assert par.model.range_ == pytest.approx(seq.model.range_)

    def test_all_candidates_fail(self):
        truth = VariogramModel("exponential", nugget=0.5, partial_sill=2.0, range_=3.0)
        bins = [
            VariogramBin(b.lag, b.semivariance + (0.3 if i % 2 else -0.3), 10)
            for i, b in enumerate(_bins_from(truth))
        ]
        fitter = VariogramModelFitter(
            kinds=["exponential", "gaussian"], max_iterations=1
        )
        with pytest.raises(FitNonConvergenceError):
            fitter.select(bins)

    def test_no_kinds(self):
        with pytest.raises(ValueError):
            VariogramModelFitter(kinds=[])
