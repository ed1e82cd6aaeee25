"""End-to-end analysis: samples in, classified rasters out.

Workflow::

    samples = SampleSet.from_records(rows, crs="EPSG:3310")
    result = run_analysis(samples, KrigingConfig(cell_size=5000),
                          boundary=Polygon(state_outline))
    result.prediction_classes.raster   # banded concentration map
    result.masked_variance             # uncertainty inside the boundary

Every step returns a value; rendering and file export are left to the
caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from scipy.spatial.distance import pdist

from pygeokrig.config import KrigingConfig
from pygeokrig.data.samples import SampleSet
from pygeokrig.geometry.grid import Extent, Grid, GridBuilder
from pygeokrig.geometry.primitives import Boundary, as_boundary
from pygeokrig.kriging.ordinary import KrigingPredictor, PredictionFault
from pygeokrig.raster.base import Raster
from pygeokrig.raster.postprocess import RasterPostProcessor, ReclassificationResult
from pygeokrig.variogram.empirical import VariogramBin
from pygeokrig.variogram.fitting import FitResult

logger = logging.getLogger(__name__)

DEFAULT_CELLS_PER_SIDE = 100


@dataclass
class AnalysisResult:
    """Everything produced by :func:`run_analysis`.

    Attributes:
        bins: Empirical variogram.
        fit: Selected variogram model and diagnostics.
        grid: Prediction grid.
        prediction: Raw kriging prediction raster.
        variance: Raw kriging variance raster.
        masked_prediction: Prediction masked to the boundary (``None``
            without a boundary).
        masked_variance: Variance masked to the boundary.
        prediction_classes: Reclassified prediction (``None`` without a
            scheme).
        variance_classes: Reclassified variance.
        faults: Per-point kriging faults.
    """

    bins: list[VariogramBin]
    fit: FitResult
    grid: Grid
    prediction: Raster
    variance: Raster
    masked_prediction: Raster | None = None
    masked_variance: Raster | None = None
    prediction_classes: ReclassificationResult | None = None
    variance_classes: ReclassificationResult | None = None
    faults: list[PredictionFault] = field(default_factory=list)


def run_analysis(
    samples: SampleSet,
    config: KrigingConfig | None = None,
    boundary: Boundary | Callable[[float, float], Any] | None = None,
    extent: Extent | tuple | None = None,
    cancel: threading.Event | None = None,
) -> AnalysisResult:
    """Run variogram estimation, fitting, kriging and post-processing.

    Args:
        samples: Observations in one projected coordinate system.
        config: Options; defaults to :class:`KrigingConfig()`.
        boundary: Study-area boundary used for masking and, when
            *extent* is not given, for the grid extent.
        extent: Grid extent.  Defaults to the boundary's bounding box,
            else (or when the boundary has none) the sample extent.
        cancel: Cooperative cancellation event for grid prediction.

    Raises:
        InsufficientSamplesError, EmptyVariogramError,
        FitNonConvergenceError, SingularKrigingSystemError: Abort the run.
    """
    config = config or KrigingConfig()

    # 1. Variogram
    estimator = config.estimator()
    bins = estimator.estimate(samples)
    cutoff, _ = estimator.resolve_lags(float(pdist(samples.coords).max()))
    fit = config.fitter(cutoff=cutoff).select(bins)
    logger.info("Variogram: %r (sse=%.6g)", fit.model, fit.sse)

    # 2. Grid
    if boundary is not None:
        boundary = as_boundary(boundary)
    if extent is None:
        extent = _default_extent(samples, boundary)
    elif not isinstance(extent, Extent):
        extent = Extent(*extent)
    cell_size = config.cell_size
    if cell_size is None:
        cell_size = max(extent.width, extent.height) / DEFAULT_CELLS_PER_SIDE
        if cell_size <= 0:
            raise ValueError("Cannot derive a cell size from a zero-area extent.")
    grid = GridBuilder(cell_size).build(extent, crs=samples.crs)

    # 3. Kriging
    predictor = KrigingPredictor(
        samples,
        fit.model,
        regularization=config.regularization,
        max_condition=config.max_condition,
        chunk_size=config.chunk_size,
        max_workers=config.max_workers,
    )
    gp = predictor.predict_grid(grid, cancel=cancel)
    result = AnalysisResult(
        bins=bins,
        fit=fit,
        grid=grid,
        prediction=gp.prediction,
        variance=gp.variance,
        faults=gp.faults,
    )

    # 4. Post-processing
    post = RasterPostProcessor()
    prediction, variance = gp.prediction, gp.variance
    if boundary is not None:
        prediction = result.masked_prediction = post.mask(prediction, boundary)
        variance = result.masked_variance = post.mask(variance, boundary)

    scheme = config.reclassification_scheme()
    if scheme is not None:
        result.prediction_classes = post.reclassify(prediction, scheme)
    var_scheme = config.variance_reclassification_scheme()
    if var_scheme is not None:
        result.variance_classes = post.reclassify(variance, var_scheme)

    logger.info(
        "Analysis complete: %s grid, %d kriging fault(s)",
        grid.shape, len(result.faults),
    )
    return result


def _default_extent(samples: SampleSet, boundary: Boundary | None) -> Extent:
    """Boundary bounding box, else the sample extent."""
    if boundary is None:
        return Extent.from_points(samples)
    try:
        return Extent.from_boundary(boundary)
    except NotImplementedError:
        logger.info(
            "%r has no bounding box; using the sample extent for the grid",
            boundary,
        )
        return Extent.from_points(samples)
