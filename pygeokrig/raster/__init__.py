"""Rasters and their post-processing (masking, reclassification)."""

from pygeokrig.raster.base import Raster
from pygeokrig.raster.postprocess import (
    CLASS_NODATA,
    OUT_OF_RANGE,
    ClassInterval,
    ReclassificationScheme,
    ReclassificationResult,
    RasterPostProcessor,
    mask_raster,
    reclassify_raster,
)

__all__ = [
    "Raster",
    "CLASS_NODATA",
    "OUT_OF_RANGE",
    "ClassInterval",
    "ReclassificationScheme",
    "ReclassificationResult",
    "RasterPostProcessor",
    "mask_raster",
    "reclassify_raster",
]
