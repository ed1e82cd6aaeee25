"""
pygeokrig: Ordinary kriging of sparse point measurements onto regular
grids, with kriging variance and categorical banding.

Subpackages
-----------
data
    Located scalar observations.
variogram
    Empirical variogram, theoretical models, weighted fitting.
kriging
    Ordinary kriging prediction and leave-one-out validation.
geometry
    Study-area boundaries and prediction grids.
raster
    Rasters, boundary masking and reclassification.

Modules
-------
config
    Analysis configuration (YAML-loadable).
errors
    Exception types.
pipeline
    End-to-end analysis.
"""

from pygeokrig import (
    data,
    variogram,
    kriging,
    geometry,
    raster,
)
from pygeokrig.config import KrigingConfig
from pygeokrig.pipeline import AnalysisResult, run_analysis

__version__ = "0.1.0"

__all__ = [
    "data",
    "variogram",
    "kriging",
    "geometry",
    "raster",
    "KrigingConfig",
    "AnalysisResult",
    "run_analysis",
]
