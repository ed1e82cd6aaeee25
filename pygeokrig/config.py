"""Analysis configuration.

All tunables of a kriging run live in :class:`KrigingConfig`.  A
configuration can be built in code or read from the ``kriging:`` section
of a YAML file::

    kriging:
      lag_width: 50000
      cutoff: 1180000
      min_pairs: 5
      model_kinds: [spherical, exponential, gaussian]
      weighting: pairs
      cell_size: 10000
      reclassification:
        - [0, 5, 1]
        - [5, 10, 2]
        - [10, 1000, 3]
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from pygeokrig.raster.postprocess import ReclassificationScheme
from pygeokrig.variogram.empirical import EmpiricalVariogramEstimator
from pygeokrig.variogram.fitting import WEIGHTINGS, VariogramModelFitter
from pygeokrig.variogram.models import ModelKind


@dataclass
class KrigingConfig:
    """Options of one analysis run.

    Attributes:
        lag_width: Empirical variogram lag width (``None``: cutoff / n_lags).
        n_lags: Number of lags when *lag_width* is unset.
        cutoff: Maximum pair distance (``None``: a third of the largest).
        min_pairs: Minimum pairs per variogram bin.
        model_kinds: Candidate variogram families.
        weighting: ``"pairs"`` or ``"uniform"`` fit weighting.
        max_iterations: Optimiser evaluation bound per family.
        tolerance: Optimiser convergence tolerance.
        regularization: Kriging diagonal inflation epsilon (times nugget).
        max_condition: Largest acceptable kriging condition number.
        cell_size: Prediction grid cell size (``None``: 1/100 of the
            extent's longer side).
        chunk_size: Query points per kriging solve.
        max_workers: Worker threads for fitting and prediction.
        reclassification: ``[lower, upper, class_id]`` bands for the
            prediction raster.
        variance_reclassification: Bands for the variance raster.
    """

    lag_width: float | None = None
    n_lags: int = 10
    cutoff: float | None = None
    min_pairs: int = 1
    model_kinds: tuple[str, ...] = ("spherical", "exponential", "gaussian")
    weighting: str = "pairs"
    max_iterations: int = 2000
    tolerance: float = 1e-8
    regularization: float = 1e-6
    max_condition: float = 1e12
    cell_size: float | None = None
    chunk_size: int = 1024
    max_workers: int | None = 1
    reclassification: list[list[float]] | None = None
    variance_reclassification: list[list[float]] | None = None

    def __post_init__(self) -> None:
        self.model_kinds = tuple(ModelKind.parse(k).value for k in self.model_kinds)
        if not self.model_kinds:
            raise ValueError("model_kinds must name at least one model.")
        if self.weighting not in WEIGHTINGS:
            raise ValueError(
                f"Unknown weighting {self.weighting!r}. Choose from {list(WEIGHTINGS)}"
            )
        if self.cell_size is not None and not self.cell_size > 0:
            raise ValueError(f"cell_size must be > 0, got {self.cell_size}")
        # Fail early on malformed schemes
        self.reclassification_scheme()
        self.variance_reclassification_scheme()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KrigingConfig:
        """Build a config from a mapping.

        Raises:
            KeyError: On unknown keys.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise KeyError(f"Unknown kriging config key(s): {unknown}")
        kwargs = dict(data)
        if "model_kinds" in kwargs:
            kinds = kwargs["model_kinds"]
            kwargs["model_kinds"] = (kinds,) if isinstance(kinds, str) else tuple(kinds)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str | Path) -> KrigingConfig:
        """Read the ``kriging:`` section of a YAML file.

        Raises:
            KeyError: If the file has no ``kriging`` section.
        """
        with open(path, "r") as f:
            document = yaml.safe_load(f) or {}
        if "kriging" not in document:
            raise KeyError(f"Missing 'kriging' section in {path}")
        return cls.from_dict(document["kriging"] or {})

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["model_kinds"] = list(self.model_kinds)
        return data

    # ------------------------------------------------------------------
    # Component factories
    # ------------------------------------------------------------------

    def estimator(self) -> EmpiricalVariogramEstimator:
        return EmpiricalVariogramEstimator(
            lag_width=self.lag_width,
            cutoff=self.cutoff,
            min_pairs=self.min_pairs,
            n_lags=self.n_lags,
        )

    def fitter(self, cutoff: float | None = None) -> VariogramModelFitter:
        return VariogramModelFitter(
            kinds=self.model_kinds,
            weighting=self.weighting,
            max_iterations=self.max_iterations,
            tolerance=self.tolerance,
            cutoff=cutoff if cutoff is not None else self.cutoff,
            max_workers=self.max_workers,
        )

    def reclassification_scheme(self) -> ReclassificationScheme | None:
        if not self.reclassification:
            return None
        return ReclassificationScheme(self.reclassification)

    def variance_reclassification_scheme(self) -> ReclassificationScheme | None:
        if not self.variance_reclassification:
            return None
        return ReclassificationScheme(self.variance_reclassification)
