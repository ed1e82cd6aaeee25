"""Theoretical variogram models.

A model is a tagged variant: a :class:`ModelKind` plus the parameter
triple (nugget, partial sill, range).  :func:`evaluate` dispatches on the
tag to a pure vectorised function.

All kinds satisfy ``evaluate(model, 0) == nugget`` and are
non-decreasing in the lag.  The kriging system places the nugget on its
diagonal, so a positive nugget smooths predictions at sample locations.

Kinds
-----
nugget
    ``c0 + c·[h > 0]``
exponential
    ``c0 + c·(1 - exp(-h/a))``
spherical
    ``c0 + c·(1.5·h/a - 0.5·(h/a)³)`` for ``h < a``, ``c0 + c`` beyond
gaussian
    ``c0 + c·(1 - exp(-(h/a)²))``
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np
from numpy.typing import ArrayLike


class ModelKind(str, Enum):
    """Supported variogram families."""

    NUGGET = "nugget"
    SPHERICAL = "spherical"
    EXPONENTIAL = "exponential"
    GAUSSIAN = "gaussian"

    @classmethod
    def parse(cls, kind: str | ModelKind) -> ModelKind:
        """Accept an enum member or its (case-insensitive) name."""
        if isinstance(kind, ModelKind):
            return kind
        try:
            return cls(str(kind).lower())
        except ValueError:
            raise ValueError(
                f"Unknown variogram model: {kind!r}. "
                f"Choose from {[k.value for k in cls]}"
            ) from None


# Tie-break order for model selection, simplest first.
SIMPLICITY_ORDER: tuple[ModelKind, ...] = (
    ModelKind.NUGGET,
    ModelKind.SPHERICAL,
    ModelKind.EXPONENTIAL,
    ModelKind.GAUSSIAN,
)


@dataclass(frozen=True)
class VariogramModel:
    """Parametric variogram.

    Args:
        kind: Model family.
        nugget: Semivariance at zero lag (>= 0).
        partial_sill: Sill minus nugget (>= 0).
        range_: Range parameter (> 0), in coordinate units.

    Raises:
        ValueError: If a parameter violates its bound.
    """

    kind: ModelKind
    nugget: float
    partial_sill: float
    range_: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", ModelKind.parse(self.kind))
        for name in ("nugget", "partial_sill", "range_"):
            val = float(getattr(self, name))
            if not np.isfinite(val):
                raise ValueError(f"{name} must be finite, got {val}")
            object.__setattr__(self, name, val)
        if self.nugget < 0.0:
            raise ValueError(f"nugget must be >= 0, got {self.nugget}")
        if self.partial_sill < 0.0:
            raise ValueError(f"partial_sill must be >= 0, got {self.partial_sill}")
        if self.range_ <= 0.0:
            raise ValueError(f"range_ must be > 0, got {self.range_}")

    @property
    def sill(self) -> float:
        """Total sill, ``nugget + partial_sill``."""
        return self.nugget + self.partial_sill

    def __call__(self, h: ArrayLike) -> np.ndarray:
        return evaluate(self, h)

    def __repr__(self) -> str:
        return (
            f"VariogramModel(kind={self.kind.value!r}, nugget={self.nugget:.4g}, "
            f"partial_sill={self.partial_sill:.4g}, range={self.range_:.4g})"
        )


# ======================================================================
# Shape functions: f(h/a) in [0, 1], f(0) = 0
# ======================================================================

def _nugget_shape(hr: np.ndarray) -> np.ndarray:
    return (hr > 0.0).astype(float)


def _exponential_shape(hr: np.ndarray) -> np.ndarray:
    return 1.0 - np.exp(-hr)


def _spherical_shape(hr: np.ndarray) -> np.ndarray:
    hr = np.minimum(hr, 1.0)
    return 1.5 * hr - 0.5 * hr ** 3


def _gaussian_shape(hr: np.ndarray) -> np.ndarray:
    return 1.0 - np.exp(-(hr ** 2))


_SHAPES: dict[ModelKind, Callable[[np.ndarray], np.ndarray]] = {
    ModelKind.NUGGET: _nugget_shape,
    ModelKind.EXPONENTIAL: _exponential_shape,
    ModelKind.SPHERICAL: _spherical_shape,
    ModelKind.GAUSSIAN: _gaussian_shape,
}


def semivariance(
    kind: ModelKind | str,
    h: ArrayLike,
    nugget: float,
    partial_sill: float,
    range_: float,
) -> np.ndarray:
    """Evaluate a model family from raw parameters.

    Used by the fitter, where parameters change at every iteration and
    building a validated :class:`VariogramModel` each time is wasteful.

    Args:
        kind: Model family.
        h: Lag distances (>= 0).
        nugget: Nugget.
        partial_sill: Partial sill.
        range_: Range (> 0).

    Returns:
        Semivariances with the shape of *h*.
    """
    h = np.asarray(h, dtype=float)
    shape = _SHAPES[ModelKind.parse(kind)]
    return nugget + partial_sill * shape(h / range_)


def evaluate(model: VariogramModel, h: ArrayLike) -> np.ndarray:
    """Evaluate *model* at lag distances *h*.

    Args:
        model: Variogram model.
        h: Lag distance(s), any shape, values >= 0.

    Returns:
        Semivariance array with the shape of *h*.  Exactly ``nugget``
        where ``h == 0``.
    """
    return semivariance(
        model.kind, h, model.nugget, model.partial_sill, model.range_
    )
