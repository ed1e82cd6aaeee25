"""Data: located scalar observations."""

from pygeokrig.data.samples import SamplePoint, SampleSet

__all__ = [
    "SamplePoint",
    "SampleSet",
]
