"""Path geometry and placement transforms."""

from block_drafting.geometry.path import (
    LineGeometry,
    PolylineGeometry,
    SampledPath,
    UnsupportedGeometry,
    sample_path,
)
from block_drafting.geometry.transform import (
    PlacementTransform,
    RotationPolicy,
    compose_transform,
)

__all__ = [
    "LineGeometry",
    "PolylineGeometry",
    "SampledPath",
    "UnsupportedGeometry",
    "sample_path",
    "PlacementTransform",
    "RotationPolicy",
    "compose_transform",
]
