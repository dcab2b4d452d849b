"""
Placement transforms for arrayed block instances.

Each instance is placed by the matrix

    M = T(raw_point) @ Rz(rotation) @ S(scale) @ T(-center_offset)

The centering shift happens in the block's local frame, before rotation and
scale, so the bounding-box center of the block lands on the path point for
any rotation. The block's own origin ends up at ``M @ 0``, which is what a
DXF INSERT stores as its insert location.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from block_drafting.geometry.path import SampledPath, as_point3

logger = logging.getLogger(__name__)


class RotationPolicy(Enum):
    """How instances are rotated."""
    NONE = "none"
    ALIGN_TO_PATH = "align"

    @classmethod
    def from_flag(cls, align: bool) -> 'RotationPolicy':
        return cls.ALIGN_TO_PATH if align else cls.NONE


def rotation_about_z(angle_rad: float) -> NDArray[np.float64]:
    """3x3 rotation matrix around the Z axis."""
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])


def translation_matrix(offset: Sequence[float]) -> NDArray[np.float64]:
    """4x4 homogeneous translation."""
    m = np.eye(4)
    m[:3, 3] = as_point3(offset)
    return m


def path_angle(direction: NDArray[np.float64]) -> float:
    """Angle of the path direction in the XY plane (radians).

    A zero direction gives 0.
    """
    if not np.any(direction[:2]):
        return 0.0
    return math.atan2(float(direction[1]), float(direction[0]))


@dataclass(eq=False)
class PlacementTransform:
    """Position, rotation and uniform scale of one instance.

    Attributes:
        insert_point: path point the block's bounding-box center lands on
        rotation: rotation around Z in radians
        scale: uniform scale factor
        center_offset: block bounding-box center relative to the block base point
    """
    insert_point: NDArray[np.float64]
    rotation: float
    scale: float
    center_offset: NDArray[np.float64]

    @property
    def rotation_degrees(self) -> float:
        return math.degrees(self.rotation)

    @property
    def linear(self) -> NDArray[np.float64]:
        """3x3 rotation-and-scale part."""
        return rotation_about_z(self.rotation) * self.scale

    @property
    def matrix(self) -> NDArray[np.float64]:
        """4x4 placement matrix, block coordinates to drawing coordinates."""
        rs = np.eye(4)
        rs[:3, :3] = self.linear
        return (
            translation_matrix(self.insert_point)
            @ rs
            @ translation_matrix(-self.center_offset)
        )

    @property
    def origin(self) -> NDArray[np.float64]:
        """Where the block's local origin lands."""
        return self.insert_point - self.linear @ self.center_offset

    def apply(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform block-space points (shape (3,) or Nx3) to drawing space."""
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            return self.insert_point + self.linear @ (points - self.center_offset)
        return self.insert_point + (points - self.center_offset) @ self.linear.T


def compose_transform(
    path: SampledPath,
    center_offset: Sequence[float],
    index: int,
    spacing: float,
    rotation_policy: RotationPolicy,
    scale: float,
) -> PlacementTransform:
    """Build the placement transform for instance ``index``.

    Args:
        path: sampled path
        center_offset: block bounding-box center relative to the block base point
        index: zero-based instance index
        spacing: distance between consecutive instances
        rotation_policy: align to path direction or keep angle 0
        scale: uniform scale factor

    Returns:
        PlacementTransform whose insert_point is ``start + direction * spacing * index``
    """
    raw_point = path.start + path.direction * spacing * index

    if rotation_policy is RotationPolicy.ALIGN_TO_PATH:
        rotation = path_angle(path.direction)
    else:
        rotation = 0.0

    return PlacementTransform(
        insert_point=raw_point,
        rotation=rotation,
        scale=float(scale),
        center_offset=as_point3(center_offset),
    )
